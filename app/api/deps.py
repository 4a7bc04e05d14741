import jwt
from typing import Callable, Optional
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from langchain_openai import ChatOpenAI

from app.config import settings
from app.agents.storyboard.vision import TextGenerator, build_text_generator

security = HTTPBearer(auto_error=True)

TextGeneratorFactory = Callable[[Optional[str]], TextGenerator]

def verify_token(credentials: HTTPAuthorizationCredentials = Security(security)) -> str:
    token = credentials.credentials
    issuer = f"{settings.SUPABASE_URL}/auth/v1"
    
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
            issuer=issuer,
            options={"require": ["exp", "sub", "aud", "iss"]},
            leeway=30,  # avoids failures from small clock skew
        )
        return payload["sub"]
        
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

def get_text_generator_factory() -> TextGeneratorFactory:
    def factory(reference_image: Optional[str]) -> TextGenerator:
        # Non-streaming: the pipeline needs the whole answer before parsing.
        llm = ChatOpenAI(model=settings.MODEL_NAME, streaming=False, temperature=0)
        return build_text_generator(llm, reference_image)

    return factory
