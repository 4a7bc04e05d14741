from typing import Awaitable, Callable, Optional
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

TextGenerator = Callable[[str], Awaitable[str]]


def build_human_message(text: str, image_urls: list[str]) -> HumanMessage:
    if not image_urls:
        return HumanMessage(content=text)
    
    content = [{"type": "text", "text": text}]
    for url in image_urls:
        content.append({"type": "image_url", "image_url": {"url": url}})
        
    return HumanMessage(content=content)


def build_text_generator(llm: BaseChatModel, reference_image: Optional[str] = None) -> TextGenerator:
    """Adapt a chat model into the `(instruction) -> text` capability the pipeline awaits.

    The reference image (usually a data URI) is attached untouched.
    """
    image_urls = [reference_image] if reference_image else []

    async def generate_text(instruction: str) -> str:
        response = await llm.ainvoke([build_human_message(instruction, image_urls)])
        content = response.content
        if isinstance(content, list):
            # Some providers return content blocks; keep the text ones.
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return content

    return generate_text
