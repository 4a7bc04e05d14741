"""Turns the vision model's free-text answer into exactly four keyframe prompts.

Strategies run in a fixed order and the first one that yields four non-empty
strings wins:

    tagged     -> 【KF1/4 | ...】 headers with a 画面描述 field under each
    paragraph  -> first four blank-line separated paragraphs
    default    -> DEFAULT_KEYFRAMES, independent of the input

Parsing never raises. An exception inside a strategy drops straight to the
default tier.
"""
import re
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from app.logging import get_logger
from app.agents.storyboard.prompts import DEFAULT_KEYFRAMES, DESCRIPTION_LABEL, KEYFRAME_COUNT

logger = get_logger("parsing")

ParseTier = Literal["tagged", "paragraph", "default"]

# A keyframe header opens with a bracket or sits at the start of a line, so
# "KF1/4" quoted inside a continuity note is not mistaken for a new segment.
_KF_HEADER = re.compile(r"(?:[【\[]|^)[ \t]*KF[ \t]*(?:#[ \t]*)?[1-4][ \t]*/[ \t]*4", re.MULTILINE)
_KF_HEADER_LINE = re.compile(r"^\s*(?:[【\[][ \t]*)?KF[ \t]*(?:#[ \t]*)?[1-4][ \t]*/[ \t]*4[^\n】\]]*[】\]]?")
_DESCRIPTION_FIELD = re.compile(
    rf"(?:{DESCRIPTION_LABEL}|visual description)[ \t]*(?:\*+[ \t]*)?[：:]\**[ \t]*(.+)",
    re.IGNORECASE,
)
_BLANK_LINE = re.compile(r"\r?\n[ \t]*\r?\n")


@dataclass(frozen=True)
class ParseResult:
    tier: ParseTier
    keyframes: list[str]


Strategy = Callable[[str], Optional[list[str]]]


def _complete(frames: list[str]) -> Optional[list[str]]:
    frames = [f.strip() for f in frames]
    if len(frames) != KEYFRAME_COUNT or not all(frames):
        return None
    return frames


def split_keyframe_segments(text: str) -> list[str]:
    starts = [m.start() for m in _KF_HEADER.finditer(text)]
    ends = starts[1:] + [len(text)]
    return [text[s:e] for s, e in zip(starts, ends)]


def _segment_description(segment: str) -> str:
    match = _DESCRIPTION_FIELD.search(segment)
    if match and match.group(1).strip():
        return match.group(1).strip()
    # No description field: use the whole segment minus its header.
    return _KF_HEADER_LINE.sub("", segment, count=1).strip()


def parse_tagged(text: str) -> Optional[list[str]]:
    segments = split_keyframe_segments(text)
    if len(segments) != KEYFRAME_COUNT:
        return None
    return _complete([_segment_description(s) for s in segments])


def parse_paragraphs(text: str) -> Optional[list[str]]:
    paragraphs = [p.strip() for p in _BLANK_LINE.split(text) if p.strip()]
    if len(paragraphs) < KEYFRAME_COUNT:
        return None
    return _complete(paragraphs[:KEYFRAME_COUNT])


STRATEGIES: tuple[tuple[ParseTier, Strategy], ...] = (
    ("tagged", parse_tagged),
    ("paragraph", parse_paragraphs),
)


def parse_storyboard_analysis(text: str) -> ParseResult:
    for tier, strategy in STRATEGIES:
        try:
            frames = strategy(text)
        except Exception as e:
            logger.warning(f"{tier} strategy failed, using default keyframes: {e}")
            break
        if frames is not None:
            logger.debug(f"parsed keyframes via {tier} tier")
            return ParseResult(tier=tier, keyframes=frames)

    logger.debug("no strategy matched, using default keyframes")
    return ParseResult(tier="default", keyframes=list(DEFAULT_KEYFRAMES))
