"""
CQ markup handling for normalized messages.

Structured messages are flattened into one string in which every non-text
element becomes a ``[CQ:kind,attr=value,...]`` token. Pattern matching and
replacement work on that string, but must never look inside a token, so this
module also provides the span split used to keep tokens out of reach.

Only the token kinds this module emits are recognised, each with the shape
of its single attribute. Anything else that looks like markup, for example
``[CQ:x,buy spam now]`` typed by a user, stays literal text and is filtered
like any other text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List

from keywordguard.datatypes.message_datatypes import MessageElement

# token kind -> "attr=value" shape
TOKEN_SHAPES = {
    "at": r"qq=(?:\d*|all)",
    "face": r"id=\d*",
    "mface": r"id=[\w-]*",
    "image": r"file=[^\],\s]*",
    "reply": r"id=-?\d*",
}
CQ_TOKEN = re.compile(
    r"\[CQ:(?:" + "|".join(f"{kind},{shape}" for kind, shape in TOKEN_SHAPES.items()) + r")\]",
    re.ASCII,
)

# element type -> (token kind, token attribute, element attribute)
ELEMENT_TOKENS = {
    "at": ("at", "qq", "id"),
    "image": ("image", "file", "file"),
    "face": ("face", "id", "id"),
    "mface": ("mface", "id", "emojiId"),
}
TOKEN_ELEMENTS = {kind: (element_type, attr, element_attr) for element_type, (kind, attr, element_attr) in ELEMENT_TOKENS.items()}


@dataclass(frozen=True, slots=True)
class Segment:
    """A slice of normalized text: either a CQ token or a literal run."""
    text: str
    is_token: bool


def _attr(value: Any) -> str:
    return "" if value is None else str(value)


def element_to_markup(element: MessageElement) -> str:
    mapping = ELEMENT_TOKENS.get(element.type)
    if mapping is None:
        content = (element.attrs or {}).get("content")
        return str(content) if content else ""
    kind, attr, element_attr = mapping
    return f"[CQ:{kind},{attr}={_attr((element.attrs or {}).get(element_attr))}]"


def normalize(elements: Iterable[MessageElement]) -> str:
    """Flatten message elements into a normalized string.

    Mentions, images, stickers and animated stickers become CQ tokens; any
    other element contributes its ``content`` attribute (or nothing).
    """
    return "".join(element_to_markup(element) for element in elements)


def split_segments(text: str) -> List[Segment]:
    """Split normalized text into alternating literal and token segments.

    Empty literal runs are omitted, so joining the segment texts yields the
    input unchanged.
    """
    segments: List[Segment] = []
    position = 0
    for match in CQ_TOKEN.finditer(text):
        if match.start() > position:
            segments.append(Segment(text[position:match.start()], False))
        segments.append(Segment(match.group(0), True))
        position = match.end()
    if position < len(text):
        segments.append(Segment(text[position:], False))
    return segments


def parse_token(token: str) -> MessageElement:
    """Turn a single CQ token back into a message element."""
    if CQ_TOKEN.fullmatch(token) is None:
        raise ValueError(f"Not a CQ token: {token!r}")

    kind, _, pair = token[len("[CQ:"):-1].partition(",")
    key, _, value = pair.partition("=")

    mapping = TOKEN_ELEMENTS.get(kind)
    if mapping is None:
        return MessageElement(kind, {key: value})
    element_type, _, element_attr = mapping
    return MessageElement(element_type, {element_attr: value})


def parse(text: str) -> List[MessageElement]:
    """Rebuild message elements from normalized text (inverse of :func:`normalize`)."""
    return [
        parse_token(segment.text) if segment.is_token else MessageElement.text(segment.text)
        for segment in split_segments(text)
    ]


def escape_text(text: str) -> str:
    """Escape ``&`` as ``&amp;`` outside of CQ tokens; tokens are left intact."""
    return "".join(
        segment.text if segment.is_token else segment.text.replace("&", "&amp;")
        for segment in split_segments(text)
    )


def at_token(user_id: Any) -> str:
    return f"[CQ:at,qq={user_id}]"


def reply_token(message_id: Any) -> str:
    return f"[CQ:reply,id={message_id}]"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters without splitting markup.

    A CQ token or ``&amp;`` entity that would straddle the limit is dropped
    whole instead of being cut in half.
    """
    if len(text) <= limit:
        return text

    kept: List[str] = []
    length = 0
    for segment in split_segments(text):
        room = limit - length
        if len(segment.text) <= room:
            kept.append(segment.text)
            length += len(segment.text)
            continue
        if not segment.is_token:
            piece = segment.text[:room]
            entity_start = piece.rfind("&")
            if entity_start != -1 and segment.text.startswith("&amp;", entity_start) and entity_start + 5 > room:
                piece = piece[:entity_start]
            kept.append(piece)
        break
    return "".join(kept)
