"""Tests for CQ markup normalization and span handling."""

import pytest

from keywordguard.datatypes.message_datatypes import MessageElement
from keywordguard.moderation.markup import (
    Segment,
    at_token,
    escape_text,
    normalize,
    parse,
    parse_token,
    reply_token,
    split_segments,
    truncate,
)


def test_normalize_maps_each_element_kind():
    elements = [
        MessageElement.text("hi "),
        MessageElement("at", {"id": "12345"}),
        MessageElement("image", {"file": "abc.jpg"}),
        MessageElement("face", {"id": "14"}),
        MessageElement("mface", {"emojiId": "777", "id": "ignored"}),
    ]

    assert normalize(elements) == (
        "hi [CQ:at,qq=12345][CQ:image,file=abc.jpg][CQ:face,id=14][CQ:mface,id=777]"
    )


def test_normalize_unknown_elements_degrade_to_content_or_empty():
    elements = [
        MessageElement("video", {"content": "[video]"}),
        MessageElement("json", {}),
        MessageElement.text("tail"),
    ]

    assert normalize(elements) == "[video]tail"


def test_normalize_does_not_escape():
    assert normalize([MessageElement.text("a & b")]) == "a & b"


def test_split_segments_separates_tokens_and_literals():
    segments = split_segments("hey [CQ:at,qq=1] you[CQ:face,id=2]")

    assert segments == [
        Segment("hey ", False),
        Segment("[CQ:at,qq=1]", True),
        Segment(" you", False),
        Segment("[CQ:face,id=2]", True),
    ]
    assert "".join(s.text for s in segments) == "hey [CQ:at,qq=1] you[CQ:face,id=2]"


def test_split_segments_leaves_plain_brackets_as_literal():
    assert split_segments("[not a token]") == [Segment("[not a token]", False)]
    assert split_segments("") == []


def test_escape_text_only_touches_literal_spans():
    text = "Tom & Jerry [CQ:image,file=a&b.jpg] R&D"

    assert escape_text(text) == "Tom &amp; Jerry [CQ:image,file=a&b.jpg] R&amp;D"


def test_parse_reverses_normalize():
    elements = [
        MessageElement.text("look "),
        MessageElement("at", {"id": "12345"}),
        MessageElement("mface", {"emojiId": "9"}),
        MessageElement.text("!"),
    ]

    assert normalize(parse(normalize(elements))) == normalize(elements)
    assert parse("[CQ:at,qq=12345]") == [MessageElement("at", {"id": "12345"})]


def test_parse_token_keeps_reply_tokens():
    element = parse_token("[CQ:reply,id=55]")

    assert element.type == "reply"
    assert element.attrs == {"id": "55"}


def test_parse_token_rejects_non_tokens():
    with pytest.raises(ValueError):
        parse_token("plain text")


def test_outgoing_token_builders():
    assert at_token(42) == "[CQ:at,qq=42]"
    assert reply_token("7") == "[CQ:reply,id=7]"


@pytest.mark.parametrize(
    "text",
    ["[CQ:x,buy spam now]", "[CQ:at,qq=bob]", "[CQ:face,id=1,extra=2]", "[CQ:image,file=a b.jpg]"],
)
def test_unrecognised_markup_stays_literal(text):
    assert split_segments(text) == [Segment(text, False)]
    with pytest.raises(ValueError):
        parse_token(text)


def test_known_token_shapes_are_recognised():
    text = "[CQ:at,qq=all][CQ:mface,id=ab-12][CQ:reply,id=-5][CQ:image,file=http://x/a.png]"

    assert all(segment.is_token for segment in split_segments(text))
    assert parse("[CQ:at,qq=all]") == [MessageElement("at", {"id": "all"})]


def test_normalize_tolerates_missing_attrs():
    assert normalize([MessageElement("at", None)]) == "[CQ:at,qq=]"
    assert split_segments("[CQ:at,qq=]") == [Segment("[CQ:at,qq=]", True)]


def test_truncate_never_splits_tokens_or_entities():
    assert truncate("ab[CQ:face,id=14]", 5) == "ab"
    assert truncate("abc&amp;d", 6) == "abc"
    assert truncate("abc&amp;d", 8) == "abc&amp;"
    assert truncate("short", 10) == "short"
