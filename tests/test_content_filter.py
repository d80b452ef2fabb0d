"""Tests for the content filter engine."""

import pytest

from conftest import make_policy
from keywordguard.configuration.group_policy import PatternRule
from keywordguard.moderation import content_filter


def test_disabled_rules_leave_message_untouched():
    policy = make_policy(
        PatternRule("spam", enabled=False, recall=True, triggers_mute=True, replace=True, replacement_text="x"),
        PatternRule(".*", enabled=False, recall=True),
    )

    result = content_filter.apply(policy, "spam spam [CQ:at,qq=1]")

    assert result.modified_text == "spam spam [CQ:at,qq=1]"
    assert result.recall_requested is False
    assert result.mute_triggered is False
    assert result.had_replacement is False
    assert not result.changed


def test_pattern_inside_markup_token_does_not_match():
    policy = make_policy(PatternRule("12345", recall=True, triggers_mute=True))

    result = content_filter.apply(policy, "[CQ:at,qq=12345] hello")

    assert result.modified_text == "[CQ:at,qq=12345] hello"
    assert result.recall_requested is False
    assert result.mute_triggered is False
    assert result.matched_patterns == []


@pytest.mark.parametrize("pattern", ["67890", "face", "id=", r"CQ:\w+"])
def test_token_contents_are_never_rewritten(pattern):
    policy = make_policy(PatternRule(pattern, replace=True, replacement_text="#"))

    result = content_filter.apply(policy, "[CQ:face,id=67890]")

    assert result.modified_text == "[CQ:face,id=67890]"


def test_pattern_outside_token_is_replaced_and_token_kept():
    policy = make_policy(PatternRule("12345", replace=True, replacement_text="*"))

    result = content_filter.apply(policy, "call 12345 [CQ:at,qq=12345]")

    assert result.modified_text == "call * [CQ:at,qq=12345]"
    assert result.had_replacement is True


def test_replacement_is_global_and_case_insensitive():
    policy = make_policy(PatternRule("spam", replace=True, replacement_text="***"))

    result = content_filter.apply(policy, "Spam and SPAM\nand spam")

    assert result.modified_text == "*** and ***\nand ***"


def test_dot_matches_newlines():
    policy = make_policy(PatternRule("a.b", replace=True, replacement_text="X"))

    assert content_filter.apply(policy, "a\nb").modified_text == "X"


def test_non_replacing_rule_removes_matches():
    policy = make_policy(PatternRule("bad"))

    result = content_filter.apply(policy, "so bad!")

    assert result.modified_text == "so !"
    assert result.had_replacement is True
    assert result.recall_requested is False


def test_rules_chain_in_policy_order():
    policy = make_policy(
        PatternRule("a+", replace=True, replacement_text="X"),
        PatternRule("X", recall=True, replace=True, replacement_text="X"),
    )

    result = content_filter.apply(policy, "aaa")

    assert result.modified_text == "X"
    assert result.recall_requested is True
    assert result.matched_patterns == ["a+", "X"]


def test_rule_order_changes_the_outcome():
    first = PatternRule("a+", replace=True, replacement_text="X")
    second = PatternRule("X", recall=True)

    forward = content_filter.apply(make_policy(first, second), "aaa")
    backward = content_filter.apply(make_policy(second, first), "aaa")

    assert forward.modified_text == ""
    assert forward.recall_requested is True
    assert backward.modified_text == "X"
    assert backward.recall_requested is False


def test_flags_are_never_unset_by_later_rules():
    policy = make_policy(
        PatternRule("one", recall=True, triggers_mute=True),
        PatternRule("two", recall=False, triggers_mute=False),
    )

    result = content_filter.apply(policy, "one two")

    assert result.recall_requested is True
    assert result.mute_triggered is True


def test_replacement_text_is_literal():
    policy = make_policy(PatternRule("(b)", replace=True, replacement_text=r"\1$&"))

    assert content_filter.apply(policy, "abc").modified_text == r"a\1$&c"


def test_no_match_produces_no_changes():
    policy = make_policy(PatternRule("spam", recall=True))

    result = content_filter.apply(policy, "hello")

    assert not result.matched
    assert result.modified_text == "hello"
    assert result.recall_requested is False


@pytest.mark.parametrize(
    "text",
    [
        "[CQ:x,buy spam now]",
        "[CQ:at,qq=1,note=spam]",
        "[CQ:image,file=a spam.jpg]",
    ],
)
def test_text_posing_as_markup_is_still_filtered(text):
    policy = make_policy(PatternRule("spam", recall=True))

    result = content_filter.apply(policy, text)

    assert result.matched_patterns == ["spam"]
    assert result.recall_requested is True
    assert "spam" not in result.modified_text


def test_anchors_match_at_token_boundaries():
    policy = make_policy(PatternRule("^spam$", replace=True, replacement_text="*"))

    result = content_filter.apply(policy, "[CQ:at,qq=1]spam[CQ:face,id=2]")

    assert result.modified_text == "[CQ:at,qq=1]*[CQ:face,id=2]"
