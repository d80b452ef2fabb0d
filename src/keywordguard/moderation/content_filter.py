"""
Pattern evaluation of a normalized message against a group policy.

Rules are applied in policy order, each one operating on the output of the
previous rule. Matching and replacement only ever touch the literal spans of
the text; CQ tokens pass through untouched, so a pattern such as ``12345``
can never fire on ``[CQ:at,qq=12345]``. Each literal span is searched on its
own, so ``^`` and ``$`` in a pattern match at token boundaries as well as at
the start and end of the message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from keywordguard.configuration.group_policy import GroupPolicy, PatternRule
from keywordguard.moderation.markup import split_segments


@dataclass(slots=True)
class FilterResult:
    """Outcome of running one message through a group's rules.

    Attributes:
        original_text: Normalized text before any rule was applied.
        modified_text: Text after all matching rules rewrote it.
        recall_requested: At least one matching rule asked for a recall.
        mute_triggered: At least one matching rule counts towards a mute.
        had_replacement: At least one matching rule rewrote the text.
        matched_patterns: Patterns that matched, in evaluation order.
    """
    original_text: str
    modified_text: str
    recall_requested: bool = False
    mute_triggered: bool = False
    had_replacement: bool = False
    matched_patterns: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.modified_text != self.original_text

    @property
    def matched(self) -> bool:
        return bool(self.matched_patterns)


def rule_matches(rule: PatternRule, text: str) -> bool:
    """Return True if the rule's pattern occurs in a literal span of ``text``."""
    return any(
        rule.regex.search(segment.text) is not None
        for segment in split_segments(text)
        if not segment.is_token
    )


def substitute(rule: PatternRule, text: str) -> str:
    """Replace every literal-span occurrence of the rule's pattern.

    The replacement is inserted verbatim; backslashes and group references in
    it are not expanded.
    """
    replacement = rule.substitute
    return "".join(
        segment.text if segment.is_token else rule.regex.sub(lambda _match: replacement, segment.text)
        for segment in split_segments(text)
    )


def apply(policy: GroupPolicy, text: str) -> FilterResult:
    """Evaluate ``text`` against every enabled rule of ``policy``.

    Flags only ever go from False to True; no later rule can clear a recall
    or mute request made by an earlier one.
    """
    result = FilterResult(original_text=text, modified_text=text)

    for rule in policy.rules:
        if not rule.enabled:
            continue
        if not rule_matches(rule, result.modified_text):
            continue

        result.matched_patterns.append(rule.pattern)
        result.modified_text = substitute(rule, result.modified_text)
        result.had_replacement = True
        result.recall_requested = result.recall_requested or rule.recall
        if rule.triggers_mute:
            result.mute_triggered = True

    return result
