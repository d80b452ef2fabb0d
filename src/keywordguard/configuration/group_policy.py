"""
Per-group moderation policies.

A :class:`GroupPolicy` bundles everything keywordguard needs to moderate one
group: the enabled flag, the ordered list of :class:`PatternRule` objects, the
mute escalation settings and the message templates. Policies are built once
from configuration and never mutated afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from keywordguard.datatypes.chat_datatypes import GroupID

DEFAULT_CUSTOM_MESSAGE = "请遵守群规！"
DEFAULT_ALERT_TEXT = "检测到违规内容！"
DEFAULT_CORRECTION_PREFIX = "修正内容："

PATTERN_FLAGS = re.IGNORECASE | re.DOTALL


class PolicyError(ValueError):
    """Raised when a group policy in the configuration is invalid."""


@dataclass(frozen=True, slots=True)
class PatternRule:
    """One forbidden-content matcher and the actions attached to it."""

    pattern: str
    enabled: bool = True
    triggers_mute: bool = False
    recall: bool = False
    replace: bool = False
    replacement_text: str = ""
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.pattern:
            raise PolicyError("Blocking pattern must not be empty")
        try:
            compiled = re.compile(self.pattern, PATTERN_FLAGS)
        except re.error as exc:
            raise PolicyError(f"Invalid blocking pattern {self.pattern!r}: {exc}") from exc
        object.__setattr__(self, "regex", compiled)

    @property
    def substitute(self) -> str:
        """Text that replaces every match of this rule."""
        return self.replacement_text if self.replace else ""


@dataclass(frozen=True, slots=True)
class MuteConfig:
    """Escalation settings: mute for ``duration_seconds`` after ``threshold`` violations."""

    enabled: bool = False
    threshold: int = 3
    duration_seconds: int = 600

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise PolicyError(f"Mute threshold must be at least 1, got {self.threshold}")
        if self.duration_seconds < 1:
            raise PolicyError(f"Mute duration must be at least 1 second, got {self.duration_seconds}")


@dataclass(frozen=True, slots=True)
class GroupPolicy:
    """Full moderation configuration for one group."""

    group_id: GroupID
    enabled: bool = True
    mute_config: MuteConfig = field(default_factory=MuteConfig)
    rules: Tuple[PatternRule, ...] = ()
    custom_message: str = DEFAULT_CUSTOM_MESSAGE
    alert_text: str = DEFAULT_ALERT_TEXT
    correction_prefix: str = DEFAULT_CORRECTION_PREFIX

    def __post_init__(self) -> None:
        try:
            group_id = GroupID(self.group_id)
        except ValueError as exc:
            raise PolicyError(f"Group id must be 5 to 12 digits, got {self.group_id!r}") from exc
        if not group_id.is_configurable():
            raise PolicyError(f"Group id must be 5 to 12 digits, got {self.group_id!r}")
        object.__setattr__(self, "group_id", group_id)
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def active_rules(self) -> List[PatternRule]:
        """Enabled rules in evaluation order."""
        return [rule for rule in self.rules if rule.enabled]


# --------------------------
# Parsing from raw configuration
# --------------------------

def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; both snake_case and camelCase spellings are accepted."""
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise PolicyError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PolicyError(f"{name} must be an integer, got {value!r}") from exc


def parse_pattern_rule(pattern: str, raw: Mapping[str, Any] | None) -> PatternRule:
    raw = raw or {}
    return PatternRule(
        pattern=str(pattern),
        enabled=bool(_pick(raw, "enable", "enabled", default=True)),
        triggers_mute=bool(_pick(raw, "trigger_mute", "triggers_mute", "triggerMute", default=False)),
        recall=bool(_pick(raw, "recall", default=False)),
        replace=bool(_pick(raw, "replace", default=False)),
        replacement_text=str(_pick(raw, "replace_word", "replacement_text", "replaceWord", default="") or ""),
    )


def parse_rules(raw_rules: Any) -> Tuple[PatternRule, ...]:
    """Build the ordered rule list.

    Accepts either a mapping of ``pattern -> rule options`` (YAML mappings keep
    their file order) or a list of rule entries carrying a ``pattern`` key.
    """
    if raw_rules is None:
        return ()

    rules: List[PatternRule] = []
    if isinstance(raw_rules, Mapping):
        for pattern, options in raw_rules.items():
            rules.append(parse_pattern_rule(pattern, options))
    elif isinstance(raw_rules, list):
        for entry in raw_rules:
            if not isinstance(entry, Mapping) or "pattern" not in entry:
                raise PolicyError(f"Blocking word entry needs a 'pattern' key: {entry!r}")
            rules.append(parse_pattern_rule(entry["pattern"], entry))
    else:
        raise PolicyError(f"Blocking words must be a mapping or a list, got {type(raw_rules).__name__}")

    seen = set()
    for rule in rules:
        if rule.pattern in seen:
            raise PolicyError(f"Duplicate blocking pattern {rule.pattern!r}")
        seen.add(rule.pattern)
    return tuple(rules)


def parse_mute_config(raw: Mapping[str, Any] | None) -> MuteConfig:
    raw = raw or {}
    return MuteConfig(
        enabled=bool(_pick(raw, "enable", "enabled", default=False)),
        threshold=_as_int(_pick(raw, "threshold", default=3), "threshold"),
        duration_seconds=_as_int(_pick(raw, "duration", "duration_seconds", default=600), "duration"),
    )


def parse_group_policy(raw: Mapping[str, Any]) -> GroupPolicy:
    """Build a :class:`GroupPolicy` from one ``blocking_rules`` entry."""
    group_id = _pick(raw, "group_id", "groupId")
    if group_id is None:
        raise PolicyError("Group entry is missing 'group_id'")

    def template(*keys: str, default: str) -> str:
        value = _pick(raw, *keys, default=default)
        return "" if value is None else str(value)

    return GroupPolicy(
        group_id=group_id,
        enabled=bool(_pick(raw, "enable", "enabled", default=True)),
        mute_config=parse_mute_config(_pick(raw, "mute_config", "muteConfig")),
        rules=parse_rules(_pick(raw, "blocking_words", "blockingWords", "rules")),
        custom_message=template("custom_message", "customMessage", default=DEFAULT_CUSTOM_MESSAGE),
        alert_text=template("alert_content", "alert_text", "alertContent", default=DEFAULT_ALERT_TEXT),
        correction_prefix=template("correct_prefix", "correction_prefix", "correctPrefix", default=DEFAULT_CORRECTION_PREFIX),
    )


def build_policy_index(entries: Iterable[Mapping[str, Any]]) -> Dict[GroupID, GroupPolicy]:
    """Parse every group entry and index the result by group id.

    Raises:
        PolicyError: On any invalid entry or when two entries share a group id.
    """
    policies: Dict[GroupID, GroupPolicy] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise PolicyError(f"Group entry must be a mapping, got {type(entry).__name__}")
        policy = parse_group_policy(entry)
        if policy.group_id in policies:
            raise PolicyError(f"Duplicate policy for group {policy.group_id}")
        policies[policy.group_id] = policy
    return policies
