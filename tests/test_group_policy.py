"""Tests for group policy parsing and validation."""

import pytest

from keywordguard.configuration.group_policy import (
    DEFAULT_ALERT_TEXT,
    DEFAULT_CORRECTION_PREFIX,
    DEFAULT_CUSTOM_MESSAGE,
    GroupPolicy,
    MuteConfig,
    PatternRule,
    PolicyError,
    build_policy_index,
    parse_group_policy,
)


class TestGroupPolicy:
    """Tests for the policy dataclasses."""

    def test_defaults(self):
        policy = GroupPolicy(group_id="123456")

        assert policy.group_id == "123456"
        assert policy.enabled is True
        assert policy.mute_config == MuteConfig(enabled=False, threshold=3, duration_seconds=600)
        assert policy.rules == ()
        assert policy.custom_message == DEFAULT_CUSTOM_MESSAGE
        assert policy.alert_text == DEFAULT_ALERT_TEXT
        assert policy.correction_prefix == DEFAULT_CORRECTION_PREFIX

    @pytest.mark.parametrize("group_id", ["1234", "1234567890123", "abcde", "12 345"])
    def test_invalid_group_ids(self, group_id):
        with pytest.raises(PolicyError):
            GroupPolicy(group_id=group_id)

    @pytest.mark.parametrize("kwargs", [{"threshold": 0}, {"duration_seconds": 0}])
    def test_invalid_mute_config(self, kwargs):
        with pytest.raises(PolicyError):
            MuteConfig(**kwargs)

    def test_invalid_pattern(self):
        with pytest.raises(PolicyError):
            PatternRule("(unclosed")
        with pytest.raises(PolicyError):
            PatternRule("")

    def test_policy_is_immutable(self):
        policy = GroupPolicy(group_id="123456")
        with pytest.raises(AttributeError):
            policy.enabled = False  # type: ignore[misc]

    def test_active_rules_keep_order(self):
        rules = (PatternRule("b"), PatternRule("a", enabled=False), PatternRule("c"))
        policy = GroupPolicy(group_id="123456", rules=rules)

        assert [rule.pattern for rule in policy.active_rules] == ["b", "c"]

    def test_substitute(self):
        assert PatternRule("x", replace=True, replacement_text="y").substitute == "y"
        assert PatternRule("x", replace=False, replacement_text="y").substitute == ""


class TestParsing:
    """Tests for building policies from raw configuration mappings."""

    def test_parse_mapping_form_keeps_order(self):
        policy = parse_group_policy({
            "group_id": 123456,
            "mute_config": {"enable": True, "threshold": 2, "duration": 120},
            "blocking_words": {
                "zeta": {"trigger_mute": True},
                "alpha": {"recall": True, "replace": True, "replace_word": "*"},
            },
            "custom_message": "",
            "alert_content": "Alert",
            "correct_prefix": "Fixed: ",
        })

        assert policy.group_id == 123456
        assert policy.mute_config == MuteConfig(enabled=True, threshold=2, duration_seconds=120)
        assert [rule.pattern for rule in policy.rules] == ["zeta", "alpha"]
        assert policy.rules[0].triggers_mute is True
        assert policy.rules[1].recall is True
        assert policy.rules[1].replacement_text == "*"
        assert policy.custom_message == ""
        assert policy.alert_text == "Alert"
        assert policy.correction_prefix == "Fixed: "

    def test_parse_list_form_and_camel_case(self):
        policy = parse_group_policy({
            "groupId": "654321",
            "enable": False,
            "muteConfig": {"enable": True},
            "blockingWords": [
                {"pattern": "foo", "triggerMute": True, "replaceWord": "bar", "replace": True},
            ],
            "alertContent": "Hey",
            "correctPrefix": "",
        })

        assert policy.enabled is False
        assert policy.mute_config.enabled is True
        assert policy.rules[0].triggers_mute is True
        assert policy.rules[0].replacement_text == "bar"
        assert policy.alert_text == "Hey"
        assert policy.correction_prefix == ""

    def test_rule_options_may_be_empty(self):
        policy = parse_group_policy({"group_id": "123456", "blocking_words": {"foo": None}})

        rule = policy.rules[0]
        assert rule.enabled is True
        assert rule.triggers_mute is False
        assert rule.recall is False
        assert rule.replace is False

    def test_missing_group_id(self):
        with pytest.raises(PolicyError):
            parse_group_policy({"blocking_words": {}})

    def test_non_integer_threshold(self):
        with pytest.raises(PolicyError):
            parse_group_policy({"group_id": "123456", "mute_config": {"threshold": "many"}})

    def test_list_entry_without_pattern(self):
        with pytest.raises(PolicyError):
            parse_group_policy({"group_id": "123456", "blocking_words": [{"recall": True}]})

    def test_duplicate_patterns_rejected(self):
        with pytest.raises(PolicyError):
            parse_group_policy({"group_id": "123456", "blocking_words": [{"pattern": "a"}, {"pattern": "a"}]})

    def test_build_policy_index(self):
        index = build_policy_index([{"group_id": "123456"}, {"group_id": "654321"}])

        assert set(map(str, index)) == {"123456", "654321"}

    def test_duplicate_group_rejected(self):
        with pytest.raises(PolicyError):
            build_policy_index([{"group_id": "123456"}, {"group_id": 123456}])
