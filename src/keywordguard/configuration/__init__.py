"""
Configuration management for keywordguard.

- **app_configuration.py**: fcntl-locked YAML loader. Builds the group policy
  index and exposes global settings such as the violation decay window. Falls
  back to an empty policy set on missing or malformed config files.

- **group_policy.py**: Immutable per-group policy model (pattern rules, mute
  escalation, message templates) and its validation.
"""
