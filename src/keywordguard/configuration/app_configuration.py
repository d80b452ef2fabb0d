from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict
import yaml

from keywordguard.configuration.group_policy import GroupPolicy, PolicyError, build_policy_index
from keywordguard.datatypes.chat_datatypes import GroupID
from keywordguard.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_ENV_VAR = "KEYWORDGUARD_CONFIG"
DEFAULT_CONFIG_PATH = Path("./config/app_config.yml")
DEFAULT_DECAY_HOURS = 24.0


def resolve_config_path() -> Path:
    """Return the configuration path from ``KEYWORDGUARD_CONFIG`` or the default location."""
    return Path(os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).resolve()


class AppConfig:
    """File-lock based accessor around the YAML configuration.

    The class caches the contents of the config file, exposes dictionary-like
    access helpers and builds the per-group :class:`GroupPolicy` index.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self._policies: Dict[GroupID, GroupPolicy] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Acquire a shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s must contain a mapping at top level.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and rebuild the policy index.

        Invalid group entries are not partially applied: when any entry fails
        validation the error is logged and no policies are active.
        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()

        entries = self._data.get("blocking_rules") or self._data.get("blockingRules") or []
        if not isinstance(entries, list):
            logger.error("[APP CONFIGURATION] 'blocking_rules' must be a list, got %s", type(entries).__name__)
            entries = []

        try:
            self._policies = build_policy_index(entries)
        except PolicyError as exc:
            logger.error("[APP CONFIGURATION] Invalid group policy in %s: %s", self.config_path, exc)
            self._policies = {}

        logger.info("[APP CONFIGURATION] Loaded %d group policies from %s", len(self._policies), self.config_path)
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache (shallow reference). Callers
        should not mutate it; use get(...) or the provided properties instead.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def policies(self) -> Dict[GroupID, GroupPolicy]:
        """Return the group policy index keyed by group id."""
        return self._policies

    @property
    def violation_decay_seconds(self) -> float:
        """Return how long a violation count survives after the first offense.

        Configured in hours through ``violation_decay_hours``; defaults to 24.
        """
        value = self._data.get("violation_decay_hours", DEFAULT_DECAY_HOURS)
        try:
            hours = float(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid violation_decay_hours %r; using %s", value, DEFAULT_DECAY_HOURS)
            hours = DEFAULT_DECAY_HOURS
        if hours <= 0:
            logger.warning("[APP CONFIGURATION] violation_decay_hours must be positive; using %s", DEFAULT_DECAY_HOURS)
            hours = DEFAULT_DECAY_HOURS
        return hours * 3600.0
