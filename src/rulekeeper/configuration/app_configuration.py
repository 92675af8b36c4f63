from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from rulekeeper.configuration.ai_settings import AISettings
from rulekeeper.datatypes.rule_datatypes import RuleType, SearchOptions, SearchWeights
from rulekeeper.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_RULE_FILES: Dict[RuleType, str] = {
    RuleType.COMMUNITY: "COMMUNITY REGULATORY GUIDELINES AND RULES.txt",
    RuleType.CREW: "CREW REGULATORY GUIDELINES.txt",
}


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches the contents of ``./config/app_config.yml``, exposes
    dictionary-like access helpers, and resolves rules-engine and completion
    service settings into typed values. Uses fcntl file locks for safe
    concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache. Callers should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # Rules engine
    # --------------------------
    @property
    def rules_directory(self) -> Path:
        """Directory holding the rule documents. Defaults to ``./rules``."""
        value = self._section("rules").get("directory") or "./rules"
        return Path(str(value)).expanduser().resolve()

    @property
    def community_rules_file(self) -> str:
        value = self._section("rules").get("community_file")
        return str(value or DEFAULT_RULE_FILES[RuleType.COMMUNITY])

    @property
    def crew_rules_file(self) -> str:
        value = self._section("rules").get("crew_file")
        return str(value or DEFAULT_RULE_FILES[RuleType.CREW])

    @property
    def rules_paths(self) -> Dict[RuleType, Path]:
        """Full path of each rule document keyed by rule type."""
        directory = self.rules_directory
        return {
            RuleType.COMMUNITY: directory / self.community_rules_file,
            RuleType.CREW: directory / self.crew_rules_file,
        }

    @property
    def search_weights(self) -> SearchWeights:
        weights = self._section("search").get("weights")
        return SearchWeights.from_mapping(weights if isinstance(weights, dict) else None)

    @property
    def search_limit(self) -> int:
        return int(self._section("search").get("limit", 10))

    @property
    def related_limit(self) -> int:
        return int(self._section("search").get("related_limit", 3))

    @property
    def search_options(self) -> SearchOptions:
        """Search options assembled from the ``search`` section."""
        return SearchOptions(
            include_related=bool(self._section("search").get("include_related", True)),
            limit=self.search_limit,
            related_limit=self.related_limit,
            weights=self.search_weights,
        )

    @property
    def context_char_budget(self) -> int:
        """Maximum characters of rule text injected into the system prompt."""
        return int(self._section("search").get("context_char_budget", 6000))

    # --------------------------
    # Completion service
    # --------------------------
    @property
    def history_length(self) -> int:
        """Number of past messages kept per conversation."""
        return int(self._section("conversation").get("history_length", 10))

    @property
    def max_conversations(self) -> int:
        """Number of (channel, user) conversations kept before the oldest is dropped."""
        return int(self._section("conversation").get("max_conversations", 1000))

    @property
    def system_prompt_template(self) -> str:
        """Return the configured system prompt template (or empty string).

        Templates use ``<|...|>`` placeholders that the LLM engine replaces.
        """
        value = self.ai_settings.get("system_prompt", "")
        return str(value or "")

    @property
    def ai_settings(self) -> AISettings:
        """Return the AI settings wrapped in an AISettings helper."""
        return AISettings(self._section("ai_settings"))


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
