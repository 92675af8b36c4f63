import os
from typing import Any, Dict


class AISettings:
    """Helper exposing typed accessors for the completion service configuration.

    The class deliberately keeps a small explicit API (`get`, `as_dict`, and
    convenience properties) instead of the full mapping protocol.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return the underlying mapping (shallow copy recommended by callers)."""
        return self.data

    @property
    def enabled(self) -> bool:
        return bool(self.data.get("enabled", False))

    @property
    def api_key(self) -> str | None:
        """API key from config, falling back to the ``OPENAI_API_KEY`` env var."""
        val = self.data.get("api_key") or os.getenv("OPENAI_API_KEY")
        return str(val) if val else None

    @property
    def base_url(self) -> str | None:
        val = self.data.get("base_url")
        return str(val) if val else None

    @property
    def model_name(self) -> str:
        return str(self.data.get("model_name") or "gpt-4")

    @property
    def temperature(self) -> float:
        return float(self.data.get("temperature", 0.1))

    @property
    def max_tokens(self) -> int:
        return int(self.data.get("max_tokens", 1000))

    @property
    def sampling_parameters(self) -> Dict[str, Any]:
        k = self.data.get("sampling_parameters", {})
        return k if isinstance(k, dict) else {}
