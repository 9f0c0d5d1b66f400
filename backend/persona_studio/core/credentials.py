"""Gemini credential resolution.

The user-supplied key lives in a small JSON file (one named entry) so that it
survives restarts; the build-time key comes from Settings.api_key.
"""
import json
import logging
from pathlib import Path
from typing import Any, Optional

from persona_studio.core.errors import CredentialMissing

logger = logging.getLogger(__name__)

# Build tooling substitutes this literal when API_KEY was never defined.
EMPTY_PLACEHOLDER = '""'


class CredentialStore:
    """Single-entry key-value store backed by a JSON file."""

    def __init__(self, path: Path, key_name: str = "GEMINI_API_KEY") -> None:
        self.path = Path(path)
        self.key_name = key_name

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(
                "Ignoring unreadable credential store at %s: %s",
                self.path,
                exc,
                extra={"error_type": type(exc).__name__},
            )
            return {}
        return data if isinstance(data, dict) else {}

    def get(self) -> Optional[str]:
        value = self._read().get(self.key_name)
        if isinstance(value, str) and value.strip():
            return value
        return None

    def set(self, value: str) -> None:
        data = self._read()
        data[self.key_name] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def remove(self) -> None:
        data = self._read()
        if data.pop(self.key_name, None) is None:
            return
        self.path.write_text(json.dumps(data), encoding="utf-8")


class CredentialProvider:
    """Resolves the API key: stored user key first, then the build-time key.

    The provider holds no cached state. Callers that display credential status
    must query has_credential() again after save() or clear().
    """

    def __init__(self, store: CredentialStore, build_time_key: str = "") -> None:
        self.store = store
        self.build_time_key = build_time_key

    def _build_time(self) -> Optional[str]:
        key = self.build_time_key
        if not key or key == EMPTY_PLACEHOLDER:
            return None
        return key

    def has_credential(self) -> bool:
        return bool(self.store.get() or self._build_time())

    def resolve(self) -> str:
        """Return the active key.

        Raises:
            CredentialMissing: When neither source holds a usable key.
        """
        key = self.store.get() or self._build_time()
        if not key:
            raise CredentialMissing()
        return key

    def save(self, key: str) -> None:
        """Persist a user-supplied key; a blank key removes the stored entry."""
        key = key.strip()
        if key:
            self.store.set(key)
            logger.info("Stored user-supplied API key")
        else:
            self.store.remove()
            logger.info("Blank API key submitted, stored key removed")

    def clear(self) -> None:
        self.store.remove()
        logger.info("Stored API key cleared")
