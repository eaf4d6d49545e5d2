"""
Where the client keeps its tokens between runs.
"""
import json
import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("accessToken", "refreshToken", "user")


class TokenStorage(Protocol):
    def load(self) -> dict: ...

    def save(self, data: dict) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    """Keeps tokens for the lifetime of the process."""

    def __init__(self, data: Optional[dict] = None):
        self._data = dict(data or {})

    def load(self) -> dict:
        return dict(self._data)

    def save(self, data: dict) -> None:
        self._data.update({key: value for key, value in data.items() if key in TOKEN_KEYS})

    def clear(self) -> None:
        self._data.clear()


class FileTokenStorage:
    """Keeps tokens in a JSON file."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable token file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, data: dict) -> None:
        stored = self.load()
        stored.update({key: value for key, value in data.items() if key in TOKEN_KEYS})
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(stored), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
