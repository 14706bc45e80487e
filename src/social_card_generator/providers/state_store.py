"""Small key-value persistence used by providers (e.g. last used local model)."""

import json
from pathlib import Path
from typing import Protocol

from social_card_generator.utils.io import write_text_atomic
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryStateStore:
    """Dictionary-backed store; state lives as long as the object."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStateStore:
    """Store persisted as a flat JSON object, rewritten atomically on each set."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("state_file_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("state_file_invalid", path=str(self.path))
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        write_text_atomic(self.path, json.dumps(data, indent=2, sort_keys=True))
        logger.debug("state_saved", path=str(self.path), key=key)
