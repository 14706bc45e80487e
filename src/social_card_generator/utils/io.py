"""File I/O helpers for state files and generated designs."""

import os
import tempfile
from contextlib import suppress
from pathlib import Path

from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)


def write_text_atomic(path: str | Path, text: str) -> Path:
    """Replace ``path`` with ``text`` in one step and return the path.

    The text goes to a sibling temp file that is synced and then renamed
    over the target, so a reader sees either the old file or the new one.
    Missing parent directories are created.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)
    except OSError as e:
        with suppress(OSError):
            temp_path.unlink()
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise
    return path
