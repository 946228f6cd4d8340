"""
Atomic file writes for cached results and CLI output.

Content is written to a temporary file in the target's directory (so the
rename stays on one filesystem) and moved into place with ``os.replace``,
falling back to ``shutil.move`` where the rename is refused.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict

import structlog

logger = structlog.get_logger(__name__)


def _replace(temp_file_path: Path, target_path: Path) -> None:
    try:
        os.replace(str(temp_file_path), str(target_path))
    except OSError as rename_error:
        logger.warning("atomic_rename_failed", error=str(rename_error), target=str(target_path))
        try:
            shutil.move(str(temp_file_path), str(target_path))
        except (OSError, shutil.Error) as move_error:
            raise OSError(
                f"Failed to atomically write {target_path}: "
                f"rename failed ({rename_error}), move failed ({move_error})"
            ) from move_error


def atomic_write_text(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Atomically write text content to a file.

    Args:
        target_path: Target file path to write to
        content: Text content to write
        encoding: Text encoding to use (default: utf-8)

    Raises:
        OSError: If the temporary file cannot be written or moved into place
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_file_path = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=target_path.parent,
            prefix=f".{target_path.name}.",
            suffix=".tmp",
            delete=False,
            encoding=encoding,
        ) as temp_file:
            temp_file_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        _replace(temp_file_path, target_path)
        logger.debug("atomic_write_completed", target=str(target_path))
    finally:
        if temp_file_path and temp_file_path.exists():
            try:
                temp_file_path.unlink()
            except OSError as cleanup_error:
                logger.warning("temp_file_cleanup_failed", temp_file=str(temp_file_path), error=str(cleanup_error))


def atomic_write_json(target_path: Path, data: Dict[str, Any]) -> None:
    """
    Atomically write JSON data to a file.

    Raises:
        ValueError: If data cannot be serialized to JSON
        OSError: If writing fails
    """
    try:
        json_content = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.error("json_serialization_failed", error=str(e))
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e
    atomic_write_text(target_path, json_content)
