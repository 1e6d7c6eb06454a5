"""Persist staged cart items between sessions."""

from __future__ import annotations

from collections.abc import Sequence
import json
import logging
from pathlib import Path
from typing import Any

from .models import CartItem

logger = logging.getLogger(__name__)


class CartStore:
    """Save staged items as a JSON list, replacing the file atomically."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[CartItem]:
        if not self._path.is_file():
            return []
        try:
            with self._path.open("r", encoding="utf-8") as stream:
                raw = json.load(stream)
            if not isinstance(raw, list):
                raise ValueError("cart file must hold a list")
            return [CartItem.from_dict(entry) for entry in raw]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("discarding unreadable cart file %s: %s", self._path, exc)
            self._path.unlink(missing_ok=True)
            return []

    def save(self, items: Sequence[CartItem]) -> None:
        self._write_json(self._path, [item.to_dict() for item in items])

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

    @staticmethod
    def _write_json(path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(f"{path.name}.tmp")
        with temp_path.open("w", encoding="utf-8") as stream:
            json.dump(payload, stream, ensure_ascii=False, indent=2)
            stream.write("\n")
        temp_path.replace(path)
