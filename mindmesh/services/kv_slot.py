"""Durable key/value slots backed by JSON files.

Each slot is one JSON document under MINDMESH_STATE_DIR. Writes go through a
temp file and `os.replace` so a crash never leaves a half-written slot.
"""

import json
import logging
import os
import re
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

MINDMESH_STATE_DIR = os.getenv("MINDMESH_STATE_DIR", "./.mindmesh_state")

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class KeyValueSlot:
    """A named JSON document on disk."""

    def __init__(self, name: str, state_dir: Optional[str] = None):
        self.name = _UNSAFE.sub("_", name)
        self.state_dir = state_dir or MINDMESH_STATE_DIR
        self.path = os.path.join(self.state_dir, f"{self.name}.json")

    def read(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None if the slot is empty or unreadable."""
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable state slot {self.name}: {type(e).__name__}")
            return None
        return data if isinstance(data, dict) else None

    def write(self, value: Dict[str, Any]) -> None:
        os.makedirs(self.state_dir, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(value, f, indent=2, default=str)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
