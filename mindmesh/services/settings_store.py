"""User preference store persisted in a key/value slot."""

import copy
import logging
from typing import Any, Dict, Optional

from mindmesh.services.kv_slot import KeyValueSlot

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "notifications": {
        "email_reminders": True,
        "push_notifications": True,
        "smart_reminders": True,
        "mood_check_ins": False,
        "task_deadlines": True,
    },
    "privacy": {
        "data_sharing": False,
        "analytics": True,
        "personalization": True,
    },
    "appearance": {
        "theme": "light",
        "color_scheme": "indigo",
        "compact_mode": False,
    },
}

SECTIONS = tuple(DEFAULT_SETTINGS)


class SettingsStore:
    """Notification, privacy and appearance preferences for one user.

    Unknown keys in an update are ignored; missing keys in the stored slot fall
    back to their defaults.
    """

    def __init__(self, slot: KeyValueSlot):
        self.slot = slot
        self.error: Optional[str] = None
        self.settings = self._load()

    @classmethod
    def for_user(cls, user_id: str, state_dir: Optional[str] = None) -> "SettingsStore":
        return cls(KeyValueSlot(f"settings-{user_id}", state_dir))

    def _load(self) -> Dict[str, Dict[str, Any]]:
        merged = copy.deepcopy(DEFAULT_SETTINGS)
        stored = self.slot.read() or {}
        for section, values in merged.items():
            for key, value in (stored.get(section) or {}).items():
                if key in values:
                    values[key] = value
        return merged

    def _save(self, settings: Dict[str, Dict[str, Any]]) -> bool:
        try:
            self.slot.write(settings)
        except OSError as e:
            self.error = f"Failed to save settings: {e}"
            logger.warning(f"Could not write settings slot {self.slot.name}: {type(e).__name__}")
            return False
        self.settings = settings
        self.error = None
        return True

    def _update_section(self, section: str, changes: Dict[str, Any]) -> bool:
        updated = copy.deepcopy(self.settings)
        for key, value in changes.items():
            if key in updated[section]:
                updated[section][key] = value
        return self._save(updated)

    def update_notifications(self, changes: Dict[str, Any]) -> bool:
        return self._update_section("notifications", changes)

    def update_privacy(self, changes: Dict[str, Any]) -> bool:
        return self._update_section("privacy", changes)

    def update_appearance(self, changes: Dict[str, Any]) -> bool:
        return self._update_section("appearance", changes)

    def update(self, changes: Dict[str, Dict[str, Any]]) -> bool:
        """Apply changes to several sections at once (single write)."""
        updated = copy.deepcopy(self.settings)
        for section, values in changes.items():
            if section not in updated or not isinstance(values, dict):
                continue
            for key, value in values.items():
                if key in updated[section]:
                    updated[section][key] = value
        return self._save(updated)

    def reset_to_defaults(self) -> bool:
        return self._save(copy.deepcopy(DEFAULT_SETTINGS))
