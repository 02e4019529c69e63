"""Decide which Notion databases hold tasks."""

from typing import Any, Dict


def is_task_database(properties: Dict[str, Any]) -> bool:
    """True iff the database schema has a title property and a status or select property.

    Args:
        properties: The `properties` mapping of a Notion database object
    """
    types = {prop.get("type") for prop in (properties or {}).values() if isinstance(prop, dict)}
    return "title" in types and bool(types & {"status", "select"})
