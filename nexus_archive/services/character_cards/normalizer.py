"""
Card Schema Normalizer
======================

Maps card documents from any producer onto ``CharacterCardData``.

Producers disagree on layout: V1 cards keep every field at the top level,
V2/V3 cards nest them under ``data``, and many exporters write both (with
the two copies drifting apart). Each canonical field therefore has an
ordered list of candidate paths; the first path holding a usable value
wins, otherwise the field's default applies. Normalization never raises.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from .models import (
    CharacterBook,
    CharacterCardData,
    DEFAULT_BOOK_NAME,
    DEFAULT_CHARACTER_VERSION,
    UNKNOWN_NAME,
)

logger = logging.getLogger(__name__)

KeyPath = Tuple[str, ...]

NESTED_KEY = "data"

_MISSING = object()


def _candidates(*aliases: str) -> Tuple[KeyPath, ...]:
    """Nested aliases first, then top-level aliases, each in listed order."""
    return tuple((NESTED_KEY, a) for a in aliases) + tuple((a,) for a in aliases)


# field -> (candidate paths, default)
TEXT_FIELDS: Dict[str, Tuple[Tuple[KeyPath, ...], str]] = {
    "name": (_candidates("name"), UNKNOWN_NAME),
    "description": (_candidates("description"), ""),
    "personality": (_candidates("personality"), ""),
    "scenario": (_candidates("scenario"), ""),
    "first_mes": (_candidates("first_mes"), ""),
    "mes_example": (_candidates("mes_example"), ""),
    "creator_notes": (_candidates("creator_notes", "creatorcomment", "creator_comment"), ""),
    "system_prompt": (_candidates("system_prompt"), ""),
    "post_history_instructions": (_candidates("post_history_instructions"), ""),
    "creator": (_candidates("creator"), ""),
    "character_version": (_candidates("character_version"), DEFAULT_CHARACTER_VERSION),
}

LIST_FIELDS: Dict[str, Tuple[KeyPath, ...]] = {
    "alternate_greetings": _candidates("alternate_greetings"),
    "tags": _candidates("tags"),
}

BOOK_PATHS: Tuple[KeyPath, ...] = (
    (NESTED_KEY, "character_book"),
    ("character_book",),
    (NESTED_KEY, "world_book"),
    ("world_book",),
    (NESTED_KEY, "extensions", "world_book"),
    ("extensions", "world_book"),
)

WORLD_NAME_PATHS: Tuple[KeyPath, ...] = _candidates("world")

# Applied in order, later maps overwrite earlier keys
EXTENSION_PATHS: Tuple[KeyPath, ...] = (
    ("extensions",),
    (NESTED_KEY, "extensions"),
)


def _lookup(document: Any, path: KeyPath) -> Any:
    """Follow ``path`` through nested objects; null counts as missing."""
    node = document
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    if node is None:
        return _MISSING
    return node


def _as_text(value: Any) -> Optional[str]:
    """Coerce a scalar to text; objects, arrays and booleans are rejected."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _resolve_text(document: Any, paths: Tuple[KeyPath, ...], default: str) -> str:
    for path in paths:
        text = _as_text(_lookup(document, path))
        if text is not None:
            return text
    return default


def _resolve_list(document: Any, paths: Tuple[KeyPath, ...]) -> List[str]:
    for path in paths:
        value = _lookup(document, path)
        if isinstance(value, list):
            items = (_as_text(item) for item in value)
            return [item for item in items if item is not None]
    return []


def _resolve_world_name(document: Any) -> str:
    """Empty world names fall through to the next candidate."""
    for path in WORLD_NAME_PATHS:
        text = _as_text(_lookup(document, path))
        if text:
            return text
    return DEFAULT_BOOK_NAME


def _resolve_book(document: Any) -> CharacterBook:
    world_name = _resolve_world_name(document)

    for path in BOOK_PATHS:
        book = _lookup(document, path)
        if not isinstance(book, dict):
            continue

        entries = book.get("entries")
        if not isinstance(entries, list):
            entries = []
        name = _as_text(book.get("name")) or world_name
        return CharacterBook(
            name=name,
            entries=[entry for entry in entries if isinstance(entry, dict)],
        )

    return CharacterBook(name=world_name)


def _merge_extensions(document: Any) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for path in EXTENSION_PATHS:
        extensions = _lookup(document, path)
        if isinstance(extensions, dict):
            merged.update(extensions)
    return merged


def normalize(document: Any) -> CharacterCardData:
    """
    Build a canonical record from an arbitrarily shaped card document.

    Args:
        document: Parsed JSON value (or a pydantic model, dumped first)

    Returns:
        Fully populated CharacterCardData
    """
    if isinstance(document, BaseModel):
        document = document.model_dump(mode="json")

    if not isinstance(document, dict):
        logger.warning(f"Card document is {type(document).__name__}, not an object; using defaults")

    fields: Dict[str, Any] = {}
    for field, (paths, default) in TEXT_FIELDS.items():
        fields[field] = _resolve_text(document, paths, default)
    for field, paths in LIST_FIELDS.items():
        fields[field] = _resolve_list(document, paths)

    fields["character_book"] = _resolve_book(document)
    fields["extensions"] = _merge_extensions(document)

    return CharacterCardData(**fields)
