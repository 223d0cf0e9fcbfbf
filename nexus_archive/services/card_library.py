"""
Character library: local storage for imported and edited character cards.

Each character is kept as a pair of files under the library directory:

- ``<id>.yaml``: the canonical record plus library metadata
- ``<id>.png``: the portrait image (card metadata is not re-embedded)
"""

import logging
import re
import time
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..config.models import LibraryConfig
from ..utils.portrait import downscale_portrait
from .character_cards.models import CharacterCardData

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Base exception for character library errors."""
    pass


class CharacterNotFound(LibraryError):
    """No stored character with the requested id."""
    pass


class StoredCharacter(BaseModel):
    """A character as kept in the library."""
    id: str
    record: CharacterCardData
    tags: List[str] = Field(default_factory=list)
    last_modified: float = Field(default_factory=time.time)
    image: Optional[bytes] = Field(default=None, exclude=True)

    @property
    def name(self) -> str:
        return self.record.name


class CharacterLibrary:
    """File-backed store of character records and portraits."""

    def __init__(self, config: Optional[LibraryConfig] = None):
        self.config = config or LibraryConfig()
        self.root = Path(self.config.path)
        self.root.mkdir(parents=True, exist_ok=True)

    def save(
        self,
        record: CharacterCardData,
        image: bytes,
        character_id: Optional[str] = None,
    ) -> str:
        """
        Store a character, creating a new id unless ``character_id`` is given.

        Returns:
            The character id
        """
        if character_id is None:
            character_id = self._resolve_name_collision(self._sanitize_filename(record.name))

        if self.config.downscale_portraits:
            image = downscale_portrait(image, self.config.max_portrait_width)

        stored = StoredCharacter(id=character_id, record=record, tags=list(record.tags))
        with open(self._record_path(character_id), 'w', encoding='utf-8') as f:
            yaml.safe_dump(
                stored.model_dump(mode='json'),
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )
        self._image_path(character_id).write_bytes(image)

        logger.info(f"Saved character '{record.name}' as {character_id}")
        return character_id

    def load(self, character_id: str, with_image: bool = True) -> StoredCharacter:
        """
        Load a stored character.

        Raises:
            CharacterNotFound: If no record file exists for the id
            LibraryError: If the record file is unreadable
        """
        path = self._record_path(character_id)
        if not path.exists():
            raise CharacterNotFound(f"Character not found: {character_id}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
            stored = StoredCharacter(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise LibraryError(f"Corrupt character record {path}: {e}")

        if with_image:
            image_path = self._image_path(character_id)
            if image_path.exists():
                stored.image = image_path.read_bytes()
        return stored

    def delete(self, character_id: str) -> None:
        path = self._record_path(character_id)
        if not path.exists():
            raise CharacterNotFound(f"Character not found: {character_id}")
        path.unlink()
        self._image_path(character_id).unlink(missing_ok=True)
        logger.info(f"Deleted character {character_id}")

    def list_ids(self) -> List[str]:
        return sorted(p.stem for p in self.root.glob("*.yaml"))

    def list_characters(self) -> List[StoredCharacter]:
        """Load every stored character (without images), skipping corrupt records."""
        characters = []
        for character_id in self.list_ids():
            try:
                characters.append(self.load(character_id, with_image=False))
            except LibraryError as e:
                logger.error(f"Failed to load character '{character_id}': {e}")
        return characters

    def all_tags(self) -> List[str]:
        """Sorted, de-duplicated tags across the library."""
        tags = set()
        for character in self.list_characters():
            tags.update(character.tags)
        return sorted(tags)

    def search(self, term: str = "", tag: Optional[str] = None) -> List[StoredCharacter]:
        """
        Filter characters by a case-insensitive substring of name or
        description, and optionally by exact tag.
        """
        needle = term.lower()
        matches = []
        for character in self.list_characters():
            record = character.record
            if needle and needle not in record.name.lower() and needle not in record.description.lower():
                continue
            if tag and tag not in character.tags:
                continue
            matches.append(character)
        return matches

    def _record_path(self, character_id: str) -> Path:
        return self.root / f"{character_id}.yaml"

    def _image_path(self, character_id: str) -> Path:
        return self.root / f"{character_id}.png"

    @staticmethod
    def _sanitize_filename(name: str) -> str:
        """Sanitize string for use as filename."""
        safe = re.sub(r'[<>:"/\\|?*]', '', name)
        safe = safe.replace(' ', '_').replace('.', '_')
        safe = safe.strip('_ ')
        if len(safe) > 50:
            safe = safe[:50]
        if not safe:
            safe = "character"
        return safe.lower()

    def _resolve_name_collision(self, base_name: str) -> str:
        """Append a numeric suffix until the id is unused."""
        if not self._record_path(base_name).exists():
            return base_name

        counter = 1
        while True:
            candidate = f"{base_name}_{counter}"
            if not self._record_path(candidate).exists():
                logger.info(f"Resolved name collision: {base_name} -> {candidate}")
                return candidate
            counter += 1

            if counter > 1000:
                raise LibraryError(f"Unable to resolve name collision for '{base_name}' after 1000 attempts")
