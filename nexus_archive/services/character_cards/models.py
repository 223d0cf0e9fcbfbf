"""
Character Card Data Models
=========================

Pydantic models for the canonical character record and import/export DTOs.
"""

from enum import Enum
from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field


UNKNOWN_NAME = "Unknown Entity"
DEFAULT_BOOK_NAME = "World Book"
DEFAULT_CHARACTER_VERSION = "1"


# ===========================
# Canonical Record
# ===========================

class CharacterBook(BaseModel):
    """Character lorebook / world info. Entries are passed through untouched."""
    name: str = DEFAULT_BOOK_NAME
    entries: List[Dict[str, Any]] = Field(default_factory=list)


class CharacterCardData(BaseModel):
    """Canonical character record, independent of the source schema."""
    name: str = UNKNOWN_NAME
    description: str = ""
    personality: str = ""
    scenario: str = ""
    first_mes: str = ""
    mes_example: str = ""

    creator_notes: str = ""
    system_prompt: str = ""
    post_history_instructions: str = ""
    alternate_greetings: List[str] = Field(default_factory=list)
    character_book: Optional[CharacterBook] = None

    tags: List[str] = Field(default_factory=list)
    creator: str = ""
    character_version: str = DEFAULT_CHARACTER_VERSION
    extensions: Dict[str, Any] = Field(default_factory=dict)


# ===========================
# Wire Format
# ===========================

class CardSpec(str, Enum):
    """Card specification markers seen in the wild."""
    V1 = "chara_card_v1"
    V2 = "chara_card_v2"
    V3 = "chara_card_v3"
    UNKNOWN = "unknown"


WIRE_SPEC = CardSpec.V2.value
WIRE_SPEC_VERSION = "2.0"

# Fields duplicated at the top level of the wire document for flat readers
FLAT_WIRE_FIELDS = (
    "name",
    "description",
    "personality",
    "scenario",
    "first_mes",
    "mes_example",
    "creator_notes",
)


class CardSource(str, Enum):
    """Container a card was read from."""
    PNG = "png"
    JSON = "json"


# ===========================
# Import/Export DTOs
# ===========================

class CardImportResult(BaseModel):
    """Result of decoding a single card file."""
    record: CharacterCardData
    image: bytes  # Portrait PNG (placeholder for JSON sources)
    source: CardSource
    spec: CardSpec = CardSpec.UNKNOWN
    source_name: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ImportStatus(str, Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


class BatchImportItem(BaseModel):
    """Outcome for one file in a batch import."""
    source_name: str
    status: ImportStatus
    result: Optional[CardImportResult] = None
    character_id: Optional[str] = None
    error: Optional[str] = None


class BatchImportReport(BaseModel):
    """Per-file outcomes of a batch import."""
    items: List[BatchImportItem] = Field(default_factory=list)

    @property
    def imported(self) -> List[BatchImportItem]:
        return [i for i in self.items if i.status == ImportStatus.IMPORTED]

    @property
    def failed(self) -> List[BatchImportItem]:
        return [i for i in self.items if i.status == ImportStatus.FAILED]

    @property
    def skipped(self) -> List[BatchImportItem]:
        return [i for i in self.items if i.status == ImportStatus.SKIPPED]


class ExportFormat(str, Enum):
    PNG = "png"
    JSON = "json"


class BatchExportItem(BaseModel):
    """Outcome for one record in a batch export."""
    name: str
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchExportReport(BaseModel):
    items: List[BatchExportItem] = Field(default_factory=list)

    @property
    def failed(self) -> List[BatchExportItem]:
        return [i for i in self.items if not i.ok]
