"""Pydantic models for configuration validation."""

from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field, field_validator, ConfigDict


class CodecConfig(BaseModel):
    """Card codec configuration."""

    keyword: str = Field(default="chara", min_length=1, max_length=79)
    max_decompressed_bytes: int = Field(
        default=50 * 1024 * 1024,
        gt=0,
        description="Ceiling for inflated iTXt payloads"
    )

    @field_validator('keyword')
    @classmethod
    def validate_keyword(cls, v: str) -> str:
        """PNG text keywords are Latin-1 without NUL."""
        try:
            v.encode('latin-1')
        except UnicodeEncodeError:
            raise ValueError('keyword must be Latin-1 text')
        if '\x00' in v:
            raise ValueError('keyword must not contain NUL')
        return v


class LibraryConfig(BaseModel):
    """Local character library configuration."""

    path: Path = Path("data/characters")
    downscale_portraits: bool = True
    max_portrait_width: int = Field(default=1200, gt=0)

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: Path) -> Path:
        """Ensure paths are cross-platform."""
        return Path(v)


class ExportConfig(BaseModel):
    """Card export configuration."""

    output_dir: Path = Path("exports")
    json_indent: int = Field(default=2, ge=0, le=8)
    include_tags_in_json: bool = True


class SystemConfig(BaseModel):
    """Top-level system configuration."""

    model_config = ConfigDict(extra='ignore')

    codec: CodecConfig = Field(default_factory=CodecConfig)
    library: LibraryConfig = Field(default_factory=LibraryConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
