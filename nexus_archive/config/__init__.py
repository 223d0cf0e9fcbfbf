"""Configuration loading and validation."""

from .models import (
    SystemConfig,
    CodecConfig,
    LibraryConfig,
    ExportConfig,
)
from .loader import ConfigLoader, ConfigLoadError, ConfigValidationError

__all__ = [
    "SystemConfig",
    "CodecConfig",
    "LibraryConfig",
    "ExportConfig",
    "ConfigLoader",
    "ConfigLoadError",
    "ConfigValidationError",
]
