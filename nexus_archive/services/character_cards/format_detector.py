"""
Card Format Detector
===================

Detects the container (PNG or JSON) of a card file and the spec marker of a
parsed card document.
"""

import logging
from typing import Any, Optional

from .metadata_handler import PNG_SIGNATURE
from .models import CardSource, CardSpec

logger = logging.getLogger(__name__)


class FormatDetector:
    """Detect card container and specification version."""

    JSON_CONTENT_TYPES = ("application/json",)
    PNG_CONTENT_TYPES = ("image/png",)

    @classmethod
    def detect_source(
        cls,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> Optional[CardSource]:
        """
        Decide which decode path a file takes.

        The content type or a ``.json`` extension selects the JSON path.
        ``image/png`` or a ``.png`` extension selects the PNG path. With
        neither hint, the PNG signature decides.

        Returns:
            CardSource, or None if the file is of an unsupported type
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        name = (filename or "").lower()

        if mime in cls.JSON_CONTENT_TYPES or name.endswith(".json"):
            return CardSource.JSON
        if mime in cls.PNG_CONTENT_TYPES or name.endswith(".png"):
            return CardSource.PNG
        if mime or name:
            if data[:8] == PNG_SIGNATURE:
                return CardSource.PNG
            logger.debug(f"Unsupported card file type: {filename or content_type}")
            return None
        return CardSource.PNG if data[:8] == PNG_SIGNATURE else CardSource.JSON

    @staticmethod
    def detect_spec(document: Any) -> CardSpec:
        """
        Read the ``spec`` marker of a parsed card document.

        Documents without a marker but with a top-level ``name`` are V1.
        """
        if not isinstance(document, dict):
            return CardSpec.UNKNOWN

        spec = document.get("spec")
        if isinstance(spec, str):
            try:
                return CardSpec(spec)
            except ValueError:
                logger.debug(f"Unrecognized card spec: {spec}")
                return CardSpec.UNKNOWN

        if "name" in document:
            return CardSpec.V1
        return CardSpec.UNKNOWN

    @classmethod
    def get_format_name(cls, spec: CardSpec) -> str:
        """Get human-readable format name."""
        names = {
            CardSpec.V1: "Character Card V1",
            CardSpec.V2: "Character Card V2",
            CardSpec.V3: "Character Card V3",
            CardSpec.UNKNOWN: "Unknown Format",
        }
        return names.get(spec, "Unknown")
