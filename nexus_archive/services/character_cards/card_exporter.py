"""
Character Card Exporter
======================

Export canonical records as PNG character cards or standalone JSON.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from ...config.models import CodecConfig, ExportConfig
from .errors import CodecError
from .metadata_handler import PNGMetadataHandler
from .models import (
    BatchExportItem,
    BatchExportReport,
    CharacterCardData,
    ExportFormat,
    FLAT_WIRE_FIELDS,
    WIRE_SPEC,
    WIRE_SPEC_VERSION,
)
from .transport import encode_transport

logger = logging.getLogger(__name__)


class CharacterCardExporter:
    """Export character records to PNG cards and JSON documents."""

    def __init__(
        self,
        codec_config: Optional[CodecConfig] = None,
        export_config: Optional[ExportConfig] = None,
    ):
        self.codec_config = codec_config or CodecConfig()
        self.export_config = export_config or ExportConfig()

    @staticmethod
    def build_wire_document(record: CharacterCardData, include_tags: bool = True) -> Dict[str, Any]:
        """
        Wrap a record in the V2 card layout.

        Core text fields are repeated at the top level for readers that only
        understand the flat V1 layout; the full record sits under ``data``.
        """
        data = record.model_dump(mode="json")
        if not include_tags:
            data["tags"] = []

        document = {field: data[field] for field in FLAT_WIRE_FIELDS}
        document["spec"] = WIRE_SPEC
        document["spec_version"] = WIRE_SPEC_VERSION
        document["data"] = data
        return document

    def encode(self, record: CharacterCardData, image: bytes) -> bytes:
        """
        Embed a record into a PNG image.

        Args:
            record: Canonical record to embed
            image: Base PNG image data

        Returns:
            PNG data with a new card tEXt chunk after IHDR

        Raises:
            MalformedBaseImage: If the base image is not a usable PNG
        """
        payload = encode_transport(self.build_wire_document(record))
        card_png = PNGMetadataHandler.write_text_chunk(image, self.codec_config.keyword, payload)
        logger.info(f"Encoded card '{record.name}' ({len(card_png)} bytes)")
        return card_png

    def export_json(self, record: CharacterCardData) -> str:
        """Serialize a record as a standalone, human-readable card JSON document."""
        document = self.build_wire_document(
            record, include_tags=self.export_config.include_tags_in_json
        )
        indent = self.export_config.json_indent or None
        return json.dumps(document, ensure_ascii=False, indent=indent)

    @staticmethod
    def export_filename(record: CharacterCardData, export_format: ExportFormat) -> str:
        """File name for an exported card: whitespace in the name becomes underscores."""
        stem = re.sub(r"\s+", "_", record.name.strip()) or "character"
        stem = re.sub(r'[<>:"/\\|?*]', "", stem) or "character"
        if export_format == ExportFormat.JSON:
            return f"{stem}_data.json"
        return f"{stem}.png"

    def export_to_file(
        self,
        record: CharacterCardData,
        image: Optional[bytes],
        output_dir: Union[str, Path],
        export_format: ExportFormat = ExportFormat.PNG,
    ) -> Path:
        """Write one exported card into ``output_dir`` and return its path."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.export_filename(record, export_format)

        if export_format == ExportFormat.JSON:
            path.write_text(self.export_json(record), encoding="utf-8")
        else:
            if image is None:
                raise ValueError(f"Character '{record.name}' has no image to embed into")
            PNGMetadataHandler.save_image(self.encode(record, image), str(path))

        logger.info(f"Exported '{record.name}' to {path}")
        return path

    def export_batch(
        self,
        items: Iterable[Tuple[CharacterCardData, Optional[bytes]]],
        output_dir: Optional[Union[str, Path]] = None,
        export_format: ExportFormat = ExportFormat.PNG,
    ) -> BatchExportReport:
        """
        Export many records, isolating failures per record.

        Args:
            items: (record, image) pairs
            output_dir: Target directory, defaults to the configured one
            export_format: PNG card or JSON document
        """
        output_dir = Path(output_dir) if output_dir is not None else self.export_config.output_dir
        report = BatchExportReport()

        for record, image in items:
            try:
                path = self.export_to_file(record, image, output_dir, export_format)
            except (CodecError, OSError, ValueError) as e:
                logger.error(f"Failed to export '{record.name}': {e}")
                report.items.append(BatchExportItem(name=record.name, error=str(e)))
                continue
            report.items.append(BatchExportItem(name=record.name, path=str(path)))

        return report
