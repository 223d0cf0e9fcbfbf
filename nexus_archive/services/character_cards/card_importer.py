"""
Character Card Importer
======================

Decode character cards from PNG or JSON files into canonical records.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, TYPE_CHECKING, Union

from ...config.models import CodecConfig
from .errors import CodecError, InvalidJsonDocument, NoMetadataFound
from .format_detector import FormatDetector
from .metadata_handler import PLACEHOLDER_PNG, PNGMetadataHandler
from .models import (
    BatchImportItem,
    BatchImportReport,
    CardImportResult,
    CardSource,
    CardSpec,
    ImportStatus,
)
from .normalizer import normalize
from .transport import decode_transport

if TYPE_CHECKING:
    from ..card_library import CharacterLibrary

logger = logging.getLogger(__name__)


class CharacterCardImporter:
    """Import character cards from PNG and JSON files."""

    def __init__(self, codec_config: Optional[CodecConfig] = None):
        """
        Initialize importer.

        Args:
            codec_config: Codec settings (metadata keyword, decompression ceiling)
        """
        self.config = codec_config or CodecConfig()

    def decode(
        self,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> CardImportResult:
        """
        Decode a card file into a canonical record and portrait.

        Args:
            data: Raw file contents
            filename: Original file name, used for type detection and messages
            content_type: MIME type, if known

        Returns:
            CardImportResult with the record, image bytes, source and spec

        Raises:
            NotAPng: PNG path taken but the signature is missing
            NoMetadataFound: PNG contains no card chunk
            TransportDecodeError: Embedded payload is not Base64/UTF-8/JSON
            InvalidJsonDocument: JSON file could not be parsed
        """
        source = FormatDetector.detect_source(data, filename, content_type) or CardSource.PNG

        if source == CardSource.JSON:
            document = self._parse_json_document(data, filename)
            image = PLACEHOLDER_PNG
        else:
            payload = PNGMetadataHandler.find_metadata_chunk(
                data,
                self.config.keyword,
                max_decompressed_bytes=self.config.max_decompressed_bytes,
                source=filename,
            )
            if payload is None or not payload.strip():
                raise NoMetadataFound(
                    f"No '{self.config.keyword}' character metadata found in PNG", filename
                )
            document = decode_transport(payload, source=filename)
            image = data

        spec = FormatDetector.detect_spec(document)
        warnings = []
        if spec == CardSpec.V3:
            warnings.append("Character Card V3 detected - fields outside the V2 set are kept only in extensions")
        elif spec == CardSpec.UNKNOWN:
            warnings.append("Card has no recognized spec marker")

        record = normalize(document)
        logger.info(
            f"Decoded card '{record.name}' from {filename or source.value} "
            f"({FormatDetector.get_format_name(spec)})"
        )
        return CardImportResult(
            record=record,
            image=image,
            source=source,
            spec=spec,
            source_name=filename,
            warnings=warnings,
        )

    def import_file(self, path: Union[str, Path]) -> CardImportResult:
        """Read and decode a single card file."""
        path = Path(path)
        data = PNGMetadataHandler.extract_image(str(path))
        return self.decode(data, filename=path.name)

    def import_batch(
        self,
        paths: Iterable[Union[str, Path]],
        library: Optional["CharacterLibrary"] = None,
    ) -> BatchImportReport:
        """
        Import many card files, isolating failures per file.

        Files of unsupported types are skipped. When a library is given,
        each decoded card is saved into it.

        Returns:
            BatchImportReport with one item per input path
        """
        # card_library imports this package
        from ..card_library import LibraryError

        report = BatchImportReport()

        for path in paths:
            path = Path(path)
            name = path.name

            try:
                data = PNGMetadataHandler.extract_image(str(path))
                if FormatDetector.detect_source(data, filename=name) is None:
                    logger.warning(f"Skipping unsupported file: {name}")
                    report.items.append(BatchImportItem(
                        source_name=name,
                        status=ImportStatus.SKIPPED,
                        error="Unsupported file type",
                    ))
                    continue

                result = self.decode(data, filename=name)
                character_id = None
                if library is not None:
                    character_id = library.save(result.record, result.image)
            except (CodecError, LibraryError, OSError) as e:
                logger.error(f"Failed to import {name}: {e}")
                report.items.append(BatchImportItem(
                    source_name=name,
                    status=ImportStatus.FAILED,
                    error=str(e),
                ))
                continue

            report.items.append(BatchImportItem(
                source_name=name,
                status=ImportStatus.IMPORTED,
                result=result,
                character_id=character_id,
            ))

        logger.info(
            f"Batch import finished: {len(report.imported)} imported, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report

    @staticmethod
    def _parse_json_document(data: bytes, filename: Optional[str]):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InvalidJsonDocument(f"Card JSON is not valid UTF-8: {e}", filename)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidJsonDocument(f"Invalid card JSON: {e}", filename)
