"""
Nexus Archive command-line interface.

Usage:
    nexus-archive inspect card.png [--json]
    nexus-archive import cards/*.png cards/*.json
    nexus-archive export aria bob --format json --output exports/
    nexus-archive list --tag fantasy --search knight

Options:
    --config <path>   System config YAML (default: config/system.yaml)
    --verbose         Debug logging
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigLoader, ConfigLoadError, SystemConfig
from .services.card_library import CharacterLibrary, LibraryError
from .services.character_cards.models import ImportStatus
from .services.character_cards import (
    CharacterCardExporter,
    CharacterCardImporter,
    CodecError,
    ExportFormat,
    FormatDetector,
)

logger = logging.getLogger(__name__)


def _configure_logging(config: SystemConfig, verbose: bool) -> None:
    level = logging.DEBUG if (verbose or config.debug) else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def cmd_inspect(args: argparse.Namespace, config: SystemConfig) -> int:
    importer = CharacterCardImporter(config.codec)
    exit_code = 0

    for path in args.files:
        try:
            result = importer.import_file(path)
        except (CodecError, OSError) as e:
            print(f"✗ {path}: {e}")
            exit_code = 1
            continue

        if args.json:
            print(json.dumps(result.record.model_dump(mode='json'), ensure_ascii=False, indent=2))
            continue

        record = result.record
        book = record.character_book
        print(f"✓ {path}")
        print(f"  Name:      {record.name}")
        print(f"  Format:    {FormatDetector.get_format_name(result.spec)} ({result.source.value})")
        print(f"  Creator:   {record.creator or '-'}  (version {record.character_version})")
        print(f"  Tags:      {', '.join(record.tags) or '-'}")
        print(f"  Alt. greetings: {len(record.alternate_greetings)}")
        if book is not None:
            print(f"  Lorebook:  {book.name} ({len(book.entries)} entries)")
        for warning in result.warnings:
            print(f"  ⚠ {warning}")

    return exit_code


def cmd_import(args: argparse.Namespace, config: SystemConfig) -> int:
    importer = CharacterCardImporter(config.codec)
    library = CharacterLibrary(config.library)

    report = importer.import_batch(args.files, library=library)
    for item in report.items:
        if item.status == ImportStatus.IMPORTED:
            print(f"✓ {item.source_name} → {item.character_id}")
        elif item.status == ImportStatus.SKIPPED:
            print(f"- {item.source_name}: {item.error}")
        else:
            print(f"✗ {item.source_name}: {item.error}")

    print(f"\n{len(report.imported)} imported, {len(report.failed)} failed, {len(report.skipped)} skipped")
    return 1 if report.failed else 0


def cmd_export(args: argparse.Namespace, config: SystemConfig) -> int:
    library = CharacterLibrary(config.library)
    exporter = CharacterCardExporter(config.codec, config.export)

    items = []
    exit_code = 0
    for character_id in args.ids:
        try:
            stored = library.load(character_id)
        except LibraryError as e:
            print(f"✗ {character_id}: {e}")
            exit_code = 1
            continue
        items.append((stored.record, stored.image))

    export_format = ExportFormat(args.format)
    output_dir = Path(args.output) if args.output else None
    report = exporter.export_batch(items, output_dir=output_dir, export_format=export_format)

    for item in report.items:
        if item.ok:
            print(f"✓ {item.name} → {item.path}")
        else:
            print(f"✗ {item.name}: {item.error}")
            exit_code = 1
    return exit_code


def cmd_list(args: argparse.Namespace, config: SystemConfig) -> int:
    library = CharacterLibrary(config.library)
    characters = library.search(term=args.search or "", tag=args.tag)

    if not characters:
        print("No characters found.")
        return 0

    for character in sorted(characters, key=lambda c: c.name.lower()):
        tags = f"  [{', '.join(character.tags)}]" if character.tags else ""
        print(f"  • {character.id}: {character.name}{tags}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nexus-archive",
        description="Import, inspect and export character cards"
    )
    parser.add_argument("--config", type=str, help="Path to system config YAML")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Decode card files and show a summary")
    inspect_parser.add_argument("files", nargs="+")
    inspect_parser.add_argument("--json", action="store_true", help="Print the normalized record as JSON")
    inspect_parser.set_defaults(func=cmd_inspect)

    import_parser = subparsers.add_parser("import", help="Import card files into the library")
    import_parser.add_argument("files", nargs="+")
    import_parser.set_defaults(func=cmd_import)

    export_parser = subparsers.add_parser("export", help="Export library characters")
    export_parser.add_argument("ids", nargs="+")
    export_parser.add_argument("--format", choices=[f.value for f in ExportFormat], default="png")
    export_parser.add_argument("--output", type=str, help="Output directory")
    export_parser.set_defaults(func=cmd_export)

    list_parser = subparsers.add_parser("list", help="List library characters")
    list_parser.add_argument("--tag", type=str)
    list_parser.add_argument("--search", type=str)
    list_parser.set_defaults(func=cmd_list)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ConfigLoader().load_system_config(Path(args.config) if args.config else None)
    except ConfigLoadError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    _configure_logging(config, args.verbose)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
