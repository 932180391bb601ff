"""Command-line interface for Allen Brain Expression.

Provides utilities to:
  * Show the installed schema location, version and record classes
  * Convert one or more microarray dataset directories into Items
  * Convert the brain structure ontology file into Items
  * Validate JSONL/YAML item files against the LinkML schema

Usage (after install):

    python -m allen_brain_expression --help
    allen-expression --help
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Iterator, List

from . import DEFAULT_SCHEMA, __version__, get_schema_path, record_class_names
from .config import HUMAN_TAXON_ID, ConverterConfig
from .exceptions import ConversionError
from .items import ItemWriter, ValidatingItemWriter, open_writer
from .models import Item


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--schema",
        default=DEFAULT_SCHEMA,
        help="Schema filename under installed package schemas directory (default: %(default)s)",
    )


def _add_output_args(p: argparse.ArgumentParser, default_out: str) -> None:
    p.add_argument("--format", choices=["parquet", "jsonl", "yaml"], default="parquet")
    p.add_argument("-o", "--out", default=default_out,
                   help="Output directory (parquet) or file (jsonl/yaml) (default: %(default)s)")
    p.add_argument("--no-validate", action="store_true", help="Skip schema validation of emitted items")
    p.add_argument("--delimiter", default=",", help="Input field delimiter (default: %(default)r)")


def _writer_for(args: argparse.Namespace) -> ItemWriter:
    writer = open_writer(args.format, args.out, args.schema)
    if args.no_validate:
        return writer
    from .validation import ItemValidator
    return ValidatingItemWriter(writer, ItemValidator(args.schema))


def cmd_info(args: argparse.Namespace) -> int:
    spath = get_schema_path(args.schema)
    print(f"Schema path: {spath}")
    print(f"Package version: {__version__}")
    print(f"Record classes: {', '.join(record_class_names(args.schema))}")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    from .converter import AllenBrainExpressionConverter
    from .resolver import MappingGeneResolver

    config = ConverterConfig(taxon_id=args.taxon, delimiter=args.delimiter)
    resolver = MappingGeneResolver.from_file(args.resolver)
    writer = _writer_for(args)
    converter = AllenBrainExpressionConverter(writer, resolver, config)
    try:
        reports = converter.process_all(args.directories)
    finally:
        converter.close()
    for report in reports:
        summary = ", ".join(f"{k}={v}" for k, v in report.counts.items())
        print(f"Converted {report.directory}: {summary}")
    return 0


def cmd_convert_ontology(args: argparse.Namespace) -> int:
    from .ontology import BrainOntologyConverter

    writer = _writer_for(args)
    converter = BrainOntologyConverter(writer, ConverterConfig(delimiter=args.delimiter))
    try:
        count = converter.process(args.ontology_path)
    finally:
        converter.close()
    print(f"Converted {args.ontology_path}: {count} terms")
    return 0


def _iter_input_files(paths: Iterable[str]) -> Iterator[Path]:
    for p in paths:
        path = Path(p)
        if path.is_dir():
            for pattern in ("*.jsonl", "*.yaml", "*.yml"):
                yield from sorted(path.rglob(pattern))
        elif path.exists():
            yield path
        else:
            print(f"Warning: path not found: {p}", file=sys.stderr)


def _load_records(file: Path) -> List[dict]:
    if file.suffix.lower() == ".jsonl":
        with file.open(encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]
    import yaml  # type: ignore
    return yaml.safe_load(file.read_text(encoding="utf-8")) or []


def cmd_validate(args: argparse.Namespace) -> int:
    from .validation import ItemValidator

    validator = ItemValidator(args.schema)
    errors = 0
    for file in _iter_input_files(args.inputs):
        if file.suffix.lower() not in {".jsonl", ".yaml", ".yml"}:
            print(f"Skipping unsupported file: {file}")
            continue
        try:
            records = _load_records(file)
        except Exception as e:  # noqa: BLE001
            print(f"ERROR loading {file}: {e}", file=sys.stderr)
            errors += 1
            continue
        file_errors = 0
        for record in records:
            try:
                problems = validator.errors(Item.model_validate(record))
            except Exception as e:  # noqa: BLE001
                problems = [str(e)]
            for problem in problems:
                file_errors += 1
                if file_errors <= 10:
                    print(f"ERROR {file} {record.get('identifier')}: {problem}", file=sys.stderr)
        if file_errors:
            errors += file_errors
        else:
            print(f"VALID: {file} ({len(records)} items)")

    if errors:
        print(f"Completed with {errors} error(s).", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="allen-expression", description="Allen Brain Expression converters")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="command", required=True)

    # info
    info_p = sub.add_parser("info", help="Show schema installation info")
    _add_common_args(info_p)
    info_p.set_defaults(func=cmd_info)

    # convert
    conv_p = sub.add_parser("convert", help="Convert microarray dataset directories")
    _add_common_args(conv_p)
    _add_output_args(conv_p, "expression_items")
    conv_p.add_argument("directories", nargs="+", help="Dataset directories (one per donor)")
    conv_p.add_argument("--resolver", required=True,
                        help="Tab-separated gene mapping file: taxon_id, identifier, canonical_identifier")
    conv_p.add_argument("--taxon", default=HUMAN_TAXON_ID, help="Organism taxon id (default: %(default)s)")
    conv_p.set_defaults(func=cmd_convert)

    # ontology
    onto_p = sub.add_parser("convert-ontology", help="Convert the brain structure ontology file")
    _add_common_args(onto_p)
    _add_output_args(onto_p, "ontology_items")
    onto_p.add_argument("ontology_path", help="Path to Ontology.csv")
    onto_p.set_defaults(func=cmd_convert_ontology)

    # validate
    val_p = sub.add_parser("validate", help="Validate JSONL/YAML item files against the schema")
    _add_common_args(val_p)
    val_p.add_argument("inputs", nargs="+", help="Files or directories to validate")
    val_p.set_defaults(func=cmd_validate)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        return args.func(args)
    except ConversionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
