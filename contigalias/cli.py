"""CLI entry points for ENA assembly report lookups."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import DOWNLOAD_DIR, TRANSPORTS
from .datasource import ENAAssemblyDataSource
from .entities import AssemblyEntity
from .errors import ContigAliasError
from .transfer import build_browser

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Add ENA sequence names to genome assemblies"
    )
    parser.add_argument(
        "--transport", choices=TRANSPORTS, default="ftp",
        help="How to reach the ENA archive (default: ftp)",
    )
    parser.add_argument(
        "--download-dir", type=Path, default=Path(DOWNLOAD_DIR),
        help="Directory for temporary report downloads",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command")

    fetch_cmd = sub.add_parser("fetch", help="Fetch and parse the ENA report of an assembly")
    fetch_cmd.add_argument("accession", help="INSDC assembly accession (e.g., GCA_000001405.28)")
    fetch_cmd.add_argument("--output", type=Path, help="Write JSON here instead of stdout")

    enrich_cmd = sub.add_parser("enrich", help="Add ENA sequence names to an assembly JSON file")
    enrich_cmd.add_argument("input", type=Path, help="Assembly JSON file")
    enrich_cmd.add_argument("--output", type=Path, help="Write JSON here instead of stdout")
    enrich_cmd.add_argument(
        "--add-missing", action="store_true",
        help="Also append sequences that only exist in ENA",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "fetch":
        return run_fetch(args)
    elif args.command == "enrich":
        return run_enrich(args)
    else:
        parser.print_help()
        sys.exit(1)


def _build_data_source(args, add_missing: bool = False) -> ENAAssemblyDataSource:
    return ENAAssemblyDataSource(
        browser_factory=lambda: build_browser(args.transport),
        download_dir=args.download_dir,
        add_missing_sequences=add_missing,
    )


def _write_json(data: dict, output: Path | None) -> None:
    text = json.dumps(data, indent=2) + "\n"
    if output is None:
        sys.stdout.write(text)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        logger.info("Wrote %s", output)


def run_fetch(args) -> None:
    """Print the parsed ENA assembly as JSON. Exit 1 if ENA has no report."""
    data_source = _build_data_source(args)
    try:
        assembly = data_source.get_assembly_by_accession(args.accession)
    except ContigAliasError as e:
        logger.error("%s", e)
        sys.exit(1)

    if assembly is None:
        logger.error("No ENA assembly report available for %s", args.accession)
        sys.exit(1)
    _write_json(assembly.to_dict(), args.output)


def run_enrich(args) -> None:
    """Load an assembly, add ENA sequence names and write it back out."""
    if not args.input.exists():
        logger.error("Assembly file not found: %s", args.input)
        sys.exit(1)

    assembly = AssemblyEntity.from_dict(json.loads(args.input.read_text()))
    data_source = _build_data_source(args, add_missing=args.add_missing)
    try:
        merged = data_source.add_ena_sequence_names_to_assembly(assembly)
    except ContigAliasError as e:
        logger.error("%s", e)
        sys.exit(1)

    if merged is None:
        logger.info("No changes made to %s", assembly.insdc_accession)
    else:
        logger.info(
            "Reconciled %d sequences for %s", len(merged), assembly.insdc_accession,
        )
    _write_json(assembly.to_dict(), args.output)


if __name__ == "__main__":
    main()
