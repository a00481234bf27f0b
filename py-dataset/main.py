"""Court decision dataset builder - command line interface"""

import sys
import logging
import asyncio
import argparse
import os
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from constants.dataset_keys import PDF_SUFFIX, PREFIX_ARCHIVE, PREFIX_DATASET, PREFIX_INSTRUCTION
from dataset.session import DatasetSession
from engine.config import AppConfig, PageRange, get_config
from exporters.archive import create_zip_archive, export_timestamp
from exporters.jsonl_handler import load_dataset_file, write_jsonl
from extractors.dataset_builder import DEFAULT_MAX_CONCURRENCY, DEFAULT_TIMEOUT_SECONDS, process_files
from extractors.text_extractor import extract_document_text
from models.dataset_types import ProcessingResult
from processors.text_normalizer import normalize_text
from utils.validation import DatasetBuilderError, LabelConsistencyError, validate_processing_environment

APP_VERSION = "1.0.0"
EXIT_OK = 0
EXIT_FAILURE = 1

logger = logging.getLogger("rich")


def _configure_logging(verbose: bool = False) -> Console:
    """Configure logging with Rich handler; pdfminer's chatter stays at WARNING"""
    console = Console(stderr=True)

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO").upper()

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=verbose
    )

    # Silence everything by default
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[rich_handler], force=True)

    for module_name in ["main", "rich", "engine", "extractors", "processors", "dataset", "exporters", "utils"]:
        logging.getLogger(module_name).setLevel(log_level)
    logging.getLogger("pdfminer").setLevel(logging.WARNING)

    return console


def _collect_pdfs(inputs: Sequence[str]) -> List[Path]:
    """Expand directories into their PDFs (sorted), keep files as given."""
    paths: List[Path] = []
    for raw in inputs:
        path = Path(raw)
        if path.is_dir():
            paths.extend(sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() == PDF_SUFFIX))
        else:
            paths.append(path)
    return paths


def _load_session(dataset_paths: Sequence[str], config: AppConfig) -> DatasetSession:
    session = DatasetSession(config.dataset)
    for dataset_path in dataset_paths:
        session.load_entries(load_dataset_file(dataset_path))
    return session


def _print_results(console: Console, results: Sequence[ProcessingResult]) -> None:
    table = Table(title="Processed documents")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Pages", justify="right")
    table.add_column("Chars", justify="right")
    table.add_column("Details")

    for result in results:
        if result.success:
            status = "[green]ok[/green]"
            details = "; ".join(result.warnings)
        else:
            status = f"[red]{result.error_kind}[/red]"
            details = result.error or ""
        table.add_row(result.filename, status, str(result.page_count), str(result.text_length), details)

    console.print(table)


def _print_stats(console: Console, session: DatasetSession) -> None:
    stats = session.stats()
    table = Table(title="Dataset statistics", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Records", str(stats.records))
    table.add_row("Processed files", str(stats.processed_files))
    table.add_row("Total characters", str(stats.total_chars))
    table.add_row("Appealed", str(sum(1 for entry in session.entries if entry.appealed)))
    table.add_row("Canceled", str(sum(1 for entry in session.entries if entry.canceled)))
    table.add_row("Decision dates", f"{stats.date_from or '-'} .. {stats.date_to or '-'}")
    console.print(table)


# Subcommands

def cmd_extract(args: argparse.Namespace, console: Console, config: AppConfig) -> int:
    page_range = PageRange.parse(args.pages) if args.pages else None
    document = extract_document_text(args.pdf, page_range=page_range, engine_config=config.engine)
    text = document.text if args.raw else normalize_text(document.text)
    # Document text goes to stdout, diagnostics to stderr
    sys.stdout.write(text + "\n")
    return EXIT_OK


def cmd_build(args: argparse.Namespace, console: Console, config: AppConfig) -> int:
    if args.min_length is not None:
        config.dataset.min_text_length = args.min_length

    session = _load_session(args.existing or [], config)
    pdf_paths = _collect_pdfs(args.inputs)
    if not pdf_paths:
        logger.error("No PDF files found")
        return EXIT_FAILURE

    env_ok, env_error = validate_processing_environment()
    if not env_ok:
        logger.error(env_error)
        return EXIT_FAILURE

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task("Processing PDFs", total=len(pdf_paths))

        def on_progress(done: int, total: int, result: ProcessingResult) -> None:
            progress.update(task_id, completed=done, description=f"Processed {result.filename}")

        results = asyncio.run(process_files(
            pdf_paths,
            config=config,
            processed_files=session.processed_files,
            max_concurrency=args.concurrency,
            timeout_seconds=args.timeout,
            on_progress=on_progress,
        ))

    for result in results:
        session.add_result(result)

    _print_results(console, results)

    output_dir = Path(args.output)
    timestamp = export_timestamp()
    dataset_path = write_jsonl(output_dir / f"{PREFIX_DATASET}_{timestamp}.jsonl", session.entries)
    console.print(f"[bold green]Dataset written:[/bold green] {dataset_path} ({len(session)} records)")

    instruction_entries = session.instruction_entries() if (args.instruction or args.zip) else None
    if args.instruction:
        instruction_path = write_jsonl(output_dir / f"{PREFIX_INSTRUCTION}_{timestamp}.jsonl", instruction_entries)
        console.print(f"[bold green]Instruction dataset written:[/bold green] {instruction_path}")

    if args.zip:
        archive_path = create_zip_archive(
            output_dir / f"{PREFIX_ARCHIVE}_{timestamp}.zip",
            session.entries,
            instruction_entries,
            timestamp=timestamp,
        )
        console.print(f"[bold green]Archive written:[/bold green] {archive_path}")

    _print_stats(console, session)
    return EXIT_OK if all(result.success for result in results) else EXIT_FAILURE


def cmd_label(args: argparse.Namespace, console: Console, config: AppConfig) -> int:
    session = _load_session([args.dataset], config)
    index = session.find_index(args.case)
    if index is None:
        logger.error(f"Case {args.case!r} not found in {args.dataset}")
        return EXIT_FAILURE

    try:
        entry = session.set_labels(index, appealed=args.appealed, canceled=args.canceled)
    except LabelConsistencyError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    output = Path(args.output or args.dataset)
    write_jsonl(output, session.entries)
    console.print(
        f"[bold green]Labeled[/bold green] {entry.case_number}: "
        f"appealed={entry.appealed}, canceled={entry.canceled} -> {output}"
    )
    return EXIT_OK


def cmd_stats(args: argparse.Namespace, console: Console, config: AppConfig) -> int:
    session = _load_session(args.datasets, config)
    _print_stats(console, session)
    return EXIT_OK


def cmd_merge(args: argparse.Namespace, console: Console, config: AppConfig) -> int:
    session = DatasetSession(config.dataset)
    skipped = 0
    for dataset_path in args.datasets:
        skipped += session.load_entries(load_dataset_file(dataset_path)).skipped

    write_jsonl(args.output, session.entries)
    console.print(
        f"[bold green]Merged[/bold green] {len(args.datasets)} files: "
        f"{len(session)} records, {skipped} duplicates skipped -> {args.output}"
    )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="court-dataset",
        description="Build labeled JSONL datasets from court decision PDFs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Print the reconstructed text of a PDF")
    extract.add_argument("pdf")
    extract.add_argument("--pages", help="Page range, e.g. 3, 1-5 or 4-")
    extract.add_argument("--raw", action="store_true", help="Skip text normalization")
    extract.set_defaults(handler=cmd_extract)

    build = subparsers.add_parser("build", help="Process PDFs into a dataset")
    build.add_argument("inputs", nargs="+", metavar="PDF_OR_DIR")
    build.add_argument("-o", "--output", required=True, help="Output directory")
    build.add_argument("--existing", nargs="*", metavar="FILE", help="Previously exported datasets to merge")
    build.add_argument("--zip", action="store_true", help="Also write a ZIP bundle")
    build.add_argument("--instruction", action="store_true", help="Also write the instruction dataset")
    build.add_argument("--concurrency", type=int, default=DEFAULT_MAX_CONCURRENCY)
    build.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="Per-document timeout (s)")
    build.add_argument("--min-length", type=int, help="Minimum decision text length")
    build.set_defaults(handler=cmd_build)

    label = subparsers.add_parser("label", help="Set appeal labels of a record")
    label.add_argument("dataset")
    label.add_argument("--case", required=True, help="Case number")
    label.add_argument("--appealed", action="store_true")
    label.add_argument("--canceled", action="store_true")
    label.add_argument("--output", help="Output file (default: overwrite the dataset)")
    label.set_defaults(handler=cmd_label)

    stats = subparsers.add_parser("stats", help="Show dataset statistics")
    stats.add_argument("datasets", nargs="+")
    stats.set_defaults(handler=cmd_stats)

    merge = subparsers.add_parser("merge", help="Merge datasets, dropping duplicate cases")
    merge.add_argument("datasets", nargs="+")
    merge.add_argument("-o", "--output", required=True)
    merge.set_defaults(handler=cmd_merge)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = _configure_logging(args.verbose)
    config = get_config()

    if not config.dataset.validate() or not config.engine.validate():
        logger.error("Invalid configuration")
        return EXIT_FAILURE

    try:
        return args.handler(args, console, config)
    except (DatasetBuilderError, OSError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted.[/bold yellow]")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
