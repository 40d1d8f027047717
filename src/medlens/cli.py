import argparse
import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import pandas as pd
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from .batch import process_notes
from .contracts import AIResponse, DocumentArtifact, ProcessedDocument
from .errors import MedLensError
from .pipeline import build_pipeline
from .terminology import fhir_bundle
from .visualize import build_display_graph, export_interactive_graph, export_static_graph

NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "pdfminer")

console = Console()


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def render_markdown(document: ProcessedDocument) -> str:
    data = document.structured_data
    lines = [f"# {data.report_type}", ""]

    lines.append("## Patient")
    for key, value in data.patient_info.model_dump().items():
        if value:
            lines.append(f"- **{key.replace('_', ' ').title()}**: {value}")
    for label, value in (("Date", data.report_date), ("Physician", data.physician), ("Institution", data.institution)):
        if value:
            lines.append(f"- **{label}**: {value}")
    lines.append("")

    if data.lab_results:
        lines += ["## Lab Results", "", "| Test | Value | Reference | Status |", "|---|---|---|---|"]
        for result in data.lab_results:
            value = f"{result.value} {result.unit or ''}".strip()
            lines.append(f"| {result.test_name} | {value} | {result.reference_range or ''} | {result.status} |")
        lines.append("")

    if data.medications:
        lines.append("## Medications")
        for medication in data.medications:
            details = ", ".join(part for part in (medication.dosage, medication.frequency) if part)
            lines.append(f"- {medication.name}{f' ({details})' if details else ''}")
        lines.append("")

    if data.diagnoses:
        lines.append("## Diagnoses")
        lines += [f"- {diagnosis}" for diagnosis in data.diagnoses]
        lines.append("")

    if data.vitals:
        lines.append("## Vital Signs")
        lines += [f"- {vital.type}: {vital.value} {vital.unit or ''}".rstrip() for vital in data.vitals]
        lines.append("")

    if document.entities:
        lines.append("## Recognized Entities")
        for entity in document.entities:
            lines.append(f"- {entity.text} ({entity.type}) -> {entity.normalized_form}")
        lines.append("")

    lines.append(f"_Confidence {document.confidence:.2f} ({document.metadata.quality})_")
    return "\n".join(lines) + "\n"


def save_results(
    document: ProcessedDocument,
    output_format: Literal["json", "markdown", "fhir"],
    output_file: str
) -> None:
    """Save results to a file in the specified format."""
    logger = logging.getLogger(__name__)
    output_path = Path(output_file)

    logger.info(f"Saving results to {output_path} in {output_format} format")

    if output_format == "json":
        output_path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
    elif output_format == "markdown":
        output_path.write_text(render_markdown(document), encoding="utf-8")
    elif output_format == "fhir":
        output_path.write_text(fhir_bundle(document).model_dump_json(indent=2), encoding="utf-8")

    logger.info(f"Results saved to {output_path}")


def _print_response(response: AIResponse) -> int:
    if response.success:
        rprint(response.data)
        console.print(f"[dim]Sources: {', '.join(response.sources)} (confidence {response.confidence:.2f})[/dim]")
    else:
        console.print(f"[bold red]{response.error}[/bold red] ({response.error_type})")
    console.print(f"[italic]{response.disclaimer}[/italic]")
    return 0 if response.success else 1


async def run_process(args: argparse.Namespace) -> int:
    path = Path(args.file)
    artifact = DocumentArtifact(
        content=path.read_bytes(),
        media_type=args.media_type or mimetypes.guess_type(path.name)[0] or "",
        name=path.name,
    )
    async with build_pipeline() as pipeline:
        try:
            document = await pipeline.process_document(artifact)
        except MedLensError as exc:
            console.print(f"[bold red]Processing failed:[/bold red] {exc}")
            return 1

    rprint(document.structured_data.model_dump(exclude_none=True))
    console.print(
        f"Confidence [bold]{document.confidence:.2f}[/bold] ({document.metadata.quality}), "
        f"{len(document.entities)} entities, {document.metadata.processing_time:.2f}s via {document.processing_method}"
    )
    if args.output_format and args.save_results:
        save_results(document, args.output_format, args.save_results)
    return 0


async def run_analyze(args: argparse.Namespace) -> int:
    text = args.text if args.text is not None else Path(args.file).read_text(encoding="utf-8")
    async with build_pipeline() as pipeline:
        response = await pipeline.analyze_report(text, args.report_type)
    return _print_response(response)


async def run_search(args: argparse.Namespace) -> int:
    async with build_pipeline() as pipeline:
        response = await pipeline.search_medicine(args.query)
    return _print_response(response)


async def run_stats(args: argparse.Namespace) -> int:
    async with build_pipeline() as pipeline:
        await pipeline.knowledge.initialize()
        stats = pipeline.knowledge.get_statistics()

    table = Table(title="Medical Knowledge Base")
    table.add_column("Entity type")
    table.add_column("Count", justify="right")
    for entity_type, count in sorted(stats.entity_types.items()):
        table.add_row(entity_type, str(count))
    console.print(table)
    console.print(f"{stats.total_entities} entities, {stats.total_relationships} relationships")
    return 0


async def run_graph(args: argparse.Namespace) -> int:
    async with build_pipeline() as pipeline:
        await pipeline.knowledge.initialize()
        graph = build_display_graph(pipeline.knowledge)

    exported = export_static_graph(graph, args.output)
    if args.html_output:
        exported = export_interactive_graph(graph, args.html_output) and exported
    return 0 if exported else 1


async def run_batch(args: argparse.Namespace) -> int:
    frame = pd.read_csv(args.file)
    async with build_pipeline() as pipeline:
        summary = await process_notes(pipeline, frame, column=args.column, sample_size=args.sample_size)

    console.print(summary.to_string(index=False))
    if args.output:
        summary.to_csv(args.output, index=False)
        console.print(f"Summary saved to {args.output}")
    return 0


COMMANDS: Dict[str, Any] = {
    "process": run_process,
    "analyze": run_analyze,
    "search": run_search,
    "stats": run_stats,
    "graph": run_graph,
    "batch": run_batch,
}


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    parser = argparse.ArgumentParser(prog="medlens", description="Medical document understanding toolkit.")
    commands = parser.add_subparsers(dest="command", required=True)

    process = commands.add_parser("process", parents=[common], help="Extract structured data from a document.")
    process.add_argument("file", help="Image, PDF or text file.")
    process.add_argument("--media-type", help="Override the media type guessed from the file name.")
    process.add_argument(
        "--output-format",
        choices=["json", "markdown", "fhir"],
        help="Format for saving results (json, markdown or fhir)"
    )
    process.add_argument("--save-results", help="Path to save the results file")

    analyze = commands.add_parser("analyze", parents=[common], help="Run AI analysis on report text.")
    source = analyze.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Report text.")
    source.add_argument("--file", help="Text file holding the report.")
    analyze.add_argument("--report-type", default="Medical Report", help="Report type (default: Medical Report)")

    search = commands.add_parser("search", parents=[common], help="Look up a medicine.")
    search.add_argument("query")

    commands.add_parser("stats", parents=[common], help="Show knowledge base statistics.")

    graph = commands.add_parser("graph", parents=[common], help="Export the knowledge graph.")
    graph.add_argument("--output", default="medical_knowledge_graph.png", help="Static image path.")
    graph.add_argument("--html-output", help="Optional interactive HTML path.")

    batch = commands.add_parser("batch", parents=[common], help="Process a CSV of report texts.")
    batch.add_argument("--file", required=True, help="CSV file with one report per row.")
    batch.add_argument("--column", default="description", help="Column holding the report text.")
    batch.add_argument("--sample-size", type=int, help="Randomly sample this many rows.")
    batch.add_argument("--output", help="Write the summary table to this CSV path.")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)
    logger.debug(f"Running command {args.command}")
    return asyncio.run(COMMANDS[args.command](args))


if __name__ == "__main__":
    raise SystemExit(main())
