"""CLI interface for citesync."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from citesync.exceptions import CitationEngineError

app = typer.Typer(
    name="citesync",
    help="Keep citation markers, reference lists and change history consistent",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine log messages"),
):
    """Configure logging from settings before running a command."""
    from citesync.config import get_settings
    from citesync.logging import setup_logging

    settings = get_settings()
    level = "DEBUG" if verbose or settings.debug else settings.log_level
    setup_logging(level=level, format_style=settings.log_format)


def _load_session(input_file: str):
    from citesync.session import DocumentSession

    path = Path(input_file)
    if not path.exists():
        console.print(f"[red]File not found: {input_file}[/red]")
        raise typer.Exit(1)
    try:
        session = DocumentSession.load(path.read_text(encoding="utf-8"))
    except CitationEngineError as e:
        console.print(f"[red]Could not load document:[/red] {e.message}")
        raise typer.Exit(1)

    if session.quarantined:
        console.print(f"[yellow]{len(session.quarantined)} records quarantined:[/yellow]")
        for record in session.quarantined:
            console.print(f"  [dim]{record.kind} {record.record_id or '?'}:[/dim] {'; '.join(record.reasons)}")
    return session


def _apply_operation(session, op: str, preview: bool):
    """Run one "name[:arg[:arg]]" operation, e.g. "convert:vancouver" or "reorder:ref-3:1"."""
    name, _, rest = op.partition(":")
    args = rest.split(":") if rest else []
    operations = {
        "resequence": ("resequence", []),
        "convert": ("convert_style", args[:1]),
        "delete": ("delete_reference", args[:1]),
        "restore": ("restore_reference", args[:1]),
        "reorder": ("reorder_reference", [args[0], int(args[1])] if len(args) > 1 else args),
        "sort": ("sort_references", args[:1] or ["appearance"]),
    }
    if name not in operations:
        console.print(f"[red]Unknown operation: {name}[/red]")
        raise typer.Exit(1)

    operation, op_args = operations[name]
    if preview:
        return session.get_preview(operation, *op_args)
    return getattr(session, operation)(*op_args).changes


def _print_changes(changes, title: str = "Changes") -> None:
    table = Table(title=title)
    table.add_column("Citation", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Original")
    table.add_column("Now", style="green")

    for record in changes:
        table.add_row(record.citation_id, record.change_type.value, record.old_text, record.new_text)
    console.print(table)


@app.command()
def analyze(
    input_file: str = typer.Argument(..., help="Document payload (JSON)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write issues to a JSON file"),
):
    """
    Analyze citation numbering and citation/reference agreement.
    """
    session = _load_session(input_file)

    console.print(
        Panel.fit(
            f"[bold blue]Document:[/bold blue] {session.document_id}\n"
            f"[bold blue]Style:[/bold blue] {session.style.value}\n"
            f"[bold blue]Citations:[/bold blue] {len(session.state.citations)}  "
            f"[bold blue]References:[/bold blue] {len(session.state.references)}",
            title="citesync",
        )
    )

    analysis = session.analyze_sequence()
    report = session.cross_reference()

    seq_table = Table(title="Sequence Analysis")
    seq_table.add_column("Check", style="cyan")
    seq_table.add_column("Result", style="magenta")
    seq_table.add_row("Sequential", "yes" if analysis.is_sequential else "[red]no[/red]")
    seq_table.add_row("Out of order", ", ".join(map(str, analysis.out_of_order)) or "-")
    seq_table.add_row("Missing", ", ".join(map(str, analysis.missing_numbers)) or "-")
    seq_table.add_row("Duplicated", ", ".join(map(str, analysis.duplicate_numbers)) or "-")
    seq_table.add_row("First appearance", ", ".join(map(str, analysis.actual_order)) or "-")
    console.print(seq_table)
    console.print(f"[dim]{report.summary}[/dim]")

    issues = session.issues()
    if issues:
        issue_table = Table(title="Issues")
        issue_table.add_column("Severity")
        issue_table.add_column("Issue", style="cyan")
        issue_table.add_column("Fixes", style="dim")
        for issue in issues:
            color = "red" if issue.severity.value == "error" else "yellow"
            issue_table.add_row(
                f"[{color}]{issue.severity.value}[/{color}]",
                issue.title,
                ", ".join(option.id for option in issue.fix_options),
            )
        console.print(issue_table)
    else:
        console.print("[green]No issues found[/green]")

    if output:
        output_data = {
            "sequence": {
                "isSequential": analysis.is_sequential,
                "outOfOrder": analysis.out_of_order,
                "expectedOrder": analysis.expected_order,
                "actualOrder": analysis.actual_order,
                "missingNumbers": analysis.missing_numbers,
                "duplicateNumbers": analysis.duplicate_numbers,
            },
            "issues": [
                {
                    "id": issue.id,
                    "severity": issue.severity.value,
                    "category": issue.category,
                    "title": issue.title,
                    "description": issue.description,
                    "fixOptions": [option.id for option in issue.fix_options],
                    "citationNumbers": issue.citation_numbers,
                }
                for issue in issues
            ],
        }
        with open(output, "w") as f:
            json.dump(output_data, f, indent=2)
        console.print(f"\n[dim]Analysis saved to {output}[/dim]")


@app.command()
def apply(
    input_file: str = typer.Argument(..., help="Document payload (JSON)"),
    operations: list[str] = typer.Option(
        ...,
        "--op",
        help="Operation to apply, repeatable: resequence, convert:STYLE, delete:ID, "
        "restore:ID, reorder:ID:POSITION, sort:alphabetical|year|appearance",
    ),
    preview: bool = typer.Option(False, "--preview", help="Show the changes without applying them"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the updated payload"),
    export: Optional[str] = typer.Option(
        None, "--export", "-e", help="Export DOCX: accept_all or track_changes"
    ),
    export_dir: str = typer.Option(".", "--export-dir", help="Directory for the exported DOCX"),
):
    """
    Apply editing operations to a document, in order.

    Each operation is all-or-nothing: a rejected operation leaves the
    document as the previous one left it, and processing stops.
    """
    from citesync.engine.export import ExportMode

    session = _load_session(input_file)
    changes = []

    for op in operations:
        try:
            changes = _apply_operation(session, op, preview)
        except (CitationEngineError, ValueError, IndexError) as e:
            message = e.message if isinstance(e, CitationEngineError) else str(e)
            console.print(f"[red]{op} rejected:[/red] {message}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] {op}")

    _print_changes(changes, title="Preview" if preview else "Changes")

    if output and not preview:
        with open(output, "w") as f:
            json.dump(session.to_payload(), f, indent=2, ensure_ascii=False)
        console.print(f"\n[dim]Document saved to {output}[/dim]")

    if export and not preview:
        try:
            mode = ExportMode(export)
        except ValueError:
            console.print(f"[red]Unknown export mode: {export}[/red]")
            raise typer.Exit(1)
        result = session.export(mode)
        path = Path(export_dir) / result.filename
        path.write_bytes(result.content)
        console.print(f"[green]Created:[/green] {path}")


@app.command()
def styles():
    """List supported citation styles."""
    from citesync.references.styles import STYLE_CONFIGS

    table = Table(title="Citation Styles")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("In-text", style="magenta")
    table.add_column("Requires", style="dim")
    for style, config in STYLE_CONFIGS.items():
        table.add_row(style.value, config.name, config.marker_kind.value, ", ".join(config.required_fields))
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from citesync import __version__

    console.print(f"citesync v{__version__}")


if __name__ == "__main__":
    app()
