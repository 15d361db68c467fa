from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bundlelens.models.analysis import AnalysisSnapshot
from bundlelens.services.formatting import format_bytes, format_percent


def _bundle_panel(snapshot: AnalysisSnapshot) -> Panel:
    manifest = snapshot.manifest
    metrics = snapshot.metrics
    body = (
        f"Bundle: [bold]{escape(manifest.display_name)}[/bold] ({escape(manifest.identifier)})\n"
        f"Version: [bold]{escape(manifest.short_version)}[/bold] ({escape(manifest.version)})\n"
        f"Minimum OS: [bold]{escape(manifest.minimum_os or 'unknown')}[/bold]\n"
        f"Devices: [bold]{escape(', '.join(manifest.supported_devices))}[/bold]\n"
        f"Files: [bold]{metrics.file_count}[/bold]\n"
        f"Directories: [bold]{metrics.directory_count}[/bold]\n"
        f"Total Size: [bold]{format_bytes(snapshot.total_size)}[/bold]\n"
        f"Architectures: [bold]{escape(', '.join(snapshot.architectures))}[/bold]"
    )
    return Panel(body, title="Bundle Summary", border_style="blue")


def _category_table(snapshot: AnalysisSnapshot) -> Table:
    table = Table(title="Size by Category", header_style="bold magenta")
    table.add_column("Category")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Share", justify="right")
    for metrics in snapshot.category_metrics:
        table.add_row(
            metrics.category.label,
            str(metrics.file_count),
            format_bytes(metrics.total_size),
            format_percent(metrics.percentage),
        )
    return table


def _top_files_table(snapshot: AnalysisSnapshot, top_n: int) -> Table:
    table = Table(title="Largest Files", header_style="bold cyan")
    table.add_column("Path")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    for info in snapshot.top_files[:top_n]:
        table.add_row(escape(info.path), info.category.label, format_bytes(info.size))
    return table


def _duplicates_table(snapshot: AnalysisSnapshot, top_n: int) -> Table:
    table = Table(title="Duplicate Files", header_style="bold yellow")
    table.add_column("Files")
    table.add_column("Copies", justify="right")
    table.add_column("Wasted", justify="right")
    for group in snapshot.duplicates[:top_n]:
        table.add_row(escape("\n".join(group.paths)), str(len(group.paths)), format_bytes(group.wasted_space))
    return table


def _recommendations_table(snapshot: AnalysisSnapshot) -> Table:
    table = Table(title="Recommendations", header_style="bold green")
    table.add_column("Severity")
    table.add_column("Recommendation")
    table.add_column("Savings", justify="right")
    for rec in snapshot.recommendations:
        savings = format_bytes(rec.estimated_savings) if rec.estimated_savings is not None else "-"
        table.add_row(rec.severity.label, rec.kind.label, savings)
    return table


def _issues_table(snapshot: AnalysisSnapshot) -> Table:
    table = Table(title="Analysis Issues", header_style="bold red")
    table.add_column("File")
    table.add_column("Kind")
    table.add_column("Reason")
    for issue in snapshot.issues:
        reason = f"{issue.reason} (skipped)" if issue.skipped else issue.reason
        table.add_row(escape(issue.file_name), issue.kind.value, escape(reason))
    return table


def render_summary(console: Console, snapshot: AnalysisSnapshot, top_n: int = 10) -> None:
    console.print(_bundle_panel(snapshot))
    console.print(_category_table(snapshot))
    console.print(_top_files_table(snapshot, top_n))
    if snapshot.duplicates:
        console.print(_duplicates_table(snapshot, top_n))
    if snapshot.recommendations:
        console.print(_recommendations_table(snapshot))
    if snapshot.issues:
        console.print(_issues_table(snapshot))
