"""The Janitor CLI - Unused script detection and scene hierarchy dumps for Unity projects."""
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeElapsedColumn,
)
from rich.markup import escape

from src.config import get_config, __version__, USAGE_POLICIES
from src.analyzer.orchestrator import ProjectAnalyzer, AnalysisReport
from src.utils.logger import setup_logging
from src.utils.safe_console import SafeConsole

app = typer.Typer(
    name="janitor",
    help="Find Unity scripts no scene uses and dump every scene's hierarchy",
    add_completion=False
)
# Use SafeConsole for Windows Unicode compatibility
console = SafeConsole()


def _print_summary(report: AnalysisReport, output_path: Path):
    """Print the unused scripts table and run statistics."""
    if report.unused:
        table = Table(title="Unused Scripts")
        table.add_column("Relative Path", style="cyan", no_wrap=False)
        table.add_column("GUID", style="magenta")
        for row in report.unused:
            table.add_row(escape(row.relative_path), row.identifier)
        console.print(table)
    else:
        console.print("[bold green]Every registered script is used by a scene![/bold green]")

    console.print(f"\n[bold yellow]Summary:[/bold yellow]")
    console.print(f"  Scripts found: {report.script_count}")
    console.print(f"  Scripts registered: {report.registered_count}")
    console.print(f"  Scenes processed: {len(report.scenes)}")
    console.print(f"  Unused scripts: {len(report.unused)}")
    if report.failed_scenes:
        console.print(f"  [bold red]Scenes skipped:[/bold red] {len(report.failed_scenes)}")
        for scene in report.failed_scenes:
            console.print(f"    [dim]{escape(str(scene))}[/dim]")
    cycle_count = sum(len(s.cycles) for s in report.scenes)
    if cycle_count:
        console.print(f"  [bold yellow]Transform cycles ignored:[/bold yellow] {cycle_count}")
    console.print(f"\n[dim]Output written to {escape(str(output_path))}[/dim]")


@app.command()
def analyze(
    project_path: str = typer.Argument(..., help="Unity project root to analyze"),
    output_path: str = typer.Argument(..., help="Directory for scene dumps and UnusedScripts.csv"),
    policy: Optional[str] = typer.Option(None, "--policy", "-p", help="Usage policy: 'strict' or 'legacy'"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Worker threads per phase"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every file processed"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar"),
):
    """Report unused scripts and dump every scene hierarchy."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    project_root = Path(project_path).resolve()
    if not project_root.is_dir():
        console.print(f"[bold red]Error:[/bold red] Unity project path not found at '{escape(str(project_path))}'")
        raise typer.Exit(1)

    if policy is not None and policy.lower() not in USAGE_POLICIES:
        console.print(f"[bold red]Error:[/bold red] Invalid policy '{escape(policy)}'. Use 'strict' or 'legacy'.")
        raise typer.Exit(1)

    try:
        config = get_config()
    except ValueError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    output_dir = Path(output_path)
    analyzer = ProjectAnalyzer.from_config(
        project_root, output_dir, config,
        policy=policy.lower() if policy else None,
        max_workers=workers,
    )

    console.print(f"[bold]The Janitor {__version__}[/bold]")
    console.print(f"[bold blue]Analyzing project:[/bold blue] {escape(str(project_root))}")
    console.print(f"[bold blue]Usage policy:[/bold blue] {analyzer.resolver.policy.value}\n")

    if progress:
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True
        ) as bar:
            task = bar.add_task("Processing scenes...", total=None)

            def on_scene_done(done: int, total: int, scene_name: str):
                bar.update(task, completed=done, total=total,
                           description=f"Processed {escape(scene_name)}")

            report = analyzer.run(progress_callback=on_scene_done)
    else:
        report = analyzer.run()

    _print_summary(report, output_dir)


if __name__ == "__main__":
    app()
