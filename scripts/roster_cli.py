# ABOUTME: Provides a CLI that ingests performance extracts into an in-memory roster.
# ABOUTME: Prints risk tables and cohort summaries, and writes templates or tabular exports.

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from src.roster.config import load_weights, weights_to_dict
from src.roster.pipeline import ingest_file
from src.roster.reporting import cohort_summary, failing_flags, risk_band, roster_to_frame, top_at_risk
from src.roster.sample_data import sample_roster, template_csv
from src.roster.schemas import Cohort, PerformanceRecord, WeightConfiguration

console = Console()
app = typer.Typer(help="Ingest student-performance extracts and score them for academic risk.")

BAND_COLORS = {"Critical": "red", "At Risk": "orange3", "Moderate": "yellow", "Low Risk": "green"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _resolve_weights(weights_path: Optional[Path]) -> WeightConfiguration:
    try:
        return load_weights(weights_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--weights") from exc


def _roster_table(title: str, records: List[PerformanceRecord]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Cohort")
    table.add_column("Risk", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Attendance", justify="right")
    table.add_column("Fail Flags", justify="right")
    table.add_column("Trend")
    for r in records:
        band = risk_band(r.risk_score).value
        color = BAND_COLORS.get(band, "white")
        trail = " → ".join(str(p.score) for p in r.historical_scores)
        table.add_row(
            r.identity,
            r.display_name,
            r.cohort.value,
            f"[{color}]{r.risk_score} ({band})[/{color}]",
            str(r.academic_points),
            f"{r.attendance_rate:g}%",
            str(failing_flags(r)),
            trail,
        )
    return table


def _build_roster(files: List[Path], weights: WeightConfiguration, with_sample: bool) -> List[PerformanceRecord]:
    roster = sample_roster(weights) if with_sample else []
    for path in files:
        outcome = ingest_file(roster, path, weights)
        if outcome.is_empty:
            console.print(f"[yellow]No valid data found in {path}. Expected 'id,name,yearGroup,...' columns.[/yellow]")
            continue
        console.print(
            f"[bold]Sync complete:[/] {path.name}: processed {outcome.records_parsed} records "
            f"({len(outcome.added)} added, {len(outcome.updated)} updated, {len(outcome.warnings)} warnings)"
        )
    return roster


@app.command()
def ingest(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Extract files, merged in order."),
    weights_path: Optional[Path] = typer.Option(None, "--weights", help="YAML file with risk weights."),
    with_sample: bool = typer.Option(False, "--with-sample", help="Start from the seeded sample roster."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the roster as .csv or .parquet."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """
    Merge each file into the roster as one batch and print the result, highest risk first.
    """
    _configure_logging(verbose)
    weights = _resolve_weights(weights_path)
    roster = _build_roster(files, weights, with_sample)
    if not roster:
        console.print("[red]Nothing usable was found in the supplied files.[/red]")
        raise typer.Exit(code=1)

    console.print(_roster_table("Roster", top_at_risk(roster, count=len(roster))))

    if output is not None:
        frame = roster_to_frame(roster)
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.suffix == ".parquet":
            frame.to_parquet(output, index=False)
        else:
            frame.to_csv(output, index=False)
        console.print(f"[bold]Wrote {len(frame)} records to {output}[/bold]")


@app.command()
def report(
    files: Optional[List[Path]] = typer.Argument(None, exists=True, dir_okay=False, help="Optional extracts to merge."),
    weights_path: Optional[Path] = typer.Option(None, "--weights", help="YAML file with risk weights."),
    count: int = typer.Option(10, "--count", help="Records per top-at-risk table."),
) -> None:
    """
    Summarize each cohort and list its highest-risk records.
    """
    _configure_logging(False)
    weights = _resolve_weights(weights_path)
    roster = _build_roster(files or [], weights, with_sample=True)

    summary_table = Table(title="Cohort Summary", show_header=True, header_style="bold magenta")
    summary_table.add_column("Cohort")
    summary_table.add_column("Records", justify="right")
    summary_table.add_column("Mean Risk", justify="right")
    summary_table.add_column("Mean Points", justify="right")
    summary_table.add_column("Critical", justify="right")
    for cohort in (None, Cohort.DP1, Cohort.DP2):
        summary = cohort_summary(roster, cohort)
        label = cohort.value if cohort else "Whole DP"
        summary_table.add_row(
            label,
            str(summary.record_count),
            str(summary.mean_risk),
            f"{summary.mean_academic_points:.1f}",
            str(summary.critical_count),
        )
    console.print(summary_table)

    for cohort in (None, Cohort.DP1, Cohort.DP2):
        label = cohort.value if cohort else "Whole DP"
        console.print(_roster_table(f"Top {count} Risk - {label}", top_at_risk(roster, count=count, cohort=cohort)))


@app.command()
def template(
    output: Path = typer.Option(Path("roster_template.csv"), "--output", help="Where to write the template CSV."),
) -> None:
    """
    Write a header and one sample row showing the expected extract format.
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(template_csv() + "\n", encoding="utf-8")
    console.print(f"[bold]Template written to {output}[/bold]")


@app.command()
def weights(
    weights_path: Optional[Path] = typer.Option(None, "--weights", help="YAML file with risk weights."),
) -> None:
    """
    Show the weight configuration that scoring would use.
    """
    active = _resolve_weights(weights_path)
    table = Table(title="Risk Weights", show_header=True, header_style="bold magenta")
    table.add_column("Weight")
    table.add_column("Value", justify="right")
    for name, value in weights_to_dict(active).items():
        table.add_row(name, f"{value:.2f}")
    console.print(table)


if __name__ == "__main__":
    app()
