"""Vaccination dashboard data CLI.

Computes the department lists served to the dashboard, from local CSV files
or a static HTTP root.
"""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

app = typer.Typer(
    name="vaccination-dashboard",
    help="Vaccination coverage and flu surveillance data by French department",
)
console = Console()

DATA_TYPE_HELP = (
    "grippe-vaccination, hpv-vaccination, covid-vaccination, "
    "meningocoque-vaccination or flu-surveillance"
)


@app.callback()
def main(
    ctx: typer.Context,
    data_source: str = typer.Option(
        "data",
        "--data-source",
        "-d",
        envvar="VACCINATION_DATA_SOURCE",
        help="Directory or base URL of the CSV files",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail on missing files, schema mismatches and repaired values",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Warnings only"),
    log_file: str = typer.Option(
        None, "--log-file", help="Also write debug logs to this file"
    ),
) -> None:
    """Configure logging and the data service shared by all commands."""
    from santepublique.data.vaccination_dashboard.logging import configure_logging
    from santepublique.data.vaccination_dashboard.service import (
        DashboardDataService,
    )

    configure_logging(1 if verbose else -1 if quiet else 0, log_file=log_file)
    ctx.obj = DashboardDataService(data_source, strict=strict)


@app.command()
def years(ctx: typer.Context) -> None:
    """List the years with data."""
    available = asyncio.run(ctx.obj.get_available_years())
    console.print("[bold blue]Available years[/bold blue]")
    for year in available:
        console.print(f"  {year}")


@app.command()
def departments(
    ctx: typer.Context,
    data_type: str = typer.Option(
        "grippe-vaccination", "--data-type", "-t", help=DATA_TYPE_HELP
    ),
    year: str = typer.Option(
        None, "--year", "-y", help="Year, or 'all' (default: latest reference year)"
    ),
    top: int = typer.Option(0, "--top", help="Only show the N best ranked"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON records"),
    output: str = typer.Option(
        None, "--output", "-o", help="Write JSON records to this file"
    ),
) -> None:
    """Rank departments for one data type and year.

    Examples:

        # HPV coverage in 2023
        vaccination-dashboard departments -t hpv-vaccination -y 2023

        # Flu activity over all years, from a remote data root
        vaccination-dashboard -d https://example.org/data departments \\
            -t flu-surveillance -y all --json
    """
    try:
        records = asyncio.run(ctx.obj.generate_department_data(data_type, year))
    except (ValueError, OSError) as e:
        console.print(f"[red bold]Error: {escape(str(e))}[/red bold]")
        raise typer.Exit(code=2) from e

    _emit(records, data_type, top=top, as_json=as_json, output=output)


@app.command()
def aggregate(
    ctx: typer.Context,
    data_type: str = typer.Option(
        "grippe-vaccination", "--data-type", "-t", help=DATA_TYPE_HELP
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON records"),
) -> None:
    """Multi-year view: national average (vaccination) or all-year ranking (flu)."""
    try:
        records = asyncio.run(ctx.obj.generate_aggregated_data(data_type))
    except (ValueError, OSError) as e:
        console.print(f"[red bold]Error: {escape(str(e))}[/red bold]")
        raise typer.Exit(code=2) from e

    _emit(records, data_type, as_json=as_json)


@app.command()
def audit(ctx: typer.Context) -> None:
    """Check every known source file and report its data quality."""
    indicators, _ = asyncio.run(ctx.obj.audit())

    colors = {"success": "green", "warning": "yellow", "error": "red"}
    console.print("[bold blue]Data quality[/bold blue]")
    for indicator in indicators:
        color = colors[indicator.status]
        console.print(
            f"  [{color}]{indicator.status:<7}[/{color}] {indicator.file_name} "
            f"({indicator.record_count:,} rows) [dim]{escape(indicator.message)}[/dim]"
        )

    errors = [i for i in indicators if i.status == "error"]
    if errors:
        console.print(f"\n[red bold]{len(errors)} file(s) in error[/red bold]")
        raise typer.Exit(code=1)


@app.command()
def inspect(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV file"),
) -> None:
    """Detect the format of a local CSV file and validate it."""
    from santepublique.data.vaccination_dashboard.csv_parser import (
        iter_csv_rows,
        read_header,
    )
    from santepublique.data.vaccination_dashboard.schemas import (
        SchemaError,
        detect_schema,
    )
    from santepublique.data.vaccination_dashboard.transformers import TRANSFORMERS
    from santepublique.data.vaccination_dashboard.validation import validate_dataset

    text = path.read_text(encoding="utf-8")
    try:
        schema = detect_schema(read_header(text), path.name)
        df, report = TRANSFORMERS[schema.name](iter_csv_rows(text))
    except SchemaError as e:
        console.print(f"[red bold]Error: {escape(str(e))}[/red bold]")
        raise typer.Exit(code=1) from e

    results = validate_dataset(df, schema, report)
    console.print(f"[bold blue]{path.name}[/bold blue] ({schema.name})")
    console.print(f"  Rows: {report.rows_kept:,} kept / {report.rows_read:,} read")
    for error in results["errors"]:
        console.print(f"  [red]{error}[/red]")
    for warning in results["warnings"]:
        console.print(f"  [yellow]{warning}[/yellow]")
    if not df.empty:
        console.print("\n[bold]Preview (first 10 rows):[/bold]")
        console.print(df.head(10).to_string(index=False))


@app.command()
def info() -> None:
    """Show data types and source files."""
    from santepublique.data.vaccination_dashboard.constants import (
        CAMPAIGN_FILE_PATTERN,
        CAMPAIGN_YEARS,
        DEPARTMENTAL_COVERAGE_FILE,
        FLU_DEPARTMENTAL_FILE,
        NATIONAL_COVERAGE_FILE,
    )
    from santepublique.data.vaccination_dashboard.models import DataType

    console.print("[bold blue]Data types[/bold blue]")
    for data_type in DataType:
        meta = data_type.info
        console.print(
            f"  [bold]{data_type.value}[/bold]: {meta['name']} "
            f"(objective {meta['objective']}{meta['unit']})"
        )
        console.print(f"    {meta['description']} - {meta['target_population']}")

    console.print("\n[bold blue]Source files[/bold blue]")
    console.print(f"  {DEPARTMENTAL_COVERAGE_FILE}")
    console.print(f"  {NATIONAL_COVERAGE_FILE}")
    console.print(f"  {FLU_DEPARTMENTAL_FILE}")
    console.print(
        f"  {CAMPAIGN_FILE_PATTERN} for {', '.join(map(str, CAMPAIGN_YEARS))}"
    )


def _emit(
    records, data_type: str, *, top: int = 0, as_json: bool = False, output=None
) -> None:
    """Print records as JSON or as a ranked table, optionally saving JSON."""
    if top:
        records = records[:top]
    payload = [record.to_dict() for record in records]

    if output:
        Path(output).write_text(
            json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        console.print(f"[green]Saved {len(payload)} records to {output}[/green]")

    if as_json:
        console.print_json(json.dumps(payload, ensure_ascii=False))
        return

    _print_ranking(records, data_type)


def _print_ranking(records, data_type: str) -> None:
    """Print a ranked table of the records."""
    import pandas as pd

    from santepublique.data.vaccination_dashboard.models import DataType

    if not records:
        console.print("[yellow]No data for this selection[/yellow]")
        return

    meta = DataType.parse(data_type).info
    console.print(f"[bold blue]{meta['name']}[/bold blue] ({len(records)} records)")
    table = pd.DataFrame(
        [
            {
                "rank": r.ranking,
                "code": r.code,
                "name": r.name,
                f"value ({meta['unit']})": round(r.primary_metric, 1),
                "percentile": r.percentile,
            }
            for r in records
        ]
    )
    console.print(table.to_string(index=False))


if __name__ == "__main__":
    app()
