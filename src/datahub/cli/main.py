"""
CLI for DataHub Analytics.

Usage:
    datahub catalog list                       # List datasets
    datahub catalog methodology bps-edu-001    # Indicators and composite weights
    datahub analyze growth aps.csv bps-edu-001 # Year-over-year growth
    datahub analyze rank ahh.json bps-health-001 -m ahh_total -m ahh_perempuan -m ahh_lakilaki
    datahub analyze dataset aps.csv bps-edu-001
    datahub validate aps.csv bps-edu-001       # Data quality checks

Data files are CSV or JSON record dumps with BPS column names.
"""

import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from datahub import __version__
from datahub.config import settings
from datahub.logging import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="datahub",
    help="DataHub Analytics - Indonesian BPS statistics",
    add_completion=False,
)

# Sub-commands
catalog_app = typer.Typer(help="Browse the dataset catalog")
analyze_app = typer.Typer(help="Indicators, forecasting and composite analysis")

app.add_typer(catalog_app, name="catalog")
app.add_typer(analyze_app, name="analyze")

console = Console()

FileArg = Annotated[Path, typer.Argument(help="CSV or JSON record file")]
DatasetArg = Annotated[str, typer.Argument(help="Dataset id, e.g. bps-edu-001")]
ValueOpt = Annotated[Optional[str], typer.Option("--value", help="Metric column (default: first of the dataset)")]
WhereOpt = Annotated[
    Optional[list[str]],
    typer.Option("--where", "-w", help="Filter as column=value, repeatable"),
]
YearOpt = Annotated[Optional[int], typer.Option("--year", "-y")]


# =============================================================================
# VERSION CALLBACK
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"[bold blue]DataHub Analytics[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """DataHub Analytics - Indicators and composite indices for BPS data."""
    setup_logging(verbose=verbose)


# =============================================================================
# HELPERS
# =============================================================================


def _fail(message: str) -> None:
    rprint(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def _load(file: Path, dataset: str, where: list[str] | None = None) -> list[Any]:
    """Load and filter records, exiting with a message on bad input."""
    from datahub.core.query import RecordQuery, load_records

    equals: dict[str, Any] = {}
    for item in where or []:
        column, sep, value = (part.strip() for part in item.partition("="))
        if not sep or not column:
            _fail(f"Invalid filter '{item}', expected column=value")
        # Years are stored as integers
        equals[column] = int(value) if column == "tahun" and value.isdigit() else value

    try:
        records = load_records(file, dataset)
    except ValidationError as e:
        _fail(f"{file} does not match the {dataset} schema:\n{e}")
    except (ValueError, FileNotFoundError) as e:
        _fail(str(e))

    if equals:
        records = RecordQuery(records).where(**equals).execute().records
    if not records:
        rprint("[yellow]No records found[/yellow]")
        raise typer.Exit()
    return records


def _columns(dataset: str, value: str | None) -> tuple[str, str]:
    """Group and metric columns of a dataset."""
    from datahub.core.catalog import catalog

    try:
        info = catalog.require(dataset)
    except ValueError as e:
        _fail(str(e))
    return info.group_column, value or info.value_columns[0]


def _fmt(value: float | None, spec: str = ",.2f") -> str:
    return "N/A" if value is None else format(value, spec)


# =============================================================================
# CATALOG COMMANDS
# =============================================================================


@catalog_app.command("list")
def catalog_list(
    category: Annotated[Optional[str], typer.Option("--category", "-c")] = None,
    query: Annotated[Optional[str], typer.Option("--query", "-q", help="Search term")] = None,
) -> None:
    """List catalogued datasets."""
    from datahub.core.catalog import catalog

    datasets = catalog.search(query, category)
    if not datasets:
        rprint("[yellow]No datasets found[/yellow]")
        return

    table = Table(title="BPS Datasets")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Category", style="green")
    table.add_column("Years", justify="right")
    table.add_column("Composite Index", style="yellow")

    for d in datasets:
        table.add_row(
            d.dataset_id,
            d.title,
            d.category.value,
            f"{d.start_year}-{d.end_year}",
            d.composite_name or "-",
        )

    console.print(table)


@catalog_app.command("show")
def catalog_show(dataset: DatasetArg) -> None:
    """Show details for a dataset."""
    from datahub.core.catalog import get_dataset_info

    info = get_dataset_info(dataset)
    if not info:
        _fail(f"Dataset not found: {dataset}")

    panel = Panel.fit(
        f"""[bold]{info.title}[/bold]

[cyan]ID:[/cyan]          {info.dataset_id}
[cyan]Category:[/cyan]    {info.category.value}
[cyan]Publisher:[/cyan]   {info.publisher}
[cyan]Coverage:[/cyan]    {info.start_year}-{info.end_year} ({info.frequency})
[cyan]Group:[/cyan]       {info.group_column}
[cyan]Metrics:[/cyan]     {', '.join(info.value_columns)}
[cyan]Strata:[/cyan]      {', '.join(info.stratum_columns) or '-'}

[cyan]Description:[/cyan]
{info.description or 'No description available'}
""",
        title="Dataset Details",
        border_style="blue",
    )
    console.print(panel)


@catalog_app.command("methodology")
def catalog_methodology(dataset: DatasetArg) -> None:
    """Show the indicators and composite index of a dataset."""
    from datahub.core.methodology import get_indicator, get_methodology

    try:
        methodology = get_methodology(dataset)
    except ValueError as e:
        _fail(str(e))

    table = Table(title=f"Indicators: {methodology.name}")
    table.add_column("Indicator", style="cyan")
    table.add_column("Formula")
    table.add_column("Classes", style="green")

    for indicator in map(get_indicator, methodology.indicators):
        table.add_row(indicator.name, indicator.formula, ", ".join(indicator.labels))

    console.print(table)

    table = Table(title=methodology.composite_name)
    table.add_column("Metric", style="cyan")
    table.add_column("Weight", justify="right", style="green")
    table.add_column("Normalized", justify="center")
    table.add_column("Inverted", justify="center")

    for metric in methodology.metrics:
        table.add_row(
            metric.name,
            f"{metric.weight:.0%}",
            "yes" if metric.normalize else "no",
            "yes" if metric.invert else "no",
        )

    console.print(table)

    tiers = (
        f"fixed thresholds {methodology.fixed_thresholds[0]:g} / {methodology.fixed_thresholds[1]:g}"
        if methodology.fixed_thresholds
        else "percentile cutoffs (33rd / 67th)"
    )
    rprint(f"\n[cyan]Clustering:[/cyan] {tiers} -> {', '.join(methodology.labels)}")
    if methodology.notes:
        rprint(f"[dim]{methodology.notes}[/dim]")


# =============================================================================
# ANALYSIS COMMANDS
# =============================================================================


@analyze_app.command("growth")
def analyze_growth(
    file: FileArg,
    dataset: DatasetArg,
    value: ValueOpt = None,
    where: WhereOpt = None,
    indicator: Annotated[str, typer.Option("--indicator", "-i", help="Growth bands")] = "growth_rate",
    reduction: Annotated[bool, typer.Option("--reduction", help="Compute reduction instead of growth")] = False,
    year: YearOpt = None,
) -> None:
    """
    Year-over-year growth (or reduction) per group.

    Example:
        datahub analyze growth aps.csv bps-edu-001 -w kelompok_umur=7-12 -w jenis_kelamin=Total
    """
    from datahub.core.indicators import growth_rates, reduction_rates

    group, value = _columns(dataset, value)
    records = _load(file, dataset, where)

    try:
        if reduction:
            results = reduction_rates(records, value, group, indicator=indicator)
        else:
            results = growth_rates(records, value, group, indicator=indicator)
    except ValueError as e:
        _fail(str(e))

    if year is not None:
        results = [r for r in results if r.year == year]

    table = Table(title=f"{'Reduction' if reduction else 'Growth'}: {value}")
    table.add_column("Group", style="cyan")
    table.add_column("Year", justify="right")
    table.add_column("Previous", justify="right", style="dim")
    table.add_column("Current", justify="right")
    table.add_column("Rate %", justify="right", style="green")
    table.add_column("Category", style="yellow")

    for r in results:
        rate = r.reduction_rate if reduction else r.growth_rate
        table.add_row(str(r.group), str(r.year), _fmt(r.previous_value), _fmt(r.value), f"{rate:+.2f}", r.category)

    console.print(table)


@analyze_app.command("parity")
def analyze_parity(
    file: FileArg,
    dataset: DatasetArg,
    value: ValueOpt = None,
    where: WhereOpt = None,
    year: YearOpt = None,
) -> None:
    """
    Gender Parity Index (female / male) per group and year.

    Example:
        datahub analyze parity aps.csv bps-edu-001 -w kelompok_umur=13-15
    """
    from datahub.core.indicators import gender_parity

    group, value = _columns(dataset, value)
    results = gender_parity(_load(file, dataset, where), value, group)
    if year is not None:
        results = [r for r in results if r.year == year]

    if not results:
        rprint("[yellow]No complete male/female pairs found[/yellow]")
        return

    table = Table(title=f"Gender Parity Index: {value}")
    table.add_column("Group", style="cyan")
    table.add_column("Year", justify="right")
    table.add_column("Male", justify="right")
    table.add_column("Female", justify="right")
    table.add_column("GPI", justify="right", style="green")
    table.add_column("Status", style="yellow")
    table.add_column("Favors")

    for r in results:
        table.add_row(
            str(r.group), str(r.year), _fmt(r.male_value), _fmt(r.female_value),
            f"{r.gpi:.3f}", r.status, r.favors,
        )

    console.print(table)


@analyze_app.command("disparity")
def analyze_disparity(
    file: FileArg,
    dataset: DatasetArg,
    value: ValueOpt = None,
    where: WhereOpt = None,
) -> None:
    """
    Coefficient of variation across groups, per year.

    Example:
        datahub analyze disparity ahh.csv bps-health-001 --value ahh_total
    """
    from datahub.core.indicators import regional_disparity

    group, value = _columns(dataset, value)
    results = regional_disparity(_load(file, dataset, where), value, group)

    table = Table(title=f"Regional Disparity: {value}")
    table.add_column("Year", justify="right", style="cyan")
    table.add_column("Groups", justify="right", style="dim")
    table.add_column("Mean", justify="right")
    table.add_column("Std Dev", justify="right")
    table.add_column("Range", justify="right")
    table.add_column("CV %", justify="right", style="green")
    table.add_column("Disparity", style="yellow")

    for r in results:
        table.add_row(
            str(r.year), str(r.n_groups), _fmt(r.mean), _fmt(r.std),
            f"{r.min:,.2f} - {r.max:,.2f}", f"{r.cv:.2f}", r.category,
        )

    console.print(table)


@analyze_app.command("trend")
def analyze_trend(
    file: FileArg,
    dataset: DatasetArg,
    value: ValueOpt = None,
    where: WhereOpt = None,
    indicator: Annotated[str, typer.Option("--indicator", "-i", help="Slope bands")] = "life_expectancy_trend",
    target: Annotated[Optional[float], typer.Option("--target", "-t", help="Target level")] = None,
) -> None:
    """
    Linear trend per group against year.

    Example:
        datahub analyze trend ahh.csv bps-health-001 --value ahh_total -t 75
    """
    from datahub.core.indicators import trend_slopes

    group, value = _columns(dataset, value)
    try:
        results = trend_slopes(_load(file, dataset, where), value, group, indicator=indicator, target=target)
    except ValueError as e:
        _fail(str(e))

    table = Table(title=f"Trend: {value}")
    table.add_column("Group", style="cyan")
    table.add_column("Years", justify="right", style="dim")
    table.add_column("Latest", justify="right")
    table.add_column("Slope / yr", justify="right", style="green")
    table.add_column("R-squared", justify="right")
    table.add_column("Category", style="yellow")
    if target is not None:
        table.add_column("Years to Target", justify="right")

    for r in sorted(results, key=lambda t: t.slope, reverse=True):
        row = [
            str(r.group), f"{r.first_year}-{r.last_year}", _fmt(r.latest_value),
            f"{r.slope:+.4f}", f"{r.r_squared:.3f}", r.category,
        ]
        if target is not None:
            row.append("N/A" if r.years_to_target is None else str(r.years_to_target))
        table.add_row(*row)

    console.print(table)


@analyze_app.command("forecast")
def analyze_forecast(
    file: FileArg,
    dataset: DatasetArg,
    group_name: Annotated[str, typer.Argument(help="Province or region name")],
    value: ValueOpt = None,
    where: WhereOpt = None,
    periods: Annotated[Optional[int], typer.Option("--periods", "-p")] = None,
) -> None:
    """
    Forecast one group's series and list generated insights.

    Example:
        datahub analyze forecast tpt.csv bps-econ-003 "JAWA BARAT" -w jenis_kelamin=Total
    """
    from datahub.core.aggregation import grouped_series
    from datahub.core.timeseries import forecast, generate_insights

    group, value = _columns(dataset, value)
    series = grouped_series(_load(file, dataset, where), group, "tahun", value).get(group_name)
    if not series:
        _fail(f"No {value} series for {group_name}")

    points = forecast(series, periods or settings.forecast_periods, settings.forecast_z)
    if not points:
        _fail(f"At least 3 years are needed to forecast, found {len(series)}")

    table = Table(title=f"Forecast: {value} ({group_name})")
    table.add_column("Year", style="cyan", justify="right")
    table.add_column("Forecast", justify="right", style="green")
    table.add_column("Lower", justify="right", style="dim")
    table.add_column("Upper", justify="right", style="dim")

    for p in points:
        table.add_row(str(p.year), _fmt(p.predicted), _fmt(p.lower), _fmt(p.upper))

    console.print(table)
    rprint(f"\n[cyan]Confidence (R-squared):[/cyan] {points[0].confidence:.2f}")

    severity_colors = {"low": "green", "medium": "yellow", "high": "red"}
    for insight in generate_insights(series, value):
        color = severity_colors[insight.severity.value]
        rprint(f"\n[{color}][bold]{insight.title}[/bold][/{color}] ({insight.confidence:.0%})")
        rprint(f"  {insight.description}")
        rprint(f"  [dim]{insight.actionable}[/dim]")


@analyze_app.command("convergence")
def analyze_convergence(
    file: FileArg,
    dataset: DatasetArg,
    value: ValueOpt = None,
    where: WhereOpt = None,
    compound: Annotated[bool, typer.Option("--compound", help="Use compound annual growth")] = False,
) -> None:
    """
    Beta convergence: do lagging groups grow faster?

    Example:
        datahub analyze convergence pdrb.csv bps-econ-001 --value per_kapita_adhb --compound
    """
    from datahub.core.indicators import convergence_beta

    group, value = _columns(dataset, value)
    result = convergence_beta(
        _load(file, dataset, where), value, group,
        min_groups=settings.min_convergence_groups, compound=compound,
    )
    if result is None:
        _fail(f"Not enough groups with a growth figure (need {settings.min_convergence_groups})")

    color = "green" if result.is_converging else "red"
    panel = Panel.fit(
        f"""[bold]Beta Convergence: {value}[/bold]

[{color}]{result.category.replace('_', ' ').title()}[/{color}]

  Beta:       {result.beta:+.4f}
  Intercept:  {result.intercept:,.4f}
  R-squared:  {result.r_squared:.3f}
  Groups:     {result.n_groups}

{result.interpretation}
""",
        title="Convergence",
        border_style=color,
    )
    console.print(panel)


@analyze_app.command("deviation")
def analyze_deviation(
    file: FileArg,
    dataset: DatasetArg,
    value: ValueOpt = None,
    where: WhereOpt = None,
    year: YearOpt = None,
    limit: Annotated[int, typer.Option("--limit", "-n")] = 40,
) -> None:
    """
    List groups by value with deviation from the cross-group mean.

    Example:
        datahub analyze deviation kemiskinan.csv bps-econ-004 -w wilayah=Total
    """
    from datahub.core.indicators import provincial_deviation

    group, value = _columns(dataset, value)
    records = _load(file, dataset, where)
    year = year or max(r.tahun for r in records)

    results = provincial_deviation(records, year, value, group)
    if not results:
        rprint(f"[yellow]No data for {year}[/yellow]")
        return

    table = Table(title=f"Deviation: {value} ({year})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Group", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_column("vs Mean %", justify="right")
    table.add_column("Z-Score", justify="right")

    for i, r in enumerate(results[:limit], 1):
        table.add_row(
            str(i), str(r.group), _fmt(r.value),
            _fmt(r.relative_deviation, "+.1f"), f"{r.z_score:+.2f}",
        )

    console.print(table)


@analyze_app.command("rank")
def analyze_rank(
    file: FileArg,
    dataset: DatasetArg,
    metrics: Annotated[
        Optional[list[str]],
        typer.Option("--metric", "-m", help="Metric column, give three in weight order"),
    ] = None,
    weights: Annotated[str, typer.Option("--weights", help="Comma-separated weights")] = "0.5,0.3,0.2",
    invert: Annotated[
        Optional[list[str]],
        typer.Option("--invert", "-x", help="Metric where lower is better, repeatable"),
    ] = None,
    where: WhereOpt = None,
    year: YearOpt = None,
    limit: Annotated[int, typer.Option("--limit", "-n")] = 40,
) -> None:
    """
    Rank groups by a weighted score over three metrics.

    Example:
        datahub analyze rank ahh.json bps-health-001 \\
            -m ahh_total -m ahh_perempuan -m ahh_lakilaki --weights 0.6,0.2,0.2
    """
    from datahub.core.aggregation import Reducer, group_by, is_missing, reduce_values
    from datahub.core.catalog import catalog
    from datahub.core.ranking import RankingInput, rank_groups

    group, _ = _columns(dataset, None)
    metrics = metrics or list(catalog.require(dataset).value_columns)
    if len(metrics) != 3:
        _fail(f"Ranking needs exactly three metrics, got {len(metrics)}")
    try:
        parsed = [float(w) for w in weights.split(",")]
    except ValueError:
        _fail(f"Invalid weights '{weights}', expected numbers like 0.5,0.3,0.2")
    inverted = set(invert or [])

    records = _load(file, dataset, where)
    year = year or max(r.tahun for r in records)

    inputs: list[RankingInput] = []
    for name, rows in group_by([r for r in records if r.tahun == year], group).items():
        means = []
        for metric in metrics:
            values = [v for v in (getattr(r, metric, None) for r in rows) if not is_missing(v)]
            if not values:
                break
            mean = reduce_values(values, Reducer.MEAN)
            means.append(-mean if metric in inverted else mean)
        else:
            inputs.append(RankingInput(name, *means))

    try:
        results = rank_groups(inputs, parsed)
    except ValueError as e:
        _fail(str(e))
    if not results:
        rprint(f"[yellow]No group has all three metrics in {year}[/yellow]")
        return

    table = Table(title=f"Rankings: {', '.join(metrics)} ({year})")
    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Group", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Percentile", justify="right")
    table.add_column("Cluster")

    for r in results[:limit]:
        table.add_row(str(r.rank), str(r.group), f"{r.score:.1f}", f"{r.percentile:.0f}", r.cluster)

    console.print(table)


@analyze_app.command("dataset")
def analyze_dataset(
    file: FileArg,
    dataset: DatasetArg,
    year: YearOpt = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the full analysis as JSON")] = False,
) -> None:
    """
    Run the full analysis of a dataset and show its composite index.

    Example:
        datahub analyze dataset kemiskinan.csv bps-econ-004 --year 2023
    """
    from datahub.core.pipelines import run_analysis

    records = _load(file, dataset)
    try:
        with console.status(f"Analyzing {dataset}..."):
            analysis = run_analysis(dataset, records, year=year)
    except (KeyError, ValueError) as e:
        _fail(str(e))

    if as_json:
        typer.echo(json.dumps(analysis.to_dict(), indent=2, default=str))
        return

    result = analysis.composite
    if not result.scores:
        rprint("[yellow]No group has every metric of the composite index[/yellow]")
        return

    tier_colors = dict(zip(result.labels, ("green", "yellow", "red")))
    table = Table(title=f"{analysis.composite_name} ({analysis.year})")
    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Group", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Cluster")
    for metric in result.scores[0].components:
        table.add_column(metric, justify="right", style="dim")

    for s in result.scores:
        color = tier_colors.get(s.cluster, "white")
        table.add_row(
            str(s.rank), str(s.group), f"{s.score:.1f}", f"[{color}]{s.cluster}[/{color}]",
            *(f"{v:.1f}" for v in s.components.values()),
        )

    console.print(table)
    sizes = ", ".join(f"{label}: {n}" for label, n in result.cluster_sizes.items())
    rprint(f"\n[cyan]Clusters:[/cyan] {sizes}")


# =============================================================================
# VALIDATION COMMAND
# =============================================================================


@app.command("validate")
def validate(
    file: FileArg,
    dataset: DatasetArg,
    checks: Annotated[
        Optional[list[str]],
        typer.Option("--check", "-c", help="missing, duplicates, outliers, gaps, negative, provinces"),
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n")] = 50,
) -> None:
    """
    Check a record file for quality issues.

    Exits with status 1 when errors are found.

    Example:
        datahub validate stunting.csv bps-health-002
    """
    from datahub.core.validation import validate_records

    records = _load(file, dataset)
    try:
        report = validate_records(records, dataset, checks)
    except ValueError as e:
        _fail(str(e))

    if report.issues:
        severity_colors = {"error": "red", "warning": "yellow", "info": "blue"}
        table = Table(title=f"Validation Issues: {file.name}")
        table.add_column("Severity")
        table.add_column("Type", style="cyan")
        table.add_column("Message")

        for issue in report.issues[:limit]:
            color = severity_colors[issue.severity.value]
            table.add_row(f"[{color}]{issue.severity.value}[/{color}]", issue.issue_type, issue.message)

        console.print(table)

    rprint(
        f"\nChecked {report.records_checked} records: "
        f"[red]{report.error_count} errors[/red], "
        f"[yellow]{report.warning_count} warnings[/yellow], "
        f"[blue]{report.info_count} info[/blue]"
    )
    if not report.is_valid:
        raise typer.Exit(1)
    rprint("[green]Data is valid[/green]")


if __name__ == "__main__":
    app()
