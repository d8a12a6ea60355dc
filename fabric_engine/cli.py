from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml

from .calculators.costs import calculate_costs
from .calculators.orientation import calculate_orientation
from .calculators.usage import calculate_fabric_usage
from .config import RatesConfig, load_rates
from .errors import EngineError
from .normalize.inputs import resolve_fabric_price_per_yard, resolve_inputs, resolve_labor_rate
from .utils import money, to_decimal


app = typer.Typer(help="Fabric usage and treatment cost engine")


def _setup(configs: str, verbose: bool) -> RatesConfig:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return load_rates(Path(configs))
    except EngineError as e:
        typer.echo(f"Config error: {e}", err=True)
        raise typer.Exit(code=2)


def _load_job(job_file: str) -> Dict[str, Any]:
    """Job file (YAML or JSON): form, templates, options, hierarchical_options, fabric_item, treatment_type."""
    path = Path(job_file)
    if not path.exists():
        typer.echo(f"Job file not found: {path}", err=True)
        raise typer.Exit(code=2)
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        typer.echo(f"Could not parse {path}: {e}", err=True)
        raise typer.Exit(code=2)
    if not isinstance(data, dict):
        typer.echo(f"{path} must contain a mapping", err=True)
        raise typer.Exit(code=2)
    # a bare form is accepted too
    if "form" not in data:
        data = {"form": data}
    return data


def _emit(model, out: Optional[str]) -> None:
    text = json.dumps(model.model_dump(mode="json"), indent=2)
    if out:
        Path(out).write_text(text, encoding="utf-8")
        typer.echo(f"Wrote {out}")
    else:
        typer.echo(text)


@app.command()
def usage(
    job_file: str = typer.Argument(..., help="YAML/JSON job file"),
    configs: str = typer.Option("configs", help="Configs folder (rates.yaml)"),
    out: Optional[str] = typer.Option(None, help="Write JSON result to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Fabric usage for the treatment in JOB_FILE."""
    rates = _setup(configs, verbose)
    job = _load_job(job_file)
    result = calculate_fabric_usage(job["form"], job.get("templates") or [], job.get("fabric_item"), rates)
    _emit(result, out)
    if result.status != "ok":
        raise typer.Exit(code=1)


@app.command()
def orientation(
    job_file: str = typer.Argument(..., help="YAML/JSON job file"),
    direction: str = typer.Option("vertical", "--orientation", help="vertical or horizontal"),
    configs: str = typer.Option("configs", help="Configs folder (rates.yaml)"),
    out: Optional[str] = typer.Option(None, help="Write JSON result to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Geometry and cost for a single orientation."""
    rates = _setup(configs, verbose)
    if direction not in ("vertical", "horizontal"):
        typer.echo(f"Unknown orientation: {direction}", err=True)
        raise typer.Exit(code=2)
    job = _load_job(job_file)
    form = job["form"]
    templates = job.get("templates") or []
    res = resolve_inputs(form, templates, job.get("fabric_item"), rates)
    if res.params is None:
        missing = res.missing or ["fullness"]
        typer.echo(f"Cannot calculate, missing: {', '.join(missing)}", err=True)
        raise typer.Exit(code=1)
    price = resolve_fabric_price_per_yard(form, job.get("fabric_item"), rates)
    labor_rate, _ = resolve_labor_rate(form, templates, rates)
    _emit(calculate_orientation(direction, res.params, price, labor_rate, rates), out)


@app.command()
def costs(
    job_file: str = typer.Argument(..., help="YAML/JSON job file"),
    configs: str = typer.Option("configs", help="Configs folder (rates.yaml)"),
    out: Optional[str] = typer.Option(None, help="Write JSON result to this file"),
    summary: bool = typer.Option(False, help="Print a short text summary instead of JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Fabric, option and labour costs for the treatment in JOB_FILE."""
    rates = _setup(configs, verbose)
    job = _load_job(job_file)
    result = calculate_costs(
        job["form"],
        job.get("options") or [],
        job.get("templates") or [],
        job.get("treatment_type") or "",
        hierarchical_options=job.get("hierarchical_options") or [],
        selected_fabric_item=job.get("fabric_item"),
        rates=rates,
    )
    if not summary:
        _emit(result, out)
        return
    for label, value in (
        ("Fabric", result.fabric_cost),
        ("Options", result.options_cost),
        ("Labour", result.labor_cost),
        ("Total", result.total_cost),
        ("Unit price", result.unit_price),
    ):
        typer.echo(f"{label:<11}{money(to_decimal(value))}")
    for w in result.warnings:
        typer.echo(f"[warn] {w}")


@app.command()
def validate(
    job_file: str = typer.Argument(..., help="YAML/JSON job file"),
    configs: str = typer.Option("configs", help="Configs folder (rates.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Check that a job resolves to a complete set of measurements."""
    rates = _setup(configs, verbose)
    job = _load_job(job_file)
    res = resolve_inputs(job["form"], job.get("templates") or [], job.get("fabric_item"), rates)
    for w in res.warnings:
        typer.echo(f"[warn] {w}")
    if res.defaults_applied:
        typer.echo(f"Defaults applied: {', '.join(res.defaults_applied)}")
    if res.missing:
        typer.echo(f"Missing inputs: {', '.join(res.missing)}")
        raise typer.Exit(code=2)
    if not res.fullness_resolved:
        typer.echo("Missing fullness: select a heading or enter heading_fullness")
        raise typer.Exit(code=2)
    typer.echo("OK: Required inputs present.")


if __name__ == "__main__":
    app()
