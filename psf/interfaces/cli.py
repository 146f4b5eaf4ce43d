"""
Command-line interface for the PSF toolkit
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.config import Config
from ..core.exceptions import PSFError, ValidationError
from ..core.system import PSFSystem
from ..inference.guidance import compute_guidance
from ..inference.information_metrics import temporal_metrics
from ..inference.levels import LEVELS, level_label
from ..inference.modifiers import compute_modifiers
from ..inference.reporting import (
    compare_runs, compare_with_assumptions, pooled_temporal_metrics, summarize_history,
)
from ..inference.types import ClassificationOutput, DimensionScores, ProbeRequest, RunRecord, SystemProfile


app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


def setup_logging(debug: bool = False, verbose: bool = False, config: Optional[Config] = None) -> None:
    """Setup logging configuration with optional debug control"""
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        level_name = str(config.get('logging.level', 'INFO')) if config else 'INFO'
        log_level = getattr(logging, level_name.upper(), logging.INFO)
    else:
        log_level = logging.WARNING

    fmt = config.get('logging.format') if config else None
    logging.basicConfig(
        level=log_level,
        format=fmt or '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    if not debug:
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('psf').setLevel(log_level)


def build_system(config: Config) -> PSFSystem:
    return PSFSystem(config)


def _load_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Could not read {path}: {exc}")


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(code=1)


def _profile(stakes: str, expertise: str, confidence_badges: bool, interrupt_button: bool,
             safe_mode: bool, rationale_view: bool) -> SystemProfile:
    return SystemProfile(
        stakes=stakes,
        expertise=expertise,
        confidence_badges=confidence_badges,
        interrupt_button=interrupt_button,
        safe_mode=safe_mode,
        rationale_view=rationale_view,
    )


def _render_output(output: ClassificationOutput) -> None:
    console.print(f"[bold]{level_label(output.level)}[/bold]  overall {output.overall_score:.2f}")

    dims = Table(title="Core dimensions")
    dims.add_column("Dimension")
    dims.add_column("Score", justify="right")
    for key, value in output.dimensions.to_dict().items():
        dims.add_row(key, f"{value:.2f}")
    console.print(dims)

    metrics = output.metrics.to_dict()
    if metrics:
        console.print("Temporal metrics: " + ", ".join(f"{k}={v:.2f}" for k, v in metrics.items()))

    if output.modifiers is not None:
        _render_modifiers(output.modifiers.to_dict())

    for item in output.guidance:
        console.print(f"• [bold]{item.title}[/bold] ({item.category})\n  {item.summary}")
    for note in output.notes:
        console.print(f"[dim]{escape(note)}[/dim]")


def _render_assumption(output: ClassificationOutput, assumed_level: int) -> None:
    comparison = compare_with_assumptions(output, assumed_level=assumed_level)
    if comparison.level_gap == 0:
        console.print(f"Assumed level {assumed_level} matches the result.")
        return
    direction = "less" if comparison.level_worse_than_assumed else "more"
    console.print(
        f"Assumed level {assumed_level}, actual {comparison.actual_level}: "
        f"{direction} predictable than assumed."
    )


def _render_modifiers(modifiers: dict) -> None:
    table = Table(title="Modifiers")
    table.add_column("Modifier")
    table.add_column("Score", justify="right")
    for key, value in modifiers.items():
        table.add_row(key, f"{value:.2f}")
    console.print(table)


@app.callback()
def main() -> None:
    """PSF: predictability assessment toolkit."""
    return


@app.command()
def probe(
    input_path: Path = typer.Option(..., "--input", "-i", help="Probe request JSON file"),
    generate: Optional[int] = typer.Option(
        None, "--generate", help="Generate N samples through the model when the request has none"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw output JSON"),
    assumed_level: Optional[int] = typer.Option(
        None, "--assumed-level", min=1, max=5, help="Level you expected, shown against the result"
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    debug: bool = typer.Option(False, "--debug"),
) -> None:
    """Classify a probe described by a JSON request file."""
    try:
        config = Config(config_path)
        setup_logging(debug, verbose, config)
        request = ProbeRequest.from_dict(_load_json(input_path))
        system = build_system(config)
        if generate is not None:
            output = system.run_probe_with_generation(request, generate)
        else:
            output = system.run_probe(request)
    except PSFError as exc:
        _fail(exc)

    if as_json:
        console.print_json(json.dumps(output.to_dict()))
    else:
        _render_output(output)
        if assumed_level is not None:
            _render_assumption(output, assumed_level)


@app.command("generate")
def generate_cmd(
    prompt: str = typer.Option(..., "--prompt", help="Prompt sent to the simulated system"),
    description: Optional[str] = typer.Option(None, "--description", help="System description"),
    count: int = typer.Option(5, "--count", help="Number of responses"),
    config_path: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Generate sample outputs for a prompt."""
    try:
        system = build_system(Config(config_path))
        responses = system.generate_responses(prompt, description, count)
    except PSFError as exc:
        _fail(exc)
    console.print_json(json.dumps({"responses": responses}))


@app.command()
def modifiers(
    stakes: str = typer.Option("medium", "--stakes", help="low|medium|high"),
    expertise: str = typer.Option("intermediate", "--expertise", help="novice|intermediate|expert"),
    confidence_badges: bool = typer.Option(False, "--confidence-badges"),
    interrupt_button: bool = typer.Option(False, "--interrupt-button"),
    safe_mode: bool = typer.Option(False, "--safe-mode"),
    rationale_view: bool = typer.Option(False, "--rationale-view"),
) -> None:
    """Show modifier scores for a system profile."""
    try:
        profile = _profile(stakes, expertise, confidence_badges, interrupt_button, safe_mode, rationale_view)
    except PSFError as exc:
        _fail(exc)
    _render_modifiers(compute_modifiers(profile).to_dict())


@app.command()
def guidance(
    level: int = typer.Option(..., "--level", min=1, max=5, help="PSF level 1-5"),
    stakes: str = typer.Option("medium", "--stakes", help="low|medium|high"),
    expertise: str = typer.Option("intermediate", "--expertise", help="novice|intermediate|expert"),
    confidence_badges: bool = typer.Option(False, "--confidence-badges"),
    interrupt_button: bool = typer.Option(False, "--interrupt-button"),
    safe_mode: bool = typer.Option(False, "--safe-mode"),
    rationale_view: bool = typer.Option(False, "--rationale-view"),
) -> None:
    """List design guidance for a level and profile."""
    try:
        profile = _profile(stakes, expertise, confidence_badges, interrupt_button, safe_mode, rationale_view)
    except PSFError as exc:
        _fail(exc)
    mods = compute_modifiers(profile)
    # Dimensions do not affect selection; pass the neutral midpoint
    items = compute_guidance(level, DimensionScores(T=0.5, C=0.5, L=0.5), mods, profile)
    for item in items:
        console.print(f"[bold]{item.id}[/bold] ({item.category}) {item.title}")


@app.command()
def levels() -> None:
    """Show the five-level spectrum."""
    table = Table(title="PSF levels")
    table.add_column("Level", justify="right")
    table.add_column("Label")
    table.add_column("Summary")
    for level, info in LEVELS.items():
        table.add_row(str(level), info['label'], info['summary'])
    console.print(table)


@app.command()
def metrics(
    samples: Path = typer.Option(..., "--samples", help="JSON list of output strings"),
) -> None:
    """Compute temporal entropy and variation rate for stored samples."""
    try:
        data = _load_json(samples)
        if not isinstance(data, list) or not all(isinstance(s, str) for s in data):
            raise ValidationError("Samples file must contain a JSON list of strings")
    except PSFError as exc:
        _fail(exc)

    result = temporal_metrics(data)
    if result is None:
        console.print("No non-empty samples; metrics unavailable.")
        return
    console.print_json(json.dumps({
        "temporalEntropy": result.entropy,
        "temporalVariationRate": result.variation_rate,
    }))


@app.command()
def compare(
    baseline: Path = typer.Argument(..., help="Baseline output JSON"),
    variant: Path = typer.Argument(..., help="Variant output JSON"),
) -> None:
    """Show variant minus baseline differences."""
    try:
        base = ClassificationOutput.from_dict(_load_json(baseline))
        var = ClassificationOutput.from_dict(_load_json(variant))
    except PSFError as exc:
        _fail(exc)
    delta = compare_runs(base, var)
    console.print(f"Level: {delta['level']:+d}")
    console.print(f"T: {delta['T']:+.2f} · C: {delta['C']:+.2f} · L: {delta['L']:+.2f}")


@app.command()
def summarize(
    history: Path = typer.Argument(..., help="JSON list of output objects"),
) -> None:
    """Average dimensions over a list of probe outputs."""
    try:
        data = _load_json(history)
        if not isinstance(data, list):
            raise ValidationError("History file must contain a JSON list")
        outputs = [ClassificationOutput.from_dict(item) for item in data]
    except PSFError as exc:
        _fail(exc)

    summary = summarize_history(outputs)
    if summary is None:
        console.print("No probes recorded.")
        return
    console.print(f"Probes: {summary.total}")
    console.print(f"Average T: {summary.avg_T:.2f}, C: {summary.avg_C:.2f}, L: {summary.avg_L:.2f}")
    console.print("Levels: " + " ".join(str(level) for level in summary.levels))


@app.command()
def pooled(
    history: Path = typer.Argument(..., help="JSON list of run records"),
    prompt: str = typer.Option(..., "--prompt", help="Prompt whose samples are pooled"),
) -> None:
    """Temporal metrics over every stored sample of one prompt."""
    try:
        data = _load_json(history)
        if not isinstance(data, list):
            raise ValidationError("History file must contain a JSON list")
        records = [RunRecord.from_dict(item) for item in data]
    except PSFError as exc:
        _fail(exc)

    result = pooled_temporal_metrics(records, prompt)
    if result is None:
        console.print("Fewer than three samples recorded for this prompt.")
        return
    console.print_json(json.dumps({
        "temporalEntropy": result.entropy,
        "temporalVariationRate": result.variation_rate,
    }))


if __name__ == "__main__":
    app()
