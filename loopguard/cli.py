"""LoopGuard CLI: moderate content and inspect violation history."""

import asyncio
import logging

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from loopguard import __version__
from loopguard.config import load_config
from loopguard.logging import configure_logging
from loopguard.moderation.models import ContentType

console = Console()

_ACTION_STYLE = {"allow": "green", "warn": "yellow", "suspend": "red", "ban": "bold red"}


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="YAML configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """LoopGuard: content moderation decision engine.

    Classifies posts through an LLM, keeps a per-user violation history,
    and escalates enforcement for severe categories and repeat offenders.
    """
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    try:
        ctx.obj = load_config(config_path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--config")


# ── Moderate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("content")
@click.option("--type", "content_type", default="text",
              type=click.Choice([t.value for t in ContentType]),
              help="Content type; non-text content is a description or transcript")
@click.option("--user", "user_id", required=True, help="ID of the submitting user")
@click.option("--explain", is_flag=True, help="Also generate a rationale for the decision")
@click.pass_obj
def moderate(config, content: str, content_type: str, user_id: str, explain: bool):
    """Moderate CONTENT submitted by a user."""
    from loopguard.llm.usage import UsageTracker
    from loopguard.moderation.engine import ModerationEngine
    from loopguard.moderation.models import ModerationRequest

    engine = ModerationEngine.from_config(config, tracker=UsageTracker())
    if not engine.oracle.configured:
        console.print("[yellow]LLM not configured (ANTHROPIC_API_KEY); results use safe defaults.[/]")

    request = ModerationRequest(content=content, content_type=ContentType(content_type), user_id=user_id)
    if explain:
        result, rationale = asyncio.run(engine.moderate_and_explain(request))
    else:
        result, rationale = asyncio.run(engine.moderate(request)), None

    action = result.recommended_action.value
    lines = [
        f"Violation:  {'yes' if result.is_violation else 'no'}",
        f"Category:   {result.primary_category.value} "
        f"({', '.join(c.value for c in result.categories)})",
        f"Confidence: {result.confidence:.2f}",
        f"Action:     [{_ACTION_STYLE[action]}]{action}[/]",
        f"Language:   {result.language.value}",
    ]
    if result.explanation:
        lines.append(f"\n{result.explanation}")
    console.print(Panel("\n".join(lines), title="Moderation Result"))
    if rationale:
        console.print(Panel(rationale, title="Explanation"))


# ── History ──────────────────────────────────────────────────────────


@main.command()
@click.argument("user_id")
@click.pass_obj
def history(config, user_id: str):
    """Show the violation history of USER_ID."""
    from loopguard.moderation.engine import build_store
    from loopguard.moderation.history import ViolationHistory

    if config.history.backend == "memory":
        console.print("[yellow]History backend is in-memory; nothing persists between runs.[/]")

    service = ViolationHistory(build_store(config))
    snapshot = service.get_history(user_id)
    if not snapshot.records:
        console.print(f"[green]No violations recorded for {user_id}.[/]")
        return

    table = Table(title=f"Violations for {user_id} ({len(snapshot)} total)")
    table.add_column("When", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Action")
    for record in snapshot.records:
        action = record.action.value
        table.add_row(
            record.timestamp.strftime("%Y-%m-%d %H:%M"),
            record.category.value,
            f"[{_ACTION_STYLE[action]}]{action}[/]",
        )
    console.print(table)
    console.print(f"Recent (30 days): {service.count_recent_violations(user_id)}")


# ── Evaluate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("samples_path", type=click.Path(exists=True, dir_okay=False))
def evaluate(samples_path: str):
    """Report verdict accuracy for a YAML/JSON file of labelled samples."""
    from loopguard.moderation.evaluation import evaluate as run_evaluation
    from loopguard.moderation.evaluation import load_samples

    try:
        samples = load_samples(samples_path)
    except Exception as e:
        console.print(f"  [red]Failed to load samples:[/] {e}")
        raise SystemExit(1)

    report = run_evaluation(samples)
    console.print(f"\nOverall accuracy: [bold]{report.overall:.2f}%[/] over {report.sample_count} samples\n")

    for title, breakdown in (
        ("Language", report.by_language),
        ("Content type", report.by_content_type),
        ("Category", report.by_category),
    ):
        if not breakdown:
            continue
        table = Table(title=f"By {title.lower()}")
        table.add_column(title, style="cyan")
        table.add_column("Accuracy", justify="right", style="green")
        for name, value in breakdown.items():
            table.add_row(name, f"{value:.2f}%")
        console.print(table)


# ── Usage ────────────────────────────────────────────────────────────


@main.command()
def usage():
    """Summarise oracle token usage by purpose."""
    from loopguard.llm.usage import UsageTracker

    summary = UsageTracker().summarize()
    if not summary.total.calls:
        console.print("[yellow]No oracle usage recorded.[/]")
        return

    table = Table(title="Oracle usage")
    table.add_column("Purpose", style="cyan")
    table.add_column("Calls", justify="right")
    table.add_column("Input tokens", justify="right")
    table.add_column("Output tokens", justify="right")
    table.add_column("Cost (USD)", justify="right", style="green")
    for purpose, bucket in sorted(summary.by_purpose.items()):
        table.add_row(purpose, str(bucket.calls), str(bucket.input_tokens),
                      str(bucket.output_tokens), f"{bucket.cost_estimate:.4f}")
    table.add_row("[bold]total[/]", str(summary.total.calls), str(summary.total.input_tokens),
                  str(summary.total.output_tokens), f"{summary.total.cost_estimate:.4f}")
    console.print(table)


if __name__ == "__main__":
    main()
