"""
CLI interface for the SalesGrow AI gateway.

Inspects the routing tables, sends one-off gateway requests, runs
interactive coach sessions and summarizes the usage ledger.
"""

import asyncio
import sqlite3
import sys
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from salesgrow_ai.coach.engine import CoachEngine
from salesgrow_ai.coach.errors import CoachError
from salesgrow_ai.coach.scenarios import get_scenario, list_scenarios
from salesgrow_ai.coach.scoring import get_score_grade, get_weakest_dimension
from salesgrow_ai.config.loader import Settings, load_settings
from salesgrow_ai.core.gateway import AIGatewayError, build_gateway
from salesgrow_ai.core.models import DEFAULT_REGISTRY, UNLIMITED
from salesgrow_ai.core.types import AIRequest, ChatMessage, ResponseFormat, TaskType, UserPlan
from salesgrow_ai.logging_config import configure_logging
from salesgrow_ai.storage.repository import UsageRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

END_COMMANDS = ("/end", "/quit")


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file (defaults to $SALESGROW_AI_CONFIG)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """SalesGrow AI gateway CLI."""
    configure_logging(log_level="DEBUG" if verbose else "WARNING", json_logs=False)
    try:
        ctx.obj = {"settings": load_settings(config)}
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading settings:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    if ctx.invoked_subcommand is None:
        console.print("SalesGrow AI - Use --help to see available commands")


@app.command()
def models(ctx: typer.Context):
    """List the registered models and whether their credential is set."""
    settings = _settings(ctx)
    table = Table(title="Models")
    table.add_column("Model")
    table.add_column("Provider")
    table.add_column("Name")
    table.add_column("Max tokens", justify="right")
    table.add_column("Input $/M", justify="right")
    table.add_column("Output $/M", justify="right")
    table.add_column("Credential")

    for config in DEFAULT_REGISTRY.models.values():
        configured = settings.api_key(config.api_key_env) is not None
        table.add_row(
            config.id,
            config.provider.value,
            config.display_name,
            str(config.max_tokens),
            f"{config.input_price_per_million}",
            f"{config.output_price_per_million}",
            f"[green]{config.api_key_env}[/]" if configured else f"[dim]{config.api_key_env} (missing)[/]",
        )
    console.print(table)


@app.command()
def routes(
    plan: UserPlan = typer.Option(UserPlan.FREE, "--plan", "-p", help="Subscription plan"),
):
    """Show the fallback chain and daily limit of every task."""
    table = Table(title=f"Routes ({plan.value})")
    table.add_column("Task")
    table.add_column("Fallback chain")
    table.add_column("Daily limit", justify="right")

    for task in TaskType:
        limit = DEFAULT_REGISTRY.get_quota_limit(plan, task)
        table.add_row(
            task.value,
            " → ".join(DEFAULT_REGISTRY.get_models_for_task(task, plan)),
            "unlimited" if limit == UNLIMITED else str(limit),
        )
    console.print(table)


@app.command()
def scenarios():
    """List the coach practice scenarios."""
    table = Table(title="Coach scenarios")
    table.add_column("Scenario")
    table.add_column("Category")
    table.add_column("Difficulty")
    table.add_column("Turns", justify="right")

    for scenario in list_scenarios():
        table.add_row(scenario.id, scenario.category.value, scenario.difficulty.value, str(scenario.max_turns))
    console.print(table)


@app.command()
def ask(
    ctx: typer.Context,
    task: TaskType = typer.Argument(..., help="Task type used for routing and quota"),
    prompt: str = typer.Argument(..., help="User message"),
    plan: UserPlan = typer.Option(UserPlan.FREE, "--plan", "-p", help="Subscription plan"),
    user: str = typer.Option("cli-user", "--user", "-u", help="User id charged for the call"),
    system: Optional[str] = typer.Option(None, "--system", "-s", help="Optional system prompt"),
    json_output: bool = typer.Option(False, "--json", help="Request a JSON reply"),
):
    """Send one request through the gateway."""
    messages = []
    if system:
        messages.append(ChatMessage(role="system", content=system))
    messages.append(ChatMessage(role="user", content=prompt))
    request = AIRequest(
        task=task,
        user_plan=plan,
        user_id=user,
        messages=messages,
        response_format=ResponseFormat.JSON if json_output else None,
    )

    gateway = build_gateway(_settings(ctx))
    try:
        response = asyncio.run(gateway.complete(request))
    except AIGatewayError as e:
        console.print(f"[red]{e.code.value}:[/] {e.message}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(response.content)
    console.print(
        f"\n[dim]{response.model} ({response.provider}) · "
        f"{response.usage.total_tokens} tokens · ${response.usage.estimated_cost_usd:.6f} · "
        f"{'cached · ' if response.cached else ''}{response.latency_ms} ms[/]"
    )


@app.command()
def practice(
    ctx: typer.Context,
    scenario: str = typer.Argument(..., help="Scenario id (see `scenarios`)"),
    locale: Optional[str] = typer.Option(None, "--locale", "-l", help="Conversation language"),
    culture: Optional[str] = typer.Option(None, "--culture", help="Business culture of the client"),
    plan: UserPlan = typer.Option(UserPlan.FREE, "--plan", "-p", help="Subscription plan"),
    user: str = typer.Option("cli-user", "--user", "-u", help="User id charged for the calls"),
):
    """
    Practice a sales conversation with an AI client.

    Type your lines at the prompt; send /end to stop early and get scored.
    """
    if get_scenario(scenario) is None:
        console.print(f"[yellow]Unknown scenario '{scenario}', using a generic client[/]")

    settings = _settings(ctx)
    gateway = build_gateway(settings)
    engine = CoachEngine(gateway=gateway, store=gateway.cache.store, settings=settings)
    try:
        asyncio.run(_practice(engine, scenario, locale, culture, plan, user))
    except (AIGatewayError, CoachError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


async def _practice(
    engine: CoachEngine,
    scenario: str,
    locale: Optional[str],
    culture: Optional[str],
    plan: UserPlan,
    user: str,
) -> None:
    session = engine.start_session(scenario, locale, culture, user_id=user)
    console.print(f"[bold]Client:[/bold] {session.initial_message}")

    while session.is_active:
        text = typer.prompt("You").strip()
        if text.lower() in END_COMMANDS:
            break
        result = await engine.process_user_message(session.session_id, user, text, plan)
        console.print(f"[bold]Client:[/bold] {result.reply}")
        session = result.session

    feedback = await engine.generate_feedback(session.session_id, user, plan)
    grade = get_score_grade(feedback.total_score)
    _display_feedback(feedback, grade.grade, grade.label(session.locale))
    console.print(f"Weakest dimension: {get_weakest_dimension(feedback)}")
    console.print(f"Duration: {engine.get_session_duration(session.session_id)}s")


def _display_feedback(feedback, grade: str, label: str):
    """Render the scored feedback."""
    console.print(f"\n[bold]Score:[/bold] {feedback.total_score}/100  {grade} ({label})  +{feedback.xp_earned} XP")

    table = Table()
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    table.add_column("Feedback")
    for name, dimension in feedback.dimensions.items():
        table.add_row(name, f"{dimension.score:g}/{dimension.max_score:g}", dimension.feedback)
    console.print(table)

    for strength in feedback.strengths:
        console.print(f"[green]+[/] {strength}")
    for improvement in feedback.improvements:
        console.print(f"[yellow]-[/] {improvement}")
    if feedback.encouragement:
        console.print(f"\n{feedback.encouragement}")


@app.command("init-ledger")
def init_ledger(ctx: typer.Context):
    """Initialize the usage ledger database."""
    try:
        UsageRepository(_settings(ctx).storage.db_path).initialize_schema()
        console.print("[green]✓[/] Usage ledger initialized successfully")
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing usage ledger:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def usage(
    ctx: typer.Context,
    days: int = typer.Option(30, "--days", "-d", min=1, help="Days to summarize"),
):
    """Summarize gateway usage per task and model."""
    repository = UsageRepository(_settings(ctx).storage.db_path)
    try:
        rows = repository.summarize(days=days)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No usage ledger found[/]")
            console.print("Run `salesgrow-ai init-ledger` and enable storage.usage_ledger in your settings.\n")
            sys.exit(EXIT_CODE_PASS)
        raise

    if not rows:
        console.print(f"\n[dim]No usage recorded in the last {days} days.[/]")
        return

    table = Table(title=f"Usage (last {days} days)")
    table.add_column("Task")
    table.add_column("Model")
    table.add_column("Requests", justify="right")
    table.add_column("Cache hits", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Avg latency", justify="right")
    for row in rows:
        table.add_row(
            row["task"],
            row["model"],
            str(row["requests"]),
            str(row["cache_hits"]),
            f"{row['total_tokens']:,}",
            _format_currency(row["total_cost"]),
            f"{row['avg_latency_ms']:.0f} ms",
        )
    console.print(table)


def _format_currency(amount: float) -> str:
    return f"${abs(amount):,.4f}"


if __name__ == "__main__":
    app()
