"""CLI entrypoint for spendeval."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from spendeval.config import settings
from spendeval.logging import setup_logging
from spendeval.types import BatchResult, GateCategory, Verdict

app = typer.Typer(name="spendeval", help="Spend Analyzer eval harness — agent evals with a CI quality gate.")
console = Console()


def _render_batch(result: BatchResult) -> None:
    table = Table(title=f"Eval Results — {result.suite or result.run_id}")
    table.add_column("Test Case", style="cyan")
    table.add_column("Result", justify="center")
    table.add_column("Failure")
    table.add_column("Score", justify="right")
    table.add_column("Rows", justify="right")
    table.add_column("Trace ID")
    table.add_column("Session ID")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Error", overflow="fold")

    for r in result.reports:
        status = "[green]PASS[/]" if r.verdict == Verdict.PASS else "[red]FAIL[/]"
        table.add_row(
            r.test_case_id,
            status,
            r.failure.value if r.failure else "-",
            f"{r.score:g}" if r.score is not None else "-",
            str(r.row_count),
            r.trace_id or "-",
            r.session_id or "-",
            f"{r.elapsed_ms:.0f}",
            r.error or "-",
        )
    console.print(table)

    avg = f"{result.average_score:.2f}" if result.average_score is not None else "N/A"
    console.print("\n[bold]========== EVAL SUMMARY ==========[/]")
    console.print(f"Total Prompts        : {result.total_cases}")
    console.print(f"Evaluated Prompts    : {result.scored_cases}")
    console.print(f"Reliability Failures : {result.reliability_failures}")
    console.print(f"Quality Failures     : {result.quality_failures}")
    console.print(f"Average Score        : {avg}")
    for name, count in sorted(result.failure_counts.items()):
        console.print(f"  {name:<19}: {count}")


@app.command()
def run(
    suite: str = typer.Option(..., help="Path to JSONL suite file"),
    adapter: str = typer.Option("http", help="Agent adapter: http | offline_stub"),
    max_cases: int = typer.Option(0, "--max-cases", help="Limit cases (0 = all)"),
    policy: str = typer.Option("", help="Optional quality gate YAML (defaults to environment thresholds)"),
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
) -> None:
    """Run an eval suite and apply the CI quality gate."""
    setup_logging(log_level)

    from spendeval.runners.runner import execute_run

    try:
        result = asyncio.run(
            execute_run(
                suite_path=suite,
                adapter_name=adapter,
                max_cases=max_cases,
                policy_path=policy,
            )
        )
    except (OSError, ValueError) as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=2)

    _render_batch(result)

    gate = result.gate
    if gate.category == GateCategory.EMPTY_BATCH:
        console.print("\n[bold red]No results captured — treating as failure.[/]")
        raise typer.Exit(code=1)

    if gate.passed:
        console.print("\n[bold green]CI QUALITY GATE PASSED[/]")
        return

    console.print(f"\n[bold red]CI QUALITY GATE FAILED ({gate.category.value})[/]")
    for reason in gate.reasons:
        console.print(f"  - {reason}")
    raise typer.Exit(code=1)


def _langfuse_client():
    from spendeval.observability.langfuse import LangfuseClient
    return LangfuseClient()


@app.command("wait-score")
def wait_score(
    session: str = typer.Option(..., help="Session id of an earlier agent invocation"),
    timeout: float = typer.Option(settings.score_timeout_s, help="Overall wait in seconds"),
    interval: float = typer.Option(settings.poll_interval_s, help="Poll interval in seconds"),
) -> None:
    """Wait for the trace and eval score of an existing session."""
    setup_logging(settings.log_level)

    from spendeval.observability.waiter import ScoreTimeout, ScoreWaiter

    async def _wait():
        async with _langfuse_client() as client:
            resolved = await ScoreWaiter(client).wait_for_score(session, timeout, interval)
            return resolved, client.trace_url(resolved.trace_id)

    try:
        resolved, url = asyncio.run(_wait())
    except ScoreTimeout as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1)

    console.print(f"[green]Score:[/] {resolved.value:g}  trace={resolved.trace_id}  after {resolved.elapsed_s:.0f}s")
    if url:
        console.print(f"[dim]{url}[/]")


if __name__ == "__main__":
    app()
