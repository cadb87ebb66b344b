"""CLI entry point for goaploop built with Typer."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from goaploop.cli.runtime import ScenarioContext, build_scenario_context, load_cli_config
from goaploop.core.models import LoopStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from goaploop.core.loop import LoopOutcome
    from goaploop.core.planner import Plan


app = typer.Typer(add_completion=False, no_args_is_help=True)


ScenarioArgument = Annotated[Path, typer.Argument(help="Path to a scenario TOML file.")]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", "--json-output", help="Emit JSON instead of text."),
]
VerboseFlag = Annotated[bool, typer.Option("--verbose", "-v", help="Write logs to stderr.")]


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str))


def _prepare_context(
    scenario: Path,
    *,
    json_logs: bool,
    verbose: bool,
    failures: Sequence[str] = (),
    max_cycles: int | None = None,
    cycle_delay: float | None = None,
) -> ScenarioContext:
    try:
        config = load_cli_config(scenario, max_cycles=max_cycles, cycle_delay=cycle_delay)
    except FileNotFoundError as exc:
        typer.echo(f"Scenario file not found: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except (ValueError, ValidationError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    return build_scenario_context(
        config,
        json_logs=json_logs,
        silence_logs=not verbose,
        failures=failures,
    )


def _plan_lines(plan: Plan) -> list[str]:
    lines = [f"Plan cost: {plan.cost:.2f}", "Actions:"]
    for index, action in enumerate(plan.actions, start=1):
        lines.append(f"  {index}. {action.name} (cost={action.cost:.2f}, strategy={action.strategy})")
        if action.rationale:
            lines.append(f"     reason: {action.rationale}")
    return lines


def _no_plan(context: ScenarioContext, *, json_output: bool) -> None:
    search = context.planner.last_search
    reason = search.reason if search is not None else "frontier_exhausted"
    if json_output:
        _emit_json({"plan": None, "reason": reason})
    else:
        typer.echo(f"No viable plan ({reason}).")
    raise typer.Exit(code=1)


@app.callback()
def cli_root() -> None:
    """Goal-oriented action planning with an OODA execution loop."""


@app.command("plan")
def plan_command(
    scenario: ScenarioArgument,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Search for a plan from the scenario's start state to its goal."""
    context = _prepare_context(scenario, json_logs=json_output, verbose=verbose)
    plan = context.planner.generate_plan(context.start, context.goal)
    if plan is None:
        _no_plan(context, json_output=json_output)
        return

    if json_output:
        _emit_json(
            {
                "start": context.start.as_dict(),
                "goal": context.goal.as_dict(),
                "plan": plan.model_dump(mode="json"),
            },
        )
        return
    typer.echo("\n".join(_plan_lines(plan)))


@app.command("analyze")
def analyze_command(
    scenario: ScenarioArgument,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Plan the scenario and report cost, duration and parallel groups."""
    context = _prepare_context(scenario, json_logs=json_output, verbose=verbose)
    plan = context.planner.generate_plan(context.start, context.goal)
    if plan is None:
        _no_plan(context, json_output=json_output)
        return
    analysis = context.planner.analyze_plan(plan)

    if json_output:
        _emit_json({"plan": plan.model_dump(mode="json"), "analysis": analysis.model_dump(mode="json")})
        return

    lines = _plan_lines(plan)
    lines.extend(
        [
            f"Total cost: {analysis.total_cost:.2f}",
            f"Estimated duration: {analysis.estimated_duration_ms} ms",
            "Parallelizable groups:",
        ],
    )
    if analysis.parallelizable_groups:
        lines.extend(f"  - {', '.join(group)}" for group in analysis.parallelizable_groups)
    else:
        lines.append("  (none)")
    typer.echo("\n".join(lines))


def _outcome_payload(outcome: LoopOutcome) -> dict[str, Any]:
    return {
        "status": outcome.status.value,
        "reason": outcome.reason,
        "cycles": outcome.cycles,
        "final_state": outcome.state.as_dict(),
        "final_plan": outcome.plan.names if outcome.plan is not None else None,
        "history": [entry.model_dump(mode="json") for entry in outcome.history],
    }


@app.command("run")
def run_command(
    scenario: ScenarioArgument,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
    fail: Annotated[
        list[str] | None,
        typer.Option("--fail", help="Force the named action to fail on its first attempt."),
    ] = None,
    max_cycles: Annotated[int | None, typer.Option(help="Override loop.max_cycles.")] = None,
    cycle_delay: Annotated[float | None, typer.Option(help="Override loop.cycle_delay_sec.")] = None,
) -> None:
    """Execute the scenario through the OODA loop with simulated executors."""
    context = _prepare_context(
        scenario,
        json_logs=json_output,
        verbose=verbose,
        failures=fail or (),
        max_cycles=max_cycles,
        cycle_delay=cycle_delay,
    )
    loop = context.build_loop()
    outcome = asyncio.run(loop.run(None, context.start, context.goal))
    payload = _outcome_payload(outcome)

    if json_output:
        _emit_json(payload)
    else:
        lines = [
            f"Status: {payload['status']} ({payload['reason']})",
            f"Cycles: {payload['cycles']}",
            "History:",
        ]
        for entry in outcome.history:
            if entry.kind.value == "plan_updated":
                lines.append(f"  * plan updated: {', '.join(entry.new_plan) or '(empty)'}")
            elif entry.error:
                lines.append(f"  {entry.step}. {entry.action} FAILED: {entry.error}")
            else:
                lines.append(f"  {entry.step}. {entry.action} ok")
        typer.echo("\n".join(lines))

    if outcome.status is not LoopStatus.completed:
        raise typer.Exit(code=1)


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the goaploop CLI and return the exit status."""
    command = typer.main.get_command(app)
    try:
        args = list(argv) if argv is not None else None
        result = command.main(args=args, prog_name="goaploop", standalone_mode=False)
    except SystemExit as exc:  # pragma: no cover - Typer propagates exit codes via SystemExit
        return int(exc.code or 0)
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
