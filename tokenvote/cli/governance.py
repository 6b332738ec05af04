#!/usr/bin/env python3
"""
Tokenvote Governance CLI

Replays governance scenarios against a fresh in-memory engine.

Usage:
    tokenvote simulate <scenario.toml> [--config FILE] [--json]
    tokenvote commitment <text>

Scenario format:

    owner = "0x..."
    start_time = 1700000000        # optional, ledger seconds

    [balances]                     # whole tokens
    "0xabc..." = 2

    [[steps]]
    op = "create_proposal"
    caller = "0x..."
    name = "P1"
    description = "Fund the audit"
    duration = 100                 # optional, defaults to voting_period
    voters = ["0xabc..."]
    payload = "audit-2026"         # or commitment = "0x<64 hex>"

    [[steps]]
    op = "advance"
    seconds = 101
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from tokenvote import __version__
from tokenvote.config import load_config
from tokenvote.exceptions import GovernanceError
from tokenvote.governance import GovernanceEngine, commitment_of
from tokenvote.governance.proposals import ProposalState
from tokenvote.tokens import TokenBalances


console = Console()

STATE_STYLES = {
    ProposalState.INITIALIZED: "yellow",
    ProposalState.OPEN: "bold yellow",
    ProposalState.EXECUTED: "bold green",
    ProposalState.CLOSED: "red",
}


class ScenarioClock:
    """Manually advanced ledger clock."""

    def __init__(self, start: int):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int):
        self.now += seconds


def _support(step: Dict[str, Any]) -> bool:
    support = step["support"]
    if not isinstance(support, bool):
        raise click.ClickException(f"support must be true or false, got {support!r}")
    return support


def _duration(step: Dict[str, Any]) -> Optional[int]:
    if "duration" not in step:
        return None
    return int(step["duration"])


def _commitment(step: Dict[str, Any]) -> str:
    if "commitment" in step:
        return step["commitment"]
    return commitment_of(step.get("payload", step["name"]))


OPERATIONS: Dict[str, Callable[[GovernanceEngine, Dict[str, Any]], Any]] = {
    "create_proposal": lambda e, s: e.create_proposal(
        s["caller"], s["name"], s.get("description", ""), _duration(s),
        s.get("voters", []), _commitment(s),
    ),
    "open_voting": lambda e, s: e.open_voting(s["caller"], s["name"]),
    "vote": lambda e, s: e.vote(s["caller"], s["name"], _support(s), int(s["power"])),
    "execute_proposal": lambda e, s: e.execute_proposal(s["caller"], s["name"]),
    "close_proposal": lambda e, s: e.close_proposal(s["caller"], s["name"]),
    "delete_proposal": lambda e, s: e.delete_proposal(s["caller"], s["name"]),
    "rename_proposal": lambda e, s: e.rename_proposal(s["caller"], s["name"], s["new_name"]),
    "set_controller": lambda e, s: e.set_controller(s["caller"], s["controller"]),
    "pause_voting": lambda e, s: e.pause_voting(s["caller"]),
    "resume_voting": lambda e, s: e.resume_voting(s["caller"]),
    "transfer_ownership_with_token": lambda e, s: e.transfer_ownership_with_token(
        s["caller"], s["new_owner"],
    ),
    "accept_ownership": lambda e, s: e.accept_ownership(s["caller"]),
    "cancel_ownership_transfer": lambda e, s: e.cancel_ownership_transfer(s["caller"]),
}


def run_scenario(
    scenario: Dict[str, Any],
    config_path: Optional[str] = None,
) -> Tuple[GovernanceEngine, List[Dict[str, Any]]]:
    """
    Build an engine from *scenario* and apply its steps in order.

    A failing step is recorded with its error and replay continues.
    """
    config = load_config(config_path)
    clock = ScenarioClock(int(scenario.get("start_time", 0)))
    balances = TokenBalances.from_tokens(
        (holder, Decimal(str(amount)))
        for holder, amount in scenario.get("balances", {}).items()
    )
    engine = GovernanceEngine(scenario["owner"], balances, config=config, clock=clock)

    outcomes = []
    for index, step in enumerate(scenario.get("steps", []), 1):
        op = step.get("op")
        if op == "advance":
            clock.advance(int(step["seconds"]))
            outcomes.append({"step": index, "op": op, "ok": True, "detail": f"t={clock.now}"})
            continue
        handler = OPERATIONS.get(op)
        if handler is None:
            raise click.ClickException(f"Step {index}: unknown op {op!r}")
        try:
            handler(engine, step)
        except GovernanceError as e:
            outcomes.append({"step": index, "op": op, "ok": False, "detail": f"{type(e).__name__}: {e}"})
        except KeyError as e:
            raise click.ClickException(f"Step {index} ({op}): missing field {e}")
        except click.ClickException as e:
            raise click.ClickException(f"Step {index} ({op}): {e.message}")
        else:
            outcomes.append({"step": index, "op": op, "ok": True, "detail": ""})
    return engine, outcomes


def render(engine: GovernanceEngine, outcomes: List[Dict[str, Any]]):
    steps = Table(title="Steps")
    steps.add_column("#", justify="right")
    steps.add_column("Operation")
    steps.add_column("Result")
    steps.add_column("Detail", overflow="fold")
    for o in outcomes:
        result = "[green]ok[/green]" if o["ok"] else "[red]rejected[/red]"
        steps.add_row(str(o["step"]), o["op"], result, o["detail"])
    console.print(steps)

    proposals = Table(title="Proposals")
    for column in ("Name", "State", "Yes", "No", "Quorum", "Ends", "Winner"):
        proposals.add_column(column)
    for view in engine.list_proposals():
        style = STATE_STYLES.get(view.state, "")
        proposals.add_row(
            view.name,
            f"[{style}]{view.state.name}[/{style}]" if style else view.state.name,
            str(view.yes_votes),
            str(view.no_votes),
            str(view.quorum),
            str(view.end_time),
            "yes" if engine.is_winner(view.commitment_hash) else "",
        )
    console.print(proposals)
    console.print(f"Owner: {engine.owner}  Controller: {engine.controller}  Paused: {engine.paused}")


@click.group()
@click.version_option(version=__version__, prog_name="tokenvote")
def cli():
    """Tokenvote Command Line Interface

    Replay token-weighted governance scenarios.
    """
    pass


@cli.command("simulate")
@click.argument("scenario_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "-c", "config_file", type=click.Path(), help="Governance TOML config")
@click.option("--json", "as_json", is_flag=True, help="Print final state as JSON")
def simulate_cmd(scenario_file: str, config_file: Optional[str], as_json: bool):
    """Replay a scenario file.

    Examples:

        tokenvote simulate scenario.toml

        tokenvote simulate scenario.toml --config governance.toml --json
    """
    with open(Path(scenario_file), "rb") as f:
        try:
            scenario = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise click.ClickException(f"Invalid scenario file: {e}")
    if "owner" not in scenario:
        raise click.ClickException("Scenario must define an owner")

    try:
        engine, outcomes = run_scenario(scenario, config_file)
    except (GovernanceError, ValueError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps({"steps": outcomes, "state": engine.to_dict()}, indent=2))
    else:
        render(engine, outcomes)


@cli.command("commitment")
@click.argument("text")
def commitment_cmd(text: str):
    """Print the keccak-256 commitment of TEXT."""
    click.echo(commitment_of(text))


if __name__ == "__main__":
    cli()
