"""Terminal front end: run commands against a snapshot, or drive a REPL."""

import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.text import Text

from .engine import Simulator
from .models import CommandResult, RepositoryState

console = Console()

STYLES = {
    "input": "dim",
    "output": "",
    "error": "red",
    "success": "green",
    "warning": "yellow",
    "system": "cyan",
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def load_state(path: Path | None) -> RepositoryState:
    """Read a JSON snapshot (camelCase or snake_case keys); a missing file means a fresh one."""
    if path is None or not path.exists():
        return RepositoryState()
    return RepositoryState.model_validate(json.loads(path.read_text()))


def dump_state(state: RepositoryState) -> str:
    return state.model_dump_json(by_alias=True, indent=2)


def print_result(result: CommandResult, echo: bool = True) -> None:
    if result.clear:
        console.clear()
        return
    for line in result.lines if echo else result.output:
        console.print(Text(line.text, style=STYLES[line.kind]), highlight=False, soft_wrap=True)
    if result.directive is not None and result.directive.kind != "close-session":
        console.print("[cyan]Use :edit to open the session buffer in your editor.[/cyan]")


@click.group()
@click.option(
    "--state", "state_path",
    envvar="GITSIM_STATE",
    type=click.Path(dir_okay=False, path_type=Path),
    help="JSON snapshot to start from",
)
@click.option(
    "--log-level",
    envvar="GITSIM_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.pass_context
def cli(ctx, state_path, log_level):
    """gitsim - a simulated git terminal for learning."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    ctx.ensure_object(dict)
    ctx.obj["state_path"] = state_path
    try:
        ctx.obj["state"] = load_state(state_path)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] invalid snapshot {state_path}: {e}")
        ctx.exit(1)


@cli.command()
@click.argument("commands", nargs=-1, required=True)
@click.option("--dump", is_flag=True, help="Print the final snapshot as JSON")
@click.option("--save", is_flag=True, help="Write the final snapshot back to --state")
@click.pass_context
def run(ctx, commands, dump, save):
    """Run each COMMAND line in order."""
    sim = Simulator(ctx.obj["state"])
    for line in commands:
        print_result(sim.run(line))

    if save:
        path = ctx.obj["state_path"]
        if path is None:
            console.print("[red]Error:[/red] --save needs --state")
            ctx.exit(1)
        path.write_text(dump_state(sim.state))
    if dump:
        click.echo(dump_state(sim.state))


@cli.command()
@click.pass_context
def repl(ctx):
    """Interactive terminal. Meta commands: :edit :undo :redo :state :quit"""
    sim = Simulator(ctx.obj["state"])
    console.print("[cyan]gitsim[/cyan] - type 'help' for commands, ':quit' to leave")

    while True:
        try:
            line = console.input("[bold]$ [/bold]")
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        meta = line.strip()
        if meta in (":quit", ":q", "exit"):
            break
        if meta == ":edit":
            text = sim.session_text
            if text is None:
                console.print("[yellow]No conflict or rebase session is open[/yellow]")
                continue
            edited = click.edit(text)
            if edited is not None:
                sim.edit(edited.rstrip("\n"))
                console.print("[green]Session buffer updated[/green]")
            continue
        if meta == ":undo":
            console.print("[green]Undone[/green]" if sim.undo() else "[yellow]Nothing to undo[/yellow]")
            continue
        if meta == ":redo":
            console.print("[green]Redone[/green]" if sim.redo() else "[yellow]Nothing to redo[/yellow]")
            continue
        if meta == ":state":
            console.print_json(dump_state(sim.state))
            continue

        print_result(sim.run(line), echo=False)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
