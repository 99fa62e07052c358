"""CLI entrypoint for the autonomous task engine."""

from __future__ import annotations

import logging

import typer

from ui.cli import commands

app = typer.Typer(help="Autonomous task engine: plan, execute and recover")
memory_app = typer.Typer(help="Memory commands")
config_app = typer.Typer(help="Configuration commands")
tools_app = typer.Typer(help="Tool commands")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("run-goal")
def run_goal_cmd(
    goal: str = typer.Argument(..., help="Goal description"),
    priority: str = typer.Option("medium", help="low, medium, high or critical"),
    constraint: list[str] = typer.Option(None, "--constraint", "-c", help="Constraint (repeatable)"),
    planning_retries: int = typer.Option(2, min=0, help="Retries for failed planning requests"),
) -> None:
    """Plan and pursue a goal once."""
    commands.run_goal(
        goal=goal,
        priority=priority,
        constraints=list(constraint or []),
        planning_retries=planning_retries,
    )


@memory_app.command("add")
def memory_add_cmd(
    text: str = typer.Argument(..., help="Memory text content"),
    kind: str = typer.Option("episodic", help="episodic, semantic or procedural"),
) -> None:
    """Store a memory entry."""
    commands.memory_add(text=text, kind=kind)


@memory_app.command("search")
def memory_search_cmd(
    query: str = typer.Argument(..., help="Search text"),
    limit: int = typer.Option(5, min=1, max=100),
) -> None:
    """Search memory by relevance."""
    commands.memory_search(query=query, limit=limit)


@memory_app.command("consolidate")
def memory_consolidate_cmd() -> None:
    """Run memory consolidation."""
    commands.memory_consolidate()


@memory_app.command("stats")
def memory_stats_cmd() -> None:
    """Show memory counts."""
    commands.memory_stats()


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


@tools_app.command("list")
def tools_list_cmd() -> None:
    """List tool status."""
    commands.tools_list()


app.add_typer(memory_app, name="memory")
app.add_typer(config_app, name="config")
app.add_typer(tools_app, name="tools")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
