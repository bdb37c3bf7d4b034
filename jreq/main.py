"""jreq CLI — all commands."""

import sys
from typing import Annotated

import typer
from loguru import logger
from rich import print as rprint
from rich.table import Table
from rich.tree import Tree

from jreq.errors import ZephyrError
from jreq.models import Requirement, TestOutcome, TestTag
from jreq.requirements import RequirementsProvider
from jreq.settings import get_settings, set_default_profile
from jreq.zephyr import ZephyrAdaptor

app = typer.Typer(help="jreq: JIRA requirements, tags and Zephyr manual tests for test reports", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-k", help="Profile name from ~/.config/jreq/config.toml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log JIRA queries to stderr")] = False,
) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


# ---------------------------------------------------------------------------
# Provider factories
# ---------------------------------------------------------------------------


def get_provider(profile: str | None = None) -> RequirementsProvider:
    return RequirementsProvider.from_settings(get_settings(profile=profile))


def get_adaptor(profile: str | None = None) -> ZephyrAdaptor:
    return ZephyrAdaptor.from_settings(get_settings(profile=profile))


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _label(requirement: Requirement) -> str:
    card = f"[cyan]{requirement.card_number}[/cyan] " if requirement.card_number else ""
    return f"{card}{requirement.name} [dim]({requirement.type})[/dim]"


def _add_branches(tree: Tree, requirements: list[Requirement]) -> None:
    for requirement in requirements:
        _add_branches(tree.add(_label(requirement)), requirement.children)


def render_requirements(requirements: list[Requirement], title: str) -> Tree:
    tree = Tree(f"[bold]{title}[/bold]")
    _add_branches(tree, requirements)
    return tree


def _sorted_tags(tags: set[TestTag]) -> list[TestTag]:
    return sorted(tags, key=lambda t: (t.type, t.name))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("requirements")
def requirements_cmd(profile: ProfileOpt = None) -> None:
    """Show the requirement tree (epics and their stories)."""
    provider = get_provider(profile)
    requirements = provider.get_requirements()
    if not requirements:
        rprint(f"[yellow]No requirements found in project {provider.project_key}.[/yellow]")
        return
    rprint(render_requirements(requirements, f"Requirements — {provider.project_key}"))


@app.command("tags")
def tags_cmd(
    issue_keys: Annotated[list[str], typer.Argument(help="Issue keys (e.g. PROJ-5, 5 or #5)")],
    profile: ProfileOpt = None,
) -> None:
    """Show the tags a test outcome linked to these issues would get."""
    provider = get_provider(profile)
    tags = provider.get_tags_for(TestOutcome(title="jreq tags", issue_keys=issue_keys))

    table = Table(title=f"Tags for {', '.join(issue_keys)}")
    table.add_column("Type", style="cyan")
    table.add_column("Name")
    for tag in _sorted_tags(tags):
        table.add_row(tag.type, tag.name)

    rprint(table)


@app.command("parent")
def parent_cmd(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. PROJ-5, 5 or #5)")],
    profile: ProfileOpt = None,
) -> None:
    """Show the chain of parent requirements of an issue, nearest first."""
    provider = get_provider(profile)
    decoded_key = provider.decode_issue_key(issue_key)
    ancestors = provider.get_ancestors_of(decoded_key)
    if not ancestors:
        rprint(f"[yellow]{decoded_key} has no parent requirement.[/yellow]")
        return
    for depth, ancestor in enumerate(ancestors):
        rprint(f"{'  ' * depth}↑ {_label(ancestor)}")


@app.command("requirement-for")
def requirement_for_cmd(
    tag_type: Annotated[str, typer.Argument(help="Requirement type (e.g. Epic)")],
    name: Annotated[str, typer.Argument(help="Requirement name (issue summary)")],
    profile: ProfileOpt = None,
) -> None:
    """Find the requirement matching a tag."""
    provider = get_provider(profile)
    requirement = provider.get_requirement_for(TestTag(name=name, type=tag_type))
    if requirement is None:
        rprint(f"[red]No {tag_type} requirement named '{name}'.[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{requirement.card_number or '—'}: {requirement.name}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Type", requirement.type)
    table.add_row("Children", str(len(requirement.children)))
    table.add_row("Narrative", requirement.narrative or "_No description provided._")
    rprint(table)


@app.command("manual-tests")
def manual_tests_cmd(profile: ProfileOpt = None) -> None:
    """List manual test outcomes recorded in Zephyr."""
    adaptor = get_adaptor(profile)
    try:
        outcomes = adaptor.load_outcomes()
    except ZephyrError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Manual Tests")
    table.add_column("Title")
    table.add_column("Story", style="cyan")
    table.add_column("Result")
    table.add_column("Steps")
    table.add_column("Executed", style="dim")

    for outcome in outcomes:
        started = outcome.start_time.strftime("%Y-%m-%d %H:%M") if outcome.start_time else "—"
        table.add_row(outcome.title, outcome.story or "—", outcome.result.value, str(len(outcome.steps)), started)

    rprint(table)


@app.command("set-default")
def set_default(
    profile: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default profile in ~/.config/jreq/config.toml."""
    config_path = set_default_profile(profile)
    rprint(f'[green]✓[/green] Default profile set to "{profile}" in {config_path}')


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    try:
        settings = get_settings(profile=profile)
    except typer.Exit:
        return

    def not_set(val: str | None) -> str:
        return val or "[dim](not set)[/dim]"

    table = Table(title="jreq Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_profile", not_set(settings.default_profile))
    table.add_row("jira_url", not_set(settings.jira_url))
    table.add_row("jira_project", not_set(settings.jira_project))
    table.add_row("jira_username", not_set(settings.jira_username))
    table.add_row("jira_password", "***" if settings.jira_password else "[dim](not set)[/dim]")
    table.add_row("root_issue_type", settings.root_issue_type)
    table.add_row("link_levels", ", ".join(settings.link_levels))
    table.add_row("advance_link_levels", str(settings.advance_link_levels))

    rprint(table)
