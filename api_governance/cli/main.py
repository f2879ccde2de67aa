"""CLI entry point for the governance ruleset store."""

import asyncio
from pathlib import Path
from typing import Any, Coroutine, Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from api_governance.exceptions import GovernanceException

app = typer.Typer(
    name="govctl",
    help="API governance CLI - manage organization rulesets",
    add_completion=False,
)

console = Console()

rulesets_app = typer.Typer(help="Manage governance rulesets")
app.add_typer(rulesets_app, name="rulesets")

SEVERITY_STYLES = {"error": "red", "warn": "yellow", "info": "blue"}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """Configure logging before any command runs."""
    from api_governance.logging_config import configure_logging

    configure_logging(log_level)


def build_repository():
    """Build the repository shared by a command's operations."""
    from api_governance.config import get_settings
    from api_governance.database import get_session_maker
    from api_governance.extraction.spectral import SpectralRuleExtractor
    from api_governance.repositories.ruleset import RulesetRepository

    settings = get_settings()
    return RulesetRepository(
        get_session_maker(),
        SpectralRuleExtractor(charset=settings.ruleset_content_charset),
        settings,
    )


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a command coroutine, turning domain errors into exit code 1."""
    from api_governance.database import dispose_engine

    async def _wrapped():
        try:
            return await coro
        finally:
            await dispose_engine()

    try:
        return asyncio.run(_wrapped())
    except GovernanceException as e:
        console.print(f"[red]✗ {e.message}[/red]")
        console.print(f"  Code: {e.error_code}")
        raise typer.Exit(1)


def _read_draft(
    file: Path,
    name: str,
    description: Optional[str],
    rule_type: Optional[str],
    artifact_type: Optional[str],
    documentation_link: Optional[str],
    provider: Optional[str],
    user: Optional[str],
):
    from pydantic import ValidationError

    from api_governance.schemas.ruleset import RulesetDraft

    try:
        return RulesetDraft(
            name=name,
            description=description,
            content=file.read_bytes(),
            rule_type=rule_type,
            artifact_type=artifact_type,
            documentation_link=documentation_link,
            provider=provider,
            created_by=user,
            updated_by=user,
        )
    except ValidationError as e:
        for error in e.errors(include_url=False):
            field = ".".join(str(loc) for loc in error["loc"]) or "ruleset"
            console.print(f"[red]✗ {field}: {error['msg']}[/red]")
        raise typer.Exit(1)


def _print_ruleset(info) -> None:
    table = Table(show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("ID", info.id)
    table.add_row("Name", info.name)
    table.add_row("Organization", info.organization)
    table.add_row("Description", info.description or "-")
    table.add_row("Rule Type", info.rule_type or "-")
    table.add_row("Artifact Type", info.artifact_type or "-")
    table.add_row("Provider", info.provider or "-")
    table.add_row("Documentation", info.documentation_link or "-")
    table.add_row("Created", f"{info.created_time or '-'} by {info.created_by or '-'}")
    table.add_row("Updated", f"{info.updated_time or '-'} by {info.updated_by or '-'}")

    console.print(table)


@app.command("init-db")
def init_database():
    """Create the governance tables."""
    from api_governance.database import init_db

    run_async(init_db())
    console.print("[green]✓ Governance schema initialized[/green]")


@rulesets_app.command("list")
def list_rulesets(
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
):
    """List the rulesets of an organization."""
    repo = build_repository()

    async def _list():
        result = await repo.get_rulesets(organization)

        if not result.count:
            console.print("[yellow]No rulesets found.[/yellow]")
            return

        table = Table(title=f"Rulesets ({result.count})")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Rule Type", style="blue")
        table.add_column("Artifact Type")
        table.add_column("Provider")
        table.add_column("Updated")

        for ruleset in result.rulesets:
            table.add_row(
                ruleset.id,
                ruleset.name,
                ruleset.rule_type or "-",
                ruleset.artifact_type or "-",
                ruleset.provider or "-",
                str(ruleset.updated_time or "-"),
            )

        console.print(table)

    run_async(_list())


@rulesets_app.command("show")
def show_ruleset(
    ruleset_id: str = typer.Argument(..., help="Ruleset ID"),
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
):
    """Show ruleset details and associated policies."""
    repo = build_repository()

    async def _show():
        info = await repo.get_ruleset_by_id(organization, ruleset_id)
        policies = await repo.get_associated_policies_for_ruleset(ruleset_id)

        console.print(f"\n[bold cyan]{info.name}[/bold cyan]")
        _print_ruleset(info)
        if policies:
            console.print("\n[bold]Associated policies:[/bold]")
            for policy_id in policies:
                console.print(f"  • {policy_id}")
        else:
            console.print("\n[dim]Not used by any policy.[/dim]")

    run_async(_show())


@rulesets_app.command("content")
def show_content(
    ruleset_id: str = typer.Argument(..., help="Ruleset ID"),
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
    raw: bool = typer.Option(False, "--raw", help="Print without syntax highlighting"),
):
    """Print the stored ruleset document."""
    repo = build_repository()

    async def _content():
        content = await repo.get_ruleset_content(organization, ruleset_id)
        if raw:
            typer.echo(content)
        else:
            console.print(Syntax(content, "yaml"))

    run_async(_content())


@rulesets_app.command("rules")
def list_rules(
    ruleset_id: str = typer.Argument(..., help="Ruleset ID"),
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
):
    """List the rules extracted from a ruleset."""
    repo = build_repository()

    async def _rules():
        rules = await repo.get_rules_for_ruleset(organization, ruleset_id)

        table = Table(title=f"Rules ({len(rules)})")
        table.add_column("Code", style="cyan")
        table.add_column("Severity")
        table.add_column("Message")

        for rule in rules:
            severity = rule.severity.value
            style = SEVERITY_STYLES.get(severity, "white")
            table.add_row(
                rule.code,
                f"[{style}]{severity}[/{style}]",
                rule.message_on_failure or "-",
            )

        console.print(table)

    run_async(_rules())


@rulesets_app.command("create")
def create_ruleset(
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
    file: Path = typer.Option(
        ...,
        "--file", "-f",
        help="Ruleset document (Spectral YAML/JSON)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    name: str = typer.Option(..., "--name", "-n", help="Ruleset name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    rule_type: Optional[str] = typer.Option(None, "--rule-type", help="API_METADATA, API_DEFINITION or API_DOCUMENTATION"),
    artifact_type: Optional[str] = typer.Option(None, "--artifact-type", help="REST_API or ASYNC_API"),
    documentation_link: Optional[str] = typer.Option(None, "--doc-link", help="Documentation link"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Ruleset provider"),
    ruleset_id: Optional[str] = typer.Option(None, "--id", help="Ruleset ID (generated if omitted)"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Acting user"),
):
    """Create a ruleset from a document file."""
    draft = _read_draft(
        file, name, description, rule_type, artifact_type, documentation_link, provider, user
    )
    if ruleset_id:
        draft = draft.model_copy(update={"id": ruleset_id})
    repo = build_repository()

    async def _create():
        info = await repo.create_ruleset(organization, draft)
        rules = await repo.get_rules_for_ruleset(organization, info.id)
        console.print(f"[green]✓ Ruleset '{info.name}' created with {len(rules)} rules[/green]")
        console.print(f"  ID: {info.id}")

    run_async(_create())


@rulesets_app.command("update")
def update_ruleset(
    ruleset_id: str = typer.Argument(..., help="Ruleset ID"),
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
    file: Path = typer.Option(
        ...,
        "--file", "-f",
        help="Ruleset document (Spectral YAML/JSON)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    name: str = typer.Option(..., "--name", "-n", help="Ruleset name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    rule_type: Optional[str] = typer.Option(None, "--rule-type", help="API_METADATA, API_DEFINITION or API_DOCUMENTATION"),
    artifact_type: Optional[str] = typer.Option(None, "--artifact-type", help="REST_API or ASYNC_API"),
    documentation_link: Optional[str] = typer.Option(None, "--doc-link", help="Documentation link"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Ruleset provider"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Acting user"),
):
    """Replace a ruleset's document and attributes."""
    draft = _read_draft(
        file, name, description, rule_type, artifact_type, documentation_link, provider, user
    )
    repo = build_repository()

    async def _update():
        info = await repo.update_ruleset(organization, ruleset_id, draft)
        rules = await repo.get_rules_for_ruleset(organization, info.id)
        console.print(f"[green]✓ Ruleset '{info.name}' updated, {len(rules)} rules[/green]")

    run_async(_update())


@rulesets_app.command("delete")
def delete_ruleset(
    ruleset_id: str = typer.Argument(..., help="Ruleset ID"),
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a ruleset and its rules."""
    if not yes:
        typer.confirm(f"Delete ruleset {ruleset_id}?", abort=True)
    repo = build_repository()

    async def _delete():
        policies = await repo.get_associated_policies_for_ruleset(ruleset_id)
        if policies:
            console.print(
                f"[yellow]Ruleset is referenced by {len(policies)} policies: "
                f"{', '.join(policies)}[/yellow]"
            )
        await repo.delete_ruleset(organization, ruleset_id)
        console.print(f"[green]✓ Ruleset {ruleset_id} deleted[/green]")

    run_async(_delete())


@rulesets_app.command("provision-defaults")
def provision_defaults(
    organization: str = typer.Option(..., "--org", "-o", help="Organization"),
    directory: Optional[Path] = typer.Option(
        None,
        "--dir",
        help="Directory of default ruleset files (defaults to the packaged set)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Acting user"),
):
    """Create the default rulesets an organization is missing."""
    from api_governance.services.default_rulesets import (
        DefaultRulesetProvisioner,
        load_default_rulesets,
    )

    repo = build_repository()

    async def _provision():
        drafts = load_default_rulesets(directory) if directory else None
        provisioner = DefaultRulesetProvisioner(repo, drafts)
        return await provisioner.provision(organization, created_by=user)

    result = run_async(_provision())

    for name in result.created:
        console.print(f"[green]✓ Created '{name}'[/green]")
    for name in result.skipped:
        console.print(f"[dim]- Skipped '{name}' (already exists)[/dim]")
    console.print(f"\n{len(result.created)} created, {len(result.skipped)} skipped")


if __name__ == "__main__":
    app()
