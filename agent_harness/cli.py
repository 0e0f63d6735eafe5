"""
Agent Harness CLI

Command-line interface for the roles catalog and the temporary-branch
safety net.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from . import __version__
from .config import HarnessConfig, load_config, create_default_config
from .agents import StaticRoleCatalog
from .git import GitPrimitives
from .snapshot import SnapshotManager


console = Console()


@click.group()
@click.version_option(__version__, prog_name="agent-harness")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: str, verbose: bool):
    """Agent Harness - agent delegation and git safety net for AI coding sessions"""
    ctx.ensure_object(dict)

    config = HarnessConfig()
    if config_path:
        try:
            config = load_config(config_path)
        except FileNotFoundError as e:
            console.print(f"[red]✗[/red] {e}")
            sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.logging.level, logging.INFO),
        format=config.logging.format,
    )
    ctx.obj["config"] = config


def _snapshot_manager(config: HarnessConfig, repo: Optional[str] = None) -> SnapshotManager:
    git = GitPrimitives(
        repo_path=repo or config.git.repo_path,
        branch_prefix=config.git.branch_prefix,
    )
    return SnapshotManager(
        git,
        enabled=config.git.enabled,
        force_delete=config.git.force_delete,
        commit_prefix=config.git.commit_prefix,
        history_limit=config.git.history_limit,
    )


@cli.command()
def init():
    """Initialize a new configuration file."""
    config_path = Path("agent-harness.yaml")

    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    config_path.write_text(create_default_config())
    console.print(f"[green]✓[/green] Created {config_path}")
    console.print("\nEdit the roles section, then run:")
    console.print("  [cyan]agent-harness -c agent-harness.yaml roles[/cyan]")


@cli.command()
@click.pass_context
def roles(ctx):
    """List roles agents can be spawned with."""
    catalog = StaticRoleCatalog(ctx.obj["config"].roles)

    if not len(catalog):
        console.print("[yellow]No roles configured[/yellow]")
        return

    table = Table(title="Agent Roles")
    table.add_column("Role", style="cyan")
    table.add_column("Level")
    table.add_column("Description")

    for name in catalog.names():
        role = catalog.get(name)
        table.add_row(name, role.level, role.description)

    console.print(table)


# =============================================================================
# Git Commands
# =============================================================================

@cli.group()
def git():
    """Inspect and retire the temporary branch."""
    pass


@git.command("status")
@click.option("--repo", "-r", type=click.Path(), help="Repository path (overrides config)")
@click.pass_context
def git_status(ctx, repo: Optional[str]):
    """Show git integration status."""
    manager = _snapshot_manager(ctx.obj["config"], repo)
    asyncio.run(manager.initialize())
    status = manager.get_status()

    def mark(value: bool) -> str:
        return "[green]✓[/green]" if value else "[red]✗[/red]"

    console.print(Panel(
        f"Git available: {mark(status['git_available'])}\n"
        f"Repository: {mark(status['is_git_repo'])}\n"
        f"Current branch: [cyan]{status['original_branch'] or '-'}[/cyan]",
        title="🌿 Git Integration"
    ))


@git.command("check")
@click.option("--original", "-o", required=True, help="Branch the session started from")
@click.option("--repo", "-r", type=click.Path(), help="Repository path (overrides config)")
@click.pass_context
def git_check(ctx, original: str, repo: Optional[str]):
    """Report whether the current temporary branch can be cleaned up."""
    manager = _snapshot_manager(ctx.obj["config"], repo)

    async def run():
        resumed = await manager.resume(original)
        if not resumed.success:
            return None, resumed.error
        decision = await manager.should_perform_cleanup()
        return decision, None

    decision, error = asyncio.run(run())
    if error:
        console.print(f"[red]✗[/red] {error}")
        sys.exit(1)

    if decision.should_cleanup:
        console.print(f"[green]✓[/green] {manager.state.feature_branch} can be cleaned up")
    else:
        console.print(f"[yellow]•[/yellow] Cleanup not possible: {decision.reason}")


@git.command("history")
@click.option("--original", "-o", required=True, help="Branch the session started from")
@click.option("--repo", "-r", type=click.Path(), help="Repository path (overrides config)")
@click.pass_context
def git_history(ctx, original: str, repo: Optional[str]):
    """List the snapshots (commits) on the temporary branch."""
    manager = _snapshot_manager(ctx.obj["config"], repo)

    async def run():
        resumed = await manager.resume(original)
        if not resumed.success:
            return None, resumed.error
        return await manager.get_snapshot_summaries(), None

    summaries, error = asyncio.run(run())
    if error:
        console.print(f"[red]✗[/red] {error}")
        sys.exit(1)

    table = Table(title=f"Snapshots on {manager.state.feature_branch}")
    table.add_column("#", style="cyan")
    table.add_column("Commit")
    table.add_column("Instruction")
    table.add_column("Date")

    for summary in summaries:
        table.add_row(str(summary.id), summary.short_hash, summary.instruction, summary.timestamp)

    console.print(table)


@git.command("cleanup")
@click.option("--original", "-o", required=True, help="Branch to switch back to")
@click.option("--repo", "-r", type=click.Path(), help="Repository path (overrides config)")
@click.pass_context
def git_cleanup(ctx, original: str, repo: Optional[str]):
    """Switch back to the original branch and delete the temporary one."""
    manager = _snapshot_manager(ctx.obj["config"], repo)

    async def run():
        resumed = await manager.resume(original)
        if not resumed.success:
            return None, resumed.error
        return await manager.perform_cleanup(), None

    result, error = asyncio.run(run())
    error = error or (result.error if not result.success else None)
    if error:
        console.print(f"[red]✗[/red] {error}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Switched back to {original}")
    if result.deleted_branch:
        console.print(f"[green]✓[/green] Deleted {result.deleted_branch}")
    if result.warning:
        console.print(f"[yellow]![/yellow] {result.warning}")


@git.command("merge")
@click.option("--original", "-o", required=True, help="Branch to merge into")
@click.option("--repo", "-r", type=click.Path(), help="Repository path (overrides config)")
@click.pass_context
def git_merge(ctx, original: str, repo: Optional[str]):
    """Merge the temporary branch into the original branch."""
    manager = _snapshot_manager(ctx.obj["config"], repo)

    async def run():
        resumed = await manager.resume(original)
        if not resumed.success:
            return resumed
        return await manager.merge_feature_branch()

    result = asyncio.run(run())
    if not result.success:
        console.print(f"[red]✗[/red] {result.error}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Merged {result.branch} into {original}")


# =============================================================================
# Main
# =============================================================================

def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
