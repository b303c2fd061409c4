"""
Command-line interface for the skill manager.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table

from skill_manager.config import ManagerConfig
from skill_manager.errors import GitHubAPIError, SkillNotInstalledError
from skill_manager.logging import disable, set_level, setup_logging
from skill_manager.manager import SkillManager
from skill_manager.models import InstallResult, InstallStatus, Skill

console = Console()

STATUS_STYLES = {
    InstallStatus.INSTALLED: "[green]✓[/green]",
    InstallStatus.ALREADY_INSTALLED: "[dim]⏭[/dim]",
    InstallStatus.FAILED: "[red]✗[/red]",
}


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Discover and install agent skills from GitHub repositories",
        prog="skill-manager",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress all log output",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to a YAML config file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    browse_parser = subparsers.add_parser("browse", help="List skills in remote repositories")
    browse_parser.add_argument(
        "-r",
        "--repo",
        action="append",
        dest="repos",
        help="Repository to scan (owner/name); repeatable",
    )
    browse_parser.add_argument("--category", help="Only show skills in this category")
    browse_parser.add_argument("--json", action="store_true", help="Output as JSON")
    browse_parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Skip fetching each SKILL.md (faster, fewer API calls)",
    )

    show_parser = subparsers.add_parser("show", help="Show a remote skill's metadata")
    show_parser.add_argument("reference", help="owner/repo/path/to/skill")

    install_parser = subparsers.add_parser("install", help="Install skills")
    install_parser.add_argument("references", nargs="+", help="owner/repo/path/to/skill")

    install_all_parser = subparsers.add_parser(
        "install-all", help="Install every skill from the configured repositories"
    )
    install_all_parser.add_argument(
        "-r",
        "--repo",
        action="append",
        dest="repos",
        help="Repository to install from (owner/name); repeatable",
    )

    subparsers.add_parser("installed", help="List installed skills")

    uninstall_parser = subparsers.add_parser("uninstall", help="Remove an installed skill")
    uninstall_parser.add_argument("name", help="Skill name, directory name or list number")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_init_parser = config_subparsers.add_parser("init", help="Initialize a new config file")
    config_init_parser.add_argument(
        "-o",
        "--output",
        default="skill-manager.yaml",
        help="Output file path",
    )
    config_subparsers.add_parser("path", help="Show config file paths")

    args = parser.parse_args()

    configure_logging(args)

    if args.command == "browse":
        asyncio.run(cmd_browse(args))
    elif args.command == "show":
        asyncio.run(cmd_show(args))
    elif args.command == "install":
        asyncio.run(cmd_install(args))
    elif args.command == "install-all":
        asyncio.run(cmd_install_all(args))
    elif args.command == "installed":
        asyncio.run(cmd_installed(args))
    elif args.command == "uninstall":
        asyncio.run(cmd_uninstall(args))
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()


def configure_logging(args: argparse.Namespace) -> None:
    """WARNING by default, DEBUG with --verbose, nothing with --quiet."""
    setup_logging("WARNING")
    if getattr(args, "verbose", False):
        set_level("DEBUG")
    if getattr(args, "quiet", False):
        disable()


def config_search_paths() -> list[tuple[str, Path]]:
    """Config files checked, in order, when no --config is given."""
    return [
        ("Current directory", Path.cwd() / "skill-manager.yaml"),
        ("Current directory (alt)", Path.cwd() / "skills-manager.yaml"),
        ("User config", Path.home() / ".config" / "skill-manager" / "config.yaml"),
    ]


def load_config(path: str | None = None) -> tuple[ManagerConfig, Path | None]:
    """Load config from *path* or the first existing search path."""
    if path:
        config_path = Path(path)
        return ManagerConfig.from_yaml(config_path), config_path

    for _, candidate in config_search_paths():
        if candidate.exists():
            try:
                return ManagerConfig.from_yaml(candidate), candidate
            except (OSError, yaml.YAMLError) as e:
                console.print(f"[yellow]Failed to load {candidate}: {e}[/yellow]")

    return ManagerConfig(), None


def _create_manager(args: argparse.Namespace) -> SkillManager:
    """Create a skill manager from CLI args."""
    config, _ = load_config(getattr(args, "config", None))
    return SkillManager(config)


async def cmd_browse(args: argparse.Namespace) -> None:
    """List skills in remote repositories."""
    async with _create_manager(args) as manager:
        result = await manager.fetch_all_skills(
            enrich=not args.no_metadata,
            repositories=args.repos or None,
        )

    skills = result.skills
    if args.category:
        skills = [s for s in skills if (s.category or "").lower() == args.category.lower()]

    for failure in result.failures:
        console.print(
            f"[yellow]Failed to fetch skills from {failure.repository}: {failure.error}[/yellow]"
        )

    if args.json:
        data = [
            {
                "id": s.id,
                "name": s.name,
                "description": s.description,
                "category": s.category,
                "repository": s.repository,
                "path": s.path,
                "tags": s.tags,
                "installed": s.is_installed,
            }
            for s in skills
        ]
        console.print_json(json.dumps(data, indent=2))
        return

    table = Table(title="Available Skills")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Description")
    table.add_column("Source", style="dim")

    for skill in skills:
        name = f"{skill.name} [green](installed)[/green]" if skill.is_installed else skill.name
        table.add_row(
            name,
            skill.category or "-",
            skill.description[:60],
            f"{skill.repository}/{skill.path}" if skill.path else skill.repository,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(skills)} skills[/dim]")
    if manager.rate_limit:
        limit = manager.rate_limit
        console.print(f"[dim]API quota: {limit.remaining}/{limit.limit}[/dim]")


async def cmd_show(args: argparse.Namespace) -> None:
    """Show a remote skill's metadata and validation."""
    async with _create_manager(args) as manager:
        try:
            skill = await manager.resolve_skill(args.reference)
            metadata, validation = await manager.inspect_skill(skill)
        except (ValueError, GitHubAPIError) as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)

    category = metadata.category or manager.parser.infer_category(metadata.name, skill.path)
    console.print(f"\n[bold]{metadata.name}[/bold]")
    console.print(f"[dim]{metadata.description}[/dim]\n")

    console.print("[bold]Metadata:[/bold]")
    console.print(f"  Repository: {skill.repository}")
    console.print(f"  Path: {skill.path or '(root)'}")
    console.print(f"  Category: {category or '-'}")
    if metadata.tags:
        console.print(f"  Tags: {', '.join(metadata.tags)}")
    if metadata.author:
        console.print(f"  Author: {metadata.author}")
    if metadata.version:
        console.print(f"  Version: {metadata.version}")
    console.print(f"  Files: {', '.join(f.name for f in skill.files)}")
    console.print(f"  Installed: {'yes' if skill.is_installed else 'no'}")

    for error in validation.errors:
        console.print(f"  [red]✗[/red] {error}")
    for warning in validation.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")


def _print_result(result: InstallResult) -> None:
    marker = STATUS_STYLES[result.status]
    if result.status == InstallStatus.INSTALLED:
        console.print(f"  {marker} Installed {result.skill.name} -> {result.local_path}")
        for path in result.failed_files:
            console.print(f"    [yellow]⚠[/yellow] Failed to download {path}")
    elif result.status == InstallStatus.ALREADY_INSTALLED:
        console.print(f"  {marker} Skipping {result.skill.name} (already installed)")
    else:
        console.print(f"  {marker} Failed to install {result.skill.name}: {result.error}")


def _batch_progress(current: int, total: int, skill: Skill, message: str) -> None:
    console.print(f"[dim]({current}/{total}) {message}[/dim]", highlight=False)


async def cmd_install(args: argparse.Namespace) -> None:
    """Install skills by reference."""
    async with _create_manager(args) as manager:
        skills: list[Skill] = []
        for reference in args.references:
            try:
                skills.append(await manager.resolve_skill(reference))
            except (ValueError, GitHubAPIError) as e:
                console.print(f"[red]Error:[/red] {reference}: {e}")

        results = await manager.install_batch(skills, _batch_progress)

    for result in results:
        _print_result(result)

    if len(skills) < len(args.references) or any(
        r.status == InstallStatus.FAILED for r in results
    ):
        sys.exit(1)


async def cmd_install_all(args: argparse.Namespace) -> None:
    """Install every skill from the configured repositories."""
    async with _create_manager(args) as manager:
        console.print(f"[dim]Install path: {manager.install_path}[/dim]")
        discovered = await manager.fetch_all_skills(
            lambda current, total, repo: console.print(
                f"[dim]Scanning {repo} ({current}/{total})[/dim]", highlight=False
            ),
            enrich=True,
            repositories=args.repos or None,
        )
        for failure in discovered.failures:
            console.print(f"[red]✗[/red] Failed to process {failure.repository}: {failure.error}")

        results = await manager.install_batch(discovered.skills, _batch_progress)

    for result in results:
        _print_result(result)

    counts = {status: 0 for status in InstallStatus}
    for result in results:
        counts[result.status] += 1

    console.print("\n[bold]Installation Summary:[/bold]")
    console.print(f"  Total skills found:  {len(discovered.skills)}")
    console.print(f"  Newly installed:     {counts[InstallStatus.INSTALLED]}")
    console.print(f"  Failed:              {counts[InstallStatus.FAILED]}")
    console.print(f"  Skipped (existing):  {counts[InstallStatus.ALREADY_INSTALLED]}")


async def cmd_installed(args: argparse.Namespace) -> None:
    """List installed skills."""
    async with _create_manager(args) as manager:
        installed = manager.list_installed()

    if not installed:
        console.print("[dim]No skills installed. Use 'skill-manager browse' to find some.[/dim]")
        return

    table = Table(title=f"Installed Skills ({manager.install_path})")
    table.add_column("#", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Source", style="dim")
    table.add_column("Installed", style="dim")

    for index, entry in enumerate(installed, start=1):
        source = entry.skill.repository
        if entry.skill.path:
            source = f"{source}/{entry.skill.path}"
        table.add_row(
            str(index),
            entry.name,
            entry.skill.description[:60],
            source,
            entry.installed_at.strftime("%Y-%m-%d"),
        )

    console.print(table)


async def cmd_uninstall(args: argparse.Namespace) -> None:
    """Remove an installed skill."""
    async with _create_manager(args) as manager:
        entry = manager.find_installed(args.name)
        if entry is None:
            console.print(f"[red]Skill not found: {args.name}[/red]")
            sys.exit(1)
        try:
            path = await manager.uninstall(entry)
        except SkillNotInstalledError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)

    console.print(f"[green]Removed {entry.name} ({path})[/green]")


def cmd_config(args: argparse.Namespace) -> None:
    """Configuration management commands."""
    if args.config_command == "show":
        _config_show(getattr(args, "config", None))
    elif args.config_command == "init":
        _config_init(args.output)
    elif args.config_command == "path":
        _config_path()
    else:
        console.print("[yellow]Usage: skill-manager config <show|init|path>[/yellow]")


def _config_show(path: str | None = None) -> None:
    """Show current configuration."""
    config, loaded_from = load_config(path)
    if loaded_from is None:
        console.print("[dim]No config file found. Using defaults.[/dim]")
    else:
        console.print(f"[dim]Loaded from: {loaded_from}[/dim]\n")

    console.print("[bold]Current Configuration:[/bold]\n")
    console.print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def _config_init(output: str) -> None:
    """Initialize a new config file."""
    output_path = Path(output)

    if output_path.exists():
        console.print(f"[red]File already exists: {output_path}[/red]")
        sys.exit(1)

    defaults = ManagerConfig()
    default_config = {
        "repositories": defaults.repositories,
        "cache_ttl_seconds": defaults.cache_ttl_seconds,
        "install_path": str(defaults.resolve_install_path()),
        "install_concurrency": defaults.install_concurrency,
        "install_delay_seconds": defaults.install_delay_seconds,
        "strict_install": defaults.strict_install,
    }

    with open(output_path, "w") as f:
        yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Created config file: {output_path}[/green]")


def _config_path() -> None:
    """Show config file search paths."""
    console.print("[bold]Config file search paths:[/bold]\n")

    for label, path in config_search_paths():
        exists = "[green]✓[/green]" if path.exists() else "[dim]✗[/dim]"
        console.print(f"  {exists} {label}: {path}")


if __name__ == "__main__":
    main()
