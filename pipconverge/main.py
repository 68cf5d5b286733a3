"""
pipconverge — CLI entrypoint.

Usage:
    pipconverge --help
    pipconverge converge --dry-run
    pipconverge install requests --version 2.31.0
    pipconverge status
    pipconverge config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from pipconverge import __version__
from pipconverge.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    LOG_LEVEL_ENV,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="pipconverge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to packages.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """pipconverge — keep pip packages in their declared state."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
    )


# ── Output helpers ──────────────────────────────────────────────


def _echo_run(result, as_json: bool, quiet: bool = False) -> None:
    """Print a ConvergeRunResult and exit 1 if anything failed."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    for outcome in result.outcomes:
        if not outcome.ok:
            click.secho(f"   ✗ {outcome.name}: {outcome.error}", fg="red")
            continue
        r = outcome.result
        if r.noop:
            if not quiet:
                installed = r.current_version or "not installed"
                click.echo(f"   ✓ {outcome.name} ({installed}) — up to date")
        elif r.dry_run:
            click.secho(f"   ⊘ would {r.description}", fg="yellow")
            click.echo(f"     {r.command}")
        else:
            click.secho(f"   ✓ {r.description}", fg="green")

    if not quiet:
        label = "would change" if result.dry_run else "changed"
        click.echo()
        click.echo(
            f"   {len(result.outcomes)} packages, "
            f"{result.changed} {label}, {result.failed} failed"
        )

    if not result.ok:
        sys.exit(1)


# ── Converge ────────────────────────────────────────────────────


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would change without changing it.")
@click.option("--only", multiple=True, help="Converge only this package (repeatable).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def converge(ctx: click.Context, dry_run: bool, only: tuple[str, ...], as_json: bool) -> None:
    """Converge every package declared in packages.yml."""
    from pipconverge.core.use_cases.converge import converge_declarations

    result = converge_declarations(
        config_path=ctx.obj.get("config_path"),
        only=list(only) or None,
        dry_run=dry_run,
    )
    _echo_run(result, as_json, quiet=ctx.obj.get("quiet", False))


# ── Single-package actions ──────────────────────────────────────


def _package_options(func):
    """Options shared by install, upgrade and remove."""
    options = [
        click.argument("name"),
        click.option("--package-name", default="", help="Distribution name (default: NAME)."),
        click.option("--version", "version", default=None, help="Exact version."),
        click.option("--options", default="", help="Extra pip flags, passed verbatim."),
        click.option("--virtualenv", default=None, help="Environment root to install into."),
        click.option("--index-url", default=None, help="Package index URL."),
        click.option("--requirements", default=None, help="Requirements file (install only)."),
        click.option("--user", default=None, help="Run pip as this user."),
        click.option("--group", default=None, help="Run pip as this group."),
        click.option("--timeout", type=int, default=None, help="Seconds before pip is killed."),
        click.option("--dry-run", is_flag=True, help="Show what would change without changing it."),
        click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON."),
        click.pass_context,
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_single(ctx: click.Context, action: str, **kwargs) -> None:
    from pipconverge.core.config.loader import (
        ConfigError,
        find_declarations_file,
        load_declarations,
    )
    from pipconverge.core.models.declaration import Settings
    from pipconverge.core.models.package import DesiredPackage
    from pipconverge.core.use_cases.converge import converge_package

    as_json = kwargs.pop("as_json")
    dry_run = kwargs.pop("dry_run")

    # Reuse index and install paths from packages.yml when there is one
    settings = Settings()
    config_path = ctx.obj.get("config_path") or find_declarations_file()
    if config_path is not None:
        try:
            settings = load_declarations(config_path).settings
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)

    fields = {
        "name": kwargs["name"],
        "package_name": kwargs["package_name"],
        "version": kwargs["version"],
        "options": kwargs["options"],
        "environment_root": kwargs["virtualenv"],
        "index_url": kwargs["index_url"] or settings.index_url,
        "requirements_path": kwargs["requirements"],
        "user": kwargs["user"],
        "group": kwargs["group"],
    }
    if kwargs["timeout"] is not None:
        fields["timeout"] = kwargs["timeout"]

    package = DesiredPackage.model_validate(fields)
    result = converge_package(package, action, paths=settings, dry_run=dry_run)
    _echo_run(result, as_json, quiet=ctx.obj.get("quiet", False))


@cli.command()
@_package_options
def install(ctx: click.Context, **kwargs) -> None:
    """Install NAME unless the declared version is already present."""
    _run_single(ctx, "install", **kwargs)


@cli.command()
@_package_options
def upgrade(ctx: click.Context, **kwargs) -> None:
    """Upgrade NAME to the version the index currently offers."""
    _run_single(ctx, "upgrade", **kwargs)


@cli.command()
@_package_options
def remove(ctx: click.Context, **kwargs) -> None:
    """Uninstall NAME (only if the installed version matches --version)."""
    _run_single(ctx, "remove", **kwargs)


# ── Observe ─────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show declared vs installed versions."""
    from pipconverge.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"📦 Packages ({len(result.packages)}):", fg="cyan", bold=True)
    for pkg in result.packages:
        if pkg.error:
            click.secho(f"   ? {pkg.name:<30} {pkg.error}", fg="red")
            continue
        marker = "✓" if pkg.in_sync else "✗"
        declared = pkg.declared_version or "*"
        installed = pkg.installed_version or "-"
        click.echo(f"   {marker} {pkg.name:<30} {pkg.action:<8} {declared:<12} {installed}")
    click.echo()


@cli.command()
@click.option(
    "-n", "limit", type=click.IntRange(min=1), default=20, show_default=True,
    help="Entries to show.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show recent entries from the audit ledger."""
    from pipconverge.core.config.loader import (
        ConfigError,
        find_declarations_file,
        load_declarations,
        resolve_audit_path,
    )
    from pipconverge.core.persistence.audit import AuditWriter

    config_path = ctx.obj.get("config_path") or find_declarations_file()
    try:
        declarations = load_declarations(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    audit_path = resolve_audit_path(declarations, config_path)
    if audit_path is None:
        click.secho("⚠️  No audit_log configured in settings", fg="yellow")
        return

    entries = AuditWriter(audit_path).read_recent(limit)
    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    for e in entries:
        color = "red" if e.status == "failed" else ("green" if e.changed else "white")
        click.secho(f"   {e.timestamp}  {e.package:<30} {e.action or e.requested:<8} {e.status}", fg=color)


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Declaration file commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate packages.yml."""
    from pipconverge.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.declarations is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Packages: {len(result.declarations.packages)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)


if __name__ == "__main__":
    cli()
