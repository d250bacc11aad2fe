"""Command line front end.

The effective mode is resolved once per invocation and every command goes
through the backend for that mode, so commands never branch on the mode.
"""

import logging
import sys
from pathlib import Path

import click
import httpx

from .backends import ConfigBackend
from .backends import get_backend
from .exceptions import OmoSwitchError
from .exceptions import ProfileNotFoundError
from .exceptions import ProjectRootNotFoundError
from .models import Mode
from .models import Scope
from .paths import find_project_root
from .paths import resolve_project_root
from .schema import refresh_schema
from .settings import SettingsManager
from .store import StoreManager
from .utils import derive_id_from_name
from .views import load_merged_view

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

NO_PROJECT_MESSAGE = "No .opencode/ directory found in parent directories."

SCOPE_CHOICE = click.Choice([Scope.USER.value, Scope.PROJECT.value])


def setup_logging(verbose: bool = False) -> None:
    """Attach a single stderr handler to the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _effective_mode(project_root: Path | None) -> Mode:
    return SettingsManager().get_effective_mode(project_root)


def _fail(error: OmoSwitchError) -> click.ClickException:
    errors = getattr(error, "errors", None)
    if errors:
        return click.ClickException("\n".join([str(error), *(f"  - {e}" for e in errors)]))
    return click.ClickException(str(error))


@click.group(context_settings={"max_content_width": 120})
@click.option("--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """Switch oh-my-opencode configurations per user and per project."""
    setup_logging(verbose)


# ===== Profiles and Presets =====


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "profile_id", help="Profile ID (defaults to derived from name)")
@click.option("--name", help="Profile name (defaults to the ID)")
@click.option("--activate", is_flag=True, help="Activate this entry after adding it")
@click.option("--force", is_flag=True, help="Overwrite an existing entry with the same ID")
@click.option("--scope", type=SCOPE_CHOICE, default=Scope.USER.value, show_default=True, help="Target scope")
def add(file, profile_id, name, activate, force, scope):
    """Add a profile (omo) or preset (slim) from FILE."""
    scope = Scope(scope)
    project_root = resolve_project_root() if scope == Scope.PROJECT else find_project_root()
    mode = _effective_mode(project_root)

    if not profile_id:
        profile_id = derive_id_from_name(name or file.stem)
    name = name or profile_id

    try:
        content = file.read_text(encoding="utf-8")
        backend = get_backend(mode, scope, project_root=project_root if scope == Scope.PROJECT else None)
        created = backend.add(
            profile_id,
            content,
            extension=file.suffix.lower(),
            name=name,
            force=force,
            activate=activate,
        )
    except OmoSwitchError as e:
        raise _fail(e) from e

    action = "Added" if created else "Updated"
    click.echo(f"{action} {_noun(mode)} '{name}' ({profile_id}) [{scope.value}]")
    if activate:
        click.echo(f"  {_noun(mode).capitalize()} activated")


@cli.command()
@click.argument("identifier")
@click.option("--scope", type=SCOPE_CHOICE, default=Scope.USER.value, show_default=True, help="Target scope")
def apply(identifier, scope):
    """Apply a profile or preset to the target configuration."""
    scope = Scope(scope)
    project_root = resolve_project_root() if scope == Scope.PROJECT else find_project_root()
    mode = _effective_mode(project_root)

    try:
        backend = get_backend(mode, scope, project_root=project_root if scope == Scope.PROJECT else None)
        result = backend.activate(identifier)
    except OmoSwitchError as e:
        raise _fail(e) from e

    click.echo(f"Applied {_noun(mode)} '{result.name}' ({result.id}) [{result.scope.value}]")
    if result.source != result.scope:
        click.echo(f"  Source: {result.source.value}")
    if result.backup_path:
        click.echo(f"  Backup: {result.backup_path}")
    click.echo(f"  Target: {result.target_path}")


@cli.command(name="list")
@click.option(
    "--scope",
    type=click.Choice(["user", "project", "all"]),
    default="all",
    show_default=True,
    help="Filter by scope",
)
def list_command(scope):
    """List profiles or presets."""
    project_root = find_project_root()
    mode = _effective_mode(project_root)

    scopes = [Scope.USER, Scope.PROJECT] if scope == "all" else [Scope(scope)]
    if Scope.PROJECT in scopes and project_root is None:
        if scope == "project":
            raise click.ClickException(NO_PROJECT_MESSAGE)
        scopes.remove(Scope.PROJECT)

    entries = []
    try:
        for entry_scope in scopes:
            entries.extend(get_backend(mode, entry_scope, project_root=project_root, validate=False).list())
    except OmoSwitchError as e:
        raise _fail(e) from e

    if not entries:
        click.echo(f"No {_noun(mode)}s found.")
        return

    for entry in entries:
        marker = "*" if entry.active else " "
        details = [f"[{entry.scope.value}]"]
        if entry.name != entry.id:
            details.append(entry.name)
        if entry.agent_count is not None:
            details.append(f"{entry.agent_count} agents")
        if not entry.config_exists:
            details.append("MISSING")
        click.echo(f"{marker} {entry.id}  {'  '.join(details)}")


@cli.command()
@click.argument("identifier")
@click.option("--scope", type=SCOPE_CHOICE, default=None, help="Target scope (default: project, then user)")
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def rm(identifier, scope, force):
    """Remove a profile or preset."""
    project_root = find_project_root()
    mode = _effective_mode(project_root)

    if scope is None:
        scopes = [Scope.PROJECT, Scope.USER] if project_root is not None else [Scope.USER]
    else:
        scopes = [Scope(scope)]
        if scopes[0] == Scope.PROJECT and project_root is None:
            raise click.ClickException(NO_PROJECT_MESSAGE)

    for target_scope in scopes:
        try:
            backend = get_backend(mode, target_scope, project_root=project_root, validate=False)
            if not _exists_at_scope(backend, identifier):
                continue
            if not force and not click.confirm(
                f"Delete {_noun(mode)} '{identifier}' from {target_scope.value} scope?", default=False
            ):
                click.echo("Operation cancelled.")
                return
            backend.remove(identifier)
        except OmoSwitchError as e:
            raise _fail(e) from e

        click.echo(f"Deleted {_noun(mode)} '{identifier}' [{target_scope.value}]")
        return

    raise _fail(ProfileNotFoundError(identifier, scope))


@cli.command()
@click.argument("identifier", required=False)
@click.option(
    "--scope",
    type=click.Choice(["user", "project", "merged"]),
    default="merged",
    show_default=True,
    help="View scope",
)
def show(identifier, scope):
    """Show a profile or preset, or the merged applied configuration."""
    project_root = find_project_root()
    mode = _effective_mode(project_root)

    if scope == "merged":
        view = load_merged_view(project_root, mode)
        if view.is_empty:
            raise click.ClickException(
                "No applied config found in either scope.\nUse 'omo-switch apply <profile>' to apply a config first."
            )
        click.echo("Merged Configuration View (Applied Configs)")
        click.echo(f"Global: {view.global_path or '(none)'}")
        click.echo(f"Project: {view.project_path or '(none)'}")
        click.echo("-" * 50)
        click.echo(view.render(color=True))
        return

    try:
        backend = get_backend(mode, Scope(scope), project_root=project_root, validate=False)
        if identifier is None:
            identifier = backend.get_active()
            if identifier is None:
                raise click.ClickException(f"No active {scope} {_noun(mode)}. Specify an ID or name.")
        click.echo(backend.render(identifier))
    except OmoSwitchError as e:
        raise _fail(e) from e


# ===== Settings =====


@cli.command(name="type")
@click.argument("config_type", required=False, type=click.Choice([m.value for m in Mode]))
@click.option("--scope", type=SCOPE_CHOICE, default=Scope.USER.value, show_default=True, help="Scope to set")
@click.option("--clear-project", is_flag=True, help="Remove project-level type override")
def type_command(config_type, scope, clear_project):
    """Get or set the active configuration type (omo or slim)."""
    settings = SettingsManager()
    project_root = find_project_root()

    try:
        if clear_project:
            if project_root is None:
                raise ProjectRootNotFoundError("No project found. Not in a project directory.")
            if settings.set_project_mode(project_root, None):
                click.echo("Cleared project type override. Now using global setting.")
            else:
                click.echo("No project type override to clear.")
            return

        if config_type is None:
            effective = settings.get_effective_mode(project_root)
            override = " (project override)" if settings.is_project_override(project_root) else ""
            click.echo(f"Current type: {effective.value}{override}")
            click.echo(f"  Global default: {settings.load_settings().active_type.value}")
            if project_root is not None:
                project_mode = settings.get_project_mode(project_root)
                click.echo(f"  Project override: {project_mode.value if project_mode else '(none)'}")
            return

        mode = Mode(config_type)
        if Scope(scope) == Scope.PROJECT:
            if project_root is None:
                raise ProjectRootNotFoundError("No project found. Not in a project directory.")
            settings.set_project_mode(project_root, mode)
            click.echo(f"Set project type to '{mode.value}'")
            click.echo(f"  Project: {project_root}")
        else:
            settings.set_active_mode(mode)
            click.echo(f"Set global type to '{mode.value}'")
    except OmoSwitchError as e:
        raise _fail(e) from e


@cli.group()
def schema():
    """Manage the cached validation schema."""


@schema.command()
@click.option("--offline", is_flag=True, help="Use the bundled schema instead of downloading")
def refresh(offline):
    """Re-fetch the schema for the effective mode."""
    mode = _effective_mode(find_project_root())
    try:
        path = refresh_schema(StoreManager(), mode, offline=offline)
    except httpx.HTTPError as e:
        raise click.ClickException(f"Failed to refresh schema: {e}") from e
    except OmoSwitchError as e:
        raise _fail(e) from e
    click.echo(f"Schema ready: {path}")


# ===== Helpers =====


def _noun(mode: Mode) -> str:
    return "preset" if mode == Mode.PRESET else "profile"


def _exists_at_scope(backend: ConfigBackend, identifier: str) -> bool:
    return any(entry.id == identifier for entry in backend.list())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
