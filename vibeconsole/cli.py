import click


@click.group()
def main() -> None:
    """Vibe Console - sandbox orchestrator for previewing and publishing UI changes."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from VIBE_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from VIBE_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Restart on source changes (development only).")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the sandbox orchestrator API server."""
    import uvicorn

    from vibeconsole.sandbox.settings import VibeSettings

    settings = VibeSettings()

    uvicorn.run(
        "vibeconsole.sandbox.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # Leave room for the dev server's SIGTERM -> SIGKILL escalation on exit.
        timeout_graceful_shutdown=int(settings.dev_server_stop_timeout) + 5,
    )


@main.command()
def doctor() -> None:
    """Check that git, the coding agent and the workspace are usable."""
    import asyncio
    import shutil

    from vibeconsole.sandbox.managers.agent import agent_status
    from vibeconsole.sandbox.settings import VibeSettings

    settings = VibeSettings()
    ok = True

    git = shutil.which("git")
    click.echo(f"git:        {git or 'NOT FOUND'}")
    ok = ok and git is not None

    workspace = settings.workspace_path.resolve()
    click.echo(f"workspace:  {workspace} ({'exists' if workspace.is_dir() else 'will be created'})")
    click.echo(f"database:   {settings.resolve_database_url()}")
    click.echo(f"dev server: {settings.dev_server_command} (ports {settings.preferred_port}-{settings.max_port})")

    status = asyncio.run(agent_status(settings))
    if not status.installed:
        click.echo(f"agent:      {settings.agent_command} NOT FOUND")
    else:
        login = "logged in" if status.authenticated else "not logged in"
        click.echo(f"agent:      {status.version or settings.agent_command} ({login})")

    if not settings.auth_token:
        click.echo("auth:       disabled (set VIBE_AUTH_TOKEN)")

    if not ok:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# Registry database
# ---------------------------------------------------------------------------


def _alembic_config():
    """Alembic config for the migrations shipped inside the package.

    ``script_location`` in alembic.ini is package-relative, so this works from
    a source checkout and from an installed wheel alike.
    """
    from pathlib import Path

    from alembic.config import Config

    return Config(str(Path(__file__).parent / "sandbox" / "alembic.ini"))


@main.group()
def db() -> None:
    """Registry database migration commands (PostgreSQL deployments).

    SQLite registries are created automatically on startup.
    """


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head).")
def upgrade(revision: str) -> None:
    """Apply migrations up to REVISION."""
    from alembic import command

    command.upgrade(_alembic_config(), revision)
    click.echo(f"Registry upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", help="Target revision (default: one step back).")
def downgrade(revision: str) -> None:
    """Roll migrations back to REVISION."""
    from alembic import command

    command.downgrade(_alembic_config(), revision)
    click.echo(f"Registry downgraded to {revision}.")


@db.command()
@click.argument("message")
def migrate(message: str) -> None:
    """Autogenerate a migration from changes to the table definitions."""
    from alembic import command

    command.revision(_alembic_config(), message=message, autogenerate=True)
    click.echo(f"Migration generated: {message}")


@db.command()
def current() -> None:
    """Show the registry's current revision."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db.command()
def history() -> None:
    """List known migrations."""
    from alembic import command

    command.history(_alembic_config(), verbose=True)


if __name__ == "__main__":
    main()
