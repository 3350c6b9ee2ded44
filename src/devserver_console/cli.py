import asyncio
import logging
import secrets
from pathlib import Path
from typing import Callable, Optional

import typer
from typing_extensions import Annotated

from devserver_console.actions.local import LocalDevServerActions
from devserver_console.auth import delete_session, get_session, save_session
from devserver_console.console.console import (
    ActionsFactory,
    ConsoleInterface,
    TerminalConsole,
)
from devserver_console.logger import setup_logging
from devserver_console.runtime_config import (
    ACCESS_TOKEN_ENV,
    ConsoleMode,
    RuntimeConfig,
    load_envs,
)

ConsoleFactory = Callable[[RuntimeConfig, ActionsFactory], ConsoleInterface]

# Global factory functions - set by create_app()
_actions_factory: Optional[ActionsFactory] = None
_console_factory: Optional[ConsoleFactory] = None


def default_console_factory(
    config: RuntimeConfig, actions_factory: ActionsFactory
) -> ConsoleInterface:
    """Default factory for creating Console instances."""
    return TerminalConsole(config, actions_factory)


def create_auth_app() -> typer.Typer:
    auth_app = typer.Typer(rich_markup_mode=None)
    auth_app.command("login")(auth_login)
    auth_app.command("logout")(auth_logout)
    auth_app.command("whoami")(auth_whoami)
    return auth_app


def auth_login() -> None:
    """Sign in and store a session for the console."""
    session = get_session()
    if session and session.access_token:
        typer.echo(f"Signed in with {ACCESS_TOKEN_ENV}; unset it to sign in another way.")
        return
    if session and session.session_secret:
        typer.echo(f"You are already signed in as @{session.username}.")
        if not typer.confirm("Do you want to sign in again?"):
            typer.echo("Sign in cancelled.")
            return

    username = typer.prompt("Username").strip()
    if not username:
        typer.echo("Sign in cancelled.")
        raise typer.Exit(code=1)
    save_session(username, secrets.token_hex(16))
    typer.echo(f"✅ Signed in as @{username}.")


def auth_logout() -> None:
    """Remove the stored session."""
    session = get_session()
    if session and session.access_token:
        typer.echo(f"Please remove the {ACCESS_TOKEN_ENV} environment var to sign out.")
        raise typer.Exit(code=1)
    if not session:
        typer.echo("Not signed in.")
        return
    if delete_session():
        typer.echo("Signed out.")


def auth_whoami() -> None:
    """Show the signed-in user."""
    session = get_session()
    if not session:
        typer.echo("Not signed in.")
        raise typer.Exit(code=1)
    typer.echo(f"@{session.username}" if session.username else "Signed in with an access token.")


def main(
    ctx: typer.Context,
    project_root: Annotated[
        Optional[Path],
        typer.Option(
            "--project-root",
            help="Path of the project served by the development server (default: cwd)",
        ),
    ] = None,
    web_only: Annotated[
        bool, typer.Option("--web-only", help="Only expose web commands")
    ] = False,
    host: Annotated[
        str, typer.Option("--host", help="Host name of the development server")
    ] = "localhost",
    port: Annotated[
        int, typer.Option("--port", help="Port of the development server")
    ] = 19000,
    devtools_port: Annotated[
        int, typer.Option("--devtools-port", help="Port the DevTools UI is served on")
    ] = 19002,
    non_interactive: Annotated[
        bool,
        typer.Option("--non-interactive", help="Never prompt for a device or simulator"),
    ] = False,
    server_command: Annotated[
        Optional[str],
        typer.Option(
            "--server-command",
            help="Shell command that starts the development server; enables r/R restarts",
        ),
    ] = None,
) -> None:
    """DEVSERVER CONSOLE - keypress commands for a running development server"""
    # If no subcommand, run default action
    if ctx.invoked_subcommand is not None:
        return

    logger = logging.getLogger(__name__)
    cfg = RuntimeConfig(
        project_root=project_root or Path.cwd(),
        mode=ConsoleMode.web_only if web_only else ConsoleMode.full,
        host=host,
        port=port,
        devtools_port=devtools_port,
        non_interactive=non_interactive,
        server_command=server_command,
    )
    logger.info(f"Starting console in {cfg.mode.value} mode for {cfg.project_root}")

    try:
        actions_fact = _actions_factory or LocalDevServerActions
        console_fact = _console_factory or default_console_factory
        console = console_fact(cfg, actions_fact)
        asyncio.run(console.run())
    except KeyboardInterrupt:
        print("\nExiting...")


def create_app(
    actions_factory: Optional[ActionsFactory] = None,
    console_factory: Optional[ConsoleFactory] = None,
) -> typer.Typer:
    """
    Create and configure the Typer application.

    Args:
        actions_factory: Factory function to create the external actions
        console_factory: Factory function to create Console instances

    Returns:
        Typer application
    """
    setup_logging()

    # Load credentials and endpoints from .env if not already set in the environment
    load_envs()

    # Set global factory functions
    global _actions_factory, _console_factory
    _actions_factory = actions_factory
    _console_factory = console_factory

    app = typer.Typer(rich_markup_mode=None)
    app.add_typer(create_auth_app(), name="auth")
    app.callback(invoke_without_command=True)(main)

    return app


# Create default app instance for the console script
app = create_app()


if __name__ == "__main__":
    app()
