"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import re
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from creatorshub import __version__
from creatorshub.api.auth import SessionAuthenticator
from creatorshub.api.client import CreatorsHubAPIClient
from creatorshub.exceptions import CreatorsHubError
from creatorshub.models.api import AuthSession
from creatorshub.models.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from creatorshub.storage.config_manager import ConfigManager
from creatorshub.storage.session import SessionManager
from creatorshub.storage.vault import FileVault

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_session_status,
    print_track,
    print_user,
)

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("creatorshub")

app = typer.Typer(
    name="creatorshub",
    help=(
        "Command-line client for CreatorsHub: sign in and upload tracks. Use"
        " 'creatorshub <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

T = TypeVar("T")

VERIFICATION_CODE_PATTERN = re.compile(r"^\d{6}$")


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "creatorshub"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _require(value: str, message: str) -> str:
    """Rejects blank input the way the sign-in form does."""
    if not value or not value.strip():
        console.print(f"[red]✗ {message}[/red]")
        raise typer.Exit(code=1)
    return value.strip()


def _validate_code(code: str) -> str:
    code = code.strip()
    if not VERIFICATION_CODE_PATTERN.match(code):
        console.print("[red]✗ The verification code must be exactly 6 digits.[/red]")
        raise typer.Exit(code=1)
    return code


def _run(action: Callable[[SessionAuthenticator, SessionManager], Awaitable[T]]) -> T:
    """
    Loads the configuration and stored session, runs one action against the
    API, and renders any application error.
    """

    async def _run_async() -> T:
        config = ConfigManager(CONFIG_FILE).load_config()
        session_manager = SessionManager(
            FileVault(CONFIG_DIR), namespace=config.vault_namespace
        )
        session_manager.hydrate()

        async with CreatorsHubAPIClient(
            config.base_url, config.timeout_seconds
        ) as api_client:
            authenticator = SessionAuthenticator(api_client, session_manager)
            try:
                return await action(authenticator, session_manager)
            finally:
                session_manager.teardown()

    try:
        return asyncio.run(_run_async())
    except CreatorsHubError as e:
        console.print(format_error_with_suggestions(e))
        log.debug("Full traceback:", exc_info=True)
        raise typer.Exit(code=1) from e


async def _prompt_and_verify(
    authenticator: SessionAuthenticator, user_id: str
) -> AuthSession:
    code = _validate_code(typer.prompt("Enter the 6-digit code from your email"))
    return await authenticator.verify(user_id, code)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """CreatorsHub CLI"""
    if version:
        console.print(f"[bold]creatorshub[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("creatorshub").setLevel(log_level)

    if show_config:
        try:
            config = ConfigManager(CONFIG_FILE).load_config()
        except CreatorsHubError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--base-url", help="Origin of the CreatorsHub API."
    ),
    timeout: int = typer.Option(
        DEFAULT_TIMEOUT_SECONDS,
        "--timeout",
        help="Seconds allowed for a single request.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Write the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        config = ConfigManager(CONFIG_FILE).save_new_config(
            {"base_url": base_url, "timeout_seconds": timeout}
        )
    except CreatorsHubError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    console.print(
        f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]"
    )
    console.print(f"API endpoint: [cyan]{config.base_url}[/cyan]")


@app.command()
def register(
    email: str = typer.Argument(..., help="Email address for the new account."),
    username: str = typer.Option(..., "--username", "-u", prompt=True),
    display_name: str = typer.Option(..., "--display-name", "-n", prompt=True),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True
    ),
):
    """Create an account and verify it with the emailed code."""
    email = _require(email, "Email and password are required.")
    password = _require(password, "Email and password are required.")
    username = _require(username, "Username and display name are required.")
    display_name = _require(display_name, "Username and display name are required.")

    async def _register(authenticator: SessionAuthenticator, _: SessionManager):
        result = await authenticator.register(email, password, username, display_name)
        console.print(f"[green]✓ {result.message}[/green]")
        console.print(
            f"User ID: [cyan]{result.user_id}[/cyan] [dim](use it with "
            "`creatorshub verify` if you verify later)[/dim]"
        )
        if result.expires_at:
            console.print(f"[dim]The code expires at {result.expires_at}.[/dim]")
        auth_session = await _prompt_and_verify(authenticator, result.user_id)
        console.print(
            f"[bold green]Welcome, {auth_session.user.display_name}![/bold green]"
        )

    _run(_register)


@app.command()
def verify(
    user_id: str = typer.Argument(..., help="User ID returned by registration."),
    code: str = typer.Argument(..., help="The 6-digit code from the email."),
):
    """Verify an account's email and log in."""
    code = _validate_code(code)

    async def _verify(authenticator: SessionAuthenticator, _: SessionManager):
        auth_session = await authenticator.verify(user_id, code)
        console.print(
            f"[bold green]Welcome, {auth_session.user.display_name}![/bold green]"
        )

    _run(_verify)


@app.command()
def login(
    email: str = typer.Argument(..., help="Account email address."),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Log in. Unverified accounts are asked for their code."""
    email = _require(email, "Email and password are required.")
    password = _require(password, "Email and password are required.")

    async def _login(authenticator: SessionAuthenticator, _: SessionManager):
        outcome = await authenticator.login(email, password)
        if outcome.needs_verification:
            console.print(
                "[yellow]⚠️  Your email is not verified. "
                "A code was sent to your inbox.[/yellow]"
            )
            auth_session = await _prompt_and_verify(
                authenticator, outcome.pending_verification.user_id
            )
        else:
            auth_session = outcome.session
        console.print(
            f"[bold green]Welcome back, {auth_session.user.username}![/bold green]"
        )

    _run(_login)


@app.command()
def whoami():
    """Fetch the signed-in user's profile from the server."""

    async def _whoami(authenticator: SessionAuthenticator, _: SessionManager):
        print_user(await authenticator.refresh_current_user())

    _run(_whoami)


@app.command()
def status():
    """Show the locally stored session without contacting the server."""

    async def _status(_: SessionAuthenticator, session_manager: SessionManager):
        print_session_status(session_manager.snapshot())

    _run(_status)


@app.command()
def upload(
    file: Path = typer.Argument(..., help="Audio file (mp3, wav, m4a, aac)."),
    title: str = typer.Option(..., "--title", "-t", help="Track title."),
    description: str = typer.Option("", "--description", "-d"),
    cover: Path | None = typer.Option(
        None, "--cover", "-c", help="JPEG image used as cover art."
    ),
):
    """Upload a track as the signed-in user."""
    title = _require(title, "A title is required.")

    async def _upload(authenticator: SessionAuthenticator, _: SessionManager):
        with console.status(f"[cyan]Uploading {file.name}...[/cyan]"):
            track = await authenticator.upload_track(file, title, description, cover)
        uploaded_bytes = file.stat().st_size if file.is_file() else None
        print_track(track, uploaded_bytes)

    _run(_upload)


@app.command()
def logout():
    """Log out and remove the stored session."""

    async def _logout(authenticator: SessionAuthenticator, _: SessionManager):
        authenticator.logout()

    _run(_logout)
    console.print("[green]✓ Logged out.[/green]")
