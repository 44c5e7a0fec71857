"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from creatorshub.exceptions import ServerError
from creatorshub.models.api import Track, User
from creatorshub.models.config import ClientConfig
from creatorshub.models.session import SessionSnapshot
from creatorshub.utils.formatting import format_size, mask_secret

# Server error codes -> message shown to the user
SERVER_ERROR_MESSAGES = {
    "EMAIL_NOT_VERIFIED": "Your email address has not been verified yet.",
    "INVALID_CREDENTIALS": "Email or password is incorrect.",
    "INVALID_CODE": "The verification code is incorrect.",
    "CODE_EXPIRED": "The verification code has expired.",
    "EMAIL_TAKEN": "An account with this email already exists.",
    "USERNAME_TAKEN": "This username is already taken.",
    "UNAUTHORIZED": "Your session is no longer valid.",
}


def describe_error(error: Exception) -> str:
    """Returns the user-facing message for an error."""
    if isinstance(error, ServerError):
        if error.code:
            return SERVER_ERROR_MESSAGES.get(error.code, error.code)
        return f"The server could not complete the request (HTTP {error.http_status})."
    return str(error)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = describe_error(error)

    suggestions_map = {
        "TransportError": [
            "• Check your internet connection.",
            "• Make sure the server configured with `creatorshub init` is running.",
        ],
        "NotAuthenticatedError": [
            "• Log in first with `creatorshub login <EMAIL>`.",
        ],
        "DecodeError": [
            "• The server answered with an unexpected payload.",
            "• Check that the configured base URL points at a CreatorsHub API.",
        ],
        "LocalIOError": [
            "• Check that the file exists and is readable.",
        ],
        "VaultError": [
            "• Check the permissions of the configuration directory.",
        ],
        "ConfigurationError": [
            "• Run `creatorshub init --force` to write a fresh configuration.",
        ],
    }
    server_suggestions = {
        "EMAIL_NOT_VERIFIED": [
            "• Log in again and enter the 6-digit code from your email.",
        ],
        "UNAUTHORIZED": [
            "• Log in again with `creatorshub login <EMAIL>`.",
        ],
    }

    if isinstance(error, ServerError):
        suggestions = server_suggestions.get(
            error.code or "",
            ["• The server rejected the request. Please try again later."],
        )
    else:
        suggestions = suggestions_map.get(
            error_type, ["• Run the command with -vv for detailed logs."]
        )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config: ClientConfig):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config.model_dump().items():
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_user(user: User, title: str = "Current User"):
    """Displays a user's public profile."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Username:", user.username)
    table.add_row("Display Name:", user.display_name)
    table.add_row("User ID:", f"[dim]{user.id}[/dim]")
    if user.bio:
        table.add_row("Bio:", user.bio)
    if user.profile_image_url:
        table.add_row("Profile Image:", f"[dim]{user.profile_image_url}[/dim]")

    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="cyan"))


def print_session_status(snapshot: SessionSnapshot):
    """Displays what is stored locally, without contacting the server."""
    console = Console()
    if not snapshot.is_authenticated:
        console.print("[yellow]Not logged in.[/yellow]")
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    user = snapshot.user
    table.add_row("User:", user.username if user else "[dim]unknown[/dim]")
    table.add_row("Access Token:", mask_secret(snapshot.access_token))
    table.add_row("Refresh Token:", mask_secret(snapshot.refresh_token))

    console.print(
        Panel(table, title="[bold green]✓ Logged In[/bold green]", border_style="green")
    )


def print_track(track: Track, uploaded_bytes: int | None = None):
    """Displays an uploaded track."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Title:", track.title)
    if track.description:
        table.add_row("Description:", track.description)
    table.add_row("Track ID:", f"[dim]{track.track_id}[/dim]")
    table.add_row("File URL:", track.file_url)
    if track.cover_image_url:
        table.add_row("Cover URL:", track.cover_image_url)
    if uploaded_bytes is not None:
        table.add_row("Size:", format_size(uploaded_bytes))

    console.print(
        Panel(
            table,
            title="[bold green]✓ Track Uploaded[/bold green]",
            border_style="green",
        )
    )
