# ssb_publish/cli/main.py
"""
CLI for publishing Secure Scuttlebutt feed messages and inspecting encoded ones.
"""

import os
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ssb_publish.chain.previous import resolve_previous
from ssb_publish.chain.publish import OutputShape, PublishConfig, SigningStrategy, publish
from ssb_publish.core.canon import format_legacy_f64, from_legacy_json
from ssb_publish.core.errors import InvalidPreviousMessage, PublishError
from ssb_publish.crypto.keys import load_secret_file

app = typer.Typer(
    name="ssb-publish",
    help="Publish signed, hash-chained Secure Scuttlebutt feed messages",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def get_secret_path(secret_flag: Optional[Path] = None) -> Path:
    """Resolve the secret file in this order:
    1. --secret flag
    2. SSB_SECRET_PATH environment variable
    3. Default: ~/.ssb/secret
    """
    if secret_flag:
        return secret_flag.expanduser().resolve()
    env_path = os.environ.get("SSB_SECRET_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / ".ssb" / "secret"


def read_file(path: Path, what: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        console.print(f"[red]Could not read {what} {path}: {e.strerror or e}[/]")
        raise typer.Exit(1)


def read_message(path: Path):
    try:
        return resolve_previous(read_file(path, "message"))
    except InvalidPreviousMessage as e:
        console.print(f"[red]Message {path} is invalid: {escape(e.reason)}[/]")
        raise typer.Exit(1)


@app.callback()
def main():
    """Publish and inspect feed messages."""
    pass


@app.command("publish")
def publish_command(
    content_file: Path = typer.Argument(..., help="JSON file with the message content"),
    previous: Optional[Path] = typer.Option(
        None, "--previous", "-p", help="Encoded previous message of the feed (omit for the first message)"
    ),
    secret: Optional[Path] = typer.Option(
        None, "--secret", "-s", help="SSB secret file (overrides SSB_SECRET_PATH env var)"
    ),
    timestamp: Optional[float] = typer.Option(
        None, "--timestamp", "-t", help="Timestamp to publish with (default: now, in milliseconds)"
    ),
    wrapped: bool = typer.Option(False, "--wrapped", help="Emit {key, value} instead of the bare value"),
    zeroed_signature: bool = typer.Option(
        False, "--zeroed-signature", help="Sign with a zeroed signature field present (not legacy-compatible)"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the message here instead of stdout"),
):
    """Publish CONTENT_FILE as the next message of the feed."""
    secret_path = get_secret_path(secret)
    if not secret_path.exists():
        console.print(f"[red]Secret file not found: {secret_path}[/]")
        console.print("[yellow]Pass --secret or set SSB_SECRET_PATH.[/]")
        raise typer.Exit(1)

    try:
        content = from_legacy_json(read_file(content_file, "content file"))
    except ValueError as e:
        console.print(f"[red]Content file is not valid JSON: {escape(str(e))}[/]")
        raise typer.Exit(1)

    previous_bytes = read_file(previous, "previous message") if previous else None
    config = PublishConfig(
        signing_strategy=SigningStrategy.ZEROED_SIGNATURE if zeroed_signature else SigningStrategy.OMIT_SIGNATURE,
        output_shape=OutputShape.WRAPPED if wrapped else OutputShape.VALUE,
    )
    ts = timestamp if timestamp is not None else float(int(time.time() * 1000))

    try:
        public_key, secret_key = load_secret_file(secret_path)
        result = publish(content, previous_bytes, public_key, secret_key, ts, config=config)
    except OSError as e:
        console.print(f"[red]Could not read secret file {secret_path}: {e.strerror or e}[/]")
        raise typer.Exit(1)
    except PublishError as e:
        console.print(f"[red]Publish failed: {escape(str(e))}[/]")
        raise typer.Exit(1)

    if output:
        try:
            output.write_bytes(result.data)
        except OSError as e:
            console.print(f"[red]Could not write message to {output}: {e.strerror or e}[/]")
            raise typer.Exit(1)
        console.print(f"[green]Wrote message to {output}[/]")
    else:
        typer.echo(result.data.decode("utf-8"))
    console.print(f"[bold cyan]{result.key}[/]")


@app.command()
def key(
    message_file: Path = typer.Argument(..., help="Encoded message value"),
):
    """Print the message key (%...sha256) of an encoded message."""
    view = read_message(message_file)
    typer.echo(str(view.key))


@app.command()
def show(
    message_file: Path = typer.Argument(..., help="Encoded message value"),
):
    """Show the chain fields of an encoded message."""
    view = read_message(message_file)

    table = Table(title="Message")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("key", str(view.key))
    table.add_row("author", str(view.author))
    table.add_row("sequence", str(view.sequence))
    table.add_row("timestamp", format_legacy_f64(view.timestamp))
    console.print(table)
    console.print(f"Next message will have sequence {view.sequence + 1}")


if __name__ == "__main__":
    app()
