"""Command-line front end: stream answers from Gemini or Claude to the terminal."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sightedit import __version__
from sightedit.config import EditorConfig, load_config
from sightedit.core.chat import ChatSession
from sightedit.errors import StreamCancelledError
from sightedit.llm.client import StreamingClient
from sightedit.types import Provider, Role, create_message

console = Console()

_PROVIDERS = [p.value for p in Provider]


@contextmanager
def _abort_on_interrupt(client: StreamingClient) -> Iterator[None]:
    """Route Ctrl-C to ``client.abort()`` while a stream is running."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, client.abort)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False  # e.g. Windows event loops
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


class _TerminalPrinter:
    """Callbacks that print a streamed answer and remember how it ended."""

    def __init__(self) -> None:
        self.failed = False

    def fragment(self, text: str) -> None:
        console.print(text, end="", markup=False, highlight=False)

    def complete(self, full_text: str) -> None:
        console.print()

    def error(self, err: Exception) -> None:
        console.print()
        if isinstance(err, StreamCancelledError):
            console.print("[yellow]Cancelled.[/yellow]")
        else:
            self.failed = True
            console.print(f"[red]Error: {escape(str(err))}[/red]")


async def _ask(
    config: EditorConfig, prompt: str, provider: str | None, model: str | None,
) -> bool:
    printer = _TerminalPrinter()
    async with StreamingClient(config) as client:
        messages = [create_message(Role.USER, prompt, provider=provider, model=model)]
        start = time.monotonic()
        with _abort_on_interrupt(client):
            await client.stream_chat(
                messages, printer.fragment, printer.complete, printer.error,
                provider=provider, model=model,
            )
        console.print(f"[dim]({time.monotonic() - start:.1f}s)[/dim]")
    return not printer.failed


async def _chat(config: EditorConfig, provider: str | None, model: str | None) -> None:
    history_path = Path(os.path.expanduser("~/.sightedit/history"))
    history_path.parent.mkdir(parents=True, exist_ok=True)
    prompt_session: PromptSession[str] = PromptSession(
        history=FileHistory(str(history_path)),
    )

    async with StreamingClient(config) as client:
        chat = ChatSession(client, provider=provider, model=model)
        console.print(
            f"[dim]{chat.provider.value} / {chat.model} - "
            "/clear to reset, /quit to exit, Ctrl-C cancels a reply[/dim]\n"
        )
        while True:
            try:
                user_input = (await prompt_session.prompt_async("> ")).strip()
            except (EOFError, KeyboardInterrupt):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if not user_input:
                continue
            if user_input in ("/quit", "/exit"):
                console.print("[dim]Goodbye![/dim]")
                break
            if user_input == "/clear":
                chat.clear()
                console.print("[dim]Conversation cleared.[/dim]")
                continue

            printer = _TerminalPrinter()
            with _abort_on_interrupt(client):
                await chat.send(
                    user_input, printer.fragment, printer.complete, printer.error,
                )
            console.print()


@click.group()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to sightedit.yaml (auto-detected from CWD or ~/.sightedit/)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.version_option(__version__, prog_name="sightedit")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """SightEdit AI - stream answers from Gemini or Claude."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config, _ = load_config(config_path)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj = config


@main.command()
@click.argument("prompt")
@click.option("--provider", "-p", type=click.Choice(_PROVIDERS), default=None,
              help="AI provider (defaults to the configured one)")
@click.option("--model", "-m", default=None, help="Model id from the catalog")
@click.pass_obj
def ask(config: EditorConfig, prompt: str, provider: str | None, model: str | None) -> None:
    """Stream a single answer to PROMPT."""
    ok = asyncio.run(_ask(config, prompt, provider, model))
    if not ok:
        raise SystemExit(1)


@main.command()
@click.option("--provider", "-p", type=click.Choice(_PROVIDERS), default=None,
              help="AI provider (defaults to the configured one)")
@click.option("--model", "-m", default=None, help="Model id from the catalog")
@click.pass_obj
def chat(config: EditorConfig, provider: str | None, model: str | None) -> None:
    """Interactive conversation with streamed replies."""
    asyncio.run(_chat(config, provider, model))


@main.command()
@click.pass_obj
def models(config: EditorConfig) -> None:
    """List the configured model catalog."""
    table = Table(title="Models")
    table.add_column("Provider", style="cyan")
    table.add_column("Model")
    table.add_column("Name")
    table.add_column("Max output", justify="right")
    table.add_column("Key", justify="center")
    for name, pcfg in config.providers.items():
        has_key = "yes" if pcfg.resolve_api_key() else "[red]no[/red]"
        for model_id, spec in pcfg.models.items():
            marker = " *" if model_id == pcfg.default_model else ""
            table.add_row(name, model_id + marker, spec.name, str(spec.max_tokens), has_key)
    console.print(table)
