"""CLI entry point for slidechat."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.syntax import Syntax
from rich.table import Table

from slidechat.chat import (
    AssistantAPIError,
    ChatService,
    ChatSession,
    HttpAssistantAPI,
    Role,
    create_chat_service,
    create_session_store,
    resolve_api_key,
)
from slidechat.config import SlideChatConfig, load_config
from slidechat.config.loader import DEFAULT_CONFIG_TEMPLATE
from slidechat.converter import (
    BatchResult,
    ProcessConverter,
    convert_batch,
    discover_presentations,
)
from slidechat.errors import SlideChatError

app = typer.Typer(
    name="slidechat",
    help="Convert PowerPoint decks to PDF and chat with them.",
)

config_app = typer.Typer(help="Manage slidechat configuration.")
app.add_typer(config_app, name="config")

session_app = typer.Typer(help="Inspect or clear the stored chat session.")
app.add_typer(session_app, name="session")

key_app = typer.Typer(help="Check the assistant API key.")
app.add_typer(key_app, name="key")

console = Console()

# Global state
_config: SlideChatConfig | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_QUIT_WORDS = {"/quit", "/exit", ":q"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "info", log_format: str = "text") -> None:
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    logging.basicConfig(level=_LOG_LEVELS.get(level, logging.INFO), handlers=[handler])

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _get_config() -> SlideChatConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to slidechat.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    setup_logging(_config.log_level, _config.log_format)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def _display_batch(result: BatchResult) -> None:
    table = Table(title=f"Converted {len(result.outputs)}/{result.total}")
    table.add_column("File", style="cyan")
    table.add_column("Result")
    for pdf in result.outputs:
        table.add_row(pdf.name, "[green]ok[/green]")
    for failure in result.failures:
        detail = failure.detail.splitlines()[-1] if failure.detail else "failed"
        table.add_row(failure.source.name, f"[red]{detail}[/red]")
    rprint(table)


def _display_session(session: ChatSession) -> None:
    rprint(Panel(
        f"[bold]{session.name}[/bold]\n\n"
        f"[dim]Assistant:[/dim] {session.assistant_id}\n"
        f"[dim]Thread:[/dim]    {session.thread_id}\n"
        f"[dim]Files:[/dim]     {', '.join(session.file_ids)}\n"
        f"[dim]Messages:[/dim]  {len(session.messages)}",
        title="Chat Session",
        border_style="blue",
    ))


def _print_reply(text: str) -> None:
    rprint(Panel(text, title="assistant", border_style="green"))


# ---------------------------------------------------------------------------
# Async flows
# ---------------------------------------------------------------------------


async def _run_batch(sources: list[Path], cfg: SlideChatConfig) -> BatchResult:
    converter = ProcessConverter(cfg.converter)
    with Progress(
        TextColumn("[bold]Converting[/bold]"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("convert", total=1.0)
        return await convert_batch(
            converter, sources,
            on_progress=lambda fraction: progress.update(task, completed=fraction),
        )


async def _chat_loop(service: ChatService, documents: list[Path] | None) -> None:
    try:
        if documents:
            with console.status(f"Creating chat session for {len(documents)} PDF(s)..."):
                session = await service.create_session(documents)
            _display_session(session)

        rprint("[dim]Ask about any of the PDFs. /quit to leave.[/dim]")
        while True:
            try:
                text = await asyncio.to_thread(console.input, "[bold cyan]you>[/bold cyan] ")
            except EOFError:
                break
            text = text.strip()
            if not text:
                continue
            if text in _QUIT_WORDS:
                break
            try:
                with console.status("Waiting for the assistant..."):
                    reply = await service.ask(text)
            except AssistantAPIError as e:
                rprint(f"[red]Error:[/red] {e}")
                continue
            _print_reply(reply.content)
    finally:
        await service.api.aclose()


async def _ask_once(service: ChatService, question: str) -> str:
    try:
        reply = await service.ask(question)
    finally:
        await service.api.aclose()
    return reply.content


def _service_or_exit(cfg: SlideChatConfig) -> ChatService:
    try:
        return create_chat_service(cfg)
    except SlideChatError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def convert(
    files: Annotated[
        list[Path] | None, typer.Argument(help="PowerPoint files to convert")
    ] = None,
    directory: Annotated[
        Path | None, typer.Option("--dir", "-d", help="Convert every deck in a directory")
    ] = None,
    chat_after: bool = typer.Option(False, "--chat", help="Chat with the PDFs afterwards"),
) -> None:
    """Convert PowerPoint files to PDF."""
    cfg = _get_config()
    sources = list(files or [])
    if directory is not None:
        try:
            sources.extend(discover_presentations(directory, cfg.converter.extensions))
        except NotADirectoryError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    if not sources:
        rprint("[red]Error:[/red] No PowerPoint files given")
        raise typer.Exit(1)

    result = asyncio.run(_run_batch(sources, cfg))
    _display_batch(result)

    if not result.outputs:
        raise typer.Exit(1)

    if chat_after:
        service = _service_or_exit(cfg)
        try:
            asyncio.run(_chat_loop(service, result.outputs))
        except SlideChatError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)


@app.command()
def chat(
    pdfs: Annotated[list[Path], typer.Argument(help="PDF files to chat with")],
) -> None:
    """Start a new chat session over PDFs (replaces any stored session)."""
    cfg = _get_config()
    missing = [p for p in pdfs if not p.is_file()]
    if missing:
        rprint(f"[red]Error:[/red] Not found: {', '.join(str(p) for p in missing)}")
        raise typer.Exit(1)

    service = _service_or_exit(cfg)
    try:
        asyncio.run(_chat_loop(service, pdfs))
    except SlideChatError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question about the stored session's PDFs"),
) -> None:
    """Ask one question in the stored chat session."""
    cfg = _get_config()
    service = _service_or_exit(cfg)
    if service.session is None:
        rprint("[red]Error:[/red] No chat session. Run [bold]slidechat chat[/bold] first.")
        raise typer.Exit(1)

    try:
        answer = asyncio.run(_ask_once(service, question))
    except SlideChatError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _print_reply(answer)


@session_app.command("show")
def session_show() -> None:
    """Show the stored chat session and its messages."""
    store = create_session_store(_get_config())
    session = store.current
    if session is None:
        rprint("[yellow]No chat session stored.[/yellow]")
        raise typer.Exit(0)

    _display_session(session)
    if session.messages:
        table = Table(title="Messages")
        table.add_column("Time", style="dim")
        table.add_column("Role")
        table.add_column("Content")
        for m in session.messages:
            style = "cyan" if m.role == Role.user else "green"
            table.add_row(
                m.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                f"[{style}]{m.role.value}[/{style}]",
                m.content,
            )
        rprint(table)


@session_app.command("clear")
def session_clear() -> None:
    """Delete the stored chat session."""
    store = create_session_store(_get_config())
    store.clear()
    rprint("[green]Cleared[/green] stored chat session")


@key_app.command("check")
def key_check() -> None:
    """Validate the API key against the remote service."""
    cfg = _get_config()
    try:
        api_key = resolve_api_key(cfg)
    except SlideChatError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    async def _check() -> bool:
        async with HttpAssistantAPI(api_key, cfg.assistant) as api:
            return await api.validate_credential()

    if not asyncio.run(_check()):
        rprint("[red]Invalid API key.[/red] Please check and try again.")
        raise typer.Exit(1)
    rprint("[green]API key is valid[/green]")


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default slidechat.yaml in current directory."""
    target = Path("slidechat.yaml")
    if target.exists() and not force:
        rprint("[yellow]slidechat.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


if __name__ == "__main__":
    app()
