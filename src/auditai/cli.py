from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown

from .attachments import from_path, is_supported_mime, format_file_size
from .bootstrap import build_app
from .config_loader import ConfigError
from .core.errors import ProviderError
from .core.types import DEFAULT_ANALYSIS_PROMPT, AttachedFile
from .service import generate_case_analysis

app = typer.Typer(add_completion=False, help="Contradiction and compliance analysis for case documents.")

logger = logging.getLogger(__name__)

CONFIG_HINT = "Check your configuration (API Key / Base URL)."


def _setup_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config: Path, provider: Optional[str], model: Optional[str]):
    try:
        return build_app(config, provider=provider, model=model)
    except (ConfigError, FileNotFoundError) as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(code=2)


def _attach(path: Path) -> AttachedFile:
    f = from_path(path)
    if not is_supported_mime(f.mime_type):
        raise ValueError(f"Unsupported file type for {path.name}: {f.mime_type}")
    return f


class StreamPrinter:
    """
    Stream callback for the terminal. The core reports cumulative text, so
    only the unseen suffix is printed. On a real terminal the text is
    re-rendered as markdown instead.
    """

    def __init__(self, console: Console):
        self.console = console
        self.shown = ""
        self._live: Optional[Live] = None

    def __enter__(self) -> "StreamPrinter":
        if self.console.is_terminal:
            self._live = Live(Markdown(""), console=self.console, refresh_per_second=8)
            self._live.__enter__()
        return self

    def __call__(self, text: str) -> None:
        if self._live is not None:
            self._live.update(Markdown(text))
        else:
            print(text[len(self.shown):], end="", flush=True)
        self.shown = text

    def __exit__(self, *exc) -> None:
        if self._live is not None:
            self._live.__exit__(*exc)
        elif self.shown:
            print("")


def _run(prompt: str, files: List[AttachedFile], ctx, console: Console) -> str:
    stream = bool(ctx["cfg"]["runtime"]["stream"])
    if not stream:
        reply = generate_case_analysis(prompt, files, ctx["settings"], provider_cfg=ctx["provider_cfg"])
        if console.is_terminal:
            console.print(Markdown(reply))
        else:
            print(reply)
        return reply
    with StreamPrinter(console) as printer:
        return generate_case_analysis(
            prompt, files, ctx["settings"], printer, provider_cfg=ctx["provider_cfg"]
        )


@app.command()
def analyze(
    files: Optional[List[Path]] = typer.Argument(None, help="Case files to attach (pdf, txt, md, json, images, docx)."),
    prompt: str = typer.Option("", "--prompt", "-p", help="Question or instruction for the analysis."),
    config: Path = typer.Option(Path("config/default.yaml"), "--config", "-c"),
    provider: Optional[str] = typer.Option(None, "--provider", help="google | openrouter | local"),
    model: Optional[str] = typer.Option(None, "--model"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Run a single analysis over the given files and stream the report."""
    ctx = _load(config, provider, model)
    _setup_logging(ctx["cfg"]["runtime"]["log_level"], verbose)
    for w in ctx["warnings"]:
        typer.echo(f"[config] {w['message']}", err=True)

    try:
        attached = [_attach(p) for p in (files or [])]
    except (ValueError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    if not prompt.strip() and not attached:
        typer.echo("Error: provide a prompt or at least one file.", err=True)
        raise typer.Exit(code=2)

    try:
        _run(prompt.strip() or DEFAULT_ANALYSIS_PROMPT, attached, ctx, Console())
    except ProviderError as e:
        typer.echo(f"Error: {e} {CONFIG_HINT}", err=True)
        raise typer.Exit(code=1)


@app.command()
def chat(
    config: Path = typer.Option(Path("config/default.yaml"), "--config", "-c"),
    provider: Optional[str] = typer.Option(None, "--provider"),
    model: Optional[str] = typer.Option(None, "--model"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Interactive session. Attach files with /attach, then ask."""
    ctx = _load(config, provider, model)
    _setup_logging(ctx["cfg"]["runtime"]["log_level"], verbose)
    for w in ctx["warnings"]:
        typer.echo(f"[config] {w['message']}", err=True)

    console = Console()
    pending: List[AttachedFile] = []
    settings = ctx["settings"]

    print(f"AuditAI ({settings.provider.value}: {settings.model}). Type /help for commands. Ctrl+C to quit.")
    while True:
        try:
            user_input = input("AuditAI> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return

        if user_input in ("/exit", "/quit"):
            print("Bye.")
            return

        if user_input == "/help":
            print("Commands: /attach <path>, /files, /clear, /help, /exit, /quit")
            continue

        if user_input.startswith("/attach"):
            raw = user_input[len("/attach"):].strip()
            if not raw:
                print("Usage: /attach <path>")
                continue
            try:
                f = _attach(Path(raw).expanduser())
            except (ValueError, FileNotFoundError) as e:
                print(f"Error: {e}")
                continue
            pending.append(f)
            print(f"Attached {f.name} ({format_file_size(f.size_bytes)})")
            continue

        if user_input == "/files":
            if not pending:
                print("No files attached.")
            for f in pending:
                print(f"- {f.name} [{f.mime_type}] {format_file_size(f.size_bytes)}")
            continue

        if user_input == "/clear":
            pending.clear()
            print("Attachments cleared.")
            continue

        if not user_input and not pending:
            continue

        try:
            _run(user_input or DEFAULT_ANALYSIS_PROMPT, list(pending), ctx, console)
        except ProviderError as e:
            print(f"\nError: {e} {CONFIG_HINT}")
            continue
        except KeyboardInterrupt:
            print("\n[stream interrupted]")
            continue
        pending.clear()


def main() -> None:
    app()
