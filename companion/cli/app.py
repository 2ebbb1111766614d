"""
Main CLI application for companion.

Usage:
    companion ask PROMPT [--reasoning] [--json] [--system TEXT]
    companion chat [--reasoning]
    companion classify-error TEXT
    companion config show|validate
    companion version
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from companion import __version__
from companion.config import CompanionConfig, load_config

app = typer.Typer(name="companion", help="Companion - prompt chaining and inference CLI")
config_app = typer.Typer(help="Configuration management")

app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "companion.yaml",
        Path.cwd() / "companion.yml",
        Path.home() / ".config" / "companion" / "config.yaml",
        Path.home() / ".companion" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _load(profile: str | None = None) -> CompanionConfig:
    return load_config(_get_config_path(), profile=profile)


def _build_engine(cfg: CompanionConfig):
    """Wire up provider and engine from config."""
    from companion.llm.engine import InferenceEngine, InferSettings
    from companion.llm.providers.openai_compat import OpenAICompatProvider

    provider = OpenAICompatProvider(
        url=cfg.llm.infer_url,
        model=cfg.llm.model,
        api_key=os.environ.get(cfg.llm.api_key_env, ""),
        timeout=float(cfg.llm.timeout_seconds),
    )
    return InferenceEngine(provider, InferSettings.from_config(cfg))


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests"),
):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def ask(
    prompt: str = typer.Argument(..., help="User prompt"),
    reasoning: bool = typer.Option(False, "--reasoning", help="Ask for reasoning"),
    as_json: bool = typer.Option(False, "--json", help="Expect a JSON object reply"),
    system: Optional[str] = typer.Option(None, "--system", help="Agent prompt"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Run a single prompt and print the reply."""
    from companion.cli.output import OutputFormatter
    from companion.llm.chain import Chain, Client
    from companion.llm.errors import InferError
    from companion.llm.parsing import PLAIN_TEXT, JsonObject
    from companion.llm.types import Role
    from companion.prompts.system import build_system_prompt

    cfg = _load(profile)
    engine = _build_engine(cfg)
    formatter = OutputFormatter(console)

    chain = Chain(Client())
    chain.push_text(Role.SYSTEM, build_system_prompt(system or "", cfg.persona))
    chain.push_text(Role.USER, prompt)
    shape = JsonObject() if as_json else PLAIN_TEXT

    try:
        result = asyncio.run(engine.infer_drop(chain, shape, want_reasoning=reasoning))
    except InferError as e:
        formatter.format_error(e)
        raise typer.Exit(1)
    formatter.format_reply(result)


@app.command()
def chat(
    reasoning: bool = typer.Option(False, "--reasoning", help="Ask for reasoning"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Start an interactive chat session."""
    from companion.cli.chat import ChatHandler
    from companion.llm.chain import Client, RootConversation
    from companion.llm.types import Message
    from companion.prompts.system import build_system_prompt

    cfg = _load(profile)
    engine = _build_engine(cfg)
    conversation = RootConversation.from_message(
        Client(), Message.system(build_system_prompt(persona=cfg.persona))
    )
    handler = ChatHandler(engine, conversation, console, want_reasoning=reasoning)
    asyncio.run(handler.run_loop())


@app.command("classify-error")
def classify_error(
    text: str = typer.Argument(..., help="Provider error message"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Ask the model whether an error message is about context length."""
    from companion.cli.output import OutputFormatter
    from companion.llm.errors import InferError

    engine = _build_engine(_load(profile))
    try:
        answer = asyncio.run(engine.is_context_length_error(text))
    except InferError as e:
        OutputFormatter(console).format_error(e)
        raise typer.Exit(1)
    if answer:
        console.print("[yellow]context length error[/yellow]")
    else:
        console.print("[green]not a context length error[/green]")


@config_app.command("show")
def config_show():
    """Show effective config."""
    from companion.cli.output import OutputFormatter

    formatter = OutputFormatter(console)
    formatter.format_config(_load().to_dict())


@config_app.command("validate")
def config_validate():
    """Validate config and show any issues."""
    config_path = _get_config_path()
    try:
        cfg = load_config(config_path)
        cfg.validate()
        console.print("[green]Config is valid.[/green]")
        if config_path:
            console.print(f"  Loaded from: {config_path}")
        else:
            console.print("  [dim]No config file found, using defaults.[/dim]")
        console.print(f"  Model: {cfg.llm.model} @ {cfg.llm.infer_url}")
        console.print(f"  Reasoning strategy: {cfg.llm.reasoning_strategy}")
        console.print(f"  Persona: {cfg.persona.name}")
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version."""
    console.print(f"companion v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
