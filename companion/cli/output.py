"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from companion.llm.errors import ContextLengthError, ErrorResponse, InferError, ParseError
from companion.llm.types import Message, Role, WithReasoning

ROLE_COLORS = {
    Role.SYSTEM: "magenta",
    Role.USER: "cyan",
    Role.ASSISTANT: "green",
}


class OutputFormatter:
    """Rich-based output formatting for the companion CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_reply(self, result: WithReasoning[Any]) -> None:
        if result.reasoning:
            self.console.print(Panel(
                Text(result.reasoning, style="dim"),
                title="reasoning",
                border_style="dim",
            ))
        value = result.value
        if isinstance(value, str):
            self.console.print(value, markup=False)
        else:
            self.console.print(Syntax(json.dumps(value, indent=2), "json", theme="monokai"))

    def format_error(self, error: InferError) -> None:
        if isinstance(error, ContextLengthError):
            label = "Context length exceeded"
        elif isinstance(error, ErrorResponse):
            label = "Provider error"
        elif isinstance(error, ParseError):
            label = "Could not parse reply"
        else:
            label = "Request failed"
        self.console.print(f"[red]{label}:[/red] {error}")

    def format_history(self, messages: list[Message]) -> None:
        if not messages:
            self.console.print("[dim]No messages.[/dim]")
            return

        table = Table(title="Conversation", show_lines=True)
        table.add_column("#", justify="right", no_wrap=True)
        table.add_column("Role", no_wrap=True)
        table.add_column("Content")

        for i, msg in enumerate(messages):
            color = ROLE_COLORS.get(msg.role, "white")
            content = msg.text_content
            if len(content) > 300:
                content = content[:300] + "..."
            table.add_row(str(i), Text(msg.role.value, style=color), Text(content))

        self.console.print(table)

    def format_config(self, config: dict) -> None:
        self.console.print(Syntax(json.dumps(config, indent=2), "json", theme="monokai"))
