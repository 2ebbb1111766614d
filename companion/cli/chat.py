"""Interactive chat session handler."""

from __future__ import annotations

import asyncio

from rich.console import Console

from companion.cli.output import OutputFormatter
from companion.llm.chain import Chain, RootConversation
from companion.llm.engine import InferenceEngine
from companion.llm.errors import InferError
from companion.llm.types import Role


class ChatHandler:
    """
    Manages the interactive chat loop.

    The conversation lives in a single ``Chain`` forked off the root
    conversation; every exchange is appended with ``infer_push``.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        conversation: RootConversation,
        console: Console | None = None,
        want_reasoning: bool = False,
    ) -> None:
        self.engine = engine
        self.conversation = conversation
        self.chain: Chain = conversation.fork()
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self.want_reasoning = want_reasoning
        self._running = True

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/history":
            self.formatter.format_history(self.chain.as_wire_messages())
            return True

        if cmd == "/reasoning":
            self.want_reasoning = not self.want_reasoning
            state = "on" if self.want_reasoning else "off"
            self.console.print(f"  Reasoning: [bold]{state}[/bold]")
            return True

        if cmd == "/reset":
            self.chain = self.conversation.fork()
            self.console.print("  [dim]Conversation reset.[/dim]")
            return True

        if cmd == "/fork":
            if not arg:
                self.console.print("  Usage: /fork <message>")
                return True
            branch = self.chain.fork()
            branch.push_text(Role.USER, arg)
            try:
                result = await self.engine.infer_keep(
                    branch, want_reasoning=self.want_reasoning
                )
            except InferError as e:
                self.formatter.format_error(e)
                return True
            self.console.print("[dim]branch (not kept)>[/dim] ", end="")
            self.formatter.format_reply(result)
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit       - Exit the chat\n"
                "  /history    - Show the conversation so far\n"
                "  /reasoning  - Toggle reasoning\n"
                "  /fork MSG   - Try a message on a side branch without keeping it\n"
                "  /reset      - Start over from the system prompt\n"
                "  /help       - Show this help\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> None:
        """Append the user turn and push the assistant's reply."""
        branch = self.chain.fork()
        branch.push_text(Role.USER, user_input)
        try:
            result = await self.engine.infer_push(
                branch, want_reasoning=self.want_reasoning
            )
        except InferError as e:
            self.formatter.format_error(e)
            return
        self.chain = branch
        self.formatter.format_reply(result)

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]Companion[/bold]\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        while self._running:
            try:
                user_input = await asyncio.get_event_loop().run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            self.console.print("[dim]assistant>[/dim] ", end="")
            await self.handle_input(user_input)
