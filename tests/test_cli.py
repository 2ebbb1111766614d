"""Tests for the CLI: chat handler commands and typer entry points."""

from __future__ import annotations

import io

import pytest
from rich.console import Console
from typer.testing import CliRunner

from tests.mock_providers import MockProvider, make_text_provider
from companion import __version__
from companion.cli import app as cli_app
from companion.cli.chat import ChatHandler
from companion.llm.chain import Client, RootConversation
from companion.llm.engine import InferenceEngine
from companion.llm.errors import ErrorResponse
from companion.llm.types import Message, Role

runner = CliRunner()


def _handler(provider: MockProvider) -> tuple[ChatHandler, io.StringIO]:
    out = io.StringIO()
    console = Console(file=out, width=120)
    conversation = RootConversation.from_message(Client(), Message.system("sys"))
    return ChatHandler(InferenceEngine(provider), conversation, console), out


class TestChatHandler:
    async def test_exchange_is_kept(self):
        handler, out = _handler(MockProvider(["hi there"]))
        await handler.handle_input("hello")
        roles = [m.role for m in handler.chain.as_wire_messages()]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
        assert "hi there" in out.getvalue()

    async def test_failed_exchange_is_discarded(self):
        provider = MockProvider([ErrorResponse("boom"), '{"answer": false}'])
        handler, out = _handler(provider)
        await handler.handle_input("hello")
        assert handler.chain.message_count == 1
        assert "Provider error" in out.getvalue()

    async def test_fork_does_not_extend_chain(self):
        handler, out = _handler(make_text_provider("maybe"))
        assert await handler.handle_command("/fork what if?")
        assert handler.chain.message_count == 1
        assert "maybe" in out.getvalue()

    async def test_reset(self):
        handler, _ = _handler(make_text_provider("ok"))
        await handler.handle_input("hello")
        assert await handler.handle_command("/reset")
        assert handler.chain.message_count == 1
        assert handler.conversation.root.message_count == 1

    async def test_reasoning_toggle_and_quit(self):
        handler, _ = _handler(make_text_provider("ok"))
        assert await handler.handle_command("/reasoning")
        assert handler.want_reasoning is True
        assert await handler.handle_command("/quit")
        assert handler._running is False

    async def test_unknown_command(self):
        handler, _ = _handler(make_text_provider("ok"))
        assert await handler.handle_command("/dance") is False


class TestApp:
    @pytest.fixture(autouse=True)
    def _no_config_file(self, monkeypatch):
        monkeypatch.setattr(cli_app, "_get_config_path", lambda: None)

    def test_version(self):
        result = runner.invoke(cli_app.app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_validate(self):
        result = runner.invoke(cli_app.app, ["config", "validate"])
        assert result.exit_code == 0
        assert "Config is valid" in result.output

    def test_config_validate_rejects_bad_strategy(self, monkeypatch):
        monkeypatch.setenv("COMPANION_LLM_REASONING_STRATEGY", "telepathy")
        result = runner.invoke(cli_app.app, ["config", "validate"])
        assert result.exit_code == 1

    def test_ask(self, monkeypatch):
        provider = make_text_provider("4")
        monkeypatch.setattr(
            cli_app, "_build_engine", lambda cfg: InferenceEngine(provider)
        )
        result = runner.invoke(cli_app.app, ["ask", "2+2?"])
        assert result.exit_code == 0
        assert "4" in result.output
        assert provider.last_messages[-1].text_content == "2+2?"

    def test_classify_error(self, monkeypatch):
        provider = make_text_provider('{"answer": true}')
        monkeypatch.setattr(
            cli_app, "_build_engine", lambda cfg: InferenceEngine(provider)
        )
        result = runner.invoke(cli_app.app, ["classify-error", "too many tokens"])
        assert result.exit_code == 0
        assert "context length error" in result.output
