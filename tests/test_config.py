"""Tests for companion.config layering."""

from __future__ import annotations

from pathlib import Path

import pytest

from companion.config import CompanionConfig, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("COMPANION_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    p = tmp_path / "companion.yaml"
    p.write_text(
        "llm:\n"
        "  model: qwen3-8b\n"
        "  infer_url: http://localhost:8080\n"
        "  think_on_postfix: ' /think'\n"
        "  unknown_key: ignored\n"
        "persona:\n"
        "  name: Ordis\n"
        "profiles:\n"
        "  small:\n"
        "    llm:\n"
        "      model: qwen3-0.6b\n"
        "      use_system_prompt: false\n",
        encoding="utf-8",
    )
    return p


class TestDefaults:
    def test_defaults(self):
        cfg = load_config()
        assert cfg.llm.model == "default"
        assert cfg.llm.infer_url == "http://infer"
        assert cfg.llm.use_system_prompt is True
        assert cfg.llm.has_reasoning is False
        assert cfg.llm.has_toggleable_reasoning is False
        assert cfg.persona.role_short_description == "AI companion"

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nope.yaml")
        assert cfg.llm.model == "default"


class TestLayering:
    def test_file(self, config_file):
        cfg = load_config(config_file)
        assert cfg.llm.model == "qwen3-8b"
        assert cfg.llm.infer_url == "http://localhost:8080"
        assert cfg.llm.has_toggleable_reasoning is True

    def test_profile(self, config_file):
        cfg = load_config(config_file, profile="small")
        assert cfg.llm.model == "qwen3-0.6b"
        assert cfg.llm.use_system_prompt is False
        assert cfg.llm.infer_url == "http://localhost:8080"

    def test_env_beats_file(self, config_file, monkeypatch):
        monkeypatch.setenv("COMPANION_LLM_MODEL", "from-env")
        monkeypatch.setenv("COMPANION_LLM_HAS_REASONING", "yes")
        monkeypatch.setenv("COMPANION_LLM_TIMEOUT", "5")
        cfg = load_config(config_file)
        assert cfg.llm.model == "from-env"
        assert cfg.llm.has_reasoning is True
        assert cfg.llm.timeout_seconds == 5

    def test_cli_beats_env(self, monkeypatch):
        monkeypatch.setenv("COMPANION_PERSONA_NAME", "Env")
        cfg = load_config(cli_overrides={"persona.name": "Cli"})
        assert cfg.persona.name == "Cli"

    def test_session_override(self):
        cfg = load_config()
        cfg.set_override("llm.reasoning_strategy", "forced")
        assert cfg.llm.reasoning_strategy == "forced"
        assert cfg.get_override("llm.reasoning_strategy") == "forced"
        assert "_overrides" not in cfg.to_dict()


class TestValidate:
    def test_valid(self):
        CompanionConfig().validate()

    def test_bad_strategy(self):
        cfg = CompanionConfig()
        cfg.llm.reasoning_strategy = "sometimes"
        with pytest.raises(ValueError):
            cfg.validate()

    def test_empty_name(self):
        cfg = CompanionConfig()
        cfg.persona.name = "  "
        with pytest.raises(ValueError):
            cfg.validate()
