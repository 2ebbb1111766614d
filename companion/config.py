"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < env vars < CLI flags < per-session overrides
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


REASONING_STRATEGIES = ("auto", "native", "forced", "none")


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMConfig:
    model: str = "default"
    infer_url: str = "http://infer"
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: int = 120
    # Models that reject a ``system`` role get it merged into the first
    # user message instead.
    use_system_prompt: bool = True
    # The model wraps its own reasoning in <think>...</think>.
    has_reasoning: bool = False
    # Prompt-level reasoning toggles, e.g. " /think" and " /no_think".
    think_on_postfix: str = ""
    think_off_postfix: str = ""
    reasoning_strategy: str = "auto"

    @property
    def has_toggleable_reasoning(self) -> bool:
        return bool(self.think_on_postfix or self.think_off_postfix)


@dataclass
class PersonaConfig:
    name: str = "Ordis"
    role_short_description: str = "AI companion"
    personality_description: str = "You are helpful, curious, and empathetic."


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class CompanionConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    persona: PersonaConfig = field(default_factory=PersonaConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    # ----- per-session overrides (applied last) ----
    _overrides: dict[str, Any] = field(default_factory=dict, repr=False)

    def set_override(self, dotpath: str, value: Any) -> None:
        """Set a per-session override using dot notation (e.g. 'llm.model')."""
        self._overrides[dotpath] = value
        _apply_dotpath(self, dotpath, value)

    def get_override(self, dotpath: str) -> Any | None:
        return self._overrides.get(dotpath)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("_overrides", None)
        return d

    def validate(self) -> None:
        """Raise ``ValueError`` on settings the engine cannot honour."""
        if self.llm.reasoning_strategy not in REASONING_STRATEGIES:
            raise ValueError(
                f"llm.reasoning_strategy must be one of {REASONING_STRATEGIES}, "
                f"got {self.llm.reasoning_strategy!r}"
            )
        if not self.llm.infer_url:
            raise ValueError("llm.infer_url must not be empty")
        if not self.persona.name.strip():
            raise ValueError("persona.name must not be empty")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "COMPANION_LLM_MODEL":              ("llm.model", str),
    "COMPANION_LLM_INFER_URL":          ("llm.infer_url", str),
    "COMPANION_LLM_API_KEY_ENV":        ("llm.api_key_env", str),
    "COMPANION_LLM_TIMEOUT":            ("llm.timeout_seconds", int),
    "COMPANION_LLM_USE_SYSTEM_PROMPT":  ("llm.use_system_prompt", bool),
    "COMPANION_LLM_HAS_REASONING":      ("llm.has_reasoning", bool),
    "COMPANION_LLM_THINK_ON_POSTFIX":   ("llm.think_on_postfix", str),
    "COMPANION_LLM_THINK_OFF_POSTFIX":  ("llm.think_off_postfix", str),
    "COMPANION_LLM_REASONING_STRATEGY": ("llm.reasoning_strategy", str),
    "COMPANION_PERSONA_NAME":           ("persona.name", str),
    "COMPANION_PERSONA_ROLE":           ("persona.role_short_description", str),
    "COMPANION_PERSONA_PERSONALITY":    ("persona.personality_description", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> CompanionConfig:
    """
    Build a CompanionConfig by layering sources in precedence order:

        defaults  <  config file  <  env vars  <  CLI flags  <  per-session overrides

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile and "profiles" in raw:
        profile_data = raw.get("profiles", {}).get(profile, {})
        if profile_data:
            raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = CompanionConfig(
        llm=_build_section(LLMConfig, raw.get("llm", {})),
        persona=_build_section(PersonaConfig, raw.get("persona", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
