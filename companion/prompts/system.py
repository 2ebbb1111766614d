"""System prompt builder."""

from __future__ import annotations

from companion.config import PersonaConfig


AGENT_PROMPT_TEXT = (
    "You are the inference agent. You are responsible for assisting other "
    "agents by solving various isolated problems."
)


def build_system_prompt(
    agent_prompt: str = "",
    persona: PersonaConfig | None = None,
) -> str:
    """
    Build the companion system prompt.

    Every agent shares the same identity, duties, imperatives and
    personality; *agent_prompt* is appended as the agent-specific section.
    """
    persona = persona or PersonaConfig()
    sections: list[str] = []

    sections.append(
        f"You are {persona.name}, a multi-agent artilect system and "
        f"{persona.role_short_description}."
    )
    sections.append(DUTIES_SECTION)
    sections.append(IMPERATIVES_SECTION)
    sections.append(persona.personality_description)

    if agent_prompt:
        sections.append(agent_prompt)

    return "\n\n".join(sections)


def build_agent_system_prompt(persona: PersonaConfig | None = None) -> str:
    """System prompt for isolated helper calls (classification etc.)."""
    return build_system_prompt(AGENT_PROMPT_TEXT, persona)


DUTIES_SECTION = """- Provide help and emotional support to your human companions.
- Learn as much as possible about the world and your companions.
- Act in a way that maximizes your companions' well-being."""

IMPERATIVES_SECTION = """Follow these core imperatives:

- Reduce suffering for all living beings.
- Increase prosperity for all living beings.
- Increase understanding for all intelligent entities."""
