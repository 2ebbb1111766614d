"""Prompts used by the inference engine for its own helper calls."""

from __future__ import annotations

import json


def context_length_prompt(error_text: str) -> str:
    """Ask whether a provider error message is about context length."""
    quoted = json.dumps(error_text)
    return (
        "<instructions>"
        f"The following is an error message from an LLM API: {quoted}. "
        "Is this an error about context length?"
        "</instructions>\n"
        "<formatInstructions>"
        "With no preamble, respond with a JSON object in the following format: {\n"
        '    "answer": true if this is a context length error, false otherwise\n'
        "}"
        "</formatInstructions>"
    )


THINK_STEP_PROMPT = (
    "Before answering, think step by step about how to respond to the "
    "conversation above. Write out your reasoning only. Do not give the "
    "final answer yet."
)

FINAL_ANSWER_PROMPT = (
    "Now, using the reasoning above, give your final answer. Follow the "
    "original instructions and formatting requirements exactly, and do not "
    "repeat the reasoning."
)


def wrap_reasoning(reasoning: str) -> str:
    """Render *reasoning* as a think block for replay in an assistant turn."""
    return f"<think>\n{reasoning}\n</think>"
