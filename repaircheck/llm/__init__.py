"""
LLM Provider — Abstract Interface

All LLM calls go through this interface. Swap providers
by changing REPAIRCHECK_LLM_PROVIDER in env.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ChatResponse:
    """One completed chat turn."""
    content: str
    model: str
    usage: dict = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return int(self.usage.get("total_tokens") or 0)


def split_messages(messages: list[dict]) -> tuple[Optional[str], str]:
    """
    Flatten role-tagged chat messages into (system_instruction, prompt).

    System messages are joined into the instruction. The remaining turns
    become the prompt; a lone user turn is passed through verbatim.
    """
    system = [m["content"] for m in messages if m.get("role") == "system"]
    turns = [m for m in messages if m.get("role") != "system"]

    if len(turns) == 1 and turns[0].get("role", "user") == "user":
        prompt = turns[0]["content"]
    else:
        prompt = "\n\n".join(
            f"{m.get('role', 'user').upper()}: {m['content']}" for m in turns
        )
    return ("\n\n".join(system) or None), prompt


class LLMProvider(ABC):
    """Abstract base for LLM providers."""

    model_name: str = "unknown"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Generate a text response from the LLM."""
        ...

    def has_credential(self) -> bool:
        """Whether the provider is configured to make real calls."""
        return True

    async def send_chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
    ) -> ChatResponse:
        """
        Send role-tagged messages and return the reply with usage.

        Providers that report token usage override this; the default
        reports none.
        """
        system_instruction, prompt = split_messages(messages)
        content = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            temperature=temperature,
        )
        return ChatResponse(content=content, model=self.model_name)

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.3,
    ) -> dict:
        """Generate and parse a JSON response."""
        text = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            json_mode=True,
        )
        return parse_json_reply(text)


def parse_json_reply(text: str) -> dict:
    """Parse a JSON object out of an LLM reply, tolerating markdown fences."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[-1].rsplit("```", 1)[0].strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(
            f"LLM returned invalid JSON: {e}. Raw response: {text[:300]}"
        ) from e
    if not isinstance(parsed, dict):
        raise ValueError(f"LLM returned JSON {type(parsed).__name__}, expected object")
    return parsed
