"""Core data models for gb9k."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum


# --- Enums ---


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# --- Helpers ---


def _to_price(value) -> Decimal | None:
    """Parse an API price ("0.000003", 3e-06, None) into a Decimal."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


# --- Prompt file ---


@dataclass
class Message:
    """A single turn of the conversation."""

    role: str  # "user" or "assistant"
    content: str

    def to_api(self) -> dict[str, str]:
        return {"role": str(Role(self.role).value), "content": self.content}


@dataclass
class Conversation:
    """State recovered from a prompt file."""

    model_id: str = ""
    context_refs: list[str] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    model_recovered: bool = False


# --- Pricing ---


@dataclass
class ModelQuote:
    """A model listed by OpenRouter with its per-token prices."""

    id: str
    name: str = ""
    prompt_price: Decimal | None = None
    completion_price: Decimal | None = None
    context_length: int | None = None

    @property
    def has_pricing(self) -> bool:
        return bool(self.prompt_price) and bool(self.completion_price)

    @classmethod
    def from_api(cls, data: dict) -> ModelQuote:
        """Build a quote from one entry of the /models response."""
        pricing = data.get("pricing") or {}
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            prompt_price=_to_price(pricing.get("prompt")),
            completion_price=_to_price(pricing.get("completion")),
            context_length=data.get("context_length"),
        )


# --- Streaming ---


@dataclass
class StreamState:
    """Accumulated state of one streamed exchange."""

    parts: list[str] = field(default_factory=list)
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    finished: bool = False

    @property
    def text(self) -> str:
        return "".join(self.parts)

    @property
    def has_usage(self) -> bool:
        return self.prompt_tokens is not None and self.completion_tokens is not None


@dataclass
class UsageReport:
    """Token counts and cost of a completed exchange.

    Costs are None when the model's pricing is unknown.
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    estimated: bool = False
    prompt_cost: Decimal | None = None
    completion_cost: Decimal | None = None
    total_cost: Decimal | None = None

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def cost_available(self) -> bool:
        return self.total_cost is not None
