"""Streaming conversation engine.

One exchange is a pipeline:

    response lines -> iter_events() -> TokenSink -> stdout + prompt file + StreamState

``iter_events`` decodes server-sent events: only ``data:`` lines carry
payloads, ``data: [DONE]`` ends the stream, and a fragment that is not valid
JSON is logged and skipped. ``TokenSink`` performs the per-token side effects
in arrival order. ``StreamingExchange`` wires the two to the HTTP client and
the prompt file, and opens the next user turn only after ``[DONE]``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TextIO

from gb9k.core.models import Message, Role, StreamState
from gb9k.llm.openrouter import OpenRouterClient, OpenRouterError
from gb9k.prompt.document import PromptFile

log = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

CONTEXT_INTRO = "Here are the contents of the project files for this conversation:"


class StreamInterruptedError(OpenRouterError):
    """Raised when the response stream ends without the [DONE] sentinel."""


@dataclass
class StreamEvent:
    """One decoded stream fragment."""

    content: str = ""
    usage: dict | None = None
    done: bool = False


def _delta_content(fragment: dict) -> str:
    choices = fragment.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


def iter_events(lines: Iterable[str]) -> Iterator[StreamEvent]:
    """Decode SSE lines into StreamEvents, stopping after [DONE]."""
    for raw in lines:
        line = raw.strip()
        if not line.startswith(DATA_PREFIX):
            continue
        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            yield StreamEvent(done=True)
            return
        try:
            fragment = json.loads(payload)
        except json.JSONDecodeError as e:
            log.warning("Skipping malformed stream fragment (%s): %.200s", e, payload)
            continue
        if not isinstance(fragment, dict):
            log.warning("Skipping unexpected stream fragment: %.200s", payload)
            continue
        if fragment.get("error"):
            log.warning("Error reported in stream: %s", fragment["error"])
        usage = fragment.get("usage")
        yield StreamEvent(
            content=_delta_content(fragment),
            usage=usage if isinstance(usage, dict) else None,
        )


def _stdout_echo(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class TokenSink:
    """Echo, append and accumulate each token as one step."""

    def __init__(
        self,
        handle: TextIO,
        state: StreamState,
        echo: Callable[[str], None] = _stdout_echo,
    ) -> None:
        self._handle = handle
        self._state = state
        self._echo = echo

    def write(self, token: str) -> None:
        self._echo(token)
        self._handle.write(token)
        self._handle.flush()
        self._state.parts.append(token)

    def record_usage(self, usage: dict) -> None:
        prompt = _token_count(usage, "prompt_tokens")
        completion = _token_count(usage, "completion_tokens")
        if prompt is not None:
            self._state.prompt_tokens = prompt
        if completion is not None:
            self._state.completion_tokens = completion


def _token_count(usage: dict, key: str) -> int | None:
    """Return a non-negative integer counter from a usage block, else None."""
    value = usage.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        log.warning("Ignoring invalid %s in stream usage: %r", key, value)
        return None
    try:
        count = int(value)
    except (ValueError, OverflowError):
        log.warning("Ignoring invalid %s in stream usage: %r", key, value)
        return None
    if count < 0:
        log.warning("Ignoring negative %s in stream usage: %r", key, value)
        return None
    return count


def build_messages(
    system_prompt: str,
    context: str,
    history: list[Message],
) -> list[dict[str, str]]:
    """Compose the request messages: system, context (if any), then history."""
    messages = [{"role": Role.SYSTEM.value, "content": system_prompt}]
    if context:
        messages.append({"role": Role.USER.value, "content": f"{CONTEXT_INTRO}\n\n{context}"})
    messages.extend(m.to_api() for m in history)
    return messages


@dataclass
class ExchangeResult:
    state: StreamState
    request_messages: list[dict[str, str]] = field(default_factory=list)


class StreamingExchange:
    """Run one streamed request/response and keep the prompt file in sync."""

    def __init__(
        self,
        client: OpenRouterClient,
        prompt_file: PromptFile,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._prompt_file = prompt_file
        self._echo = echo or _stdout_echo

    def run(
        self,
        model: str,
        system_prompt: str,
        context: str,
        history: list[Message],
    ) -> ExchangeResult:
        """Stream a reply into the prompt file.

        Raises:
            OpenRouterError: Non-success HTTP status; the file is untouched.
            OpenRouterNotAvailableError: Connection failed or dropped; any
                partial reply stays in the file and no user turn is added.
            StreamInterruptedError: The stream ended without [DONE].
        """
        request_messages = build_messages(system_prompt, context, history)
        state = StreamState()

        with self._client.stream_chat(model, request_messages) as lines:
            self._prompt_file.ensure_assistant_marker()
            with self._prompt_file.appender() as handle:
                sink = TokenSink(handle, state, self._echo)
                for event in iter_events(lines):
                    if event.done:
                        state.finished = True
                        break
                    if event.content:
                        sink.write(event.content)
                    if event.usage:
                        sink.record_usage(event.usage)

        if not state.finished:
            raise StreamInterruptedError(
                "Response stream ended before [DONE]; the reply may be incomplete"
            )

        self._prompt_file.finalize()
        log.debug("Exchange finished: %d chars streamed", len(state.text))
        return ExchangeResult(state=state, request_messages=request_messages)
