"""Prompt file parser: recover model, context refs and turns from _PROMPT.md.

The file is read line by line with a small state machine:

    SEEKING_HEADER -> IN_MODEL / IN_CONTEXT   (metadata headers)
    any metadata state -> IN_BODY             (first line that is exactly ---)
    IN_BODY / IN_TURN -> IN_TURN              (### User / ### LLM headers)

HTML comments are ignored while reading metadata, so instructions at the top
of the file may mention headers or contain a --- line without breaking
anything. Inside the conversation body, only exact User/LLM header lines
start a new turn; any other markdown is turn content.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from enum import Enum

from gb9k.core.models import Conversation, Message, Role

log = logging.getLogger(__name__)

BOUNDARY = "---"

_HEADER_RE = re.compile(r"^#{1,6}\s+(Model|Context|User|LLM)\s*$", re.IGNORECASE)
_LIST_MARKER_RE = re.compile(r"^[-*+]\s*")
_LEADING_COMMENT_RE = re.compile(r"^\s*(?:<!--.*?-->\s*)+", re.DOTALL)


class MalformedFileError(ValueError):
    """Raised when a prompt file cannot be turned into a conversation."""


class _State(str, Enum):
    SEEKING_HEADER = "seeking-header"
    IN_MODEL = "in-model"
    IN_CONTEXT = "in-context"
    IN_BODY = "in-body"
    IN_TURN = "in-turn"


def header_name(line: str) -> str | None:
    """Return the canonical section name ('model', 'context', 'user', 'llm') or None."""
    m = _HEADER_RE.match(line.strip())
    return m.group(1).lower() if m else None


def _strip_comments(line: str, in_comment: bool) -> tuple[str, bool]:
    """Remove <!-- --> spans from one line, tracking comments that span lines."""
    out: list[str] = []
    i = 0
    while i <= len(line):
        if in_comment:
            end = line.find("-->", i)
            if end == -1:
                return "".join(out), True
            i = end + 3
            in_comment = False
        else:
            start = line.find("<!--", i)
            if start == -1:
                out.append(line[i:])
                break
            out.append(line[i:start])
            i = start + 4
            in_comment = True
    return "".join(out), in_comment


def clean_turn(text: str) -> str:
    """Trim a turn and drop leading HTML comments (the reply placeholder)."""
    return _LEADING_COMMENT_RE.sub("", text, count=1).strip()


def _role_for(name: str | None) -> str:
    return Role.ASSISTANT.value if name == "llm" else Role.USER.value


def parse_prompt(
    text: str,
    *,
    known_models: Iterable[str],
    default_model: str,
) -> Conversation:
    """Parse the full text of a prompt file.

    Args:
        text: Contents of the prompt file.
        known_models: Model ids accepted in the Model section.
        default_model: Substituted when the Model section is absent or unknown.

    Returns:
        Conversation with model id, context refs and non-empty messages in
        file order. The message list may be empty; callers decide whether
        that is an error.

    Raises:
        MalformedFileError: The file has no --- line separating metadata
            from the conversation.
    """
    known = set(known_models)
    state = _State.SEEKING_HEADER
    in_comment = False
    seen: set[str] = set()

    model_lines: list[str] = []
    context_refs: list[str] = []
    turns: list[tuple[str | None, list[str]]] = []
    found_boundary = False

    for raw in text.splitlines():
        if state in (_State.IN_BODY, _State.IN_TURN):
            name = header_name(raw)
            if name in ("user", "llm"):
                turns.append((name, []))
                state = _State.IN_TURN
                continue
            if name is not None:
                log.debug("Ignoring '%s' header inside the conversation body", raw.strip())
            if not turns:
                turns.append((None, []))
            turns[-1][1].append(raw)
            continue

        line, in_comment = _strip_comments(raw, in_comment)
        stripped = line.strip()

        if stripped == BOUNDARY:
            found_boundary = True
            state = _State.IN_BODY
            continue

        name = header_name(stripped)
        if name is not None:
            if name in seen or name in ("user", "llm"):
                log.debug("Ignoring '%s' header before the conversation marker", stripped)
                state = _State.SEEKING_HEADER
                continue
            seen.add(name)
            state = _State.IN_MODEL if name == "model" else _State.IN_CONTEXT
            continue

        if state == _State.IN_MODEL:
            model_lines.append(line)
        elif state == _State.IN_CONTEXT and stripped:
            ref = _LIST_MARKER_RE.sub("", stripped).strip()
            if ref:
                context_refs.append(ref)

    if not found_boundary:
        raise MalformedFileError("no conversation marker ('---' line) found in prompt file")

    model_id, recovered = _resolve_model("\n".join(model_lines).strip(), known, default_model)

    messages: list[Message] = []
    for name, lines in turns:
        content = clean_turn("\n".join(lines))
        if content:
            messages.append(Message(role=_role_for(name), content=content))

    return Conversation(
        model_id=model_id,
        context_refs=context_refs,
        messages=messages,
        model_recovered=recovered,
    )


def _resolve_model(value: str, known: set[str], default_model: str) -> tuple[str, bool]:
    if not value:
        return default_model, False
    if value in known:
        return value, False
    log.warning(
        "Unknown model '%s', using default '%s'. Run `gb9k models` to refresh the model list.",
        value,
        default_model,
    )
    return default_model, True
