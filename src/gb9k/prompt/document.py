"""PromptFile: create _PROMPT.md and append to it while a reply streams in."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

from gb9k.prompt.parser import BOUNDARY, header_name

log = logging.getLogger(__name__)

USER_HEADER = "### User"
LLM_HEADER = "### LLM"
PLACEHOLDER = "<!-- Write your next message here, then run `gb9k run` -->"

_INSTRUCTIONS = """\
<!--
gb9k prompt file.
  Model:   one OpenRouter model id (see `gb9k models`).
  Context: files sent along with the conversation, one path per line.
Write your message under the last User header and run `gb9k run`.
The reply is streamed in under an LLM header.
-->"""


def render_template(model: str, context_refs: list[str] | None = None) -> str:
    """Render a fresh prompt file with one empty user turn."""
    refs = "\n".join(f"- {ref}" for ref in context_refs or [])
    parts = [
        _INSTRUCTIONS,
        "",
        "### Model",
        model,
        "",
        "### Context",
    ]
    if refs:
        parts.append(refs)
    parts += [
        "",
        BOUNDARY,
        "",
        USER_HEADER,
        PLACEHOLDER,
        "",
    ]
    return "\n".join(parts)


def _separator(text: str) -> str:
    """Newlines needed so that the next header starts after a blank line."""
    if not text or text.endswith("\n\n"):
        return ""
    if text.endswith("\n"):
        return "\n"
    return "\n\n"


def last_turn_header(text: str) -> str | None:
    """Return 'user' or 'llm' for the last turn header after ---, else None."""
    last: str | None = None
    in_body = False
    for line in text.splitlines():
        if not in_body:
            in_body = line.strip() == BOUNDARY
            continue
        name = header_name(line)
        if name in ("user", "llm"):
            last = name
    return last


class PromptFile:
    """A conversation file on disk, written only by appending."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def create(self, model: str, context_refs: list[str] | None = None) -> None:
        """Write a new prompt file from the template."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(render_template(model, context_refs), encoding="utf-8")
        log.info("Created prompt file %s", self.path)

    def append(self, text: str) -> None:
        with self.path.open("a", encoding="utf-8") as f:
            f.write(text)
            f.flush()

    @contextmanager
    def appender(self) -> Generator[TextIO, None, None]:
        """Open the file for appending; callers flush after every write."""
        with self.path.open("a", encoding="utf-8") as f:
            yield f

    def ensure_assistant_marker(self) -> bool:
        """Append the LLM header unless the last turn already is one.

        Returns:
            True if the header was appended, False if it was already there
            (left over from an interrupted run).
        """
        text = self.read()
        if last_turn_header(text) == "llm":
            log.info("%s already ends with an LLM turn, continuing it", self.path.name)
            return False
        self.append(f"{_separator(text)}{LLM_HEADER}\n")
        return True

    def finalize(self) -> None:
        """Open a new, empty user turn for the next message."""
        text = self.read()
        self.append(f"{_separator(text)}{USER_HEADER}\n{PLACEHOLDER}\n")
