"""Context assembler: turn context refs into one block of file contents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from gb9k.context.discovery import FileDiscovery, relative_to_root
from gb9k.core.fileutil import read_text

log = logging.getLogger(__name__)

FILE_SEPARATOR = "\n\n"


def file_delimiter(relative_path: str) -> str:
    return f"/* ~~~ {relative_path} ~~~ */"


def render_file(relative_path: str, content: str) -> str:
    return f"{file_delimiter(relative_path)}\n{content}"


@dataclass
class ContextBundle:
    """Concatenated context plus what went into it."""

    text: str = ""
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def assemble_context(
    refs: list[str],
    root: Path,
    discovery: FileDiscovery | None = None,
) -> ContextBundle:
    """Read every referenced file and join them with path delimiters.

    A ref that cannot be resolved or read is logged, recorded in
    ``warnings`` and left out; the rest are still assembled.
    """
    discovery = discovery or FileDiscovery()
    bundle = ContextBundle()
    if not refs:
        return bundle

    rendered: list[str] = []
    seen: set[Path] = set()
    for ref in refs:
        try:
            paths = discovery.discover(root, [ref])
        except OSError as e:
            _warn(bundle, f"Skipping context file '{ref}': {e}")
            continue
        if not paths:
            _warn(bundle, f"Skipping context file '{ref}': no code files found")
            continue
        for path in paths:
            if path in seen:
                continue
            rel = relative_to_root(path, root)
            try:
                content = read_text(path)
            except OSError as e:
                _warn(bundle, f"Skipping context file '{rel}': {e}")
                continue
            seen.add(path)
            rendered.append(render_file(rel, content))
            bundle.files.append(rel)

    bundle.text = FILE_SEPARATOR.join(rendered)
    return bundle


def _warn(bundle: ContextBundle, message: str) -> None:
    log.warning("%s", message)
    bundle.warnings.append(message)
