"""File discovery: find the code files to bundle or send as context."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from gb9k.core.config import DEFAULTS

log = logging.getLogger(__name__)

PROMPT_PREFIX = "_PROMPT"

DEFAULT_EXTENSIONS: list[str] = list(DEFAULTS["files"]["extensions"])
DEFAULT_MANIFESTS: list[str] = list(DEFAULTS["files"]["manifests"])
DEFAULT_SKIP_DIRS: list[str] = list(DEFAULTS["files"]["skip_dirs"])
DEFAULT_SKIP_FILES: list[str] = list(DEFAULTS["files"]["skip_files"])


class FileDiscovery:
    """Walks a project tree and returns code files in a stable order."""

    def __init__(
        self,
        *,
        extensions: list[str] | None = None,
        manifests: list[str] | None = None,
        skip_dirs: list[str] | None = None,
        skip_files: list[str] | None = None,
    ) -> None:
        self._extensions = tuple(extensions or DEFAULT_EXTENSIONS)
        self._manifests = set(manifests or DEFAULT_MANIFESTS)
        self._skip_dirs = set(skip_dirs or DEFAULT_SKIP_DIRS)
        self._skip_files = set(skip_files or DEFAULT_SKIP_FILES)

    @classmethod
    def from_settings(cls, settings) -> FileDiscovery:
        return cls(
            extensions=settings.extensions,
            manifests=settings.manifests,
            skip_dirs=settings.skip_dirs,
            skip_files=settings.skip_files,
        )

    def is_code_file(self, path: Path) -> bool:
        name = path.name
        if name.startswith(PROMPT_PREFIX):
            return False
        return name in self._manifests or name.endswith(self._extensions)

    def discover(
        self,
        root: Path,
        paths: Iterable[Path | str] | None = None,
        exclude: Iterable[Path | str] = (),
    ) -> list[Path]:
        """Return absolute paths of code files.

        Args:
            root: Directory walked when no explicit paths are given; relative
                paths and excludes are resolved against it.
            paths: Explicit files or directories. Files are taken as-is when
                they have an allowed extension; directories are walked.
            exclude: Files or directories to leave out.

        Raises:
            FileNotFoundError: An explicit path does not exist.
        """
        root = Path(root).resolve()
        excluded = {(root / Path(p)).resolve() for p in exclude}

        if paths is None:
            return self._walk(root, excluded)

        files: list[Path] = []
        for p in paths:
            resolved = (root / Path(p)).resolve()
            if resolved in excluded:
                continue
            if resolved.is_dir():
                files.extend(self._walk(resolved, excluded))
            elif resolved.is_file():
                if self.is_code_file(resolved):
                    files.append(resolved)
                else:
                    log.debug("Skipping non-code file: %s", resolved)
            else:
                raise FileNotFoundError(f"No such file or directory: {p}")
        return files

    def _walk(self, base: Path, excluded: set[Path]) -> list[Path]:
        results: list[Path] = []
        try:
            entries = sorted(base.iterdir())
        except PermissionError:
            log.debug("Permission denied: %s", base)
            return results
        for item in entries:
            if item.resolve() in excluded:
                continue
            if item.is_dir():
                if item.name in self._skip_dirs:
                    continue
                results.extend(self._walk(item, excluded))
            elif item.is_file():
                if item.name in self._skip_files:
                    continue
                if self.is_code_file(item):
                    results.append(item.resolve())
        return results


def relative_to_root(path: Path, root: Path) -> str:
    """Path relative to root in POSIX form, or the absolute path if outside it."""
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.resolve().as_posix()
