"""Tests for gb9k.context.assembler."""

import logging
from pathlib import Path
from unittest.mock import patch

from gb9k.context.assembler import assemble_context, file_delimiter


class TestAssembleContext:
    def test_empty_refs(self, tmp_path: Path):
        bundle = assemble_context([], tmp_path)
        assert bundle.text == ""
        assert bundle.files == []
        assert bundle.warnings == []

    def test_concatenates_with_delimiters(self, tmp_path: Path):
        (tmp_path / "a.js").write_text("const a = 1;", encoding="utf-8")
        (tmp_path / "b.py").write_text("b = 2", encoding="utf-8")

        bundle = assemble_context(["a.js", "b.py"], tmp_path)
        assert bundle.text == (
            "/* ~~~ a.js ~~~ */\nconst a = 1;\n\n"
            "/* ~~~ b.py ~~~ */\nb = 2"
        )
        assert bundle.files == ["a.js", "b.py"]

    def test_missing_file_warns_and_continues(self, tmp_path: Path, caplog):
        (tmp_path / "a.js").write_text("const a = 1;", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            bundle = assemble_context(["a.js", "missing.js"], tmp_path)

        assert "const a = 1;" in bundle.text
        assert "missing.js" not in bundle.text
        assert bundle.files == ["a.js"]
        assert len(bundle.warnings) == 1
        assert "missing.js" in bundle.warnings[0]
        assert "missing.js" in caplog.text

    def test_unreadable_file_warns(self, tmp_path: Path):
        (tmp_path / "a.js").write_text("a", encoding="utf-8")
        (tmp_path / "b.js").write_text("b", encoding="utf-8")

        def fake_read(path):
            if path.name == "b.js":
                raise PermissionError("denied")
            return path.read_text(encoding="utf-8")

        with patch("gb9k.context.assembler.read_text", side_effect=fake_read):
            bundle = assemble_context(["a.js", "b.js"], tmp_path)

        assert bundle.files == ["a.js"]
        assert "denied" in bundle.warnings[0]

    def test_directory_ref_expands(self, tmp_path: Path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "x.ts").write_text("x", encoding="utf-8")
        (tmp_path / "src" / "y.ts").write_text("y", encoding="utf-8")

        bundle = assemble_context(["src"], tmp_path)
        assert bundle.files == ["src/x.ts", "src/y.ts"]

    def test_duplicate_refs_included_once(self, tmp_path: Path):
        (tmp_path / "a.js").write_text("a", encoding="utf-8")
        bundle = assemble_context(["a.js", "./a.js"], tmp_path)
        assert bundle.text.count(file_delimiter("a.js")) == 1
