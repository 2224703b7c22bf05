"""Tests for the source scanner.

Tests cover:
- Which files are visited (extensions, ignored directories)
- Security, quality and header checks with their line numbers
- Option selection from the --security / --quality flags
- Missing paths and unreadable files
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gitnl.analysis import (
    CodeAnalyzer,
    IssueKind,
    IssueSeverity,
    ScanOptions,
    analyze_codebase,
)
from gitnl.analysis.analyzer import has_header, iter_source_files
from gitnl.exceptions import ExecutionError


def write(root: Path, name: str, content: str) -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestScanOptions:
    def test_no_flags_runs_everything(self) -> None:
        assert ScanOptions.only() == ScanOptions(security=True, quality=True, standard=True)

    def test_security_only(self) -> None:
        assert ScanOptions.only(security=True) == ScanOptions(
            security=True, quality=False, standard=False
        )

    def test_both_flags(self) -> None:
        assert ScanOptions.only(security=True, quality=True) == ScanOptions(
            security=True, quality=True, standard=False
        )


class TestFileSelection:
    def test_skips_ignored_dirs_and_other_extensions(self, tmp_path: Path) -> None:
        write(tmp_path, "src/app.py", "# app\n")
        write(tmp_path, "src/view.tsx", "// view\n")
        write(tmp_path, "README.md", "text\n")
        write(tmp_path, "node_modules/lib/index.js", "eval(x)\n")
        write(tmp_path, "build/out.js", "eval(x)\n")

        found = [p.relative_to(tmp_path).as_posix() for p in iter_source_files(tmp_path)]

        assert found == ["src/app.py", "src/view.tsx"]

    def test_single_file_root(self, tmp_path: Path) -> None:
        target = write(tmp_path, "main.go", "// main\n")
        assert list(iter_source_files(target)) == [target]
        assert list(iter_source_files(write(tmp_path, "notes.txt", "x"))) == []


class TestChecks:
    def test_security_findings_with_lines(self) -> None:
        content = "# header\nresult = eval(user_input)\npassword = 'hunter2'\n"
        issues = CodeAnalyzer(ScanOptions.only(security=True)).check_content(content, "a.py")

        assert [(issue.description, issue.line) for issue in issues] == [
            ("Use of unsafe eval()", 2),
            ("Hardcoded password", 3),
        ]
        assert all(issue.kind is IssueKind.SECURITY for issue in issues)
        assert all(issue.severity is IssueSeverity.HIGH for issue in issues)
        assert [issue.id for issue in issues] == ["SEC001", "SEC002"]

    def test_quality_findings(self) -> None:
        content = (
            "/** util */\n"
            "for (let i = 0; i < n; i++) { for (let j = 0; j < n; j++) {} }\n"
            "// TODO: remove\n"
        )
        issues = CodeAnalyzer(ScanOptions.only(quality=True)).check_content(content, "a.js")

        assert [issue.line for issue in issues] == [2, 3]
        assert {issue.severity for issue in issues} == {IssueSeverity.MEDIUM}

    def test_missing_header(self) -> None:
        issues = CodeAnalyzer().check_content("x = 1\n", "a.py")

        assert len(issues) == 1
        assert issues[0].kind is IssueKind.STANDARD
        assert issues[0].line is None
        assert issues[0].id == "STD001"

    def test_header_forms(self) -> None:
        assert has_header('"""Module docstring."""\n')
        assert has_header("\n/* c */\n")
        assert has_header("#!/usr/bin/env python\n")
        assert not has_header("import os\n")

    def test_empty_file_has_no_findings(self) -> None:
        assert CodeAnalyzer().check_content("", "empty.py") == []

    def test_disabled_kinds_are_not_checked(self) -> None:
        analyzer = CodeAnalyzer(ScanOptions(security=False, quality=False, standard=False))
        assert analyzer.check_content("eval(x)  # TODO\n", "a.py") == []


class TestAnalyze:
    def test_tree_summary(self, tmp_path: Path) -> None:
        write(tmp_path, "src/a.py", "# a\nos.system('x')  # TODO tidy\n")
        write(tmp_path, "src/b.js", "const run = () => exec('ls')\n")

        result = analyze_codebase(tmp_path)

        assert result.files_scanned == 2
        assert result.summary == {"security": 1, "quality": 1, "standard": 1}
        assert result.issue_count == 3
        assert {issue.file for issue in result.issues} == {"src/a.py", "src/b.js"}

    def test_ids_restart_for_each_scan(self, tmp_path: Path) -> None:
        write(tmp_path, "a.py", "eval(x)\n")
        analyzer = CodeAnalyzer(ScanOptions.only(security=True))

        first = analyzer.analyze(tmp_path)
        second = analyzer.analyze(tmp_path)

        assert [issue.id for issue in first.issues] == ["SEC001"]
        assert [issue.id for issue in second.issues] == ["SEC001"]

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(ExecutionError) as exc_info:
            analyze_codebase(tmp_path / "nope")
        assert "--path" in exc_info.value.suggestion

    def test_unreadable_file_is_reported(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        write(tmp_path, "ok.py", "# ok\n")
        write(tmp_path, "locked.py", "# locked\n")
        original = Path.read_text

        def read_text(self: Path, *args, **kwargs) -> str:
            if self.name == "locked.py":
                raise PermissionError("denied")
            return original(self, *args, **kwargs)

        monkeypatch.setattr(Path, "read_text", read_text)

        result = analyze_codebase(tmp_path)

        assert result.files_scanned == 1
        assert result.unreadable == ["locked.py"]
