# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Pattern-based scan of a source tree.

Three kinds of checks run line by line over source files:
- security: shell execution, ``eval`` and hardcoded passwords
- quality: very long parameter lists, nested loops on one line, TODO notes
- standard: a file that does not open with a comment or docstring

The checks are regular expressions, so they point at places worth a look
rather than proving a problem.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from gitnl.exceptions import ExecutionError

logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset({"node_modules", ".git", "dist", "build"})

SOURCE_EXTENSIONS = frozenset(
    {
        ".js", ".ts", ".jsx", ".tsx", ".vue",
        ".php", ".py", ".java", ".rb", ".go",
        ".c", ".cpp", ".cs",
    }
)

HEADER_PREFIXES = ("/*", "//", "#", '"""', "'''", "<!--")


class IssueKind(str, Enum):
    SECURITY = "security"
    QUALITY = "quality"
    STANDARD = "standard"


class IssueSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


@dataclass(frozen=True)
class LineRule:
    """A regular expression checked against every line of a file."""

    pattern: re.Pattern[str]
    description: str


SECURITY_RULES: tuple[LineRule, ...] = (
    LineRule(re.compile(r"exec\s*\(", re.IGNORECASE), "Possible command injection"),
    LineRule(re.compile(r"eval\s*\(", re.IGNORECASE), "Use of unsafe eval()"),
    LineRule(
        re.compile(r"password.*=.*(['\"]).*\1", re.IGNORECASE), "Hardcoded password"
    ),
)

QUALITY_RULES: tuple[LineRule, ...] = (
    LineRule(
        re.compile(r"(function|def)\s*\w+\s*\([^)]{100,}", re.IGNORECASE),
        "Function has too many parameters",
    ),
    LineRule(
        re.compile(r"for\s*\([^)]+\)\s*\{\s*for\s*\(", re.IGNORECASE),
        "Nested loop on one line may be slow",
    ),
    LineRule(re.compile(r"(//|#)\s*TODO", re.IGNORECASE), "Unfinished TODO note"),
)

KIND_DETAILS: dict[IssueKind, tuple[str, IssueSeverity, str]] = {
    IssueKind.SECURITY: ("SEC", IssueSeverity.HIGH, "Use a safer alternative"),
    IssueKind.QUALITY: ("QUAL", IssueSeverity.MEDIUM, "Consider refactoring this code"),
    IssueKind.STANDARD: (
        "STD",
        IssueSeverity.LOW,
        "Add a header comment that follows the project's conventions",
    ),
}


@dataclass(frozen=True)
class ScanOptions:
    """Which kinds of checks to run."""

    security: bool = True
    quality: bool = True
    standard: bool = True

    @classmethod
    def only(cls, security: bool = False, quality: bool = False) -> ScanOptions:
        """Build options from ``--security`` / ``--quality`` style flags.

        Neither flag runs every check; either flag limits the scan to the
        kinds that were asked for.

        Example:
            >>> ScanOptions.only(security=True)
            ScanOptions(security=True, quality=False, standard=False)
        """
        if not security and not quality:
            return cls()
        return cls(security=security, quality=quality, standard=False)


@dataclass(frozen=True)
class CodeIssue:
    """One finding. ``line`` is 1-based, None for whole-file findings."""

    id: str
    kind: IssueKind
    severity: IssueSeverity
    description: str
    file: str
    line: int | None = None
    solution: str | None = None


@dataclass
class AnalysisResult:
    """Findings of one scan."""

    root: str
    files_scanned: int = 0
    issues: list[CodeIssue] = field(default_factory=list)
    unreadable: list[str] = field(default_factory=list)
    scanned_at: datetime = field(default_factory=datetime.now)

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    def count(self, kind: IssueKind) -> int:
        """Number of issues of ``kind``."""
        return sum(1 for issue in self.issues if issue.kind is kind)

    @property
    def summary(self) -> dict[str, int]:
        return {kind.value: self.count(kind) for kind in IssueKind}


def iter_source_files(root: Path) -> Iterator[Path]:
    """Yield source files under ``root`` in a stable order.

    Dependency and build directories are not entered. A file passed as
    ``root`` is yielded if it has a source extension.
    """
    if root.is_file():
        if root.suffix in SOURCE_EXTENSIONS:
            yield root
        return

    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS)
        for name in sorted(files):
            path = Path(current) / name
            if path.suffix in SOURCE_EXTENSIONS:
                yield path


def has_header(content: str) -> bool:
    """True if the file opens with a comment or docstring."""
    return content.lstrip().startswith(HEADER_PREFIXES)


class CodeAnalyzer:
    """Runs the line checks over a tree and numbers the findings.

    Example:
        >>> analyzer = CodeAnalyzer(ScanOptions.only(security=True))
        >>> [issue.id for issue in analyzer.check_content("eval(x)", "a.py")]
        ['SEC001']
    """

    def __init__(self, options: ScanOptions | None = None) -> None:
        self.options = options or ScanOptions()
        self._counters: dict[IssueKind, int] = {}

    def analyze(self, path: str | Path = ".") -> AnalysisResult:
        """Scan every source file under ``path``.

        Files that cannot be read are listed in ``unreadable`` and logged;
        the scan goes on without them.

        Raises:
            ExecutionError: If ``path`` does not exist.
        """
        root = Path(path)
        if not root.exists():
            raise ExecutionError(
                f"Scan path does not exist: {root}",
                suggestion="Pass an existing file or directory with --path",
            )

        self._counters = {}
        result = AnalysisResult(root=str(root))
        logger.debug("Scanning %s with %s", root, self.options)

        for file_path in iter_source_files(root):
            display = self._display_name(root, file_path)
            try:
                content = file_path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning("Skipping unreadable file %s: %s", file_path, e)
                result.unreadable.append(display)
                continue
            result.files_scanned += 1
            result.issues.extend(self.check_content(content, display))

        logger.debug("Scanned %d file(s), %d issue(s)", result.files_scanned, result.issue_count)
        return result

    def check_content(self, content: str, file: str) -> list[CodeIssue]:
        """Run the enabled checks over one file's text."""
        issues: list[CodeIssue] = []
        lines = content.split("\n")

        if self.options.security:
            issues += self._check_lines(lines, file, IssueKind.SECURITY, SECURITY_RULES)
        if self.options.quality:
            issues += self._check_lines(lines, file, IssueKind.QUALITY, QUALITY_RULES)
        if self.options.standard and content.strip() and not has_header(content):
            issues.append(
                self._issue(IssueKind.STANDARD, "File has no header comment", file)
            )
        return issues

    def _check_lines(
        self,
        lines: list[str],
        file: str,
        kind: IssueKind,
        rules: tuple[LineRule, ...],
    ) -> list[CodeIssue]:
        found = []
        for rule in rules:
            for number, line in enumerate(lines, 1):
                if rule.pattern.search(line):
                    found.append(self._issue(kind, rule.description, file, number))
        return found

    def _issue(
        self, kind: IssueKind, description: str, file: str, line: int | None = None
    ) -> CodeIssue:
        prefix, severity, solution = KIND_DETAILS[kind]
        self._counters[kind] = self._counters.get(kind, 0) + 1
        return CodeIssue(
            id=f"{prefix}{self._counters[kind]:03d}",
            kind=kind,
            severity=severity,
            description=description,
            file=file,
            line=line,
            solution=solution,
        )

    @staticmethod
    def _display_name(root: Path, file_path: Path) -> str:
        if root.is_file():
            return file_path.name
        return file_path.relative_to(root).as_posix()


def analyze_codebase(path: str | Path = ".", options: ScanOptions | None = None) -> AnalysisResult:
    """Scan ``path`` with ``options`` (every check by default)."""
    return CodeAnalyzer(options).analyze(path)
