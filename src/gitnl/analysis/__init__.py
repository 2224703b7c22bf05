# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Pattern-based source scan behind ``gt scan``."""

from gitnl.analysis.analyzer import (
    AnalysisResult,
    CodeAnalyzer,
    CodeIssue,
    IssueKind,
    IssueSeverity,
    ScanOptions,
    analyze_codebase,
)

__all__ = [
    "AnalysisResult",
    "CodeAnalyzer",
    "CodeIssue",
    "IssueKind",
    "IssueSeverity",
    "ScanOptions",
    "analyze_codebase",
]
