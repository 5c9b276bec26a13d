# coursegraph/lessons/markdown_validator.py
"""
Validate a lesson corpus and report every problem in one pass.

This module provides the strict structural checks for parsed lessons and
the aggregation of all issues into a single deterministic report.

Usage:
    coursegraph path/to/corpus/ [--strict] [--format json]

Or:
    python -m coursegraph path/to/corpus/
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .types import (
    IssueKind,
    Lesson,
    SectionName,
    Severity,
    ValidationIssue,
    relative_posix,
)

# Sections every lesson must have
REQUIRED_SECTIONS = (SectionName.SUMMARY,)

# Sections whose absence is reported as a warning
RECOMMENDED_SECTIONS = (SectionName.RESOURCES,)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_USAGE = 2


@dataclass
class ValidationReport:
    """All errors and warnings of a run, sorted by path then kind."""

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> dict:
        return {
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "summary": {"errors": len(self.errors), "warnings": len(self.warnings)},
        }

    def to_json(self) -> str:
        return dump_json(self.to_dict())

    def __str__(self) -> str:
        return format_report(self)


def dump_json(data: dict) -> str:
    """Serialize with stable key ordering for diffable output."""
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)


def validate_lesson(
    lesson: Lesson, root: Path | None = None, course: str | None = None
) -> list[ValidationIssue]:
    """
    Check a parsed lesson for structural problems.

    Args:
        lesson: The parsed lesson
        root: Corpus root, used to render the lesson path
        course: Course id to attach to issues

    Returns:
        List of ValidationIssue objects (empty if valid)
    """
    path = relative_posix(lesson.path, root)
    issues: list[ValidationIssue] = []

    def add(kind: IssueKind, severity: Severity, message: str, line: int | None = None):
        issues.append(
            ValidationIssue(
                kind=kind,
                severity=severity,
                path=path,
                message=message,
                line=line,
                course=course,
            )
        )

    for name in REQUIRED_SECTIONS:
        if name not in lesson.sections:
            add(IssueKind.MISSING_SECTION, Severity.ERROR, f"Missing required section: {name.value}")

    for name in RECOMMENDED_SECTIONS:
        if name not in lesson.sections:
            add(IssueKind.MISSING_SECTION, Severity.WARNING, f"Missing section: {name.value}")

    for duplicate in lesson.duplicate_sections:
        first = lesson.sections[duplicate.name]
        add(
            IssueKind.DUPLICATE_SECTION,
            Severity.ERROR,
            f"Section '{duplicate.heading}' repeats {duplicate.name.value} "
            f"(first at line {first.line})",
            line=duplicate.line,
        )

    if lesson.variants:
        ids = ", ".join(variant.source_lesson for variant in lesson.variants)
        add(
            IssueKind.MULTI_VARIANT_DOCUMENT,
            Severity.WARNING,
            f"File holds {len(lesson.variants) + 1} lesson variants; content after "
            f"line {lesson.variants[0].line} is unresolved (additional ids: {ids})",
            line=lesson.variants[0].line,
        )

    if lesson.unterminated_fence_line is not None:
        add(
            IssueKind.UNTERMINATED_CODE_FENCE,
            Severity.WARNING,
            "Code fence is never closed",
            line=lesson.unterminated_fence_line,
        )

    return issues


def build_report(issues: list[ValidationIssue], strict: bool = False) -> ValidationReport:
    """
    Aggregate issues into a sorted report.

    With strict=True every warning is promoted to an error.
    """
    errors = []
    warnings = []
    for issue in issues:
        if strict and issue.severity is Severity.WARNING:
            issue = dataclasses.replace(issue, severity=Severity.ERROR)
        if issue.is_error:
            errors.append(issue)
        else:
            warnings.append(issue)

    errors.sort(key=ValidationIssue.sort_key)
    warnings.sort(key=ValidationIssue.sort_key)
    return ValidationReport(errors=errors, warnings=warnings)


def format_report(report: ValidationReport) -> str:
    """Render a report for the terminal."""
    lines = []
    if report.errors:
        lines.append(f"{len(report.errors)} error(s)")
        lines.extend(f"  - {issue}" for issue in report.errors)
    if report.warnings:
        lines.append(f"{len(report.warnings)} warning(s)")
        lines.extend(f"  - {issue}" for issue in report.warnings)
    if not lines:
        return "OK"
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    from coursegraph.config import (
        configure_logging,
        get_worker_count,
        is_strict_mode,
        load_environment,
    )
    from coursegraph.lessons.pipeline import run_pipeline

    parser = argparse.ArgumentParser(
        description="Validate a course content tree and assemble its course graph",
        prog="coursegraph",
    )
    parser.add_argument("root", type=Path, help="Corpus root directory")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as errors",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Report output format (default: text)",
    )
    parser.add_argument(
        "--report-out",
        type=Path,
        help="Also write the JSON report to this file",
    )
    parser.add_argument(
        "--graph-out",
        type=Path,
        help="Write the assembled course graph as JSON to this file",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Maximum number of files parsed in parallel",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    load_environment()
    configure_logging(verbose=args.verbose)

    if not args.root.is_dir():
        print(f"Path not found or not a directory: {args.root}", file=sys.stderr)
        return EXIT_USAGE

    if args.workers is not None and args.workers < 1:
        print("--workers must be at least 1", file=sys.stderr)
        return EXIT_USAGE

    strict = args.strict or is_strict_mode()
    result = run_pipeline(
        args.root,
        workers=args.workers or get_worker_count(),
        strict=strict,
    )
    report = result.report

    if args.format == "json":
        print(report.to_json())
    else:
        if report.errors or report.warnings:
            print(format_report(report))
        print(
            f"\nValidated {result.files_checked} file(s) in "
            f"{len(result.courses) + len(result.failed_courses)} course(s): "
            f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        )
        if result.failed_courses:
            print("Courses not assembled: " + ", ".join(result.failed_courses))

    try:
        if args.report_out is not None:
            args.report_out.write_text(report.to_json() + "\n", encoding="utf-8")
        if args.graph_out is not None:
            args.graph_out.write_text(dump_json(result.graph_dict()) + "\n", encoding="utf-8")
    except OSError as e:
        print(f"Could not write output: {e}", file=sys.stderr)
        return EXIT_USAGE

    return EXIT_INVALID if report.errors else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
