# coursegraph/lessons/tests/test_markdown_validator.py
"""Tests for lesson checks, report aggregation and the CLI."""

import json
from pathlib import Path

import pytest

from coursegraph.lessons.markdown_parser import parse_lesson
from coursegraph.lessons.markdown_validator import (
    EXIT_INVALID,
    EXIT_OK,
    EXIT_USAGE,
    build_report,
    format_report,
    main,
    validate_lesson,
)
from coursegraph.lessons.types import IssueKind, Severity, ValidationIssue


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "COURSEGRAPH_STRICT",
        "COURSEGRAPH_WORKERS",
        "COURSEGRAPH_SKIP_DIRS",
        "COURSEGRAPH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def _issue(path, kind=IssueKind.ORPHAN_LESSON, severity=Severity.WARNING, line=None, message="m"):
    return ValidationIssue(kind=kind, severity=severity, path=path, message=message, line=line)


class TestValidateLesson:
    """Test structural checks on a parsed lesson."""

    def test_complete_lesson(self, lesson_text):
        lesson = parse_lesson(lesson_text("go", "go-a"), "go/s/1-a.md")
        assert validate_lesson(lesson) == []

    def test_missing_summary_is_error(self):
        text = '---\nsource_course: "go"\nsource_lesson: "go-a"\n---\n## Introduction\nHi.\n\n## Resources\n- [x](https://x.dev)\n'
        issues = validate_lesson(parse_lesson(text, "go/s/1-a.md"), course="go")
        assert [(i.kind, i.severity) for i in issues] == [
            (IssueKind.MISSING_SECTION, Severity.ERROR)
        ]
        assert "Summary" in issues[0].message
        assert issues[0].course == "go"

    def test_missing_resources_is_warning(self):
        text = '---\nsource_course: "go"\nsource_lesson: "go-a"\n---\n## Summary\nDone.\n'
        issues = validate_lesson(parse_lesson(text))
        assert [(i.kind, i.severity) for i in issues] == [
            (IssueKind.MISSING_SECTION, Severity.WARNING)
        ]

    def test_duplicate_section(self):
        text = (
            '---\nsource_course: "go"\nsource_lesson: "go-a"\n---\n'
            "## Summary\nOne.\n\n## Resources\n- [x](https://x.dev)\n\n## Summary\nTwo.\n"
        )
        (issue,) = validate_lesson(parse_lesson(text))
        assert issue.kind is IssueKind.DUPLICATE_SECTION
        assert issue.severity is Severity.ERROR
        assert issue.line == 11
        assert "first at line 5" in issue.message

    def test_multi_variant_is_warning(self, options_basics_text):
        (issue,) = validate_lesson(parse_lesson(options_basics_text, "1-options-basics.md"))
        assert issue.kind is IssueKind.MULTI_VARIANT_DOCUMENT
        assert issue.severity is Severity.WARNING
        assert issue.line == 22

    def test_unterminated_fence_is_warning(self):
        text = (
            '---\nsource_course: "go"\nsource_lesson: "go-a"\n---\n'
            "## Summary\nDone.\n\n## Resources\n- [x](https://x.dev)\n\n```go\nfunc main() {\n"
        )
        (issue,) = validate_lesson(parse_lesson(text))
        assert issue.kind is IssueKind.UNTERMINATED_CODE_FENCE
        assert issue.line == 11

    def test_paths_relative_to_root(self, tmp_path):
        text = '---\nsource_course: "go"\nsource_lesson: "go-a"\n---\n## Introduction\nHi.\n'
        lesson = parse_lesson(text, tmp_path / "go" / "s" / "1-a.md")
        issues = validate_lesson(lesson, root=tmp_path)
        assert {issue.path for issue in issues} == {"go/s/1-a.md"}


class TestBuildReport:
    """Test aggregation and ordering of issues."""

    def test_sorted_by_path_then_kind(self):
        issues = [
            _issue("b.md"),
            _issue("a.md", kind=IssueKind.ORPHAN_LESSON),
            _issue("a.md", kind=IssueKind.COURSE_MISMATCH),
            _issue("a.md", kind=IssueKind.DANGLING_REFERENCE, severity=Severity.ERROR, line=9),
            _issue("a.md", kind=IssueKind.DANGLING_REFERENCE, severity=Severity.ERROR, line=3),
        ]
        report = build_report(issues)
        assert [(i.path, i.line) for i in report.errors] == [("a.md", 3), ("a.md", 9)]
        assert [(i.path, i.kind.value) for i in report.warnings] == [
            ("a.md", "CourseMismatch"),
            ("a.md", "OrphanLesson"),
            ("b.md", "OrphanLesson"),
        ]
        assert not report.is_valid

    def test_strict(self):
        report = build_report([_issue("a.md")], strict=True)
        assert report.warnings == []
        assert report.errors[0].severity is Severity.ERROR
        assert report.errors[0].kind is IssueKind.ORPHAN_LESSON

    def test_empty_report(self):
        report = build_report([])
        assert report.is_valid
        assert format_report(report) == "OK"

    def test_json_is_stable(self):
        issues = [_issue("b.md"), _issue("a.md", line=2)]
        first = build_report(issues).to_json()
        second = build_report(issues[::-1]).to_json()
        assert first == second
        data = json.loads(first)
        assert data["summary"] == {"errors": 0, "warnings": 2}
        assert data["warnings"][0]["path"] == "a.md"

    def test_text_format(self):
        report = build_report([_issue("a.md", line=4, message="Lesson is not listed")])
        assert str(report) == (
            "1 warning(s)\n  - a.md:4: [OrphanLesson] Lesson is not listed"
        )


class TestMain:
    """Test the command line entrypoint."""

    def test_clean_corpus(self, sample_corpus, capsys):
        assert main([str(sample_corpus), "--workers", "2"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "Validated 12 file(s) in 3 course(s): 0 error(s), 1 warning(s)" in out
        assert "MultiVariantDocument" in out

    def test_strict_fails_on_warnings(self, sample_corpus):
        assert main([str(sample_corpus), "--strict"]) == EXIT_INVALID

    def test_strict_from_environment(self, sample_corpus, monkeypatch):
        monkeypatch.setenv("COURSEGRAPH_STRICT", "true")
        assert main([str(sample_corpus)]) == EXIT_INVALID

    def test_errors(self, make_corpus, sample_files, capsys):
        files = dict(sample_files)
        files["php-ddd/2-domain-modeling/README.md"] += "4. [Missing](4-missing.md)\n"
        root = make_corpus(files)
        assert main([str(root)]) == EXIT_INVALID
        out = capsys.readouterr().out
        assert "DanglingReference" in out
        assert "Courses not assembled: php-ddd" in out

    def test_missing_root(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope")]) == EXIT_USAGE
        assert "not a directory" in capsys.readouterr().err

    def test_invalid_workers(self, sample_corpus):
        assert main([str(sample_corpus), "--workers", "0"]) == EXIT_USAGE

    def test_bad_arguments(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--format", "xml", "."])
        assert exc_info.value.code == 2

    def test_json_output(self, sample_corpus, capsys):
        assert main([str(sample_corpus), "--format", "json"]) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["summary"] == {"errors": 0, "warnings": 1}

    def test_writes_report_and_graph(self, sample_corpus, tmp_path):
        report_path = tmp_path / "report.json"
        graph_path = tmp_path / "graph.json"
        code = main(
            [
                str(sample_corpus),
                "--report-out",
                str(report_path),
                "--graph-out",
                str(graph_path),
            ]
        )
        assert code == EXIT_OK
        graph = json.loads(graph_path.read_text(encoding="utf-8"))
        assert [course["id"] for course in graph["courses"]] == [
            "go-architecture",
            "javascript-engines",
            "php-ddd",
        ]
        report = json.loads(Path(report_path).read_text(encoding="utf-8"))
        assert report["warnings"][0]["kind"] == "MultiVariantDocument"

    def test_unwritable_output_is_usage_error(self, sample_corpus, tmp_path, capsys):
        graph_path = tmp_path / "missing-dir" / "graph.json"
        assert main([str(sample_corpus), "--graph-out", str(graph_path)]) == EXIT_USAGE
        assert "Could not write output" in capsys.readouterr().err
        assert not graph_path.exists()
