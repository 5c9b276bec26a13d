"""Lesson parsing, reference resolution and course graph assembly."""

from .types import (
    CodeExample,
    Course,
    CourseSection,
    IssueKind,
    Lesson,
    LessonKey,
    Resource,
    Section,
    SectionName,
    Severity,
    ValidationIssue,
)
from .markdown_parser import (
    parse_front_matter,
    render_front_matter,
    extract_sections,
    parse_lesson,
    parse_lesson_file,
    MalformedFrontMatter,
    NoSectionsFound,
)
from .manifest_parser import parse_manifest, parse_manifest_file
from .path_resolver import (
    duplicate_lesson_id_issues,
    group_lesson_claims,
    resolve_references,
    ResolvedReferences,
)
from .course_loader import build_course, CourseBuild
from .markdown_validator import validate_lesson, build_report, ValidationReport
from .pipeline import run_pipeline, run_pipeline_async, PipelineResult

__all__ = [
    "CodeExample",
    "Course",
    "CourseSection",
    "IssueKind",
    "Lesson",
    "LessonKey",
    "Resource",
    "Section",
    "SectionName",
    "Severity",
    "ValidationIssue",
    "parse_front_matter",
    "render_front_matter",
    "extract_sections",
    "parse_lesson",
    "parse_lesson_file",
    "MalformedFrontMatter",
    "NoSectionsFound",
    "parse_manifest",
    "parse_manifest_file",
    "group_lesson_claims",
    "duplicate_lesson_id_issues",
    "resolve_references",
    "ResolvedReferences",
    "build_course",
    "CourseBuild",
    "validate_lesson",
    "build_report",
    "ValidationReport",
    "run_pipeline",
    "run_pipeline_async",
    "PipelineResult",
]
