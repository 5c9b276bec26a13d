# coursegraph/lessons/course_loader.py
"""Assemble parsed lessons and README manifests into a course graph."""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .manifest_parser import lesson_path_from_target, section_dir_from_target
from .path_resolver import ResolvedReferences
from .types import (
    ChallengeStub,
    Course,
    CourseSection,
    IssueKind,
    Lesson,
    Manifest,
    Severity,
    ValidationIssue,
    relative_posix,
)


@dataclass
class CourseBuild:
    """A course graph, or None when the course has structural errors."""

    course_id: str
    course: Course | None
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.course is None


def natural_sort_key(name: str) -> list:
    """Sort key that orders "2-basics" before "10-advanced"."""
    return [
        (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
        for part in re.split(r"(\d+)", name)
        if part
    ]


def _order_sections(
    course_id: str,
    section_dirs: Iterable[str],
    course_manifest: Manifest | None,
    root: Path | None,
) -> tuple[list[str], list[ValidationIssue]]:
    """Filesystem order, unless the course README lists its sections."""
    ordered = sorted(section_dirs, key=natural_sort_key)
    if course_manifest is None or not course_manifest.entries:
        return ordered, []

    issues: list[ValidationIssue] = []
    readme_path = relative_posix(course_manifest.path, root)
    listed: list[str] = []

    for entry in course_manifest.entries:
        name = section_dir_from_target(entry.target)
        if name not in ordered:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.DANGLING_REFERENCE,
                    severity=Severity.ERROR,
                    path=readme_path,
                    message=f"Section '{entry.target}' listed in course '{course_id}' does not exist",
                    line=entry.line,
                    course=course_id,
                )
            )
        elif name in listed:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.INCOMPLETE_COURSE_SECTION,
                    severity=Severity.WARNING,
                    path=readme_path,
                    message=f"Section '{name}' is listed more than once",
                    line=entry.line,
                    course=course_id,
                )
            )
        else:
            listed.append(name)

    unlisted = [name for name in ordered if name not in listed]
    for name in unlisted:
        issues.append(
            ValidationIssue(
                kind=IssueKind.INCOMPLETE_COURSE_SECTION,
                severity=Severity.WARNING,
                path=readme_path,
                message=f"Section '{name}' is not listed in the course README",
                course=course_id,
            )
        )

    return listed + unlisted, issues


def _challenge_count(
    course_id: str, manifest: Manifest, root: Path | None
) -> tuple[int, tuple[ChallengeStub, ...], list[ValidationIssue]]:
    """Cross-validate a declared challenge count against the listed stubs."""
    listed = manifest.challenges
    if manifest.declared_challenge_count is None:
        return len(listed), listed, []

    def incomplete(message: str) -> ValidationIssue:
        return ValidationIssue(
            kind=IssueKind.INCOMPLETE_COURSE_SECTION,
            severity=Severity.WARNING,
            path=relative_posix(manifest.path, root),
            message=message,
            line=manifest.declared_challenge_line,
            course=course_id,
        )

    raw = manifest.declared_challenge_count
    if not raw.isdigit():
        return (
            len(listed),
            listed,
            [incomplete(f"Challenge count '{raw}' is not a whole number")],
        )

    declared = int(raw)
    if listed and len(listed) != declared:
        return (
            declared,
            listed,
            [
                incomplete(
                    f"README declares {declared} challenge(s) but lists {len(listed)}"
                )
            ],
        )

    stubs = listed or tuple(ChallengeStub(number=n) for n in range(1, declared + 1))
    return declared, stubs, []


def build_course(
    course_id: str,
    section_dirs: Iterable[str],
    section_manifests: dict[str, Manifest],
    resolved: ResolvedReferences,
    lessons: Iterable[Lesson],
    course_manifest: Manifest | None = None,
    root: Path | None = None,
) -> CourseBuild:
    """
    Assemble a Course from resolved references.

    Sections follow natural filesystem order unless the course README lists
    them; lessons follow their section README verbatim. No I/O happens here.

    Args:
        course_id: Course directory name
        section_dirs: Names of the course's section subdirectories
        section_manifests: Section directory name -> parsed README
        resolved: Output of resolve_references for this course
        lessons: Parsed lessons of this course
        course_manifest: Parsed course README, if present
        root: Corpus root, used to render paths in issues

    Returns:
        CourseBuild with the Course (None on structural errors) and issues
    """
    lessons_by_path = {lesson.path: lesson for lesson in lessons}
    resolved_paths = set(resolved.locations.values())

    ordered_dirs, issues = _order_sections(
        course_id, section_dirs, course_manifest, root
    )

    sections: list[CourseSection] = []
    for directory in ordered_dirs:
        manifest = section_manifests.get(directory)
        if manifest is None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.INCOMPLETE_COURSE_SECTION,
                    severity=Severity.WARNING,
                    path=f"{course_id}/{directory}",
                    message=f"Section '{directory}' has no README ordering manifest",
                    course=course_id,
                )
            )
            sections.append(
                CourseSection(
                    directory=directory,
                    title=directory,
                    ordered_lesson_refs=(),
                    lessons=(),
                )
            )
            continue

        ordered_lessons = []
        for entry in manifest.entries:
            path = lesson_path_from_target(manifest.directory, entry.target)
            if path in resolved_paths and path in lessons_by_path:
                ordered_lessons.append(lessons_by_path[path])

        count, stubs, challenge_issues = _challenge_count(course_id, manifest, root)
        issues.extend(challenge_issues)

        sections.append(
            CourseSection(
                directory=directory,
                title=manifest.title or directory,
                ordered_lesson_refs=tuple(entry.target for entry in manifest.entries),
                lessons=tuple(ordered_lessons),
                challenge_count=count,
                challenges=stubs,
            )
        )

    if resolved.has_errors or any(issue.is_error for issue in issues):
        return CourseBuild(course_id=course_id, course=None, issues=issues)

    title = course_manifest.title if course_manifest and course_manifest.title else course_id
    return CourseBuild(
        course_id=course_id,
        course=Course(id=course_id, title=title, ordered_sections=tuple(sections)),
        issues=issues,
    )
