# coursegraph/lessons/path_resolver.py
"""Resolve README lesson references against parsed lesson files."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .manifest_parser import lesson_path_from_target
from .types import (
    IssueKind,
    Lesson,
    LessonKey,
    Manifest,
    ManifestEntry,
    Severity,
    ValidationIssue,
    relative_posix,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolvedReferences:
    """Outcome of resolving one course's lessons and README orderings."""

    locations: dict[LessonKey, Path]  # Only keys claimed by exactly one file
    listings: dict[Path, list[tuple[Manifest, ManifestEntry]]] = field(
        default_factory=dict
    )  # lesson path -> every README entry pointing at it
    issues: list[ValidationIssue] = field(default_factory=list)
    conflicting_paths: list[Path] = field(default_factory=list)  # Files sharing a lesson id

    @property
    def has_errors(self) -> bool:
        return bool(self.conflicting_paths) or any(issue.is_error for issue in self.issues)


def _section_name(manifest: Manifest) -> str:
    return manifest.directory.name


def group_lesson_claims(lessons: Iterable[Lesson]) -> dict[LessonKey, list[Path]]:
    """Map every lesson id to the files claiming it, in path order."""
    claims: dict[LessonKey, list[Path]] = defaultdict(list)
    for lesson in sorted(lessons, key=lambda lesson: lesson.path.as_posix()):
        claims[lesson.key].append(lesson.path)
    return dict(claims)


def duplicate_lesson_id_issues(
    claims: Mapping[LessonKey, list[Path]], root: Path | None = None
) -> list[ValidationIssue]:
    """One DuplicateLessonId error per id claimed by more than one file."""
    issues = []
    for key, paths in sorted(claims.items(), key=lambda item: str(item[0])):
        if len(paths) < 2:
            continue
        rendered = sorted(relative_posix(path, root) for path in paths)
        issues.append(
            ValidationIssue(
                kind=IssueKind.DUPLICATE_LESSON_ID,
                severity=Severity.ERROR,
                path=rendered[0],
                message=f"Lesson id '{key}' is claimed by {len(rendered)} files: "
                + ", ".join(rendered),
                course=key.source_course,
                related_paths=tuple(rendered),
            )
        )
    return issues


def resolve_references(
    course_id: str,
    lessons: Iterable[Lesson],
    manifests: Iterable[Manifest],
    root: Path | None = None,
    unparsed: Iterable[Path] = (),
    claims: Mapping[LessonKey, list[Path]] | None = None,
) -> ResolvedReferences:
    """
    Cross-check parsed lessons against section README orderings.

    Every duplicate lesson id is reported once with all claiming files,
    and every README entry without a parsed lesson is reported as dangling.
    The result does not depend on the order of the inputs.

    Args:
        course_id: Course directory name
        lessons: Lessons parsed from the course's files
        manifests: Section README manifests of the course
        root: Corpus root, used to render paths in issues
        unparsed: Lesson files that exist but failed to parse
        claims: Lesson id -> claiming files across the whole corpus. When
            given, the caller reports DuplicateLessonId itself and this
            course only records its conflicting files.

    Returns:
        ResolvedReferences with lesson locations and collected issues
    """
    lessons = sorted(lessons, key=lambda lesson: lesson.path.as_posix())
    manifests = sorted(manifests, key=lambda manifest: manifest.path.as_posix())
    unparsed = set(unparsed)
    issues: list[ValidationIssue] = []

    # 1. Lesson ids must be unique
    if claims is None:
        claims = group_lesson_claims(lessons)
        issues.extend(duplicate_lesson_id_issues(claims, root))

    locations: dict[LessonKey, Path] = {}
    conflicting: list[Path] = []
    for lesson in lessons:
        if len(claims.get(lesson.key, [lesson.path])) == 1:
            locations[lesson.key] = lesson.path
        else:
            conflicting.append(lesson.path)

    # 2. Every README entry must point at a parsed lesson
    by_path = {lesson.path: lesson for lesson in lessons}
    listings: dict[Path, list[tuple[Manifest, ManifestEntry]]] = defaultdict(list)

    for manifest in manifests:
        for entry in manifest.entries:
            target = lesson_path_from_target(manifest.directory, entry.target)
            if target in by_path:
                listings[target].append((manifest, entry))
                continue

            if target in unparsed:
                reason = "could not be parsed"
            else:
                reason = "does not exist"
            issues.append(
                ValidationIssue(
                    kind=IssueKind.DANGLING_REFERENCE,
                    severity=Severity.ERROR,
                    path=relative_posix(manifest.path, root),
                    message=f"Lesson '{entry.target}' listed in section "
                    f"'{_section_name(manifest)}' {reason}",
                    line=entry.line,
                    course=course_id,
                    related_paths=(relative_posix(target, root),),
                )
            )

    # 3. Each lesson appears in exactly one ordering
    for path, entries in sorted(listings.items(), key=lambda item: item[0].as_posix()):
        if len(entries) < 2:
            continue
        places = [
            f"{relative_posix(manifest.path, root)}:{entry.line}"
            for manifest, entry in entries
        ]
        issues.append(
            ValidationIssue(
                kind=IssueKind.DUPLICATE_LESSON_REF,
                severity=Severity.ERROR,
                path=relative_posix(path, root),
                message=f"Lesson is listed {len(entries)} times: " + ", ".join(places),
                course=course_id,
                related_paths=tuple(
                    sorted({relative_posix(manifest.path, root) for manifest, _ in entries})
                ),
            )
        )

    for lesson in lessons:
        report_path = relative_posix(lesson.path, root)
        if lesson.path not in listings:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.ORPHAN_LESSON,
                    severity=Severity.WARNING,
                    path=report_path,
                    message="Lesson is not listed in any section README",
                    course=course_id,
                )
            )
        if lesson.source_course != course_id:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.COURSE_MISMATCH,
                    severity=Severity.WARNING,
                    path=report_path,
                    message=f"source_course '{lesson.source_course}' does not match "
                    f"course directory '{course_id}'",
                    course=course_id,
                )
            )

    logger.debug(
        f"Resolved {len(locations)} lesson(s) in course {course_id} "
        f"with {len(issues)} issue(s)"
    )

    return ResolvedReferences(
        locations=locations,
        listings=dict(listings),
        issues=issues,
        conflicting_paths=conflicting,
    )
