# coursegraph/lessons/pipeline.py
"""
Run the ingestion pipeline over a corpus directory.

Layout:
    <root>/<course>/README.md              optional, orders sections
    <root>/<course>/<section>/README.md    orders lessons, declares challenges
    <root>/<course>/<section>/<lesson>.md

Every file is parsed independently in a worker thread; resolution and graph
assembly run per course once all of that course's files are parsed.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from coursegraph.config import get_skip_directory_patterns, get_worker_count

from .course_loader import CourseBuild, build_course, natural_sort_key
from .manifest_parser import README_NAME, ManifestKind, parse_manifest_file
from .markdown_parser import MalformedFrontMatter, LessonParseError, parse_lesson_file
from .markdown_validator import ValidationReport, build_report, validate_lesson
from .path_resolver import (
    duplicate_lesson_id_issues,
    group_lesson_claims,
    resolve_references,
)
from .types import (
    Course,
    IssueKind,
    Lesson,
    LessonKey,
    Manifest,
    Severity,
    ValidationIssue,
    relative_posix,
)

logger = logging.getLogger(__name__)


@dataclass
class CourseLayout:
    """Files belonging to one course directory."""

    id: str
    directory: Path
    readme: Path | None = None
    section_dirs: list[str] = field(default_factory=list)
    section_readmes: dict[str, Path] = field(default_factory=dict)
    lesson_files: list[Path] = field(default_factory=list)


@dataclass
class FileOutcome:
    """Result of parsing a single file."""

    path: Path
    course: str
    lesson: Lesson | None = None
    manifest: Manifest | None = None
    issues: list[ValidationIssue] = field(default_factory=list)


@dataclass
class PipelineResult:
    """Validation report plus the course graphs that assembled cleanly."""

    report: ValidationReport
    courses: list[Course] = field(default_factory=list)
    failed_courses: list[str] = field(default_factory=list)
    files_checked: int = 0

    def graph_dict(self) -> dict:
        return {
            "courses": [course.to_dict() for course in self.courses],
            "failed_courses": list(self.failed_courses),
        }


# Files to skip during discovery (case-insensitive filename matching)
SKIP_FILES = {"license.md", "contributing.md", "changelog.md"}


def _should_skip_dir(path: Path, skip_patterns: set[str]) -> bool:
    """Skip hidden directories and WIP/draft directories."""
    name = path.name.lower()
    if name.startswith(".") or name.startswith("_"):
        return True
    return any(pattern in name for pattern in skip_patterns)


def _is_lesson_file(path: Path) -> bool:
    return (
        path.is_file()
        and path.suffix.lower() == ".md"
        and path.name.lower() != README_NAME.lower()
        and path.name.lower() not in SKIP_FILES
    )


def _find_readme(directory: Path) -> Path | None:
    """Exact README.md first, then the first case variant by name."""
    exact = directory / README_NAME
    if exact.is_file():
        return exact
    for candidate in sorted(directory.iterdir(), key=lambda p: p.name):
        if candidate.is_file() and candidate.name.lower() == README_NAME.lower():
            return candidate
    return None


def discover_courses(root: Path, skip_patterns: set[str] | None = None) -> list[CourseLayout]:
    """
    Walk the corpus root and group files by course and section.

    Directory listings are sorted so the result does not depend on
    filesystem iteration order.
    """
    if skip_patterns is None:
        skip_patterns = get_skip_directory_patterns()

    courses = []
    for course_dir in sorted(root.iterdir(), key=lambda p: natural_sort_key(p.name)):
        if not course_dir.is_dir() or _should_skip_dir(course_dir, skip_patterns):
            continue

        layout = CourseLayout(
            id=course_dir.name,
            directory=course_dir,
            readme=_find_readme(course_dir),
        )

        for entry in sorted(course_dir.iterdir(), key=lambda p: natural_sort_key(p.name)):
            if entry.is_dir():
                if _should_skip_dir(entry, skip_patterns):
                    logger.debug(f"Skipping directory {entry}")
                    continue
                layout.section_dirs.append(entry.name)
                readme = _find_readme(entry)
                if readme is not None:
                    layout.section_readmes[entry.name] = readme
                layout.lesson_files.extend(
                    path
                    for path in sorted(entry.iterdir(), key=lambda p: natural_sort_key(p.name))
                    if _is_lesson_file(path)
                )
            elif _is_lesson_file(entry):
                # Lessons directly under the course belong to no section
                layout.lesson_files.append(entry)

        logger.debug(
            f"Discovered course {layout.id}: {len(layout.section_dirs)} section(s), "
            f"{len(layout.lesson_files)} lesson file(s)"
        )
        courses.append(layout)

    return courses


# -----------------------------------------------------------------------------
# Per-file jobs
# -----------------------------------------------------------------------------


def _parse_lesson_job(path: Path, course: str, root: Path) -> FileOutcome:
    """Parse and validate one lesson file. Failures become issues, never exceptions."""
    report_path = relative_posix(path, root)
    try:
        lesson = parse_lesson_file(path)
    except LessonParseError as e:
        kind = (
            IssueKind.MALFORMED_FRONT_MATTER
            if isinstance(e, MalformedFrontMatter)
            else IssueKind.NO_SECTIONS_FOUND
        )
        logger.warning(f"Skipping {report_path}: {e}")
        issue = ValidationIssue(
            kind=kind,
            severity=Severity.ERROR,
            path=report_path,
            message=str(e),
            line=e.line,
            course=course,
        )
        return FileOutcome(path=path, course=course, issues=[issue])
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {report_path}: {e}")
        issue = ValidationIssue(
            kind=IssueKind.UNREADABLE_FILE,
            severity=Severity.ERROR,
            path=report_path,
            message=f"Could not read file: {e}",
            course=course,
        )
        return FileOutcome(path=path, course=course, issues=[issue])

    return FileOutcome(
        path=path,
        course=course,
        lesson=lesson,
        issues=validate_lesson(lesson, root=root, course=course),
    )


def _parse_manifest_job(
    path: Path, course: str, root: Path, kind: ManifestKind
) -> FileOutcome:
    """Parse one README manifest."""
    try:
        manifest = parse_manifest_file(path, kind=kind, root=root, course=course)
    except (OSError, UnicodeDecodeError) as e:
        report_path = relative_posix(path, root)
        logger.warning(f"Could not read {report_path}: {e}")
        issue = ValidationIssue(
            kind=IssueKind.UNREADABLE_FILE,
            severity=Severity.ERROR,
            path=report_path,
            message=f"Could not read file: {e}",
            course=course,
        )
        return FileOutcome(path=path, course=course, issues=[issue])
    return FileOutcome(
        path=path, course=course, manifest=manifest, issues=list(manifest.issues)
    )


async def parse_corpus(
    jobs: list[Callable[[], FileOutcome]], workers: int
) -> list[FileOutcome]:
    """Run file jobs in worker threads, at most `workers` at a time.

    Results keep the order of `jobs`.
    """
    semaphore = asyncio.Semaphore(max(1, workers))

    async def run_with_semaphore(job: Callable[[], FileOutcome]) -> FileOutcome:
        async with semaphore:
            return await asyncio.to_thread(job)

    return await asyncio.gather(*[run_with_semaphore(job) for job in jobs])


# -----------------------------------------------------------------------------
# Pipeline
# -----------------------------------------------------------------------------


def _assemble_course(
    layout: CourseLayout,
    outcomes: dict[Path, FileOutcome],
    root: Path,
    claims: dict[LessonKey, list[Path]],
) -> tuple[CourseBuild, list[ValidationIssue]]:
    """Resolve references and build the graph for one course."""
    lessons = []
    unparsed = []
    for path in layout.lesson_files:
        outcome = outcomes[path]
        if outcome.lesson is not None:
            lessons.append(outcome.lesson)
        else:
            unparsed.append(path)

    section_manifests = {
        name: outcomes[path].manifest
        for name, path in layout.section_readmes.items()
        if outcomes[path].manifest is not None
    }
    course_manifest = outcomes[layout.readme].manifest if layout.readme else None

    resolved = resolve_references(
        layout.id,
        lessons,
        section_manifests.values(),
        root=root,
        unparsed=unparsed,
        claims=claims,
    )
    build = build_course(
        layout.id,
        layout.section_dirs,
        section_manifests,
        resolved,
        lessons,
        course_manifest=course_manifest,
        root=root,
    )
    if build.failed:
        logger.warning(f"Course {layout.id} has structural errors; graph not assembled")
    return build, resolved.issues + build.issues


async def run_pipeline_async(
    root: Path | str,
    workers: int | None = None,
    strict: bool = False,
    skip_patterns: set[str] | None = None,
) -> PipelineResult:
    """
    Parse, resolve, assemble and report on every course under `root`.

    Args:
        root: Corpus root directory
        workers: Maximum parallel file parsers (defaults to configuration)
        strict: Treat warnings as errors in the report
        skip_patterns: Directory name patterns to skip (defaults to configuration)

    Returns:
        PipelineResult with report, assembled courses and failed course ids
    """
    root = Path(root).resolve()
    workers = workers or get_worker_count()
    layouts = discover_courses(root, skip_patterns)

    jobs: list[Callable[[], FileOutcome]] = []
    for layout in layouts:
        if layout.readme is not None:
            jobs.append(partial(_parse_manifest_job, layout.readme, layout.id, root, "course"))
        for readme in layout.section_readmes.values():
            jobs.append(partial(_parse_manifest_job, readme, layout.id, root, "section"))
        for path in layout.lesson_files:
            jobs.append(partial(_parse_lesson_job, path, layout.id, root))

    logger.info(f"Parsing {len(jobs)} file(s) from {len(layouts)} course(s) with {workers} worker(s)")
    results = await parse_corpus(jobs, workers)
    outcomes = {outcome.path: outcome for outcome in results}

    issues: list[ValidationIssue] = []
    for outcome in results:
        issues.extend(outcome.issues)

    # Lesson ids are unique across the whole corpus, not just per course
    claims = group_lesson_claims(
        outcome.lesson for outcome in results if outcome.lesson is not None
    )
    issues.extend(duplicate_lesson_id_issues(claims, root))

    courses = []
    failed = []
    for layout in layouts:
        build, course_issues = _assemble_course(layout, outcomes, root, claims)
        issues.extend(course_issues)
        if build.course is None:
            failed.append(layout.id)
        else:
            courses.append(build.course)

    report = build_report(issues, strict=strict)
    logger.info(
        f"Validated {len(results)} file(s): {len(report.errors)} error(s), "
        f"{len(report.warnings)} warning(s)"
    )

    return PipelineResult(
        report=report,
        courses=courses,
        failed_courses=failed,
        files_checked=len(results),
    )


def run_pipeline(
    root: Path | str,
    workers: int | None = None,
    strict: bool = False,
    skip_patterns: set[str] | None = None,
) -> PipelineResult:
    """Synchronous wrapper around run_pipeline_async."""
    return asyncio.run(
        run_pipeline_async(root, workers=workers, strict=strict, skip_patterns=skip_patterns)
    )
