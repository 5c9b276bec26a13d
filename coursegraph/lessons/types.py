"""
Type definitions for lessons, course sections, courses and validation issues.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SectionName(str, Enum):
    """Closed set of lesson section names."""

    INTRODUCTION = "Introduction"
    KEY_CONCEPTS = "KeyConcepts"
    REAL_WORLD_CONTEXT = "RealWorldContext"
    DEEP_DIVE = "DeepDive"
    COMMON_PITFALLS = "CommonPitfalls"
    BEST_PRACTICES = "BestPractices"
    SUMMARY = "Summary"
    CODE_EXAMPLES = "CodeExamples"
    RESOURCES = "Resources"
    UNRECOGNIZED = "Unrecognized"

    @classmethod
    def from_heading(cls, text: str) -> "SectionName":
        """Match heading text against the known names, ignoring case and punctuation."""
        return _HEADING_LOOKUP.get(normalize_heading(text), cls.UNRECOGNIZED)


def normalize_heading(text: str) -> str:
    """Reduce heading text to lowercase alphanumerics ("Key Concepts:" -> "keyconcepts")."""
    return "".join(ch for ch in text.lower() if ch.isalnum())


_HEADING_LOOKUP = {
    normalize_heading(name.value): name
    for name in SectionName
    if name is not SectionName.UNRECOGNIZED
}


@dataclass(frozen=True)
class Section:
    """A named span of prose within a lesson."""

    name: SectionName
    heading: str  # Heading text as written
    level: int  # Number of leading '#'
    line: int  # 1-indexed line of the heading in the source file
    body: str

    def to_dict(self) -> dict:
        return {
            "name": self.name.value,
            "heading": self.heading,
            "level": self.level,
            "line": self.line,
            "body": self.body,
        }


@dataclass(frozen=True)
class CodeExample:
    """A fenced code block found in a lesson."""

    language: str
    caption: str
    code: str

    def to_dict(self) -> dict:
        return {"language": self.language, "caption": self.caption, "code": self.code}


@dataclass(frozen=True)
class Resource:
    """A link listed in a lesson's Resources section."""

    label: str
    url: str

    def to_dict(self) -> dict:
        return {"label": self.label, "url": self.url}


@dataclass(frozen=True)
class LessonVariant:
    """An additional front-matter block found after the authoritative one."""

    source_course: str
    source_lesson: str
    line: int
    body: str


@dataclass(frozen=True)
class LessonKey:
    """Identity of a lesson: (source_course, source_lesson)."""

    source_course: str
    source_lesson: str

    def __str__(self) -> str:
        return f"{self.source_course}/{self.source_lesson}"


@dataclass(frozen=True)
class Lesson:
    """A parsed lesson file."""

    path: Path
    source_course: str
    source_lesson: str
    title: str
    sections: dict[SectionName, Section]
    preamble: str = ""
    code_examples: tuple[CodeExample, ...] = ()
    resources: tuple[Resource, ...] = ()
    duplicate_sections: tuple[Section, ...] = ()
    variants: tuple[LessonVariant, ...] = ()
    unresolved_body: str = ""
    unterminated_fence_line: int | None = None

    @property
    def key(self) -> LessonKey:
        return LessonKey(self.source_course, self.source_lesson)

    def to_dict(self) -> dict:
        return {
            "path": self.path.as_posix(),
            "source_course": self.source_course,
            "source_lesson": self.source_lesson,
            "title": self.title,
            "sections": [section.to_dict() for section in self.sections.values()],
            "code_examples": [example.to_dict() for example in self.code_examples],
            "resources": [resource.to_dict() for resource in self.resources],
            "variants": [
                {
                    "source_course": variant.source_course,
                    "source_lesson": variant.source_lesson,
                    "line": variant.line,
                }
                for variant in self.variants
            ],
        }


# --- README manifests ---


@dataclass(frozen=True)
class ManifestEntry:
    """One numbered-list item of a README ordering manifest."""

    number: int
    label: str
    target: str  # Link target as written
    line: int


@dataclass(frozen=True)
class ChallengeStub:
    """A challenge placeholder; only its position and title are tracked."""

    number: int
    title: str = ""

    def to_dict(self) -> dict:
        return {"number": self.number, "title": self.title}


@dataclass(frozen=True)
class Manifest:
    """A parsed README ordering manifest (course or section level)."""

    path: Path
    title: str
    entries: tuple[ManifestEntry, ...] = ()
    challenges: tuple[ChallengeStub, ...] = ()
    declared_challenge_count: str | None = None  # Raw declared value
    declared_challenge_line: int | None = None
    issues: tuple["ValidationIssue", ...] = ()

    @property
    def directory(self) -> Path:
        return self.path.parent


# --- Course graph ---


@dataclass(frozen=True)
class CourseSection:
    """A grouped subdirectory of a course with its ordered lessons."""

    directory: str
    title: str
    ordered_lesson_refs: tuple[str, ...]
    lessons: tuple[Lesson, ...]
    challenge_count: int = 0
    challenges: tuple[ChallengeStub, ...] = ()

    def to_dict(self) -> dict:
        return {
            "directory": self.directory,
            "title": self.title,
            "ordered_lesson_refs": list(self.ordered_lesson_refs),
            "lessons": [lesson.to_dict() for lesson in self.lessons],
            "challenge_count": self.challenge_count,
            "challenges": [challenge.to_dict() for challenge in self.challenges],
        }


@dataclass(frozen=True)
class Course:
    """A top-level course: an ordered sequence of course sections."""

    id: str
    title: str
    ordered_sections: tuple[CourseSection, ...]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "ordered_sections": [section.to_dict() for section in self.ordered_sections],
        }


# --- Validation issues ---


class IssueKind(str, Enum):
    MALFORMED_FRONT_MATTER = "MalformedFrontMatter"
    NO_SECTIONS_FOUND = "NoSectionsFound"
    UNREADABLE_FILE = "UnreadableFile"
    DANGLING_REFERENCE = "DanglingReference"
    DUPLICATE_LESSON_ID = "DuplicateLessonId"
    DUPLICATE_LESSON_REF = "DuplicateLessonRef"
    INCOMPLETE_COURSE_SECTION = "IncompleteCourseSection"
    ORPHAN_LESSON = "OrphanLesson"
    COURSE_MISMATCH = "CourseMismatch"
    MISSING_SECTION = "MissingSection"
    DUPLICATE_SECTION = "DuplicateSection"
    MULTI_VARIANT_DOCUMENT = "MultiVariantDocument"
    UNTERMINATED_CODE_FENCE = "UnterminatedCodeFence"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A single error or warning found during ingestion."""

    kind: IssueKind
    severity: Severity
    path: str  # Posix path relative to the corpus root
    message: str
    line: int | None = None
    course: str | None = None
    related_paths: tuple[str, ...] = field(default=())

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def sort_key(self) -> tuple:
        return (self.path, self.kind.value, self.line or 0, self.message)

    def to_dict(self) -> dict:
        data = {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "path": self.path,
            "message": self.message,
            "line": self.line,
            "course": self.course,
        }
        if self.related_paths:
            data["related_paths"] = list(self.related_paths)
        return data

    def __str__(self) -> str:
        location = self.path
        if self.line is not None:
            location = f"{location}:{self.line}"
        return f"{location}: [{self.kind.value}] {self.message}"


def relative_posix(path: Path, root: Path | None) -> str:
    """Render a path relative to the corpus root, falling back to the path itself."""
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return path.as_posix()
