# coursegraph/lessons/markdown_parser.py
"""
Parse lesson Markdown files into structured data.

A lesson file starts with a front-matter block:

    ---
    source_course: "go-architecture"
    source_lesson: "go-architecture-functional-options-basics"
    ---

followed by Markdown prose split into sections by headings such as
"## Introduction", "## Key Concepts" or "## Summary".
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .types import (
    CodeExample,
    Lesson,
    LessonVariant,
    Resource,
    Section,
    SectionName,
)


REQUIRED_FRONT_MATTER_KEYS = ("source_course", "source_lesson")

# Later front-matter blocks longer than this are treated as prose, not metadata
MAX_VARIANT_BLOCK_LINES = 20


class LessonParseError(Exception):
    """Base class for errors that make a single lesson file unusable."""

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line


class MalformedFrontMatter(LessonParseError):
    """Raised when the leading front-matter block is absent, unterminated or incomplete."""


class NoSectionsFound(LessonParseError):
    """Raised when a lesson body contains no recognized section heading."""


# -----------------------------------------------------------------------------
# Parsed structures
# -----------------------------------------------------------------------------


@dataclass
class FrontMatter:
    """Authoritative metadata plus everything that follows it."""

    source_course: str
    source_lesson: str
    remainder: str  # All text after the first block, variants included
    body_line: int  # 1-indexed line number where the remainder starts
    variants: list[LessonVariant] = field(default_factory=list)
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def primary_body(self) -> str:
        """Remainder text up to the first additional variant."""
        if not self.variants:
            return self.remainder
        cut = self.variants[0].line - self.body_line
        return "\n".join(self.remainder.split("\n")[:cut])

    @property
    def unresolved_body(self) -> str:
        """Raw text from the first additional variant onwards."""
        if not self.variants:
            return ""
        cut = self.variants[0].line - self.body_line
        return "\n".join(self.remainder.split("\n")[cut:])


@dataclass
class ExtractedSections:
    """Result of splitting a lesson body on recognized headings."""

    preamble: str
    sections: dict[SectionName, Section]
    duplicates: list[Section] = field(default_factory=list)
    unterminated_fence_line: int | None = None


# -----------------------------------------------------------------------------
# Fenced code tracking
# -----------------------------------------------------------------------------


_FENCE_OPEN_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$")
LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_LEADING_NUMBER_PATTERN = re.compile(r"^\s*\d+[.)]?\s+")


class FenceTracker:
    """Track whether successive lines are inside a fenced code block.

    A fence opens with ``` or ~~~ and closes only on a run of the same
    character at least as long as the opener, with nothing after it.
    """

    def __init__(self):
        self.fence: str | None = None
        self.info: str = ""
        self.opened_at: int | None = None

    @property
    def is_open(self) -> bool:
        return self.fence is not None

    def feed(self, line: str, line_no: int | None = None) -> bool:
        """Consume a line. Returns True if the line is code or a fence delimiter."""
        if self.fence is None:
            match = _FENCE_OPEN_PATTERN.match(line)
            if match is None:
                return False
            run, info = match.group(1), match.group(2)
            # Backtick fences may not carry backticks in their info string
            if run[0] == "`" and "`" in info:
                return False
            self.fence = run
            self.info = info.strip()
            self.opened_at = line_no
            return True

        stripped = line.strip()
        char = self.fence[0]
        if (
            stripped
            and set(stripped) == {char}
            and len(stripped) >= len(self.fence)
            and len(line) - len(line.lstrip(" ")) <= 3
        ):
            self.fence = None
            self.info = ""
            self.opened_at = None
        return True


def parse_heading(line: str) -> tuple[int, str] | None:
    """Return (level, text) for an ATX heading line, else None."""
    match = _HEADING_PATTERN.match(line)
    if not match or not match.group(2).strip():
        return None
    return len(match.group(1)), match.group(2).strip()


def match_section_name(heading_text: str) -> SectionName:
    """Map heading text to a SectionName, tolerating numbering like "1. Summary"."""
    return SectionName.from_heading(_LEADING_NUMBER_PATTERN.sub("", heading_text))


# -----------------------------------------------------------------------------
# Front matter
# -----------------------------------------------------------------------------


def _load_metadata(block: str, line: int) -> dict[str, str]:
    """Load a front-matter block as a flat string mapping."""
    try:
        data = yaml.safe_load(block) if block.strip() else {}
    except yaml.YAMLError as e:
        raise MalformedFrontMatter(f"Front matter is not valid YAML: {e}", line=line)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedFrontMatter("Front matter must be a key: value mapping", line=line)

    return {
        str(key).strip(): "" if value is None else str(value).strip()
        for key, value in data.items()
    }


def _looks_like_metadata(lines: list[str]) -> bool:
    """Check that every non-blank line is a `key: value` pair."""
    content = [line for line in lines if line.strip()]
    if not content:
        return False
    return all(re.match(r"^\s*[A-Za-z_][\w-]*\s*:", line) for line in content)


def _find_variants(lines: list[str], first_line: int) -> list[LessonVariant]:
    """Find additional front-matter blocks (outside code fences) in a lesson body."""
    starts: list[tuple[int, int, dict[str, str]]] = []  # (open_idx, close_idx, metadata)
    fence = FenceTracker()
    i = 0
    while i < len(lines):
        line = lines[i]
        if fence.feed(line):
            i += 1
            continue
        if line.strip() == "---":
            limit = min(len(lines), i + 2 + MAX_VARIANT_BLOCK_LINES)
            close = next(
                (j for j in range(i + 1, limit) if lines[j].strip() == "---"), None
            )
            if close is not None and _looks_like_metadata(lines[i + 1 : close]):
                try:
                    metadata = _load_metadata(
                        "\n".join(lines[i + 1 : close]), first_line + i
                    )
                except MalformedFrontMatter:
                    metadata = {}
                if all(metadata.get(key) for key in REQUIRED_FRONT_MATTER_KEYS):
                    starts.append((i, close, metadata))
                    i = close + 1
                    continue
        i += 1

    variants = []
    for index, (open_idx, close_idx, metadata) in enumerate(starts):
        end = starts[index + 1][0] if index + 1 < len(starts) else len(lines)
        variants.append(
            LessonVariant(
                source_course=metadata["source_course"],
                source_lesson=metadata["source_lesson"],
                line=first_line + open_idx,
                body="\n".join(lines[close_idx + 1 : end]),
            )
        )
    return variants


def parse_front_matter(text: str) -> FrontMatter:
    """
    Extract the authoritative front-matter block from a lesson document.

    Only the first block is treated as metadata. Later blocks that carry both
    required keys are reported as variants; the text after the first block
    is returned untouched in `remainder`.

    Raises:
        MalformedFrontMatter: If the block is absent, unterminated, not a
            mapping, or missing source_course/source_lesson.
    """
    lines = text.split("\n")

    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1

    if start >= len(lines) or lines[start].strip() != "---":
        raise MalformedFrontMatter("Missing front matter (---)", line=start + 1)

    end = next(
        (i for i in range(start + 1, len(lines)) if lines[i].strip() == "---"), None
    )
    if end is None:
        raise MalformedFrontMatter("Unterminated front matter block", line=start + 1)

    metadata = _load_metadata("\n".join(lines[start + 1 : end]), start + 2)

    missing = [key for key in REQUIRED_FRONT_MATTER_KEYS if not metadata.get(key)]
    if missing:
        raise MalformedFrontMatter(
            f"Missing required field(s): {', '.join(missing)}", line=start + 1
        )

    body_lines = lines[end + 1 :]
    body_line = end + 2

    return FrontMatter(
        source_course=metadata["source_course"],
        source_lesson=metadata["source_lesson"],
        remainder="\n".join(body_lines),
        body_line=body_line,
        variants=_find_variants(body_lines, body_line),
        extra={
            key: value
            for key, value in metadata.items()
            if key not in REQUIRED_FRONT_MATTER_KEYS
        },
    )


def render_front_matter(source_course: str, source_lesson: str) -> str:
    """Serialize lesson identity back into a front-matter block."""
    dumped = yaml.safe_dump(
        {"source_course": source_course, "source_lesson": source_lesson},
        default_style='"',
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )
    # default_style quotes the keys as well
    dumped = re.sub(r'^"(source_course|source_lesson)":', r"\1:", dumped, flags=re.M)
    return f"---\n{dumped}---\n"


# -----------------------------------------------------------------------------
# Sections
# -----------------------------------------------------------------------------


def extract_sections(text: str, first_line: int = 1) -> ExtractedSections:
    """
    Split a lesson body into named sections.

    A recognized heading opens a new section when it is at the same or a
    higher level than the heading of the section currently open. Deeper
    recognized headings and all unrecognized headings are kept verbatim in
    the open section's body. Headings inside fenced code are ignored.

    Args:
        text: Lesson body (front matter already removed)
        first_line: Line number of the first body line in the source file

    Raises:
        NoSectionsFound: If no recognized heading exists.
    """
    preamble_lines: list[str] = []
    sections: dict[SectionName, Section] = {}
    duplicates: list[Section] = []

    current: tuple[SectionName, str, int, int] | None = None  # name, heading, level, line
    current_lines: list[str] = []

    def close_current() -> None:
        if current is None:
            return
        name, heading, level, line = current
        section = Section(
            name=name,
            heading=heading,
            level=level,
            line=line,
            body="\n".join(current_lines).strip("\n"),
        )
        if name in sections:
            duplicates.append(section)
        else:
            sections[name] = section

    fence = FenceTracker()
    for offset, line in enumerate(text.split("\n")):
        line_no = first_line + offset
        target = current_lines if current is not None else preamble_lines

        if fence.feed(line, line_no):
            target.append(line)
            continue

        heading = parse_heading(line)
        if heading is not None:
            level, heading_text = heading
            name = match_section_name(heading_text)
            if name is not SectionName.UNRECOGNIZED and (
                current is None or level <= current[2]
            ):
                close_current()
                current = (name, heading_text, level, line_no)
                current_lines = []
                continue

        target.append(line)

    close_current()

    if not sections:
        raise NoSectionsFound("No recognized section headings found", line=first_line)

    return ExtractedSections(
        preamble="\n".join(preamble_lines).strip("\n"),
        sections=sections,
        duplicates=duplicates,
        unterminated_fence_line=fence.opened_at if fence.is_open else None,
    )


def _clean_caption(line: str) -> str:
    caption = line.strip().lstrip("#").strip()
    caption = caption.strip("*_").strip()
    if caption.startswith(("- ", "* ")):
        caption = caption[2:].strip()
    return caption.rstrip(":").strip()


def extract_code_examples(text: str) -> list[CodeExample]:
    """Collect closed fenced code blocks with their language and caption.

    The caption is the closest non-blank line directly above the fence.
    """
    examples = []
    fence = FenceTracker()
    previous_line = ""
    caption = ""
    language = ""
    code_lines: list[str] = []

    for line in text.split("\n"):
        was_open = fence.is_open
        is_code = fence.feed(line)

        if not was_open and is_code:
            language = fence.info.split()[0] if fence.info else ""
            caption = _clean_caption(previous_line)
            code_lines = []
        elif was_open and not fence.is_open:
            examples.append(
                CodeExample(language=language, caption=caption, code="\n".join(code_lines))
            )
            previous_line = ""
        elif was_open:
            code_lines.append(line)
        elif line.strip():
            previous_line = line

    return examples


def extract_resources(text: str) -> list[Resource]:
    """Collect Markdown links from a Resources section body."""
    resources = []
    fence = FenceTracker()
    for line in text.split("\n"):
        if fence.feed(line):
            continue
        for match in LINK_PATTERN.finditer(line):
            resources.append(Resource(label=match.group(1).strip(), url=match.group(2)))
    return resources


def _first_h1(text: str) -> str | None:
    fence = FenceTracker()
    for line in text.split("\n"):
        if fence.feed(line):
            continue
        heading = parse_heading(line)
        if heading is not None and heading[0] == 1:
            return heading[1]
    return None


# -----------------------------------------------------------------------------
# Main parsing functions
# -----------------------------------------------------------------------------


def parse_lesson(text: str, path: Path | str = "<memory>") -> Lesson:
    """
    Parse a lesson Markdown document into a Lesson.

    Args:
        text: Full markdown text of the lesson file
        path: Where the text came from (kept on the Lesson for reporting)

    Returns:
        Lesson with metadata, sections, code examples and resources

    Raises:
        MalformedFrontMatter: If the front matter is unusable
        NoSectionsFound: If the body has no recognized section heading
    """
    text = text.lstrip("\ufeff").replace("\r\n", "\n")
    front = parse_front_matter(text)
    body = front.primary_body
    extracted = extract_sections(body, first_line=front.body_line)

    resources_section = extracted.sections.get(SectionName.RESOURCES)
    resources = extract_resources(resources_section.body) if resources_section else []

    return Lesson(
        path=Path(path),
        source_course=front.source_course,
        source_lesson=front.source_lesson,
        title=_first_h1(extracted.preamble) or front.source_lesson,
        sections=extracted.sections,
        preamble=extracted.preamble,
        code_examples=tuple(extract_code_examples(body)),
        resources=tuple(resources),
        duplicate_sections=tuple(extracted.duplicates),
        variants=tuple(front.variants),
        unresolved_body=front.unresolved_body,
        unterminated_fence_line=extracted.unterminated_fence_line,
    )


def parse_lesson_file(path: Path | str) -> Lesson:
    """
    Parse a lesson Markdown file from disk.

    Args:
        path: Path to the lesson .md file

    Returns:
        Lesson parsed from the file
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    return parse_lesson(text, path)
