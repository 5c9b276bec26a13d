# coursegraph/lessons/manifest_parser.py
"""
Parse README.md ordering manifests.

A section README lists its lessons in teaching order as a numbered list of
relative links:

    # Entities, Value Objects, Aggregates

    1. [Entities](1-ddd-entities.md)
    2. [Value Objects](2-value-objects.md)

    ## Challenges
    1. Model an Order aggregate

A course README may list its section directories the same way
(`1. [Basics](1-basics/)`), which overrides filesystem order.

Anything in a numbered list that does not fit this grammar is reported as
an IncompleteCourseSection issue and skipped, never guessed at.
"""

import posixpath
import re
from pathlib import Path
from typing import Literal
from urllib.parse import unquote

from .markdown_parser import FenceTracker, LINK_PATTERN, parse_heading
from .types import (
    ChallengeStub,
    IssueKind,
    Manifest,
    ManifestEntry,
    Severity,
    ValidationIssue,
    normalize_heading,
    relative_posix,
)

ManifestKind = Literal["course", "section"]

README_NAME = "README.md"

_NUMBERED_ITEM_PATTERN = re.compile(r"^ {0,3}(\d+)[.)]\s+(.*)$")
_DECLARED_CHALLENGES_PATTERN = re.compile(
    r"^\s*(?:[-*]\s+)?[*_]*challenges?[*_]*\s*:\s*[*_]*\s*(.*?)[*_\s]*$",
    re.IGNORECASE,
)
_URL_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_CHALLENGE_HEADINGS = {"challenge", "challenges"}


def _strip_target(target: str) -> str:
    """Drop the #fragment and percent-encoding from a link target."""
    return unquote(target.split("#", 1)[0]).strip()


def lesson_target_error(target: str) -> str | None:
    """Return why a section README link is not a lesson reference, or None."""
    cleaned = _strip_target(target)
    if not cleaned:
        return f"Link target '{target}' is empty"
    if _URL_SCHEME_PATTERN.match(cleaned) or cleaned.startswith("/"):
        return f"Link target '{target}' is not a relative path"
    if not cleaned.lower().endswith(".md"):
        return f"Link target '{target}' is not a Markdown file"
    return None


def section_dir_from_target(target: str) -> str | None:
    """Extract the section directory name from a course README link.

    Accepts "dir", "dir/", "./dir/" and "dir/README.md".
    """
    cleaned = _strip_target(target)
    if not cleaned or _URL_SCHEME_PATTERN.match(cleaned) or cleaned.startswith("/"):
        return None
    cleaned = posixpath.normpath(cleaned)
    if posixpath.basename(cleaned).lower() == README_NAME.lower():
        cleaned = posixpath.dirname(cleaned)
    if not cleaned or cleaned in (".", "..") or "/" in cleaned:
        return None
    return cleaned


def lesson_path_from_target(directory: Path, target: str) -> Path:
    """Resolve a section README link against the README's directory."""
    return Path(posixpath.normpath((directory / _strip_target(target)).as_posix()))


def _item_title(text: str) -> str:
    """Plain title of a list item; link text wins when the item is a link."""
    match = LINK_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text.strip().strip("*_").strip()


def parse_manifest(
    text: str,
    path: Path | str,
    kind: ManifestKind = "section",
    root: Path | None = None,
    course: str | None = None,
) -> Manifest:
    """
    Parse a README ordering manifest.

    Args:
        text: Full markdown text of the README
        path: Location of the README (link targets resolve against its directory)
        kind: "section" for lesson orderings, "course" for section orderings
        root: Corpus root, used to render paths in issues
        course: Course id, attached to issues

    Returns:
        Manifest with title, ordered entries, challenge stubs and grammar issues
    """
    path = Path(path)
    report_path = relative_posix(path, root)
    issues: list[ValidationIssue] = []

    def incomplete(message: str, line: int) -> None:
        issues.append(
            ValidationIssue(
                kind=IssueKind.INCOMPLETE_COURSE_SECTION,
                severity=Severity.WARNING,
                path=report_path,
                message=message,
                line=line,
                course=course,
            )
        )

    title: str | None = None
    entries: list[ManifestEntry] = []
    challenges: list[ChallengeStub] = []
    declared: str | None = None
    declared_line: int | None = None
    in_challenges = False

    fence = FenceTracker()
    for line_no, line in enumerate(text.replace("\r\n", "\n").split("\n"), 1):
        if fence.feed(line, line_no):
            continue

        heading = parse_heading(line)
        if heading is not None:
            level, heading_text = heading
            if title is None and level == 1:
                title = heading_text
            in_challenges = normalize_heading(heading_text) in _CHALLENGE_HEADINGS
            continue

        declared_match = _DECLARED_CHALLENGES_PATTERN.match(line)
        if declared_match and kind == "section":
            if declared is not None:
                incomplete("Challenge count declared more than once", line_no)
            declared = declared_match.group(1)
            declared_line = line_no
            continue

        item = _NUMBERED_ITEM_PATTERN.match(line)
        if item is None:
            continue

        number, item_text = int(item.group(1)), item.group(2)

        if in_challenges and kind == "section":
            challenges.append(ChallengeStub(number=number, title=_item_title(item_text)))
            continue

        links = list(LINK_PATTERN.finditer(item_text))
        if len(links) != 1:
            incomplete(
                f"Numbered item must contain exactly one Markdown link, found {len(links)}",
                line_no,
            )
            continue

        label, target = links[0].group(1).strip(), links[0].group(2)
        if kind == "section":
            problem = lesson_target_error(target)
        elif section_dir_from_target(target) is None:
            problem = f"Link target '{target}' is not a section directory"
        else:
            problem = None
        if problem:
            incomplete(problem, line_no)
            continue

        entries.append(
            ManifestEntry(number=number, label=label, target=target, line=line_no)
        )

    return Manifest(
        path=path,
        title=title or "",
        entries=tuple(entries),
        challenges=tuple(challenges),
        declared_challenge_count=declared,
        declared_challenge_line=declared_line,
        issues=tuple(issues),
    )


def parse_manifest_file(
    path: Path | str,
    kind: ManifestKind = "section",
    root: Path | None = None,
    course: str | None = None,
) -> Manifest:
    """Parse a README manifest from disk."""
    path = Path(path)
    text = path.read_text(encoding="utf-8").lstrip("\ufeff")
    return parse_manifest(text, path, kind=kind, root=root, course=course)
