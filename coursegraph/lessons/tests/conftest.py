"""Pytest fixtures for lesson pipeline tests."""

from pathlib import Path

import pytest

from coursegraph.lessons.types import Lesson, Section, SectionName


def _lesson_text(course: str, lesson_id: str, title: str = "Lesson") -> str:
    return f"""---
source_course: "{course}"
source_lesson: "{lesson_id}"
---

# {title}

## Introduction

Intro to {title}.

## Summary

Summary of {title}.

## Resources

- [Docs](https://example.com/{lesson_id})
"""


OPTIONS_BASICS_TWO_VARIANTS = """---
source_course: "go-architecture"
source_lesson: "go-architecture-functional-options-basics"
---

# Functional Options Basics

## Introduction

First draft intro.

## Summary

First draft summary.

## Resources

- [Self-referential functions](https://commandcenter.blogspot.com/2014/01/self-referential-functions-and-design.html)

---

---
source_course: "go-architecture"
source_lesson: "go-architecture-functional-options-basics"
---

# Functional Options Basics

## Introduction

Second draft intro.

## Summary

Second draft summary.
"""


JIT_COMPILATION = """---
source_course: "javascript-engines"
source_lesson: "javascript-engines-jit-compilation"
---

# JIT Compilation

## Introduction

V8 compiles hot functions to machine code.

## Deep Dive

Pipeline overview:

```markdown
### V8 Pipeline
## Summary
Ignition -> Sparkplug -> Maglev -> TurboFan
```

### Tiering

Functions move up tiers as they get hotter.

## Summary

JIT compilation trades startup time for peak speed.

## Resources

- [V8 blog](https://v8.dev/blog)
"""


@pytest.fixture
def lesson_text():
    """Build a well-formed lesson document."""
    return _lesson_text


@pytest.fixture
def make_corpus(tmp_path):
    """Write {relative_path: content} into a fresh corpus root and return it."""

    def _make(files: dict[str, str]) -> Path:
        root = tmp_path / "corpus"
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        root.mkdir(exist_ok=True)
        return root

    return _make


@pytest.fixture
def sample_files() -> dict[str, str]:
    """A small corpus with three courses and no errors."""
    return {
        "go-architecture/4-functional-options/README.md": (
            "# Functional Options\n\n"
            "1. [Options Basics](1-options-basics.md)\n"
            "2. [Advanced Options](2-advanced-options.md)\n\n"
            "## Challenges\n\n"
            "1. Build a server with functional options\n"
        ),
        "go-architecture/4-functional-options/1-options-basics.md": OPTIONS_BASICS_TWO_VARIANTS,
        "go-architecture/4-functional-options/2-advanced-options.md": _lesson_text(
            "go-architecture", "go-architecture-functional-options-advanced", "Advanced Options"
        ),
        "php-ddd/README.md": (
            "# PHP Domain-Driven Design\n\n"
            "1. [Strategic Design](1-strategic-design/)\n"
            "2. [Domain Modeling](2-domain-modeling/)\n"
        ),
        "php-ddd/1-strategic-design/README.md": (
            "# Strategic Design\n\n"
            "1. [Bounded Contexts](1-bounded-contexts.md)\n\n"
            "Challenges: 2\n"
        ),
        "php-ddd/1-strategic-design/1-bounded-contexts.md": _lesson_text(
            "php-ddd", "php-ddd-bounded-contexts", "Bounded Contexts"
        ),
        "php-ddd/2-domain-modeling/README.md": (
            "# Entities, Value Objects, Aggregates\n\n"
            "1. [Entities](1-ddd-entities.md)\n"
            "2. [Value Objects](2-value-objects.md)\n"
            "3. [Aggregates](3-ddd-aggregates.md)\n"
        ),
        "php-ddd/2-domain-modeling/1-ddd-entities.md": _lesson_text(
            "php-ddd", "php-ddd-entities", "Entities"
        ),
        "php-ddd/2-domain-modeling/2-value-objects.md": _lesson_text(
            "php-ddd", "php-ddd-value-objects", "Value Objects"
        ),
        "php-ddd/2-domain-modeling/3-ddd-aggregates.md": _lesson_text(
            "php-ddd", "php-ddd-aggregates", "Aggregates"
        ),
        "javascript-engines/1-v8-internals/README.md": (
            "# V8 Internals\n\n1. [JIT Compilation](1-jit-compilation.md)\n"
        ),
        "javascript-engines/1-v8-internals/1-jit-compilation.md": JIT_COMPILATION,
    }


@pytest.fixture
def sample_corpus(make_corpus, sample_files) -> Path:
    return make_corpus(sample_files)


@pytest.fixture
def make_lesson():
    """Build a Lesson directly, without parsing."""

    def _make(path: str, course: str, lesson_id: str) -> Lesson:
        summary = Section(
            name=SectionName.SUMMARY, heading="Summary", level=2, line=5, body="Done."
        )
        return Lesson(
            path=Path(path),
            source_course=course,
            source_lesson=lesson_id,
            title=lesson_id,
            sections={SectionName.SUMMARY: summary},
        )

    return _make


@pytest.fixture
def options_basics_text() -> str:
    """1-options-basics.md: two drafts of the same lesson concatenated."""
    return OPTIONS_BASICS_TWO_VARIANTS


@pytest.fixture
def jit_compilation_text() -> str:
    """1-jit-compilation.md: heading-like lines inside a fenced block."""
    return JIT_COMPILATION
