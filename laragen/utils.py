# File: laragen/utils.py
"""
LaraGen - Shared Helpers
========================
Name casing and inflection, PHP literal rendering, and step timing.

Casing and inflection results are memoised: the same handful of entity
and field names is re-cased for both sides of every relationship.
"""

from __future__ import annotations

import functools
import logging
import re
import time
from typing import Any, Dict, Optional, Sequence, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.utils")

# ---------------------------------------------------------------------------
# Word splitting
# ---------------------------------------------------------------------------

# "HTMLParser" -> "HTML_Parser", then "blogPost" -> "blog_Post"
_HUMP_RES: Tuple[re.Pattern[str], ...] = (
    re.compile(r"([A-Z]+)([A-Z][a-z])"),
    re.compile(r"([a-z0-9])([A-Z])"),
)
_SEPARATOR_RUN_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]+")
_WORD_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_LAST_WORD_RE: re.Pattern[str] = re.compile(r"([A-Z]?[a-z0-9]+|[A-Z]+)$")

# ---------------------------------------------------------------------------
# Inflection tables
# ---------------------------------------------------------------------------

_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}
_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

# Already singular despite the trailing "s"
_SINGULAR_ENDINGS: Tuple[str, ...] = ("ss", "us", "is")


@functools.lru_cache(maxsize=None)
def _words(name: str) -> Tuple[str, ...]:
    """Lower-cased words of *name*, whatever its casing style."""
    return tuple(
        w.lower() for w in _WORD_RE.findall(_SEPARATOR_RUN_RE.sub(" ", name)) if w
    )


def _split_last_word(name: str) -> Tuple[str, str]:
    """``"BlogPost"`` -> ``("Blog", "Post")``; ``"blog_post"`` -> ``("blog_", "post")``."""
    match: Optional[re.Match[str]] = _LAST_WORD_RE.search(name)
    if match is None:
        return "", name
    return name[: match.start()], match.group(0)


def _match_case(original: str, replacement: str) -> str:
    if original[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


# ---------------------------------------------------------------------------
# Casing
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    ``BlogPost`` / ``blogPost`` / ``blog-post`` -> ``blog_post``.

    Digits stay attached to the preceding word (``address2`` is unchanged).
    """
    for pattern in _HUMP_RES:
        name = pattern.sub(r"\1_\2", name)
    return _SEPARATOR_RUN_RE.sub("_", name).strip("_").lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """``blog_post`` -> ``BlogPost`` (Laravel's "studly" case)."""
    return "".join(word.capitalize() for word in _words(name))


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """``blog_post`` -> ``blogPost``."""
    studly: str = to_pascal_case(name)
    return studly[:1].lower() + studly[1:]


# ---------------------------------------------------------------------------
# Inflection
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    English pluralisation, good enough for table and method names.

    Only the last word of a compound name is inflected, so
    ``to_plural("BlogPost")`` gives ``"BlogPosts"``.
    """
    if not name:
        return ""

    head, last = _split_last_word(name)
    lower: str = last.lower()

    if lower in _IRREGULAR_PLURALS:
        return head + _match_case(last, _IRREGULAR_PLURALS[lower])
    if lower in _IRREGULAR_SINGULARS:
        return name

    if lower.endswith(("sh", "ch", "x", "z", "ss", "us")):
        return name + "es"
    if lower.endswith("s"):
        return name
    if lower.endswith("y") and len(last) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f") and not lower.endswith("ff"):
        return name[:-1] + "ves"
    if lower.endswith("o") and len(last) > 1 and lower[-2] not in "aeiou":
        return name + "es"
    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """Inverse of :func:`to_plural`."""
    if not name:
        return ""

    head, last = _split_last_word(name)
    lower: str = last.lower()

    if lower in _IRREGULAR_SINGULARS:
        return head + _match_case(last, _IRREGULAR_SINGULARS[lower])
    if lower in _IRREGULAR_PLURALS or lower.endswith(_SINGULAR_ENDINGS):
        return name

    if lower.endswith("ies") and len(last) > 3:
        return name[:-3] + "y"
    if lower.endswith("ves"):
        return name[:-3] + "f"
    if lower.endswith("oes") and len(last) > 3:
        return name[:-2]
    if lower.endswith(("sses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if lower.endswith("s"):
        return name[:-1]
    return name


# ---------------------------------------------------------------------------
# PHP rendering
# ---------------------------------------------------------------------------


def indent(text: str, level: int = 1, size: int = 4) -> str:
    """Prefix every non-blank line of *text* with ``level * size`` spaces."""
    pad: str = " " * (level * size)
    return "\n".join(pad + line if line.strip() else line for line in text.split("\n"))


def php_string(value: str) -> str:
    """Single-quoted PHP string literal."""
    escaped: str = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def php_literal(value: Any) -> str:
    """Render a Python scalar as the equivalent PHP literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return php_string(str(value))


def format_php_list(items: Sequence[str], quote: bool = True) -> str:
    """
    Short PHP array literal.

    Example:
        >>> format_php_list(["draft", "published"])
        "['draft', 'published']"
    """
    rendered: Sequence[str] = [php_string(item) for item in items] if quote else items
    return f"[{', '.join(rendered)}]"


def count_lines(content: str) -> int:
    """Number of lines in *content*; a trailing newline does not start a new one."""
    return len(content.splitlines())


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


class Timer:
    """
    Time a ``with`` block.  ``elapsed`` holds the seconds once it exits.

    Usage:
        with Timer("compile Post") as t:
            ...
        logger.info("compiled in %.3fs", t.elapsed)
    """

    __slots__ = ("label", "elapsed", "_started")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.elapsed: float = 0.0
        self._started: float = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.elapsed = time.perf_counter() - self._started
        logger.debug("%s took %.4fs", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label} {self.elapsed:.4f}s>"
