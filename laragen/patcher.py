# File: laragen/patcher.py
"""
LaraGen - Artifact Patcher
===========================
Edits an already generated (and possibly hand-edited) PHP class in place:

    inject()                 appends a method before the class's closing brace
    extend_array_property()  appends entries to ``$fillable`` / ``$casts``

Both are idempotent and leave every byte outside the insertion point alone.
The brace scan skips string literals and comments; if the structure is not
balanced the patcher refuses to touch the file and raises
``ArtifactStructureError``.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Set, Tuple

from laragen.errors import ArtifactStructureError

logger: logging.Logger = logging.getLogger("laragen.patcher")

_QUOTED_KEY_RE: re.Pattern[str] = re.compile(r"'((?:[^'\\]|\\.)*)'")


class InjectOutcome(str, Enum):
    INSERTED = "inserted"
    SKIPPED_ALREADY_EXISTS = "skippedAlreadyExists"
    SKIPPED_NOT_FOUND = "skippedNotFound"


# ---------------------------------------------------------------------------
# Lexical scan
# ---------------------------------------------------------------------------


def _string_end(text: str, start: int) -> int:
    quote: str = text[start]
    i: int = start + 1
    while i < len(text):
        ch: str = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    raise ArtifactStructureError(
        f"Unterminated string literal starting at offset {start}.", offset=start
    )


def _code_positions(text: str, start: int = 0) -> Iterator[int]:
    """Yield offsets of characters that are code, not string or comment."""
    i: int = start
    n: int = len(text)
    while i < n:
        ch: str = text[i]
        if ch in ("'", '"'):
            i = _string_end(text, i)
            continue
        if text.startswith("//", i) or (ch == "#" and not text.startswith("#[", i)):
            newline: int = text.find("\n", i)
            i = n if newline == -1 else newline + 1
            continue
        if text.startswith("/*", i):
            close: int = text.find("*/", i + 2)
            if close == -1:
                raise ArtifactStructureError(
                    f"Unterminated comment starting at offset {i}.", offset=i
                )
            i = close + 2
            continue
        yield i
        i += 1


def find_closing_brace(text: str) -> int:
    """
    Offset of the last ``}`` that closes a top-level block.

    Raises:
        ArtifactStructureError: when braces are unbalanced or absent.
    """
    depth: int = 0
    last: int = -1
    for i in _code_positions(text):
        ch: str = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                raise ArtifactStructureError(
                    f"Unbalanced '}}' at offset {i}.", offset=i
                )
            if depth == 0:
                last = i
    if depth != 0:
        raise ArtifactStructureError(f"{depth} unclosed '{{' in artifact.", depth=depth)
    if last == -1:
        raise ArtifactStructureError("Artifact has no closing brace.")
    return last


def _code_only(text: str) -> str:
    """*text* with string literals and comments blanked out, offsets kept."""
    masked: List[str] = [ch if ch == "\n" else " " for ch in text]
    for i in _code_positions(text):
        masked[i] = text[i]
    return "".join(masked)


def has_method(text: str, method_name: str) -> bool:
    """True when *text* declares ``function <method_name>(`` outside comments and strings."""
    pattern: str = rf"\bfunction\s+{re.escape(method_name)}\s*\("
    return re.search(pattern, _code_only(text)) is not None


# ---------------------------------------------------------------------------
# Method injection
# ---------------------------------------------------------------------------


def inject(existing_text: str, method_name: str, method_body: str) -> Tuple[str, InjectOutcome]:
    """
    Insert *method_body* just before the outermost closing brace.

    Returns the (possibly unchanged) text and what happened.  An existing
    ``function <method_name>(`` declaration makes this a no-op.
    """
    if has_method(existing_text, method_name):
        logger.debug("Method %s() already present, skipping.", method_name)
        return existing_text, InjectOutcome.SKIPPED_ALREADY_EXISTS

    position: int = find_closing_brace(existing_text)
    before: str = existing_text[:position]
    after: str = existing_text[position:]
    insertion: str = ("" if before.endswith("\n") else "\n") + "\n" + method_body + "\n"
    logger.debug("Inserting %s() at offset %d.", method_name, position)
    return before + insertion + after, InjectOutcome.INSERTED


# ---------------------------------------------------------------------------
# Array properties
# ---------------------------------------------------------------------------


def _entry_key(entry: str) -> Optional[str]:
    match: Optional[re.Match[str]] = _QUOTED_KEY_RE.match(entry.strip())
    return match.group(1) if match else None


def _array_bounds(text: str, open_index: int) -> Tuple[int, List[int]]:
    """Closing ``]`` offset of the array opened at *open_index*, plus its top-level commas."""
    depth: int = 0
    commas: List[int] = []
    for i in _code_positions(text, open_index):
        ch: str = text[i]
        if ch in "[(":
            depth += 1
        elif ch in "])":
            depth -= 1
            if depth == 0:
                return i, commas
        elif ch == "," and depth == 1:
            commas.append(i)
    raise ArtifactStructureError(
        f"Array opened at offset {open_index} is never closed.", offset=open_index
    )


def extend_array_property(
    text: str, property_name: str, entries: Sequence[str]
) -> Tuple[str, InjectOutcome]:
    """
    Append *entries* missing from ``$property_name = [...]``.

    Entries are compared by their leading quoted key, so ``'status' => X::class``
    is already present when the array holds any ``'status' => ...`` entry.
    Multi-line arrays get one entry per line; inline arrays stay inline.
    """
    match: Optional[re.Match[str]] = re.search(
        rf"\${re.escape(property_name)}\s*=\s*\[", text
    )
    if match is None:
        return text, InjectOutcome.SKIPPED_NOT_FOUND

    open_index: int = match.end() - 1
    close_index, commas = _array_bounds(text, open_index)
    content: str = text[open_index + 1 : close_index]

    bounds: List[int] = [open_index, *commas, close_index]
    existing: Set[str] = set()
    for left, right in zip(bounds, bounds[1:]):
        key: Optional[str] = _entry_key(text[left + 1 : right])
        if key is not None:
            existing.add(key)

    missing: List[str] = []
    for entry in entries:
        key = _entry_key(entry)
        if key is None or key in existing:
            continue
        existing.add(key)
        missing.append(entry)

    if not missing:
        return text, InjectOutcome.SKIPPED_ALREADY_EXISTS

    line_start: int = text.rfind("\n", 0, match.start()) + 1
    base_indent: str = re.match(r"[ \t]*", text[line_start:]).group(0)  # type: ignore[union-attr]
    item_indent: str = base_indent + "    "

    if not content.strip():
        new_content: str = (
            "\n" + "".join(f"{item_indent}{e},\n" for e in missing) + base_indent
        )
    else:
        body: str = content.rstrip()
        trailing: str = content[len(body):]
        if "\n" in content:
            if not body.endswith(","):
                body += ","
            new_content = body + "".join(f"\n{item_indent}{e}," for e in missing) + trailing
        else:
            if body.endswith(","):
                body = body[:-1]
            new_content = body + ", " + ", ".join(missing) + trailing

    logger.debug("Extending $%s with %d entr(y/ies).", property_name, len(missing))
    return (
        text[: open_index + 1] + new_content + text[close_index:],
        InjectOutcome.INSERTED,
    )


__all__: List[str] = [
    "InjectOutcome",
    "inject",
    "extend_array_property",
    "find_closing_brace",
    "has_method",
]
