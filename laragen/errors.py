# File: laragen/errors.py
"""
LaraGen - Error Taxonomy
=========================

Every failure the generator can report is a ``LaragenError`` subclass with a
stable ``code`` string.  The same codes are used by ``ValidationResult``
(validators.py) and by relationship outcomes in the ``GenerationReport``, so a
validation item can be turned back into the matching exception.

Propagation:
    - Errors in the primary entity's own artifacts propagate to the caller.
    - Errors for a single relationship are caught by the orchestrator and
      recorded as a failed outcome.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type


class LaragenError(Exception):
    """Base class for all generator errors."""

    code: str = "LaragenError"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = context

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.message!r}>"


class InvalidEntityName(LaragenError):
    """Entity name contains characters outside ``[A-Za-z]``."""

    code = "InvalidEntityName"


class UnsupportedFieldKind(LaragenError):
    code = "UnsupportedFieldKind"


class DuplicateFieldName(LaragenError):
    """A field is declared twice, or already exists on the entity's table."""

    code = "DuplicateFieldName"


class UnknownRelationshipKind(LaragenError):
    code = "UnknownRelationshipKind"


class TargetArtifactNotFound(LaragenError):
    """The related entity's class file does not exist yet."""

    code = "TargetArtifactNotFound"


class TemplateNotFound(LaragenError):
    code = "TemplateNotFound"


class ArtifactStructureError(TemplateNotFound):
    """The outermost closing brace of an artifact cannot be located unambiguously."""

    code = "ArtifactStructureError"


class InvalidEnumValue(LaragenError):
    code = "InvalidEnumValue"


_ERRORS_BY_CODE: Dict[str, Type[LaragenError]] = {
    cls.code: cls
    for cls in (
        InvalidEntityName,
        UnsupportedFieldKind,
        DuplicateFieldName,
        UnknownRelationshipKind,
        TargetArtifactNotFound,
        TemplateNotFound,
        ArtifactStructureError,
        InvalidEnumValue,
    )
}


def error_for_code(code: str, message: str, context: Optional[Dict[str, Any]] = None) -> LaragenError:
    """Build the exception matching a validation/outcome *code*."""
    error_cls: Type[LaragenError] = _ERRORS_BY_CODE.get(code, LaragenError)
    return error_cls(message, **(context or {}))


__all__: List[str] = [
    "LaragenError",
    "InvalidEntityName",
    "UnsupportedFieldKind",
    "DuplicateFieldName",
    "UnknownRelationshipKind",
    "TargetArtifactNotFound",
    "TemplateNotFound",
    "ArtifactStructureError",
    "InvalidEnumValue",
    "error_for_code",
]
