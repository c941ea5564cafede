# File: laragen/validators.py
"""
LaraGen - Entity & Request Validators
======================================
Pydantic handles the structure of an ``EntityDefinition`` (kinds parse,
enum fields carry values, names are unique).  This module adds the
semantic checks that need more context: reserved column names, PHP reserved
words, enum case collisions, delete constraints that cannot work, and
relationship requests that would produce clashing methods.

Error items use the codes of ``laragen.errors`` so that
``ValidationResult.raise_for_errors()`` can raise the matching exception.
Warnings use upper-case codes and never stop generation.

Usage:
    from laragen.validators import validate_entity
    result = validate_entity(entity, requests, config)
    result.raise_for_errors()
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set

from laragen.errors import (
    DuplicateFieldName,
    InvalidEntityName,
    InvalidEnumValue,
    LaragenError,
    UnknownRelationshipKind,
    error_for_code,
)
from laragen.models import (
    DeleteConstraint,
    EntityDefinition,
    GenerationConfig,
    RelationshipKind,
    RelationshipRequest,
)
from laragen.naming import (
    enum_case_name,
    foreign_key_name,
    validate_entity_name,
)
from laragen.relationships import RelationshipResolver

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_exception(self) -> LaragenError:
        return error_for_code(self.code, self.message, self.context)


class ValidationResult:
    """Accumulates ``ValidationError`` items from the checks below."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def raise_for_errors(self) -> None:
        """Raise the typed exception matching the first error, if any."""
        for item in self._items:
            if item.is_error:
                raise item.to_exception()

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Patterns & word lists
# ---------------------------------------------------------------------------

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_SNAKE_CASE_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")

# Columns every generated table already has
_AUTOMATIC_COLUMNS: FrozenSet[str] = frozenset({"id", "created_at", "updated_at"})

_PHP_RESERVED_WORDS: FrozenSet[str] = frozenset(
    {
        "abstract", "and", "array", "as", "break", "callable", "case",
        "catch", "class", "clone", "const", "continue", "declare",
        "default", "do", "echo", "else", "elseif", "empty", "enddeclare",
        "endfor", "endforeach", "endif", "endswitch", "endwhile", "enum",
        "eval", "exit", "extends", "final", "finally", "fn", "for",
        "foreach", "function", "global", "goto", "if", "implements",
        "include", "instanceof", "insteadof", "interface", "isset", "list",
        "match", "namespace", "new", "or", "print", "private", "protected",
        "public", "readonly", "require", "return", "static", "switch",
        "throw", "trait", "try", "unset", "use", "var", "while", "xor",
        "yield",
    }
)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_entity_name_rules(name: str) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    try:
        validate_entity_name(name)
    except InvalidEntityName as exc:
        result.add_error(exc.code, exc.message, {"entity": name})
        return result
    if name.lower() in _PHP_RESERVED_WORDS:
        result.add_warning(
            "ENTITY_NAME_PHP_RESERVED",
            f"Entity name '{name}' is a PHP reserved word; the class will not compile.",
            {"entity": name},
        )
    return result


def validate_fields(entity: EntityDefinition) -> ValidationResult:
    """
    Field identifiers, automatic columns and reserved words.

    Complexity: O(F) where F = number of fields.
    """
    result: ValidationResult = ValidationResult()
    automatic: Set[str] = set(_AUTOMATIC_COLUMNS)
    if entity.soft_delete:
        automatic.add("deleted_at")

    for field in entity.fields.values():
        ctx: Dict[str, Any] = {"entity": entity.name, "field": field.name}

        if not _IDENTIFIER_RE.match(field.name):
            result.add_error(
                "InvalidFieldName",
                f"Field '{field.name}' of '{entity.name}' is not a valid identifier.",
                ctx,
            )
            continue

        if field.name in automatic:
            result.add_error(
                DuplicateFieldName.code,
                f"Field '{field.name}' is created automatically on '{entity.name}'.",
                ctx,
            )

        if not _SNAKE_CASE_RE.match(field.name):
            result.add_warning(
                "FIELD_NAME_NOT_SNAKE_CASE",
                f"Field '{field.name}' of '{entity.name}' is not snake_case.",
                ctx,
            )

        if field.name.lower() in _PHP_RESERVED_WORDS:
            result.add_warning(
                "FIELD_NAME_PHP_RESERVED",
                f"Field '{field.name}' of '{entity.name}' is a PHP reserved word.",
                ctx,
            )

        if (
            field.is_reference
            and field.delete_constraint is DeleteConstraint.SET_NULL
            and not field.nullable
        ):
            result.add_warning(
                "SET_NULL_ON_REQUIRED_REFERENCE",
                f"Reference '{field.name}' uses setNull but is not nullable; "
                f"deleting the parent row will fail.",
                ctx,
            )

    logger.debug(
        "validate_fields: checked %d fields of %s, %d issue(s).",
        len(entity.fields),
        entity.name,
        len(result),
    )
    return result


def validate_enum_fields(entity: EntityDefinition) -> ValidationResult:
    """Enum values must be non-empty, unique, and map to distinct case names."""
    result: ValidationResult = ValidationResult()

    for field in entity.enum_fields:
        ctx: Dict[str, Any] = {"entity": entity.name, "field": field.name}
        seen_values: Set[str] = set()
        seen_cases: Dict[str, str] = {}
        for value in field.enum_values:
            if value == "":
                result.add_error(
                    InvalidEnumValue.code,
                    f"Enum field '{field.name}' has an empty value.",
                    ctx,
                )
                continue
            if value in seen_values:
                result.add_error(
                    InvalidEnumValue.code,
                    f"Enum field '{field.name}' lists {value!r} twice.",
                    {**ctx, "value": value},
                )
                continue
            seen_values.add(value)
            try:
                case: str = enum_case_name(value)
            except InvalidEnumValue as exc:
                result.add_error(exc.code, exc.message, {**ctx, "value": value})
                continue
            if case in seen_cases:
                result.add_error(
                    InvalidEnumValue.code,
                    f"Enum values {seen_cases[case]!r} and {value!r} of "
                    f"'{field.name}' both become case '{case}'.",
                    {**ctx, "value": value},
                )
            seen_cases[case] = value

        if field.default_value is not None and str(field.default_value) not in seen_values:
            result.add_warning(
                "ENUM_DEFAULT_NOT_IN_VALUES",
                f"Default {field.default_value!r} of '{field.name}' is not one of "
                f"its values; the first value is used instead.",
                ctx,
            )
    return result


def validate_requests(
    entity: EntityDefinition,
    requests: Sequence[RelationshipRequest],
    config: Optional[GenerationConfig] = None,
) -> ValidationResult:
    """
    Relationship requests.  Problems here are warnings: the resolver skips
    a bad request and records it, the rest of the entity is still generated.
    """
    result: ValidationResult = ValidationResult()
    methods: Dict[str, str] = {rel.method_name: rel.target_entity for rel in entity.relationships}
    planned: List[Optional[str]] = RelationshipResolver(config).planned_method_names(
        entity, requests
    )

    for request, name in zip(requests, planned):
        ctx: Dict[str, Any] = {
            "entity": entity.name,
            "kind": request.kind,
            "target": request.target,
        }
        try:
            kind: RelationshipKind = RelationshipKind.parse(request.kind)
        except UnknownRelationshipKind as exc:
            result.add_warning("UNKNOWN_RELATIONSHIP_KIND", exc.message, ctx)
            continue
        try:
            RelationshipKind.parse_inverse(request.inverse)
        except UnknownRelationshipKind as exc:
            result.add_warning(
                "UNKNOWN_RELATIONSHIP_KIND",
                f"Inverse of {kind.value} to '{request.target}': {exc.message}",
                {**ctx, "inverse": request.inverse},
            )

        try:
            validate_entity_name(request.target)
        except InvalidEntityName as exc:
            result.add_warning("INVALID_RELATIONSHIP_TARGET", exc.message, ctx)
            continue

        if kind.is_through and not request.through:
            result.add_warning(
                "MISSING_THROUGH_ENTITY",
                f"{kind.value} to '{request.target}' needs a 'through' entity.",
                ctx,
            )
            continue

        if name is not None:
            if name in methods:
                result.add_warning(
                    "DUPLICATE_RELATIONSHIP_METHOD",
                    f"Method '{name}()' on '{entity.name}' is requested more than once; "
                    f"only the first is generated.",
                    {**ctx, "method": name},
                )
            methods.setdefault(name, request.target)

        column_name: str = request.field or foreign_key_name(request.target)
        column = entity.fields.get(column_name)
        if (
            kind is RelationshipKind.OWNED_BY
            and request.delete_constraint is DeleteConstraint.SET_NULL
            and column is not None
            and not column.nullable
        ):
            result.add_warning(
                "SET_NULL_ON_REQUIRED_REFERENCE",
                f"Relationship to '{request.target}' uses setNull but "
                f"'{column_name}' is not nullable.",
                ctx,
            )
        if request.field and request.field not in entity.fields and kind is not RelationshipKind.OWNED_BY:
            result.add_warning(
                "UNKNOWN_RELATIONSHIP_FIELD",
                f"Field '{request.field}' named by the {kind.value} request "
                f"does not exist on '{entity.name}'.",
                ctx,
            )
    return result


def validate_config(config: GenerationConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if config.stub_path and not Path(config.stub_path).is_dir():
        result.add_warning(
            "STUB_PATH_MISSING",
            f"Stub override directory '{config.stub_path}' does not exist; "
            f"bundled stubs are used.",
            {"stub_path": config.stub_path},
        )
    return result


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------


def validate_entity(
    entity: EntityDefinition,
    requests: Sequence[RelationshipRequest] = (),
    config: Optional[GenerationConfig] = None,
) -> ValidationResult:
    """Run every check for one generation request."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_entity_name_rules(entity.name))
    result.merge(validate_fields(entity))
    result.merge(validate_enum_fields(entity))
    result.merge(validate_requests(entity, requests, config))
    if config is not None:
        result.merge(validate_config(config))

    if result.has_errors:
        logger.error(
            "Validation of %s FAILED with %d error(s). %s",
            entity.name,
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation of %s PASSED. %s", entity.name, result.summary())
    return result


__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_entity_name_rules",
    "validate_fields",
    "validate_enum_fields",
    "validate_requests",
    "validate_config",
    "validate_entity",
]

logger.debug("laragen.validators loaded: %d public symbols.", len(__all__))
