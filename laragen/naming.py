# File: laragen/naming.py
"""
LaraGen - Identifier Deriver
=============================

Pure, deterministic naming rules shared by both sides of every relationship.
Two entities generated in separate runs must agree on method names, foreign
key columns, pivot table names and morph names, so every such identifier is
derived here and nowhere else.

Rules (Eloquent conventions)::

    method_name(hasMany, "Post")        -> "posts"
    method_name(belongsTo, "User")      -> "user"
    foreign_key_name("BlogPost")        -> "blog_post_id"
    join_table_name("Student", "Course") == join_table_name("Course", "Student")
                                        -> "course_student"
    polymorphic_name("Comment")         -> "commentable"
    table_name("Category")              -> "categories"
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from laragen.errors import InvalidEntityName, InvalidEnumValue
from laragen.models import REFERENCE_SUFFIX, RelationshipKind
from laragen.utils import (
    to_camel_case,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
)

logger: logging.Logger = logging.getLogger("laragen.naming")

POLYMORPHIC_SUFFIX: str = "able"

_ENTITY_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z]+$")
_CASE_CHUNK_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9]+")
_CASE_INVALID_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9_]")


# ---------------------------------------------------------------------------
# Entity names
# ---------------------------------------------------------------------------


def validate_entity_name(name: str) -> str:
    """
    Return *name* unchanged if it is a usable entity name.

    Raises:
        InvalidEntityName: for anything outside ``[A-Za-z]`` or shorter
            than two characters.
    """
    if not isinstance(name, str) or not _ENTITY_NAME_RE.match(name):
        raise InvalidEntityName(
            f"Entity name {name!r} must contain only letters (A-Z, a-z).",
            entity=name,
        )
    if len(name) < 2:
        raise InvalidEntityName(
            f"Entity name {name!r} must be at least 2 characters long.",
            entity=name,
        )
    return name


def class_name(entity: str) -> str:
    """Upper-case the first letter, leaving the rest of the name alone."""
    validate_entity_name(entity)
    return entity[0].upper() + entity[1:]


def table_name(entity: str) -> str:
    validate_entity_name(entity)
    return to_snake_case(to_plural(class_name(entity)))


# ---------------------------------------------------------------------------
# Relationship identifiers
# ---------------------------------------------------------------------------


def method_name(kind: RelationshipKind, related_entity: str) -> str:
    """
    Relationship method name on the side that owns the method.

    Plural camel-case for collection-shaped kinds, singular otherwise.
    """
    validate_entity_name(related_entity)
    kind = RelationshipKind.parse(kind)
    singular: str = to_singular(class_name(related_entity))
    if kind.is_many:
        return to_camel_case(to_plural(singular))
    return to_camel_case(singular)


def foreign_key_name(related_entity: str) -> str:
    validate_entity_name(related_entity)
    return to_snake_case(to_singular(class_name(related_entity))) + REFERENCE_SUFFIX


def join_table_name(entity_a: str, entity_b: str) -> str:
    """
    Pivot table for a many-to-many pair.

    The two singular snake-case names are sorted, so the result does not
    depend on which side initiated generation.
    """
    validate_entity_name(entity_a)
    validate_entity_name(entity_b)
    names: List[str] = sorted(
        [
            to_snake_case(to_singular(class_name(entity_a))),
            to_snake_case(to_singular(class_name(entity_b))),
        ]
    )
    return "_".join(names)


def polymorphic_name(source_entity: str, override: Optional[str] = None) -> str:
    if override:
        return override
    validate_entity_name(source_entity)
    return to_snake_case(to_singular(class_name(source_entity))) + POLYMORPHIC_SUFFIX


def polymorphic_table_name(morph_name: str) -> str:
    """Pivot table of a polymorphic many-to-many (``taggable`` -> ``taggables``)."""
    return to_plural(morph_name)


# ---------------------------------------------------------------------------
# Reference fields
# ---------------------------------------------------------------------------


def is_reference_field(field_name: str) -> bool:
    return field_name.endswith(REFERENCE_SUFFIX) and len(field_name) > len(REFERENCE_SUFFIX)


def field_base(field_name: str) -> str:
    """``author_id`` -> ``author``."""
    if is_reference_field(field_name):
        return field_name[: -len(REFERENCE_SUFFIX)]
    return field_name


def relation_method_for_field(field_name: str) -> str:
    return to_camel_case(field_base(field_name))


def entity_for_field(field_name: str) -> str:
    return to_pascal_case(field_base(field_name))


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


def enum_class_name(entity: str, field_name: str) -> str:
    """``Post`` + ``status`` -> ``PostStatusEnum``."""
    return class_name(entity) + to_pascal_case(field_name) + "Enum"


def enum_case_name(value: str) -> str:
    """
    Turn an enum value into a PHP enum case identifier.

    Examples:
        >>> enum_case_name("in progress")
        'InProgress'
        >>> enum_case_name("1st-place")
        '_1stPlace'

    Raises:
        InvalidEnumValue: when nothing usable is left after sanitising.
    """
    chunks: List[str] = [c for c in _CASE_CHUNK_RE.split(str(value)) if c]
    case: str = "".join(chunk[:1].upper() + chunk[1:] for chunk in chunks)
    if case and not (case[0].isalpha() or case[0] == "_"):
        case = "_" + case
    case = _CASE_INVALID_RE.sub("", case)
    if not case:
        raise InvalidEnumValue(
            f"Enum value {value!r} does not produce a valid case name.",
            value=value,
        )
    return case


__all__: List[str] = [
    "REFERENCE_SUFFIX",
    "POLYMORPHIC_SUFFIX",
    "validate_entity_name",
    "class_name",
    "table_name",
    "method_name",
    "foreign_key_name",
    "join_table_name",
    "polymorphic_name",
    "polymorphic_table_name",
    "is_reference_field",
    "field_base",
    "relation_method_for_field",
    "entity_for_field",
    "enum_class_name",
    "enum_case_name",
]
