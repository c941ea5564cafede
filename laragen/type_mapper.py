# File: laragen/type_mapper.py
"""
LaraGen - Type Mapper
======================

Maps an abstract ``FieldDefinition`` to the three PHP expressions generated
for it:

    column_expression   →  ``$table->string('title')->nullable()``
    fixture_expression  →  ``$this->faker->words(3, true)``
    cast_expression     →  ``'datetime'`` / ``PostStatusEnum::class`` / None

Lookups use module-level tables keyed by ``FieldKind``; a kind missing from
the relevant table raises ``UnsupportedFieldKind``.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional

from laragen.errors import UnsupportedFieldKind
from laragen.models import DeleteConstraint, FieldDefinition, FieldKind
from laragen.naming import class_name, entity_for_field, enum_class_name, table_name
from laragen.utils import format_php_list, php_literal, php_string

logger: logging.Logger = logging.getLogger("laragen.type_mapper")

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# FieldKind → Blueprint column method
_COLUMN_METHOD_MAP: Dict[FieldKind, str] = {
    FieldKind.STRING: "string",
    FieldKind.TEXT: "text",
    FieldKind.INTEGER: "integer",
    FieldKind.BIG_INTEGER: "bigInteger",
    FieldKind.FLOAT: "float",
    FieldKind.DECIMAL: "decimal",
    FieldKind.BOOLEAN: "boolean",
    FieldKind.DATE: "date",
    FieldKind.DATETIME: "dateTime",
    FieldKind.TIMESTAMP: "timestamp",
    FieldKind.JSON: "json",
    FieldKind.UUID: "uuid",
    FieldKind.ENUM: "enum",
    FieldKind.FOREIGN_REFERENCE: "foreignId",
}

# Extra positional arguments after the column name
_COLUMN_EXTRA_ARGS: Dict[FieldKind, str] = {
    FieldKind.DECIMAL: ", 8, 2",
}

# Kinds whose columns accept a literal ->default(...)
_DEFAULT_CAPABLE_KINDS: FrozenSet[FieldKind] = frozenset({
    FieldKind.STRING,
    FieldKind.TEXT,
    FieldKind.INTEGER,
    FieldKind.BIG_INTEGER,
    FieldKind.FLOAT,
    FieldKind.DECIMAL,
    FieldKind.BOOLEAN,
})

_DELETE_CLAUSE_MAP: Dict[DeleteConstraint, str] = {
    DeleteConstraint.CASCADE: "->cascadeOnDelete()",
    DeleteConstraint.RESTRICT: "->restrictOnDelete()",
    DeleteConstraint.SET_NULL: "->nullOnDelete()",
}

# FieldKind → Faker call (enum and foreign references are built per field)
_FIXTURE_MAP: Dict[FieldKind, str] = {
    FieldKind.STRING: "$this->faker->words(3, true)",
    FieldKind.TEXT: "$this->faker->paragraph",
    FieldKind.INTEGER: "$this->faker->numberBetween(1, 1000)",
    FieldKind.BIG_INTEGER: "$this->faker->numberBetween(1000, 9999999)",
    FieldKind.FLOAT: "$this->faker->randomFloat(2, 1, 1000)",
    FieldKind.DECIMAL: "$this->faker->randomFloat(2, 1, 1000)",
    FieldKind.BOOLEAN: "$this->faker->boolean",
    FieldKind.DATE: "$this->faker->date()",
    FieldKind.DATETIME: "$this->faker->dateTime()",
    FieldKind.TIMESTAMP: "$this->faker->dateTime()",
    FieldKind.JSON: "['key' => $this->faker->word]",
    FieldKind.UUID: "$this->faker->uuid",
}

# FieldKind → Eloquent cast (enum casts are built per entity)
_CAST_MAP: Dict[FieldKind, str] = {
    FieldKind.DATE: "'date'",
    FieldKind.DATETIME: "'datetime'",
    FieldKind.TIMESTAMP: "'datetime'",
    FieldKind.BOOLEAN: "'boolean'",
    FieldKind.JSON: "'array'",
}

# Kinds that never carry a cast
_UNCAST_KINDS: FrozenSet[FieldKind] = frozenset({
    FieldKind.STRING,
    FieldKind.TEXT,
    FieldKind.INTEGER,
    FieldKind.BIG_INTEGER,
    FieldKind.FLOAT,
    FieldKind.DECIMAL,
    FieldKind.UUID,
    FieldKind.FOREIGN_REFERENCE,
})


def _column_method(kind: FieldKind) -> str:
    try:
        return _COLUMN_METHOD_MAP[kind]
    except KeyError:
        raise UnsupportedFieldKind(
            f"No column type for field kind {kind!r}.", kind=kind
        ) from None


def referenced_entity(field: FieldDefinition) -> str:
    """Entity a reference column points to (``author_id`` → ``Author``)."""
    return class_name(field.references) if field.references else entity_for_field(field.name)


def enum_default(field: FieldDefinition) -> str:
    """The explicit default when it is one of the values, else the first value."""
    if field.default_value is not None and str(field.default_value) in field.enum_values:
        return str(field.default_value)
    return field.enum_values[0]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def column_expression(
    field: FieldDefinition,
    *,
    target_table: Optional[str] = None,
    delete_constraint: Optional[DeleteConstraint] = None,
) -> str:
    """
    Blueprint column expression for *field*, without the trailing ``;``.

    Args:
        field: The field to render.
        target_table: Table a foreign reference is constrained to.  Defaults
            to the plural table of the referenced entity.
        delete_constraint: ON DELETE behaviour of a foreign reference.
            Defaults to the field's own constraint, then cascade.
    """
    method: str = _column_method(field.kind)
    name: str = php_string(field.name)

    if field.kind is FieldKind.FOREIGN_REFERENCE:
        table: str = target_table or table_name(referenced_entity(field))
        constraint: DeleteConstraint = (
            delete_constraint or field.delete_constraint or DeleteConstraint.CASCADE
        )
        parts: List[str] = [f"$table->{method}({name})"]
        if field.nullable:
            parts.append("->nullable()")
        parts.append(f"->constrained({php_string(table)})")
        parts.append(_DELETE_CLAUSE_MAP[constraint])
        return "".join(parts)

    if field.kind is FieldKind.ENUM:
        values: str = format_php_list(field.enum_values)
        expr: str = (
            f"$table->{method}({name}, {values})"
            f"->default({php_string(enum_default(field))})"
        )
        if field.nullable:
            expr += "->nullable()"
        return expr

    expr = f"$table->{method}({name}{_COLUMN_EXTRA_ARGS.get(field.kind, '')})"
    if field.nullable:
        expr += "->nullable()"
    if field.default_value is not None and field.kind in _DEFAULT_CAPABLE_KINDS:
        expr += f"->default({php_literal(field.default_value)})"
    return expr


def fixture_expression(
    field: FieldDefinition,
    *,
    related_entity: Optional[str] = None,
    model_namespace: str = "App\\Models",
) -> str:
    """Faker expression producing a plausible value for *field*."""
    if field.kind is FieldKind.ENUM:
        return f"$this->faker->randomElement({format_php_list(field.enum_values)})"

    if field.kind is FieldKind.FOREIGN_REFERENCE:
        entity: str = class_name(related_entity) if related_entity else referenced_entity(field)
        return f"\\{model_namespace}\\{entity}::factory()"

    try:
        return _FIXTURE_MAP[field.kind]
    except KeyError:
        raise UnsupportedFieldKind(
            f"No fixture generator for field kind {field.kind!r}.", kind=field.kind
        ) from None


def cast_expression(field: FieldDefinition, entity_name: str) -> Optional[str]:
    """Eloquent cast for *field*, or ``None`` when the raw value is fine."""
    if field.kind is FieldKind.ENUM:
        return f"{enum_class_name(entity_name, field.name)}::class"
    if field.kind in _CAST_MAP:
        return _CAST_MAP[field.kind]
    if field.kind in _UNCAST_KINDS:
        return None
    raise UnsupportedFieldKind(
        f"No cast rule for field kind {field.kind!r}.", kind=field.kind
    )


def drop_expression(field: FieldDefinition) -> str:
    """Statement undoing ``column_expression`` in a migration's ``down()``."""
    if field.kind is FieldKind.FOREIGN_REFERENCE:
        return f"$table->dropConstrainedForeignId({php_string(field.name)});"
    return f"$table->dropColumn({php_string(field.name)});"


__all__: List[str] = [
    "column_expression",
    "fixture_expression",
    "cast_expression",
    "drop_expression",
    "referenced_entity",
    "enum_default",
]
