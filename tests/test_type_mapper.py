"""
tests/test_type_mapper.py
Unit tests for laragen.type_mapper.

Tests cover:
- Blueprint column expressions for every field kind
- Foreign reference constraints (nullable before constrained, delete clauses)
- Enum defaults
- Faker expressions, casts and drop statements
"""

from __future__ import annotations

import pytest

from laragen.models import DeleteConstraint, FieldDefinition, FieldKind
from laragen.type_mapper import (
    cast_expression,
    column_expression,
    drop_expression,
    enum_default,
    fixture_expression,
    referenced_entity,
)


def _field(name: str, kind: str, **extra) -> FieldDefinition:
    return FieldDefinition.model_validate({"name": name, "kind": kind, **extra})


# ===========================================================================
# Column expressions
# ===========================================================================


class TestColumnExpression:
    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("string", "$table->string('col')"),
            ("text", "$table->text('col')"),
            ("integer", "$table->integer('col')"),
            ("bigInteger", "$table->bigInteger('col')"),
            ("float", "$table->float('col')"),
            ("decimal", "$table->decimal('col', 8, 2)"),
            ("boolean", "$table->boolean('col')"),
            ("date", "$table->date('col')"),
            ("datetime", "$table->dateTime('col')"),
            ("timestamp", "$table->timestamp('col')"),
            ("json", "$table->json('col')"),
            ("uuid", "$table->uuid('col')"),
        ],
    )
    def test_scalar_kinds(self, kind: str, expected: str) -> None:
        assert column_expression(_field("col", kind)) == expected

    def test_nullable_and_default(self) -> None:
        field = _field("views", "integer", nullable=True, default=0)
        assert column_expression(field) == "$table->integer('views')->nullable()->default(0)"

    def test_boolean_default_literal(self) -> None:
        field = _field("is_admin", "boolean", default=False)
        assert column_expression(field) == "$table->boolean('is_admin')->default(false)"

    def test_foreign_reference_defaults(self) -> None:
        assert column_expression(_field("author_id", "foreignId")) == (
            "$table->foreignId('author_id')->constrained('authors')->cascadeOnDelete()"
        )

    def test_foreign_reference_bound_to_other_table(self) -> None:
        expr = column_expression(
            _field("author_id", "foreignId", nullable=True),
            target_table="users",
            delete_constraint=DeleteConstraint.SET_NULL,
        )
        assert expr == (
            "$table->foreignId('author_id')->nullable()->constrained('users')->nullOnDelete()"
        )

    def test_foreign_reference_uses_field_constraint(self) -> None:
        field = _field("owner_id", "foreignId", delete_constraint="restrict", references="User")
        assert column_expression(field) == (
            "$table->foreignId('owner_id')->constrained('users')->restrictOnDelete()"
        )

    def test_enum_with_default(self) -> None:
        field = _field("status", "enum", values=["draft", "published"], default="published")
        assert column_expression(field) == (
            "$table->enum('status', ['draft', 'published'])->default('published')"
        )

    def test_enum_default_falls_back_to_first_value(self) -> None:
        field = _field("status", "enum", values=["draft", "published"], default="gone")
        assert enum_default(field) == "draft"
        assert "->default('draft')" in column_expression(field)

    def test_enum_nullable(self) -> None:
        field = _field("status", "enum", values=["a"], nullable=True)
        assert column_expression(field).endswith("->default('a')->nullable()")


# ===========================================================================
# Fixtures, casts, drops
# ===========================================================================


class TestFixtureExpression:
    def test_scalar(self) -> None:
        assert fixture_expression(_field("title", "string")) == "$this->faker->words(3, true)"
        assert fixture_expression(_field("flag", "boolean")) == "$this->faker->boolean"

    def test_enum_picks_from_values(self) -> None:
        field = _field("status", "enum", values=["a", "b"])
        assert fixture_expression(field) == "$this->faker->randomElement(['a', 'b'])"

    def test_reference_uses_related_factory(self) -> None:
        field = _field("author_id", "foreignId")
        assert fixture_expression(field) == "\\App\\Models\\Author::factory()"
        assert fixture_expression(field, related_entity="User") == "\\App\\Models\\User::factory()"


class TestCastAndDrop:
    def test_casts(self) -> None:
        assert cast_expression(_field("published_at", "datetime"), "Post") == "'datetime'"
        assert cast_expression(_field("meta", "json"), "Post") == "'array'"
        assert cast_expression(_field("flag", "boolean"), "Post") == "'boolean'"
        assert cast_expression(_field("title", "string"), "Post") is None

    def test_enum_cast_uses_enum_class(self) -> None:
        field = _field("status", "enum", values=["a"])
        assert cast_expression(field, "Post") == "PostStatusEnum::class"

    def test_drop_expression(self) -> None:
        assert drop_expression(_field("title", "string")) == "$table->dropColumn('title');"
        assert drop_expression(_field("author_id", "foreignId")) == (
            "$table->dropConstrainedForeignId('author_id');"
        )

    def test_referenced_entity(self) -> None:
        assert referenced_entity(_field("author_id", "foreignId")) == "Author"
        assert referenced_entity(_field("author_id", "foreignId", references="user")) == "User"
        assert FieldKind.FOREIGN_REFERENCE is _field("x_id", "foreignId").kind
