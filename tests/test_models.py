"""
tests/test_models.py
Unit tests for laragen.models.

Tests cover:
- Kind / constraint / protection parsing and aliases
- Field notation coercion (mapping and list forms, implicit kinds)
- Structural errors raised as typed LaragenErrors
- RelationshipDefinition required parts and defaults
- GeneratedArtifact and GenerationConfig basics
"""

from __future__ import annotations

import pytest

from laragen.errors import (
    DuplicateFieldName,
    InvalidEntityName,
    InvalidEnumValue,
    UnknownRelationshipKind,
    UnsupportedFieldKind,
)
from laragen.models import (
    ArtifactKind,
    DeleteConstraint,
    EntityDefinition,
    FieldDefinition,
    FieldKind,
    GeneratedArtifact,
    GenerationConfig,
    JoinTableDefinition,
    ProtectionMode,
    RelationshipDefinition,
    RelationshipKind,
    RelationshipRequest,
)


# ===========================================================================
# Enums
# ===========================================================================


class TestFieldKind:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("string", FieldKind.STRING),
            ("bigInteger", FieldKind.BIG_INTEGER),
            ("big_integer", FieldKind.BIG_INTEGER),
            ("foreignId", FieldKind.FOREIGN_REFERENCE),
            ("foreign_reference", FieldKind.FOREIGN_REFERENCE),
            ("bool", FieldKind.BOOLEAN),
            ("DateTime", FieldKind.DATETIME),
        ],
    )
    def test_parse_accepts_aliases(self, raw: str, expected: FieldKind) -> None:
        assert FieldKind.parse(raw) is expected

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(UnsupportedFieldKind):
            FieldKind.parse("geometry")


class TestRelationshipKind:
    def test_parse_eloquent_and_member_names(self) -> None:
        assert RelationshipKind.parse("hasMany") is RelationshipKind.ONE_TO_MANY
        assert RelationshipKind.parse("one_to_many") is RelationshipKind.ONE_TO_MANY
        assert RelationshipKind.parse("OwnedBy") is RelationshipKind.OWNED_BY
        assert RelationshipKind.parse("morphedByMany") is (
            RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE
        )

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(UnknownRelationshipKind):
            RelationshipKind.parse("hasSome")

    def test_parse_inverse_none(self) -> None:
        assert RelationshipKind.parse_inverse(None) is None
        assert RelationshipKind.parse_inverse("none") is None
        assert RelationshipKind.parse_inverse("hasOne") is RelationshipKind.ONE_TO_ONE

    def test_shape_properties(self) -> None:
        assert RelationshipKind.ONE_TO_MANY.is_many
        assert not RelationshipKind.OWNED_BY.is_many
        assert RelationshipKind.ONE_TO_MANY_VIA.is_through
        assert RelationshipKind.POLYMORPHIC_OWNER.is_polymorphic
        assert RelationshipKind.MANY_TO_MANY.needs_join_table
        assert not RelationshipKind.ONE_TO_ONE.needs_join_table

    def test_relation_class(self) -> None:
        assert RelationshipKind.OWNED_BY.relation_class == "BelongsTo"
        assert RelationshipKind.ONE_TO_ONE_VIA.relation_class == "HasOneThrough"
        assert RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE.relation_class == "MorphToMany"


class TestConstraintAndProtection:
    @pytest.mark.parametrize("raw", ["setNull", "set_null", "nullify", "null"])
    def test_set_null_aliases(self, raw: str) -> None:
        assert DeleteConstraint.parse(raw) is DeleteConstraint.SET_NULL

    def test_unknown_constraint(self) -> None:
        with pytest.raises(ValueError):
            DeleteConstraint.parse("explode")

    def test_protection_aliases(self) -> None:
        assert ProtectionMode.parse("fillable") is ProtectionMode.ALLOW_LIST
        assert ProtectionMode.parse("guarded") is ProtectionMode.DENY_ALL
        assert ProtectionMode.parse("denyAll") is ProtectionMode.DENY_ALL


# ===========================================================================
# Fields & entities
# ===========================================================================


class TestFieldDefinition:
    def test_kind_inferred_from_name(self) -> None:
        assert FieldDefinition(name="author_id").kind is FieldKind.FOREIGN_REFERENCE
        assert FieldDefinition(name="title").kind is FieldKind.STRING

    def test_type_key_accepted(self) -> None:
        field = FieldDefinition.model_validate({"name": "age", "type": "integer"})
        assert field.kind is FieldKind.INTEGER

    def test_enum_requires_values(self) -> None:
        with pytest.raises(InvalidEnumValue):
            FieldDefinition(name="status", kind="enum")

    def test_values_only_on_enum(self) -> None:
        with pytest.raises(InvalidEnumValue):
            FieldDefinition.model_validate({"name": "title", "kind": "string", "values": ["a"]})

    def test_aliases(self) -> None:
        field = FieldDefinition.model_validate(
            {"name": "status", "kind": "enum", "values": ["a", "b"], "default": "b"}
        )
        assert field.enum_values == ["a", "b"]
        assert field.default_value == "b"

    def test_frozen(self) -> None:
        field = FieldDefinition(name="title", kind="string")
        with pytest.raises(Exception):
            field.nullable = True  # type: ignore[misc]


class TestEntityDefinition:
    def test_mapping_notation(self, post_entity: EntityDefinition) -> None:
        assert list(post_entity.fields) == ["title", "body", "published_at", "status", "author_id"]
        assert post_entity.fields["published_at"].nullable
        assert post_entity.fields["author_id"].is_reference

    def test_list_notation(self) -> None:
        entity = EntityDefinition.model_validate(
            {
                "name": "Tag",
                "fields": [{"name": "label", "kind": "string"}, {"name": "weight", "kind": "integer"}],
            }
        )
        assert list(entity.fields) == ["label", "weight"]

    def test_duplicate_field_in_list(self) -> None:
        with pytest.raises(DuplicateFieldName):
            EntityDefinition.model_validate(
                {"name": "Tag", "fields": [{"name": "label"}, {"name": "label"}]}
            )

    def test_invalid_name_raises_typed_error(self) -> None:
        with pytest.raises(InvalidEntityName):
            EntityDefinition(name="blog_post")

    def test_unsupported_kind_raises_typed_error(self) -> None:
        with pytest.raises(UnsupportedFieldKind):
            EntityDefinition(name="Shape", fields={"outline": "polygon"})

    def test_derived_views(self, post_entity: EntityDefinition) -> None:
        assert [f.name for f in post_entity.enum_fields] == ["status"]
        assert [f.name for f in post_entity.reference_fields] == ["author_id"]
        assert not post_entity.has_uuid

    def test_soft_deletes_and_protection_aliases(self) -> None:
        entity = EntityDefinition.model_validate(
            {"name": "Post", "soft_deletes": True, "protection": "denyAll"}
        )
        assert entity.soft_delete
        assert entity.protection_mode is ProtectionMode.DENY_ALL

    def test_with_relationships_returns_copy(self, user_entity: EntityDefinition) -> None:
        rel = RelationshipDefinition(
            source_entity="User",
            target_entity="Post",
            kind="hasMany",
            method_name="posts",
        )
        extended = user_entity.with_relationships([rel])
        assert extended.relationships == [rel]
        assert user_entity.relationships == []

    def test_foreign_relationship_rejected(self, user_entity: EntityDefinition) -> None:
        rel = RelationshipDefinition(
            source_entity="Post", target_entity="User", kind="belongsTo", method_name="user"
        )
        with pytest.raises(ValueError):
            EntityDefinition(name="User", relationships=[rel])


# ===========================================================================
# Relationships
# ===========================================================================


class TestRelationshipModels:
    def test_request_aliases(self) -> None:
        request = RelationshipRequest.model_validate(
            {"type": "morphMany", "related": "Comment", "morph_name": "commentable"}
        )
        assert request.kind == "morphMany"
        assert request.target == "Comment"
        assert request.polymorphic_name == "commentable"

    def test_request_keeps_unknown_kind(self) -> None:
        request = RelationshipRequest(kind="hasSome", target="Post")
        assert request.kind == "hasSome"

    def test_through_kind_requires_through_entity(self) -> None:
        with pytest.raises(ValueError):
            RelationshipDefinition(
                source_entity="Country",
                target_entity="Post",
                kind="hasManyThrough",
                method_name="posts",
            )

    def test_join_kind_requires_join_table(self) -> None:
        with pytest.raises(ValueError):
            RelationshipDefinition(
                source_entity="Post", target_entity="Tag", kind="belongsToMany", method_name="tags"
            )

    def test_polymorphic_name_defaults_from_source(self) -> None:
        rel = RelationshipDefinition(
            source_entity="Comment",
            target_entity="Post",
            kind="morphTo",
            method_name="commentable",
        )
        assert rel.polymorphic_name == "commentable"

    def test_join_table_swapped(self) -> None:
        join = JoinTableDefinition(
            table_name="post_tag",
            source_key="post_id",
            target_key="tag_id",
            source_table="posts",
            target_table="tags",
        )
        swapped = join.swapped()
        assert swapped.table_name == "post_tag"
        assert (swapped.source_key, swapped.target_key) == ("tag_id", "post_id")
        assert (swapped.source_table, swapped.target_table) == ("tags", "posts")


# ===========================================================================
# Artifacts & config
# ===========================================================================


class TestArtifactAndConfig:
    def test_line_count(self) -> None:
        artifact = GeneratedArtifact(
            kind=ArtifactKind.SEED,
            owning_entity="Post",
            name="PostSeeder",
            path="database/seeders/PostSeeder.php",
            text_body="a\nb\nc",
        )
        assert artifact.line_count == 3

    def test_config_defaults(self, config: GenerationConfig) -> None:
        assert config.models_path == "app/Models"
        assert config.model_namespace == "App\\Models"
        assert config.default_delete_constraint is DeleteConstraint.CASCADE
        assert config.seed_count == 10

    def test_config_parses_strings(self) -> None:
        config = GenerationConfig.model_validate(
            {"default_delete_constraint": "restrict", "default_protection_mode": "guarded"}
        )
        assert config.default_delete_constraint is DeleteConstraint.RESTRICT
        assert config.default_protection_mode is ProtectionMode.DENY_ALL
