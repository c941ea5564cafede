# File: laragen/models.py
"""
LaraGen - Core Data Models
===========================
Pydantic V2 models describing entities, their fields and relationships, and
the artifacts generated from them.  These models are the single source of
truth for the pipeline: Entity Input → Validation → Relationship Resolution →
Artifact Compilation → Write / Patch.

Entity, field and relationship models are frozen: an ``EntityDefinition`` is
built once per generation request and never mutated afterwards.  Resolution
produces a *copy* carrying the resolved relationships.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from laragen.errors import (
    DuplicateFieldName,
    InvalidEnumValue,
    UnknownRelationshipKind,
    UnsupportedFieldKind,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.models")

REFERENCE_SUFFIX: str = "_id"


def _normalise_token(value: str) -> str:
    return value.replace("_", "").replace("-", "").replace(" ", "").lower()


# ---------------------------------------------------------------------------
# Enums: field, relationship and artifact kinds
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    """Abstract field kinds understood by the type mapper."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIG_INTEGER = "bigInteger"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    JSON = "json"
    UUID = "uuid"
    ENUM = "enum"
    FOREIGN_REFERENCE = "foreignReference"

    @classmethod
    def parse(cls, value: Union[str, "FieldKind"]) -> "FieldKind":
        """
        Accept ``"bigInteger"``, ``"big_integer"``, ``"foreignId"`` etc.

        Raises:
            UnsupportedFieldKind: for anything else.
        """
        if isinstance(value, cls):
            return value
        token: str = _normalise_token(str(value))
        for member in cls:
            if _normalise_token(member.value) == token:
                return member
        if token in _FIELD_KIND_ALIASES:
            return cls(_FIELD_KIND_ALIASES[token])
        raise UnsupportedFieldKind(
            f"Unsupported field kind: {value!r}.", kind=value
        )


_FIELD_KIND_ALIASES: Dict[str, str] = {
    "foreignid": "foreignReference",
    "foreign": "foreignReference",
    "reference": "foreignReference",
    "bigint": "bigInteger",
    "int": "integer",
    "bool": "boolean",
    "str": "string",
}


class RelationshipKind(str, Enum):
    """
    The closed set of association shapes.

    Values are the Eloquent relation method names, so a kind renders
    directly into ``$this->{value}(...)``.
    """

    ONE_TO_ONE = "hasOne"
    OWNED_BY = "belongsTo"
    ONE_TO_MANY = "hasMany"
    MANY_TO_MANY = "belongsToMany"
    ONE_TO_ONE_VIA = "hasOneThrough"
    ONE_TO_MANY_VIA = "hasManyThrough"
    POLYMORPHIC_ONE = "morphOne"
    POLYMORPHIC_MANY = "morphMany"
    POLYMORPHIC_OWNER = "morphTo"
    POLYMORPHIC_MANY_TO_MANY = "morphToMany"
    POLYMORPHIC_MANY_TO_MANY_INVERSE = "morphedByMany"

    @classmethod
    def parse(cls, value: Union[str, "RelationshipKind"]) -> "RelationshipKind":
        """
        Accept the Eloquent name (``hasMany``) or the member name
        (``one_to_many`` / ``OneToMany``).

        Raises:
            UnknownRelationshipKind: for anything else.
        """
        if isinstance(value, cls):
            return value
        token: str = _normalise_token(str(value))
        for member in cls:
            if token in (_normalise_token(member.value), _normalise_token(member.name)):
                return member
        raise UnknownRelationshipKind(
            f"Unknown relationship kind: {value!r}.", kind=value
        )

    @classmethod
    def parse_inverse(
        cls, value: Optional[Union[str, "RelationshipKind"]]
    ) -> Optional["RelationshipKind"]:
        """Like ``parse`` but maps ``None`` / ``"none"`` to ``None``."""
        if value is None or (isinstance(value, str) and _normalise_token(value) in ("", INVERSE_NONE)):
            return None
        return cls.parse(value)

    @property
    def is_many(self) -> bool:
        return self in _MANY_KINDS

    @property
    def is_through(self) -> bool:
        return self in _THROUGH_KINDS

    @property
    def is_polymorphic(self) -> bool:
        return self in _POLYMORPHIC_KINDS

    @property
    def needs_join_table(self) -> bool:
        return self in _JOIN_TABLE_KINDS

    @property
    def relation_class(self) -> str:
        """Eloquent relation class returned by the generated method."""
        if self is RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE:
            return "MorphToMany"
        return self.value[0].upper() + self.value[1:]


INVERSE_NONE: str = "none"

_MANY_KINDS: FrozenSet[RelationshipKind] = frozenset({
    RelationshipKind.ONE_TO_MANY,
    RelationshipKind.MANY_TO_MANY,
    RelationshipKind.ONE_TO_MANY_VIA,
    RelationshipKind.POLYMORPHIC_MANY,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE,
})

_THROUGH_KINDS: FrozenSet[RelationshipKind] = frozenset({
    RelationshipKind.ONE_TO_ONE_VIA,
    RelationshipKind.ONE_TO_MANY_VIA,
})

_POLYMORPHIC_KINDS: FrozenSet[RelationshipKind] = frozenset({
    RelationshipKind.POLYMORPHIC_ONE,
    RelationshipKind.POLYMORPHIC_MANY,
    RelationshipKind.POLYMORPHIC_OWNER,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE,
})

_JOIN_TABLE_KINDS: FrozenSet[RelationshipKind] = frozenset({
    RelationshipKind.MANY_TO_MANY,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE,
})


class DeleteConstraint(str, Enum):
    """ON DELETE behaviour of a generated foreign key."""

    CASCADE = "cascade"
    RESTRICT = "restrict"
    SET_NULL = "setNull"

    @classmethod
    def parse(cls, value: Union[str, "DeleteConstraint"]) -> "DeleteConstraint":
        if isinstance(value, cls):
            return value
        token: str = _normalise_token(str(value))
        if token in ("nullify", "null", "setnull", "nullondelete"):
            return cls.SET_NULL
        for member in cls:
            if _normalise_token(member.value) == token:
                return member
        raise ValueError(f"Unknown delete constraint: {value!r}")


class ProtectionMode(str, Enum):
    """Mass-assignment protection of the generated model class."""

    ALLOW_LIST = "allowList"
    DENY_ALL = "denyAll"

    @classmethod
    def parse(cls, value: Union[str, "ProtectionMode"]) -> "ProtectionMode":
        if isinstance(value, cls):
            return value
        token: str = _normalise_token(str(value))
        if token in ("allowlist", "fillable"):
            return cls.ALLOW_LIST
        if token in ("denyall", "guarded"):
            return cls.DENY_ALL
        raise ValueError(f"Unknown protection mode: {value!r}")


class ArtifactKind(str, Enum):
    """Kinds of generated text artifacts."""

    SCHEMA = "schema"
    ENTITY_CLASS = "entityClass"
    FIXTURE = "fixture"
    SEED = "seed"
    ENUM_TYPE = "enumType"
    JOIN_SCHEMA = "joinSchema"
    ALTER_SCHEMA = "alterSchema"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=False,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=False,
    frozen=True,
    extra="forbid",
)


def _rename_key(data: Dict[str, Any], old: str, new: str) -> Dict[str, Any]:
    if old in data and new not in data:
        data = dict(data)
        data[new] = data.pop(old)
    return data


def _coerce_field_list(value: Any) -> List[Dict[str, Any]]:
    """
    Normalise the accepted field notations into a list of field dicts.

    Accepted::

        fields: {title: string, status: {kind: enum, values: [a, b]}}
        fields: [{name: title, kind: string}, ...]
    """
    if value is None:
        return []
    if isinstance(value, dict):
        items: List[Dict[str, Any]] = []
        for name, spec in value.items():
            if isinstance(spec, FieldDefinition):
                items.append(spec.model_dump(by_alias=False))
            elif spec is None:
                items.append({"name": name})
            elif isinstance(spec, str):
                items.append({"name": name, "kind": spec})
            else:
                items.append({"name": name, **dict(spec)})
        return items
    return [
        item.model_dump(by_alias=False) if isinstance(item, FieldDefinition) else item
        for item in value
    ]


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


class FieldDefinition(BaseModel):
    """
    One column of an entity.

    A field whose name ends in ``_id`` and carries no explicit kind is an
    implicit foreign reference; with no kind otherwise it is a string.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    kind: FieldKind = Field(..., description="Abstract field kind.")
    nullable: bool = Field(default=False, description="Column accepts NULL.")
    enum_values: List[str] = Field(
        default_factory=list,
        alias="values",
        description="Ordered allowed values (enum kind only).",
    )
    default_value: Optional[Any] = Field(
        default=None, alias="default", description="Column default."
    )
    references: Optional[str] = Field(
        default=None,
        description="Target entity of a foreign reference, when it differs "
        "from the name implied by the column.",
    )
    delete_constraint: Optional[DeleteConstraint] = Field(
        default=None, description="ON DELETE behaviour of a foreign reference."
    )

    @model_validator(mode="before")
    @classmethod
    def _infer_kind(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = _rename_key(data, "type", "kind")
        name: str = str(data.get("name", ""))
        raw_kind: Any = data.get("kind")
        if raw_kind is None:
            kind: FieldKind = (
                FieldKind.FOREIGN_REFERENCE
                if name.endswith(REFERENCE_SUFFIX)
                else FieldKind.STRING
            )
        else:
            kind = FieldKind.parse(raw_kind)
        return {**data, "kind": kind}

    @field_validator("delete_constraint", mode="before")
    @classmethod
    def _parse_constraint(cls, v: Any) -> Any:
        return None if v is None else DeleteConstraint.parse(v)

    @model_validator(mode="after")
    def _enum_values_iff_enum(self) -> "FieldDefinition":
        if self.kind is FieldKind.ENUM and not self.enum_values:
            raise InvalidEnumValue(
                f"Enum field '{self.name}' requires at least one value.",
                field=self.name,
            )
        if self.kind is not FieldKind.ENUM and self.enum_values:
            raise InvalidEnumValue(
                f"Field '{self.name}' of kind '{self.kind.value}' cannot declare enum values.",
                field=self.name,
            )
        return self

    @property
    def is_reference(self) -> bool:
        return self.kind is FieldKind.FOREIGN_REFERENCE

    def __repr__(self) -> str:
        null: str = "NULL" if self.nullable else "NOT NULL"
        return f"<Field {self.name} {self.kind.value} {null}>"


# ---------------------------------------------------------------------------
# Relationship requests (input) and definitions (resolved)
# ---------------------------------------------------------------------------


class ThroughKeys(BaseModel):
    """Optional explicit keys for hasOneThrough / hasManyThrough."""

    model_config = _FROZEN_CONFIG

    first_key: Optional[str] = None
    second_key: Optional[str] = None
    local_key: Optional[str] = None
    second_local_key: Optional[str] = None

    def as_list(self) -> List[Optional[str]]:
        return [self.first_key, self.second_key, self.local_key, self.second_local_key]


class JoinTableOverrides(BaseModel):
    """Caller-supplied adjustments to a pivot table."""

    model_config = _FROZEN_CONFIG

    table_name: Optional[str] = None
    with_timestamps: bool = False
    extra_fields: List[FieldDefinition] = Field(default_factory=list)

    @field_validator("extra_fields", mode="before")
    @classmethod
    def _coerce_extra_fields(cls, v: Any) -> Any:
        return _coerce_field_list(v)


class RelationshipRequest(BaseModel):
    """
    A relationship asked for by the user, before resolution.

    ``kind`` and ``inverse`` are kept as raw strings: an unknown kind is a
    per-request failure reported by the resolver, not a parse error.
    """

    model_config = _FROZEN_CONFIG

    kind: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    inverse: Optional[str] = None
    field: Optional[str] = Field(
        default=None, description="Reference column this request is bound to."
    )
    through: Optional[str] = None
    polymorphic_name: Optional[str] = Field(default=None, alias="morph_name")
    method_name: Optional[str] = None
    delete_constraint: Optional[DeleteConstraint] = None
    join_table: Optional[JoinTableOverrides] = None
    through_keys: Optional[ThroughKeys] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_type_key(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = _rename_key(data, "type", "kind")
            data = _rename_key(data, "related", "target")
        return data

    @field_validator("kind", "inverse", mode="before")
    @classmethod
    def _kind_to_str(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator("delete_constraint", mode="before")
    @classmethod
    def _parse_constraint(cls, v: Any) -> Any:
        return None if v is None else DeleteConstraint.parse(v)


class JoinTableDefinition(BaseModel):
    """
    A pivot table for a many-to-many association.

    For polymorphic pivots ``polymorphic_name`` is set and the morph side
    is rendered as a ``morphs()`` column pair instead of a foreign key.
    """

    model_config = _FROZEN_CONFIG

    table_name: str = Field(..., min_length=1)
    source_key: str = Field(..., min_length=1)
    target_key: str = Field(..., min_length=1)
    source_table: str = Field(..., min_length=1)
    target_table: str = Field(..., min_length=1)
    with_timestamps: bool = False
    extra_fields: List[FieldDefinition] = Field(default_factory=list)
    delete_constraint: DeleteConstraint = DeleteConstraint.CASCADE
    polymorphic_name: Optional[str] = None

    def is_morph_key(self, key: str) -> bool:
        return bool(self.polymorphic_name) and key == f"{self.polymorphic_name}{REFERENCE_SUFFIX}"

    def swapped(self) -> "JoinTableDefinition":
        """The same pivot seen from the other side."""
        return self.model_copy(
            update={
                "source_key": self.target_key,
                "target_key": self.source_key,
                "source_table": self.target_table,
                "target_table": self.source_table,
            }
        )


class RelationshipDefinition(BaseModel):
    """A fully resolved relationship, owned by ``source_entity``."""

    model_config = _FROZEN_CONFIG

    source_entity: str = Field(..., min_length=1)
    target_entity: str = Field(..., min_length=1)
    kind: RelationshipKind
    method_name: str = Field(..., min_length=1)
    through_entity: Optional[str] = None
    polymorphic_name: Optional[str] = None
    join_table: Optional[JoinTableDefinition] = None
    delete_constraint: DeleteConstraint = DeleteConstraint.CASCADE
    foreign_key: Optional[str] = Field(
        default=None,
        description="Reference column when it departs from the Eloquent default.",
    )
    through_keys: Optional[ThroughKeys] = None

    @model_validator(mode="before")
    @classmethod
    def _defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kind: RelationshipKind = RelationshipKind.parse(data.get("kind", ""))
        data["kind"] = kind
        if kind.is_polymorphic and not data.get("polymorphic_name"):
            from laragen.naming import polymorphic_name

            data["polymorphic_name"] = polymorphic_name(str(data.get("source_entity", "")))
        return data

    @model_validator(mode="after")
    def _required_parts(self) -> "RelationshipDefinition":
        if self.kind.is_through and not self.through_entity:
            raise ValueError(
                f"Relationship '{self.method_name}' ({self.kind.value}) requires a through entity."
            )
        if self.kind.needs_join_table and self.join_table is None:
            raise ValueError(
                f"Relationship '{self.method_name}' ({self.kind.value}) requires a join table."
            )
        return self

    def __repr__(self) -> str:
        return (
            f"<Relationship {self.source_entity}.{self.method_name} "
            f"{self.kind.value} {self.target_entity}>"
        )


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class EntityDefinition(BaseModel):
    """
    One entity (Eloquent model) and everything generated for it.

    ``fields`` preserves declaration order; it is also the column order of
    the generated migration and the ``$fillable`` list.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Entity (model class) name.")
    fields: Dict[str, FieldDefinition] = Field(default_factory=dict)
    relationships: List[RelationshipDefinition] = Field(default_factory=list)
    soft_delete: bool = Field(default=False, alias="soft_deletes")
    protection_mode: ProtectionMode = Field(
        default=ProtectionMode.ALLOW_LIST, alias="protection"
    )

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        from laragen.naming import validate_entity_name

        return validate_entity_name(v)

    @field_validator("fields", mode="before")
    @classmethod
    def _index_fields(cls, v: Any) -> Dict[str, Any]:
        indexed: Dict[str, Any] = {}
        for item in _coerce_field_list(v):
            name: Any = item.get("name") if isinstance(item, dict) else None
            if name in indexed:
                raise DuplicateFieldName(
                    f"Field '{name}' is declared more than once.", field=name
                )
            indexed[name] = item
        return indexed

    @field_validator("protection_mode", mode="before")
    @classmethod
    def _parse_protection(cls, v: Any) -> Any:
        return ProtectionMode.parse(v)

    @model_validator(mode="after")
    def _owned_relationships(self) -> "EntityDefinition":
        for rel in self.relationships:
            if rel.source_entity != self.name:
                raise ValueError(
                    f"Relationship '{rel.method_name}' belongs to "
                    f"'{rel.source_entity}', not '{self.name}'."
                )
        return self

    @property
    def enum_fields(self) -> List[FieldDefinition]:
        return [f for f in self.fields.values() if f.kind is FieldKind.ENUM]

    @property
    def reference_fields(self) -> List[FieldDefinition]:
        return [f for f in self.fields.values() if f.is_reference]

    @property
    def has_uuid(self) -> bool:
        return any(f.kind is FieldKind.UUID for f in self.fields.values())

    def with_relationships(
        self, relationships: List[RelationshipDefinition]
    ) -> "EntityDefinition":
        """Return a copy carrying *relationships* in addition to its own."""
        return self.model_copy(
            update={"relationships": [*self.relationships, *relationships]}
        )

    def __repr__(self) -> str:
        return (
            f"<Entity {self.name} fields={len(self.fields)} "
            f"relationships={len(self.relationships)}>"
        )


# ---------------------------------------------------------------------------
# Generated artifacts
# ---------------------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """One generated text file, addressed relative to the project root."""

    model_config = _SHARED_CONFIG

    kind: ArtifactKind
    owning_entity: str
    name: str = Field(..., description="Table or class name the artifact defines.")
    path: str = Field(..., description="Path relative to the project root.")
    text_body: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_count(self) -> int:
        return self.text_body.count("\n") + 1 if self.text_body else 0

    def __repr__(self) -> str:
        return f"<Artifact {self.kind.value} {self.path}>"


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Namespaces, target paths and defaults of the Laravel project."""

    model_config = _SHARED_CONFIG

    model_namespace: str = "App\\Models"
    enum_namespace: str = "App\\Enums"
    factory_namespace: str = "Database\\Factories"
    seeder_namespace: str = "Database\\Seeders"

    models_path: str = "app/Models"
    enums_path: str = "app/Enums"
    migrations_path: str = "database/migrations"
    factories_path: str = "database/factories"
    seeders_path: str = "database/seeders"

    stub_path: Optional[str] = Field(
        default=None,
        description="Directory whose *.stub files override the bundled ones.",
    )
    seed_count: int = Field(default=10, ge=1, le=100_000)
    generate_fixture: bool = True
    generate_seed: bool = True
    default_delete_constraint: DeleteConstraint = DeleteConstraint.CASCADE
    default_protection_mode: ProtectionMode = ProtectionMode.ALLOW_LIST

    @field_validator("default_delete_constraint", mode="before")
    @classmethod
    def _parse_constraint(cls, v: Any) -> Any:
        return DeleteConstraint.parse(v)

    @field_validator("default_protection_mode", mode="before")
    @classmethod
    def _parse_protection(cls, v: Any) -> Any:
        return ProtectionMode.parse(v)


__all__: List[str] = [
    "REFERENCE_SUFFIX",
    "INVERSE_NONE",
    "FieldKind",
    "RelationshipKind",
    "DeleteConstraint",
    "ProtectionMode",
    "ArtifactKind",
    "FieldDefinition",
    "ThroughKeys",
    "JoinTableOverrides",
    "RelationshipRequest",
    "JoinTableDefinition",
    "RelationshipDefinition",
    "EntityDefinition",
    "GeneratedArtifact",
    "GenerationConfig",
]

logger.debug("laragen.models loaded: %d public symbols.", len(__all__))
