# File: laragen/templates.py
"""
LaraGen - Artifact Compilers
=============================
Turns resolved ``EntityDefinition`` / ``JoinTableDefinition`` objects into
Laravel source files:

    1. Schema migrations (create, pivot, alter)
    2. Eloquent model classes
    3. Model factories
    4. Database seeders
    5. Backed enums (one per enum field)

Every file is rendered from a ``*.stub`` template.  Bundled stubs live in
``laragen/stubs``; a ``GenerationConfig.stub_path`` directory may override any
of them by file name.  Placeholders use the ``{{ name }}`` form.

**Assembly contract:**
    - Bodies are built as ``List[str]`` and joined with ``"\\n"``.
    - Compilers are stateless apart from a stub cache; migration stamps are
      passed in by the caller so a run can keep them ordered.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from laragen.errors import InvalidEnumValue, TemplateNotFound
from laragen.models import (
    ArtifactKind,
    EntityDefinition,
    FieldDefinition,
    FieldKind,
    GeneratedArtifact,
    GenerationConfig,
    JoinTableDefinition,
    ProtectionMode,
    RelationshipKind,
)
from laragen.naming import class_name, enum_case_name, enum_class_name, table_name
from laragen.relationships import ColumnBinding, render_relationship_methods
from laragen.type_mapper import (
    cast_expression,
    column_expression,
    drop_expression,
    fixture_expression,
)
from laragen.utils import format_php_list, indent, php_string

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_COLUMN_LEVEL: int = 3  # inside Schema::create(..., function (Blueprint $table) { ... })

BUNDLED_STUB_DIR: Path = Path(__file__).resolve().parent / "stubs"

STUB_MODEL: str = "model.stub"
STUB_MIGRATION_CREATE: str = "migration.create.stub"
STUB_MIGRATION_PIVOT: str = "migration.pivot.stub"
STUB_MIGRATION_ALTER: str = "migration.alter.stub"
STUB_FACTORY: str = "factory.stub"
STUB_SEEDER: str = "seeder.stub"
STUB_ENUM: str = "enum.stub"

MIGRATION_STAMP_FORMAT: str = "%Y_%m_%d_%H%M%S_"

_PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\{\{\s*([A-Za-z_]+)\s*\}\}")
_ENUM_CASE_RE: re.Pattern[str] = re.compile(
    r"^\s*case\s+\w+\s*=\s*'((?:[^'\\]|\\.)*)'\s*;", re.MULTILINE
)

_ESCAPE_RE: re.Pattern[str] = re.compile(r"\\(.)")

_ELOQUENT_NS: str = "Illuminate\\Database\\Eloquent"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def render_stub(stub: str, replacements: Mapping[str, str]) -> str:
    """
    Substitute ``{{ key }}`` placeholders in *stub*.

    Placeholders without a replacement are left untouched so a custom stub
    can carry text the compiler does not know about.
    """

    def _sub(match: re.Match[str]) -> str:
        key: str = match.group(1)
        return replacements[key] if key in replacements else match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, stub)


def migration_stamp(moment: Optional[datetime] = None) -> str:
    """``2024_05_01_120000_`` style filename prefix."""
    return (moment or datetime.now()).strftime(MIGRATION_STAMP_FORMAT)


def parse_enum_values(text: str) -> List[str]:
    """Values of the ``case X = '...';`` lines of an existing enum file."""
    return [_ESCAPE_RE.sub(r"\1", m.group(1)) for m in _ENUM_CASE_RE.finditer(text)]


def _array_block(name: str, entries: List[str]) -> str:
    if not entries:
        return f"{_INDENT}protected ${name} = [];"
    lines: List[str] = [f"{_INDENT}protected ${name} = ["]
    lines.extend(f"{_INDENT * 2}{entry}," for entry in entries)
    lines.append(f"{_INDENT}];")
    return "\n".join(lines)


def fillable_entries(entity: EntityDefinition) -> List[str]:
    """Quoted column names for ``$fillable``, morph columns included."""
    entries: List[str] = [php_string(name) for name in entity.fields]
    for morph in _morph_columns(entity):
        entries.append(php_string(f"{morph}_type"))
        entries.append(php_string(f"{morph}_id"))
    return entries


def cast_entries(
    entity_name: str,
    fields: Iterable[FieldDefinition],
    enum_namespace: Optional[str] = None,
) -> List[str]:
    """
    ``'key' => cast`` entries for ``$casts``.

    With *enum_namespace* the enum classes are fully qualified, for pasting
    into a class whose ``use`` block is not regenerated.
    """
    entries: List[str] = []
    for field in fields:
        cast: Optional[str] = cast_expression(field, entity_name)
        if cast is None:
            continue
        if enum_namespace and field.kind is FieldKind.ENUM:
            cast = f"\\{enum_namespace}\\{cast}"
        entries.append(f"{php_string(field.name)} => {cast}")
    return entries


def _morph_columns(entity: EntityDefinition) -> List[str]:
    seen: List[str] = []
    for rel in entity.relationships:
        if rel.kind is RelationshipKind.POLYMORPHIC_OWNER and rel.polymorphic_name:
            if rel.polymorphic_name not in seen:
                seen.append(rel.polymorphic_name)
    return seen


# ---------------------------------------------------------------------------
# ArtifactCompiler
# ---------------------------------------------------------------------------


class ArtifactCompiler:
    """
    Renders every artifact kind from stubs.

    Usage::

        compiler = ArtifactCompiler(config)
        model = compiler.compile_entity(entity)
        migration = compiler.compile_schema(entity, bindings, stamp)
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        stub_dir: Optional[Path] = None,
    ) -> None:
        self._config: GenerationConfig = config or GenerationConfig()
        self._stub_dir: Path = Path(stub_dir) if stub_dir else BUNDLED_STUB_DIR
        self._stub_cache: Dict[str, str] = {}
        logger.debug(
            "ArtifactCompiler initialised (stubs=%s, override=%s).",
            self._stub_dir,
            self._config.stub_path,
        )

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Stubs
    # -----------------------------------------------------------------

    def load_stub(self, name: str) -> str:
        """
        Return the text of stub *name*, preferring the configured override.

        Raises:
            TemplateNotFound: when neither location has the stub.
        """
        if name in self._stub_cache:
            return self._stub_cache[name]

        candidates: List[Path] = []
        if self._config.stub_path:
            candidates.append(Path(self._config.stub_path) / name)
        candidates.append(self._stub_dir / name)

        for candidate in candidates:
            if candidate.is_file():
                text: str = candidate.read_text(encoding="utf-8")
                self._stub_cache[name] = text
                logger.debug("Loaded stub %s from %s", name, candidate)
                return text

        raise TemplateNotFound(
            f"Stub '{name}' not found (looked in: {', '.join(str(c.parent) for c in candidates)}).",
            stub=name,
        )

    # ===================================================================
    # 1. Schema migrations
    # ===================================================================

    def compile_schema(
        self,
        entity: EntityDefinition,
        bindings: Optional[Mapping[str, ColumnBinding]] = None,
        stamp: Optional[str] = None,
    ) -> GeneratedArtifact:
        """Create-table migration for *entity*."""
        bindings = bindings or {}
        table: str = table_name(entity.name)

        lines: List[str] = ["$table->id();"]
        for field in entity.fields.values():
            lines.append(self._column_line(field, bindings.get(field.name)))
        for morph in _morph_columns(entity):
            lines.append(f"$table->morphs({php_string(morph)});")
        lines.append("$table->timestamps();")
        if entity.soft_delete:
            lines.append("$table->softDeletes();")

        text: str = render_stub(
            self.load_stub(STUB_MIGRATION_CREATE),
            {"table": table, "fields": indent("\n".join(lines), _COLUMN_LEVEL)},
        )
        file_name: str = f"{stamp or migration_stamp()}create_{table}_table.php"
        return GeneratedArtifact(
            kind=ArtifactKind.SCHEMA,
            owning_entity=entity.name,
            name=table,
            path=f"{self._config.migrations_path}/{file_name}",
            text_body=text,
        )

    def compile_join_schema(
        self, join: JoinTableDefinition, stamp: Optional[str] = None, owning_entity: str = ""
    ) -> GeneratedArtifact:
        """
        Pivot-table migration.

        A polymorphic pivot renders its morph side as ``morphs()``.
        """
        lines: List[str] = []
        for key, table in ((join.source_key, join.source_table), (join.target_key, join.target_table)):
            if join.is_morph_key(key):
                lines.append(f"$table->morphs({php_string(join.polymorphic_name or '')});")
            else:
                reference: FieldDefinition = FieldDefinition(
                    name=key, kind=FieldKind.FOREIGN_REFERENCE
                )
                lines.append(
                    column_expression(
                        reference,
                        target_table=table,
                        delete_constraint=join.delete_constraint,
                    )
                    + ";"
                )
        for field in join.extra_fields:
            lines.append(column_expression(field) + ";")
        if join.with_timestamps:
            lines.append("$table->timestamps();")

        text: str = render_stub(
            self.load_stub(STUB_MIGRATION_PIVOT),
            {"table": join.table_name, "fields": indent("\n".join(lines), _COLUMN_LEVEL)},
        )
        file_name: str = f"{stamp or migration_stamp()}create_{join.table_name}_table.php"
        return GeneratedArtifact(
            kind=ArtifactKind.JOIN_SCHEMA,
            owning_entity=owning_entity,
            name=join.table_name,
            path=f"{self._config.migrations_path}/{file_name}",
            text_body=text,
        )

    def compile_alter_schema(
        self,
        entity_name: str,
        fields: Iterable[FieldDefinition],
        bindings: Optional[Mapping[str, ColumnBinding]] = None,
        stamp: Optional[str] = None,
        morph_names: Sequence[str] = (),
    ) -> GeneratedArtifact:
        """Migration adding *fields* to an existing table, with a reversible ``down()``."""
        bindings = bindings or {}
        table: str = table_name(entity_name)
        added: List[FieldDefinition] = list(fields)

        up: List[str] = [self._column_line(f, bindings.get(f.name)) for f in added]
        up.extend(f"$table->morphs({php_string(m)});" for m in morph_names)
        down: List[str] = [f"$table->dropMorphs({php_string(m)});" for m in reversed(morph_names)]
        down.extend(drop_expression(f) for f in reversed(added))

        text: str = render_stub(
            self.load_stub(STUB_MIGRATION_ALTER),
            {
                "table": table,
                "fields": indent("\n".join(up), _COLUMN_LEVEL),
                "drops": indent("\n".join(down), _COLUMN_LEVEL),
            },
        )
        file_name: str = f"{stamp or migration_stamp()}add_fields_to_{table}_table.php"
        return GeneratedArtifact(
            kind=ArtifactKind.ALTER_SCHEMA,
            owning_entity=class_name(entity_name),
            name=table,
            path=f"{self._config.migrations_path}/{file_name}",
            text_body=text,
        )

    @staticmethod
    def _column_line(field: FieldDefinition, binding: Optional[ColumnBinding]) -> str:
        if binding is not None and field.is_reference:
            return (
                column_expression(
                    field,
                    target_table=binding.target_table,
                    delete_constraint=binding.delete_constraint,
                )
                + ";"
            )
        return column_expression(field) + ";"

    # ===================================================================
    # 2. Eloquent model
    # ===================================================================

    def compile_entity(self, entity: EntityDefinition) -> GeneratedArtifact:
        """
        Model class: traits, mass-assignment protection, casts, relationship
        methods.
        """
        cls: str = class_name(entity.name)

        uses: Set[str] = {
            f"{_ELOQUENT_NS}\\Factories\\HasFactory",
            f"{_ELOQUENT_NS}\\Model",
        }
        traits: List[str] = ["HasFactory"]
        if entity.has_uuid:
            uses.add(f"{_ELOQUENT_NS}\\Concerns\\HasUuids")
            traits.append("HasUuids")
        if entity.soft_delete:
            uses.add(f"{_ELOQUENT_NS}\\SoftDeletes")
            traits.append("SoftDeletes")
        for field in entity.enum_fields:
            uses.add(f"{self._config.enum_namespace}\\{enum_class_name(entity.name, field.name)}")

        sections: List[str] = [f"{_INDENT}use {', '.join(traits)};"]

        if entity.protection_mode is ProtectionMode.DENY_ALL:
            sections.append(f"{_INDENT}protected $guarded = [];")
        else:
            sections.append(_array_block("fillable", fillable_entries(entity)))

        sections.append(
            _array_block("casts", cast_entries(entity.name, entity.fields.values()))
        )

        if entity.has_uuid:
            uuid_columns: List[str] = [
                f.name for f in entity.fields.values() if f.kind is FieldKind.UUID
            ]
            sections.append(
                "\n".join(
                    [
                        f"{_INDENT}public function uniqueIds(): array",
                        f"{_INDENT}{{",
                        f"{_INDENT * 2}return {format_php_list(uuid_columns)};",
                        f"{_INDENT}}}",
                    ]
                )
            )

        if entity.relationships:
            sections.append(render_relationship_methods(entity.relationships))

        text: str = render_stub(
            self.load_stub(STUB_MODEL),
            {
                "namespace": self._config.model_namespace,
                "use": "\n".join(f"use {u};" for u in sorted(uses)),
                "class": cls,
                "body": "\n\n".join(sections),
            },
        )
        logger.debug(
            "Compiled model %s (%d fields, %d relationships).",
            cls,
            len(entity.fields),
            len(entity.relationships),
        )
        return GeneratedArtifact(
            kind=ArtifactKind.ENTITY_CLASS,
            owning_entity=entity.name,
            name=cls,
            path=f"{self._config.models_path}/{cls}.php",
            text_body=text,
        )

    # ===================================================================
    # 3. Factory & seeder
    # ===================================================================

    def compile_fixture(
        self,
        entity: EntityDefinition,
        bindings: Optional[Mapping[str, ColumnBinding]] = None,
    ) -> GeneratedArtifact:
        bindings = bindings or {}
        cls: str = class_name(entity.name)
        lines: List[str] = []
        for field in entity.fields.values():
            binding: Optional[ColumnBinding] = bindings.get(field.name)
            expr: str = fixture_expression(
                field,
                related_entity=binding.target_entity if binding else None,
                model_namespace=self._config.model_namespace,
            )
            lines.append(f"{php_string(field.name)} => {expr},")

        text: str = render_stub(
            self.load_stub(STUB_FACTORY),
            {
                "namespace": self._config.factory_namespace,
                "model_namespace": self._config.model_namespace,
                "model": cls,
                "class": f"{cls}Factory",
                "fields": indent("\n".join(lines), _COLUMN_LEVEL),
            },
        )
        return GeneratedArtifact(
            kind=ArtifactKind.FIXTURE,
            owning_entity=entity.name,
            name=f"{cls}Factory",
            path=f"{self._config.factories_path}/{cls}Factory.php",
            text_body=text,
        )

    def compile_seed(self, entity: EntityDefinition) -> GeneratedArtifact:
        cls: str = class_name(entity.name)
        text: str = render_stub(
            self.load_stub(STUB_SEEDER),
            {
                "namespace": self._config.seeder_namespace,
                "model_namespace": self._config.model_namespace,
                "model": cls,
                "class": f"{cls}Seeder",
                "count": str(self._config.seed_count),
            },
        )
        return GeneratedArtifact(
            kind=ArtifactKind.SEED,
            owning_entity=entity.name,
            name=f"{cls}Seeder",
            path=f"{self._config.seeders_path}/{cls}Seeder.php",
            text_body=text,
        )

    # ===================================================================
    # 4. Enumerations
    # ===================================================================

    def compile_enums(
        self, entity: EntityDefinition, fields: Optional[Iterable[FieldDefinition]] = None
    ) -> List[GeneratedArtifact]:
        """
        One backed enum per enum field of *entity* (or of *fields*).

        Raises:
            InvalidEnumValue: for empty or duplicate values, or two values
                that sanitise to the same case name.
        """
        stub: str = self.load_stub(STUB_ENUM)
        source: Iterable[FieldDefinition] = (
            fields if fields is not None else entity.enum_fields
        )
        artifacts: List[GeneratedArtifact] = []
        for field in source:
            if field.kind is not FieldKind.ENUM:
                continue
            enum_cls: str = enum_class_name(entity.name, field.name)
            text: str = render_stub(
                stub,
                {
                    "namespace": self._config.enum_namespace,
                    "class": enum_cls,
                    "cases": "\n".join(self._enum_cases(enum_cls, field.enum_values)),
                },
            )
            artifacts.append(
                GeneratedArtifact(
                    kind=ArtifactKind.ENUM_TYPE,
                    owning_entity=entity.name,
                    name=enum_cls,
                    path=f"{self._config.enums_path}/{enum_cls}.php",
                    text_body=text,
                )
            )
        return artifacts

    @staticmethod
    def _enum_cases(enum_cls: str, values: List[str]) -> List[str]:
        cases: Dict[str, str] = {}
        lines: List[str] = []
        for value in values:
            if value == "":
                raise InvalidEnumValue(f"{enum_cls}: enum values cannot be empty.", enum=enum_cls)
            if value in cases.values():
                raise InvalidEnumValue(
                    f"{enum_cls}: value {value!r} is listed twice.", enum=enum_cls, value=value
                )
            case: str = enum_case_name(value)
            if case in cases:
                raise InvalidEnumValue(
                    f"{enum_cls}: values {cases[case]!r} and {value!r} both map to case '{case}'.",
                    enum=enum_cls,
                    value=value,
                )
            cases[case] = value
            lines.append(f"{_INDENT}case {case} = {php_string(value)};")
        return lines


__all__: List[str] = [
    "ArtifactCompiler",
    "BUNDLED_STUB_DIR",
    "STUB_MODEL",
    "STUB_MIGRATION_CREATE",
    "STUB_MIGRATION_PIVOT",
    "STUB_MIGRATION_ALTER",
    "STUB_FACTORY",
    "STUB_SEEDER",
    "STUB_ENUM",
    "render_stub",
    "migration_stamp",
    "parse_enum_values",
    "fillable_entries",
    "cast_entries",
]

logger.debug("laragen.templates loaded.")
