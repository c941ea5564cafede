# File: laragen/generator.py
"""
LaraGen - Generation Orchestrator
==================================

Connects every phase of one generation request:

    Entity Input → Validation → Relationship Resolution
                 → Artifact Compilation → Write → Inverse Injection

``EntityGenerator`` is both the programmatic API and the backend of the CLI.

Workflow per entity::

    1. Validate (validators.py).  Errors raise the matching typed error.
    2. Resolve relationship requests (relationships.py).
    3. Compile the entity's own artifacts (templates.py).  Fatal on error.
    4. Write them, then new join schemas, then enums (idempotent).
    5. Inject inverse methods into related classes (patcher.py).  Each
       failure is recorded on the report and the next task still runs.

Run-scoped state (artifacts materialised so far, the migration clock) lives
in a ``GenerationContext``; pass the same context to several ``generate``
calls to make them one run.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from laragen.errors import (
    DuplicateFieldName,
    LaragenError,
    TargetArtifactNotFound,
)
from laragen.models import (
    ArtifactKind,
    EntityDefinition,
    GeneratedArtifact,
    GenerationConfig,
    RelationshipKind,
    RelationshipRequest,
)
from laragen.naming import class_name, table_name, validate_entity_name
from laragen.patcher import InjectOutcome, extend_array_property, inject
from laragen.relationships import (
    InjectionTask,
    OutcomeStatus,
    RelationshipOutcome,
    RelationshipResolver,
    ResolutionResult,
    render_relationship_method,
)
from laragen.store import FileStore, MigrationSchemaReader
from laragen.templates import (
    ArtifactCompiler,
    cast_entries,
    fillable_entries,
    migration_stamp,
    parse_enum_values,
)
from laragen.utils import Timer, count_lines
from laragen.validators import ValidationResult, validate_entity

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.generator")


# ---------------------------------------------------------------------------
# Run context
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationContext:
    """
    State shared by every entity generated in one run.

    ``clock`` is the first migration timestamp; each migration takes the
    next second so files sort in generation order.
    """

    materialized: Set[Tuple[ArtifactKind, str]] = field(default_factory=set)
    clock: Optional[datetime] = None
    ticks: int = 0

    def next_migration_stamp(self) -> str:
        if self.clock is None:
            self.clock = datetime.now().replace(microsecond=0)
        moment: datetime = self.clock + timedelta(seconds=self.ticks)
        self.ticks += 1
        return migration_stamp(moment)

    def mark(self, kind: ArtifactKind, name: str) -> None:
        self.materialized.add((kind, name))

    def is_materialized(self, kind: ArtifactKind, name: str) -> bool:
        return (kind, name) in self.materialized

    def names(self, kind: ArtifactKind) -> Set[str]:
        return {name for k, name in self.materialized if k is kind}


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``EntityGenerator.generate()`` / ``add_fields()``.

    Relationship failures do not make a run unsuccessful: they are listed
    under ``outcomes`` with their error code.
    """

    success: bool = False
    entity_names: List[str] = field(default_factory=list)

    written: List[str] = field(default_factory=list)
    patched: List[str] = field(default_factory=list)
    outcomes: List[RelationshipOutcome] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)

    total_lines: int = 0
    total_elapsed_seconds: float = 0.0
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)

    @property
    def failed_outcomes(self) -> List[RelationshipOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    def outcome_codes(self) -> List[str]:
        return [o.code for o in self.outcomes if o.code]

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  LaraGen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Entities:         {', '.join(self.entity_names)}")
        lines.append(f"  Files written:    {len(self.written)}")
        lines.append(f"  Files patched:    {len(self.patched)}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.outcomes:
            lines.append(f"{'─'*60}")
            lines.append(f"  Relationships ({len(self.outcomes)}):")
            icons: Dict[OutcomeStatus, str] = {
                OutcomeStatus.RESOLVED: "✓",
                OutcomeStatus.INSERTED: "✓",
                OutcomeStatus.SKIPPED: "⊘",
                OutcomeStatus.FAILED: "✗",
            }
            for outcome in self.outcomes:
                lines.append(f"    {icons[outcome.status]} {outcome}")

        if self.validation_warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Warnings ({len(self.validation_warnings)}):")
            for warn in self.validation_warnings:
                lines.append(f"    ⚠ {warn}")

        if self.notes:
            lines.append(f"{'─'*60}")
            lines.append(f"  Notes ({len(self.notes)}):")
            for note in self.notes:
                lines.append(f"    • {note}")

        if self.errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Input loading
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EntityInput:
    """One entity of an input file, with the relationships it asks for."""

    entity: EntityDefinition
    requests: Tuple[RelationshipRequest, ...] = ()


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_entity_file(path: Path) -> Dict[str, Any]:
    """
    Load an entity definition file (JSON or YAML), dispatching on suffix.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Entity file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Entity path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix == ".json":
        return _load_json_file(path)
    if suffix not in (".yaml", ".yml"):
        logger.info("Unknown extension '%s', parsing as YAML.", suffix)
    return _load_yaml_file(path)


def _parse_requests(raw: Any, entity_name: str) -> Tuple[RelationshipRequest, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError(f"'relationships' of {entity_name} must be a list.")
    try:
        return tuple(RelationshipRequest.model_validate(item) for item in raw)
    except PydanticValidationError as exc:
        raise ValueError(f"Invalid relationship of {entity_name}: {exc}") from exc


def parse_entity_input(raw: Any, config: Optional[GenerationConfig] = None) -> EntityInput:
    """
    Parse one entity mapping.  ``relationships`` holds *requests*; every
    other key belongs to ``EntityDefinition``.  An entity without its own
    ``protection`` takes the config default.
    """
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected an entity mapping, got {type(raw).__name__}.")
    data: Dict[str, Any] = dict(raw)
    if config is not None and "protection" not in data and "protection_mode" not in data:
        data["protection"] = config.default_protection_mode
    requests: Tuple[RelationshipRequest, ...] = _parse_requests(
        data.pop("relationships", None), str(data.get("name", "?"))
    )
    try:
        entity: EntityDefinition = EntityDefinition.model_validate(data)
    except PydanticValidationError as exc:
        raise ValueError(f"Entity validation failed: {exc}") from exc
    return EntityInput(entity=entity, requests=requests)


def parse_raw_definition(
    raw: Dict[str, Any],
    config_overrides: Optional[Mapping[str, Any]] = None,
) -> Tuple[List[EntityInput], GenerationConfig]:
    """
    Parse a raw input document into entities and configuration.

    Expected top-level keys:
        - ``entity`` (one mapping) or ``entities`` (a list)
        - ``config`` (optional): ``GenerationConfig`` fields

    Raises:
        ValueError: If required keys are missing or validation fails.
    """
    if "entities" in raw:
        items: Any = raw["entities"]
        if not isinstance(items, list):
            raise ValueError("'entities' must be a list.")
    elif "entity" in raw:
        items = [raw["entity"]]
    else:
        raise ValueError(
            "Cannot find an entity definition in input. "
            "Expected top-level key: 'entity' or 'entities'."
        )

    config_data: Dict[str, Any] = dict(raw.get("config") or {})
    if config_overrides:
        config_data.update(config_overrides)
    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    return [parse_entity_input(item, config) for item in items], config


# ---------------------------------------------------------------------------
# EntityGenerator
# ---------------------------------------------------------------------------


class EntityGenerator:
    """
    Generation orchestrator.

    Usage::

        store = LocalFileStore(Path("./laravel-app"))
        generator = EntityGenerator(store)

        report = generator.generate(entity, requests)
        report = generator.generate_from_file(Path("blog.yaml"))
        report = generator.add_fields("Post", {"summary": "text"})

        print(report.summary())
    """

    def __init__(
        self,
        store: FileStore,
        reader: Optional[MigrationSchemaReader] = None,
        config: Optional[GenerationConfig] = None,
    ) -> None:
        self._store: FileStore = store
        self._own_reader: bool = reader is None
        self._reader: MigrationSchemaReader = reader or MigrationSchemaReader(store, config)
        self.configure(config or GenerationConfig())

    def configure(self, config: GenerationConfig) -> None:
        """Switch to *config* (paths, namespaces, stubs, defaults)."""
        self._config: GenerationConfig = config
        self._compiler: ArtifactCompiler = ArtifactCompiler(config)
        self._resolver: RelationshipResolver = RelationshipResolver(config)
        if self._own_reader:
            self._reader = MigrationSchemaReader(self._store, config)
        logger.debug("EntityGenerator configured (models=%s).", config.models_path)

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Public: new entity
    # -----------------------------------------------------------------

    def generate(
        self,
        entity: EntityDefinition,
        requests: Sequence[RelationshipRequest] = (),
        context: Optional[GenerationContext] = None,
    ) -> GenerationReport:
        """
        Generate every artifact of *entity* and inject requested inverses.

        Raises:
            LaragenError: validation or compilation errors of the entity's
                own artifacts.
        """
        report: GenerationReport = GenerationReport()
        start: float = time.perf_counter()
        self._generate_into(entity, requests, context or GenerationContext(), report)
        return self._finalise_report(report, time.perf_counter() - start)

    def generate_from_file(
        self,
        path: Path,
        *,
        config_overrides: Optional[Mapping[str, Any]] = None,
        context: Optional[GenerationContext] = None,
    ) -> GenerationReport:
        """
        Load ``entity:`` / ``entities:`` (+ ``config:``) from *path* and
        generate them in order as one run.

        Raises:
            FileNotFoundError, ValueError: unreadable or invalid input.
            LaragenError: as for ``generate``.
        """
        inputs, config = self._load(path, config_overrides)
        report: GenerationReport = GenerationReport()
        start: float = time.perf_counter()
        run: GenerationContext = context or GenerationContext()
        for item in inputs:
            self._generate_into(item.entity, item.requests, run, report)
        return self._finalise_report(report, time.perf_counter() - start)

    def _load(
        self, path: Path, config_overrides: Optional[Mapping[str, Any]]
    ) -> Tuple[List[EntityInput], GenerationConfig]:
        with Timer("load_entity_file") as t:
            raw: Dict[str, Any] = load_entity_file(path)
            inputs, config = parse_raw_definition(raw, config_overrides)
        logger.info(
            "Loaded %s: %d entit(y/ies) in %.3fs.", path, len(inputs), t.elapsed
        )
        self.configure(config)
        return inputs, config

    # -----------------------------------------------------------------
    # Public: existing entity
    # -----------------------------------------------------------------

    def add_fields(
        self,
        entity_name: str,
        fields: Any,
        requests: Sequence[RelationshipRequest] = (),
        context: Optional[GenerationContext] = None,
    ) -> GenerationReport:
        """
        Add *fields* (and relationships) to an entity that already exists.

        Writes an alter migration, extends ``$fillable`` / ``$casts`` of the
        existing class, writes enums, injects relationship methods into the
        class and inverses into their targets.

        Raises:
            TargetArtifactNotFound: the entity's class does not exist.
            DuplicateFieldName: a field is already a column of the table.
        """
        report: GenerationReport = GenerationReport()
        start: float = time.perf_counter()
        self._add_fields_into(
            entity_name, fields, requests, context or GenerationContext(), report
        )
        return self._finalise_report(report, time.perf_counter() - start)

    def add_fields_from_file(
        self,
        path: Path,
        *,
        config_overrides: Optional[Mapping[str, Any]] = None,
        context: Optional[GenerationContext] = None,
    ) -> GenerationReport:
        """``add_fields`` for every entity listed in *path*."""
        inputs, _ = self._load(path, config_overrides)
        report: GenerationReport = GenerationReport()
        start: float = time.perf_counter()
        run: GenerationContext = context or GenerationContext()
        for item in inputs:
            self._add_fields_into(
                item.entity.name, item.entity.fields, item.requests, run, report
            )
        return self._finalise_report(report, time.perf_counter() - start)

    # -----------------------------------------------------------------
    # Internal: pipeline for a new entity
    # -----------------------------------------------------------------

    def _generate_into(
        self,
        entity: EntityDefinition,
        requests: Sequence[RelationshipRequest],
        context: GenerationContext,
        report: GenerationReport,
    ) -> None:
        report.entity_names.append(entity.name)

        self._step_validate(entity, requests, report)
        resolution: ResolutionResult = self._step_resolve(entity, requests, context, report)
        resolved: EntityDefinition = resolution.apply_to(entity)

        with Timer("compile") as t:
            table: str = table_name(entity.name)
            schema_path: Optional[str] = self._reader.create_migration_path(table)
            schema: GeneratedArtifact = self._compiler.compile_schema(
                resolved, resolution.bindings, context.next_migration_stamp()
            )
            if schema_path is not None:
                report.notes.append(f"Replaced existing migration {schema_path}.")
                schema = schema.model_copy(update={"path": schema_path})

            primary: List[GeneratedArtifact] = [schema]
            class_exists: bool = self._store.exists(self._model_path(entity.name))
            if not class_exists:
                primary.append(self._compiler.compile_entity(resolved))
            if self._config.generate_fixture:
                primary.append(self._compiler.compile_fixture(resolved, resolution.bindings))
            if self._config.generate_seed:
                primary.append(self._compiler.compile_seed(resolved))
            joins: List[GeneratedArtifact] = [
                self._compiler.compile_join_schema(
                    join, context.next_migration_stamp(), owning_entity=entity.name
                )
                for join in resolution.join_tables
            ]
            enums: List[GeneratedArtifact] = self._compiler.compile_enums(resolved)
        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Compile {entity.name}",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(primary) + len(joins) + len(enums)} artifacts",
        ))

        with Timer("write") as t:
            for artifact in [*primary, *joins]:
                self._write(artifact, context, report)
            for artifact in enums:
                self._write_enum(artifact, context, report)
            if class_exists:
                report.notes.append(
                    f"{entity.name} class already exists; extended it instead of replacing it."
                )
                self._patch_entity_class(entity.name, resolved, resolution, report)
                context.mark(ArtifactKind.ENTITY_CLASS, entity.name)
        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Write {entity.name}",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(report.written)} files written so far",
        ))

        self._step_inject(resolution.injections, report, entity.name)

    # -----------------------------------------------------------------
    # Internal: pipeline for an existing entity
    # -----------------------------------------------------------------

    def _add_fields_into(
        self,
        entity_name: str,
        fields: Any,
        requests: Sequence[RelationshipRequest],
        context: GenerationContext,
        report: GenerationReport,
    ) -> None:
        name: str = class_name(validate_entity_name(entity_name))
        report.entity_names.append(name)
        model_path: str = self._model_path(name)
        if not self._store.exists(model_path):
            raise TargetArtifactNotFound(
                f"Cannot add fields to {name}: {model_path} does not exist.",
                entity=name,
                path=model_path,
            )

        try:
            partial: EntityDefinition = EntityDefinition(name=name, fields=fields)
        except PydanticValidationError as exc:
            raise ValueError(f"Invalid fields for {name}: {exc}") from exc

        existing: Set[str] = {column for column, _ in self._reader.list_fields(name)}
        clashes: List[str] = [f for f in partial.fields if f in existing]
        if clashes:
            raise DuplicateFieldName(
                f"{name} already has column(s): {', '.join(clashes)}.",
                entity=name,
                fields=clashes,
            )

        self._step_validate(partial, requests, report)
        resolution: ResolutionResult = self._step_resolve(partial, requests, context, report)
        resolved: EntityDefinition = resolution.apply_to(partial)
        morphs: List[str] = [
            rel.polymorphic_name or ""
            for rel in resolution.relationships
            if rel.kind is RelationshipKind.POLYMORPHIC_OWNER
        ]

        with Timer("alter") as t:
            alter: GeneratedArtifact = self._compiler.compile_alter_schema(
                name,
                resolved.fields.values(),
                resolution.bindings,
                context.next_migration_stamp(),
                morph_names=morphs,
            )
            self._write(alter, context, report)
            self._patch_entity_class(name, resolved, resolution, report)
            for join in resolution.join_tables:
                self._write(
                    self._compiler.compile_join_schema(
                        join, context.next_migration_stamp(), owning_entity=name
                    ),
                    context,
                    report,
                )
            for artifact in self._compiler.compile_enums(resolved):
                self._write_enum(artifact, context, report)
        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Extend {name}",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(resolved.fields)} field(s) added",
        ))

        self._step_inject(resolution.injections, report, name)

    def _patch_entity_class(
        self,
        name: str,
        resolved: EntityDefinition,
        resolution: ResolutionResult,
        report: GenerationReport,
    ) -> None:
        """Extend the existing class with the new fields, casts and methods."""
        path: str = self._model_path(name)
        text: str = self._store.read(path)
        original: str = text

        text, outcome = extend_array_property(text, "fillable", fillable_entries(resolved))
        if outcome is InjectOutcome.SKIPPED_NOT_FOUND:
            report.notes.append(f"{name} has no $fillable array; left as is.")

        casts: List[str] = cast_entries(
            name, resolved.fields.values(), enum_namespace=self._config.enum_namespace
        )
        if casts:
            text, outcome = extend_array_property(text, "casts", casts)
            if outcome is InjectOutcome.SKIPPED_NOT_FOUND:
                report.notes.append(f"{name} has no $casts array; add the casts by hand.")

        if resolved.has_uuid and "HasUuids" not in text:
            report.notes.append(f"{name} gained a uuid field; add the HasUuids trait by hand.")
        if resolved.soft_delete and "SoftDeletes" not in text:
            report.notes.append(f"{name} now soft deletes; add the SoftDeletes trait by hand.")

        for rel in resolution.relationships:
            subject: str = f"{name}.{rel.method_name}()"
            text, outcome = inject(text, rel.method_name, render_relationship_method(rel))
            if outcome is InjectOutcome.INSERTED:
                report.outcomes.append(RelationshipOutcome(subject, OutcomeStatus.INSERTED))
            else:
                report.outcomes.append(
                    RelationshipOutcome(subject, OutcomeStatus.SKIPPED, "MethodAlreadyExists")
                )

        if text != original:
            self._store.write(path, text)
            report.patched.append(path)
            report.total_lines += count_lines(text) - count_lines(original)

    # -----------------------------------------------------------------
    # Pipeline steps
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        entity: EntityDefinition,
        requests: Sequence[RelationshipRequest],
        report: GenerationReport,
    ) -> None:
        with Timer("validation") as t:
            result: ValidationResult = validate_entity(entity, requests, self._config)

        report.validation_warnings.extend(str(w) for w in result.warnings)
        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Validate {entity.name}",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{result.error_count} error(s)"
                if result.has_errors
                else f"{result.warning_count} warning(s)"
            ),
        ))
        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        if result.has_errors:
            for err in result.errors:
                logger.error("  ✗ %s", err)
            report.errors.extend(str(e) for e in result.errors)
            result.raise_for_errors()

    def _step_resolve(
        self,
        entity: EntityDefinition,
        requests: Sequence[RelationshipRequest],
        context: GenerationContext,
        report: GenerationReport,
    ) -> ResolutionResult:
        with Timer("resolve") as t:
            known: Set[str] = self._known_join_tables(context)
            resolution: ResolutionResult = self._resolver.resolve(entity, requests, known)
        for join in resolution.join_tables:
            context.mark(ArtifactKind.JOIN_SCHEMA, join.table_name)
        report.outcomes.extend(resolution.outcomes)
        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Resolve {entity.name}",
            success=not resolution.failures,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(resolution.relationships)} relationship(s), "
                f"{len(resolution.join_tables)} join table(s), "
                f"{len(resolution.injections)} inverse(s)"
            ),
        ))
        return resolution

    def _step_inject(
        self, tasks: Iterable[InjectionTask], report: GenerationReport, entity_name: str
    ) -> None:
        applied: int = 0
        with Timer("inject") as t:
            for task in tasks:
                applied += 1
                self._apply_injection(task, report)
        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Inject inverses of {entity_name}",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{applied} task(s)",
        ))

    def _apply_injection(self, task: InjectionTask, report: GenerationReport) -> None:
        """Patch one related class.  Failures are recorded, never raised."""
        path: str = self._model_path(task.target_entity)
        subject: str = f"{task.target_entity}.{task.method_name}() (inverse of {task.origin})"
        try:
            if not self._store.exists(path):
                raise TargetArtifactNotFound(
                    f"{path} does not exist; generate {task.target_entity} first.",
                    entity=task.target_entity,
                    path=path,
                )
            text: str = self._store.read(path)
            new_text, outcome = inject(text, task.method_name, task.method_text)
            if outcome is InjectOutcome.INSERTED:
                self._store.write(path, new_text)
        except LaragenError as exc:
            logger.warning("Could not inject %s: %s", subject, exc.message)
            report.outcomes.append(
                RelationshipOutcome(subject, OutcomeStatus.FAILED, exc.code, exc.message)
            )
            return
        except OSError as exc:
            logger.warning("Could not inject %s: %s", subject, exc)
            report.outcomes.append(
                RelationshipOutcome(subject, OutcomeStatus.FAILED, "IOError", str(exc))
            )
            return

        if outcome is InjectOutcome.INSERTED:
            logger.info("Injected %s into %s", task.method_name, path)
            report.patched.append(path)
            report.outcomes.append(RelationshipOutcome(subject, OutcomeStatus.INSERTED))
        else:
            report.outcomes.append(
                RelationshipOutcome(
                    subject,
                    OutcomeStatus.SKIPPED,
                    "MethodAlreadyExists",
                    "method already present",
                )
            )

    # -----------------------------------------------------------------
    # Internal: writing
    # -----------------------------------------------------------------

    def _write(
        self, artifact: GeneratedArtifact, context: GenerationContext, report: GenerationReport
    ) -> None:
        self._store.write(artifact.path, artifact.text_body)
        context.mark(artifact.kind, artifact.name)
        report.written.append(artifact.path)
        report.total_lines += artifact.line_count
        logger.info("Wrote %s", artifact.path)

    def _write_enum(
        self, artifact: GeneratedArtifact, context: GenerationContext, report: GenerationReport
    ) -> None:
        """Skip an identical enum; replace one whose values changed."""
        if self._store.exists(artifact.path):
            current: List[str] = parse_enum_values(self._store.read(artifact.path))
            if current == parse_enum_values(artifact.text_body):
                report.notes.append(f"Enum {artifact.name} already exists with the same values.")
                context.mark(artifact.kind, artifact.name)
                return
            self._store.delete(artifact.path)
            report.notes.append(f"Enum {artifact.name} values changed; recreated.")
        self._write(artifact, context, report)

    def _known_join_tables(self, context: GenerationContext) -> Set[str]:
        known: Set[str] = context.names(ArtifactKind.JOIN_SCHEMA)
        known |= context.names(ArtifactKind.SCHEMA)
        known |= self._reader.list_existing_artifact_names(ArtifactKind.JOIN_SCHEMA)
        return known

    def _model_path(self, entity: str) -> str:
        return f"{self._config.models_path}/{class_name(entity)}.php"

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    @staticmethod
    def _finalise_report(report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = not report.errors
        if report.failed_outcomes:
            logger.warning(
                "%d relationship step(s) failed; see the report.",
                len(report.failed_outcomes),
            )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "EntityGenerator",
    "EntityInput",
    "GenerationContext",
    "GenerationReport",
    "GenerationStepMetric",
    "load_entity_file",
    "parse_entity_input",
    "parse_raw_definition",
]

logger.debug("laragen.generator loaded.")
