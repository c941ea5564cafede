# File: laragen/relationships.py
"""
LaraGen - Relationship Resolver
================================

Turns an entity plus its relationship requests into:

    * resolved ``RelationshipDefinition``s for the entity's own class,
    * ``JoinTableDefinition``s for pivots that do not exist yet,
    * ``InjectionTask``s carrying inverse methods for related classes,
    * ``ColumnBinding``s telling the schema compiler which table each
      reference column is constrained to,
    * one ``RelationshipOutcome`` per request (resolved / skipped / failed).

Field binding:
    A request is tied to a reference column (``*_id``) when it names the
    column, when the column is the conventional key of the target
    (``user_id`` for ``User``), or when it is the only unbound reference
    column left.  A bound column is constrained to the *request's* target;
    the request's kind wins and the column only contributes the foreign key.
    Reference columns left unbound become implicit ``belongsTo`` relations.

Errors for a single request never escape ``resolve``: they are recorded as
failed outcomes and resolution continues with the next request.

Method rendering dispatches on ``RelationshipKind`` through
``_RETURN_BUILDERS``, which must cover every kind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from laragen.errors import LaragenError
from laragen.models import (
    REFERENCE_SUFFIX,
    DeleteConstraint,
    EntityDefinition,
    FieldDefinition,
    FieldKind,
    GenerationConfig,
    JoinTableDefinition,
    RelationshipDefinition,
    RelationshipKind,
    RelationshipRequest,
)
from laragen.naming import (
    class_name,
    foreign_key_name,
    join_table_name,
    method_name,
    polymorphic_name,
    polymorphic_table_name,
    relation_method_for_field,
    table_name,
    validate_entity_name,
)
from laragen.type_mapper import referenced_entity
from laragen.utils import php_string

logger: logging.Logger = logging.getLogger("laragen.relationships")

_RELATIONS_NAMESPACE: str = "\\Illuminate\\Database\\Eloquent\\Relations"


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


class OutcomeStatus(str, Enum):
    RESOLVED = "resolved"
    INSERTED = "inserted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=False, slots=True)
class RelationshipOutcome:
    """What happened to one relationship (or one side of it)."""

    subject: str
    status: OutcomeStatus
    code: str = ""
    message: str = ""

    def __str__(self) -> str:
        text: str = f"{self.subject}: {self.status.value}"
        if self.code:
            text += f" [{self.code}]"
        if self.message:
            text += f" {self.message}"
        return text


@dataclass(frozen=True, slots=True)
class ColumnBinding:
    """Where a reference column points and what happens on delete."""

    target_entity: str
    target_table: str
    delete_constraint: DeleteConstraint


@dataclass(frozen=True, slots=True)
class InjectionTask:
    """An inverse method to append to another entity's class artifact."""

    target_entity: str
    method_name: str
    method_text: str
    relationship: RelationshipDefinition
    origin: str


@dataclass(frozen=False, slots=True)
class ResolutionResult:
    relationships: List[RelationshipDefinition] = field(default_factory=list)
    join_tables: List[JoinTableDefinition] = field(default_factory=list)
    injections: List[InjectionTask] = field(default_factory=list)
    bindings: Dict[str, ColumnBinding] = field(default_factory=dict)
    added_fields: List[FieldDefinition] = field(default_factory=list)
    outcomes: List[RelationshipOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[RelationshipOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    def apply_to(self, entity: EntityDefinition) -> EntityDefinition:
        """Entity copy carrying synthesised columns and resolved relationships."""
        fields: Dict[str, FieldDefinition] = dict(entity.fields)
        for added in self.added_fields:
            fields.setdefault(added.name, added)
        resolved: EntityDefinition = entity.model_copy(update={"fields": fields})
        return resolved.with_relationships(self.relationships)


@dataclass(frozen=False, slots=True)
class _ParsedRequest:
    request: RelationshipRequest
    kind: RelationshipKind
    target: str
    bound_field: Optional[str] = None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class RelationshipResolver:
    """
    Resolves relationship requests for one entity.

    Usage::

        resolver = RelationshipResolver(config)
        result = resolver.resolve(entity, requests, known_join_tables)
    """

    def __init__(self, config: Optional[GenerationConfig] = None) -> None:
        self._config: GenerationConfig = config or GenerationConfig()

    def resolve(
        self,
        entity: EntityDefinition,
        requests: Sequence[RelationshipRequest],
        known_join_tables: Optional[Set[str]] = None,
    ) -> ResolutionResult:
        """
        Resolve *requests* for *entity*.

        Args:
            entity: The entity being generated.
            requests: Relationship requests, processed in order.
            known_join_tables: Pivot tables that already exist or were
                materialised earlier in this run.  Updated in place with
                every pivot this call decides to create.
        """
        known: Set[str] = known_join_tables if known_join_tables is not None else set()
        result: ResolutionResult = ResolutionResult()
        taken_methods: Set[str] = {rel.method_name for rel in entity.relationships}

        parsed: List[_ParsedRequest] = []
        for request in requests:
            subject: str = f"{entity.name} {request.kind} {request.target}"
            try:
                parsed.append(self._parse(request))
            except LaragenError as exc:
                logger.warning("Skipping relationship %s: %s", subject, exc)
                result.outcomes.append(
                    RelationshipOutcome(subject, OutcomeStatus.FAILED, exc.code, exc.message)
                )

        self._bind_fields(entity, parsed, result)

        for item in parsed:
            subject = f"{entity.name} {item.kind.value} {item.target}"
            try:
                definition: RelationshipDefinition = self._build(entity.name, item)
            except LaragenError as exc:
                logger.warning("Skipping relationship %s: %s", subject, exc)
                result.outcomes.append(
                    RelationshipOutcome(subject, OutcomeStatus.FAILED, exc.code, exc.message)
                )
                continue

            subject = f"{entity.name}.{definition.method_name}() {definition.kind.value} {definition.target_entity}"
            if definition.method_name in taken_methods:
                result.outcomes.append(
                    RelationshipOutcome(
                        subject,
                        OutcomeStatus.SKIPPED,
                        "MethodAlreadyExists",
                        f"method {definition.method_name}() is already defined",
                    )
                )
                continue
            taken_methods.add(definition.method_name)

            self._claim_join_table(definition, known, result)
            result.relationships.append(definition)
            result.outcomes.append(RelationshipOutcome(subject, OutcomeStatus.RESOLVED))
            logger.info("Resolved %s", subject)

            if item.request.inverse is not None:
                try:
                    inverse: Optional[RelationshipKind] = RelationshipKind.parse_inverse(
                        item.request.inverse
                    )
                    if inverse is not None:
                        result.injections.append(
                            self._inverse_task(definition, inverse, item.request)
                        )
                except LaragenError as exc:
                    logger.warning("Skipping inverse of %s: %s", subject, exc)
                    result.outcomes.append(
                        RelationshipOutcome(
                            f"{definition.target_entity} {item.request.inverse} {entity.name}",
                            OutcomeStatus.FAILED,
                            exc.code,
                            exc.message,
                        )
                    )

        self._implicit_relationships(entity, result, taken_methods)
        return result

    def planned_method_names(
        self, entity: EntityDefinition, requests: Sequence[RelationshipRequest]
    ) -> List[Optional[str]]:
        """
        Method name each request would get, in request order, with fields
        bound exactly as ``resolve`` binds them.  ``None`` for a request that
        cannot be parsed.  Nothing is recorded or created.
        """
        slots: List[Optional[_ParsedRequest]] = []
        for request in requests:
            try:
                slots.append(self._parse(request))
            except LaragenError:
                slots.append(None)
        parsed: List[_ParsedRequest] = [item for item in slots if item is not None]
        self._bind_fields(entity, parsed, ResolutionResult())
        return [self._method_name(item) if item is not None else None for item in slots]

    # -----------------------------------------------------------------
    # Parsing & field binding
    # -----------------------------------------------------------------

    @staticmethod
    def _parse(request: RelationshipRequest) -> _ParsedRequest:
        kind: RelationshipKind = RelationshipKind.parse(request.kind)
        target: str = class_name(validate_entity_name(request.target))
        if request.through:
            validate_entity_name(request.through)
        elif kind.is_through:
            raise LaragenError(
                f"{kind.value} to '{target}' needs a 'through' entity.", kind=kind.value
            )
        return _ParsedRequest(request=request, kind=kind, target=target)

    def _bind_fields(
        self,
        entity: EntityDefinition,
        parsed: List[_ParsedRequest],
        result: ResolutionResult,
    ) -> None:
        reference_names: List[str] = [f.name for f in entity.reference_fields]
        claimed: Set[str] = set()

        for item in parsed:
            wanted: Optional[str] = item.request.field
            if not wanted:
                continue
            if wanted in entity.fields and wanted not in claimed:
                item.bound_field = wanted
                claimed.add(wanted)
            elif wanted not in entity.fields and item.kind is RelationshipKind.OWNED_BY:
                self._add_reference_column(entity, item, wanted, result)
                claimed.add(wanted)
            else:
                logger.warning(
                    "Relationship %s %s cannot use field '%s'.",
                    item.kind.value,
                    item.target,
                    wanted,
                )

        owned_by: List[_ParsedRequest] = [
            p for p in parsed if p.kind is RelationshipKind.OWNED_BY and p.bound_field is None
        ]

        for item in owned_by:
            conventional: str = foreign_key_name(item.target)
            if conventional in reference_names and conventional not in claimed:
                item.bound_field = conventional
                claimed.add(conventional)

        # Columns pointing at a request's target go to that request, owning side first.
        for item in owned_by + [p for p in parsed if p.kind is not RelationshipKind.OWNED_BY]:
            if item.bound_field is not None:
                continue
            column_name: Optional[str] = self._column_for_target(entity, item.target, claimed)
            if column_name is not None:
                item.bound_field = column_name
                claimed.add(column_name)
                logger.info(
                    "Reference column '%s' of %s belongs to %s %s.",
                    column_name,
                    entity.name,
                    item.kind.value,
                    item.target,
                )

        for item in owned_by:
            if item.bound_field is not None:
                continue
            free: List[str] = [n for n in reference_names if n not in claimed]
            if len(free) == 1:
                item.bound_field = free[0]
                claimed.add(free[0])
                logger.info(
                    "Bound %s %s to reference column '%s'.",
                    item.kind.value,
                    item.target,
                    free[0],
                )
            else:
                self._add_reference_column(
                    entity, item, foreign_key_name(item.target), result
                )
                claimed.add(item.bound_field or "")

        for item in parsed:
            if item.bound_field is None or item.bound_field not in entity.fields:
                continue
            column: FieldDefinition = entity.fields[item.bound_field]
            result.bindings[item.bound_field] = ColumnBinding(
                target_entity=item.target,
                target_table=table_name(item.target),
                delete_constraint=self._constraint(item.request, column),
            )

    @staticmethod
    def _column_for_target(
        entity: EntityDefinition, target: str, claimed: Set[str]
    ) -> Optional[str]:
        """First unclaimed reference column pointing at *target*."""
        for column in entity.reference_fields:
            if column.name in claimed:
                continue
            try:
                if referenced_entity(column) == target:
                    return column.name
            except LaragenError:
                continue
        return None

    def _add_reference_column(
        self,
        entity: EntityDefinition,
        item: _ParsedRequest,
        column_name: str,
        result: ResolutionResult,
    ) -> None:
        """An owning side with no reference column gets one."""
        if column_name in entity.fields:
            item.bound_field = column_name
            return
        constraint: DeleteConstraint = self._constraint(item.request, None)
        column: FieldDefinition = FieldDefinition(
            name=column_name,
            kind=FieldKind.FOREIGN_REFERENCE,
            nullable=constraint is DeleteConstraint.SET_NULL,
            references=item.target,
            delete_constraint=constraint,
        )
        result.added_fields.append(column)
        result.bindings[column_name] = ColumnBinding(
            target_entity=item.target,
            target_table=table_name(item.target),
            delete_constraint=constraint,
        )
        item.bound_field = column_name
        logger.info("Added reference column '%s' to %s.", column_name, entity.name)

    def _constraint(
        self, request: Optional[RelationshipRequest], column: Optional[FieldDefinition]
    ) -> DeleteConstraint:
        if request is not None and request.delete_constraint is not None:
            return request.delete_constraint
        if column is not None and column.delete_constraint is not None:
            return column.delete_constraint
        return self._config.default_delete_constraint

    # -----------------------------------------------------------------
    # Building definitions
    # -----------------------------------------------------------------

    def _build(self, source: str, item: _ParsedRequest) -> RelationshipDefinition:
        request: RelationshipRequest = item.request
        kind: RelationshipKind = item.kind
        target: str = item.target

        morph: Optional[str] = (
            polymorphic_name(source, request.polymorphic_name) if kind.is_polymorphic else None
        )

        name: str = self._method_name(item)

        foreign_key: Optional[str] = None
        if kind is RelationshipKind.OWNED_BY:
            foreign_key = item.bound_field or foreign_key_name(target)

        return RelationshipDefinition(
            source_entity=source,
            target_entity=target,
            kind=kind,
            method_name=name,
            through_entity=class_name(request.through) if request.through else None,
            polymorphic_name=morph,
            join_table=self._join_table(source, target, kind, morph, request),
            delete_constraint=self._constraint(request, None),
            foreign_key=foreign_key,
            through_keys=request.through_keys,
        )

    @staticmethod
    def _method_name(item: _ParsedRequest) -> str:
        if item.request.method_name:
            return item.request.method_name
        if item.kind is RelationshipKind.OWNED_BY and item.bound_field:
            return relation_method_for_field(item.bound_field)
        return method_name(item.kind, item.target)

    def _join_table(
        self,
        source: str,
        target: str,
        kind: RelationshipKind,
        morph: Optional[str],
        request: Optional[RelationshipRequest],
    ) -> Optional[JoinTableDefinition]:
        if not kind.needs_join_table:
            return None

        overrides = request.join_table if request is not None else None
        with_timestamps: bool = overrides.with_timestamps if overrides else False
        extra_fields: List[FieldDefinition] = list(overrides.extra_fields) if overrides else []
        custom_table: Optional[str] = overrides.table_name if overrides else None

        if kind is RelationshipKind.MANY_TO_MANY:
            table: str = custom_table or join_table_name(source, target)
            source_key: str = foreign_key_name(source)
            target_key: str = foreign_key_name(target)
        elif kind is RelationshipKind.POLYMORPHIC_MANY_TO_MANY:
            table = custom_table or polymorphic_table_name(morph or "")
            source_key = f"{morph}{REFERENCE_SUFFIX}"
            target_key = foreign_key_name(target)
        else:
            table = custom_table or polymorphic_table_name(morph or "")
            source_key = foreign_key_name(source)
            target_key = f"{morph}{REFERENCE_SUFFIX}"

        return JoinTableDefinition(
            table_name=table,
            source_key=source_key,
            target_key=target_key,
            source_table=table_name(source),
            target_table=table_name(target),
            with_timestamps=with_timestamps,
            extra_fields=extra_fields,
            delete_constraint=self._constraint(request, None),
            polymorphic_name=morph if kind.is_polymorphic else None,
        )

    @staticmethod
    def _claim_join_table(
        definition: RelationshipDefinition,
        known: Set[str],
        result: ResolutionResult,
    ) -> None:
        join: Optional[JoinTableDefinition] = definition.join_table
        if join is None:
            return
        if join.table_name in known:
            logger.info("Join table '%s' already exists, not creating it again.", join.table_name)
            result.outcomes.append(
                RelationshipOutcome(
                    f"join table {join.table_name}",
                    OutcomeStatus.SKIPPED,
                    message="join table already exists",
                )
            )
            return
        known.add(join.table_name)
        result.join_tables.append(join)

    # -----------------------------------------------------------------
    # Inverse side
    # -----------------------------------------------------------------

    def _inverse_task(
        self,
        primary: RelationshipDefinition,
        inverse_kind: RelationshipKind,
        request: RelationshipRequest,
    ) -> InjectionTask:
        owner: str = primary.target_entity
        related: str = primary.source_entity
        if inverse_kind.is_through and not primary.through_entity:
            raise LaragenError(
                f"Inverse {inverse_kind.value} on '{owner}' needs a 'through' entity.",
                kind=inverse_kind.value,
            )

        foreign_key: Optional[str] = None
        if primary.kind is RelationshipKind.OWNED_BY and inverse_kind in (
            RelationshipKind.ONE_TO_ONE,
            RelationshipKind.ONE_TO_MANY,
        ):
            if primary.foreign_key and primary.foreign_key != foreign_key_name(owner):
                foreign_key = primary.foreign_key
        elif inverse_kind is RelationshipKind.OWNED_BY:
            foreign_key = primary.foreign_key or foreign_key_name(related)

        join_table: Optional[JoinTableDefinition] = None
        if inverse_kind.needs_join_table:
            if primary.join_table is not None:
                join_table = primary.join_table.swapped()
            else:
                morph: Optional[str] = primary.polymorphic_name or polymorphic_name(related)
                join_table = self._join_table(owner, related, inverse_kind, morph, None)

        inverse: RelationshipDefinition = RelationshipDefinition(
            source_entity=owner,
            target_entity=related,
            kind=inverse_kind,
            method_name=method_name(inverse_kind, related),
            through_entity=primary.through_entity if inverse_kind.is_through else None,
            polymorphic_name=primary.polymorphic_name if inverse_kind.is_polymorphic else None,
            join_table=join_table,
            delete_constraint=primary.delete_constraint,
            foreign_key=foreign_key,
            through_keys=request.through_keys if inverse_kind.is_through else None,
        )
        return InjectionTask(
            target_entity=owner,
            method_name=inverse.method_name,
            method_text=render_relationship_method(inverse),
            relationship=inverse,
            origin=f"{related}.{primary.method_name}()",
        )

    # -----------------------------------------------------------------
    # Implicit belongsTo from unbound reference columns
    # -----------------------------------------------------------------

    def _implicit_relationships(
        self,
        entity: EntityDefinition,
        result: ResolutionResult,
        taken_methods: Set[str],
    ) -> None:
        for column in entity.reference_fields:
            if column.name in result.bindings:
                continue
            subject: str = f"{entity.name}.{column.name}"
            try:
                target: str = referenced_entity(column)
                constraint: DeleteConstraint = self._constraint(None, column)
                result.bindings[column.name] = ColumnBinding(
                    target_entity=target,
                    target_table=table_name(target),
                    delete_constraint=constraint,
                )
                definition: RelationshipDefinition = RelationshipDefinition(
                    source_entity=entity.name,
                    target_entity=target,
                    kind=RelationshipKind.OWNED_BY,
                    method_name=relation_method_for_field(column.name),
                    delete_constraint=constraint,
                    foreign_key=column.name,
                )
            except LaragenError as exc:
                result.outcomes.append(
                    RelationshipOutcome(subject, OutcomeStatus.FAILED, exc.code, exc.message)
                )
                continue

            if definition.method_name in taken_methods:
                continue
            taken_methods.add(definition.method_name)
            result.relationships.append(definition)
            result.outcomes.append(
                RelationshipOutcome(
                    f"{entity.name}.{definition.method_name}() belongsTo {target}",
                    OutcomeStatus.RESOLVED,
                    message="implicit, from reference column",
                )
            )


# ---------------------------------------------------------------------------
# Method rendering
# ---------------------------------------------------------------------------


def _model_ref(entity: str) -> str:
    return f"{class_name(entity)}::class"


def _args(*values: Optional[str]) -> str:
    """Join call arguments, dropping trailing ``None``s and rendering inner ones as ``null``."""
    items: List[Optional[str]] = list(values)
    while items and items[-1] is None:
        items.pop()
    return ", ".join("null" if v is None else v for v in items)


def _quoted(value: Optional[str]) -> Optional[str]:
    return php_string(value) if value else None


def _has_one_or_many(d: RelationshipDefinition) -> str:
    return f"$this->{d.kind.value}({_args(_model_ref(d.target_entity), _quoted(d.foreign_key))})"


def _belongs_to(d: RelationshipDefinition) -> str:
    key: str = d.foreign_key or foreign_key_name(d.target_entity)
    return f"$this->belongsTo({_args(_model_ref(d.target_entity), php_string(key))})"


def _belongs_to_many(d: RelationshipDefinition) -> str:
    join: Optional[JoinTableDefinition] = d.join_table
    if join is None:
        return f"$this->belongsToMany({_model_ref(d.target_entity)})"
    call: str = (
        f"$this->belongsToMany({_args(_model_ref(d.target_entity), php_string(join.table_name), php_string(join.source_key), php_string(join.target_key))})"
    )
    return call + ("->withTimestamps()" if join.with_timestamps else "")


def _through(d: RelationshipDefinition) -> str:
    keys: List[Optional[str]] = d.through_keys.as_list() if d.through_keys else []
    return (
        f"$this->{d.kind.value}("
        f"{_args(_model_ref(d.target_entity), _model_ref(d.through_entity or ''), *[_quoted(k) for k in keys])})"
    )


def _morph_one_or_many(d: RelationshipDefinition) -> str:
    return f"$this->{d.kind.value}({_model_ref(d.target_entity)}, {php_string(d.polymorphic_name or '')})"


def _morph_to(d: RelationshipDefinition) -> str:
    return f"$this->morphTo({php_string(d.polymorphic_name or '')})"


def _morph_many_to_many(d: RelationshipDefinition) -> str:
    morph: str = d.polymorphic_name or ""
    table: Optional[str] = None
    if d.join_table is not None and d.join_table.table_name != polymorphic_table_name(morph):
        table = php_string(d.join_table.table_name)
    call: str = f"$this->{d.kind.value}({_args(_model_ref(d.target_entity), php_string(morph), table)})"
    if d.join_table is not None and d.join_table.with_timestamps:
        call += "->withTimestamps()"
    return call


_RETURN_BUILDERS: Dict[RelationshipKind, Callable[[RelationshipDefinition], str]] = {
    RelationshipKind.ONE_TO_ONE: _has_one_or_many,
    RelationshipKind.OWNED_BY: _belongs_to,
    RelationshipKind.ONE_TO_MANY: _has_one_or_many,
    RelationshipKind.MANY_TO_MANY: _belongs_to_many,
    RelationshipKind.ONE_TO_ONE_VIA: _through,
    RelationshipKind.ONE_TO_MANY_VIA: _through,
    RelationshipKind.POLYMORPHIC_ONE: _morph_one_or_many,
    RelationshipKind.POLYMORPHIC_MANY: _morph_one_or_many,
    RelationshipKind.POLYMORPHIC_OWNER: _morph_to,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY: _morph_many_to_many,
    RelationshipKind.POLYMORPHIC_MANY_TO_MANY_INVERSE: _morph_many_to_many,
}

_UNBUILT_KINDS: Set[RelationshipKind] = set(RelationshipKind) - set(_RETURN_BUILDERS)
if _UNBUILT_KINDS:
    raise RuntimeError(
        "No return builder for: " + ", ".join(sorted(k.value for k in _UNBUILT_KINDS))
    )


def render_relationship_method(definition: RelationshipDefinition, indent_size: int = 4) -> str:
    """
    Render the PHP method for *definition*, indented as a class member.

    The return type is fully qualified so the method can be pasted into an
    existing class without touching its ``use`` block.
    """
    pad: str = " " * indent_size
    body: str = _RETURN_BUILDERS[definition.kind](definition)
    lines: List[str] = [
        f"{pad}public function {definition.method_name}(): "
        f"{_RELATIONS_NAMESPACE}\\{definition.kind.relation_class}",
        f"{pad}{{",
        f"{pad}{pad}return {body};",
        f"{pad}}}",
    ]
    return "\n".join(lines)


def render_relationship_methods(definitions: Iterable[RelationshipDefinition]) -> str:
    return "\n\n".join(render_relationship_method(d) for d in definitions)


__all__: List[str] = [
    "OutcomeStatus",
    "RelationshipOutcome",
    "ColumnBinding",
    "InjectionTask",
    "ResolutionResult",
    "RelationshipResolver",
    "render_relationship_method",
    "render_relationship_methods",
]
