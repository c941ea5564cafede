# File: laragen/__init__.py
"""
LaraGen — Laravel Artifact Generator
=====================================

Turns entity definitions (JSON/YAML) into the artifacts of a Laravel
project: create/alter migrations, Eloquent models, factories, seeders and
backed enums.  Relationship requests are resolved into methods on the entity
and, on request, inverse methods injected into the related models.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ EntityGenerator │────▶│ ArtifactCompiler │
    │   (cli.py)   │     │ (generator.py)  │     │  (templates.py)  │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
            ┌────────────┬───────┼────────────┬────────────┐
            ▼            ▼       ▼            ▼            ▼
      ┌──────────┐ ┌─────────────┐ ┌─────────┐ ┌─────────┐ ┌─────────┐
      │validators│ │relationships│ │ patcher │ │  store  │ │ models  │
      │  (.py)   │ │    (.py)    │ │  (.py)  │ │  (.py)  │ │  (.py)  │
      └──────────┘ └─────────────┘ └─────────┘ └─────────┘ └─────────┘

Usage::

    # As a library
    from laragen import EntityGenerator, EntityDefinition, LocalFileStore
    gen = EntityGenerator(LocalFileStore(Path("./laravel-app")))
    gen.generate(EntityDefinition(name="Post", fields={"title": "string"}))

    # From the command line
    python -m laragen --entities blog.yaml --project ./laravel-app -v

Public API:
    - EntityGenerator      — Generation orchestrator
    - RelationshipResolver — Relationship requests to definitions
    - ArtifactCompiler     — Stub-based PHP artifact compiler
    - inject               — Method injection into an existing class
    - LocalFileStore       — File-system store (dry-run aware)
    - validate_entity      — Validation entry point
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from laragen.errors import (
    ArtifactStructureError,
    DuplicateFieldName,
    InvalidEntityName,
    InvalidEnumValue,
    LaragenError,
    TargetArtifactNotFound,
    TemplateNotFound,
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
from laragen.validators import ValidationResult, validate_entity
from laragen.relationships import (
    RelationshipOutcome,
    RelationshipResolver,
    ResolutionResult,
    render_relationship_method,
)
from laragen.templates import ArtifactCompiler
from laragen.patcher import InjectOutcome, extend_array_property, inject
from laragen.store import LocalFileStore, MemoryFileStore, MigrationSchemaReader
from laragen.generator import EntityGenerator, GenerationContext, GenerationReport

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "EntityGenerator",
    "GenerationContext",
    "GenerationReport",
    # Models
    "ArtifactKind",
    "DeleteConstraint",
    "EntityDefinition",
    "FieldDefinition",
    "FieldKind",
    "GeneratedArtifact",
    "GenerationConfig",
    "JoinTableDefinition",
    "ProtectionMode",
    "RelationshipDefinition",
    "RelationshipKind",
    "RelationshipRequest",
    # Errors
    "LaragenError",
    "InvalidEntityName",
    "UnsupportedFieldKind",
    "DuplicateFieldName",
    "UnknownRelationshipKind",
    "TargetArtifactNotFound",
    "TemplateNotFound",
    "ArtifactStructureError",
    "InvalidEnumValue",
    # Validation
    "validate_entity",
    "ValidationResult",
    # Relationships
    "RelationshipOutcome",
    "RelationshipResolver",
    "ResolutionResult",
    "render_relationship_method",
    # Compilation & patching
    "ArtifactCompiler",
    "InjectOutcome",
    "inject",
    "extend_array_property",
    # Storage
    "LocalFileStore",
    "MemoryFileStore",
    "MigrationSchemaReader",
]
