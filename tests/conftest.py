"""
tests/conftest.py
Shared fixtures for the laragen test suite.

Generation tests run against a ``MemoryFileStore`` so the produced files can
be inspected as plain strings; store and CLI tests use real files inside
pytest's ``tmp_path``.
"""

from __future__ import annotations

import copy
import pathlib
from datetime import datetime
from typing import Any, Dict, List

import pytest
import yaml

from laragen.generator import EntityGenerator, GenerationContext
from laragen.models import EntityDefinition, GenerationConfig
from laragen.store import MemoryFileStore


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
ENTITY_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "entity_example.yaml"

FIXED_CLOCK: datetime = datetime(2024, 5, 1, 12, 0, 0)


def files_under(store: MemoryFileStore, directory: str) -> Dict[str, str]:
    """Files of *store* directly inside *directory*, keyed by file name."""
    prefix = directory.rstrip("/") + "/"
    return {
        path[len(prefix):]: text
        for path, text in store.files.items()
        if path.startswith(prefix) and "/" not in path[len(prefix):]
    }


def migration_named(store: MemoryFileStore, suffix: str) -> str:
    """Text of the single migration whose file name ends with *suffix*."""
    matches: List[str] = [
        text
        for name, text in files_under(store, "database/migrations").items()
        if name.endswith(suffix)
    ]
    assert len(matches) == 1, f"Expected one migration ending in {suffix}, got {len(matches)}"
    return matches[0]


# ---------------------------------------------------------------------------
# Raw definition fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_example_dict() -> Dict[str, Any]:
    """Load the reference entity_example.yaml once per session."""
    assert ENTITY_EXAMPLE_PATH.exists(), (
        f"Reference definition not found at {ENTITY_EXAMPLE_PATH}. "
        "Make sure entity_example.yaml is in the project root."
    )
    with open(ENTITY_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def example_dict(raw_example_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_example_dict)


@pytest.fixture()
def example_yaml_path(example_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "entities.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(example_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def minimal_entity_dict() -> Dict[str, Any]:
    """Smallest useful definition: one entity, one column, no relationships."""
    return {
        "entity": {
            "name": "Item",
            "fields": {"title": "string"},
        }
    }


@pytest.fixture()
def minimal_yaml_path(minimal_entity_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "minimal.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(minimal_entity_dict, fh, default_flow_style=False)
    return path


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> GenerationConfig:
    return GenerationConfig()


@pytest.fixture()
def user_entity() -> EntityDefinition:
    return EntityDefinition(name="User", fields={"name": "string", "email": "string"})


@pytest.fixture()
def post_entity() -> EntityDefinition:
    return EntityDefinition(
        name="Post",
        fields={
            "title": "string",
            "body": "text",
            "published_at": {"kind": "datetime", "nullable": True},
            "status": {"kind": "enum", "values": ["draft", "published"], "default": "draft"},
            "author_id": "foreignId",
        },
    )


# ---------------------------------------------------------------------------
# Store / generator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> MemoryFileStore:
    return MemoryFileStore()


@pytest.fixture()
def context() -> GenerationContext:
    return GenerationContext(clock=FIXED_CLOCK)


@pytest.fixture()
def generator(store: MemoryFileStore, config: GenerationConfig) -> EntityGenerator:
    return EntityGenerator(store, config=config)


@pytest.fixture()
def project_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """An empty Laravel-like project tree."""
    root = tmp_path / "laravel-app"
    for sub in ("app/Models", "app/Enums", "database/migrations",
                "database/factories", "database/seeders"):
        (root / sub).mkdir(parents=True)
    return root
