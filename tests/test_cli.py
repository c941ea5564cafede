"""
tests/test_cli.py
Unit tests for laragen.cli.

Tests cover:
- Argument parsing (--version, missing required arguments)
- Input errors (missing file, missing project directory)
- Validate-only mode (valid and invalid definitions)
- Generation into a project directory, dry runs and config overrides
- Add-fields mode
- Exit code mapping
"""

from __future__ import annotations

import logging
import pathlib
from typing import Iterator, List

import pytest

from laragen import __version__
from laragen.cli import (
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    EXIT_WRITE_ERROR,
    _exit_code_for,
    cli_main,
)
from laragen.errors import (
    DuplicateFieldName,
    TargetArtifactNotFound,
    TemplateNotFound,
)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """cli_main reconfigures the 'laragen' logger; put it back afterwards."""
    package_logger = logging.getLogger("laragen")
    handlers = list(package_logger.handlers)
    level, propagate = package_logger.level, package_logger.propagate
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main(argv)
    return int(exc_info.value.code or 0)


def _write(path: pathlib.Path, text: str) -> pathlib.Path:
    path.write_text(text, encoding="utf-8")
    return path


# ===========================================================================
# Arguments & input errors
# ===========================================================================


class TestArguments:
    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["--version"]) == 0
        assert f"LaraGen v{__version__}" in capsys.readouterr().out

    def test_entities_required(self) -> None:
        assert _run([]) == 2  # argparse usage error

    def test_missing_entity_file(self, tmp_path: pathlib.Path) -> None:
        assert _run(["-e", str(tmp_path / "nope.yaml"), "-p", str(tmp_path)]) == EXIT_INPUT_ERROR

    def test_entity_path_is_directory(self, tmp_path: pathlib.Path) -> None:
        assert _run(["-e", str(tmp_path), "-p", str(tmp_path)]) == EXIT_INPUT_ERROR

    def test_project_required(self, minimal_yaml_path: pathlib.Path) -> None:
        assert _run(["-e", str(minimal_yaml_path)]) == EXIT_INPUT_ERROR

    def test_project_must_exist(self, minimal_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        assert _run(["-e", str(minimal_yaml_path), "-p", str(tmp_path / "missing")]) == EXIT_INPUT_ERROR


# ===========================================================================
# Validate-only
# ===========================================================================


class TestValidateOnly:
    def test_valid_file(self, example_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["-e", str(example_yaml_path), "--validate-only"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Entity Validation Report" in out
        assert "Entities: User, Tag, Post" in out
        assert "Valid:    Yes" in out

    def test_validation_errors(self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = _write(tmp_path / "bad.yaml", "entity:\n  name: Post\n  fields:\n    id: integer\n")
        assert _run(["-e", str(path), "--validate-only"]) == EXIT_VALIDATION_ERROR
        out = capsys.readouterr().out
        assert "Valid:    No" in out
        assert "DuplicateFieldName" in out

    def test_structural_error(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "bad.yaml", "entity:\n  name: blog_post\n")
        assert _run(["-e", str(path), "--validate-only"]) == EXIT_VALIDATION_ERROR

    def test_unparseable_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "bad.json", "{not json")
        assert _run(["-e", str(path), "--validate-only"]) == EXIT_INPUT_ERROR


# ===========================================================================
# Generation
# ===========================================================================


class TestGeneration:
    def test_generate_into_project(
        self,
        example_yaml_path: pathlib.Path,
        project_dir: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["-e", str(example_yaml_path), "-p", str(project_dir)]) == EXIT_SUCCESS
        assert (project_dir / "app" / "Models" / "Post.php").is_file()
        assert (project_dir / "app" / "Enums" / "PostStatusEnum.php").is_file()
        migrations = sorted(p.name for p in (project_dir / "database" / "migrations").iterdir())
        assert len(migrations) == 4
        assert migrations[-1].endswith("_create_post_tag_table.php")
        assert "Generation Report" in capsys.readouterr().out

    def test_dry_run(self, example_yaml_path: pathlib.Path, project_dir: pathlib.Path) -> None:
        assert _run(["-e", str(example_yaml_path), "-p", str(project_dir), "--dry-run"]) == EXIT_SUCCESS
        assert list((project_dir / "app" / "Models").iterdir()) == []

    def test_overrides(self, minimal_yaml_path: pathlib.Path, project_dir: pathlib.Path) -> None:
        argv = ["-e", str(minimal_yaml_path), "-p", str(project_dir), "--seed-count", "3", "--no-factory"]
        assert _run(argv) == EXIT_SUCCESS
        seeder = (project_dir / "database" / "seeders" / "ItemSeeder.php").read_text(encoding="utf-8")
        assert "Item::factory()->count(3)->create();" in seeder
        assert list((project_dir / "database" / "factories").iterdir()) == []

    def test_custom_stub(self, minimal_yaml_path: pathlib.Path, project_dir: pathlib.Path, tmp_path: pathlib.Path) -> None:
        stubs = tmp_path / "stubs"
        stubs.mkdir()
        _write(stubs / "seeder.stub", "<?php // {{ class }} seeds {{ count }}\n")
        argv = ["-e", str(minimal_yaml_path), "-p", str(project_dir), "--stub-path", str(stubs)]
        assert _run(argv) == EXIT_SUCCESS
        seeder = (project_dir / "database" / "seeders" / "ItemSeeder.php").read_text(encoding="utf-8")
        assert seeder == "<?php // ItemSeeder seeds 10\n"

    def test_validation_error_exit_code(self, tmp_path: pathlib.Path, project_dir: pathlib.Path) -> None:
        path = _write(tmp_path / "bad.yaml", "entity:\n  name: Post\n  fields:\n    created_at: timestamp\n")
        assert _run(["-e", str(path), "-p", str(project_dir)]) == EXIT_VALIDATION_ERROR
        assert list((project_dir / "app" / "Models").iterdir()) == []


class TestAddFields:
    def test_add_fields_to_generated_entity(
        self, minimal_yaml_path: pathlib.Path, project_dir: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        assert _run(["-e", str(minimal_yaml_path), "-p", str(project_dir)]) == EXIT_SUCCESS
        extra = _write(tmp_path / "extra.yaml", "entity:\n  name: Item\n  fields:\n    price: decimal\n")
        assert _run(["-e", str(extra), "-p", str(project_dir), "--add-fields"]) == EXIT_SUCCESS

        alters = list((project_dir / "database" / "migrations").glob("*_add_fields_to_items_table.php"))
        assert len(alters) == 1
        assert "$table->decimal('price', 8, 2);" in alters[0].read_text(encoding="utf-8")
        model = (project_dir / "app" / "Models" / "Item.php").read_text(encoding="utf-8")
        assert "'price'," in model

    def test_unknown_entity(self, tmp_path: pathlib.Path, project_dir: pathlib.Path) -> None:
        extra = _write(tmp_path / "extra.yaml", "entity:\n  name: Ghost\n  fields:\n    price: decimal\n")
        assert _run(["-e", str(extra), "-p", str(project_dir), "--add-fields"]) == EXIT_GENERATION_ERROR


# ===========================================================================
# Exit codes
# ===========================================================================


class TestExitCodes:
    @pytest.mark.parametrize(
        "exc,expected",
        [
            (DuplicateFieldName("x"), EXIT_VALIDATION_ERROR),
            (TargetArtifactNotFound("x"), EXIT_GENERATION_ERROR),
            (TemplateNotFound("x"), EXIT_GENERATION_ERROR),
            (PermissionError("x"), EXIT_WRITE_ERROR),
            (FileNotFoundError("x"), EXIT_INPUT_ERROR),
            (ValueError("x"), EXIT_INPUT_ERROR),
        ],
    )
    def test_mapping(self, exc: Exception, expected: int) -> None:
        assert _exit_code_for(exc) == expected
