# File: laragen/cli.py
"""
LaraGen - Command-Line Interface
=================================

CLI built on the standard-library ``argparse`` module.

Usage examples::

    # Generate every entity of a definition file into a Laravel project
    laragen --entities blog.yaml --project ./laravel-app

    # Add fields (and relationships) to entities that already exist
    laragen -e extra_fields.yaml -p ./laravel-app --add-fields

    # Show what would be written without touching the project
    laragen -e blog.yaml -p ./laravel-app --dry-run -v

    # Validate only (no file output)
    laragen -e blog.yaml --validate-only

Exit codes:
    0: success (relationship failures are listed in the report)
    1: validation error
    2: generation error
    3: write error
    4: input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, FrozenSet, List, NoReturn, Optional, Sequence

from laragen.errors import (
    DuplicateFieldName,
    InvalidEntityName,
    InvalidEnumValue,
    LaragenError,
    UnknownRelationshipKind,
    UnsupportedFieldKind,
)

# ---------------------------------------------------------------------------
# Package logger; handlers are attached by _setup_logging
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_WRITE_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4

_VALIDATION_CODES: FrozenSet[str] = frozenset({
    InvalidEntityName.code,
    UnsupportedFieldKind.code,
    DuplicateFieldName.code,
    UnknownRelationshipKind.code,
    InvalidEnumValue.code,
    "InvalidFieldName",
})


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the laragen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("laragen")
    root_logger.setLevel(level)

    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from laragen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="laragen",
        description=(
            "LaraGen — Laravel artifact generator.\n\n"
            "Turns entity definitions (JSON/YAML) into migrations, Eloquent "
            "models, factories, seeders and enums, and wires relationship "
            "methods into the related models."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -e blog.yaml -p ./laravel-app\n"
            "  %(prog)s -e extra.yaml -p ./laravel-app --add-fields\n"
            "  %(prog)s -e blog.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LaraGen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-e", "--entities",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the entity definition file (JSON or YAML).",
    )

    # --- Output ---
    parser.add_argument(
        "-p", "--project",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Root of the Laravel project to write into. "
            "Required unless --validate-only is set."
        ),
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the definitions without generating code.",
    )
    mode_group.add_argument(
        "--add-fields",
        action="store_true",
        default=False,
        help="Add the listed fields to entities that already exist.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--stub-path",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory of custom stubs overriding the bundled ones.",
    )
    config_group.add_argument(
        "--seed-count",
        type=int,
        default=None,
        metavar="N",
        help="Number of records each generated seeder creates.",
    )
    config_group.add_argument(
        "--no-factory",
        action="store_true",
        default=False,
        help="Skip factory generation.",
    )
    config_group.add_argument(
        "--no-seeder",
        action="store_true",
        default=False,
        help="Skip seeder generation.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, object] = {}

    if args.stub_path is not None:
        overrides["stub_path"] = args.stub_path

    if args.seed_count is not None:
        overrides["seed_count"] = args.seed_count

    if args.no_factory:
        overrides["generate_fixture"] = False

    if args.no_seeder:
        overrides["generate_seed"] = False

    return overrides


def _exit_code_for(exc: Exception) -> int:
    if isinstance(exc, LaragenError):
        if exc.code in _VALIDATION_CODES:
            return EXIT_VALIDATION_ERROR
        return EXIT_GENERATION_ERROR
    if isinstance(exc, OSError) and not isinstance(exc, FileNotFoundError):
        return EXIT_WRITE_ERROR
    return EXIT_INPUT_ERROR


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(entity_path: Path) -> int:
    """
    Run validation only (no code generation).

    Returns the appropriate exit code.
    """
    from laragen.generator import load_entity_file, parse_raw_definition
    from laragen.utils import Timer
    from laragen.validators import ValidationResult, validate_entity

    logger.info("Running validation-only mode for: %s", entity_path)

    try:
        raw_data = load_entity_file(entity_path)
        inputs, config = parse_raw_definition(raw_data)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load entities: %s", exc)
        return EXIT_INPUT_ERROR
    except LaragenError as exc:
        logger.error("Invalid entity definition: [%s] %s", exc.code, exc.message)
        return _exit_code_for(exc)

    result: ValidationResult = ValidationResult()
    with Timer("validation") as t:
        for item in inputs:
            result.merge(validate_entity(item.entity, item.requests, config))

    print(f"\n{'='*50}")
    print("  Entity Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {entity_path.name}")
    print(f"  Entities: {', '.join(i.entity.name for i in inputs)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({len(result.warnings)}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn}")

    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Generation mode
# ---------------------------------------------------------------------------


def _run_generation(
    entity_path: Path,
    project_dir: Path,
    args: argparse.Namespace,
) -> int:
    """
    Run the full generation pipeline (or the add-fields pipeline).

    Returns the appropriate exit code.
    """
    from laragen.generator import EntityGenerator, GenerationReport
    from laragen.store import LocalFileStore

    config_overrides = _build_config_overrides(args)

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    generator: EntityGenerator = EntityGenerator(
        LocalFileStore(project_dir, dry_run=args.dry_run)
    )
    try:
        if args.add_fields:
            report: GenerationReport = generator.add_fields_from_file(
                entity_path, config_overrides=config_overrides or None
            )
        else:
            report = generator.generate_from_file(
                entity_path, config_overrides=config_overrides or None
            )
    except LaragenError as exc:
        logger.error("[%s] %s", exc.code, exc.message)
        return _exit_code_for(exc)
    except (ValueError, OSError) as exc:
        logger.error("%s", exc)
        return _exit_code_for(exc)

    print(report.summary())
    return EXIT_SUCCESS if report.success else EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose

    _setup_logging(verbosity)

    entity_path: Path = Path(args.entities).resolve()

    if not entity_path.exists():
        logger.error("Entity file not found: %s", entity_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not entity_path.is_file():
        logger.error("Entity path is not a file: %s", entity_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(entity_path))

    if args.project is None:
        logger.error(
            "Project directory is required for generation. "
            "Use -p/--project or --validate-only."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    project_dir: Path = Path(args.project).resolve()
    if not project_dir.is_dir():
        logger.error("Project directory not found: %s", project_dir)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Entities: %s", entity_path)
    logger.info("Project:  %s", project_dir)
    logger.info("Mode:     %s", "add-fields" if args.add_fields else "generate")

    exit_code: int = _run_generation(entity_path, project_dir, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_WRITE_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("laragen.cli loaded.")
