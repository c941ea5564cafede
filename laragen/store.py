# File: laragen/store.py
"""
LaraGen - File Store & Schema Reader
=====================================

The generator never touches the file system directly.  Everything goes
through a ``FileStore``:

    LocalFileStore   rooted at a Laravel project; atomic writes
                     (write-to-temp then rename), optional dry-run overlay.
    MemoryFileStore  dict-backed, for tests and previews.

``MigrationSchemaReader`` answers the two questions the orchestrator asks
about a project that already exists: which columns does a table have, and
which artifacts (tables, classes) are already there.  It reads the
migrations and class directories through the same store.

Paths handed to a store are always relative to the project root and use
``/`` separators.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable

from laragen.models import ArtifactKind, GenerationConfig
from laragen.naming import table_name
from laragen.utils import count_lines

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.store")


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written file."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str
    dry_run: bool = False


def _record(relative_path: str, content: str, dry_run: bool = False) -> FileRecord:
    encoded: bytes = content.encode("utf-8")
    return FileRecord(
        relative_path=relative_path,
        size_bytes=len(encoded),
        line_count=count_lines(content),
        sha256=hashlib.sha256(encoded).hexdigest(),
        dry_run=dry_run,
    )


def _normalise(path: str) -> str:
    return path.replace("\\", "/").strip("/")


# ---------------------------------------------------------------------------
# FileStore protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class FileStore(Protocol):
    def read(self, path: str) -> str: ...

    def write(self, path: str, content: str) -> FileRecord: ...

    def exists(self, path: str) -> bool: ...

    def delete(self, path: str) -> None: ...

    def list_dir(self, directory: str) -> List[str]: ...


class MemoryFileStore:
    """In-memory ``FileStore``; ``files`` maps relative path → content."""

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self.files: Dict[str, str] = {
            _normalise(k): v for k, v in (files or {}).items()
        }
        self.records: List[FileRecord] = []

    def read(self, path: str) -> str:
        try:
            return self.files[_normalise(path)]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write(self, path: str, content: str) -> FileRecord:
        key: str = _normalise(path)
        self.files[key] = content
        record: FileRecord = _record(key, content)
        self.records.append(record)
        return record

    def exists(self, path: str) -> bool:
        return _normalise(path) in self.files

    def delete(self, path: str) -> None:
        self.files.pop(_normalise(path), None)

    def list_dir(self, directory: str) -> List[str]:
        prefix: str = _normalise(directory) + "/"
        return sorted(
            key[len(prefix):]
            for key in self.files
            if key.startswith(prefix) and "/" not in key[len(prefix):]
        )


class LocalFileStore:
    """
    ``FileStore`` rooted at a project directory.

    In dry-run mode nothing is written: writes and deletes go to an overlay
    that later reads see, so a whole run can be previewed.

    Usage::

        store = LocalFileStore(Path("./laravel-app"))
        store.write("app/Models/Post.php", text)
    """

    def __init__(
        self,
        root: Path,
        dry_run: bool = False,
        atomic_writes: bool = True,
    ) -> None:
        self._root: Path = Path(root).resolve()
        self._dry_run: bool = dry_run
        self._atomic_writes: bool = atomic_writes
        self._overlay: Dict[str, Optional[str]] = {}
        self.records: List[FileRecord] = []
        logger.debug(
            "LocalFileStore initialised (root=%s, dry_run=%s).", self._root, dry_run
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def _full_path(self, path: str) -> Path:
        return self._root / _normalise(path)

    def read(self, path: str) -> str:
        key: str = _normalise(path)
        if key in self._overlay:
            content: Optional[str] = self._overlay[key]
            if content is None:
                raise FileNotFoundError(path)
            return content
        return self._full_path(key).read_text(encoding="utf-8")

    def write(self, path: str, content: str) -> FileRecord:
        key: str = _normalise(path)
        if self._dry_run:
            self._overlay[key] = content
            logger.info("[dry-run] would write %s", key)
            record: FileRecord = _record(key, content, dry_run=True)
        else:
            full_path: Path = self._full_path(key)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            encoded: bytes = content.encode("utf-8")
            if self._atomic_writes:
                self._atomic_write(full_path, encoded)
            else:
                full_path.write_bytes(encoded)
            record = _record(key, content)
            logger.debug(
                "Wrote file: %s (%d bytes, %d lines).",
                key,
                record.size_bytes,
                record.line_count,
            )
        self.records.append(record)
        return record

    def exists(self, path: str) -> bool:
        key: str = _normalise(path)
        if key in self._overlay:
            return self._overlay[key] is not None
        return self._full_path(key).is_file()

    def delete(self, path: str) -> None:
        key: str = _normalise(path)
        if self._dry_run:
            self._overlay[key] = None
            logger.info("[dry-run] would delete %s", key)
            return
        full_path: Path = self._full_path(key)
        if full_path.is_file():
            full_path.unlink()
            logger.debug("Deleted file: %s", key)

    def list_dir(self, directory: str) -> List[str]:
        key: str = _normalise(directory)
        names: Set[str] = set()
        full_dir: Path = self._full_path(key)
        if full_dir.is_dir():
            names.update(p.name for p in full_dir.iterdir() if p.is_file())
        prefix: str = key + "/"
        for path, content in self._overlay.items():
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                if content is None:
                    names.discard(path[len(prefix):])
                else:
                    names.add(path[len(prefix):])
        return sorted(names)

    @staticmethod
    def _atomic_write(target_path: Path, data: bytes) -> None:
        """
        Write data to target_path atomically using a temporary file.

        The temp file is created in the target's directory so the final
        ``os.replace`` stays on one filesystem.
        """
        fd: int = -1
        tmp_path: str = ""
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(target_path.parent),
                prefix=f".{target_path.name}.",
                suffix=".tmp",
            )
            os.write(fd, data)
            os.fsync(fd)
            os.close(fd)
            fd = -1

            os.replace(tmp_path, str(target_path))

        except OSError:
            if fd >= 0:
                try:
                    os.close(fd)
                except OSError:
                    pass

            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

            logger.warning("Atomic write of %s failed, writing directly.", target_path)
            target_path.write_bytes(data)


# ---------------------------------------------------------------------------
# MigrationSchemaReader
# ---------------------------------------------------------------------------

_CREATE_MIGRATION_RE: re.Pattern[str] = re.compile(
    r"^\d{4}_\d{2}_\d{2}_\d{6}_create_(\w+)_table\.php$"
)
_ALTER_MIGRATION_RE: re.Pattern[str] = re.compile(
    r"^\d{4}_\d{2}_\d{2}_\d{6}_add_\w+_to_(\w+)_table\.php$"
)
_COLUMN_CALL_RE: re.Pattern[str] = re.compile(
    r"\$table->(\w+)\(\s*(?:'([^']*)')?"
)

# Blueprint helpers that stand for more than one column
_EXPANSIONS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "id": (("id", "id"),),
    "timestamps": (("created_at", "timestamp"), ("updated_at", "timestamp")),
    "softDeletes": (("deleted_at", "timestamp"),),
}

# Blueprint calls that do not add a column
_NON_COLUMN_CALLS: Set[str] = {
    "dropColumn",
    "dropConstrainedForeignId",
    "dropForeign",
    "index",
    "unique",
    "primary",
    "foreign",
}


@dataclass(frozen=False, slots=True)
class _MigrationScan:
    columns: List[Tuple[str, str]] = field(default_factory=list)

    def add(self, column: str, storage_type: str) -> None:
        if all(existing != column for existing, _ in self.columns):
            self.columns.append((column, storage_type))


class MigrationSchemaReader:
    """
    Reads existing migrations and class directories through a ``FileStore``.

    Usage::

        reader = MigrationSchemaReader(store, config)
        reader.list_fields("Post")            # [("id", "id"), ("title", "string"), ...]
        reader.list_existing_artifact_names(ArtifactKind.JOIN_SCHEMA)
    """

    def __init__(self, store: FileStore, config: Optional[GenerationConfig] = None) -> None:
        self._store: FileStore = store
        self._config: GenerationConfig = config or GenerationConfig()

    def _migration_files(self) -> List[str]:
        return self._store.list_dir(self._config.migrations_path)

    def list_fields(self, entity: str) -> List[Tuple[str, str]]:
        """
        ``(column, storage_type)`` pairs of the entity's table, in migration
        order.  ``id()``, ``timestamps()``, ``softDeletes()`` and ``morphs()``
        are expanded to the columns they create.
        """
        table: str = table_name(entity)
        table_call: re.Pattern[str] = re.compile(
            rf"Schema::(?:create|table)\(\s*'{re.escape(table)}'\s*,[^{{]*\{{(.*?)\}}\s*\)\s*;",
            re.DOTALL,
        )
        scan: _MigrationScan = _MigrationScan()
        for file_name in self._migration_files():
            if not file_name.endswith(".php"):
                continue
            text: str = self._store.read(f"{self._config.migrations_path}/{file_name}")
            match: Optional[re.Match[str]] = table_call.search(text)
            if match is None:
                continue
            self._scan_body(match.group(1), scan)
        logger.debug("Table '%s' has %d known columns.", table, len(scan.columns))
        return scan.columns

    @staticmethod
    def _scan_body(body: str, scan: _MigrationScan) -> None:
        for call in _COLUMN_CALL_RE.finditer(body):
            method: str = call.group(1)
            argument: Optional[str] = call.group(2)
            if method in _NON_COLUMN_CALLS:
                continue
            if method in _EXPANSIONS and argument is None:
                for column, storage_type in _EXPANSIONS[method]:
                    scan.add(column, storage_type)
            elif method in ("morphs", "nullableMorphs") and argument:
                scan.add(f"{argument}_type", "string")
                scan.add(f"{argument}_id", "unsignedBigInteger")
            elif argument:
                scan.add(argument, method)

    def create_migration_path(self, table: str) -> Optional[str]:
        """Relative path of the migration that creates *table*, if there is one."""
        for file_name in self._migration_files():
            match: Optional[re.Match[str]] = _CREATE_MIGRATION_RE.match(file_name)
            if match and match.group(1) == table:
                return f"{self._config.migrations_path}/{file_name}"
        return None

    def list_existing_artifact_names(self, kind: ArtifactKind) -> Set[str]:
        """
        Names of artifacts of *kind* already in the project: table names for
        migration kinds, class names for the rest.
        """
        if kind in (ArtifactKind.SCHEMA, ArtifactKind.JOIN_SCHEMA):
            return {
                m.group(1)
                for m in map(_CREATE_MIGRATION_RE.match, self._migration_files())
                if m
            }
        if kind is ArtifactKind.ALTER_SCHEMA:
            return {
                m.group(1)
                for m in map(_ALTER_MIGRATION_RE.match, self._migration_files())
                if m
            }

        directory: str = {
            ArtifactKind.ENTITY_CLASS: self._config.models_path,
            ArtifactKind.ENUM_TYPE: self._config.enums_path,
            ArtifactKind.FIXTURE: self._config.factories_path,
            ArtifactKind.SEED: self._config.seeders_path,
        }[kind]
        return {
            name[: -len(".php")]
            for name in self._store.list_dir(directory)
            if name.endswith(".php")
        }


__all__: List[str] = [
    "FileRecord",
    "FileStore",
    "MemoryFileStore",
    "LocalFileStore",
    "MigrationSchemaReader",
]
