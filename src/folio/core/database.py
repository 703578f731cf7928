"""
Database management for projects and audit trails.

Provides a JSON-file backed project table with find/create/update/delete
and transactional writes, plus an append-only audit log used for sync
history and admin activity.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from folio.core.backup import BackupPolicy, atomic_write_json, create_snapshot
from folio.core.config import get_paths
from folio.core.errors import ConflictError, DatabaseError, NotFoundError
from folio.projects.models import Project, ProjectSource, ProjectStatus, utcnow

logger = logging.getLogger(__name__)


def sanitize_user_agent(user_agent: str | None) -> str | None:
    """Truncate a user agent and strip characters unsafe for storage."""
    if not user_agent:
        return None
    cleaned = user_agent[:500].strip()
    for char in "<>'\"":
        cleaned = cleaned.replace(char, "")
    return cleaned


def file_signature(path: Path) -> tuple[int, int, int] | None:
    """(mtime_ns, size, inode) of a file, or None if it does not exist.

    Writes replace the file by rename, so the inode changes on every save
    even when mtime resolution is coarse.
    """
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return (st.st_mtime_ns, st.st_size, st.st_ino)


class ProjectsDatabase:
    """Manages projects_db.json with safe loading/saving.

    Records are keyed by project name. Reads hand out copies so callers
    never alias stored state; writes go through ``transaction()``, which
    serialises writers and persists once on success.

    Other processes (``folio projects sync`` from cron) write the same file,
    so reads and the start of every transaction re-load it when it changed
    on disk since this instance last read or wrote it.
    """

    SPECIAL_KEYS = {"_comment", "_schema_version"}

    DEFAULT_META = {
        "_comment": "Portfolio projects. GITHUB rows are written by sync; MANUAL rows by admins.",
        "_schema_version": "1.0",
    }

    def __init__(
        self,
        db_path: Path | None = None,
        backup_dir: Path | None = None,
        backup_policy: BackupPolicy | None = None,
    ):
        """Initialize database.

        Args:
            db_path: Path to projects_db.json (uses default if not provided)
            backup_dir: Where backups go (defaults to .folio/backups/projects)
            backup_policy: Snapshot retention (defaults to BackupPolicy())
        """
        if db_path is None:
            paths = get_paths()
            db_path = paths.projects_db
            backup_dir = backup_dir or paths.projects_backups
        self.db_path = Path(db_path)
        self.backup_dir = Path(backup_dir) if backup_dir else self.db_path.parent / "backups"
        self.backup_policy = backup_policy or BackupPolicy()
        self._data: dict[str, Any] = {}
        self._loaded = False
        self._signature: tuple[int, int, int] | None = None
        self._lock = threading.RLock()
        self._depth = 0

    def load(self) -> None:
        """Load database from file."""
        with self._lock:
            # Taken before reading: a write racing the read shows up as a change next time
            signature = file_signature(self.db_path)
            if signature is None:
                self._data = dict(self.DEFAULT_META)
                self._signature = None
                self._loaded = True
                return

            try:
                with open(self.db_path, encoding="utf-8") as f:
                    self._data = json.load(f)
            except json.JSONDecodeError as e:
                raise DatabaseError(f"Invalid JSON in {self.db_path}: {e}") from e
            except OSError as e:
                raise DatabaseError(f"Cannot read {self.db_path}: {e}") from e
            self._signature = signature
            self._loaded = True

    def save(self) -> None:
        """Save database to file."""
        with self._lock:
            if not self._loaded:
                raise RuntimeError("Database not loaded. Call load() first.")

            for key, value in self.DEFAULT_META.items():
                if key not in self._data:
                    self._data[key] = value

            try:
                atomic_write_json(self.db_path, self._data)
            except (OSError, ValueError) as e:
                raise DatabaseError(str(e)) from e
            self._signature = file_signature(self.db_path)

    def backup(self) -> Path | None:
        """Snapshot the current file into the backup directory and rotate old snapshots."""
        with self._lock:
            if not self.db_path.exists():
                return None
            return create_snapshot(self.db_path, self.backup_dir, self.backup_policy)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()
        elif self._depth == 0 and file_signature(self.db_path) != self._signature:
            logger.debug("%s changed on disk, reloading", self.db_path)
            self.load()

    @contextmanager
    def transaction(self) -> Iterator[ProjectsDatabase]:
        """Group writes atomically.

        Re-entrant. The outermost block restores the previous state if the
        body raises and persists to disk once if it completes.
        """
        with self._lock:
            self._ensure_loaded()
            snapshot = copy.deepcopy(self._data) if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if snapshot is not None:
                    self._data = snapshot
                raise
            self._depth -= 1
            if self._depth == 0:
                try:
                    self.save()
                except DatabaseError:
                    if snapshot is not None:
                        self._data = snapshot
                    raise

    def __contains__(self, name: str) -> bool:
        with self._lock:
            self._ensure_loaded()
            return name in self._data and name not in self.SPECIAL_KEYS

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            self._ensure_loaded()
            names = [key for key in self._data if key not in self.SPECIAL_KEYS]
        return iter(names)

    def __len__(self) -> int:
        """Return number of projects in database."""
        with self._lock:
            self._ensure_loaded()
            return sum(1 for key in self._data if key not in self.SPECIAL_KEYS)

    def find_unique(self, name: str) -> Project | None:
        """Get a project by name, or None."""
        with self._lock:
            self._ensure_loaded()
            if name in self.SPECIAL_KEYS or name not in self._data:
                return None
            return Project.from_dict(copy.deepcopy(self._data[name]))

    def find_many(
        self,
        status: ProjectStatus | None = None,
        featured: bool | None = None,
        source: ProjectSource | None = None,
    ) -> list[Project]:
        """List projects matching every given filter."""
        with self._lock:
            self._ensure_loaded()
            records = [
                copy.deepcopy(value)
                for key, value in self._data.items()
                if key not in self.SPECIAL_KEYS
            ]

        projects = [Project.from_dict(r) for r in records]
        if status is not None:
            projects = [p for p in projects if p.status is status]
        if featured is not None:
            projects = [p for p in projects if p.featured is featured]
        if source is not None:
            projects = [p for p in projects if p.source is source]
        return projects

    def create(self, project: Project) -> Project:
        """Insert a new project.

        Raises:
            ConflictError: If a project with the same name exists
            ValueError: If the name collides with a reserved key
        """
        if project.name in self.SPECIAL_KEYS:
            raise ValueError(f"Cannot use reserved key: {project.name}")
        with self.transaction():
            if project.name in self._data:
                raise ConflictError(f"Project already exists: {project.name}")
            self._data[project.name] = project.to_dict()
        return Project.from_dict(project.to_dict())

    def update(self, name: str, **changes: Any) -> Project:
        """Update fields of an existing project and bump updated_at.

        Raises:
            NotFoundError: If the project does not exist
        """
        with self.transaction():
            current = self.find_unique(name)
            if current is None:
                raise NotFoundError(f"Project not found: {name}")
            record = current.to_dict()
            for key, value in changes.items():
                if key not in record:
                    raise ValueError(f"Unknown project field: {key}")
                record[key] = value
            record["updated_at"] = utcnow()
            # Round-trip through the model to normalise enums and technologies
            updated = Project.from_dict(record)
            self._data[name] = updated.to_dict()
        return updated

    def delete(self, name: str) -> bool:
        """Delete a project.

        Returns:
            True if deleted, False if not found
        """
        with self.transaction():
            if name in self._data and name not in self.SPECIAL_KEYS:
                del self._data[name]
                return True
        return False

    def count_by_status(self) -> dict[str, int]:
        """Count projects per status."""
        counts: dict[str, int] = {}
        for project in self.find_many():
            counts[project.status.value] = counts.get(project.status.value, 0) + 1
        return counts


class AuditLog:
    """Append-only JSON log of events (sync runs, admin activity).

    Like ProjectsDatabase, re-reads the file whenever another process has
    written it, so cron syncs show up in the server's history.
    """

    DEFAULT_MAX_ENTRIES = 500

    def __init__(self, log_path: Path, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.log_path = Path(log_path)
        self.max_entries = max_entries
        self._entries: list[dict[str, Any]] = []
        self._loaded = False
        self._signature: tuple[int, int, int] | None = None
        self._lock = threading.Lock()

    def load(self) -> None:
        """Load entries; an unreadable log starts empty."""
        with self._lock:
            self._load_unlocked()

    def _load_unlocked(self) -> None:
        self._entries = []
        self._signature = file_signature(self.log_path)
        if self._signature is not None:
            try:
                with open(self.log_path, encoding="utf-8") as f:
                    data = json.load(f)
                self._entries = list(data.get("entries", []))
            except (json.JSONDecodeError, OSError, AttributeError) as e:
                logger.warning("Could not load audit log %s: %s", self.log_path, e)
        self._loaded = True

    def _refresh_unlocked(self) -> None:
        if not self._loaded or file_signature(self.log_path) != self._signature:
            self._load_unlocked()

    def append(self, **fields: Any) -> dict[str, Any]:
        """Record an event and persist the log.

        Returns:
            The stored entry (with id and timestamp)
        """
        entry = {"id": uuid.uuid4().hex, "timestamp": utcnow(), **fields}
        if "user_agent" in entry:
            entry["user_agent"] = sanitize_user_agent(entry["user_agent"]) or "Unknown"

        with self._lock:
            self._refresh_unlocked()
            self._entries.append(entry)
            if len(self._entries) > self.max_entries:
                self._entries = self._entries[-self.max_entries:]
            try:
                atomic_write_json(self.log_path, {"entries": self._entries})
            except (OSError, ValueError) as e:
                raise DatabaseError(f"Cannot write audit log {self.log_path}: {e}") from e
            self._signature = file_signature(self.log_path)
        return dict(entry)

    def recent(self, limit: int = 10, **filters: Any) -> list[dict[str, Any]]:
        """Newest entries first, optionally filtered by exact field values."""
        with self._lock:
            self._refresh_unlocked()
            entries = list(reversed(self._entries))

        matches = [
            dict(e) for e in entries
            if all(e.get(key) == value for key, value in filters.items())
        ]
        return matches[:limit]

    def last(self, **filters: Any) -> dict[str, Any] | None:
        """Most recent entry matching the filters, or None."""
        found = self.recent(limit=1, **filters)
        return found[0] if found else None

    def __len__(self) -> int:
        with self._lock:
            self._refresh_unlocked()
            return len(self._entries)
