"""
Database snapshots and atomic JSON writes.

Each sync snapshots projects_db.json before it changes anything. Snapshots
are named ``<stem>_<timestamp>.json`` and rotated by a BackupPolicy:

  keep_count  the newest N snapshots always survive
  keep_days   older snapshots past this age are removed
  max_count   hard ceiling, so frequent scheduled syncs cannot pile up files
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

DEFAULT_KEEP_COUNT = 10
DEFAULT_KEEP_DAYS = 30
DEFAULT_MAX_COUNT = 50
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
TIMESTAMP_PATTERN = re.compile(r"_(\d{8}_\d{6}_\d{6})\.json$")


@dataclass(frozen=True)
class BackupPolicy:
    """Retention rules for database snapshots."""

    keep_count: int = DEFAULT_KEEP_COUNT
    keep_days: int | None = DEFAULT_KEEP_DAYS
    max_count: int = DEFAULT_MAX_COUNT

    def __post_init__(self) -> None:
        if self.keep_count < 0:
            raise ValueError("keep_count must be >= 0")
        if self.max_count < self.keep_count:
            raise ValueError("max_count must be >= keep_count")

    def expired(self, snapshots: list[tuple[datetime, Path]], now: datetime) -> list[Path]:
        """Pick the snapshots (newest first) that fall outside this policy."""
        cutoff = now - timedelta(days=self.keep_days) if self.keep_days is not None else None

        doomed = []
        for index, (taken_at, path) in enumerate(snapshots):
            if index < self.keep_count:
                continue
            if index >= self.max_count or (cutoff is not None and taken_at < cutoff):
                doomed.append(path)
        return doomed


def parse_snapshot_time(filename: str) -> datetime | None:
    """Extract the timestamp from a name like 'projects_db_20251212_144234_000123.json'."""
    match = TIMESTAMP_PATTERN.search(filename)
    if match is None:
        return None
    try:
        return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None


def list_snapshots(backup_dir: Path, stem: str) -> list[tuple[datetime, Path]]:
    """Snapshots of ``stem`` in backup_dir, newest first.

    Files whose names carry no timestamp are not snapshots and are left alone.
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []

    found = []
    for path in backup_dir.glob(f"{stem}_*.json"):
        taken_at = parse_snapshot_time(path.name)
        if taken_at is not None:
            found.append((taken_at, path))
    found.sort(key=lambda item: item[0], reverse=True)
    return found


def rotate_snapshots(
    backup_dir: Path,
    stem: str,
    policy: BackupPolicy,
    now: datetime | None = None,
) -> list[Path]:
    """Delete snapshots of ``stem`` the policy no longer keeps.

    Returns:
        Removed snapshot paths
    """
    doomed = policy.expired(list_snapshots(backup_dir, stem), now or datetime.now())
    for path in doomed:
        path.unlink(missing_ok=True)
    return doomed


def create_snapshot(
    file_path: Path,
    backup_dir: Path,
    policy: BackupPolicy | None = None,
) -> Path:
    """Copy file_path into backup_dir under a timestamped name, then rotate.

    Raises:
        FileNotFoundError: If file_path doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Cannot snapshot non-existent file: {file_path}")

    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)

    taken_at = datetime.now()
    snapshot = backup_dir / f"{file_path.stem}_{taken_at.strftime(TIMESTAMP_FORMAT)}.json"
    shutil.copy2(file_path, snapshot)

    rotate_snapshots(backup_dir, file_path.stem, policy or BackupPolicy(), now=taken_at)
    return snapshot


def atomic_write_json(file_path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON through a temp file in the same directory and rename it over file_path.

    Raises:
        ValueError: If data cannot be serialized to JSON
        OSError: If the write or rename fails
    """
    file_path = Path(file_path)
    try:
        text = json.dumps(data, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(suffix=".json", prefix=f".{file_path.name}.", dir=file_path.parent, text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        Path(temp_path).replace(file_path)
    except OSError as e:
        with contextlib.suppress(OSError):
            Path(temp_path).unlink()
        raise OSError(f"Failed to write {file_path}: {e}") from e
