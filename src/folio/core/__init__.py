"""Core utilities for folio."""

from folio.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    DEFAULT_MAX_COUNT,
    BackupPolicy,
    atomic_write_json,
    create_snapshot,
)
from folio.core.config import Settings, get_paths, get_site_root, load_settings
from folio.core.errors import (
    AuthorizationError,
    ConflictError,
    DatabaseError,
    FolioError,
    InvalidRequestError,
    NotFoundError,
    PerRepositoryError,
    SignatureError,
    UpstreamError,
)

__all__ = [
    # Backup
    "BackupPolicy",
    "create_snapshot",
    "atomic_write_json",
    "DEFAULT_KEEP_COUNT",
    "DEFAULT_KEEP_DAYS",
    "DEFAULT_MAX_COUNT",
    # Config
    "Settings",
    "get_site_root",
    "get_paths",
    "load_settings",
    # Errors
    "FolioError",
    "UpstreamError",
    "PerRepositoryError",
    "SignatureError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InvalidRequestError",
    "DatabaseError",
]
