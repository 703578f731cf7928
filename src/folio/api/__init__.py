"""
HTTP API for folio.

Endpoints:
- GET /projects, GET /projects/featured - public cached listings
- GET /github-stats - aggregate account statistics
- POST /webhooks/github - signed repository events
- GET/POST /cache/invalidate - admin cache control
- GET/POST /github-sync - admin sync trigger and history
- /admin/projects - admin project CRUD

Usage:
    folio serve
"""

from folio.api.app import create_app

__all__ = ["create_app"]
