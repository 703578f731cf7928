"""folio - portfolio project sync, cache and API service."""

__version__ = "0.3.0"
