"""REST API: ingestion trigger and price queries."""

from coffee_sentinel.api.app import create_app

__all__ = ["create_app"]
