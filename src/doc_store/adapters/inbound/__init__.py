"""Inbound adapters - handle incoming requests (REST)."""

from doc_store.adapters.inbound.rest_api import create_app, run_server

__all__ = [
    "create_app",
    "run_server",
]
