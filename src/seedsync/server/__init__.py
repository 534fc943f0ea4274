"""HTTP trigger and status API."""

from seedsync.server.app import create_app, setup_logging

__all__ = ["create_app", "setup_logging"]
