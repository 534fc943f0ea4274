"""Configuration utilities for SeedSync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import functools
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from seedsync.core.config import SyncConfig
from seedsync.remote.client import BaseListingClient
from seedsync.remote.local import LocalListingClient


def get_config_dir() -> Path:
    """Get the configuration directory for SeedSync.

    Returns:
        Path to ~/.seedsync or equivalent.
    """
    return Path.home() / ".seedsync"


def get_config_file() -> Path:
    """Get the path to the default config file."""
    return get_config_dir() / "config.json"


def load_config(config_file: Path | None = None) -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = config_file or get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any], config_file: Path | None = None) -> None:
    """Save configuration to config file."""
    config_file = config_file or get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def load_sync_config(config_file: Path) -> SyncConfig:
    """Load and validate the sync configuration, exiting on errors.

    Args:
        config_file: The JSON config file.

    Returns:
        The validated configuration.
    """
    if not config_file.exists():
        click.echo(f"Error: Config file not found: {config_file}", err=True)
        click.echo("Run 'seedsync config init' first.", err=True)
        sys.exit(1)

    try:
        return SyncConfig.from_dict(load_config(config_file))
    except json.JSONDecodeError as e:
        click.echo(f"Error: {config_file} is not valid JSON: {e}", err=True)
        sys.exit(1)
    except (TypeError, ValueError) as e:
        click.echo(f"Error: Invalid config {config_file}: {e}", err=True)
        sys.exit(1)


def get_log_path(config: SyncConfig) -> Path | None:
    """Get the configured log file, if any."""
    return Path(config.log_path).expanduser() if config.log_path else None


def get_client_factory(config: SyncConfig) -> Callable[[], BaseListingClient]:
    """Get a factory creating listing clients for the configured remote.

    Exits if no remote mount is configured.
    """
    mount = config.mount_path
    if mount is None:
        click.echo("Error: remote_mount is not set in the config file.", err=True)
        sys.exit(1)
    return functools.partial(LocalListingClient, mount)
