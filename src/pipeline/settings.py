"""
User settings persisted across sessions.

Settings live in a small YAML key-value file in the user's config directory.
Every key is stored under the "speedwalk_" namespace prefix. A persistent
store is loaded from the file once and written back on every change; a
missing or unreadable file falls back to the defaults.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, TypeVar

import yaml

from src.acquisition.models import KNOWN_OVERPASS_SERVERS, normalize_endpoint

from .state import Store

logger = logging.getLogger(__name__)

T = TypeVar("T")

NAMESPACE = "speedwalk_"
CONFIG_DIR_ENV = "SPEEDWALK_CONFIG_DIR"
SETTINGS_FILENAME = "settings.yaml"


def default_settings_path() -> Path:
    """Settings file location, overridable with $SPEEDWALK_CONFIG_DIR."""
    config_dir = os.environ.get(CONFIG_DIR_ENV)
    if config_dir:
        return Path(config_dir) / SETTINGS_FILENAME
    return Path.home() / ".config" / "speedwalk" / SETTINGS_FILENAME


class SettingsFile:
    """
    YAML-backed key-value store for user settings.

    Attributes:
        path: Location of the YAML file.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else default_settings_path()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to read settings from %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed settings file %s", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under the namespaced key, or the default."""
        return self._read().get(f"{NAMESPACE}{key}", default)

    def set(self, key: str, value: Any) -> None:
        """Store a value under the namespaced key. Write failures are logged."""
        data = self._read()
        data[f"{NAMESPACE}{key}"] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        except OSError as e:
            logger.warning("Failed to write %s%s to %s: %s", NAMESPACE, key, self.path, e)


def persistent_store(settings_file: SettingsFile, key: str, default: T) -> Store[T]:
    """
    Create a Store backed by the settings file.

    The initial value is read from the file if present. Every later change is
    written back.
    """
    store: Store[T] = Store(settings_file.get(key, default))
    loaded = True

    def write_through(value: T) -> None:
        # subscribe() fires immediately with the loaded value
        nonlocal loaded
        if loaded:
            loaded = False
            return
        settings_file.set(key, value)

    store.subscribe(write_through)
    return store


class UserSettings:
    """
    Settings the user can change and that survive restarts.

    Attributes:
        overpass_server: Root URL of the Overpass instance to query.
        save_copy: Whether to save a copy of each fetched dataset.
    """

    def __init__(self, settings_file: Optional[SettingsFile] = None) -> None:
        self.file = settings_file or SettingsFile()
        self.overpass_server: Store[str] = persistent_store(
            self.file, "overpass_server", KNOWN_OVERPASS_SERVERS[0]
        )
        self.save_copy: Store[bool] = persistent_store(self.file, "save_copy", False)

        try:
            normalize_endpoint(self.overpass_server.get())
        except (ValueError, AttributeError):
            logger.warning(
                "Stored Overpass server %r is invalid, using %s",
                self.overpass_server.get(),
                KNOWN_OVERPASS_SERVERS[0],
            )
            self.overpass_server.set(KNOWN_OVERPASS_SERVERS[0])

    def select_server(self, url: str) -> str:
        """
        Switch to a known or user-supplied Overpass instance.

        Args:
            url: Any http(s) Overpass URL; "/interpreter" suffixes are stripped.

        Returns:
            The normalized endpoint now in use.

        Raises:
            ValueError: If the URL is not http(s).
        """
        endpoint = normalize_endpoint(url)
        if endpoint not in KNOWN_OVERPASS_SERVERS:
            logger.info("Using user-supplied Overpass server %s", endpoint)
        self.overpass_server.set(endpoint)
        return endpoint
