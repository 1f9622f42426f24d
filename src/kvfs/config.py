"""Filesystem configuration.

``FsConfig`` gathers the knobs that are fixed for the lifetime of one
filesystem instance: the key prefix that namespaces records inside the
host store, the two logical roots, the handle-generation constants, and
the codec used to turn block bytes into store strings.

Configuration can be built in code or loaded from a JSON file::

    {"key_prefix": "APP", "codec": "base64"}

Missing fields fall back to the defaults below.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from kvfs.codec import get_codec

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_KEY_PREFIX = "CBFS"
DATA_ROOT = "/data"
ASSETS_ROOT = "/assets"
HANDLE_SEED_OFFSET = 114514
HANDLE_RANGE = 1919810


class ConfigError(ValueError):
    """Raise when a configuration file cannot be read or is invalid."""


@dataclass(frozen=True)
class FsConfig:
    """Immutable settings for one filesystem instance."""

    key_prefix: str = DEFAULT_KEY_PREFIX
    data_root: str = DATA_ROOT
    assets_root: str = ASSETS_ROOT
    handle_seed_offset: int = HANDLE_SEED_OFFSET
    handle_range: int = HANDLE_RANGE
    codec: str = "latin-1"
    auto_initialize: bool = True

    def __post_init__(self) -> None:
        """Reject settings that would break the record layout."""
        if not self.key_prefix or "$" in self.key_prefix:
            msg = f"Invalid key prefix: {self.key_prefix!r}"
            raise ConfigError(msg)
        for root in (self.data_root, self.assets_root):
            if not root.startswith("/") or root == "/" or "/" in root[1:]:
                msg = f"Logical root must be a single top-level directory: {root!r}"
                raise ConfigError(msg)
        if self.data_root == self.assets_root:
            msg = "data_root and assets_root must differ"
            raise ConfigError(msg)
        if self.handle_range <= 0 or self.handle_seed_offset < 0:
            msg = "handle_range must be positive and handle_seed_offset non-negative"
            raise ConfigError(msg)
        try:
            get_codec(self.codec)
        except ValueError as e:
            raise ConfigError(str(e)) from e

    @property
    def logical_roots(self) -> tuple[str, str]:
        """Return the top-level directories created at initialization."""
        return (self.data_root, self.assets_root)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FsConfig:
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(path: Path) -> FsConfig:
    """Load an ``FsConfig`` from a JSON file.

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object,
            or holds invalid settings.

    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load config: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Config must be a JSON object: {path}"
        raise ConfigError(msg)
    try:
        return FsConfig.from_dict(data)
    except TypeError as e:
        msg = f"Invalid config value: {e}"
        raise ConfigError(msg) from e
