"""
Configuration utilities for the ipc-cli config document.

The document is a TOML file addressed with dotted paths that may carry list
indices, e.g. ``subnets[0].config.gateway_addr``. Every write goes to a
fresh file in the same directory which then replaces the canonical file, so a
reader never observes a partially written document.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Union

import toml

from subnetbox.commands.errors import ConfigurationError
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)
_MISSING = object()
_SEGMENT_RE = re.compile(r"^([^\[\]]+)((?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")


def parse_config_path(path: str) -> list[Union[str, int]]:
    """
    Split a dotted config path into dictionary keys and list indices.

    Args:
        path: Path such as ``subnets[1].config.auth_token``

    Returns:
        A list of keys (str) and indices (int), e.g.
        ``["subnets", 1, "config", "auth_token"]``

    Raises:
        ConfigurationError: If the path is empty or malformed
    """
    if not path:
        raise ConfigurationError("Config path must not be empty")

    parts: list[Union[str, int]] = []
    for segment in path.split("."):
        match = _SEGMENT_RE.match(segment)
        if not match:
            raise ConfigurationError(f"Malformed config path: '{path}'")
        parts.append(match.group(1))
        parts.extend(int(index) for index in _INDEX_RE.findall(match.group(2)))
    return parts


def get_nested_config(config: dict, path: str, default: Any = _MISSING) -> Any:
    """
    Read a nested configuration value using dotted-path notation.

    Raises:
        ConfigurationError: If the path is absent and no default is given
    """
    current: Any = config
    for part in parse_config_path(path):
        try:
            current = current[part]
        except (KeyError, IndexError, TypeError):
            if default is not _MISSING:
                return default
            raise ConfigurationError(f"Config path not found: '{path}'") from None
    return current


def set_nested_config(config: dict, path: str, value: Any, log: bool = True) -> None:
    """
    Set a nested configuration value using dotted-path notation.

    Missing tables are created. A list index may address an existing entry
    or the position directly after the last one, which appends a new table.

    Args:
        config: The configuration dictionary to modify
        path: Dotted path (e.g., "subnets[1].id")
        value: The value to set
        log: Whether to log the change (default True)

    Raises:
        ConfigurationError: If an intermediate value has the wrong type or an
            index is out of range
    """
    parts = parse_config_path(path)
    current: Any = config
    for part, next_part in zip(parts[:-1], parts[1:]):
        empty = [] if isinstance(next_part, int) else {}
        if isinstance(part, int):
            if not isinstance(current, list):
                raise ConfigurationError(f"Cannot index non-list in '{path}'")
            if part == len(current):
                current.append(empty)
            elif part > len(current):
                raise ConfigurationError(f"Index {part} out of range in '{path}'")
        else:
            if not isinstance(current, dict):
                raise ConfigurationError(f"Cannot set nested key: '{part}' is not a table")
            current.setdefault(part, empty)
        current = current[part]

    last = parts[-1]
    if isinstance(last, int):
        if not isinstance(current, list) or last > len(current):
            raise ConfigurationError(f"Index {last} out of range in '{path}'")
        if last == len(current):
            current.append(value)
        else:
            current[last] = value
    else:
        if not isinstance(current, dict):
            raise ConfigurationError(f"Cannot set nested key: '{last}' is not a table")
        current[last] = value

    if log:
        console.print(f"[cyan]  {path} = {value}[/cyan]")


class ConfigDocument:
    """File-backed TOML document with atomic single-field writes."""

    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict:
        """Read and parse the whole document."""
        try:
            with open(self.path, encoding="utf-8") as f:
                return toml.load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Config file not found: {self.path}", config_file=str(self.path)
            ) from None
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigurationError(
                f"Config file unreadable: {e}", config_file=str(self.path)
            ) from e

    def get(self, path: str, default: Any = _MISSING) -> Any:
        """Return the value at ``path``."""
        return get_nested_config(self.load(), path, default)

    def set(self, path: str, value: Any, log: bool = True) -> Path:
        """
        Apply one change and atomically replace the canonical file.

        Returns:
            The path of the canonical file
        """
        config = self.load()
        set_nested_config(config, path, value, log=log)
        self._replace(config)
        return self.path

    def _replace(self, config: dict) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                toml.dump(config, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug("Replaced %s", self.path)
