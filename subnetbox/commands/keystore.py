"""
EVM keystore file helpers.

The keystore is an ordered JSON list of ``{"address", "private_key"}``
records shared with ipc-cli. Record order matters: index 0 is the default
signer and indices 0..N-1 are the validators.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from subnetbox.commands.constants import ANVIL_ADDRESSES, ANVIL_PRIVATE_KEYS
from subnetbox.commands.errors import ConfigurationError


class Keystore:
    """Read-mostly view of an ``evm_keystore.json`` file."""

    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)

    def records(self) -> list[dict]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Keystore not found: {self.path}", config_file=str(self.path)
            ) from None
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Keystore unreadable: {e}", config_file=str(self.path)
            ) from e
        if not isinstance(data, list):
            raise ConfigurationError(
                "Keystore must be a JSON list", config_file=str(self.path)
            )
        return data

    def address(self, index: int) -> str:
        records = self.records()
        if index >= len(records):
            raise ConfigurationError(
                f"Keystore has {len(records)} record(s), index {index} requested",
                config_file=str(self.path),
            )
        return str(records[index]["address"])

    def addresses(self, count: int) -> list[str]:
        return [self.address(i) for i in range(count)]

    def private_key(self, index: int) -> str:
        return str(self.records()[index]["private_key"])

    def write(self, records: list[dict]) -> None:
        """Write records atomically, keeping their order."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def copy_to(self, destination: Union[Path, str]) -> "Keystore":
        """Copy the keystore to ``destination`` and return a view of the copy."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.path, destination)
        return Keystore(destination)


def anvil_keystore_records() -> list[dict]:
    """Return the ten preloaded anvil accounts in their fixed order."""
    return [
        {"address": address, "private_key": private_key}
        for address, private_key in zip(ANVIL_ADDRESSES, ANVIL_PRIVATE_KEYS)
    ]
