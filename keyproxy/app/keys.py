"""
Key table and its loader.

The table is built once before serving starts and is never mutated while
requests are in flight, so concurrent lookups need no locking.
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from .errors import KeyTableError
from .models import BackendDescriptor

logger = logging.getLogger(__name__)

_KEY_FILE_ADAPTER = TypeAdapter(Dict[str, BackendDescriptor])


class KeyTable:
    """Read-only mapping from application key to ``BackendDescriptor``."""

    def __init__(self, entries: Mapping[str, BackendDescriptor]):
        self._entries = MappingProxyType(dict(entries))

    def lookup(self, app_key: str) -> Optional[BackendDescriptor]:
        """Return the descriptor for ``app_key``, or None if it is unknown."""
        return self._entries.get(app_key)

    def __contains__(self, app_key: object) -> bool:
        return app_key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"KeyTable({len(self)} entries)"


def load_key_table(path: Union[str, Path]) -> KeyTable:
    """
    Load a key table from a JSON file.

    The file is an object keyed by application key, each value holding
    ``base_path`` and ``real_key``.

    Args:
        path: Location of the JSON file

    Returns:
        KeyTable adopting the parsed entries

    Raises:
        KeyTableError: If the file cannot be read, is not valid JSON, or has
            an entry with a missing or empty field
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise KeyTableError(f"cannot read key table {path}: {e}") from e

    try:
        entries = _KEY_FILE_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise KeyTableError(f"invalid key table {path}: {e}") from e

    logger.info(
        "Loaded key table from %s with %d application keys",
        path,
        len(entries),
        extra={"keys_file": str(path), "key_count": len(entries)},
    )
    return KeyTable(entries)
