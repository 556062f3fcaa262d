"""Value snapshots for transcript capture.

Requests and responses handed to the recorder are usually owned by the
driver and may be reused or mutated by later calls. This module copies
such values deeply into plain JSON-compatible structures at capture time.
"""

from collections.abc import Mapping, Sequence
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import BaseModel, SecretStr

#: Snapshots form a recursive structure made of scalars, lists and
#: string-keyed mappings only.
type Snapshot = str | int | float | bool | list['Snapshot'] | dict[str, 'Snapshot'] | None

#: A value in runtime represents any Python object received from
#: drivers or user-defined step actions prior to snapshotting.
type RuntimeValue = Any

SCALARS = (str, int, float, bool)
TEMPORALS = (date, datetime, timedelta)
MAPPINGS = (Mapping,)
SEQUENCES = (list, tuple, set, frozenset)

SECRET_REPLACER = '**********'


def _snapshot_key(value: RuntimeValue) -> str:
    """Normalize a mapping key into a string."""
    if isinstance(value, str):
        return value

    return f'{value}'


def snapshot(value: RuntimeValue) -> Snapshot:
    """Recursively copy a runtime value into a JSON-compatible snapshot.

    Containers are rebuilt rather than referenced, so the snapshot is
    never affected by later changes of the source object.

    Args:
        value: Runtime value to copy.

    Returns:
        A snapshot built of scalars, lists and string-keyed mappings.
        Objects without a structured representation are stored as
        their `repr`.
    """
    if value is None or isinstance(value, SCALARS):
        return value

    if isinstance(value, SecretStr):
        return SECRET_REPLACER

    if isinstance(value, TEMPORALS):
        return f'{value}' if isinstance(value, timedelta) else value.isoformat()

    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8', errors='replace')

    if isinstance(value, BaseModel):
        return snapshot(value.model_dump(mode='json'))

    if is_dataclass(value) and not isinstance(value, type):
        return snapshot(asdict(value))

    if isinstance(value, MAPPINGS):
        return {
            _snapshot_key(key): snapshot(item)
            for key, item in value.items()
        }

    if isinstance(value, SEQUENCES):
        return [
            snapshot(item)
            for item in value
        ]

    if isinstance(value, Sequence):
        return [
            snapshot(item)
            for item in value
        ]

    return repr(value)
