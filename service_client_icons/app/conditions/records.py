"""
Uniform read-only record views over client entities.
"""

import dataclasses
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _plain(v) for k, v in value.items()})
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(_plain(item) for item in value)
    if isinstance(value, BaseModel) or (dataclasses.is_dataclass(value) and not isinstance(value, type)):
        return to_record(value)
    return value


def to_record(entity: Any) -> Mapping:
    """Build a nested read-only mapping from a client entity.

    Accepts mappings, pydantic models, dataclasses and plain objects. Enum
    members are replaced by their values so string comparisons apply.
    """
    if entity is None:
        return MappingProxyType({})
    if isinstance(entity, BaseModel):
        raw = entity.model_dump()
    elif dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        raw = {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}
    elif isinstance(entity, Mapping):
        raw = entity
    else:
        raw = {k: v for k, v in vars(entity).items() if not k.startswith("_")}
    return MappingProxyType({str(k): _plain(v) for k, v in raw.items()})
