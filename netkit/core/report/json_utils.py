# core/report/json_utils.py

import dataclasses
import json
from datetime import timedelta
from enum import Enum
from typing import Any


class CustomJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for probe outcomes:
    - dataclasses become objects
    - enums become their values
    - durations become milliseconds
    """

    def default(self, obj: Any) -> Any:
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return to_serializable(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, timedelta):
            return round(obj.total_seconds() * 1000, 3)
        if isinstance(obj, set):
            return list(obj)
        return super().default(obj)


def to_serializable(obj: Any) -> Any:
    """
    Recursively convert outcomes into plain JSON-ready structures.

    Args:
        obj: Outcome, record, list or mapping to convert

    Returns:
        Structure made only of dicts, lists and scalars
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: to_serializable(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, dict):
        return {k: to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list | tuple | set)):
        return [to_serializable(item) for item in obj]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, timedelta):
        return round(obj.total_seconds() * 1000, 3)
    return obj


def json_dumps(obj: Any, **kwargs) -> str:
    """
    Serialize object to JSON string, handling outcome types.

    Args:
        obj: Object to serialize
        **kwargs: Additional keyword arguments for json.dumps

    Returns:
        JSON string representation
    """
    return json.dumps(obj, cls=CustomJSONEncoder, **kwargs)
