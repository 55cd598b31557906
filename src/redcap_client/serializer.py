"""
Wire serialization of request parameters.

REDCap takes its parameters as an ``application/x-www-form-urlencoded``
POST body. Multi-valued parameters are sent as repeated ``key[]`` pairs.
"""

from collections.abc import Set
from pathlib import PurePath
from typing import Any, List, Mapping, Tuple
from urllib.parse import urlencode

from .enums import ApiEnum

MULTI_VALUE_SUFFIX = "[]"


def _key_label(key: Any) -> str:
    return key.label if isinstance(key, ApiEnum) else str(key)


def _scalar_to_wire(key: str, value: Any) -> str:
    # enums first, they are str subclasses
    if isinstance(value, ApiEnum):
        return value.label
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    raise TypeError(f"Unexpected REDCap parameter type for '{key}': {type(value)}")


def form_pairs(
    params: Mapping[Any, Any], skip_files: bool = False
) -> List[Tuple[str, str]]:
    """
    Flatten parameters into ordered (key, value) string pairs.

    None values are dropped, enums become their wire labels and sets
    expand into one ``key[]`` pair per element. With ``skip_files`` set,
    path values (the file upload) are left out for multipart transport.
    """
    pairs: List[Tuple[str, str]] = []

    for key, value in params.items():
        if value is None:
            continue

        field = _key_label(key)

        if isinstance(value, PurePath):
            if skip_files:
                continue
            raise TypeError(
                f"Parameter '{field}' holds a file path; send it as multipart"
            )

        if isinstance(value, (Set, list, tuple)):
            set_field = field + MULTI_VALUE_SUFFIX
            for element in sorted(value, key=str):
                pairs.append((set_field, _scalar_to_wire(field, element)))
            continue

        pairs.append((field, _scalar_to_wire(field, value)))

    return pairs


def to_form_urlencoded(params: Mapping[Any, Any]) -> str:
    """Serialize parameters as a ``key=value&key=value`` form body."""
    return urlencode(form_pairs(params))
