"""
Row models for structured imports.

Arms, events and instrument-event mappings are checked row by row before
being encoded as JSON: exactly the documented keys, a non-negative integer
arm number and non-blank names.
"""

from typing import Annotated, Any, Dict, List, Mapping, Optional, Sequence, Type

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
)

from .error_handler import ErrorHandlerInterface
from .exceptions import ErrorCode


def _non_blank(value: str) -> str:
    if not value:
        raise ValueError("must be specified")
    return value


NonBlankStr = Annotated[str, AfterValidator(_non_blank)]


class _ImportRow(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    arm_num: StrictInt = Field(ge=0)


class ArmRow(_ImportRow):
    name: NonBlankStr


class EventRow(_ImportRow):
    event_name: NonBlankStr


class FormEventMappingRow(_ImportRow):
    unique_event_name: NonBlankStr
    form: NonBlankStr


def _describe(error: ValidationError, row_type: str) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )
    return f"Invalid declaration of a REDCap {row_type}: {details}"


def validate_rows(
    rows: Optional[Sequence[Mapping[str, Any]]],
    row_model: Type[_ImportRow],
    row_type: str,
    error_handler: ErrorHandlerInterface,
) -> Optional[List[Dict[str, Any]]]:
    """
    Validate import rows and return them normalized (names trimmed).

    Returns None when a failure was reported to a non-raising handler.
    """
    if rows is None:
        error_handler.throw_exception(
            f"No value specified for required argument '{row_type}s'.",
            ErrorCode.INVALID_ARGUMENT,
        )
        return None

    normalized = []
    for row in rows:
        try:
            normalized.append(row_model.model_validate(row).model_dump())
        except ValidationError as e:
            error_handler.throw_exception(
                _describe(e, row_type), ErrorCode.INVALID_ARGUMENT, cause=e
            )
            return None

    return normalized
