"""
Pure functions for caller-side validation.

Token format checks, REDCap error-response detection and response
decoding, all reporting through an error handler.
"""

import json
import os
import re
from typing import Any, Optional

from .error_handler import ErrorHandlerInterface
from .exceptions import ErrorCode

PROJECT_TOKEN_LENGTH = 32
SUPER_TOKEN_LENGTH = 64
TOKEN_LENGTHS = (PROJECT_TOKEN_LENGTH, SUPER_TOKEN_LENGTH)

MINIMUM_TIMEOUT_SECONDS = 1

_TOKEN_PATTERN = re.compile(r"^[A-F0-9]+$")
JSON_RESULT_ERROR_PATTERN = re.compile(r'^\s*\{"error":\s*"(.*)"\}\s*$', re.DOTALL)


def process_api_token(
    api_token: Optional[str], length: int, error_handler: ErrorHandlerInterface
) -> Optional[str]:
    """Validate an API token of the given length and return it trimmed."""
    if api_token is None or not api_token.strip():
        error_handler.throw_exception(
            "The REDCap API token specified for the project was null or blank.",
            ErrorCode.INVALID_ARGUMENT,
        )
        return None

    token = api_token.strip()

    if not _TOKEN_PATTERN.match(token):
        error_handler.throw_exception(
            "The REDCap API token has an invalid format. "
            "It should only contain numbers and the letters A, B, C, D, E and F.",
            ErrorCode.INVALID_ARGUMENT,
        )
    elif length not in TOKEN_LENGTHS:
        error_handler.throw_exception(
            "Invalid length specified. "
            "REDCap API tokens are either 32 or 64 characters long.",
            ErrorCode.INVALID_ARGUMENT,
        )
    elif len(token) != length:
        # super tokens are not valid for project methods and vice versa
        error_handler.throw_exception(
            "The REDCap API token has an invalid format. "
            f"It has a length of {len(token)} characters, "
            f"but should have a length of {length}.",
            ErrorCode.INVALID_ARGUMENT,
        )

    return token


def extract_redcap_error(result: Optional[str]) -> Optional[str]:
    """Return the message of a REDCap error payload, or None."""
    if result is None:
        return None

    match = JSON_RESULT_ERROR_PATTERN.match(result)
    if not match:
        return None

    message = match.group(1)
    message = message.replace('\\"', '"')
    return message.replace("\\n", os.linesep)


def check_for_redcap_error(
    result: Optional[str], error_handler: ErrorHandlerInterface
) -> Optional[str]:
    """Report a REDCap error payload; otherwise return ``result`` unchanged."""
    message = extract_redcap_error(result)
    if message is not None:
        error_handler.throw_exception(message, ErrorCode.REDCAP_API_ERROR)
    return result


def process_import_data(
    data: Any, data_name: str, error_handler: ErrorHandlerInterface
) -> Any:
    if data is None:
        error_handler.throw_exception(
            f"No value specified for required argument '{data_name}'.",
            ErrorCode.INVALID_ARGUMENT,
        )
    return data


def check_timeout(seconds: int, error_handler: ErrorHandlerInterface) -> bool:
    """True when ``seconds`` is at or above the one second floor."""
    if seconds is None or seconds < MINIMUM_TIMEOUT_SECONDS:
        error_handler.throw_exception(
            "Timeout must be at least 1 second", ErrorCode.INVALID_ARGUMENT
        )
        return False
    return True


def decode_json(result: str, error_handler: ErrorHandlerInterface) -> Any:
    """Decode a JSON response body."""
    try:
        return json.loads(result)
    except (TypeError, ValueError) as e:
        error_handler.throw_exception(
            "Exception processing REDCap response", ErrorCode.JSON_ERROR, cause=e
        )
        return None


def encode_json(data: Any, error_handler: ErrorHandlerInterface) -> Optional[str]:
    """Encode native data as a JSON request payload."""
    try:
        return json.dumps(data)
    except (TypeError, ValueError) as e:
        error_handler.throw_exception(
            "Exception preparing REDCap request", ErrorCode.JSON_ERROR, cause=e
        )
        return None
