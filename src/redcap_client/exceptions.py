"""
Custom exceptions for the REDCap client.
"""

from enum import IntEnum
from typing import Dict, Optional, Type


class ErrorCode(IntEnum):
    """Stable error codes carried by every RedcapError."""

    INVALID_ARGUMENT = 1
    TOO_MANY_ARGUMENTS = 2
    INVALID_URL = 3
    CA_CERTIFICATE_FILE_NOT_FOUND = 4
    CA_CERTIFICATE_FILE_UNREADABLE = 5
    CONNECTION_ERROR = 6
    REDCAP_API_ERROR = 7
    JSON_ERROR = 8
    OUTPUT_FILE_ERROR = 9
    INPUT_FILE_NOT_FOUND = 10
    INPUT_FILE_UNREADABLE = 11
    INPUT_FILE_ERROR = 12
    COMMUNICATION_ERROR = 14


class RedcapError(Exception):
    """Base exception for REDCap client errors."""

    def __init__(
        self,
        message: str,
        code: int = ErrorCode.INVALID_ARGUMENT,
        connection_error_number: Optional[int] = None,
        http_status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = ErrorCode(code)
        self.connection_error_number = connection_error_number
        self.http_status_code = http_status_code

    @classmethod
    def for_code(
        cls,
        message: str,
        code: int,
        connection_error_number: Optional[int] = None,
        http_status_code: Optional[int] = None,
    ) -> "RedcapError":
        """Build the exception subclass registered for ``code``."""
        exc_class = _CODE_TO_EXCEPTION.get(ErrorCode(code), RedcapError)
        return exc_class(
            message,
            code,
            connection_error_number=connection_error_number,
            http_status_code=http_status_code,
        )


class InvalidArgumentError(RedcapError):
    """Raised when caller input is null, blank, negative or malformed."""

    pass


class InvalidUrlError(RedcapError):
    """Raised when the API URL is blank, moved or not found."""

    pass


class CaCertificateError(RedcapError):
    """Raised when the CA certificate file is missing or unreadable."""

    pass


class RedcapConnectionError(RedcapError):
    """Raised when the transport fails to reach the server."""

    pass


class RemoteApiError(RedcapError):
    """Raised when REDCap returns an error payload."""

    pass


class JsonError(RedcapError):
    """Raised when a payload cannot be encoded to or decoded from JSON."""

    pass


class OutputFileError(RedcapError):
    """Raised when an output file cannot be written."""

    pass


class InputFileError(RedcapError):
    pass


class InputFileNotFoundError(InputFileError):
    pass


class InputFileUnreadableError(InputFileError):
    pass


_CODE_TO_EXCEPTION: Dict[ErrorCode, Type[RedcapError]] = {
    ErrorCode.INVALID_ARGUMENT: InvalidArgumentError,
    ErrorCode.TOO_MANY_ARGUMENTS: InvalidArgumentError,
    ErrorCode.INVALID_URL: InvalidUrlError,
    ErrorCode.CA_CERTIFICATE_FILE_NOT_FOUND: CaCertificateError,
    ErrorCode.CA_CERTIFICATE_FILE_UNREADABLE: CaCertificateError,
    ErrorCode.CONNECTION_ERROR: RedcapConnectionError,
    ErrorCode.COMMUNICATION_ERROR: RedcapConnectionError,
    ErrorCode.REDCAP_API_ERROR: RemoteApiError,
    ErrorCode.JSON_ERROR: JsonError,
    ErrorCode.OUTPUT_FILE_ERROR: OutputFileError,
    ErrorCode.INPUT_FILE_NOT_FOUND: InputFileNotFoundError,
    ErrorCode.INPUT_FILE_UNREADABLE: InputFileUnreadableError,
    ErrorCode.INPUT_FILE_ERROR: InputFileError,
}
