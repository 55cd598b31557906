"""
Pluggable error reporting.

Every validation path reports failures through an error handler instead of
raising directly, so callers can substitute a handler that, for example,
logs and returns. The default handler raises immediately. Handlers are
expected to be stateless and are shared by reference between requests,
projects and connections.
"""

from typing import Optional, Protocol, runtime_checkable

from .exceptions import RedcapError


@runtime_checkable
class ErrorHandlerInterface(Protocol):
    def throw_exception(
        self,
        message: str,
        code: int,
        *,
        cause: Optional[BaseException] = None,
        connection_error_number: Optional[int] = None,
        http_status_code: Optional[int] = None,
    ) -> None:
        ...


class ErrorHandler:
    """Default handler: raise the RedcapError subclass for ``code``."""

    def throw_exception(
        self,
        message: str,
        code: int,
        *,
        cause: Optional[BaseException] = None,
        connection_error_number: Optional[int] = None,
        http_status_code: Optional[int] = None,
    ) -> None:
        error = RedcapError.for_code(
            message,
            code,
            connection_error_number=connection_error_number,
            http_status_code=http_status_code,
        )
        if cause is not None:
            raise error from cause
        raise error


def resolve_error_handler(
    error_handler: Optional[ErrorHandlerInterface],
) -> ErrorHandlerInterface:
    """Return ``error_handler`` or the default handler when None."""
    return error_handler if error_handler is not None else ErrorHandler()
