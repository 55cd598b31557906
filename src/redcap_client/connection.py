"""
HTTP transport for the REDCap API.
"""

import os
import ssl
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .config import (
    DEFAULT_CONNECTION_TIMEOUT_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    Settings,
    get_logger,
)
from .enums import Parameter
from .error_handler import ErrorHandlerInterface, resolve_error_handler
from .exceptions import ErrorCode
from .request import ApiRequest
from .validation import check_timeout
from .version import __version__

logger = get_logger("connection")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MOVED_STATUS_CODES = (301, 302, 307, 308)
NOT_FOUND_STATUS_CODE = 404


def build_headers() -> Dict[str, str]:
    """Build default request headers."""
    return {"User-Agent": f"redcap-client/{__version__}", "Accept": "*/*"}


class ApiConnection:
    """
    Connection to a REDCap API endpoint.

    Sends an ApiRequest as a form-encoded POST and returns the raw response
    body. Bodies are returned unchanged, including REDCap error payloads;
    detecting those is up to the caller.

    Example:
        >>> with ApiConnection("https://redcap.example.edu/api/") as connection:
        ...     body = connection.call(ApiRequest(token, Content.VERSION))
    """

    def __init__(
        self,
        url: str,
        ssl_verify: bool = True,
        ca_certificate_file: Optional[str] = None,
        error_handler: Optional[ErrorHandlerInterface] = None,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        connection_timeout: int = DEFAULT_CONNECTION_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.error_handler = resolve_error_handler(error_handler)
        self._client: Optional[httpx.Client] = None
        self._transport = transport
        self._url: Optional[str] = None
        self._ca_certificate_file: Optional[str] = None
        self._timeout = DEFAULT_TIMEOUT_SECONDS
        self._connection_timeout = DEFAULT_CONNECTION_TIMEOUT_SECONDS

        self.url = url
        self._ssl_verify = ssl_verify
        self.ca_certificate_file = ca_certificate_file
        self.timeout = timeout
        self.connection_timeout = connection_timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        error_handler: Optional[ErrorHandlerInterface] = None,
    ) -> "ApiConnection":
        return cls(
            settings.api_url,
            ssl_verify=settings.ssl_verify,
            ca_certificate_file=settings.ca_certificate_file,
            error_handler=error_handler,
            timeout=settings.timeout_seconds,
            connection_timeout=settings.connection_timeout_seconds,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _reset_client(self) -> None:
        # settings changed, a new client is built on the next call
        self.close()

    # ------------------------------------------------------------------
    # Settings

    @property
    def url(self) -> Optional[str]:
        return self._url

    @url.setter
    def url(self, url: str) -> None:
        if url is None or not url.strip():
            self.error_handler.throw_exception(
                "Invalid REDCap URL provided", ErrorCode.INVALID_URL
            )
            return
        self._url = url.strip()

    @property
    def ssl_verify(self) -> bool:
        return self._ssl_verify

    @ssl_verify.setter
    def ssl_verify(self, ssl_verify: bool) -> None:
        self._ssl_verify = ssl_verify
        self._reset_client()

    @property
    def ca_certificate_file(self) -> Optional[str]:
        return self._ca_certificate_file

    @ca_certificate_file.setter
    def ca_certificate_file(self, ca_certificate_file: Optional[str]) -> None:
        if ca_certificate_file is None:
            self._ca_certificate_file = None
            self._reset_client()
            return

        if not ca_certificate_file.strip():
            self.error_handler.throw_exception(
                "The cert file is not defined",
                ErrorCode.CA_CERTIFICATE_FILE_NOT_FOUND,
            )
            return

        path = Path(ca_certificate_file)
        if not path.exists():
            self.error_handler.throw_exception(
                f"The cert file '{ca_certificate_file}' does not exist.",
                ErrorCode.CA_CERTIFICATE_FILE_NOT_FOUND,
            )
            return
        if not os.access(path, os.R_OK):
            self.error_handler.throw_exception(
                f"The cert file '{ca_certificate_file}' exists, but cannot be read.",
                ErrorCode.CA_CERTIFICATE_FILE_UNREADABLE,
            )
            return

        self._ca_certificate_file = ca_certificate_file
        self._reset_client()

    @property
    def timeout(self) -> int:
        """Overall request timeout in seconds."""
        return self._timeout

    @timeout.setter
    def timeout(self, seconds: int) -> None:
        if check_timeout(seconds, self.error_handler):
            self._timeout = seconds
            self._reset_client()

    @property
    def connection_timeout(self) -> int:
        """Connection establishment timeout in seconds."""
        return self._connection_timeout

    @connection_timeout.setter
    def connection_timeout(self, seconds: int) -> None:
        if check_timeout(seconds, self.error_handler):
            self._connection_timeout = seconds
            self._reset_client()

    # ------------------------------------------------------------------
    # HTTP

    def _build_verify(self) -> Any:
        if not self._ssl_verify:
            return False
        if self._ca_certificate_file:
            return ssl.create_default_context(cafile=self._ca_certificate_file)
        return True

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            kwargs: Dict[str, Any] = {
                "timeout": httpx.Timeout(self._timeout, connect=self._connection_timeout),
                "headers": build_headers(),
                "follow_redirects": False,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["verify"] = self._build_verify()
            self._client = httpx.Client(**kwargs)
        return self._client

    def call(self, request: ApiRequest) -> Optional[str]:
        """
        Send ``request`` and return the raw response body as text.

        Raises:
            RedcapConnectionError: transport failure or timeout
            InvalidUrlError: the URL has moved or nothing was found there
        """
        response = self._send(request)
        return None if response is None else response.text

    def call_bytes(self, request: ApiRequest) -> Optional[bytes]:
        """Send ``request`` and return the undecoded body, for PDF and file exports."""
        response = self._send(request)
        return None if response is None else response.content

    def _send(self, request: ApiRequest) -> Optional[httpx.Response]:
        logger.debug(
            "POST %s content=%s action=%s",
            self._url,
            request.get(Parameter.CONTENT),
            request.get(Parameter.ACTION),
        )

        try:
            if Parameter.FILE in request:
                response = self._post_multipart(request)
            else:
                response = self._get_client().post(
                    self._url,
                    content=request.to_form_urlencoded(),
                    headers={"Content-Type": FORM_CONTENT_TYPE},
                )
        except httpx.TimeoutException as e:
            logger.warning("Request to %s timed out: %s", self._url, e)
            self.error_handler.throw_exception(
                f"Request to the REDCap server timed out: {e}",
                ErrorCode.CONNECTION_ERROR,
                cause=e,
            )
            return None
        except httpx.TransportError as e:
            logger.warning("Request to %s failed: %s", self._url, e)
            self.error_handler.throw_exception(
                str(e) or "Error communicating with the REDCap server",
                ErrorCode.CONNECTION_ERROR,
                cause=e,
            )
            return None
        except OSError as e:
            self.error_handler.throw_exception(
                f"The input file could not be read: {e}",
                ErrorCode.INPUT_FILE_ERROR,
                cause=e,
            )
            return None

        return self._check_response(response)

    def _post_multipart(self, request: ApiRequest) -> httpx.Response:
        data: Dict[str, List[str]] = {}
        for key, value in request.form_pairs(skip_files=True):
            data.setdefault(key, []).append(value)

        path: Path = request.get(Parameter.FILE)
        with path.open("rb") as stream:
            return self._get_client().post(
                self._url,
                data=data,
                files={Parameter.FILE.label: (path.name, stream)},
            )

    def _check_response(self, response: httpx.Response) -> Optional[httpx.Response]:
        status_code = response.status_code

        if status_code in MOVED_STATUS_CODES:
            location = response.headers.get("location", "an unknown location")
            self.error_handler.throw_exception(
                f"The page for the specified URL ({self._url}) has moved to "
                f"{location}. Please update your URL.",
                ErrorCode.INVALID_URL,
                http_status_code=status_code,
            )
            return None

        if status_code == NOT_FOUND_STATUS_CODE:
            self.error_handler.throw_exception(
                f"The specified URL ({self._url}) appears to be incorrect. "
                "Nothing was found at this URL.",
                ErrorCode.INVALID_URL,
                http_status_code=status_code,
            )
            return None

        logger.debug("Response %d (%d bytes)", status_code, len(response.content))
        return response

    def call_with_map(self, data_map: Mapping[Parameter, Any]) -> Optional[str]:
        """Send a raw parameter mapping; see ApiRequest.from_map."""
        return self.call(ApiRequest.from_map(data_map, self.error_handler))
