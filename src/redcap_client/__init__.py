"""
REDCap Client

Python client for the REDCap data capture HTTP API.
"""

from .connection import ApiConnection
from .enums import (
    Action,
    Content,
    CsvDelimiter,
    DateFormat,
    DecimalCharacter,
    Format,
    LogType,
    OverwriteBehavior,
    Parameter,
    RawOrLabel,
    RecordType,
    ReturnContent,
)
from .error_handler import ErrorHandler, ErrorHandlerInterface
from .exceptions import (
    CaCertificateError,
    ErrorCode,
    InputFileError,
    InputFileNotFoundError,
    InputFileUnreadableError,
    InvalidArgumentError,
    InvalidUrlError,
    JsonError,
    OutputFileError,
    RedcapConnectionError,
    RedcapError,
    RemoteApiError,
)
from .config import Settings, configure_logging, get_settings
from .project import RedcapProject
from .redcap import Redcap
from .request import ApiRequest
from .version import __version__

__all__ = [
    "ApiConnection",
    "ApiRequest",
    "RedcapProject",
    "Redcap",
    "Settings",
    "configure_logging",
    "get_settings",
    "ErrorHandler",
    "ErrorHandlerInterface",
    "Parameter",
    "Action",
    "Content",
    "CsvDelimiter",
    "DateFormat",
    "DecimalCharacter",
    "Format",
    "LogType",
    "OverwriteBehavior",
    "RawOrLabel",
    "RecordType",
    "ReturnContent",
    "ErrorCode",
    "RedcapError",
    "InvalidArgumentError",
    "InvalidUrlError",
    "CaCertificateError",
    "RedcapConnectionError",
    "RemoteApiError",
    "JsonError",
    "OutputFileError",
    "InputFileError",
    "InputFileNotFoundError",
    "InputFileUnreadableError",
    "__version__",
]
