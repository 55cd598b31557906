"""
REDCap instance-level operations that use a super API token.
"""

from typing import Any, Callable, Optional

from .config import Settings, get_logger
from .connection import ApiConnection
from .enums import Content, Format
from .error_handler import ErrorHandlerInterface, resolve_error_handler
from .project import ImportData, RedcapProject
from .request import ApiRequest
from .validation import (
    PROJECT_TOKEN_LENGTH,
    SUPER_TOKEN_LENGTH,
    check_for_redcap_error,
    encode_json,
    process_api_token,
    process_import_data,
)

logger = get_logger("redcap")

ProjectFactory = Callable[..., Any]


class Redcap:
    """
    A REDCap instance accessed with a 64 character super API token.

    Creates projects and hands out RedcapProject objects for project
    tokens. The factory used for the latter can be replaced, e.g. with a
    RedcapProject subclass.

    Example:
        >>> redcap = Redcap("https://redcap.example.edu/api/", super_token)
        >>> project = redcap.create_project([{"project_title": "Study", "purpose": 0}])
    """

    def __init__(
        self,
        api_url: Optional[str],
        super_token: str,
        ssl_verify: bool = True,
        ca_certificate_file: Optional[str] = None,
        error_handler: Optional[ErrorHandlerInterface] = None,
        connection: Optional[ApiConnection] = None,
    ):
        self._error_handler = resolve_error_handler(error_handler)
        self._super_token = process_api_token(
            super_token, SUPER_TOKEN_LENGTH, self._error_handler
        )

        if connection is None:
            connection = ApiConnection(
                api_url,
                ssl_verify=ssl_verify,
                ca_certificate_file=ca_certificate_file,
                error_handler=self._error_handler,
            )
        self._connection = connection
        self._project_factory: ProjectFactory = RedcapProject

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        error_handler: Optional[ErrorHandlerInterface] = None,
    ) -> "Redcap":
        connection = ApiConnection.from_settings(settings, error_handler)
        return cls(
            settings.api_url,
            settings.super_token,
            error_handler=error_handler,
            connection=connection,
        )

    @property
    def connection(self) -> ApiConnection:
        return self._connection

    @property
    def error_handler(self) -> ErrorHandlerInterface:
        return self._error_handler

    @property
    def project_factory(self) -> ProjectFactory:
        return self._project_factory

    @project_factory.setter
    def project_factory(self, project_factory: Optional[ProjectFactory]) -> None:
        if project_factory is not None:
            self._project_factory = project_factory

    def create_project(
        self,
        project_data: ImportData,
        format: Optional[Format] = None,
        odm: Optional[str] = None,
    ) -> Any:
        """
        Create a project and return it, accessed with its new API token.

        Args:
            project_data: project attributes as native data (sent as JSON)
                or text in ``format``
            format: format of textual ``project_data``
            odm: optional CDISC ODM XML metadata for the new project
        """
        project_data = process_import_data(
            project_data, "projectData", self._error_handler
        )
        if project_data is None:
            return None
        if not isinstance(project_data, str):
            project_data = encode_json(project_data, self._error_handler)
            format = Format.JSON

        request = ApiRequest(self._super_token, Content.PROJECT, self._error_handler)
        request.set_format(format)
        request.set_data(project_data)
        request.set_odm(odm)

        project_token = check_for_redcap_error(
            self._connection.call(request), self._error_handler
        )
        if project_token is None:
            return None

        logger.info("Created REDCap project")
        return self.get_project(project_token.strip())

    def export_redcap_version(self) -> Optional[str]:
        request = ApiRequest(self._super_token, Content.VERSION, self._error_handler)
        return check_for_redcap_error(
            self._connection.call(request), self._error_handler
        )

    def get_project(self, api_token: str) -> Any:
        """Return a project for ``api_token`` using this instance's settings."""
        api_token = process_api_token(
            api_token, PROJECT_TOKEN_LENGTH, self._error_handler
        )
        if api_token is None:
            return None

        # each project gets its own connection with the same settings
        connection = ApiConnection(
            self._connection.url,
            ssl_verify=self._connection.ssl_verify,
            ca_certificate_file=self._connection.ca_certificate_file,
            error_handler=self._error_handler,
            timeout=self._connection.timeout,
            connection_timeout=self._connection.connection_timeout,
        )
        return self._project_factory(
            self._connection.url,
            api_token,
            error_handler=self._error_handler,
            connection=connection,
        )

