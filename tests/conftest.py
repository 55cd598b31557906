import pytest
from unittest.mock import Mock

from redcap_client.connection import ApiConnection

PROJECT_TOKEN = "0123456789ABCDEF0123456789ABCDEF"
SUPER_TOKEN = PROJECT_TOKEN * 2
API_URL = "https://redcap.example.edu/api/"


class RecordingErrorHandler:
    """Error handler that records failures instead of raising."""

    def __init__(self):
        self.errors = []

    def throw_exception(
        self,
        message,
        code,
        *,
        cause=None,
        connection_error_number=None,
        http_status_code=None,
    ):
        self.errors.append((message, code))

    @property
    def codes(self):
        return [code for _, code in self.errors]


@pytest.fixture
def project_token():
    return PROJECT_TOKEN


@pytest.fixture
def super_token():
    return SUPER_TOKEN


@pytest.fixture
def recording_handler():
    return RecordingErrorHandler()


@pytest.fixture
def mock_connection():
    """Connection whose call methods return whatever the test configures."""
    connection = Mock(spec=ApiConnection)
    connection.url = API_URL
    connection.ssl_verify = True
    connection.ca_certificate_file = None
    connection.timeout = 1200
    connection.connection_timeout = 20
    connection.call.return_value = ""
    connection.call_bytes.return_value = b""
    return connection


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "upload.txt"
    path.write_text("file contents")
    return path
