"""
Test the HTTP transport.

Uses httpx.MockTransport so requests never leave the process; covers
the form body, multipart file uploads and mapping of HTTP and transport
failures to client errors.
"""

import os
from urllib.parse import parse_qsl

import httpx
import pytest

from redcap_client.config import Settings
from redcap_client.connection import ApiConnection, build_headers
from redcap_client.enums import Action, Content, Parameter
from redcap_client.exceptions import (
    CaCertificateError,
    ErrorCode,
    InvalidArgumentError,
    InvalidUrlError,
    RedcapConnectionError,
)
from redcap_client.request import ApiRequest

API_URL = "https://redcap.example.edu/api/"


def make_connection(handler, **kwargs):
    return ApiConnection(API_URL, transport=httpx.MockTransport(handler), **kwargs)


class TestConnectionSettings:
    """Test connection configuration validation"""

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_blank_url(self, url):
        with pytest.raises(InvalidUrlError, match="Invalid REDCap URL") as exc_info:
            ApiConnection(url)
        assert exc_info.value.code == ErrorCode.INVALID_URL

    def test_url_is_trimmed(self):
        assert ApiConnection(f" {API_URL} ").url == API_URL

    def test_defaults(self):
        connection = ApiConnection(API_URL)
        assert connection.ssl_verify is True
        assert connection.ca_certificate_file is None
        assert connection.timeout == 1200
        assert connection.connection_timeout == 20

    def test_missing_ca_certificate(self, tmp_path):
        with pytest.raises(CaCertificateError, match="does not exist") as exc_info:
            ApiConnection(API_URL, ca_certificate_file=str(tmp_path / "ca.pem"))
        assert exc_info.value.code == ErrorCode.CA_CERTIFICATE_FILE_NOT_FOUND

    def test_blank_ca_certificate(self):
        with pytest.raises(CaCertificateError, match="not defined"):
            ApiConnection(API_URL, ca_certificate_file=" ")

    def test_unreadable_ca_certificate(self, tmp_path, monkeypatch):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text("not really a certificate")
        monkeypatch.setattr(os, "access", lambda *args, **kwargs: False)

        with pytest.raises(CaCertificateError, match="cannot be read") as exc_info:
            ApiConnection(API_URL, ca_certificate_file=str(ca_file))
        assert exc_info.value.code == ErrorCode.CA_CERTIFICATE_FILE_UNREADABLE

    def test_unreadable_ca_certificate_keeps_previous(
        self, tmp_path, monkeypatch, recording_handler
    ):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text("not really a certificate")
        connection = ApiConnection(API_URL, error_handler=recording_handler)
        monkeypatch.setattr(os, "access", lambda *args, **kwargs: False)

        connection.ca_certificate_file = str(ca_file)

        assert recording_handler.codes == [ErrorCode.CA_CERTIFICATE_FILE_UNREADABLE]
        assert connection.ca_certificate_file is None

    def test_existing_ca_certificate(self, tmp_path):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text("not really a certificate")
        connection = ApiConnection(API_URL, ca_certificate_file=str(ca_file))
        assert connection.ca_certificate_file == str(ca_file)

    def test_timeout_minimum(self):
        connection = ApiConnection(API_URL)
        with pytest.raises(InvalidArgumentError, match="at least 1 second"):
            connection.timeout = 0
        assert connection.timeout == 1200

    def test_connection_timeout_minimum(self):
        with pytest.raises(InvalidArgumentError):
            ApiConnection(API_URL, connection_timeout=0)

    def test_from_settings(self):
        settings = Settings(
            api_url=API_URL,
            ssl_verify=False,
            timeout_seconds=60,
            connection_timeout_seconds=5,
        )
        connection = ApiConnection.from_settings(settings)

        assert connection.url == API_URL
        assert connection.ssl_verify is False
        assert connection.timeout == 60
        assert connection.connection_timeout == 5

    def test_build_headers(self):
        headers = build_headers()
        assert headers["User-Agent"].startswith("redcap-client/")


class TestConnectionCall:
    """Test sending requests"""

    def test_posts_form_body(self, project_token):
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["content_type"] = request.headers["content-type"]
            captured["body"] = dict(parse_qsl(request.content.decode()))
            return httpx.Response(200, text="13.1.0")

        with make_connection(handler) as connection:
            result = connection.call(ApiRequest(project_token, Content.VERSION))

        assert result == "13.1.0"
        assert captured["method"] == "POST"
        assert captured["content_type"] == "application/x-www-form-urlencoded"
        assert captured["body"] == {
            "token": project_token,
            "content": "version",
            "format": "json",
            "returnFormat": "json",
        }

    def test_error_payload_is_returned_unchanged(self, project_token):
        payload = '{"error": "You do not have permissions to use the API"}'

        def handler(request):
            return httpx.Response(403, text=payload)

        connection = make_connection(handler)
        assert connection.call(ApiRequest(project_token, Content.ARM)) == payload

    def test_call_bytes_returns_undecoded_body(self, project_token):
        body = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n\x00\xff\x80binary"

        def handler(request):
            return httpx.Response(
                200, content=body, headers={"Content-Type": "application/pdf"}
            )

        connection = make_connection(handler)
        assert connection.call_bytes(ApiRequest(project_token, Content.PDF)) == body

    def test_call_bytes_maps_not_found(self, project_token, recording_handler):
        def handler(request):
            return httpx.Response(404)

        connection = make_connection(handler, error_handler=recording_handler)
        result = connection.call_bytes(ApiRequest(project_token, Content.PDF))

        assert result is None
        assert recording_handler.codes == [ErrorCode.INVALID_URL]

    @pytest.mark.parametrize("status_code", [301, 302, 307, 308])
    def test_moved(self, project_token, status_code):
        def handler(request):
            return httpx.Response(
                status_code, headers={"location": "https://new.example.edu/api/"}
            )

        connection = make_connection(handler)
        with pytest.raises(InvalidUrlError, match="has moved to") as exc_info:
            connection.call(ApiRequest(project_token, Content.ARM))
        assert exc_info.value.http_status_code == status_code

    def test_not_found(self, project_token):
        def handler(request):
            return httpx.Response(404)

        connection = make_connection(handler)
        with pytest.raises(InvalidUrlError, match="Nothing was found") as exc_info:
            connection.call(ApiRequest(project_token, Content.ARM))
        assert exc_info.value.http_status_code == 404

    def test_connection_refused(self, project_token):
        def handler(request):
            raise httpx.ConnectError("Connection refused")

        connection = make_connection(handler)
        with pytest.raises(RedcapConnectionError, match="Connection refused") as exc_info:
            connection.call(ApiRequest(project_token, Content.ARM))
        assert exc_info.value.code == ErrorCode.CONNECTION_ERROR
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout(self, project_token):
        def handler(request):
            raise httpx.ReadTimeout("read timed out")

        connection = make_connection(handler)
        with pytest.raises(RedcapConnectionError, match="timed out"):
            connection.call(ApiRequest(project_token, Content.ARM))

    def test_failure_with_recording_handler(self, project_token, recording_handler):
        def handler(request):
            raise httpx.ConnectError("Connection refused")

        connection = make_connection(handler, error_handler=recording_handler)
        result = connection.call(ApiRequest(project_token, Content.ARM))

        assert result is None
        assert recording_handler.codes == [ErrorCode.CONNECTION_ERROR]

    def test_file_upload_is_multipart(self, project_token, input_file):
        captured = {}

        def handler(request):
            captured["content_type"] = request.headers["content-type"]
            captured["body"] = request.content
            return httpx.Response(200, text="")

        api_request = ApiRequest(project_token, Content.FILE)
        api_request.set_action(Action.IMPORT)
        api_request.set_record("1", True)
        api_request.set_field("consent_form", True)
        api_request.set_file(input_file)

        make_connection(handler).call(api_request)

        assert captured["content_type"].startswith("multipart/form-data")
        assert b'name="file"; filename="upload.txt"' in captured["body"]
        assert b"file contents" in captured["body"]
        assert b'name="field"' in captured["body"]
        assert b"consent_form" in captured["body"]

    def test_call_with_map(self, project_token):
        def handler(request):
            body = dict(parse_qsl(request.content.decode()))
            return httpx.Response(200, text=body["content"])

        connection = make_connection(handler)
        result = connection.call_with_map(
            {
                Parameter.TOKEN: project_token,
                Parameter.CONTENT: Content.GENERATE_NEXT_RECORD_NAME,
                Parameter.FORMAT: "json",
            }
        )
        assert result == "generateNextRecordName"

    def test_close_resets_client(self, project_token):
        def handler(request):
            return httpx.Response(200, text="ok")

        connection = make_connection(handler)
        connection.call(ApiRequest(project_token, Content.VERSION))
        connection.close()

        assert connection._client is None
        assert connection.call(ApiRequest(project_token, Content.VERSION)) == "ok"
