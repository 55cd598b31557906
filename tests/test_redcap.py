import json
from unittest.mock import Mock

import pytest

from redcap_client.enums import Content, Format, Parameter
from redcap_client.exceptions import InvalidArgumentError, RemoteApiError
from redcap_client.project import RedcapProject
from redcap_client.redcap import Redcap


@pytest.fixture
def redcap(super_token, mock_connection):
    return Redcap(None, super_token, connection=mock_connection)


class TestRedcap:
    """Test super token operations"""

    def test_project_token_rejected(self, project_token, mock_connection):
        with pytest.raises(InvalidArgumentError, match="should have a length of 64"):
            Redcap(None, project_token, connection=mock_connection)

    def test_export_redcap_version(self, redcap, mock_connection, super_token):
        mock_connection.call.return_value = "14.5.0"

        assert redcap.export_redcap_version() == "14.5.0"
        params = mock_connection.call.call_args[0][0].params
        assert params[Parameter.TOKEN] == super_token
        assert params[Parameter.CONTENT] is Content.VERSION

    def test_create_project(self, redcap, mock_connection, project_token):
        mock_connection.call.return_value = project_token

        project = redcap.create_project(
            [{"project_title": "Study", "purpose": 0}], odm="<ODM/>"
        )

        assert isinstance(project, RedcapProject)
        assert project.api_token == project_token
        assert project.connection.url == mock_connection.url
        assert project.connection is not mock_connection

        params = mock_connection.call.call_args[0][0].params
        assert params[Parameter.CONTENT] is Content.PROJECT
        assert params[Parameter.FORMAT] is Format.JSON
        assert params[Parameter.ODM] == "<ODM/>"
        assert json.loads(params[Parameter.DATA]) == [
            {"project_title": "Study", "purpose": 0}
        ]

    def test_create_project_remote_error(self, redcap, mock_connection):
        mock_connection.call.return_value = '{"error": "You must provide a project title"}'

        with pytest.raises(RemoteApiError, match="project title"):
            redcap.create_project([{"purpose": 0}])

    def test_create_project_requires_data(self, redcap, mock_connection):
        with pytest.raises(InvalidArgumentError, match="projectData"):
            redcap.create_project(None)
        mock_connection.call.assert_not_called()

    def test_get_project_validates_token(self, redcap, super_token):
        with pytest.raises(InvalidArgumentError, match="should have a length of 32"):
            redcap.get_project(super_token)

    def test_custom_project_factory(self, redcap, project_token):
        factory = Mock(return_value="project")
        redcap.project_factory = factory

        assert redcap.get_project(project_token) == "project"
        args, kwargs = factory.call_args
        assert args == ("https://redcap.example.edu/api/", project_token)
        assert kwargs["error_handler"] is redcap.error_handler

    def test_null_project_factory_is_ignored(self, redcap):
        redcap.project_factory = None
        assert redcap.project_factory is RedcapProject
