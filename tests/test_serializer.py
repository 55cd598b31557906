import pytest
from pathlib import Path
from urllib.parse import parse_qsl

from redcap_client.enums import Content, CsvDelimiter, Format, Parameter
from redcap_client.serializer import form_pairs, to_form_urlencoded


class TestFormPairs:
    """Test parameter flattening"""

    def test_enums_use_wire_labels(self):
        pairs = form_pairs(
            {
                Parameter.CONTENT: Content.REPEATING_FORMS_EVENTS,
                Parameter.CSV_DELIMITER: CsvDelimiter.PIPE,
            }
        )
        assert pairs == [("content", "repeatingFormsEvents"), ("csvDelimiter", "|")]

    def test_none_values_are_skipped(self):
        assert form_pairs({Parameter.EVENT: None, Parameter.USER: "alice"}) == [
            ("user", "alice")
        ]

    def test_booleans(self):
        pairs = form_pairs(
            {Parameter.EXPORT_FILES: True, Parameter.EXPORT_SURVEY_FIELDS: False}
        )
        assert pairs == [("exportFiles", "true"), ("exportSurveyFields", "false")]

    def test_integers(self):
        assert form_pairs({Parameter.ARM: 3}) == [("arm", "3")]

    def test_sets_expand_to_repeated_keys(self):
        pairs = form_pairs({Parameter.FIELDS: {"record_id", "age", "dob"}})
        assert pairs == [
            ("fields[]", "age"),
            ("fields[]", "dob"),
            ("fields[]", "record_id"),
        ]

    def test_file_paths_are_rejected(self):
        with pytest.raises(TypeError, match="multipart"):
            form_pairs({Parameter.FILE: Path("/tmp/upload.txt")})

    def test_file_paths_can_be_skipped(self):
        pairs = form_pairs(
            {Parameter.FILE: Path("/tmp/upload.txt"), Parameter.FIELD: "upload"},
            skip_files=True,
        )
        assert pairs == [("field", "upload")]

    def test_unsupported_value_type(self):
        with pytest.raises(TypeError, match="Unexpected REDCap parameter type"):
            form_pairs({Parameter.DATA: 1.5})


class TestToFormUrlencoded:
    """Test form body encoding"""

    def test_values_are_percent_encoded(self):
        body = to_form_urlencoded(
            {
                Parameter.FILTER_LOGIC: "[age] >= 18 & [consent] = '1'",
                Parameter.FORMAT: Format.JSON,
            }
        )

        assert "&format=json" in body
        assert dict(parse_qsl(body)) == {
            "filterLogic": "[age] >= 18 & [consent] = '1'",
            "format": "json",
        }

    def test_set_keys_are_encoded(self):
        body = to_form_urlencoded({Parameter.ARMS: {1}})
        assert body == "arms%5B%5D=1"

    def test_empty(self):
        assert to_form_urlencoded({}) == ""
