import pytest

from redcap_client.error_handler import ErrorHandler
from redcap_client.exceptions import InvalidArgumentError
from redcap_client.models import ArmRow, EventRow, FormEventMappingRow, validate_rows


class TestValidateRows:
    """Test structured import row validation"""

    def test_arms_are_normalized(self):
        rows = validate_rows(
            [{"arm_num": 1, "name": " Drug A "}, {"arm_num": 2, "name": "Placebo"}],
            ArmRow,
            "arm",
            ErrorHandler(),
        )
        assert rows == [
            {"arm_num": 1, "name": "Drug A"},
            {"arm_num": 2, "name": "Placebo"},
        ]

    def test_event_row(self):
        rows = validate_rows(
            [{"arm_num": 1, "event_name": "Baseline"}], EventRow, "event", ErrorHandler()
        )
        assert rows == [{"arm_num": 1, "event_name": "Baseline"}]

    def test_mapping_row(self):
        rows = validate_rows(
            [{"arm_num": 1, "unique_event_name": "baseline_arm_1", "form": "demographics"}],
            FormEventMappingRow,
            "event mapping",
            ErrorHandler(),
        )
        assert rows[0]["form"] == "demographics"

    def test_missing_rows(self):
        with pytest.raises(InvalidArgumentError, match="required argument 'arms'"):
            validate_rows(None, ArmRow, "arm", ErrorHandler())

    def test_negative_arm_number(self):
        with pytest.raises(InvalidArgumentError, match="Invalid declaration of a REDCap arm"):
            validate_rows([{"arm_num": -1, "name": "x"}], ArmRow, "arm", ErrorHandler())

    def test_arm_number_must_be_an_integer(self):
        with pytest.raises(InvalidArgumentError, match="arm_num"):
            validate_rows([{"arm_num": "1", "name": "x"}], ArmRow, "arm", ErrorHandler())

    def test_blank_name(self):
        with pytest.raises(InvalidArgumentError, match="name"):
            validate_rows([{"arm_num": 1, "name": "  "}], ArmRow, "arm", ErrorHandler())

    def test_unknown_key(self):
        with pytest.raises(InvalidArgumentError, match="colour"):
            validate_rows(
                [{"arm_num": 1, "event_name": "Baseline", "colour": "red"}],
                EventRow,
                "event",
                ErrorHandler(),
            )

    def test_recording_handler_returns_none(self, recording_handler):
        result = validate_rows([{"name": "no arm"}], ArmRow, "arm", recording_handler)
        assert result is None
        assert len(recording_handler.errors) == 1
