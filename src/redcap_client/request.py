"""
Parameter model for a single REDCap API call.

An ApiRequest accumulates the typed key/value parameters of one call. Each
setter validates its own input immediately and reports violations through
the request's error handler; a failed setter leaves the stored parameters
untouched.
"""

import os
import re
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import (
    AbstractSet,
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from .enums import (
    DEFAULT_FORMAT,
    DEFAULT_LEGAL_FORMATS,
    Action,
    ApiEnum,
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
from .error_handler import ErrorHandlerInterface, resolve_error_handler
from .exceptions import ErrorCode
from .serializer import form_pairs, to_form_urlencoded

E = TypeVar("E", bound=ApiEnum)

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_DATE_TIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

REQUIRED_MAP_KEYS = (Parameter.TOKEN, Parameter.CONTENT, Parameter.FORMAT)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class ApiRequest:
    """
    Validated parameter set for one REDCap API call.

    Args:
        token: API token; stored trimmed when not blank
        content: the content (resource) the call addresses; required
        error_handler: failure reporting strategy, defaults to ErrorHandler
        legal_formats: formats accepted by ``set_format``; defaults to
            csv, json and xml
        extra_formats: formats allowed in addition to ``legal_formats``,
            e.g. ``{Format.ODM}`` for record export/import

    Example:
        >>> request = ApiRequest(token, Content.ARM)
        >>> request.set_arms({1, 2}, required=False)
        >>> request.to_form_urlencoded()
    """

    def __init__(
        self,
        token: Optional[str],
        content: Optional[Content],
        error_handler: Optional[ErrorHandlerInterface] = None,
        legal_formats: Optional[Iterable[Format]] = None,
        extra_formats: Iterable[Format] = (),
    ):
        self._initialize(error_handler, legal_formats, extra_formats)

        self.set_token(token)
        self.set_content(content)
        self.set_format(DEFAULT_FORMAT)
        # Format used by REDCap for error responses
        self.set_return_format(DEFAULT_FORMAT)

    def _initialize(
        self,
        error_handler: Optional[ErrorHandlerInterface],
        legal_formats: Optional[Iterable[Format]],
        extra_formats: Iterable[Format],
    ) -> None:
        # error handler first, the setters below may need it
        self._error_handler = resolve_error_handler(error_handler)
        self._params: Dict[Parameter, Any] = {}
        formats = set(DEFAULT_LEGAL_FORMATS if legal_formats is None else legal_formats)
        formats.update(extra_formats)
        self._legal_formats = formats

    @classmethod
    def from_map(
        cls,
        data_map: Mapping[Parameter, Any],
        error_handler: Optional[ErrorHandlerInterface] = None,
    ) -> "ApiRequest":
        """
        Build a request from a raw parameter mapping.

        Entries are copied verbatim without per-entry validation. The map
        must contain TOKEN, CONTENT and FORMAT; a missing key is reported and
        the map is still copied. RETURN_FORMAT defaults to json unless the
        map supplies one.
        """
        request = cls.__new__(cls)
        request._initialize(error_handler, None, ())

        if any(key not in data_map for key in REQUIRED_MAP_KEYS):
            request._fail(
                "Map missing one or more of the required keys: "
                "Parameter.TOKEN, Parameter.CONTENT, or Parameter.FORMAT"
            )

        request.set_return_format(DEFAULT_FORMAT)
        request._params.update(data_map)
        return request

    # ------------------------------------------------------------------
    # Accessors

    @property
    def params(self) -> Mapping[Parameter, Any]:
        """Read-only view of the stored parameters."""
        return MappingProxyType(self._params)

    @property
    def legal_formats(self) -> frozenset:
        return frozenset(self._legal_formats)

    @property
    def error_handler(self) -> ErrorHandlerInterface:
        return self._error_handler

    def get(self, param: Parameter, default: Any = None) -> Any:
        return self._params.get(param, default)

    def __contains__(self, param: object) -> bool:
        return param in self._params

    def __repr__(self) -> str:
        shown = {
            key.label: ("***" if key is Parameter.TOKEN else value)
            for key, value in self._params.items()
        }
        return f"ApiRequest({shown!r})"

    def to_form_urlencoded(self) -> str:
        """Serialize the parameters as an x-www-form-urlencoded body."""
        return to_form_urlencoded(self._params)

    def form_pairs(self, skip_files: bool = False) -> List[Tuple[str, str]]:
        return form_pairs(self._params, skip_files=skip_files)

    # ------------------------------------------------------------------
    # Internal helpers

    def _fail(
        self,
        message: str,
        code: int = ErrorCode.INVALID_ARGUMENT,
        cause: Optional[BaseException] = None,
    ) -> None:
        self._error_handler.throw_exception(message, code, cause=cause)

    def _coerce_enum(
        self, enum_cls: Type[E], value: Any, name: str
    ) -> Optional[E]:
        """Accept an enum member or its wire label; None passes through."""
        if value is None or isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            legal = ", ".join(member.label for member in enum_cls)
            self._fail(
                f"Invalid {name} '{value}' specified. "
                f"The {name} should be one of the following: {legal}"
            )
            return None

    def _store_enum(
        self,
        param: Parameter,
        enum_cls: Type[E],
        value: Any,
        default: Optional[E] = None,
    ) -> None:
        if value is None:
            if default is None:
                return
            value = default
        member = self._coerce_enum(enum_cls, value, param.label)
        if member is not None:
            self._params[param] = member

    def _store_trimmed(self, param: Parameter, value: Optional[str]) -> None:
        if not _is_blank(value):
            self._params[param] = value.strip()

    def _store_required_trimmed(
        self, param: Parameter, value: Optional[str], required: bool, message: str
    ) -> None:
        if _is_blank(value):
            if required:
                self._fail(message)
            return
        self._params[param] = value.strip()

    def _check_non_negative(self, value: Any, name: str, message: str) -> bool:
        if isinstance(value, bool) or not isinstance(value, int):
            self._fail(f"{name} '{value}' is not an integer.")
            return False
        if value < 0:
            self._fail(message)
            return False
        return True

    def _check_string_set(
        self,
        values: Optional[AbstractSet[str]],
        required: bool,
        name: str,
        blank_message: str,
    ) -> bool:
        """Validate a set of strings; True means the set should be stored."""
        if values is None:
            if required:
                self._fail(f"The {name} argument was not set.")
            return False

        if required and len(values) == 0:
            self._fail(
                f"No {name} were specified in the {name} argument; "
                "at least one must be specified."
            )
            return False

        for value in values:
            if _is_blank(value):
                self._fail(blank_message)
                return False

        return len(values) > 0

    def _store_date(self, param: Parameter, value: Optional[str]) -> None:
        if value is None:
            return
        date = self.check_date_range_argument(value)
        if date is not None:
            self._params[param] = date

    def _store_flag(self, param: Parameter, value: bool) -> None:
        self._params[param] = bool(value)

    # ------------------------------------------------------------------
    # Validators

    def check_date_range_argument(self, date: Optional[str]) -> Optional[str]:
        """
        Check that ``date`` has the form YYYY-MM-DD HH:MM:SS.

        Returns the input unchanged when valid. Returns None when the error
        handler reports the failure without raising.
        """
        if _is_blank(date):
            self._fail("Missing or blank date")
            return None

        try:
            if not _DATE_TIME_PATTERN.match(date):
                raise ValueError(f"'{date}' does not match {DATE_TIME_FORMAT}")
            datetime.strptime(date, DATE_TIME_FORMAT)
        except ValueError as e:
            self._fail(
                "Invalid date format. "
                "The date format for export dates is YYYY-MM-DD HH:MM:SS, "
                "e.g., 2020-01-31 00:00:00.",
                cause=e,
            )
            return None

        return date

    # ------------------------------------------------------------------
    # Formats

    def add_format(self, format: Optional[Format]) -> None:
        """Allow one more format for this request."""
        if format is None:
            self._fail("Format cannot be null")
            return
        member = self._coerce_enum(Format, format, "format")
        if member is not None:
            self._legal_formats.add(member)

    def set_format(self, format: Optional[Format]) -> None:
        if format is None:
            format = DEFAULT_FORMAT
        member = self._coerce_enum(Format, format, "format")
        if member is None:
            return
        if member not in self._legal_formats:
            legal = ", ".join(sorted(f.label for f in self._legal_formats))
            self._fail(
                f"Invalid format '{member.label}' specified. "
                f"The format should be one of the following: {legal}"
            )
            return
        self._params[Parameter.FORMAT] = member

    def set_return_format(self, format: Optional[Format]) -> None:
        self._store_enum(Parameter.RETURN_FORMAT, Format, format, DEFAULT_FORMAT)

    # ------------------------------------------------------------------
    # Required enumerations

    def set_action(self, action: Optional[Action]) -> None:
        if action is None:
            self._fail("Action cannot be null")
            return
        self._store_enum(Parameter.ACTION, Action, action)

    def set_content(self, content: Optional[Content]) -> None:
        if content is None:
            self._fail("Content cannot be null")
            return
        self._store_enum(Parameter.CONTENT, Content, content)

    # ------------------------------------------------------------------
    # Enumerations with defaults

    def set_csv_delimiter(self, delimiter: Optional[CsvDelimiter]) -> None:
        self._store_enum(
            Parameter.CSV_DELIMITER, CsvDelimiter, delimiter, CsvDelimiter.COMMA
        )

    def set_date_format(self, date_format: Optional[DateFormat]) -> None:
        self._store_enum(Parameter.DATE_FORMAT, DateFormat, date_format, DateFormat.YMD)

    def set_overwrite_behavior(
        self, overwrite_behavior: Optional[OverwriteBehavior]
    ) -> None:
        self._store_enum(
            Parameter.OVERWRITE_BEHAVIOR,
            OverwriteBehavior,
            overwrite_behavior,
            OverwriteBehavior.NORMAL,
        )

    def set_raw_or_label(self, raw_or_label: Optional[RawOrLabel]) -> None:
        self._store_enum(Parameter.RAW_OR_LABEL, RawOrLabel, raw_or_label, RawOrLabel.RAW)

    def set_raw_or_label_headers(self, raw_or_label: Optional[RawOrLabel]) -> None:
        self._store_enum(
            Parameter.RAW_OR_LABEL_HEADERS, RawOrLabel, raw_or_label, RawOrLabel.RAW
        )

    def set_return_content(
        self, return_content: Optional[ReturnContent], force_auto_number: bool = False
    ) -> None:
        """'auto_ids' is only legal together with forceAutoNumber."""
        if return_content is None:
            return_content = ReturnContent.COUNT
        member = self._coerce_enum(ReturnContent, return_content, "returnContent")
        if member is None:
            return
        if member is ReturnContent.AUTO_IDS and not force_auto_number:
            self._fail(
                "'auto_ids' specified for returnContent, but forceAutoNumber was "
                "not set to true; 'auto_ids' can only be used when forceAutoNumber "
                "is set to true."
            )
            return
        self._params[Parameter.RETURN_CONTENT] = member

    def set_type(self, record_type: Optional[RecordType]) -> None:
        self._store_enum(Parameter.TYPE, RecordType, record_type, RecordType.FLAT)

    # ------------------------------------------------------------------
    # Optional enumerations

    def set_decimal_character(
        self, decimal_character: Optional[DecimalCharacter]
    ) -> None:
        self._store_enum(Parameter.DECIMAL_CHARACTER, DecimalCharacter, decimal_character)

    def set_log_type(self, log_type: Optional[LogType]) -> None:
        self._store_enum(Parameter.LOGTYPE, LogType, log_type)

    # ------------------------------------------------------------------
    # Boolean flags

    def set_all_records(self, all_records: bool) -> None:
        # only sent when true
        if all_records:
            self._params[Parameter.ALL_RECORDS] = True

    def set_compact_display(self, compact_display: bool) -> None:
        # only sent when true
        if compact_display:
            self._params[Parameter.COMPACT_DISPLAY] = True

    def set_export_checkbox_label(self, export_checkbox_label: bool) -> None:
        self._store_flag(Parameter.EXPORT_CHECKBOX_LABEL, export_checkbox_label)

    def set_export_data_access_groups(self, export_dags: bool) -> None:
        self._store_flag(Parameter.EXPORT_DATA_ACCESS_GROUPS, export_dags)

    def set_export_files(self, export_files: bool) -> None:
        self._store_flag(Parameter.EXPORT_FILES, export_files)

    def set_export_survey_fields(self, export_survey_fields: bool) -> None:
        self._store_flag(Parameter.EXPORT_SURVEY_FIELDS, export_survey_fields)

    def set_force_auto_number(self, force_auto_number: bool) -> None:
        self._store_flag(Parameter.FORCE_AUTO_NUMBER, force_auto_number)

    def set_return_metadata_only(self, metadata_only: bool) -> None:
        self._store_flag(Parameter.RETURN_METADATA_ONLY, metadata_only)

    def set_override(self, override: bool) -> None:
        # REDCap expects 0/1 for this flag, not true/false
        self._params[Parameter.OVERRIDE] = 1 if override else 0

    # ------------------------------------------------------------------
    # Integers

    def set_arm(self, arm: Optional[int]) -> None:
        if arm is None:
            return
        if self._check_non_negative(
            arm, "Arm number", f"Arm number '{arm}' is a negative integer."
        ):
            self._params[Parameter.ARM] = arm

    def set_repeat_instance(self, repeat_instance: Optional[int]) -> None:
        if repeat_instance is None:
            return
        if self._check_non_negative(
            repeat_instance, "Repeat instance", "Repeat Instance cannot be negative"
        ):
            self._params[Parameter.REPEAT_INSTANCE] = repeat_instance

    def set_report_id(self, report_id: Optional[int]) -> None:
        if report_id is None:
            self._fail("Null report ID specified for export.")
            return
        if self._check_non_negative(
            report_id, "Report ID", f"Report ID '{report_id}' is a negative integer."
        ):
            self._params[Parameter.REPORT_ID] = report_id

    # ------------------------------------------------------------------
    # Sets

    def set_arms(self, arms: Optional[AbstractSet[int]], required: bool = False) -> None:
        if arms is None:
            if required:
                self._fail("The arms argument was not set.")
            return

        if required and len(arms) == 0:
            self._fail(
                "No arms were specified in the arms argument; "
                "at least one must be specified."
            )
            return

        for arm in arms:
            if arm is None:
                self._fail("Arm cannot be null")
                return
            if not self._check_non_negative(
                arm, "Arm number", f"Arm number '{arm}' is a negative integer."
            ):
                return

        if arms:
            self._params[Parameter.ARMS] = arms

    def set_dags(self, dags: Optional[AbstractSet[str]], required: bool = False) -> None:
        if self._check_string_set(dags, required, "dags", "Dag is null or blank."):
            self._params[Parameter.DAGS] = dags

    def set_events(
        self, events: Optional[AbstractSet[str]], required: bool = False
    ) -> None:
        if self._check_string_set(
            events, required, "events", "Blank or null event specified."
        ):
            self._params[Parameter.EVENTS] = events

    def set_fields(self, fields: Optional[AbstractSet[str]]) -> None:
        if self._check_string_set(
            fields, False, "fields", "Blank or null field specified."
        ):
            self._params[Parameter.FIELDS] = fields

    def set_forms(self, forms: Optional[AbstractSet[str]]) -> None:
        if self._check_string_set(forms, False, "forms", "Blank or null form specified."):
            self._params[Parameter.FORMS] = forms

    def set_records(self, record_ids: Optional[AbstractSet[str]]) -> None:
        if self._check_string_set(
            record_ids, False, "records", "Record ids cannot be null or blank"
        ):
            self._params[Parameter.RECORDS] = record_ids

    # ------------------------------------------------------------------
    # Strings

    def set_token(self, token: Optional[str]) -> None:
        self._store_trimmed(Parameter.TOKEN, token)

    def set_dag(self, dag: Optional[str]) -> None:
        self._store_trimmed(Parameter.DAG, dag)

    def set_event(self, event: Optional[str]) -> None:
        self._store_trimmed(Parameter.EVENT, event)

    def set_filter_logic(self, filter_logic: Optional[str]) -> None:
        self._store_trimmed(Parameter.FILTER_LOGIC, filter_logic)

    def set_odm(self, odm: Optional[str]) -> None:
        self._store_trimmed(Parameter.ODM, odm)

    def set_user(self, user: Optional[str]) -> None:
        self._store_trimmed(Parameter.USER, user)

    def set_field(self, field: Optional[str], required: bool = False) -> None:
        self._store_required_trimmed(
            Parameter.FIELD, field, required, "Field cannot be null or blank."
        )

    def set_instrument(self, instrument: Optional[str], required: bool = False) -> None:
        self._store_required_trimmed(
            Parameter.INSTRUMENT,
            instrument,
            required,
            "The form argument was null or blank.",
        )

    def set_record(self, record_id: Optional[str], required: bool = False) -> None:
        self._store_required_trimmed(
            Parameter.RECORD, record_id, required, "No record ID specified."
        )

    def set_data(self, data: Optional[str]) -> None:
        if data is None:
            self._fail("Data cannot be null")
            return
        self._params[Parameter.DATA] = data

    # ------------------------------------------------------------------
    # Dates

    def set_begin_time(self, begin_time: Optional[str]) -> None:
        self._store_date(Parameter.BEGIN_TIME, begin_time)

    def set_end_time(self, end_time: Optional[str]) -> None:
        self._store_date(Parameter.END_TIME, end_time)

    def set_date_range_begin(self, date_range_begin: Optional[str]) -> None:
        self._store_date(Parameter.DATE_RANGE_BEGIN, date_range_begin)

    def set_date_range_end(self, date_range_end: Optional[str]) -> None:
        self._store_date(Parameter.DATE_RANGE_END, date_range_end)

    # ------------------------------------------------------------------
    # Files

    def set_file(self, filename: Optional[Union[str, Path]]) -> None:
        """Store the resolved path of an existing, readable input file."""
        if filename is None or _is_blank(str(filename)):
            self._fail("No filename specified.")
            return

        path = Path(filename)
        if not path.exists():
            self._fail(
                f"The input file '{filename}' could not be found.",
                ErrorCode.INPUT_FILE_NOT_FOUND,
            )
            return

        if not os.access(path, os.R_OK):
            self._fail(
                f"The input file '{filename}' was unreadable.",
                ErrorCode.INPUT_FILE_UNREADABLE,
            )
            return

        self._params[Parameter.FILE] = path.resolve()
