"""
Project-level REDCap API operations.

Methods that take a ``format`` argument return the raw response text in
that format. When ``format`` is omitted the call is made in JSON and the
decoded data is returned instead. PDF and file exports return bytes.
"""

from pathlib import Path
from typing import (
    AbstractSet,
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .config import Settings, get_logger
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
    RawOrLabel,
    RecordType,
    ReturnContent,
)
from .error_handler import ErrorHandlerInterface, resolve_error_handler
from .exceptions import ErrorCode
from .models import ArmRow, EventRow, FormEventMappingRow, validate_rows
from .request import ApiRequest
from .validation import (
    PROJECT_TOKEN_LENGTH,
    check_for_redcap_error,
    decode_json,
    encode_json,
    process_api_token,
    process_import_data,
)
from .version import __version__

logger = get_logger("project")

ImportData = Union[str, Sequence[Mapping[str, Any]], Mapping[str, Any]]


class RedcapProject:
    """
    REDCap project addressed by a 32 character API token.

    Args:
        api_url: URL of the REDCap API endpoint
        api_token: project API token
        ssl_verify: verify the server certificate
        ca_certificate_file: CA bundle used when verifying
        error_handler: failure reporting strategy, defaults to ErrorHandler
        connection: existing connection; when given, the URL and TLS
            arguments are ignored

    Example:
        >>> project = RedcapProject("https://redcap.example.edu/api/", token)
        >>> arms = project.export_arms()
        >>> csv_text = project.export_records(format=Format.CSV)
    """

    def __init__(
        self,
        api_url: Optional[str],
        api_token: str,
        ssl_verify: bool = True,
        ca_certificate_file: Optional[str] = None,
        error_handler: Optional[ErrorHandlerInterface] = None,
        connection: Optional[ApiConnection] = None,
    ):
        self._error_handler = resolve_error_handler(error_handler)
        self._api_token = process_api_token(
            api_token, PROJECT_TOKEN_LENGTH, self._error_handler
        )

        if connection is None:
            connection = ApiConnection(
                api_url,
                ssl_verify=ssl_verify,
                ca_certificate_file=ca_certificate_file,
                error_handler=self._error_handler,
            )
        self._connection = connection

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        error_handler: Optional[ErrorHandlerInterface] = None,
    ) -> "RedcapProject":
        connection = ApiConnection.from_settings(settings, error_handler)
        return cls(
            settings.api_url,
            settings.api_token,
            error_handler=error_handler,
            connection=connection,
        )

    # ------------------------------------------------------------------
    # Properties

    @property
    def api_token(self) -> Optional[str]:
        return self._api_token

    @property
    def connection(self) -> ApiConnection:
        return self._connection

    @connection.setter
    def connection(self, connection: ApiConnection) -> None:
        if connection is None:
            self._error_handler.throw_exception(
                "The connection argument cannot be null.", ErrorCode.INVALID_ARGUMENT
            )
            return
        self._connection = connection

    @property
    def error_handler(self) -> ErrorHandlerInterface:
        return self._error_handler

    @error_handler.setter
    def error_handler(self, error_handler: Optional[ErrorHandlerInterface]) -> None:
        self._error_handler = resolve_error_handler(error_handler)

    def get_client_version(self) -> str:
        return __version__

    # ------------------------------------------------------------------
    # Internal helpers

    def _request(self, content: Content, *extra_formats: Format) -> ApiRequest:
        return ApiRequest(
            self._api_token, content, self._error_handler, extra_formats=extra_formats
        )

    def _call(self, request: ApiRequest) -> Optional[str]:
        result = self._connection.call(request)
        return check_for_redcap_error(result, self._error_handler)

    def _call_bytes(self, request: ApiRequest) -> Optional[bytes]:
        result = self._connection.call_bytes(request)
        if result is not None:
            # error payloads are JSON text even for binary exports
            check_for_redcap_error(
                result.decode("utf-8", errors="replace"), self._error_handler
            )
        return result

    def _export(self, request: ApiRequest, format: Optional[Format]) -> Any:
        result = self._call(request)
        if format is None and result is not None:
            return decode_json(result, self._error_handler)
        return result

    def _import_payload(
        self, data: Optional[ImportData], data_name: str, format: Optional[Format]
    ) -> Tuple[Any, Optional[Format]]:
        """Native data is sent as JSON; strings are sent in ``format``."""
        data = process_import_data(data, data_name, self._error_handler)
        if data is None or isinstance(data, str):
            return data, format
        return encode_json(data, self._error_handler), Format.JSON

    def _import(self, request: ApiRequest) -> Optional[int]:
        return self._to_count(self._call(request))

    def _to_count(self, result: Optional[str]) -> Optional[int]:
        if result is None:
            return None
        try:
            return int(result.strip())
        except ValueError as e:
            self._error_handler.throw_exception(
                f"Unexpected response from REDCap, expected a count: '{result}'",
                ErrorCode.REDCAP_API_ERROR,
                cause=e,
            )
            return None

    def _write_output_file(self, content: bytes, filename: Union[str, Path]) -> None:
        try:
            Path(filename).write_bytes(content)
        except OSError as e:
            self._error_handler.throw_exception(
                "Output file not available.", ErrorCode.OUTPUT_FILE_ERROR, cause=e
            )
            return
        logger.info("Wrote %d bytes to %s", len(content), filename)

    # ------------------------------------------------------------------
    # Arms

    def export_arms(
        self, format: Optional[Format] = None, arms: Optional[AbstractSet[int]] = None
    ) -> Any:
        request = self._request(Content.ARM)
        request.set_format(format)
        request.set_arms(arms, False)
        return self._export(request, format)

    def import_arms(
        self,
        arms: ImportData,
        format: Optional[Format] = None,
        override: bool = False,
    ) -> Optional[int]:
        """
        Import arms, either as rows with ``arm_num`` and ``name`` or as
        text in ``format``. With ``override`` all existing arms are
        replaced. Returns the number of arms imported.
        """
        if arms is not None and not isinstance(arms, str):
            arms = validate_rows(arms, ArmRow, "arm", self._error_handler)
            if arms is None:
                return None
        data, format = self._import_payload(arms, "arms", format)

        request = self._request(Content.ARM)
        request.set_action(Action.IMPORT)
        request.set_format(format)
        request.set_override(override)
        request.set_data(data)
        return self._import(request)

    def delete_arms(self, arms: AbstractSet[int]) -> Optional[int]:
        request = self._request(Content.ARM)
        request.set_action(Action.DELETE)
        request.set_arms(arms, True)
        return self._import(request)

    # ------------------------------------------------------------------
    # Events

    def export_events(
        self, format: Optional[Format] = None, arms: Optional[AbstractSet[int]] = None
    ) -> Any:
        request = self._request(Content.EVENT)
        request.set_format(format)
        request.set_arms(arms, False)
        return self._export(request, format)

    def import_events(
        self,
        events: ImportData,
        format: Optional[Format] = None,
        override: bool = False,
    ) -> Optional[int]:
        """Import events given as rows with ``arm_num`` and ``event_name``."""
        if events is not None and not isinstance(events, str):
            events = validate_rows(events, EventRow, "event", self._error_handler)
            if events is None:
                return None
        data, format = self._import_payload(events, "events", format)

        request = self._request(Content.EVENT)
        request.set_action(Action.IMPORT)
        request.set_format(format)
        request.set_override(override)
        request.set_data(data)
        return self._import(request)

    def delete_events(self, events: AbstractSet[str]) -> Optional[int]:
        request = self._request(Content.EVENT)
        request.set_action(Action.DELETE)
        request.set_events(events, True)
        return self._import(request)

    # ------------------------------------------------------------------
    # Field names

    def export_field_names(
        self, format: Optional[Format] = None, field: Optional[str] = None
    ) -> Any:
        """
        Export the export field names of all fields, or of ``field`` only.

        With JSON decoding and a ``field``, the single matching entry is
        returned rather than a list.
        """
        request = self._request(Content.EXPORT_FIELD_NAMES)
        request.set_format(format)
        request.set_field(field, False)
        result = self._export(request, format)
        if format is None and field is not None and result:
            return result[0]
        return result

    # ------------------------------------------------------------------
    # Files

    def _file_request(
        self,
        action: Action,
        record_id: str,
        field: str,
        event: Optional[str],
        repeat_instance: Optional[int],
    ) -> ApiRequest:
        request = self._request(Content.FILE)
        request.set_action(action)
        request.set_record(record_id, True)
        request.set_field(field, True)
        request.set_event(event)
        request.set_repeat_instance(repeat_instance)
        return request

    def export_file(
        self,
        record_id: str,
        field: str,
        event: Optional[str] = None,
        repeat_instance: Optional[int] = None,
    ) -> Optional[bytes]:
        """Download the contents of a file upload field."""
        request = self._file_request(
            Action.EXPORT, record_id, field, event, repeat_instance
        )
        return self._call_bytes(request)

    def import_file(
        self,
        filename: Union[str, Path],
        record_id: str,
        field: str,
        event: Optional[str] = None,
        repeat_instance: Optional[int] = None,
    ) -> None:
        """Upload a local file into a file upload field of a record."""
        request = self._file_request(
            Action.IMPORT, record_id, field, event, repeat_instance
        )
        request.set_file(filename)
        logger.info("Importing file %s into field %s", filename, field)
        self._call(request)

    def delete_file(
        self,
        record_id: str,
        field: str,
        event: Optional[str] = None,
        repeat_instance: Optional[int] = None,
    ) -> Optional[str]:
        request = self._file_request(
            Action.DELETE, record_id, field, event, repeat_instance
        )
        return self._call(request)

    # ------------------------------------------------------------------
    # Instruments

    def export_instruments(self, format: Optional[Format] = None) -> Any:
        request = self._request(Content.INSTRUMENT)
        request.set_format(format)
        return self._export(request, format)

    def export_pdf_file_of_instruments(
        self,
        file: Optional[Union[str, Path]] = None,
        record_id: Optional[str] = None,
        event: Optional[str] = None,
        form: Optional[str] = None,
        all_records: bool = False,
        compact_display: bool = False,
    ) -> Optional[bytes]:
        """
        Export instruments as PDF, optionally writing the result to ``file``.

        With ``all_records`` every record is included and ``record_id``,
        ``event`` and ``form`` are ignored.
        """
        request = self._request(Content.PDF)
        if all_records:
            request.set_all_records(all_records)
        else:
            request.set_record(record_id, False)
            request.set_event(event)
            request.set_instrument(form, False)
        request.set_compact_display(compact_display)

        result = self._call_bytes(request)
        if file is not None and result is not None:
            self._write_output_file(result, file)
        return result

    def export_instrument_event_mappings(
        self, format: Optional[Format] = None, arms: Optional[AbstractSet[int]] = None
    ) -> Any:
        request = self._request(Content.FORM_EVENT_MAPPING)
        request.set_format(format)
        request.set_arms(arms, False)
        return self._export(request, format)

    def import_instrument_event_mappings(
        self, mappings: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        """Rows need ``arm_num``, ``unique_event_name`` and ``form``."""
        if mappings is not None and not isinstance(mappings, str):
            mappings = validate_rows(
                mappings, FormEventMappingRow, "event mapping", self._error_handler
            )
            if mappings is None:
                return None
        data, format = self._import_payload(mappings, "mappings", format)

        request = self._request(Content.FORM_EVENT_MAPPING)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    # ------------------------------------------------------------------
    # Metadata

    def export_metadata(
        self,
        format: Optional[Format] = None,
        fields: Optional[AbstractSet[str]] = None,
        forms: Optional[AbstractSet[str]] = None,
    ) -> Any:
        request = self._request(Content.METADATA)
        request.set_format(format)
        request.set_fields(fields)
        request.set_forms(forms)
        return self._export(request, format)

    def import_metadata(
        self, metadata: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        data, format = self._import_payload(metadata, "metadata", format)

        request = self._request(Content.METADATA)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    # ------------------------------------------------------------------
    # Project

    def export_project_info(self, format: Optional[Format] = None) -> Any:
        request = self._request(Content.PROJECT)
        request.set_format(format)
        return self._export(request, format)

    def import_project_info(
        self, project_info: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        data, format = self._import_payload(project_info, "projectInfo", format)

        request = self._request(Content.PROJECT_SETTINGS)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    def export_project_xml(
        self,
        return_metadata_only: bool = False,
        record_ids: Optional[AbstractSet[str]] = None,
        fields: Optional[AbstractSet[str]] = None,
        events: Optional[AbstractSet[str]] = None,
        filter_logic: Optional[str] = None,
        export_survey_fields: bool = False,
        export_data_access_groups: bool = False,
        export_files: bool = False,
    ) -> Optional[str]:
        """Export the project as a CDISC ODM XML document."""
        request = self._request(Content.PROJECT_XML)
        request.set_return_metadata_only(return_metadata_only)
        request.set_records(record_ids)
        request.set_fields(fields)
        request.set_events(events, False)
        request.set_filter_logic(filter_logic)
        request.set_export_survey_fields(export_survey_fields)
        request.set_export_data_access_groups(export_data_access_groups)
        request.set_export_files(export_files)
        return self._call(request)

    def generate_next_record_name(self) -> Optional[str]:
        return self._call(self._request(Content.GENERATE_NEXT_RECORD_NAME))

    def export_redcap_version(self) -> Optional[str]:
        return self._call(self._request(Content.VERSION))

    # ------------------------------------------------------------------
    # Records

    def export_records(
        self,
        format: Optional[Format] = None,
        type: Optional[RecordType] = None,
        record_ids: Optional[AbstractSet[str]] = None,
        fields: Optional[AbstractSet[str]] = None,
        forms: Optional[AbstractSet[str]] = None,
        events: Optional[AbstractSet[str]] = None,
        filter_logic: Optional[str] = None,
        raw_or_label: Optional[RawOrLabel] = None,
        raw_or_label_headers: Optional[RawOrLabel] = None,
        export_checkbox_label: bool = False,
        export_survey_fields: bool = False,
        export_data_access_groups: bool = False,
        date_range_begin: Optional[str] = None,
        date_range_end: Optional[str] = None,
        csv_delimiter: Optional[CsvDelimiter] = None,
        decimal_character: Optional[DecimalCharacter] = None,
    ) -> Any:
        """
        Export records.

        Args:
            format: csv, json, xml or odm; decoded JSON when omitted
            type: flat (one row per record) or eav
            record_ids, fields, forms, events: restrict the export
            filter_logic: REDCap logic expression records must satisfy
            raw_or_label, raw_or_label_headers: raw values or labels
            date_range_begin, date_range_end: YYYY-MM-DD HH:MM:SS bounds on
                record creation or modification time
            csv_delimiter: only sent for csv exports
        """
        request = self._request(Content.RECORD, Format.ODM)
        request.set_format(format)
        request.set_type(type)
        request.set_records(record_ids)
        request.set_fields(fields)
        request.set_forms(forms)
        request.set_events(events, False)
        request.set_raw_or_label(raw_or_label)
        request.set_raw_or_label_headers(raw_or_label_headers)
        request.set_export_checkbox_label(export_checkbox_label)
        request.set_export_survey_fields(export_survey_fields)
        request.set_export_data_access_groups(export_data_access_groups)
        request.set_filter_logic(filter_logic)
        request.set_date_range_begin(date_range_begin)
        request.set_date_range_end(date_range_end)
        if format is Format.CSV:
            request.set_csv_delimiter(csv_delimiter)
        request.set_decimal_character(decimal_character)
        return self._export(request, format)

    def import_records(
        self,
        records: ImportData,
        format: Optional[Format] = None,
        type: Optional[RecordType] = None,
        overwrite_behavior: Optional[OverwriteBehavior] = None,
        date_format: Optional[DateFormat] = None,
        return_content: Optional[ReturnContent] = None,
        force_auto_number: bool = False,
        csv_delimiter: Optional[CsvDelimiter] = None,
    ) -> Any:
        """
        Import records.

        Returns the number of records imported, or the list of imported
        record IDs when ``return_content`` is ids or auto_ids.
        """
        data, format = self._import_payload(records, "records", format)

        request = self._request(Content.RECORD, Format.ODM)
        request.set_format(format)
        if format is Format.CSV:
            request.set_csv_delimiter(csv_delimiter)
        request.set_type(type)
        request.set_overwrite_behavior(overwrite_behavior)
        request.set_force_auto_number(force_auto_number)
        request.set_return_content(return_content, force_auto_number)
        request.set_date_format(date_format)
        request.set_data(data)

        result = self._call(request)
        if result is None:
            return None

        # the result is JSON whatever the import format
        decoded = decode_json(result, self._error_handler)
        if isinstance(decoded, dict) and "count" in decoded:
            return int(decoded["count"])
        return decoded

    def delete_records(
        self, record_ids: AbstractSet[str], arm: Optional[int] = None
    ) -> Optional[int]:
        request = self._request(Content.RECORD)
        request.set_action(Action.DELETE)
        request.set_records(record_ids)
        request.set_arm(arm)
        return self._import(request)

    def get_record_id_field_name(self) -> Optional[str]:
        """The record ID field is the first field of the metadata."""
        metadata = self.export_metadata()
        if not metadata:
            return None
        return metadata[0].get("field_name")

    def get_record_id_batches(
        self,
        batch_size: int,
        filter_logic: Optional[str] = None,
        record_id_field_name: Optional[str] = None,
    ) -> List[List[str]]:
        """Split the project's record IDs into batches of ``batch_size``."""
        if batch_size is None:
            self._error_handler.throw_exception(
                "The number of batches was not specified.", ErrorCode.INVALID_ARGUMENT
            )
            return []
        if batch_size < 1:
            self._error_handler.throw_exception(
                "The batch size argument is less than 1. It needs to be at least 1.",
                ErrorCode.INVALID_ARGUMENT,
            )
            return []

        if record_id_field_name is None:
            record_id_field_name = self.get_record_id_field_name()
        if record_id_field_name is None:
            self._error_handler.throw_exception(
                "The record ID field name could not be determined from the "
                "project metadata.",
                ErrorCode.INVALID_ARGUMENT,
            )
            return []

        records = self.export_records(
            type=RecordType.FLAT,
            fields={record_id_field_name},
            filter_logic=filter_logic,
        ) or []

        # ordered and de-duplicated, repeating rows share a record ID
        record_ids: Dict[str, None] = {}
        for record in records:
            record_ids[record[record_id_field_name]] = None
        ids = list(record_ids)

        return [ids[i : i + batch_size] for i in range(0, len(ids), batch_size)]

    # ------------------------------------------------------------------
    # Repeating instruments and events

    def export_repeating_instruments_and_events(
        self, format: Optional[Format] = None
    ) -> Any:
        request = self._request(Content.REPEATING_FORMS_EVENTS, Format.ODM)
        request.set_format(format)
        return self._export(request, format)

    def import_repeating_instruments_and_events(
        self, forms_events: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        data, format = self._import_payload(
            forms_events, "repeating instruments/events", format
        )

        request = self._request(Content.REPEATING_FORMS_EVENTS)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    # ------------------------------------------------------------------
    # Reports

    def export_report(
        self,
        report_id: int,
        format: Optional[Format] = None,
        raw_or_label: Optional[RawOrLabel] = None,
        raw_or_label_headers: Optional[RawOrLabel] = None,
        export_checkbox_label: bool = False,
        csv_delimiter: Optional[CsvDelimiter] = None,
        decimal_character: Optional[DecimalCharacter] = None,
    ) -> Any:
        request = self._request(Content.REPORT)
        request.set_report_id(report_id)
        request.set_format(format)
        request.set_raw_or_label(raw_or_label)
        request.set_raw_or_label_headers(raw_or_label_headers)
        request.set_export_checkbox_label(export_checkbox_label)
        if format is Format.CSV:
            request.set_csv_delimiter(csv_delimiter)
        request.set_decimal_character(decimal_character)
        return self._export(request, format)

    # ------------------------------------------------------------------
    # Surveys

    def export_survey_link(
        self,
        record_id: str,
        form: str,
        event: Optional[str] = None,
        repeat_instance: Optional[int] = None,
    ) -> Optional[str]:
        request = self._request(Content.SURVEY_LINK)
        request.set_record(record_id, True)
        request.set_instrument(form, True)
        request.set_event(event)
        request.set_repeat_instance(repeat_instance)
        return self._call(request)

    def export_survey_participants(
        self,
        form: str,
        format: Optional[Format] = None,
        event: Optional[str] = None,
    ) -> Any:
        request = self._request(Content.PARTICIPANT_LIST)
        request.set_format(format)
        request.set_instrument(form, True)
        request.set_event(event)
        return self._export(request, format)

    def export_survey_queue_link(self, record_id: str) -> Optional[str]:
        request = self._request(Content.SURVEY_QUEUE_LINK)
        request.set_record(record_id, True)
        return self._call(request)

    def export_survey_return_code(
        self,
        record_id: str,
        form: str,
        event: Optional[str] = None,
        repeat_instance: Optional[int] = None,
    ) -> Optional[str]:
        request = self._request(Content.SURVEY_RETURN_CODE)
        request.set_record(record_id, True)
        request.set_instrument(form, True)
        request.set_event(event)
        request.set_repeat_instance(repeat_instance)
        return self._call(request)

    # ------------------------------------------------------------------
    # Users and data access groups

    def export_users(self, format: Optional[Format] = None) -> Any:
        request = self._request(Content.USER)
        request.set_format(format)
        return self._export(request, format)

    def import_users(
        self, users: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        data, format = self._import_payload(users, "users", format)

        request = self._request(Content.USER)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    def export_dags(self, format: Optional[Format] = None) -> Any:
        request = self._request(Content.DAG)
        request.set_format(format)
        return self._export(request, format)

    def import_dags(
        self, dags: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        data, format = self._import_payload(dags, "dag", format)

        request = self._request(Content.DAG)
        request.set_action(Action.IMPORT)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    def delete_dags(self, dags: AbstractSet[str]) -> Optional[int]:
        request = self._request(Content.DAG)
        request.set_action(Action.DELETE)
        request.set_dags(dags, True)
        return self._import(request)

    def export_user_dag_assignment(self, format: Optional[Format] = None) -> Any:
        request = self._request(Content.USER_DAG_MAPPING)
        request.set_format(format)
        return self._export(request, format)

    def import_user_dag_assignment(
        self, dag_assignments: ImportData, format: Optional[Format] = None
    ) -> Optional[int]:
        data, format = self._import_payload(dag_assignments, "userDagMapping", format)

        request = self._request(Content.USER_DAG_MAPPING)
        request.set_action(Action.IMPORT)
        request.set_format(format)
        request.set_data(data)
        return self._import(request)

    # ------------------------------------------------------------------
    # Logging

    def export_logging(
        self,
        format: Optional[Format] = None,
        log_type: Optional[LogType] = None,
        username: Optional[str] = None,
        record_id: Optional[str] = None,
        dag: Optional[str] = None,
        begin_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> Any:
        """Export the project's audit log, optionally filtered."""
        request = self._request(Content.LOG)
        request.set_format(format)
        request.set_log_type(log_type)
        request.set_user(username)
        request.set_record(record_id, False)
        request.set_dag(dag)
        request.set_begin_time(begin_time)
        request.set_end_time(end_time)
        return self._export(request, format)
