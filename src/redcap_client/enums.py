"""
Enumerations shared by the request model, serializer and API facades.

Every member carries the wire label the REDCap API expects as its value,
so ``Format.JSON.label == "json"`` while the member name stays ``JSON``.
"""

from enum import Enum
from typing import FrozenSet


class ApiEnum(str, Enum):
    """Enum whose value is the canonical wire label."""

    @property
    def label(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class Parameter(ApiEnum):
    ACTION = "action"
    ALL_RECORDS = "allRecords"
    ARM = "arm"
    ARMS = "arms"
    BEGIN_TIME = "beginTime"
    COMPACT_DISPLAY = "compactDisplay"
    CONTENT = "content"
    CSV_DELIMITER = "csvDelimiter"
    DAG = "dag"
    DAGS = "dags"
    DATA = "data"
    DATE_FORMAT = "dateFormat"
    DATE_RANGE_BEGIN = "dateRangeBegin"
    DATE_RANGE_END = "dateRangeEnd"
    DECIMAL_CHARACTER = "decimalCharacter"
    END_TIME = "endTime"
    EVENT = "event"
    EVENTS = "events"
    EXPORT_CHECKBOX_LABEL = "exportCheckboxLabel"
    EXPORT_DATA_ACCESS_GROUPS = "exportDataAccessGroups"
    EXPORT_FILES = "exportFiles"
    EXPORT_SURVEY_FIELDS = "exportSurveyFields"
    FIELD = "field"
    FIELDS = "fields"
    FILE = "file"
    FILTER_LOGIC = "filterLogic"
    FORCE_AUTO_NUMBER = "forceAutoNumber"
    FORMAT = "format"
    FORMS = "forms"
    INSTRUMENT = "instrument"
    LOGTYPE = "logtype"
    ODM = "odm"
    OVERRIDE = "override"
    OVERWRITE_BEHAVIOR = "overwriteBehavior"
    RAW_OR_LABEL = "rawOrLabel"
    RAW_OR_LABEL_HEADERS = "rawOrLabelHeaders"
    RECORD = "record"
    RECORDS = "records"
    REPEAT_INSTANCE = "repeat_instance"
    REPORT_ID = "report_id"
    RETURN_CONTENT = "returnContent"
    RETURN_FORMAT = "returnFormat"
    RETURN_METADATA_ONLY = "returnMetadataOnly"
    TOKEN = "token"
    TYPE = "type"
    USER = "user"


class Content(ApiEnum):
    ARM = "arm"
    DAG = "dag"
    EVENT = "event"
    EXPORT_FIELD_NAMES = "exportFieldNames"
    FILE = "file"
    FORM_EVENT_MAPPING = "formEventMapping"
    GENERATE_NEXT_RECORD_NAME = "generateNextRecordName"
    INSTRUMENT = "instrument"
    LOG = "log"
    METADATA = "metadata"
    PARTICIPANT_LIST = "participantList"
    PDF = "pdf"
    PROJECT = "project"
    PROJECT_SETTINGS = "project_settings"
    PROJECT_XML = "project_xml"
    RECORD = "record"
    REPORT = "report"
    REPEATING_FORMS_EVENTS = "repeatingFormsEvents"
    SURVEY_LINK = "surveyLink"
    SURVEY_QUEUE_LINK = "surveyQueueLink"
    SURVEY_RETURN_CODE = "surveyReturnCode"
    USER = "user"
    USER_DAG_MAPPING = "userDagMapping"
    VERSION = "version"


class Format(ApiEnum):
    CSV = "csv"
    FILE = "file"
    JSON = "json"
    ODM = "odm"
    XML = "xml"


class Action(ApiEnum):
    IMPORT = "import"
    EXPORT = "export"
    DELETE = "delete"


class CsvDelimiter(ApiEnum):
    COMMA = ","
    SEMICOLON = ";"
    TAB = "tab"
    PIPE = "|"
    CARET = "^"


class DateFormat(ApiEnum):
    MDY = "MDY"
    DMY = "DMY"
    YMD = "YMD"


class DecimalCharacter(ApiEnum):
    COMMA = ","
    PERIOD = "."


class LogType(ApiEnum):
    EXPORT = "export"
    MANAGE = "manage"
    USER = "user"
    RECORD = "record"
    RECORD_ADD = "record_add"
    RECORD_EDIT = "record_edit"
    RECORD_DELETE = "record_delete"
    LOCK_RECORD = "lock_record"
    PAGE_VIEW = "page_view"


class OverwriteBehavior(ApiEnum):
    NORMAL = "normal"
    OVERWRITE = "overwrite"


class RawOrLabel(ApiEnum):
    RAW = "raw"
    LABEL = "label"


class ReturnContent(ApiEnum):
    COUNT = "count"
    AUTO_IDS = "auto_ids"
    IDS = "ids"


class RecordType(ApiEnum):
    EAV = "eav"
    FLAT = "flat"


DEFAULT_FORMAT = Format.JSON

DEFAULT_LEGAL_FORMATS: FrozenSet[Format] = frozenset(
    {Format.CSV, Format.JSON, Format.XML}
)
