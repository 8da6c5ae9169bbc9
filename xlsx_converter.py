import logging
import re
import time
import uuid
from datetime import date, datetime, time as dt_time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, NamedTuple, Optional, Union

from openpyxl.styles.numbers import is_datetime
from pydantic import ValidationError

from spreadsheet_codec import (
    DecodedSheet,
    DecodeError,
    EncodeError,
    HeaderStyle,
    OpenpyxlCodec,
    SheetToEncode,
    SpreadsheetCodec,
)
from utils.result import ErrorKind, Result
from workbook_models import Spreadsheet, Workbook

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_STYLE = HeaderStyle(font_name="Arial", size=10, bold=True)


class LogContext:
    """Context manager for tracking and logging a conversion"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.pop('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.debug(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.debug(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )


class XlsxDocument(NamedTuple):
    """An encoded XLSX document ready to be sent as a download."""
    filename: str
    content: bytes


# Fixed-decimal number formats, optionally grouped by thousands or in percent
FIXED_NUMBER_FORMAT = re.compile(r"^(#,##)?0(?:\.(0+))?(%?)$")


def _format_number(value: Union[int, float], number_format: str) -> str:
    match = FIXED_NUMBER_FORMAT.match(number_format.split(";", 1)[0])
    if match is None:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    grouping, decimals, percent = match.groups()
    number = Decimal(str(value))
    if percent:
        number *= 100
    number = number.quantize(Decimal(1).scaleb(-len(decimals or "")), rounding=ROUND_HALF_UP)
    if number == 0:
        number = abs(number)
    return f"{number:{',' if grouping else ''}f}{percent}"


def _format_duration(value: timedelta) -> str:
    sign = "-" if value < timedelta(0) else ""
    minutes, seconds = divmod(abs(int(value.total_seconds())), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{sign}{hours}:{minutes:02d}:{seconds:02d}"


def _format_temporal(value: Union[datetime, date, dt_time], number_format: str) -> str:
    kind = is_datetime(number_format)
    if isinstance(value, datetime):
        if kind == "date":
            return value.date().isoformat()
        if kind == "time":
            return value.time().isoformat()
        if kind == "datetime":
            return value.isoformat(sep=" ")
    return value.isoformat()


def cell_to_text(value: Any, number_format: str = "General") -> str:
    """
    Render a decoded cell value the way a spreadsheet application shows it.

    Dates follow the date, time or date and time shape of their number
    format. Numbers honour fixed decimal, thousands and percent formats;
    other formats fall back to the shortest text of the value.

    Args:
        value: Raw cell value as returned by the codec
        number_format: Number format of the cell

    Returns:
        str: The displayed text, "" for an empty cell
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, timedelta):
        return _format_duration(value)
    if isinstance(value, (datetime, date, dt_time)):
        return _format_temporal(value, number_format)
    if isinstance(value, (int, float)):
        return _format_number(value, number_format)
    return str(value)


class XlsxConverter:
    """
    Converts between XLSX documents and the Workbook model.

    The converter holds no per-request state and can be shared between
    concurrent requests. Expected failures are returned as failed Results;
    they are also logged here with their cause.
    """

    def __init__(self, codec: Optional[SpreadsheetCodec] = None):
        self.codec = codec or OpenpyxlCodec()

    def xlsx_to_workbook(self, payload: bytes, filename: str) -> Result[Workbook]:
        """
        Decode an XLSX document into a Workbook.

        The first row of each sheet becomes its columns, every following
        row is kept in order with its own number of cells.

        Args:
            payload: Complete XLSX document
            filename: Display name of the document, used as the workbook name

        Returns:
            Result[Workbook]: The workbook, or an INVALID_DOCUMENT failure
        """
        log_context = {"file": filename, "size": len(payload)}
        try:
            with LogContext("XLSX decoding", **log_context):
                decoded = self.codec.decode(payload)
            workbook = self._build_workbook(decoded, filename)
        except DecodeError:
            return Result.invalid_document()
        except Exception as e:
            logger.exception("Unexpected error during XLSX decoding", extra={**log_context, "error": str(e)})
            return Result.fail(f"Processing error: {e}", ErrorKind.INVALID_DOCUMENT)

        logger.info("XLSX -> JSON", extra={**log_context, "num_sheets": workbook.sheet_count})
        return Result.ok(workbook)

    def xlsx_to_json(self, payload: bytes, filename: str) -> Result[str]:
        """Decode an XLSX document and serialize the workbook as JSON."""
        return self.xlsx_to_workbook(payload, filename).and_then(self._serialize_json)

    def json_to_workbook(self, payload: bytes) -> Result[Workbook]:
        """
        Deserialize a JSON workbook.

        Returns:
            Result[Workbook]: The workbook, or a MALFORMED_JSON failure carrying
                the parser's message
        """
        try:
            return Result.ok(Workbook.from_json(payload))
        except ValidationError as e:
            logger.error("Unable to decode JSON workbook", extra={"size": len(payload), "error": str(e)})
            return Result.fail(str(e), ErrorKind.MALFORMED_JSON)

    def workbook_to_xlsx(self, workbook: Workbook) -> Result[XlsxDocument]:
        """
        Encode a Workbook as an XLSX document.

        Each spreadsheet becomes one sheet: its columns as a bold header row,
        then its rows as text cells without type conversion.

        Returns:
            Result[XlsxDocument]: The document named after the workbook, or an
                ENCODE_FAILURE failure
        """
        log_context = {"workbook_name": workbook.name, "num_sheets": workbook.sheet_count}
        logger.info("JSON -> XLSX", extra=log_context)

        sheets = [
            SheetToEncode(name=sheet.name, header=sheet.columns, rows=sheet.rows or [])
            for sheet in workbook.sheets or []
        ]
        try:
            with LogContext("XLSX encoding", **log_context):
                content = self.codec.encode(sheets, HEADER_STYLE)
        except EncodeError as e:
            return Result.fail(f"unable to write XLSX: {e}", ErrorKind.ENCODE_FAILURE)
        except Exception as e:
            logger.exception("Unexpected error during XLSX encoding", extra={**log_context, "error": str(e)})
            return Result.fail(f"Processing error: {e}", ErrorKind.ENCODE_FAILURE)

        return Result.ok(XlsxDocument(filename=workbook.name, content=content))

    def json_to_xlsx(self, payload: bytes) -> Result[XlsxDocument]:
        """Deserialize a JSON workbook and encode it as an XLSX document."""
        return self.json_to_workbook(payload).and_then(self.workbook_to_xlsx)

    @staticmethod
    def _serialize_json(workbook: Workbook) -> Result[str]:
        try:
            return Result.ok(workbook.to_json())
        except ValueError as e:
            logger.error("Unable to encode workbook", extra={"file": workbook.name, "error": str(e)})
            return Result.fail(f"unable to encode workbook: {e}", ErrorKind.ENCODE_FAILURE)

    @staticmethod
    def _build_workbook(decoded: List[DecodedSheet], filename: str) -> Workbook:
        workbook = Workbook(name=filename, sheets=[])
        for sheet in decoded:
            spreadsheet = Spreadsheet(name=sheet.name)
            for row in sheet.rows:
                spreadsheet.add_row([cell_to_text(cell.value, cell.number_format) for cell in row])
            workbook.sheets.append(spreadsheet)
        return workbook
