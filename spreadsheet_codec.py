"""
Spreadsheet codec: the boundary between the converters and the XLSX format.

Converters only rely on :class:`SpreadsheetCodec`, so any library able to read
and write XLSX can stand behind it. :class:`OpenpyxlCodec` is the
implementation used by the API.
"""
import io
import logging
from dataclasses import dataclass
from typing import Any, List, NamedTuple, Optional, Protocol, Sequence

import openpyxl
from openpyxl.styles import Font

logger = logging.getLogger(__name__)


class CodecError(Exception):
    """Base class for codec failures."""


class DecodeError(CodecError):
    """The bytes could not be read as a spreadsheet document."""


class EncodeError(CodecError):
    """A spreadsheet document could not be built or serialized."""


class DecodedCell(NamedTuple):
    """A raw cell value and the number format it is displayed with."""
    value: Any
    number_format: str = "General"


class DecodedSheet(NamedTuple):
    """
    A sheet as read from a document.

    ``rows`` holds cells in document order. A row ends at its last stored
    cell and the sheet ends at its last row with a stored cell, so a cell
    written as an empty string is kept while padding is not. Gaps between
    stored cells are filled with empty cells.
    """
    name: str
    rows: List[List[DecodedCell]]


class SheetToEncode(NamedTuple):
    """A sheet to write: an optional header row followed by body rows."""
    name: str
    header: Optional[Sequence[str]]
    rows: Sequence[Sequence[str]]


@dataclass(frozen=True)
class HeaderStyle:
    """Font applied to every header cell."""
    font_name: str = "Arial"
    size: int = 10
    bold: bool = True


class SpreadsheetCodec(Protocol):
    def decode(self, data: bytes) -> List[DecodedSheet]:
        ...

    def encode(self, sheets: Sequence[SheetToEncode], header_style: HeaderStyle) -> bytes:
        ...


def _is_padding(cell) -> bool:
    # iter_rows fills gaps with blank cells that were never stored in the file
    return cell.value is None and cell.data_type == "n" and not cell.has_style


def _read_row(cells: Sequence[Any]) -> List[DecodedCell]:
    end = len(cells)
    while end and _is_padding(cells[end - 1]):
        end -= 1
    return [DecodedCell(cell.value, cell.number_format) for cell in cells[:end]]


class OpenpyxlCodec:
    """XLSX codec backed by openpyxl."""

    def decode(self, data: bytes) -> List[DecodedSheet]:
        """
        Read every worksheet of an XLSX document.

        Formula cells yield their cached value, as shown by a spreadsheet
        application. Each cell comes with its number format so callers can
        render it the way it is displayed.

        Raises:
            DecodeError: If the bytes are not a readable XLSX document
        """
        try:
            workbook = openpyxl.load_workbook(
                io.BytesIO(data),
                data_only=True,
                keep_links=False,
            )
        except Exception as e:
            raise DecodeError(f"{type(e).__name__}: {e}") from e

        try:
            sheets = []
            for worksheet in workbook.worksheets:
                rows = [_read_row(row) for row in worksheet.iter_rows()]
                while rows and not rows[-1]:
                    rows.pop()
                sheets.append(DecodedSheet(name=worksheet.title, rows=rows))
                logger.debug("Decoded sheet", extra={"sheet": worksheet.title, "row_count": len(rows)})
            return sheets
        except Exception as e:
            raise DecodeError(f"{type(e).__name__}: {e}") from e
        finally:
            workbook.close()

    def encode(self, sheets: Sequence[SheetToEncode], header_style: HeaderStyle = HeaderStyle()) -> bytes:
        """
        Build an XLSX document and return its bytes.

        Every cell is written as text. Row 1 holds the header cells, styled
        with ``header_style``; body rows follow unstyled. Sheet names are
        validated by openpyxl.

        Raises:
            EncodeError: If a sheet cannot be created or the document cannot be saved
        """
        try:
            workbook = openpyxl.Workbook()
            workbook.remove(workbook.active)
            font = Font(name=header_style.font_name, size=header_style.size, bold=header_style.bold)

            for sheet in sheets:
                worksheet = workbook.create_sheet(title=sheet.name)
                # Row 1 is the header even when it is empty
                for cell in self._write_row(worksheet, 1, sheet.header or []):
                    cell.font = font
                for row_index, values in enumerate(sheet.rows, start=2):
                    self._write_row(worksheet, row_index, values)

            buffer = io.BytesIO()
            workbook.save(buffer)
            return buffer.getvalue()
        except Exception as e:
            raise EncodeError(f"{type(e).__name__}: {e}") from e

    @staticmethod
    def _write_row(worksheet, row_index: int, values: Sequence[str]) -> list:
        cells = []
        for column_index, value in enumerate(values, start=1):
            cell = worksheet.cell(row=row_index, column=column_index, value=value)
            # Text starting with "=" would otherwise be stored as a formula
            cell.data_type = "s"
            cells.append(cell)
        return cells
