"""
Document model shared by both conversion directions.

A Workbook holds an ordered list of Spreadsheets; each Spreadsheet holds its
header row (``columns``) and body rows (``rows``). Field aliases carry the
names used on the wire.
"""
from http import HTTPStatus
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.result import Result


class Spreadsheet(BaseModel):
    """
    One sheet of a workbook.

    Attributes:
        name: Sheet (tab) name
        columns: Cells of the header row, None for a sheet without rows
        rows: Body rows, None when the sheet has no row after the header.
            Rows keep their own length and are never padded to the header width.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    columns: Optional[List[str]] = None
    rows: Optional[List[List[str]]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _null_name(cls, value: Optional[str]) -> str:
        return "" if value is None else value

    def add_row(self, cells: Sequence[str]) -> None:
        """
        Append a row read from a sheet.

        The first row added becomes the header, every later row a body row.
        """
        if self.columns is None:
            self.columns = list(cells)
            return
        if self.rows is None:
            self.rows = []
        self.rows.append(list(cells))


class Workbook(BaseModel):
    """
    A whole spreadsheet document.

    Attributes:
        name: Document name, used as the download filename for XLSX output
        sheets: Sheets in document order (``spreadsheets`` on the wire)
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    sheets: Optional[List[Spreadsheet]] = Field(default=None, alias="spreadsheets")

    @field_validator("name", mode="before")
    @classmethod
    def _null_name(cls, value: Optional[str]) -> str:
        return "" if value is None else value

    @classmethod
    def from_json(cls, payload: Union[bytes, str]) -> "Workbook":
        """
        Deserialize a workbook from JSON.

        Raises:
            pydantic.ValidationError: If the payload is not valid JSON or
                does not have the workbook's shape
        """
        return cls.model_validate_json(payload)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @property
    def sheet_count(self) -> int:
        return len(self.sheets or [])


class JsonError(BaseModel):
    """
    Error payload returned for every failed request.

    Attributes:
        code: HTTP status code (``http_error_code`` on the wire)
        http_error: Standard status phrase
        message: Human readable cause
    """
    model_config = ConfigDict(populate_by_name=True)

    code: int = Field(alias="http_error_code")
    http_error: str
    message: str

    @classmethod
    def from_result(cls, result: Result) -> "JsonError":
        return cls.model_validate(result.to_dict())

    @classmethod
    def internal_server_error(cls, message: str) -> "JsonError":
        status = HTTPStatus.INTERNAL_SERVER_ERROR
        return cls(code=status.value, http_error=status.phrase, message=message)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
