"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and provides the
XLSX documents and API clients shared by the test modules.
"""
import io
import os
import sys
import zipfile

import pytest

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

import openpyxl  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


def build_xlsx(sheets):
    """
    Build an XLSX document in memory.

    Args:
        sheets: Mapping of sheet name to a list of rows; a row is a list of cell values

    Returns:
        bytes: The XLSX document
    """
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row_index, row in enumerate(rows, start=1):
            for column_index, value in enumerate(row, start=1):
                if value is not None:
                    worksheet.cell(row=row_index, column=column_index, value=value)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def sample_xlsx():
    """
    Fixture providing a two sheet XLSX document.

    Returns:
        bytes: Document with "Sheet 1" (5 columns) and "Sheet 2" (3 columns)
    """
    return build_xlsx({
        "Sheet 1": [
            ["Column0", "Column1", "Column2", "Column3", "Column4"],
            ["1", "2", "3", "4", "5"],
            ["a", "b", "c", "d", "e"],
        ],
        "Sheet 2": [
            ["Column0", "Column1", "Column2"],
            ["1", "2", "3"],
            ["a", "b", "c"],
        ],
    })


@pytest.fixture
def empty_xlsx():
    """Fixture providing an XLSX document whose only sheet has no cells."""
    return build_xlsx({"Sheet 1": []})


@pytest.fixture
def ragged_xlsx():
    """Fixture providing an XLSX document whose body rows differ in length."""
    return build_xlsx({
        "Ragged": [
            ["h1", "h2", "h3"],
            ["only one"],
            ["a", "b", "c", "d", "e"],
            ["x", None, "z"],
        ],
    })


@pytest.fixture
def zip_without_workbook():
    """Fixture providing a valid ZIP archive that is not a spreadsheet."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("readme.txt", "not a spreadsheet")
    return buffer.getvalue()


@pytest.fixture
def sample_workbook_json():
    """Fixture providing the JSON form of a one sheet workbook."""
    return (
        '{"name":"sample.xlsx","spreadsheets":[{"name":"Sheet 1",'
        '"columns":["Column0","Column1","Column2","Column3","Column4"],'
        '"rows":[["1","2","3","4","5"],["a","b","c","d","e"]]}]}'
    )


@pytest.fixture
def settings():
    from settings import Settings
    return Settings(API_HOST="localhost", API_PORT=8000, DEBUG=False, LOG_DIR="")


@pytest.fixture
def client(settings):
    from main import create_app
    return TestClient(create_app(settings))


@pytest.fixture
def debug_client(settings):
    from main import create_app
    return TestClient(create_app(settings.model_copy(update={"DEBUG": True})))
