"""
XLSX2JSON API

This package provides an HTTP API converting XLSX documents to JSON and
JSON documents back to XLSX.

Key modules:
- main.py: FastAPI application factory with the API endpoints
- xlsx_converter.py: Forward (XLSX -> JSON) and reverse (JSON -> XLSX) conversion
- workbook_models.py: Workbook / Spreadsheet document model and error payload
- spreadsheet_codec.py: XLSX codec interface and its openpyxl implementation
- settings.py: Environment driven configuration
- utils/result.py: Result pattern implementation for error handling
"""
