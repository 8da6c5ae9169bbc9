from fastapi import FastAPI, Request
import os
import logging
from datetime import datetime
from http import HTTPStatus
from typing import Optional, Tuple
from urllib.parse import quote
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect

from settings import Settings, get_settings
from utils.result import ErrorKind, Result
from workbook_models import JsonError
from xlsx_converter import JSON_MIME_TYPE, XLSX_MIME_TYPE, XlsxConverter, XlsxDocument

logger = logging.getLogger(__name__)

# Define static folder path
STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")
UPLOAD_FORM_PATH = os.path.join(STATIC_DIR, "upload.html")

UPLOAD_FIELD = "file"


def configure_logging(settings: Settings) -> None:
    """
    Configure process logging from the settings.

    Logs go to stderr and, unless LOG_DIR is empty, to a daily file in LOG_DIR.
    """
    logging.basicConfig(level=settings.log_level, format=settings.LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    if not settings.LOG_DIR:
        return

    # Create logs directory if it doesn't exist
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_file_path = os.path.abspath(
        os.path.join(settings.LOG_DIR, f"app_{datetime.now().strftime('%Y%m%d')}.log")
    )
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_file_path:
            return

    file_handler = logging.FileHandler(log_file_path)
    file_handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    root_logger.addHandler(file_handler)


def media_type(content_type: Optional[str]) -> str:
    """Strip parameters such as charset from a Content-Type value."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header for a download.

    Names that cannot travel in a latin-1 header are sent RFC 5987 encoded.
    """
    try:
        filename.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{quote(filename)}"
    return f"attachment; filename={filename}"


def error_response(result: Result) -> JSONResponse:
    """Log a failed Result and turn it into the JSON error payload."""
    logger.error(
        "HTTP error",
        extra={"error_kind": result.kind.value if result.kind else None, "error": result.error}
    )
    return JSONResponse(
        status_code=result.status_code,
        content=JsonError.from_result(result).to_dict()
    )


def xlsx_response(document: XlsxDocument) -> Response:
    return Response(
        content=document.content,
        media_type=XLSX_MIME_TYPE,
        headers={"Content-Disposition": content_disposition(document.filename)}
    )


async def read_body(request: Request) -> Result[bytes]:
    try:
        return Result.ok(await request.body())
    except ClientDisconnect as e:
        logger.warning("Client disconnected while sending the request body", exc_info=e)
        return Result.fail("unable to read request body", ErrorKind.READ_FAILURE)


async def read_upload(request: Request, field_name: str = UPLOAD_FIELD) -> Result[Tuple[bytes, UploadFile]]:
    """
    Read the uploaded file of a form request into memory.

    The upload is closed before returning, whatever the outcome.

    Returns:
        Result holding the file content and the upload (for its filename and
        content type), or a MISSING_UPLOAD_FIELD / READ_FAILURE failure
    """
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        logger.warning("Unable to parse form", extra={"error": str(e)})
        return Result.missing_upload_field(field_name)

    upload = form.get(field_name)
    if not isinstance(upload, UploadFile):
        return Result.missing_upload_field(field_name)

    try:
        payload = await upload.read()
    except OSError as e:
        logger.error("Unable to read upload", extra={"file": upload.filename, "error": str(e)}, exc_info=e)
        return Result.fail(f"unable to read uploaded file: {e}", ErrorKind.READ_FAILURE)
    finally:
        await upload.close()
    return Result.ok((payload, upload))


def create_app(settings: Settings, converter: Optional[XlsxConverter] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings
        converter: Converter to use, a default one when None

    Returns:
        FastAPI: The configured application
    """
    configure_logging(settings)
    converter = converter or XlsxConverter()

    logger.debug(
        "Environment config",
        extra={"api_host": settings.API_HOST, "api_port": settings.API_PORT, "debug": settings.DEBUG}
    )

    # Initialize FastAPI app with metadata
    app = FastAPI(
        title="XLSX2JSON API",
        description="API converting XLSX documents to JSON and JSON documents to XLSX",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_cors_header(request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        status = HTTPStatus(exc.status_code)
        error = JsonError(code=status.value, http_error=status.phrase, message=str(exc.detail))
        return JSONResponse(status_code=status.value, content=error.to_dict(), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        error = JsonError.internal_server_error(str(exc))
        # Served outside the middleware stack, so the CORS header is set here
        return JSONResponse(
            status_code=error.code,
            content=error.to_dict(),
            headers={"Access-Control-Allow-Origin": "*"}
        )

    async def convert_json(payload: bytes) -> Response:
        result = await run_in_threadpool(converter.json_to_xlsx, payload)
        if result.is_failure():
            return error_response(result)
        return xlsx_response(result.data)

    async def convert_xlsx(payload: bytes, filename: str) -> Response:
        result = await run_in_threadpool(converter.xlsx_to_json, payload, filename)
        if result.is_failure():
            return error_response(result)
        return Response(content=result.data, media_type=JSON_MIME_TYPE)

    if settings.DEBUG:
        with open(UPLOAD_FORM_PATH, encoding="utf-8") as f:
            upload_form = f.read()

        @app.get("/", response_class=HTMLResponse, tags=["Debug"])
        async def welcome():
            """Serve an HTML form for uploading a file by hand."""
            return HTMLResponse(upload_form)

    @app.post("/", tags=["Conversion"])
    async def receive_file(request: Request):
        """
        Convert an uploaded document.

        A JSON body is converted to XLSX. A multipart form must carry the
        document in its ``file`` field: JSON uploads are converted to XLSX,
        anything else is read as XLSX and converted to JSON.
        """
        if media_type(request.headers.get("content-type")) == JSON_MIME_TYPE:
            body = await read_body(request)
            if body.is_failure():
                return error_response(body)
            return await convert_json(body.data)

        upload = await read_upload(request)
        if upload.is_failure():
            return error_response(upload)

        payload, upload_file = upload.data
        if media_type(upload_file.content_type) == JSON_MIME_TYPE:
            return await convert_json(payload)
        return await convert_xlsx(payload, upload_file.filename or "")

    @app.post("/json2xlsx", tags=["Conversion"])
    async def receive_json(request: Request):
        """Convert a JSON workbook sent as the request body to XLSX."""
        body = await read_body(request)
        if body.is_failure():
            return error_response(body)
        return await convert_json(body.data)

    return app


settings = get_settings()
app = create_app(settings)


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info(
        "Starting XLSX2JSON API",
        extra={"api_host": settings.API_HOST, "api_port": settings.API_PORT, "debug": settings.DEBUG}
    )
    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
