from enum import Enum
from typing import Generic, TypeVar, Optional, Callable, Any, Dict, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Additional type variable for chained operations


class ErrorKind(str, Enum):
    """
    Kinds of failure a conversion can end in.

    Every kind currently maps to 500 Internal Server Error so clients see a
    single, uniform error contract whatever the cause.
    """
    MISSING_UPLOAD_FIELD = "MissingUploadField"
    READ_FAILURE = "ReadFailure"
    INVALID_DOCUMENT = "InvalidDocument"
    MALFORMED_JSON = "MalformedJson"
    ENCODE_FAILURE = "EncodeFailure"

    @property
    def status_code(self) -> HTTPStatus:
        return HTTPStatus.INTERNAL_SERVER_ERROR


class Result(Generic[T]):
    """
    A generic result class that represents the outcome of a conversion.

    This class is used to return either successful results with data
    or failed results with an error message and its kind.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Error message (only present when success is False)
        kind (Optional[ErrorKind]): What went wrong (only present when success is False)
        status_code (HTTPStatus): HTTP status code derived from the outcome
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        """
        Initialize a Result object.

        Args:
            success (bool): Whether the operation succeeded
            data (Optional[T], optional): The data returned by a successful operation. Defaults to None.
            error (Optional[str], optional): Error message for a failed operation. Defaults to None.
            kind (Optional[ErrorKind], optional): Kind of failure. Defaults to None.
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code.
                Defaults to 200 for success and to the kind's status for failure.
        """
        self.success = success
        self.data = data
        self.error = error
        self.kind = kind

        if status_code is None:
            if success:
                self.status_code = HTTPStatus.OK
            elif kind is not None:
                self.status_code = kind.status_code
            else:
                self.status_code = HTTPStatus.INTERNAL_SERVER_ERROR
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind) -> "Result[T]":
        """
        Create a failed Result with the provided error message.

        Args:
            error (str): The error message describing the failure
            kind (ErrorKind): The kind of failure, which also decides the HTTP status

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, error=error, kind=kind)

    @classmethod
    def missing_upload_field(cls, field_name: str = "file") -> "Result[T]":
        """Create a failed Result for a form request without the upload field."""
        return cls.fail(
            f"parameter named '{field_name}' not found in form",
            ErrorKind.MISSING_UPLOAD_FIELD,
        )

    @classmethod
    def invalid_document(cls) -> "Result[T]":
        """Create a failed Result for bytes that are not a spreadsheet."""
        return cls.fail("invalid spreadsheet stream", ErrorKind.INVALID_DOCUMENT)

    def is_success(self) -> bool:
        """
        Check if the Result represents a successful operation.

        Returns:
            bool: True if the Result is successful, False otherwise
        """
        return self.success

    def is_failure(self) -> bool:
        """
        Check if the Result represents a failed operation.

        Returns:
            bool: True if the Result is a failure, False otherwise
        """
        return not self.success

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain operations that return Result objects.

        If this Result is a failure, it short-circuits and returns a copy of
        the failure. If it's a success, it applies the function to the data
        and returns the new Result.

        Args:
            fn (Callable[[T], Result[U]]): Function that takes the success data and returns a new Result

        Returns:
            Result[U]: Either the original failure or the new Result from the function
        """
        if not self.is_success():
            return Result(success=False, error=self.error, kind=self.kind, status_code=self.status_code)
        return fn(self.data)  # type: ignore

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert a failed Result to the JSON error payload sent to clients.

        Returns:
            Dict[str, Any]: Dictionary with http_error_code, http_error and message
        """
        return {
            "http_error_code": self.status_code.value,
            "http_error": self.status_code.phrase,
            "message": self.error or "",
        }

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}, {self.kind.value if self.kind else 'unknown'}): {self.error}"
