"""
Error taxonomy and the FastAPI handlers that render it.

Every domain error carries a list of {key, message} entries and an HTTP
status code; the handlers turn them into the failure envelope from
app.core.responses. Request body validation errors raised by FastAPI are
converted the same way, with at most one entry per field.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, Iterable, List, Tuple

from app.core.responses import error_response


class APIError(Exception):
    """Base class for errors surfaced to API clients"""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: Iterable[Tuple[str, str]], status_code: int = None):
        self.errors: List[Dict[str, str]] = [
            {"key": key, "message": message} for key, message in errors
        ]
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.errors)

    @classmethod
    def single(cls, key: str, message: str) -> "APIError":
        return cls([(key, message)])


class ValidationFailed(APIError):
    """Field or business-rule validation failure"""
    status_code = status.HTTP_403_FORBIDDEN


class BadRequest(APIError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class TransactionFailed(APIError):
    """A write was rolled back; nothing was persisted"""
    status_code = status.HTTP_417_EXPECTATION_FAILED


class Unauthenticated(Exception):
    """Raised before any business logic when no valid bearer token is present"""


# Messages for pydantic error types; custom validator errors carry their own message
FIELD_RULE_MESSAGES = {
    "missing": "The {field} field is required.",
    "string_too_short": "The {field} field is required.",
    "string_type": "The {field} must be a string.",
    "decimal_parsing": "The {field} must be a number.",
    "decimal_type": "The {field} must be a number.",
    "finite_number": "The {field} must be a number.",
    "float_parsing": "The {field} must be a number.",
    "float_type": "The {field} must be a number.",
    "int_parsing": "The {field} must be a number.",
    "int_type": "The {field} must be a number.",
    "int_from_float": "The {field} must be an integer.",
    "decimal_max_places": "The {field} may not have more than {decimal_places} decimal places.",
    "decimal_max_digits": "The {field} may not be greater than {max_digits} digits.",
    "decimal_whole_digits": "The {field} is too large.",
}


def format_validation_errors(raw_errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Collapse pydantic errors to the first failure per field, in field order"""
    errors: List[Dict[str, str]] = []
    seen = set()
    for error in raw_errors:
        loc = error.get("loc") or ("body",)
        field = str(loc[-1]) if len(loc) > 1 else str(loc[0])
        if field in seen:
            continue
        seen.add(field)

        template = FIELD_RULE_MESSAGES.get(error.get("type"))
        if template is None:
            message = error.get("msg", "The {field} is invalid.")
        else:
            context = dict(error.get("ctx") or {})
            message = template.format(field=field.replace("_", " "), **context)
        errors.append({"key": field, "message": message})
    return errors


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return error_response(exc.errors, exc.status_code)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(format_validation_errors(exc.errors()), status.HTTP_403_FORBIDDEN)


async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"message": "Unauthenticated."},
        headers={"WWW-Authenticate": "Bearer"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Unauthenticated, unauthenticated_handler)
