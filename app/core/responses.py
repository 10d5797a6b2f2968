"""
Uniform JSON envelope for every API response.

Success:  {"meta": {...}, "data": {...}}
Failure:  {"meta": {...}, "error": [{"key": ..., "message": ...}, ...]}
"""
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional


def build_meta(success: bool, status_code: int) -> Dict[str, Any]:
    return {
        "status": "SUCCESS" if success else "FAILED",
        "status_code": status_code,
        "current_page": 1,
        "total_page": 1,
    }


def success_response(data: Optional[Dict[str, Any]] = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Wrap a payload under `data` with a SUCCESS meta block"""
    return JSONResponse(
        status_code=status_code,
        content={
            "meta": build_meta(True, status_code),
            "data": jsonable_encoder(data or {}),
        },
    )


def error_response(errors: List[Dict[str, str]], status_code: int) -> JSONResponse:
    """Wrap a list of {key, message} entries under `error` with a FAILED meta block"""
    return JSONResponse(
        status_code=status_code,
        content={
            "meta": build_meta(False, status_code),
            "error": errors,
        },
    )
