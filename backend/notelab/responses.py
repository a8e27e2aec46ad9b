"""
Response envelopes shared by every route.

Success: {"success": true, "data": ..., "timestamp": ...}
Error:   {"error": true, "message": ..., "code": ..., "timestamp": ...}
"""
from datetime import datetime
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-09T14:00:00.123Z"""
    return datetime.utcnow().isoformat(timespec="milliseconds") + "Z"


def success(data: Any = None) -> dict:
    """Wrap route output in the success envelope"""
    return {
        "success": True,
        "data": jsonable_encoder(data),
        "timestamp": utc_timestamp(),
    }


def error_response(
    message: str,
    status_code: int,
    code: str,
    headers: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "code": code,
            "timestamp": utc_timestamp(),
        },
        headers=headers,
    )
