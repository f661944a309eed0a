"""
공통 응답 포맷

{"success": bool, "message": str, "data": ..., ("count": int)}
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str = "", count: Optional[int] = None, status_code: int = 200) -> JSONResponse:
    body = {"success": True, "message": message, "data": data}
    if count is not None:
        body["count"] = count
    return JSONResponse(status_code=status_code, content=body)


def fail(message: str, status_code: int, **extra: Any) -> JSONResponse:
    body = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=body)
