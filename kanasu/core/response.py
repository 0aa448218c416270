from typing import Any, Optional

from fastapi.encoders import jsonable_encoder


def success_response(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    """Uniform success envelope: {"success": true, "message": ..., "data": ...}."""
    body = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    for key, value in extra.items():
        body[key] = jsonable_encoder(value)
    return body
