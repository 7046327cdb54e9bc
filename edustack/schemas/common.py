# edustack/schemas/common.py - Response envelope shared by every endpoint
from pydantic import BaseModel
from typing import Any, Optional


class ApiResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[Any] = None


def api_response(message: str, data: Any = None, success: bool = True) -> dict:
    """Build the {success, message, data} envelope; data is left out when None"""
    body = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return body
