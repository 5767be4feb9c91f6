"""
Response envelope shared by every API endpoint:
``{success: bool, data?: object, error?: string, message?: string}``.
"""

from typing import Any, Dict, Optional


def ok(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Successful envelope. Absent parts are omitted, not sent as null."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def failure(error: str) -> Dict[str, Any]:
    """Failure envelope with a short human-readable error."""
    return {"success": False, "error": error}
