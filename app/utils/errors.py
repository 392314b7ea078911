"""Standardised API error responses.

Usage
-----
    from app.utils.errors import api_error, E

    return api_error(E.DATA_SOURCE, "Failed to calculate deadline predictions")
    return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Routing – HTTP 404 / 405
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"

    # Server – HTTP 500
    DATA_SOURCE = "ERR_DATA_SOURCE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.DATA_SOURCE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
        Body: ``{"success": false, "error": message, "code": code}``.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "success": False,
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def api_success(data, status: int = 200):
    """Return the standard success envelope ``{"success": true, "data": ...}``."""
    return jsonify({"success": True, "data": data}), status
