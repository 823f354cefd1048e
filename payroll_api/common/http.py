# payroll_api/common/http.py
from decimal import Decimal

from flask import jsonify


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status


def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


def money(v) -> float:
    """Decimal/None -> float with 2dp for JSON payloads."""
    if v is None:
        return 0.0
    return float(Decimal(str(v)).quantize(Decimal("0.01")))


def iso(v):
    return v.isoformat() if v is not None else None
