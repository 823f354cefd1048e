from __future__ import annotations
from datetime import date
from typing import Optional

from flask import Blueprint, request

from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import APIError
from payroll_api.common.http import ok, fail
from payroll_api.services.payroll_rows import row_structure
from payroll_api.services.salary_structures import SalaryStructureProvider

bp = Blueprint("salary_structures", __name__, url_prefix="/api/v1/payroll/salary-structures")


# ---------- helpers ----------
def _as_int(v) -> Optional[int]:
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _d(s) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s))
    except ValueError:
        return None


def _json():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


def _org_id(data=None) -> Optional[int]:
    data = data or {}
    return _as_int(data.get("organization_id", request.args.get("organization_id")))


def _structure_fields(data):
    """Pick accepted keys; -> (fields, error message or None)."""
    out = {k: data[k] for k in ("basic_salary", "ctc", "currency", "components") if k in data}
    if data.get("effective_date"):
        eff = _d(data["effective_date"])
        if not eff:
            return None, "effective_date must be YYYY-MM-DD"
        out["effective_date"] = eff
    return out, None


# ---------- routes ----------
@bp.post("")
@requires_perms("payroll.structure.write")
def create_structure():
    data = _json()
    emp_id, org_id = _as_int(data.get("employee_id")), _org_id(data)
    if not emp_id or not org_id:
        return fail("employee_id and organization_id are required", status=422, code="VALIDATION_ERROR")
    fields, err = _structure_fields(data)
    if err:
        return fail(err, status=422, code="VALIDATION_ERROR")
    s = SalaryStructureProvider().create_salary_structure({**fields, "employee_id": emp_id, "organization_id": org_id})
    return ok(row_structure(s), status=201)


@bp.get("/<int:employee_id>")
@requires_perms("payroll.structure.read")
def get_structure(employee_id: int):
    org_id = _org_id()
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    s = SalaryStructureProvider().get_active_structure(employee_id, org_id)
    if not s:
        raise APIError("SALARY_STRUCTURE_NOT_FOUND", f"No active salary structure for employee {employee_id}", 404)
    return ok(row_structure(s))


@bp.get("/<int:employee_id>/history")
@requires_perms("payroll.structure.read")
def structure_history(employee_id: int):
    org_id = _org_id()
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    items = SalaryStructureProvider().list_salary_history(employee_id, org_id)
    return ok([row_structure(s) for s in items], total=len(items))


@bp.put("/<int:employee_id>")
@requires_perms("payroll.structure.write")
def update_structure(employee_id: int):
    data = _json()
    org_id = _org_id(data)
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    fields, err = _structure_fields(data)
    if err:
        return fail(err, status=422, code="VALIDATION_ERROR")
    s = SalaryStructureProvider().update_salary_structure(employee_id, fields, org_id)
    return ok(row_structure(s))


@bp.post("/bulk-update")
@requires_perms("payroll.structure.write")
def bulk_update():
    data = _json()
    org_id = _org_id(data)
    updates = data.get("salary_updates")
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    if not isinstance(updates, list) or not updates:
        return fail("salary_updates must be a non-empty list", status=422, code="VALIDATION_ERROR")
    bad = [i for i, u in enumerate(updates) if not isinstance(u, dict) or not _as_int(u.get("employee_id"))]
    if bad:
        return fail("each update needs employee_id and basic_salary", status=422,
                    code="VALIDATION_ERROR", detail={"indexes": bad})
    results = SalaryStructureProvider().bulk_update_salaries(updates, org_id)
    return ok([
        {"employee_id": r["employee_id"], "success": r["success"], "structure": row_structure(r["structure"])}
        for r in results
    ], total=len(results))
