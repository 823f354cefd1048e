from __future__ import annotations
from typing import Optional

from flask import Blueprint, current_app, request

from payroll_api.common.auth import requires_perms, current_actor_id
from payroll_api.common.http import ok, fail
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.user import User
from payroll_api.services.notifications import NotificationDispatcher
from payroll_api.services.payroll_rows import row_payslip
from payroll_api.services.payslip_service import PayslipDeriver

bp = Blueprint("payslips", __name__, url_prefix="/api/v1/payroll/payslips")


def _as_int(v) -> Optional[int]:
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _ids(v):
    if not isinstance(v, list) or not v:
        return None
    out = [_as_int(x) for x in v]
    return None if any(i is None for i in out) else out


def _json():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


def _org_id(data=None) -> Optional[int]:
    data = data or {}
    return _as_int(data.get("organization_id", request.args.get("organization_id")))


def _deriver() -> PayslipDeriver:
    return PayslipDeriver(notifier=NotificationDispatcher.from_config(current_app.config))


@bp.post("/generate")
@requires_perms("payroll.payslips.generate")
def generate_payslips():
    data = _json()
    org_id = _org_id(data)
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    ids = _ids(data.get("payroll_ids"))
    if ids is None:
        return fail("payroll_ids must be a non-empty list of ids", status=422, code="VALIDATION_ERROR")
    slips = _deriver().generate_payslips(ids, current_actor_id(), org_id)
    return ok([row_payslip(p) for p in slips], status=201, count=len(slips))


@bp.post("/send")
@requires_perms("payroll.payslips.generate")
def send_payslips():
    data = _json()
    org_id = _org_id(data)
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    ids = _ids(data.get("payslip_ids"))
    if ids is None:
        return fail("payslip_ids must be a non-empty list of ids", status=422, code="VALIDATION_ERROR")
    slips = _deriver().send_payslips(ids, org_id)
    return ok([row_payslip(p) for p in slips], count=len(slips))


@bp.get("/mine")
@requires_perms()
def my_payslips():
    uid = current_actor_id()
    user = db.session.get(User, uid) if uid is not None else None
    emp = db.session.get(Employee, user.employee_id) if user and user.employee_id else None
    if not emp:
        return fail("No employee profile linked to this user", status=404, code="EMPLOYEE_NOT_FOUND")
    items = _deriver().get_employee_payslips(emp.id, emp.organization_id)
    return ok([row_payslip(p) for p in items], total=len(items))


@bp.get("/employee/<int:employee_id>")
@requires_perms("payroll.payslips.view")
def employee_payslips(employee_id: int):
    org_id = _org_id()
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    items = _deriver().get_employee_payslips(employee_id, org_id)
    return ok([row_payslip(p) for p in items], total=len(items))


@bp.get("/<int:payslip_id>")
@requires_perms("payroll.payslips.view")
def get_payslip(payslip_id: int):
    org_id = _org_id()
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    return ok(row_payslip(_deriver().get_payslip(payslip_id, org_id)))
