from __future__ import annotations
from typing import Optional

from flask import Blueprint, request

from payroll_api.common.auth import requires_perms
from payroll_api.common.http import ok, fail
from payroll_api.services import payroll_reports
from payroll_api.services.payroll_rows import jsonable

bp = Blueprint("payroll_reports", __name__, url_prefix="/api/v1/payroll/reports")


def _as_int(v) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _month_ok(m) -> bool:
    return m is None or 1 <= m <= 12


@bp.get("/summary")
@requires_perms("payroll.reports.view")
def summary():
    args = request.args
    org_id, month, year = _as_int(args.get("organization_id")), _as_int(args.get("month")), _as_int(args.get("year"))
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    if not _month_ok(month):
        return fail("month must be 1..12", status=422, code="VALIDATION_ERROR")
    data = payroll_reports.payroll_summary(org_id, month=month, year=year, department=args.get("department") or None)
    return ok(jsonable(data))


@bp.get("/department-wise")
@requires_perms("payroll.reports.view")
def department_wise():
    args = request.args
    org_id, month, year = _as_int(args.get("organization_id")), _as_int(args.get("month")), _as_int(args.get("year"))
    if not org_id or month is None or year is None:
        return fail("organization_id, month and year are required", status=422, code="VALIDATION_ERROR")
    if not _month_ok(month):
        return fail("month must be 1..12", status=422, code="VALIDATION_ERROR")
    rows = payroll_reports.department_wise_report(org_id, month, year)
    return ok(jsonable(rows), total=len(rows))


@bp.get("/yearly")
@requires_perms("payroll.reports.view")
def yearly():
    args = request.args
    org_id, year = _as_int(args.get("organization_id")), _as_int(args.get("year"))
    if not org_id or year is None:
        return fail("organization_id and year are required", status=422, code="VALIDATION_ERROR")
    data = payroll_reports.yearly_report(org_id, year, employee_id=_as_int(args.get("employee_id")))
    return ok(jsonable(data))
