from __future__ import annotations
from datetime import date, datetime
from typing import List, Optional

from flask import Blueprint, request

from payroll_api.common.auth import requires_perms, current_actor_id, caller_has_perms
from payroll_api.common.http import ok, fail
from payroll_api.models.payroll import PAYROLL_STATUSES
from payroll_api.services.payroll_generator import PayrollGenerator
from payroll_api.services.payroll_rows import row_payroll

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")


# ---------- helpers ----------
def _as_int(v) -> Optional[int]:
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _int_list(v) -> Optional[List[int]]:
    """None if absent; raises ValueError on anything that isn't a list of ints."""
    if v is None:
        return None
    if not isinstance(v, list):
        raise ValueError("expected a list")
    out = []
    for x in v:
        i = _as_int(x)
        if i is None:
            raise ValueError(f"not an integer id: {x!r}")
        out.append(i)
    return out


def _dt(s) -> Optional[datetime]:
    if not s:
        return None
    try:
        return datetime.fromisoformat(str(s))
    except ValueError:
        try:
            d = date.fromisoformat(str(s))
        except ValueError:
            return None
        return datetime(d.year, d.month, d.day)


def _json():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


def _org_id(data=None) -> Optional[int]:
    data = data or {}
    return _as_int(data.get("organization_id", request.args.get("organization_id")))


def _generator() -> PayrollGenerator:
    return PayrollGenerator.from_config()


# ---------- routes ----------
@bp.post("/generate")
@requires_perms("payroll.run.write")
def generate():
    data = _json()
    org_id = _org_id(data)
    month, year = _as_int(data.get("month")), _as_int(data.get("year"))
    if not org_id or month is None or year is None:
        return fail("organization_id, month and year are required", status=422, code="VALIDATION_ERROR")
    try:
        employee_ids = _int_list(data.get("employee_ids"))
    except ValueError as e:
        return fail(f"employee_ids: {e}", status=422, code="VALIDATION_ERROR")

    result = _generator().run(month, year, org_id, actor_id=current_actor_id(), employee_ids=employee_ids)
    return ok(
        [row_payroll(r) for r in result.records],
        status=201,
        count=len(result.records),
        deleted=result.deleted,
        preserved=len(result.preserved),
        preserved_ids=[r.id for r in result.preserved],
    )


@bp.get("")
@requires_perms("payroll.run.read")
def list_payrolls():
    org_id = _org_id()
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    args = request.args
    status = args.get("status")
    if status and status not in PAYROLL_STATUSES:
        return fail(f"status must be one of {', '.join(PAYROLL_STATUSES)}", status=422, code="VALIDATION_ERROR")
    items = _generator().get_payrolls(
        org_id,
        month=_as_int(args.get("month")),
        year=_as_int(args.get("year")),
        status=status,
        employee_id=_as_int(args.get("employee_id")),
    )
    return ok([row_payroll(r) for r in items], total=len(items))


@bp.get("/<int:payroll_id>")
@requires_perms("payroll.run.read")
def get_payroll(payroll_id: int):
    org_id = _org_id()
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    rec = _generator().get_payroll(payroll_id, org_id)
    return ok(row_payroll(rec))


# permission needed to move a record into each status
STATUS_PERMS = {"approved": "payroll.approve", "paid": "payroll.pay"}


@bp.put("/<int:payroll_id>/status")
@requires_perms(*STATUS_PERMS.values())
def update_status(payroll_id: int):
    data = _json()
    org_id = _org_id(data)
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    status = (data.get("status") or "").strip().lower()
    if not status:
        return fail("status is required", status=422, code="VALIDATION_ERROR")
    needed = STATUS_PERMS.get(status)
    if needed and not caller_has_perms(needed):
        return fail(f"Forbidden: {needed} is required to mark a payroll {status}", status=403)
    payment_date = None
    if data.get("payment_date"):
        payment_date = _dt(data["payment_date"])
        if not payment_date:
            return fail("payment_date must be an ISO date/datetime", status=422, code="VALIDATION_ERROR")
    rec = _generator().update_payroll_status(
        payroll_id,
        status,
        current_actor_id(),
        remarks=data.get("remarks"),
        payment_method=data.get("payment_method"),
        payment_date=payment_date,
        organization_id=org_id,
    )
    return ok(row_payroll(rec))


@bp.post("/process-payment")
@requires_perms("payroll.pay")
def process_payment():
    data = _json()
    org_id = _org_id(data)
    if not org_id:
        return fail("organization_id is required", status=422, code="VALIDATION_ERROR")
    try:
        ids = _int_list(data.get("payroll_ids"))
    except ValueError as e:
        return fail(f"payroll_ids: {e}", status=422, code="VALIDATION_ERROR")
    payment_date = _dt(data.get("payment_date")) if data.get("payment_date") else None
    if data.get("payment_date") and not payment_date:
        return fail("payment_date must be an ISO date/datetime", status=422, code="VALIDATION_ERROR")

    records = _generator().process_payment(
        ids or [], data.get("payment_method"), current_actor_id(), org_id, payment_date=payment_date,
    )
    return ok([row_payroll(r) for r in records], count=len(records), requested=len(ids or []))
