# payroll_api/services/payroll_rows.py
"""ORM -> JSON-ready dicts for the payroll blueprints."""
from decimal import Decimal

from payroll_api.common.http import money, iso
from payroll_api.models.payroll.record import MONEY_FIELDS, ATTENDANCE_FIELDS


def row_component(c):
    return {
        "id": c.id,
        "name": c.name,
        "kind": c.kind,
        "calculation_type": c.calculation_type,
        "value": float(c.value) if c.value is not None else 0.0,
        "display_order": c.display_order,
    }


def row_structure(s):
    return {
        "id": s.id,
        "organization_id": s.organization_id,
        "employee_id": s.employee_id,
        "basic_salary": money(s.basic_salary),
        "ctc": money(s.ctc),
        "currency": s.currency,
        "effective_date": iso(s.effective_date),
        "end_date": iso(s.end_date),
        "is_active": bool(s.is_active),
        "components": [row_component(c) for c in s.components],
    }


def row_payroll(r):
    out = {
        "id": r.id,
        "organization_id": r.organization_id,
        "employee_id": r.employee_id,
        "employee_name": r.employee.full_name if r.employee else None,
        "month": r.month,
        "year": r.year,
    }
    for f in MONEY_FIELDS:
        out[f] = money(getattr(r, f))
    for f in ATTENDANCE_FIELDS:
        out[f] = getattr(r, f)
    out.update({
        "overtime_hours": float(r.overtime_hours or 0),
        "overtime_amount": money(r.overtime_amount),
        "status": r.status,
        "processed_by": r.processed_by,
        "approved_by": r.approved_by,
        "approved_at": iso(r.approved_at),
        "payment_method": r.payment_method,
        "payment_date": iso(r.payment_date),
        "remarks": r.remarks,
        "created_at": iso(r.created_at),
        "updated_at": iso(r.updated_at),
    })
    return out


def row_payslip(p):
    return {
        "id": p.id,
        "payroll_id": p.payroll_id,
        "employee_id": p.employee_id,
        "organization_id": p.organization_id,
        "month": p.month,
        "year": p.year,
        "employee_name": p.employee_name,
        "employee_code": p.employee_code,
        "designation": p.designation,
        "department": p.department,
        "basic_salary": money(p.basic_salary),
        "gross_salary": money(p.gross_salary),
        "net_pay": money(p.net_pay),
        "allowances": p.allowances or {},
        "deductions": p.deductions or {},
        "allowances_total": money(p.allowances_total),
        "deductions_total": money(p.deductions_total),
        "tax_amount": money(p.tax_amount),
        "status": p.status,
        "sent_at": iso(p.sent_at),
        "sent_to": p.sent_to,
        "paid_on": iso(p.paid_on),
        "generated_by": p.generated_by,
        "created_at": iso(p.created_at),
    }


def jsonable(v):
    """Recursively turn Decimals in report structures into 2dp floats."""
    if isinstance(v, Decimal):
        return money(v)
    if isinstance(v, dict):
        return {k: jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [jsonable(x) for x in v]
    return v
