# payroll_api/services/payroll_reports.py
"""Numeric payroll aggregates. Sums stay Decimal; serialization is the caller's job."""
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from payroll_api.models.employee import Employee
from payroll_api.models.master import Department
from payroll_api.models.payroll import PayrollRecord, PAYROLL_STATUSES
from payroll_api.services.salary_calculator import round2

ZERO = Decimal("0.00")
UNASSIGNED = "Unassigned"


def _dec(v) -> Decimal:
    return Decimal(str(v)) if v is not None else ZERO


def _dept_name(rec: PayrollRecord) -> str:
    emp = rec.employee
    return emp.department.name if emp and emp.department else UNASSIGNED


def _records(organization_id: int, month: Optional[int] = None, year: Optional[int] = None,
             department: Optional[str] = None, employee_id: Optional[int] = None) -> List[PayrollRecord]:
    q = PayrollRecord.query.filter(PayrollRecord.organization_id == organization_id)
    if month is not None:
        q = q.filter(PayrollRecord.month == month)
    if year is not None:
        q = q.filter(PayrollRecord.year == year)
    if employee_id is not None:
        q = q.filter(PayrollRecord.employee_id == employee_id)
    if department:
        q = (q.join(Employee, Employee.id == PayrollRecord.employee_id)
              .join(Department, Department.id == Employee.department_id)
              .filter(Department.name == department))
    return q.order_by(PayrollRecord.year.asc(), PayrollRecord.month.asc(), PayrollRecord.employee_id.asc()).all()


def payroll_summary(organization_id: int, month: Optional[int] = None, year: Optional[int] = None,
                    department: Optional[str] = None) -> Dict[str, Any]:
    rows = _records(organization_id, month, year, department)
    by_status = {s: 0 for s in PAYROLL_STATUSES}
    by_dept: Dict[str, Dict[str, Any]] = OrderedDict()
    gross = deductions = net = ZERO
    employees = set()
    for r in rows:
        employees.add(r.employee_id)
        gross += _dec(r.gross_salary)
        deductions += _dec(r.total_deductions)
        net += _dec(r.net_pay)
        by_status[r.status] = by_status.get(r.status, 0) + 1
        d = by_dept.setdefault(_dept_name(r), {"count": 0, "net_pay": ZERO})
        d["count"] += 1
        d["net_pay"] += _dec(r.net_pay)
    return {
        "total_employees": len(employees),
        "total_records": len(rows),
        "total_gross": round2(gross),
        "total_deductions": round2(deductions),
        "total_net_pay": round2(net),
        "by_status": by_status,
        "by_department": [
            {"department": name, "count": d["count"], "net_pay": round2(d["net_pay"])}
            for name, d in sorted(by_dept.items())
        ],
    }


def department_wise_report(organization_id: int, month: int, year: int) -> List[Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for r in _records(organization_id, month, year):
        name = _dept_name(r)
        d = out.setdefault(name, {
            "department": name,
            "employee_count": 0,
            "total_basic": ZERO,
            "total_gross": ZERO,
            "total_deductions": ZERO,
            "total_net_pay": ZERO,
            "employees": [],
        })
        d["employee_count"] += 1
        d["total_basic"] += _dec(r.basic_salary)
        d["total_gross"] += _dec(r.gross_salary)
        d["total_deductions"] += _dec(r.total_deductions)
        d["total_net_pay"] += _dec(r.net_pay)
        d["employees"].append({
            "employee_id": r.employee_id,
            "employee_name": r.employee.full_name if r.employee else None,
            "gross_salary": _dec(r.gross_salary),
            "net_pay": _dec(r.net_pay),
            "status": r.status,
        })
    return [out[k] for k in sorted(out)]


def yearly_report(organization_id: int, year: int, employee_id: Optional[int] = None) -> Dict[str, Any]:
    months: Dict[int, Dict[str, Any]] = {}
    for r in _records(organization_id, year=year, employee_id=employee_id):
        m = months.setdefault(r.month, {
            "month": r.month,
            "gross_salary": ZERO,
            "total_deductions": ZERO,
            "net_pay": ZERO,
            "income_tax": ZERO,
            "statuses": {},
        })
        m["gross_salary"] += _dec(r.gross_salary)
        m["total_deductions"] += _dec(r.total_deductions)
        m["net_pay"] += _dec(r.net_pay)
        m["income_tax"] += _dec(r.income_tax)
        m["statuses"][r.status] = m["statuses"].get(r.status, 0) + 1

    monthly = [months[k] for k in sorted(months)]
    for m in monthly:
        # one status when the month is uniform, else "mixed"
        m["status"] = next(iter(m["statuses"])) if len(m["statuses"]) == 1 else "mixed"

    totals = {
        k: round2(sum((m[k] for m in monthly), ZERO))
        for k in ("gross_salary", "total_deductions", "net_pay", "income_tax")
    }
    averages = {k: round2(v / 12) for k, v in totals.items()}
    return {
        "year": year,
        "employee_id": employee_id,
        "monthly": monthly,
        "totals": totals,
        "averages": averages,
    }
