# payroll_api/services/payslip_service.py
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional
from datetime import datetime
import logging

from payroll_api.common.errors import APIError
from payroll_api.common.http import money
from payroll_api.extensions import db
from payroll_api.models.payroll import PayrollRecord, Payslip
from payroll_api.services.notifications import NotificationDispatcher

log = logging.getLogger(__name__)


def _d(v) -> Decimal:
    return Decimal(str(v if v is not None else 0))


class PayslipDeriver:
    """
    Projects committed payroll records into payslip snapshots.

    Amounts are copied from the record; nothing is recalculated here.
    """

    def __init__(self, notifier: Optional[NotificationDispatcher] = None,
                 now: Optional[Callable[[], datetime]] = None):
        self.notifier = notifier or NotificationDispatcher()
        self._now = now or datetime.utcnow

    def build_payslip_values(self, record: PayrollRecord) -> Dict[str, Any]:
        emp = record.employee
        hra, da, other = _d(record.hra), _d(record.da), _d(record.other_allowances)
        return {
            "payroll_id": record.id,
            "employee_id": record.employee_id,
            "organization_id": record.organization_id,
            "month": record.month,
            "year": record.year,
            "employee_name": emp.full_name if emp else "",
            "employee_code": emp.code if emp else None,
            "designation": emp.designation.name if emp and emp.designation else None,
            "department": emp.department.name if emp and emp.department else None,
            "basic_salary": _d(record.basic_salary),
            "gross_salary": _d(record.gross_salary),
            "net_pay": _d(record.net_pay),
            "allowances": {"hra": money(hra), "da": money(da), "other": money(other)},
            "deductions": {
                "pf": money(record.pf),
                "esi": money(record.esi),
                "professionalTax": money(record.professional_tax),
                "incomeTax": money(record.income_tax),
                "other": money(record.other_deductions),
            },
            "allowances_total": hra + da + other,
            "deductions_total": _d(record.total_deductions),
            "tax_amount": _d(record.income_tax),
            "paid_on": record.payment_date,
        }

    def generate_payslips(self, payroll_ids: Iterable[int], actor_id: Optional[int],
                          organization_id: int) -> List[Payslip]:
        ids = [int(i) for i in payroll_ids or []]
        if not ids:
            raise APIError("VALIDATION_ERROR", "payroll_ids must be a non-empty list", 422)

        records = (
            PayrollRecord.query
            .filter(PayrollRecord.id.in_(ids), PayrollRecord.organization_id == organization_id)
            .order_by(PayrollRecord.id.asc())
            .all()
        )
        if not records:
            raise APIError("PAYROLL_NOT_FOUND", "No payroll records found for the given ids", 404)

        out: List[Payslip] = []
        created: List[Payslip] = []
        try:
            for rec in records:
                # check right before insert; payroll_id is unique as a backstop
                slip = Payslip.query.filter_by(payroll_id=rec.id).first()
                if slip is None:
                    slip = Payslip(**self.build_payslip_values(rec), status="generated", generated_by=actor_id)
                    db.session.add(slip)
                    db.session.flush()
                    created.append(slip)
                out.append(slip)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("payslips: %d created, %d already existed", len(created), len(out) - len(created))
        if created:
            self.notifier.payslips_available(created)
        return out

    def send_payslips(self, payslip_ids: Iterable[int], organization_id: int) -> List[Payslip]:
        ids = [int(i) for i in payslip_ids or []]
        if not ids:
            raise APIError("VALIDATION_ERROR", "payslip_ids must be a non-empty list", 422)
        slips = (
            Payslip.query
            .filter(Payslip.id.in_(ids), Payslip.organization_id == organization_id)
            .order_by(Payslip.id.asc())
            .all()
        )
        if not slips:
            raise APIError("PAYSLIP_NOT_FOUND", "No payslips found for the given ids", 404)

        now = self._now()
        try:
            for s in slips:
                s.status = "sent"
                s.sent_at = now
                s.sent_to = s.employee.email if s.employee else None
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("payslips sent: %d", len(slips))
        self.notifier.payslips_available(slips)
        return slips

    def get_employee_payslips(self, employee_id: int, organization_id: int) -> List[Payslip]:
        q = Payslip.query.filter(Payslip.employee_id == employee_id, Payslip.organization_id == organization_id)
        return q.order_by(Payslip.year.desc(), Payslip.month.desc()).all()

    def get_payslip(self, payslip_id: int, organization_id: int) -> Payslip:
        s = db.session.get(Payslip, payslip_id)
        if not s or s.organization_id != organization_id:
            raise APIError("PAYSLIP_NOT_FOUND", f"Payslip {payslip_id} not found", 404)
        return s
