# payroll_api/services/payroll_generator.py
"""
Period payroll generation and the record status lifecycle.

Generation for one (organization, month, year) is a single unit of work:
stale records are deleted and every new record is inserted in one
transaction, so a failure leaves the period exactly as it was before the
call. Notifications go out only after the commit.

Regeneration policy (PAYROLL_REGENERATION_POLICY):
  replace_all          delete every record of the period, whatever its status
  preserve_finalized   delete only drafts; approved/paid employees are skipped
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from flask import current_app

from payroll_api.common.errors import APIError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll import PayrollRecord, Payslip, PAYROLL_STATUSES, PAYMENT_METHODS
from payroll_api.services.attendance_aggregator import AttendanceAggregator
from payroll_api.services.notifications import NotificationDispatcher
from payroll_api.services.salary_calculator import (
    DEFAULT_WORKING_DAYS, PROFESSIONAL_TAX, SalaryCalculation, calculate_salary, round2,
)
from payroll_api.services.salary_structures import SalaryStructureProvider

log = logging.getLogger(__name__)

REPLACE_ALL = "replace_all"
PRESERVE_FINALIZED = "preserve_finalized"
REGENERATION_POLICIES = (REPLACE_ALL, PRESERVE_FINALIZED)

ALLOWED_TRANSITIONS = {
    "draft": {"approved"},
    "approved": {"paid"},
    "paid": set(),
}

MIN_YEAR, MAX_YEAR = 2020, 2100


@dataclass
class GenerationResult:
    records: List[PayrollRecord] = field(default_factory=list)
    deleted: int = 0
    preserved: List[PayrollRecord] = field(default_factory=list)


def validate_period(month, year) -> None:
    errors = []
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
        errors.append("month must be an integer between 1 and 12")
    if not isinstance(year, int) or isinstance(year, bool) or not MIN_YEAR <= year <= MAX_YEAR:
        errors.append(f"year must be an integer between {MIN_YEAR} and {MAX_YEAR}")
    if errors:
        raise APIError("VALIDATION_ERROR", "Invalid payroll period", 422, payload=errors)


class PayrollGenerator:
    def __init__(
        self,
        structures: Optional[SalaryStructureProvider] = None,
        aggregator: Optional[AttendanceAggregator] = None,
        notifier: Optional[NotificationDispatcher] = None,
        now: Optional[Callable[[], datetime]] = None,
        policy: str = PRESERVE_FINALIZED,
        placeholder_professional_tax=PROFESSIONAL_TAX,
    ):
        if policy not in REGENERATION_POLICIES:
            raise ValueError(f"unknown regeneration policy {policy!r}")
        self._now = now or datetime.utcnow
        self.structures = structures or SalaryStructureProvider(now=self._now)
        self.aggregator = aggregator or AttendanceAggregator(today=self._now)
        self.notifier = notifier or NotificationDispatcher()
        self.policy = policy
        self.placeholder_professional_tax = round2(placeholder_professional_tax)

    @classmethod
    def from_config(cls, config=None, **kwargs) -> "PayrollGenerator":
        config = config if config is not None else current_app.config
        kwargs.setdefault("notifier", NotificationDispatcher.from_config(config))
        return cls(
            policy=config.get("PAYROLL_REGENERATION_POLICY") or PRESERVE_FINALIZED,
            placeholder_professional_tax=config.get("PAYROLL_PLACEHOLDER_PROFESSIONAL_TAX", PROFESSIONAL_TAX),
            **kwargs,
        )

    # ---------- generation ----------

    def _select_employees(self, organization_id: int, employee_ids: Optional[Iterable[int]]) -> List[Employee]:
        q = Employee.query.filter(Employee.organization_id == organization_id, Employee.status == "active")
        if employee_ids:
            q = q.filter(Employee.id.in_(list(employee_ids)))
        return q.order_by(Employee.id.asc()).all()

    def _placeholder_values(self) -> Dict[str, Any]:
        pt = self.placeholder_professional_tax
        calc = SalaryCalculation(professional_tax=pt, total_deductions=pt, net_pay=round2(-pt))
        return {
            **calc.as_record_fields(),
            "working_days": DEFAULT_WORKING_DAYS,
            "present_days": 0,
            "absent_days": DEFAULT_WORKING_DAYS,
            "paid_leaves": 0,
            "unpaid_leaves": 0,
        }

    def _employee_values(self, emp: Employee, structure, month: int, year: int) -> Dict[str, Any]:
        if structure is None:
            log.warning("no active salary structure for employee %s; writing placeholder record", emp.id)
            return self._placeholder_values()
        summary = self.aggregator.summarize(emp.id, month, year)
        calc = calculate_salary(structure, summary)
        return {**calc.as_record_fields(), **summary.as_record_fields()}

    def _existing_records(self, organization_id: int, month: int, year: int) -> List[PayrollRecord]:
        return PayrollRecord.query.filter_by(organization_id=organization_id, month=month, year=year).all()

    def _plan_deletions(self, existing: List[PayrollRecord], target_ids: set):
        """-> (records to delete, records kept as finalized)."""
        if self.policy == REPLACE_ALL:
            for r in existing:
                if r.status != "draft":
                    log.warning("replace_all: discarding %s payroll %s for employee %s",
                                r.status, r.id, r.employee_id)
            return list(existing), []
        to_delete, preserved = [], []
        for r in existing:
            if r.employee_id not in target_ids:
                continue
            (to_delete if r.status == "draft" else preserved).append(r)
        return to_delete, preserved

    def _delete_records(self, record_ids: List[int]) -> int:
        if not record_ids:
            return 0
        Payslip.query.filter(Payslip.payroll_id.in_(record_ids)).delete(synchronize_session="fetch")
        return PayrollRecord.query.filter(PayrollRecord.id.in_(record_ids)).delete(synchronize_session="fetch")

    def _persist(self, values: Dict[str, Any]) -> PayrollRecord:
        rec = PayrollRecord(**values)
        db.session.add(rec)
        db.session.flush()
        return rec

    def run(self, month: int, year: int, organization_id: int, actor_id: Optional[int] = None,
            employee_ids: Optional[Iterable[int]] = None) -> GenerationResult:
        validate_period(month, year)
        employees = self._select_employees(organization_id, employee_ids)
        log.info("payroll generation org=%s period=%02d/%s employees=%d policy=%s",
                 organization_id, month, year, len(employees), self.policy)
        self.notifier.payroll_generation_started(organization_id, month, year, len(employees))

        result = GenerationResult()
        try:
            existing = self._existing_records(organization_id, month, year)
            to_delete, result.preserved = self._plan_deletions(existing, {e.id for e in employees})
            finalized = {r.employee_id for r in result.preserved}

            structures = self.structures.active_structures_for([e.id for e in employees], organization_id)
            pending = []
            for emp in employees:
                if emp.id in finalized:
                    log.info("employee %s keeps finalized payroll for %02d/%s", emp.id, month, year)
                    continue
                values = self._employee_values(emp, structures.get(emp.id), month, year)
                values.update(
                    organization_id=organization_id,
                    employee_id=emp.id,
                    month=month,
                    year=year,
                    status="draft",
                    processed_by=actor_id,
                    overtime_hours=Decimal("0"),
                    overtime_amount=Decimal("0"),
                )
                pending.append(values)

            result.deleted = self._delete_records([r.id for r in to_delete])
            for values in pending:
                result.records.append(self._persist(values))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            log.exception("payroll generation failed org=%s period=%02d/%s", organization_id, month, year)
            self.notifier.payroll_generation_failed(organization_id, month, year, str(e))
            raise APIError("PAYROLL_GENERATION_FAILED", "Payroll generation failed; no records were changed",
                           500, payload=str(e)) from e

        log.info("payroll generated org=%s period=%02d/%s created=%d deleted=%d preserved=%d",
                 organization_id, month, year, len(result.records), result.deleted, len(result.preserved))
        self.notifier.payroll_generated(result.records)
        self.notifier.payroll_generation_completed(organization_id, month, year, len(result.records),
                                                   preserved=len(result.preserved))
        return result

    def generate_payroll(self, month: int, year: int, organization_id: int, actor_id: Optional[int] = None,
                         employee_ids: Optional[Iterable[int]] = None) -> List[PayrollRecord]:
        return self.run(month, year, organization_id, actor_id=actor_id, employee_ids=employee_ids).records

    # ---------- reads ----------

    def get_payrolls(self, organization_id: int, month: Optional[int] = None, year: Optional[int] = None,
                     status: Optional[str] = None, employee_id: Optional[int] = None) -> List[PayrollRecord]:
        q = PayrollRecord.query.filter(PayrollRecord.organization_id == organization_id)
        if month is not None:
            q = q.filter(PayrollRecord.month == month)
        if year is not None:
            q = q.filter(PayrollRecord.year == year)
        if status:
            q = q.filter(PayrollRecord.status == status)
        if employee_id is not None:
            q = q.filter(PayrollRecord.employee_id == employee_id)
        return q.order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc(), PayrollRecord.employee_id.asc()).all()

    def get_payroll(self, payroll_id: int, organization_id: int) -> PayrollRecord:
        rec = db.session.get(PayrollRecord, payroll_id)
        if not rec or rec.organization_id != organization_id:
            raise APIError("PAYROLL_NOT_FOUND", f"Payroll {payroll_id} not found", 404)
        return rec

    # ---------- lifecycle ----------

    def _check_payment_method(self, payment_method) -> None:
        if payment_method not in PAYMENT_METHODS:
            raise APIError("PAYMENT_DETAILS_REQUIRED",
                           f"payment_method must be one of {', '.join(PAYMENT_METHODS)}", 422)

    def update_payroll_status(self, payroll_id: int, status: str, actor_id: Optional[int], *,
                              organization_id: int, remarks: Optional[str] = None,
                              payment_method: Optional[str] = None,
                              payment_date: Optional[datetime] = None) -> PayrollRecord:
        if status not in PAYROLL_STATUSES:
            raise APIError("VALIDATION_ERROR", f"status must be one of {', '.join(PAYROLL_STATUSES)}", 422)
        rec = self.get_payroll(payroll_id, organization_id)
        if status not in ALLOWED_TRANSITIONS.get(rec.status, set()):
            raise APIError("INVALID_STATUS_TRANSITION", f"Cannot move payroll from {rec.status} to {status}", 409,
                           payload={"from": rec.status, "to": status})

        now = self._now()
        if status == "approved":
            if actor_id is None:
                raise APIError("VALIDATION_ERROR", "Approving a payroll requires an acting user", 422)
            rec.approved_by = actor_id
            rec.approved_at = now
        elif status == "paid":
            self._check_payment_method(payment_method)
            rec.payment_method = payment_method
            rec.payment_date = payment_date or now
            rec.processed_by = actor_id
        rec.status = status
        if remarks is not None:
            rec.remarks = remarks

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("payroll %s -> %s by user %s", rec.id, status, actor_id)
        if status == "paid":
            self.notifier.payment_processed([rec], payment_method)
        return rec

    def process_payment(self, payroll_ids: Iterable[int], payment_method: str, actor_id: Optional[int],
                        organization_id: int, payment_date: Optional[datetime] = None) -> List[PayrollRecord]:
        """Bulk approved -> paid. Records in any other status are left alone."""
        self._check_payment_method(payment_method)
        ids = [int(i) for i in payroll_ids or []]
        if not ids:
            raise APIError("VALIDATION_ERROR", "payroll_ids must be a non-empty list", 422)

        records = (
            PayrollRecord.query
            .filter(
                PayrollRecord.id.in_(ids),
                PayrollRecord.organization_id == organization_id,
                PayrollRecord.status == "approved",
            )
            .order_by(PayrollRecord.id.asc())
            .all()
        )
        when = payment_date or self._now()
        try:
            for rec in records:
                rec.status = "paid"
                rec.payment_method = payment_method
                rec.payment_date = when
                rec.processed_by = actor_id
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("payment processed for %d of %d payrolls (org %s, %s)",
                 len(records), len(ids), organization_id, payment_method)
        self.notifier.payment_processed(records, payment_method)
        return records
