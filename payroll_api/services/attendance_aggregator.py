# payroll_api/services/attendance_aggregator.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Tuple
import calendar as pycal
import logging
import math

from sqlalchemy import func

from payroll_api.extensions import db
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.models.leave import LeaveRequest, LeaveType

log = logging.getLogger(__name__)

# date.weekday(): 5=Sat, 6=Sun. Fixed pattern, not configurable per region.
WEEKEND_DAYS = (5, 6)


# ---------- calendar helpers ----------

def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last = pycal.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def working_days_in_month(year: int, month: int) -> int:
    first, last = month_bounds(year, month)
    n = 0
    cur = first
    while cur <= last:
        if cur.weekday() not in WEEKEND_DAYS:
            n += 1
        cur = cur + timedelta(days=1)
    return n


def period_is_current_or_future(month: int, year: int, today: date) -> bool:
    return (year, month) >= (today.year, today.month)


def sanitize_days(value) -> float:
    """Leave/attendance day counts: missing, non-numeric, NaN or negative -> 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        f = float(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return 0.0
    if math.isnan(f) or math.isinf(f) or f < 0:
        return 0.0
    return f


# ---------- summary ----------

@dataclass(frozen=True)
class AttendanceSummary:
    working_days: int
    present_days: int
    absent_days: int
    paid_leave_days: int
    unpaid_leave_days: int

    def as_record_fields(self) -> Dict[str, int]:
        # column names on PayrollRecord
        return {
            "working_days": self.working_days,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "paid_leaves": self.paid_leave_days,
            "unpaid_leaves": self.unpaid_leave_days,
        }

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def build_summary(
    working_days,
    present_days,
    paid_leave_days,
    unpaid_leave_days,
    period_is_current_or_future: bool,
) -> AttendanceSummary:
    """
    Combine raw counts into a summary.

    With no attendance and no leave at all, a current/future period is assumed
    fully attended (tracking hasn't happened yet) and a past period is assumed
    fully absent.
    """
    working = int(sanitize_days(working_days))
    present = sanitize_days(present_days)
    paid = sanitize_days(paid_leave_days)
    unpaid = sanitize_days(unpaid_leave_days)

    if present == 0 and paid == 0 and unpaid == 0:
        present = float(working) if period_is_current_or_future else 0.0

    absent = max(0.0, working - present - paid - unpaid)

    return AttendanceSummary(
        working_days=working,
        present_days=int(math.floor(present)),
        absent_days=int(math.floor(absent)),
        paid_leave_days=int(math.floor(paid)),
        unpaid_leave_days=int(math.floor(unpaid)),
    )


class AttendanceAggregator:
    """Reads attendance + approved leave for one employee-month."""

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self._today = today or date.today

    def present_days(self, employee_id: int, first: date, last: date) -> int:
        n = (
            db.session.query(func.count(AttendanceRecord.id))
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date >= first,
                AttendanceRecord.work_date <= last,
                AttendanceRecord.status == "present",
            )
            .scalar()
        )
        return int(n or 0)

    def leave_days(self, employee_id: int, first: date, last: date) -> Tuple[float, float]:
        """(paid, unpaid) day totals of APPROVED leave overlapping [first..last]."""
        rows = (
            db.session.query(LeaveRequest.total_days, LeaveType.is_paid)
            .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
            .filter(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == "approved",
                LeaveRequest.start_date <= last,
                LeaveRequest.end_date >= first,
            )
            .all()
        )
        paid = unpaid = 0.0
        for total_days, is_paid in rows:
            days = sanitize_days(total_days)
            if is_paid:
                paid += days
            else:
                unpaid += days
        return paid, unpaid

    def summarize(self, employee_id: int, month: int, year: int) -> AttendanceSummary:
        first, last = month_bounds(year, month)
        working = working_days_in_month(year, month)
        present = self.present_days(employee_id, first, last)
        paid, unpaid = self.leave_days(employee_id, first, last)

        today = self._today()
        if isinstance(today, datetime):
            today = today.date()
        summary = build_summary(
            working, present, paid, unpaid,
            period_is_current_or_future=period_is_current_or_future(month, year, today),
        )
        log.debug("attendance emp=%s %02d/%s raw present=%s paid=%s unpaid=%s -> %s",
                  employee_id, month, year, present, paid, unpaid, summary)
        return summary
