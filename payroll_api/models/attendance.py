from datetime import datetime
from payroll_api.extensions import db


class AttendanceRecord(db.Model):
    """One row per employee per calendar day; payroll only reads `status`."""
    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date   = db.Column(db.Date, nullable=False)
    status      = db.Column(db.String(20), nullable=False, default="present")  # present|absent|half_day|on_leave
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "work_date", name="uq_attendance_emp_date"),
    )
