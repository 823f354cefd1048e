from datetime import datetime
from payroll_api.extensions import db

PAYSLIP_STATUSES = ("generated", "sent")


class Payslip(db.Model):
    """Immutable snapshot of a PayrollRecord at derivation time."""
    __tablename__ = "payslips"

    id = db.Column(db.Integer, primary_key=True)
    payroll_id = db.Column(db.Integer, db.ForeignKey("payrolls.id", ondelete="CASCADE"), nullable=False, unique=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    # denormalized employee display fields
    employee_name = db.Column(db.String(200), nullable=False)
    employee_code = db.Column(db.String(32))
    designation = db.Column(db.String(120))
    department = db.Column(db.String(120))

    basic_salary = db.Column(db.Numeric(12, 2), nullable=False)
    gross_salary = db.Column(db.Numeric(12, 2), nullable=False)
    net_pay = db.Column(db.Numeric(12, 2), nullable=False)
    allowances = db.Column(db.JSON, nullable=False, default=dict)
    deductions = db.Column(db.JSON, nullable=False, default=dict)
    allowances_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    deductions_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.Enum(*PAYSLIP_STATUSES, name="payslip_status_enum"), nullable=False, default="generated")
    sent_at = db.Column(db.DateTime)
    sent_to = db.Column(db.String(255))
    paid_on = db.Column(db.DateTime)
    generated_by = db.Column(db.Integer, db.ForeignKey("users.id"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_payslip_emp_period", "employee_id", "year", "month"),
        db.Index("ix_payslip_org_status", "organization_id", "status"),
    )

    payroll = db.relationship("PayrollRecord", back_populates="payslip")
    employee = db.relationship("Employee", lazy="joined")
