from datetime import datetime
from payroll_api.extensions import db

PAYROLL_STATUSES = ("draft", "approved", "paid")
PAYMENT_METHODS = ("bank_transfer", "cash", "cheque", "online")

MONEY_FIELDS = (
    "basic_salary", "hra", "da", "other_allowances",
    "pf", "esi", "professional_tax", "income_tax", "other_deductions",
    "gross_salary", "total_deductions", "net_pay",
)
ATTENDANCE_FIELDS = ("working_days", "present_days", "absent_days", "paid_leaves", "unpaid_leaves")


class PayrollRecord(db.Model):
    __tablename__ = "payrolls"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    # earnings (basic_salary is the attendance-adjusted basic actually paid)
    basic_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    hra = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    da = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_allowances = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # deductions
    pf = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    esi = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    professional_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    income_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    gross_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_pay = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    working_days = db.Column(db.Integer, nullable=False, default=0)
    present_days = db.Column(db.Integer, nullable=False, default=0)
    absent_days = db.Column(db.Integer, nullable=False, default=0)
    paid_leaves = db.Column(db.Integer, nullable=False, default=0)
    unpaid_leaves = db.Column(db.Integer, nullable=False, default=0)

    overtime_hours = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    overtime_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.Enum(*PAYROLL_STATUSES, name="payroll_status_enum"), nullable=False, default="draft")
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    payment_method = db.Column(db.Enum(*PAYMENT_METHODS, name="payroll_payment_method_enum"))
    payment_date = db.Column(db.DateTime)
    remarks = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", "organization_id", name="uq_payroll_emp_period_org"),
        db.Index("ix_payroll_org_status", "organization_id", "status"),
        db.Index("ix_payroll_period", "month", "year"),
    )

    employee = db.relationship("Employee", lazy="joined")
    payslip = db.relationship("Payslip", back_populates="payroll", uselist=False)
