from datetime import datetime, date
from payroll_api.extensions import db


class SalaryStructure(db.Model):
    """
    Effective-dated compensation for one employee.

    History is append-only: a new version is inserted active and the previous
    active row is flipped to inactive in the same transaction, so at most one
    row per (employee, organization) has is_active=True.
    """
    __tablename__ = "salary_structures"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)

    basic_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)  # monthly
    ctc = db.Column(db.Numeric(14, 2), nullable=False, default=0)           # annual
    currency = db.Column(db.String(3), nullable=False, default="INR")

    effective_date = db.Column(db.Date, nullable=False, default=date.today)
    end_date = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_salary_structure_emp_active", "employee_id", "is_active"),
        db.Index("ix_salary_structure_org_eff", "organization_id", "effective_date"),
    )

    employee = db.relationship("Employee", lazy="joined")
    components = db.relationship(
        "SalaryComponent",
        back_populates="structure",
        order_by="SalaryComponent.display_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SalaryComponent(db.Model):
    __tablename__ = "salary_components"

    id = db.Column(db.Integer, primary_key=True)
    salary_structure_id = db.Column(
        db.Integer, db.ForeignKey("salary_structures.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(120), nullable=False)
    kind = db.Column(db.Enum("allowance", "deduction", name="salary_component_kind_enum"), nullable=False)
    calculation_type = db.Column(
        db.Enum("fixed", "percentage", name="salary_component_calc_enum"), nullable=False, default="fixed"
    )
    # percentage of adjusted basic, or a fixed monthly amount
    value = db.Column(db.Numeric(12, 4), nullable=False, default=0)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    structure = db.relationship("SalaryStructure", back_populates="components")
