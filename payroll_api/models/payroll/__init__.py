# payroll_api/models/payroll/__init__.py
# Import order matters: structures first, then payroll records, then payslips.
from .salary_structure import SalaryStructure, SalaryComponent
from .record import PayrollRecord, PAYROLL_STATUSES, PAYMENT_METHODS
from .payslip import Payslip

__all__ = [
    "SalaryStructure", "SalaryComponent",
    "PayrollRecord", "PAYROLL_STATUSES", "PAYMENT_METHODS",
    "Payslip",
]
