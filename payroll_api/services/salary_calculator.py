# payroll_api/services/salary_calculator.py
"""
Salary calculation for one employee and one payroll period.

Pure: no DB access, no clock. Input is a salary structure (basic + ordered
components) and an attendance summary; output is a SalaryCalculation with
every monetary value quantized to 2dp (ROUND_HALF_UP) at each step.

Statutory rules (fixed, not overridable by components):
  HRA  40% of adjusted basic
  DA   10% of adjusted basic
  PF   12% of adjusted basic (employee share)
  ESI  1.75% of monthly gross, only while gross <= 21000 (hard cutoff)
  PT   flat 200 once gross > 15000
  TDS  annualized gross through progressive slabs + 4% cess, / 12
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging

log = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

DEFAULT_WORKING_DAYS = 22

HRA_RATE = Decimal("0.40")
DA_RATE = Decimal("0.10")
PF_RATE = Decimal("0.12")

ESI_RATE = Decimal("0.0175")
ESI_GROSS_CEILING = Decimal("21000")

PROFESSIONAL_TAX = Decimal("200")
PT_GROSS_THRESHOLD = Decimal("15000")

CESS_RATE = Decimal("0.04")

# (lower, upper, rate on the slice above lower, tax accumulated below lower)
INCOME_TAX_SLABS: Tuple[Tuple[Decimal, Optional[Decimal], Decimal, Decimal], ...] = (
    (Decimal("0"), Decimal("300000"), Decimal("0"), Decimal("0")),
    (Decimal("300000"), Decimal("600000"), Decimal("0.05"), Decimal("0")),
    (Decimal("600000"), Decimal("900000"), Decimal("0.10"), Decimal("15000")),
    (Decimal("900000"), Decimal("1200000"), Decimal("0.15"), Decimal("45000")),
    (Decimal("1200000"), Decimal("1500000"), Decimal("0.20"), Decimal("90000")),
    (Decimal("1500000"), None, Decimal("0.30"), Decimal("150000")),
)

COMPONENT_KINDS = ("allowance", "deduction")


# ---------- numeric helpers ----------

def to_decimal(x) -> Decimal:
    """Anything -> finite Decimal; None, NaN, inf and junk become 0."""
    if x is None or isinstance(x, bool):
        return ZERO
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not d.is_finite():
        return ZERO
    return d


def round2(x) -> Decimal:
    return to_decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------- components (tagged variant) ----------

@dataclass(frozen=True)
class ComponentLine:
    name: str
    kind: str               # allowance | deduction
    calculation_type: str   # percentage | fixed
    value: Decimal          # percent of adjusted basic, or literal amount

    @classmethod
    def from_source(cls, src: Any) -> "ComponentLine":
        """Build from an ORM SalaryComponent or a plain dict."""
        get = src.get if isinstance(src, dict) else (lambda k, d=None: getattr(src, k, d))
        kind = get("kind")
        calc = get("calculation_type") or "fixed"
        if kind not in COMPONENT_KINDS:
            raise ValueError(f"unknown component kind {kind!r}")
        if calc not in CALCULATION_STRATEGIES:
            raise ValueError(f"unknown calculation type {calc!r}")
        return cls(name=str(get("name") or ""), kind=kind, calculation_type=calc, value=to_decimal(get("value")))


def _percentage_amount(value: Decimal, adjusted_basic: Decimal) -> Decimal:
    return round2(adjusted_basic * value / Decimal("100"))


def _fixed_amount(value: Decimal, adjusted_basic: Decimal) -> Decimal:
    return round2(value)


CALCULATION_STRATEGIES: Dict[str, Callable[[Decimal, Decimal], Decimal]] = {
    "percentage": _percentage_amount,
    "fixed": _fixed_amount,
}


def component_amount(component: ComponentLine, adjusted_basic: Decimal) -> Decimal:
    return CALCULATION_STRATEGIES[component.calculation_type](component.value, adjusted_basic)


# ---------- statutory pieces ----------

def esi_for(monthly_gross: Decimal) -> Decimal:
    if monthly_gross <= ESI_GROSS_CEILING:
        return round2(monthly_gross * ESI_RATE)
    return ZERO


def professional_tax_for(monthly_gross: Decimal) -> Decimal:
    return round2(PROFESSIONAL_TAX) if monthly_gross > PT_GROSS_THRESHOLD else ZERO


def annual_tax_before_cess(annual: Decimal) -> Decimal:
    for lower, upper, rate, base in INCOME_TAX_SLABS:
        if upper is None or annual <= upper:
            if annual <= lower:
                return base
            return base + (annual - lower) * rate
    return ZERO  # unreachable: last slab is open-ended


def monthly_income_tax(monthly_gross: Decimal) -> Decimal:
    annual = to_decimal(monthly_gross) * 12
    tax = annual_tax_before_cess(annual)
    tax = tax + tax * CESS_RATE
    return round2(tax / 12)


# ---------- result ----------

@dataclass
class SalaryCalculation:
    basic_salary: Decimal = ZERO
    hra: Decimal = ZERO
    da: Decimal = ZERO
    other_allowances: Decimal = ZERO
    pf: Decimal = ZERO
    esi: Decimal = ZERO
    professional_tax: Decimal = ZERO
    income_tax: Decimal = ZERO
    other_deductions: Decimal = ZERO
    gross_salary: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO
    allowance_breakdown: Dict[str, Decimal] = field(default_factory=dict)
    deduction_breakdown: Dict[str, Decimal] = field(default_factory=dict)

    MONEY_FIELDS = (
        "basic_salary", "hra", "da", "other_allowances",
        "pf", "esi", "professional_tax", "income_tax", "other_deductions",
        "gross_salary", "total_deductions", "net_pay",
    )

    def sanitized(self) -> "SalaryCalculation":
        for name in self.MONEY_FIELDS:
            setattr(self, name, round2(getattr(self, name)))
        return self

    def as_record_fields(self) -> Dict[str, Decimal]:
        return {name: getattr(self, name) for name in self.MONEY_FIELDS}

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def zero_calculation() -> SalaryCalculation:
    return SalaryCalculation()


# ---------- entry points ----------

def calculate_from_values(
    basic_salary,
    components: Iterable[Any],
    working_days,
    present_days,
    paid_leave_days,
) -> SalaryCalculation:
    basic = to_decimal(basic_salary)
    if basic <= 0:
        log.warning("basic salary is %s; returning zero calculation", basic)
        return zero_calculation()

    effective_days = max(ZERO, to_decimal(present_days) + to_decimal(paid_leave_days))
    days = to_decimal(working_days)
    if days <= 0:
        days = Decimal(DEFAULT_WORKING_DAYS)

    daily_rate = basic / days
    adjusted_basic = round2(daily_rate * effective_days)

    total_allowances = ZERO
    total_other_deductions = ZERO
    allowance_breakdown: Dict[str, Decimal] = {}
    deduction_breakdown: Dict[str, Decimal] = {}
    for src in components or ():
        line = src if isinstance(src, ComponentLine) else ComponentLine.from_source(src)
        amount = component_amount(line, adjusted_basic)
        if line.kind == "allowance":
            total_allowances += amount
            allowance_breakdown[line.name] = allowance_breakdown.get(line.name, ZERO) + amount
        else:
            total_other_deductions += amount
            deduction_breakdown[line.name] = deduction_breakdown.get(line.name, ZERO) + amount
    total_allowances = round2(total_allowances)
    total_other_deductions = round2(total_other_deductions)

    hra = round2(adjusted_basic * HRA_RATE)
    da = round2(adjusted_basic * DA_RATE)
    pf = round2(adjusted_basic * PF_RATE)

    monthly_gross = round2(adjusted_basic + hra + da + total_allowances)
    esi = esi_for(monthly_gross)
    professional_tax = professional_tax_for(monthly_gross)
    income_tax = monthly_income_tax(monthly_gross)

    gross_salary = round2(adjusted_basic + hra + da + total_allowances)
    total_deductions = round2(pf + esi + professional_tax + income_tax + total_other_deductions)
    net_pay = round2(gross_salary - total_deductions)

    log.debug(
        "salary calc basic=%s days=%s effective=%s adjusted=%s gross=%s deductions=%s net=%s",
        basic, days, effective_days, adjusted_basic, gross_salary, total_deductions, net_pay,
    )

    return SalaryCalculation(
        basic_salary=adjusted_basic,
        hra=hra,
        da=da,
        other_allowances=total_allowances,
        pf=pf,
        esi=esi,
        professional_tax=professional_tax,
        income_tax=income_tax,
        other_deductions=total_other_deductions,
        gross_salary=gross_salary,
        total_deductions=total_deductions,
        net_pay=net_pay,
        allowance_breakdown=allowance_breakdown,
        deduction_breakdown=deduction_breakdown,
    ).sanitized()


def calculate_salary(structure, summary) -> SalaryCalculation:
    """SalaryStructure (ORM or duck-typed) + AttendanceSummary -> SalaryCalculation."""
    return calculate_from_values(
        getattr(structure, "basic_salary", None),
        list(getattr(structure, "components", None) or []),
        getattr(summary, "working_days", None),
        getattr(summary, "present_days", None),
        getattr(summary, "paid_leave_days", None),
    )
