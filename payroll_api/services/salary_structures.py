# payroll_api/services/salary_structures.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional
import logging

from payroll_api.common.errors import APIError
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.salary_structure import SalaryStructure, SalaryComponent
from payroll_api.services.salary_calculator import COMPONENT_KINDS, CALCULATION_STRATEGIES

log = logging.getLogger(__name__)


def _dec(x) -> Optional[Decimal]:
    if x is None or x == "":
        return None
    try:
        d = Decimal(str(x))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return d if d.is_finite() else None


def _validate_components(components) -> List[str]:
    errors: List[str] = []
    if components is None:
        return errors
    if not isinstance(components, list):
        return ["components must be a list"]
    for i, c in enumerate(components):
        if not isinstance(c, dict):
            errors.append(f"components[{i}] must be an object")
            continue
        if not (c.get("name") or "").strip():
            errors.append(f"components[{i}].name is required")
        if c.get("kind") not in COMPONENT_KINDS:
            errors.append(f"components[{i}].kind must be allowance or deduction")
        calc = c.get("calculation_type") or "fixed"
        if calc not in CALCULATION_STRATEGIES:
            errors.append(f"components[{i}].calculation_type must be fixed or percentage")
            continue
        val = _dec(c.get("value", 0))
        if val is None or val < 0:
            errors.append(f"components[{i}].value must be a non-negative number")
        elif calc == "percentage" and val > 100:
            errors.append(f"components[{i}].value must be between 0 and 100 for percentage")
    return errors


def validate_structure_payload(data: Dict[str, Any], partial: bool = False) -> None:
    errors: List[str] = []
    basic = data.get("basic_salary")
    if basic is None:
        if not partial:
            errors.append("basic_salary is required")
    else:
        b = _dec(basic)
        if b is None or b < 0:
            errors.append("basic_salary must be a non-negative number")
    if data.get("ctc") is not None:
        c = _dec(data.get("ctc"))
        if c is None or c < 0:
            errors.append("ctc must be a non-negative number")
    cur = data.get("currency")
    if cur is not None and len(str(cur)) != 3:
        errors.append("currency must be a 3-character code")
    errors.extend(_validate_components(data.get("components")))
    if errors:
        raise APIError("VALIDATION_ERROR", "Invalid salary structure", 422, payload=errors)


class SalaryStructureProvider:
    """Active-structure lookup and append-only versioning of salary structures."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or datetime.utcnow

    # ---------- reads ----------

    def get_active_structure(self, employee_id: int, organization_id: int) -> Optional[SalaryStructure]:
        return (
            SalaryStructure.query
            .filter_by(employee_id=employee_id, organization_id=organization_id, is_active=True)
            .order_by(SalaryStructure.id.desc())
            .first()
        )

    def active_structures_for(self, employee_ids: List[int], organization_id: int) -> Dict[int, SalaryStructure]:
        if not employee_ids:
            return {}
        rows = (
            SalaryStructure.query
            .filter(
                SalaryStructure.organization_id == organization_id,
                SalaryStructure.employee_id.in_(employee_ids),
                SalaryStructure.is_active.is_(True),
            )
            .order_by(SalaryStructure.id.asc())
            .all()
        )
        # highest id wins if legacy data ever left two active rows
        return {s.employee_id: s for s in rows}

    def list_salary_history(self, employee_id: int, organization_id: int) -> List[SalaryStructure]:
        return (
            SalaryStructure.query
            .filter_by(employee_id=employee_id, organization_id=organization_id)
            .order_by(SalaryStructure.id.desc())
            .all()
        )

    # ---------- writes ----------

    def _ensure_employee(self, employee_id: int, organization_id: int) -> Employee:
        emp = db.session.get(Employee, employee_id)
        if not emp or emp.organization_id != organization_id:
            raise APIError("EMPLOYEE_NOT_FOUND", f"Employee {employee_id} not found in organization", 404)
        return emp

    def _replace_active(
        self,
        employee_id: int,
        organization_id: int,
        basic_salary: Decimal,
        ctc: Optional[Decimal],
        effective_date: Optional[date],
        currency: Optional[str],
        components: List[Dict[str, Any]],
    ) -> SalaryStructure:
        """Deactivate the current version and insert a new active one. Caller commits."""
        now = self._now()
        (
            SalaryStructure.query
            .filter_by(employee_id=employee_id, organization_id=organization_id, is_active=True)
            .update({"is_active": False, "end_date": now}, synchronize_session="fetch")
        )

        s = SalaryStructure(
            employee_id=employee_id,
            organization_id=organization_id,
            basic_salary=basic_salary,
            ctc=ctc if ctc is not None else basic_salary * 12,
            currency=(currency or "INR").upper(),
            effective_date=effective_date or now.date(),
            is_active=True,
        )
        for i, c in enumerate(components or []):
            s.components.append(SalaryComponent(
                name=c["name"].strip(),
                kind=c["kind"],
                calculation_type=c.get("calculation_type") or "fixed",
                value=_dec(c.get("value", 0)) or Decimal("0"),
                display_order=i,
            ))
        db.session.add(s)
        db.session.flush()
        return s

    def create_salary_structure(self, data: Dict[str, Any]) -> SalaryStructure:
        validate_structure_payload(data)
        employee_id = int(data["employee_id"])
        organization_id = int(data["organization_id"])
        try:
            self._ensure_employee(employee_id, organization_id)
            s = self._replace_active(
                employee_id, organization_id,
                _dec(data["basic_salary"]),
                _dec(data.get("ctc")),
                data.get("effective_date"),
                data.get("currency"),
                data.get("components") or [],
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("salary structure %s created for employee %s (org %s)", s.id, employee_id, organization_id)
        return s

    def _next_version(self, current: SalaryStructure, data: Dict[str, Any]) -> SalaryStructure:
        basic_in = _dec(data.get("basic_salary"))
        ctc_in = _dec(data.get("ctc"))
        basic = basic_in if basic_in is not None else Decimal(str(current.basic_salary))
        if ctc_in is not None:
            ctc = ctc_in
        elif basic_in is not None:
            ctc = basic_in * 12
        else:
            ctc = Decimal(str(current.ctc))

        if data.get("components") is not None:
            components = data["components"]
        else:
            components = [
                {"name": c.name, "kind": c.kind, "calculation_type": c.calculation_type, "value": c.value}
                for c in current.components
            ]
        return self._replace_active(
            current.employee_id, current.organization_id,
            basic, ctc,
            data.get("effective_date"),
            data.get("currency") or current.currency,
            components,
        )

    def update_salary_structure(self, employee_id: int, data: Dict[str, Any], organization_id: int) -> SalaryStructure:
        """New version carrying forward anything not supplied; creates if none is active."""
        current = self.get_active_structure(employee_id, organization_id)
        if current is None:
            return self.create_salary_structure({**data, "employee_id": employee_id, "organization_id": organization_id})

        validate_structure_payload(data, partial=True)
        try:
            s = self._next_version(current, data)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("salary structure %s superseded by %s for employee %s", current.id, s.id, employee_id)
        return s

    def bulk_update_salaries(self, updates: List[Dict[str, Any]], organization_id: int) -> List[Dict[str, Any]]:
        """All-or-nothing basic salary update for many employees."""
        if not isinstance(updates, list) or not updates:
            raise APIError("VALIDATION_ERROR", "salary_updates must be a non-empty list", 422)
        for u in updates:
            validate_structure_payload({"basic_salary": u.get("basic_salary")})

        results = []
        try:
            for u in updates:
                employee_id = int(u["employee_id"])
                self._ensure_employee(employee_id, organization_id)
                current = self.get_active_structure(employee_id, organization_id)
                data = {"basic_salary": u["basic_salary"]}
                if current is None:
                    s = self._replace_active(employee_id, organization_id, _dec(u["basic_salary"]),
                                             None, None, None, [])
                else:
                    s = self._next_version(current, data)
                results.append({"employee_id": employee_id, "success": True, "structure": s})
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log.info("bulk salary update: %d employees in org %s", len(results), organization_id)
        return results
