from decimal import Decimal

import pytest

from payroll_api.common.errors import APIError
from payroll_api.models.payroll import Payslip
from payroll_api.services.notifications import NotificationDispatcher
from payroll_api.services.payroll_generator import PayrollGenerator
from payroll_api.services.payslip_service import PayslipDeriver

D = Decimal


@pytest.fixture()
def deriver(clock, recorder):
    return PayslipDeriver(notifier=NotificationDispatcher(recorder), now=clock)


@pytest.fixture()
def record(world, clock):
    emp = world.employee(first_name="Asha")
    world.structure(emp, basic="50000", components=[
        {"name": "Special", "kind": "allowance", "calculation_type": "percentage", "value": "10"},
        {"name": "Canteen", "kind": "deduction", "calculation_type": "fixed", "value": "500"},
    ])
    world.present(emp, 2025, 9, 20)
    [rec] = PayrollGenerator(now=clock).generate_payroll(9, 2025, world.org.id)
    return rec


def test_payslip_copies_record_amounts(deriver, record):
    [slip] = deriver.generate_payslips([record.id], actor_id=3, organization_id=record.organization_id)
    assert slip.payroll_id == record.id
    assert slip.status == "generated"
    assert slip.generated_by == 3
    assert (slip.month, slip.year) == (9, 2025)
    assert slip.employee_name == record.employee.full_name
    assert slip.department == "Engineering"
    assert slip.designation == "Engineer"

    assert slip.basic_salary == record.basic_salary
    assert slip.gross_salary == record.gross_salary
    assert slip.net_pay == record.net_pay
    assert slip.tax_amount == record.income_tax
    assert slip.deductions_total == record.total_deductions
    assert slip.allowances_total == record.hra + record.da + record.other_allowances
    assert slip.allowances == {
        "hra": float(record.hra), "da": float(record.da), "other": float(record.other_allowances),
    }
    assert slip.deductions["other"] == 500.0
    assert slip.deductions["professionalTax"] == 200.0


def test_payslip_created_once_per_record(deriver, record, recorder):
    [first] = deriver.generate_payslips([record.id], actor_id=3, organization_id=record.organization_id)
    assert recorder.events() == ["payslip_available"]
    assert recorder.sent[0][1]["employee_id"] == record.employee_id
    assert recorder.sent[0][1]["payslip_id"] == first.id

    [again] = deriver.generate_payslips([record.id], actor_id=4, organization_id=record.organization_id)
    assert again.id == first.id
    assert again.generated_by == 3
    assert Payslip.query.filter_by(payroll_id=record.id).count() == 1
    assert recorder.events() == ["payslip_available"]


def test_generate_ignores_other_org_records(deriver, record, recorder):
    with pytest.raises(APIError) as ei:
        deriver.generate_payslips([record.id], actor_id=3, organization_id=record.organization_id + 1)
    assert ei.value.code == "PAYROLL_NOT_FOUND"
    assert Payslip.query.count() == 0
    assert recorder.events() == []


def test_generate_requires_existing_records(deriver, world):
    with pytest.raises(APIError) as ei:
        deriver.generate_payslips([12345], actor_id=1, organization_id=world.org.id)
    assert ei.value.code == "PAYROLL_NOT_FOUND"
    with pytest.raises(APIError) as ei:
        deriver.generate_payslips([], actor_id=1, organization_id=world.org.id)
    assert ei.value.code == "VALIDATION_ERROR"


def test_send_marks_sent_and_notifies(deriver, record, recorder, clock):
    [slip] = deriver.generate_payslips([record.id], actor_id=3, organization_id=record.organization_id)
    [sent] = deriver.send_payslips([slip.id], record.organization_id)
    assert sent.status == "sent"
    assert sent.sent_at == clock()
    assert sent.sent_to == record.employee.email
    assert "payslip_available" in recorder.events()


def test_employee_payslips_newest_first(world, deriver, clock):
    emp = world.employee()
    gen = PayrollGenerator(now=clock)
    ids = [gen.generate_payroll(m, 2025, world.org.id)[0].id for m in (7, 8, 9)]
    deriver.generate_payslips(ids, actor_id=1, organization_id=world.org.id)

    slips = deriver.get_employee_payslips(emp.id, world.org.id)
    assert [s.month for s in slips] == [9, 8, 7]


def test_get_payslip_scoped_to_org(deriver, record):
    [slip] = deriver.generate_payslips([record.id], actor_id=3, organization_id=record.organization_id)
    assert deriver.get_payslip(slip.id, record.organization_id).id == slip.id
    with pytest.raises(APIError) as ei:
        deriver.get_payslip(slip.id, record.organization_id + 1)
    assert ei.value.code == "PAYSLIP_NOT_FOUND"
