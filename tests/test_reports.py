from decimal import Decimal

import pytest

from payroll_api.services import payroll_reports
from payroll_api.services.payroll_generator import PayrollGenerator

D = Decimal


@pytest.fixture()
def populated(world, clock):
    a = world.employee()
    b = world.employee()
    loose = world.employee(department=False)
    world.structure(a, basic="50000")
    world.structure(b, basic="20000")
    world.present(a, 2025, 9, 20)
    world.present(b, 2025, 9, 22)
    gen = PayrollGenerator(now=clock)
    recs = {r.employee_id: r for r in gen.generate_payroll(9, 2025, world.org.id)}
    gen.generate_payroll(8, 2025, world.org.id)
    gen.update_payroll_status(recs[a.id].id, "approved", actor_id=1, organization_id=world.org.id)
    return world, a, b, loose, recs


def test_summary_totals(populated):
    world, a, b, loose, recs = populated
    s = payroll_reports.payroll_summary(world.org.id, month=9, year=2025)
    assert s["total_employees"] == 3
    assert s["total_gross"] == sum((r.gross_salary for r in recs.values()), D("0"))
    assert s["total_net_pay"] == sum((r.net_pay for r in recs.values()), D("0"))
    assert s["total_deductions"] == sum((r.total_deductions for r in recs.values()), D("0"))
    assert s["by_status"] == {"draft": 2, "approved": 1, "paid": 0}
    depts = {d["department"]: d for d in s["by_department"]}
    assert depts["Engineering"]["count"] == 2
    assert depts["Unassigned"]["count"] == 1
    assert depts["Unassigned"]["net_pay"] == D("-200.00")


def test_summary_department_filter(populated):
    world = populated[0]
    s = payroll_reports.payroll_summary(world.org.id, month=9, year=2025, department="Engineering")
    assert s["total_employees"] == 2


def test_department_wise(populated):
    world, a, b, loose, recs = populated
    rows = payroll_reports.department_wise_report(world.org.id, 9, 2025)
    eng = next(r for r in rows if r["department"] == "Engineering")
    assert eng["employee_count"] == 2
    assert eng["total_basic"] == recs[a.id].basic_salary + recs[b.id].basic_salary
    assert {e["employee_id"] for e in eng["employees"]} == {a.id, b.id}


def test_yearly(populated):
    world, a, b, loose, recs = populated
    y = payroll_reports.yearly_report(world.org.id, 2025, employee_id=a.id)
    assert [m["month"] for m in y["monthly"]] == [8, 9]
    sep = y["monthly"][1]
    assert sep["net_pay"] == recs[a.id].net_pay
    assert sep["status"] == "approved"
    assert y["totals"]["net_pay"] == y["monthly"][0]["net_pay"] + sep["net_pay"]
    assert y["averages"]["net_pay"] == (y["totals"]["net_pay"] / 12).quantize(D("0.01"), rounding="ROUND_HALF_UP")
