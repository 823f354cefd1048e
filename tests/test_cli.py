from payroll_api.models.master import Organization
from payroll_api.models.payroll import PayrollRecord
from payroll_api.models.security import Permission, Role


def test_seed_rbac_is_rerunnable(app):
    runner = app.test_cli_runner()
    first = runner.invoke(args=["seed-rbac"])
    assert first.exit_code == 0, first.output
    runner.invoke(args=["seed-rbac"])
    assert Permission.query.filter_by(code="payroll.run.write").count() == 1
    assert {r.code for r in Role.query.all()} >= {"admin", "hr", "finance", "employee"}


def test_seed_core_then_generate(app):
    runner = app.test_cli_runner()
    res = runner.invoke(args=["seed-core"])
    assert res.exit_code == 0, res.output
    org = Organization.query.filter_by(code="DEMO").one()

    res = runner.invoke(args=["payroll", "generate", "--org-id", str(org.id), "--month", "9", "--year", "2025"])
    assert res.exit_code == 0, res.output
    assert "Generated 1 payroll record(s) for 09/2025" in res.output
    assert PayrollRecord.query.filter_by(organization_id=org.id, month=9, year=2025).count() == 1


def test_generate_bad_period_is_a_click_error(app):
    runner = app.test_cli_runner()
    runner.invoke(args=["seed-core"])
    res = runner.invoke(args=["payroll", "generate", "--org-id", "1", "--month", "9", "--year", "1999"])
    assert res.exit_code != 0
    assert "VALIDATION_ERROR" in res.output
