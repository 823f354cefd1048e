from flask_jwt_extended import create_access_token

from payroll_api.extensions import db
from payroll_api.models.master import Organization
from payroll_api.models.security import Role, Permission, RolePermission, UserRole


def _bearer(identity, roles=(), perms=None):
    claims = {"roles": list(roles)}
    if perms is not None:
        claims["perms"] = list(perms)
    return {"Authorization": f"Bearer {create_access_token(identity=str(identity), additional_claims=claims)}"}


def _generate(client, headers, org_id, **extra):
    body = {"organization_id": org_id, "month": 9, "year": 2025, **extra}
    return client.post("/api/v1/payroll/generate", json=body, headers=headers)


def test_requires_token(client, world):
    r = client.get(f"/api/v1/payroll?organization_id={world.org.id}")
    assert r.status_code == 401


def test_forbidden_without_permission(client, world):
    u = world.user()
    r = client.get(f"/api/v1/payroll?organization_id={world.org.id}", headers=_bearer(u.id))
    assert r.status_code == 403
    assert r.get_json()["success"] is False


def test_jwt_perm_claim_grants_access(client, world):
    u = world.user()
    r = client.get(f"/api/v1/payroll?organization_id={world.org.id}",
                   headers=_bearer(u.id, perms=["payroll.run.*"]))
    assert r.status_code == 200


def test_db_role_permission_grants_access(client, world):
    u = world.user()
    role = Role(code="finance")
    perm = Permission(code="payroll.reports.view")
    db.session.add_all([role, perm])
    db.session.commit()
    db.session.add_all([RolePermission(role_id=role.id, permission_id=perm.id),
                        UserRole(user_id=u.id, role_id=role.id)])
    db.session.commit()
    r = client.get(f"/api/v1/payroll/reports/summary?organization_id={world.org.id}", headers=_bearer(u.id))
    assert r.status_code == 200


def test_generate_list_and_get(client, world, admin_headers):
    emp = world.employee()
    world.structure(emp, basic="50000")
    world.present(emp, 2025, 9, 20)
    world.employee()

    r = _generate(client, admin_headers, world.org.id)
    assert r.status_code == 201
    body = r.get_json()
    assert body["success"] is True
    assert body["meta"]["count"] == 2
    by_emp = {row["employee_id"]: row for row in body["data"]}
    assert by_emp[emp.id]["net_pay"] == 59336.37
    assert by_emp[emp.id]["present_days"] == 20
    placeholder = next(row for row in body["data"] if row["employee_id"] != emp.id)
    assert placeholder["net_pay"] == -200.0

    r = client.get(f"/api/v1/payroll?organization_id={world.org.id}&month=9&year=2025", headers=admin_headers)
    assert r.status_code == 200
    assert r.get_json()["meta"]["total"] == 2

    pid = by_emp[emp.id]["id"]
    r = client.get(f"/api/v1/payroll/{pid}?organization_id={world.org.id}", headers=admin_headers)
    assert r.get_json()["data"]["gross_salary"] == 68181.83


def test_generate_validation(client, world, admin_headers):
    r = client.post("/api/v1/payroll/generate", json={"organization_id": world.org.id, "month": 9},
                    headers=admin_headers)
    assert r.status_code == 422
    r = _generate(client, admin_headers, world.org.id, month=13)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"
    r = _generate(client, admin_headers, world.org.id, employee_ids="all")
    assert r.status_code == 422


def test_status_flow_and_payment(client, world, admin_headers):
    world.employee()
    pid = _generate(client, admin_headers, world.org.id).get_json()["data"][0]["id"]

    r = client.put(f"/api/v1/payroll/{pid}/status", headers=admin_headers, json={
        "status": "paid", "payment_method": "cash", "organization_id": world.org.id,
    })
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    r = client.put(f"/api/v1/payroll/{pid}/status", json={"status": "approved", "organization_id": world.org.id},
                   headers=admin_headers)
    assert r.status_code == 200
    assert r.get_json()["data"]["approved_by"] == 1

    r = client.post("/api/v1/payroll/process-payment", headers=admin_headers, json={
        "organization_id": world.org.id, "payroll_ids": [pid], "payment_method": "wire",
    })
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "PAYMENT_DETAILS_REQUIRED"

    r = client.post("/api/v1/payroll/process-payment", headers=admin_headers, json={
        "organization_id": world.org.id, "payroll_ids": [pid], "payment_method": "bank_transfer",
        "payment_date": "2025-10-01",
    })
    assert r.status_code == 200
    row = r.get_json()["data"][0]
    assert row["status"] == "paid"
    assert row["payment_date"].startswith("2025-10-01")


def test_regenerate_reports_preserved(client, world, admin_headers):
    world.employee()
    world.employee()
    rows = _generate(client, admin_headers, world.org.id).get_json()["data"]
    client.put(f"/api/v1/payroll/{rows[0]['id']}/status", json={"status": "approved", "organization_id": world.org.id},
               headers=admin_headers)

    body = _generate(client, admin_headers, world.org.id).get_json()
    assert body["meta"]["preserved"] == 1
    assert body["meta"]["preserved_ids"] == [rows[0]["id"]]
    assert body["meta"]["count"] == 1


def test_unknown_payroll_is_404(client, world, admin_headers):
    r = client.get(f"/api/v1/payroll/4242?organization_id={world.org.id}", headers=admin_headers)
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "PAYROLL_NOT_FOUND"


def test_payslip_endpoints(client, world, admin_headers):
    owner = world.user(email="owner@test.local")
    emp = world.employee(user=owner)
    pid = _generate(client, admin_headers, world.org.id).get_json()["data"][0]["id"]

    r = client.post("/api/v1/payroll/payslips/generate", json={"payroll_ids": [pid], "organization_id": world.org.id},
                    headers=admin_headers)
    assert r.status_code == 201
    slip = r.get_json()["data"][0]
    assert slip["net_pay"] == -200.0
    assert slip["deductions"]["professionalTax"] == 200.0

    r = client.post("/api/v1/payroll/payslips/generate", json={"payroll_ids": [pid], "organization_id": world.org.id},
                    headers=admin_headers)
    assert r.get_json()["data"][0]["id"] == slip["id"]

    r = client.post("/api/v1/payroll/payslips/send", json={"payslip_ids": [slip["id"]], "organization_id": world.org.id},
                    headers=admin_headers)
    assert r.get_json()["data"][0]["status"] == "sent"

    r = client.get(f"/api/v1/payroll/payslips/employee/{emp.id}?organization_id={world.org.id}", headers=admin_headers)
    assert r.get_json()["meta"]["total"] == 1

    r = client.get(f"/api/v1/payroll/payslips/{slip['id']}?organization_id={world.org.id}", headers=admin_headers)
    assert r.get_json()["data"]["payroll_id"] == pid

    r = client.get("/api/v1/payroll/payslips/mine", headers=_bearer(owner.id))
    assert r.status_code == 200
    assert [p["id"] for p in r.get_json()["data"]] == [slip["id"]]

    r = client.get(f"/api/v1/payroll/payslips/999?organization_id={world.org.id}", headers=admin_headers)
    assert r.status_code == 404


def test_mine_without_employee_profile(client, world):
    u = world.user()
    r = client.get("/api/v1/payroll/payslips/mine", headers=_bearer(u.id))
    assert r.status_code == 404


def test_salary_structure_endpoints(client, world, admin_headers):
    emp = world.employee()
    r = client.post("/api/v1/payroll/salary-structures", headers=admin_headers, json={
        "employee_id": emp.id, "organization_id": world.org.id, "basic_salary": 30000,
        "effective_date": "2025-04-01",
        "components": [{"name": "Travel", "kind": "allowance", "calculation_type": "fixed", "value": 1200}],
    })
    assert r.status_code == 201
    assert r.get_json()["data"]["effective_date"] == "2025-04-01"

    r = client.put(f"/api/v1/payroll/salary-structures/{emp.id}", headers=admin_headers,
                   json={"organization_id": world.org.id, "basic_salary": 33000})
    assert r.status_code == 200
    assert r.get_json()["data"]["components"][0]["name"] == "Travel"

    r = client.get(f"/api/v1/payroll/salary-structures/{emp.id}?organization_id={world.org.id}",
                   headers=admin_headers)
    assert r.get_json()["data"]["basic_salary"] == 33000.0

    r = client.get(f"/api/v1/payroll/salary-structures/{emp.id}/history?organization_id={world.org.id}",
                   headers=admin_headers)
    assert [s["is_active"] for s in r.get_json()["data"]] == [True, False]

    r = client.post("/api/v1/payroll/salary-structures/bulk-update", headers=admin_headers, json={
        "organization_id": world.org.id, "salary_updates": [{"employee_id": emp.id, "basic_salary": 34000}],
    })
    assert r.status_code == 200
    assert r.get_json()["data"][0]["structure"]["basic_salary"] == 34000.0

    r = client.post("/api/v1/payroll/salary-structures", headers=admin_headers, json={
        "employee_id": emp.id, "organization_id": world.org.id, "basic_salary": -5,
    })
    assert r.status_code == 422


def test_missing_structure_is_404(client, world, admin_headers):
    emp = world.employee()
    r = client.get(f"/api/v1/payroll/salary-structures/{emp.id}?organization_id={world.org.id}",
                   headers=admin_headers)
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "SALARY_STRUCTURE_NOT_FOUND"


def test_report_endpoints(client, world, admin_headers):
    world.employee()
    _generate(client, admin_headers, world.org.id)

    r = client.get(f"/api/v1/payroll/reports/summary?organization_id={world.org.id}&month=9&year=2025",
                   headers=admin_headers)
    assert r.get_json()["data"]["total_net_pay"] == -200.0

    r = client.get(f"/api/v1/payroll/reports/department-wise?organization_id={world.org.id}&month=9&year=2025",
                   headers=admin_headers)
    assert r.get_json()["data"][0]["department"] == "Engineering"

    r = client.get(f"/api/v1/payroll/reports/yearly?organization_id={world.org.id}&year=2025",
                   headers=admin_headers)
    assert r.get_json()["data"]["totals"]["net_pay"] == -200.0

    r = client.get(f"/api/v1/payroll/reports/department-wise?organization_id={world.org.id}",
                   headers=admin_headers)
    assert r.status_code == 422


def test_login(client, world):
    world.user(email="login@test.local", password="pw123")
    r = client.post("/api/v1/auth/login", json={"email": "login@test.local", "password": "pw123"})
    assert r.status_code == 200
    assert r.get_json()["data"]["access"]
    r = client.post("/api/v1/auth/login", json={"email": "login@test.local", "password": "nope"})
    assert r.status_code == 401


def _other_org_payroll(client, world, admin_headers):
    other = Organization(code="T2", name="Other Org")
    db.session.add(other)
    db.session.commit()
    world.employee(org=other)
    pid = _generate(client, admin_headers, other.id).get_json()["data"][0]["id"]
    return other, pid


def test_by_id_routes_are_org_scoped(client, world, admin_headers):
    other, pid = _other_org_payroll(client, world, admin_headers)
    u = world.user()
    h = _bearer(u.id, perms=["payroll.*"])

    # no organization given
    assert client.get(f"/api/v1/payroll/{pid}", headers=h).status_code == 422
    r = client.put(f"/api/v1/payroll/{pid}/status", json={"status": "approved"}, headers=h)
    assert r.status_code == 422
    r = client.post("/api/v1/payroll/payslips/generate", json={"payroll_ids": [pid]}, headers=h)
    assert r.status_code == 422
    assert client.get("/api/v1/payroll/payslips/1", headers=h).status_code == 422
    assert client.get("/api/v1/payroll/payslips/employee/1", headers=h).status_code == 422

    # wrong organization
    mine = world.org.id
    assert client.get(f"/api/v1/payroll/{pid}?organization_id={mine}", headers=h).status_code == 404
    r = client.put(f"/api/v1/payroll/{pid}/status", json={"status": "approved", "organization_id": mine}, headers=h)
    assert r.status_code == 404
    r = client.post("/api/v1/payroll/payslips/generate", json={"payroll_ids": [pid], "organization_id": mine},
                    headers=h)
    assert r.status_code == 404

    # right organization
    r = client.post("/api/v1/payroll/payslips/generate", json={"payroll_ids": [pid], "organization_id": other.id},
                    headers=h)
    assert r.status_code == 201
    slip_id = r.get_json()["data"][0]["id"]
    assert client.get(f"/api/v1/payroll/payslips/{slip_id}?organization_id={mine}", headers=h).status_code == 404
    r = client.get(f"/api/v1/payroll/payslips/{slip_id}?organization_id={other.id}", headers=h)
    assert r.status_code == 200
    r = client.get(f"/api/v1/payroll/{pid}?organization_id={other.id}", headers=h)
    assert r.get_json()["data"]["status"] == "draft"


def test_status_change_needs_matching_permission(client, world, admin_headers):
    world.employee()
    pid = _generate(client, admin_headers, world.org.id).get_json()["data"][0]["id"]
    payer = _bearer(world.user(email="payer@test.local").id, perms=["payroll.pay"])
    approver = _bearer(world.user(email="approver@test.local").id, perms=["payroll.approve"])
    url = f"/api/v1/payroll/{pid}/status"

    r = client.put(url, json={"status": "approved", "organization_id": world.org.id}, headers=payer)
    assert r.status_code == 403
    r = client.put(url, json={"status": "approved", "organization_id": world.org.id}, headers=approver)
    assert r.status_code == 200

    paid = {"status": "paid", "payment_method": "cash", "organization_id": world.org.id}
    assert client.put(url, json=paid, headers=approver).status_code == 403
    r = client.put(url, json=paid, headers=payer)
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "paid"
