from datetime import date, datetime, timedelta
from decimal import Decimal
import os

import pytest
from flask_jwt_extended import create_access_token

os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.master import Organization, Department, Designation
from payroll_api.models.employee import Employee
from payroll_api.models.user import User
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.models.leave import LeaveType, LeaveRequest
from payroll_api.services.salary_structures import SalaryStructureProvider

# Sep 2025 has 22 weekdays; "now" sits in the following month so Sep is a past period.
FIXED_NOW = datetime(2025, 10, 15, 12, 0, 0)


def fixed_now():
    return FIXED_NOW


class Recorder:
    """Transport that keeps every message."""
    def __init__(self):
        self.sent = []

    def send(self, event, payload):
        self.sent.append((event, payload))

    def events(self):
        return [e for e, _ in self.sent]


class Exploding:
    def send(self, event, payload):
        raise RuntimeError("push gateway down")


@pytest.fixture()
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


class World:
    """Small factory for org / employees / structures / attendance."""

    def __init__(self):
        self.org = Organization(code="T1", name="Test Org")
        db.session.add(self.org)
        db.session.commit()
        self.dept = Department(organization_id=self.org.id, name="Engineering")
        db.session.add(self.dept)
        db.session.commit()
        self.desig = Designation(department_id=self.dept.id, name="Engineer")
        self.paid_leave = LeaveType(organization_id=self.org.id, code="CL", name="Casual", is_paid=True)
        self.unpaid_leave = LeaveType(organization_id=self.org.id, code="LWP", name="Without pay", is_paid=False)
        db.session.add_all([self.desig, self.paid_leave, self.unpaid_leave])
        db.session.commit()
        self._n = 0

    def employee(self, first_name="Emp", status="active", org=None, department=True, user=None):
        self._n += 1
        e = Employee(
            organization_id=(org or self.org).id,
            department_id=self.dept.id if department else None,
            designation_id=self.desig.id if department else None,
            user_id=user.id if user else None,
            code=f"E{self._n:03d}",
            email=f"e{self._n}@test.local",
            first_name=first_name,
            last_name=f"T{self._n}",
            status=status,
        )
        db.session.add(e)
        db.session.commit()
        return e

    def structure(self, emp, basic="50000", components=None):
        return SalaryStructureProvider(now=fixed_now).create_salary_structure({
            "employee_id": emp.id,
            "organization_id": emp.organization_id,
            "basic_salary": basic,
            "components": components or [],
        })

    def present(self, emp, year, month, days):
        """Mark the first `days` weekdays of the month present."""
        cur = date(year, month, 1)
        n = 0
        while n < days:
            if cur.weekday() < 5:
                db.session.add(AttendanceRecord(employee_id=emp.id, work_date=cur, status="present"))
                n += 1
            cur += timedelta(days=1)
        db.session.commit()

    def leave(self, emp, start, end, days, paid=True, status="approved"):
        lt = self.paid_leave if paid else self.unpaid_leave
        lr = LeaveRequest(
            organization_id=emp.organization_id, employee_id=emp.id, leave_type_id=lt.id,
            start_date=start, end_date=end,
            total_days=Decimal(str(days)) if days is not None else None,
            status=status,
        )
        db.session.add(lr)
        db.session.commit()
        return lr

    def user(self, email="user@test.local", password="secret"):
        u = User(email=email, full_name="Some User", status="active")
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u


@pytest.fixture()
def world(app):
    return World()


@pytest.fixture()
def admin_headers(app):
    token = create_access_token(identity="1", additional_claims={"roles": ["admin"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def clock():
    return fixed_now


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def exploding():
    return Exploding()
