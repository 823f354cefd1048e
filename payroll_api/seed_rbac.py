# payroll_api/seed_rbac.py
# Roles and payroll permission codes; safe to re-run.

from payroll_api.extensions import db
from payroll_api.models.security import Role, Permission, RolePermission, UserRole
from payroll_api.models.user import User

DEFAULT_ROLES = [
    ("admin", "Administrator"),
    ("hr", "HR"),
    ("finance", "Finance"),
    ("employee", "Employee"),
]

DEFAULT_PERMS = [
    # Salary structures
    "payroll.structure.read", "payroll.structure.write",

    # Payroll runs
    "payroll.run.read", "payroll.run.write",
    "payroll.approve", "payroll.pay",

    # Payslips
    "payroll.payslips.generate", "payroll.payslips.view",

    # Reports
    "payroll.reports.view",
]

ROLE_PERM_MAP = {
    "admin": DEFAULT_PERMS,
    "hr": [
        "payroll.structure.read", "payroll.structure.write",
        "payroll.run.read", "payroll.run.write", "payroll.approve",
        "payroll.payslips.generate", "payroll.payslips.view",
        "payroll.reports.view",
    ],
    "finance": [
        "payroll.structure.read",
        "payroll.run.read", "payroll.pay",
        "payroll.payslips.view",
        "payroll.reports.view",
    ],
    # own payslips only, via /payslips/mine
    "employee": [],
}

ADMIN_EMAILS = ["admin@demo.local", "admin@payroll.local"]


def _ensure_roles():
    code_to_role = {}
    for code, _name in DEFAULT_ROLES:
        r = Role.query.filter_by(code=code).first()
        if not r:
            r = Role(code=code)
            db.session.add(r)
            db.session.flush()
        code_to_role[code] = r
    return code_to_role


def _ensure_permissions():
    code_to_perm = {}
    for code in DEFAULT_PERMS:
        p = Permission.query.filter_by(code=code).first()
        if not p:
            p = Permission(code=code, name=code.replace(".", " ").title())
            db.session.add(p)
            db.session.flush()
        code_to_perm[code] = p
    return code_to_perm


def _map_role_perms(code_to_role, code_to_perm):
    added = 0
    for rcode, perms in ROLE_PERM_MAP.items():
        r = code_to_role[rcode]
        existing = {rp.permission_id for rp in r.permissions}
        for pcode in perms:
            p = code_to_perm[pcode]
            if p.id not in existing:
                db.session.add(RolePermission(role_id=r.id, permission_id=p.id))
                existing.add(p.id)
                added += 1
    return added


def _assign_admin_role(admin_role):
    admin_user = User.query.filter(User.email.in_(ADMIN_EMAILS)).first()
    if not admin_user:
        return False
    if any(ur.role_id == admin_role.id for ur in admin_user.user_roles):
        return False
    db.session.add(UserRole(user_id=admin_user.id, role_id=admin_role.id))
    return True


def run():
    code_to_role = _ensure_roles()
    code_to_perm = _ensure_permissions()
    mappings = _map_role_perms(code_to_role, code_to_perm)
    admin_linked = _assign_admin_role(code_to_role["admin"])
    db.session.commit()
    return {
        "ok": True,
        "roles": len(DEFAULT_ROLES),
        "perms": len(DEFAULT_PERMS),
        "new_mappings": mappings,
        "admin_linked": admin_linked,
    }
