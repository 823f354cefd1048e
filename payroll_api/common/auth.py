# payroll_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Iterable, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from payroll_api.common.http import fail
from payroll_api.extensions import db
from payroll_api.models.user import User
from payroll_api.models.security import Role, Permission, UserRole, RolePermission


# ---------- helpers ----------

def _wildcard_match(user_perm: str, required: str) -> bool:
    """
    Match required permission against a user's permission with simple wildcards.
    Examples:
      user_perm: 'payroll.*'            matches required: 'payroll.run.write'
      user_perm: 'payroll.payslips.*'   matches required: 'payroll.payslips.view'
      user_perm: 'payroll.run.read'     matches only exact
    """
    if user_perm == required:
        return True
    if user_perm.endswith(".*"):
        prefix = user_perm[:-2]
        return required.startswith(prefix)
    return False


def _has_any_perm(user_perms: Set[str], required_perms: Iterable[str]) -> bool:
    if not required_perms:
        return True
    if not user_perms:
        return False
    for req in required_perms:
        if any(_wildcard_match(up, req) for up in user_perms):
            return True
    return False


def _collect_perms_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def _collect_roles_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def current_actor_id() -> int | None:
    """JWT identity as int (tokens carry it as a string)."""
    uid = get_jwt_identity()
    try:
        return int(uid) if uid is not None else None
    except (TypeError, ValueError):
        return None


def caller_has_perms(*perm_codes: str) -> bool:
    """
    True if the current JWT user has ANY of the given permission codes.
    Must run inside a jwt_required() request.

    Fast path: read 'perms' and 'roles' from JWT claims if present.
    Fallback:  query DB for permissions via role mappings.
    """
    if not perm_codes:
        return True

    claims = get_jwt() or {}
    if "admin" in set(claims.get("roles") or []):
        return True

    uid = current_actor_id()
    if uid is None:
        return False

    jwt_perms = set(claims.get("perms") or [])
    if jwt_perms and _has_any_perm(jwt_perms, perm_codes):
        return True

    # DB fallback (fresh live read, covers stale tokens)
    user = db.session.get(User, uid)
    if not user:
        return False
    if "admin" in _collect_roles_from_db(user.id):
        return True
    return _has_any_perm(_collect_perms_from_db(user.id), perm_codes)


# ---------- decorators ----------

def requires_perms(*perm_codes: str):
    """Require that the current user has ANY of the given permission codes."""
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if caller_has_perms(*perm_codes):
                return fn(*args, **kwargs)
            uid = current_actor_id()
            if uid is None or not db.session.get(User, uid):
                return fail("Unauthorized", status=401)
            return fail("Forbidden", status=403)
        return inner
    return outer
