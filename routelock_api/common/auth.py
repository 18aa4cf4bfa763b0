# routelock_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Iterable, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from routelock_api.common.http import fail
from routelock_api.common.errors import APIError

# roles that skip permission checks entirely
BYPASS_ROLES = {"admin", "owner"}


# ---------- helpers ----------

def _wildcard_match(user_perm: str, required: str) -> bool:
    """
    Match required permission against a user's permission with simple wildcards.
    Examples:
      user_perm: 'route_lock.*'           matches required: 'route_lock.schedule.write'
      user_perm: 'route_lock.schedule.*'  matches required: 'route_lock.schedule.read'
      user_perm: 'roster_manage'          matches only exact
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


def current_org_id() -> int:
    """
    The org the caller has selected, read from the `pc_org_id` JWT claim.
    Raises 409 when no org is selected.
    """
    claims = get_jwt() or {}
    raw = claims.get("pc_org_id")
    try:
        org_id = int(raw)
    except (TypeError, ValueError):
        raise APIError("no_selected_org", "No organization selected", status_code=409)
    if org_id <= 0:
        raise APIError("no_selected_org", "No organization selected", status_code=409)
    return org_id


# ---------- decorators ----------

def requires_perms(*perm_codes: str):
    """
    Require that the current user has ANY of the given permission codes.

    Permissions and roles are read from the 'perms' / 'roles' JWT claims
    issued at login. 'admin' and 'owner' roles always pass.

    Supports simple wildcards granted to the user:
      - 'route_lock.*' or 'route_lock.schedule.*'
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if not perm_codes:
                return fn(*args, **kwargs)

            if get_jwt_identity() is None:
                return fail("Unauthorized", status=401)

            claims = get_jwt() or {}
            roles = set(claims.get("roles") or [])
            if roles & BYPASS_ROLES:
                return fn(*args, **kwargs)

            perms = set(claims.get("perms") or [])
            if not _has_any_perm(perms, perm_codes):
                return fail("Forbidden", status=403)

            return fn(*args, **kwargs)
        return inner
    return outer
