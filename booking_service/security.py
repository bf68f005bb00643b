from dataclasses import dataclass

from jose import jwt, JWTError
from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import JWT_SECRET, JWT_ALGORITHM
from .errors import Unauthorized, Forbidden

ROLE_CUSTOMER = "customer"
ROLE_LABOR = "labor"
ROLE_ADMIN = "admin"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    user_id: str
    roles: frozenset

    def has_role(self, role: str) -> bool:
        return role in self.roles


def _roles_from_payload(payload: dict) -> set[str]:
    raw = payload.get("roles")
    if raw is None and payload.get("role"):
        raw = [payload["role"]]
    if not isinstance(raw, list):
        return set()
    return {str(r).strip().lower() for r in raw if r}


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Caller:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise Unauthorized("Missing Bearer token")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or expired token")

    sub = payload.get("sub")
    if not sub:
        raise Unauthorized("Token has no subject")

    roles = _roles_from_payload(payload)
    request.state.user_sub = str(sub)
    request.state.user_roles = sorted(roles)

    return Caller(user_id=str(sub), roles=frozenset(roles))


def require_role(caller: Caller, allowed_roles: list[str]):
    if not caller.roles:
        raise Forbidden("Roles missing in token")

    allowed = {r.lower() for r in allowed_roles}
    if caller.roles.isdisjoint(allowed):
        raise Forbidden("Access forbidden for this role")


def customer(caller: Caller = Depends(get_current_user)) -> Caller:
    require_role(caller, [ROLE_CUSTOMER])
    return caller


def labor(caller: Caller = Depends(get_current_user)) -> Caller:
    require_role(caller, [ROLE_LABOR])
    return caller


def admin(caller: Caller = Depends(get_current_user)) -> Caller:
    require_role(caller, [ROLE_ADMIN])
    return caller
