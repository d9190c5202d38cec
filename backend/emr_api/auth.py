"""Authentication helpers and FastAPI security dependencies.

This module decodes the bearer JWT into an `Identity` carrying the
caller's user id, tenant id and entitlements, and provides
`user_authorize`, the per-entity/per-action entitlement check every
entity controller route depends on.

Token issuing is not handled here; any issuer sharing `JWT_SECRET` can
mint tokens with the claims below:

    {"user_id": "<uuid>", "tenant_id": "<uuid>",
     "entitlements": {"Invoice": ["Read", "Create"], "*": ["Read"]}}

Token verification raises HTTPExceptions on failure so the helpers can be
used directly inside route dependencies.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import TypeAdapter, ValidationError

from .config import settings

bearer_scheme = HTTPBearer()

WILDCARD = "*"

# Entity name (or "*") -> granted action names (or "*").
ENTITLEMENT_CLAIM = TypeAdapter(Dict[str, List[str]])


class Entitlements(str, Enum):
    """Actions an entitlement can grant on an entity."""
    CREATE = "Create"
    READ = "Read"
    UPDATE = "Update"
    DELETE = "Delete"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller as seen by the controllers."""
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    entitlements: Dict[str, List[str]] = field(default_factory=dict)

    def has_entitlement(self, entity: str, entitlement: Entitlements) -> bool:
        for key in (entity, WILDCARD):
            actions = self.entitlements.get(key) or []
            if WILDCARD in actions or entitlement.value in actions:
                return True
        return False


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_current_identity(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> Identity:
    """FastAPI dependency that returns the authenticated caller.

    Both `user_id` and `tenant_id` claims must be present and parse as
    UUIDs, and `entitlements` must map names to lists of action names;
    anything else is rejected with 401.
    """
    payload = decode_token(credentials.credentials)
    try:
        user_id = uuid.UUID(str(payload['user_id']))
        tenant_id = uuid.UUID(str(payload['tenant_id']))
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail='invalid token payload')
    try:
        entitlements = ENTITLEMENT_CLAIM.validate_python(payload.get('entitlements') or {})
    except ValidationError:
        raise HTTPException(status_code=401, detail='invalid token payload')
    return Identity(user_id=user_id, tenant_id=tenant_id, entitlements=entitlements)


def user_authorize(entity: str, entitlement: Entitlements):
    """Build a dependency that requires `entitlement` on `entity`.

    The dependency resolves to the caller's `Identity` so routes can use
    it for tenant and audit stamping. Setting `ENFORCE_ENTITLEMENTS=false`
    keeps authentication but skips the entitlement check.
    """
    def check(identity: Identity = Depends(get_current_identity)) -> Identity:
        if settings.ENFORCE_ENTITLEMENTS and not identity.has_entitlement(entity, entitlement):
            raise HTTPException(status_code=403, detail=f'missing entitlement {entity}.{entitlement.value}')
        return identity
    return check
