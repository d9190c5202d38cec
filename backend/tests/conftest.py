from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
import os
import shutil
import tempfile
import uuid

import jwt
import pytest

# Point the app at a throwaway SQLite file before anything imports it.
_DB_DIR = Path(tempfile.mkdtemp(prefix="emr-api-tests-"))
os.environ["ENV"] = "dev"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENFORCE_ENTITLEMENTS"] = "true"

from emr_api.config import settings  # noqa: E402

ALL_ENTITLEMENTS = {"*": ["*"]}


@pytest.fixture(scope="session", autouse=True)
def reset_db():
    """Remove the temporary SQLite database once the session ends."""
    yield
    shutil.rmtree(_DB_DIR, ignore_errors=True)


def mint_token(tenant_id=None, user_id=None, entitlements=None, expires_in=timedelta(hours=1), **claims):
    payload = {
        "user_id": str(user_id or uuid.uuid4()),
        "tenant_id": str(tenant_id or uuid.uuid4()),
        "entitlements": ALL_ENTITLEMENTS if entitlements is None else entitlements,
        "exp": int((datetime.now(timezone.utc) + expires_in).timestamp()),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def make_caller(entitlements=None, tenant_id=None):
    tenant_id = tenant_id or uuid.uuid4()
    user_id = uuid.uuid4()
    token = mint_token(tenant_id=tenant_id, user_id=user_id, entitlements=entitlements)
    return SimpleNamespace(
        tenant_id=tenant_id,
        user_id=user_id,
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest.fixture
def caller():
    """A fresh tenant/user with every entitlement."""
    return make_caller()


@pytest.fixture
def other_caller():
    """A second, unrelated tenant."""
    return make_caller()
