"""Repository class encapsulating database operations.

One `EntityRepository` is bound to a session and a single entity model;
every read is scoped to a tenant. Repositories return SQLModel objects and
perform commits/refreshes where appropriate.
"""

import uuid
from typing import List, Optional, Sequence, Type

from sqlmodel import Session, select

from .models import TenantEntity


class EntityRepository:
    """CRUD operations for one entity table."""
    def __init__(self, session: Session, model: Type[TenantEntity]):
        self.session = session
        self.model = model

    def get(self, entity_id: uuid.UUID, tenant_id: uuid.UUID) -> Optional[TenantEntity]:
        """Return the row with `entity_id` owned by `tenant_id`, or `None`."""
        stmt = select(self.model).where(self.model.id == entity_id, self.model.tenant_id == tenant_id)
        return self.session.exec(stmt).first()

    def exists(self, entity_id: uuid.UUID) -> bool:
        """Return True if any tenant already owns a row with `entity_id`."""
        return self.session.get(self.model, entity_id) is not None

    def list(self, tenant_id: uuid.UUID, clauses: Sequence = (), order_by=None, offset: int = 0, limit: int = 10) -> List[TenantEntity]:
        """Return one page of the tenant's rows matching every clause."""
        stmt = select(self.model).where(self.model.tenant_id == tenant_id, *clauses)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        stmt = stmt.offset(offset).limit(limit)
        return self.session.exec(stmt).all()

    def save(self, entity: TenantEntity) -> TenantEntity:
        """Insert or update `entity` and return the refreshed instance."""
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def delete(self, entity: TenantEntity) -> None:
        """Remove `entity` and commit."""
        self.session.delete(entity)
        self.session.commit()
