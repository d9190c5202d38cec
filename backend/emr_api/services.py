"""Business logic services used by HTTP controllers.

`EntityService` implements the create/read/update/patch/delete contract
shared by every EMR entity. A service instance is built per request for a
single entity model and the caller's tenant; rows belonging to other
tenants are invisible to it. Services raise `ValueError` for bad input and
`NotFoundError` for missing rows and leave HTTP concerns to the
controllers.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Type

import jsonpatch
from jsonpointer import JsonPointerException
from pydantic import ValidationError
from sqlmodel import Session

from . import repositories
from .models import TenantEntity
from .schemas import FilterCriteria
from .utils.filters import (
    build_filter_clause,
    build_search_clause,
    normalize_field_name,
    resolve_field,
)

logger = logging.getLogger("emr_api.services")

# Columns an update or patch never overwrites.
PRESERVED_ON_UPDATE = frozenset({"id", "tenant_id", "created_by", "created_on"})
PRESERVED_ON_PATCH = frozenset({"id", "tenant_id"})


def normalize_patch_pointer(pointer: Optional[str]) -> Optional[str]:
    """Map the property segment of a JSON pointer to its snake_case column.

    `/ItemName` and `/itemName` both become `/item_name`; deeper segments
    are left alone.
    """
    if not pointer or not pointer.startswith("/"):
        return pointer
    head, sep, rest = pointer[1:].partition("/")
    return "/" + normalize_field_name(head) + sep + rest


def normalize_patch_operation(operation: dict) -> dict:
    op = dict(operation)
    for key in ("path", "from"):
        if key in op:
            op[key] = normalize_patch_pointer(op[key])
    return op


class NotFoundError(LookupError):
    """Raised when the requested row does not exist for the tenant."""


class EntityService:
    """Tenant-scoped CRUD operations for one entity model."""
    def __init__(self, session: Session, model: Type[TenantEntity], tenant_id: uuid.UUID):
        self.session = session
        self.model = model
        self.tenant_id = tenant_id
        self.repo = repositories.EntityRepository(session, model)

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    def get_by_id(self, entity_id: uuid.UUID, fields: Optional[str] = None) -> Dict[str, Any]:
        """Return the selected fields of one row.

        `fields` is a comma separated list of property names; `id` is
        always included and unknown or dotted (navigation) names are
        skipped. Without `fields` only the id is returned.
        """
        entity = self._require(entity_id)
        return self.map_to_fields(entity, fields)

    def get(
        self,
        filters: Optional[List[FilterCriteria]] = None,
        search_term: Optional[str] = None,
        page_number: int = 1,
        page_size: int = 10,
        sort_field: Optional[str] = None,
        sort_order: str = "asc",
    ) -> List[TenantEntity]:
        """Return one page of rows matching the filters and search term."""
        if page_size < 1:
            raise ValueError("Page size invalid!")
        if page_number < 1:
            raise ValueError("Page number invalid!")
        clauses = [build_filter_clause(self.model, f.property_name, f.operator, f.value) for f in filters or []]
        if search_term and search_term.strip():
            clauses.append(build_search_clause(self.model, search_term))
        order_by = None
        if sort_field:
            column = getattr(self.model, resolve_field(self.model, sort_field))
            order = (sort_order or "asc").lower()
            if order == "asc":
                order_by = column.asc()
            elif order == "desc":
                order_by = column.desc()
            else:
                raise ValueError("Invalid sort order. Use 'asc' or 'desc'")
        skip = (page_number - 1) * page_size
        return self.repo.list(self.tenant_id, clauses, order_by=order_by, offset=skip, limit=page_size)

    def create(self, entity: TenantEntity) -> uuid.UUID:
        """Persist a new row and return its id (generated when empty)."""
        if entity.id is None:
            entity.id = uuid.uuid4()
        elif self.repo.exists(entity.id):
            raise ValueError(f"{self.entity_name} {entity.id} already exists")
        self.repo.save(entity)
        logger.info("created %s id=%s tenant=%s", self.entity_name, entity.id, self.tenant_id)
        return entity.id

    def update(self, entity_id: uuid.UUID, updated: TenantEntity) -> bool:
        """Replace every column of an existing row except id, tenant and creation stamps."""
        existing = self._require(entity_id)
        for name, value in updated.model_dump(exclude=set(PRESERVED_ON_UPDATE)).items():
            setattr(existing, name, value)
        self.repo.save(existing)
        logger.info("updated %s id=%s tenant=%s", self.entity_name, entity_id, self.tenant_id)
        return True

    def patch(self, entity_id: uuid.UUID, operations: Optional[List[dict]]) -> bool:
        """Apply an RFC 6902 JSON Patch to an existing row.

        The patch runs against the row's JSON form and the result is
        validated through the model before anything is written; `id` and
        `tenant_id` keep their stored values whatever the patch says.
        """
        if operations is None:
            raise ValueError("Patch document is missing!")
        existing = self._require(entity_id)
        document = existing.model_dump(mode="json")
        try:
            patched = jsonpatch.apply_patch(document, [normalize_patch_operation(op) for op in operations])
        except (jsonpatch.JsonPatchException, JsonPointerException) as e:
            raise ValueError(f"Invalid patch document: {e}")
        if not isinstance(patched, dict):
            raise ValueError(f"Patched {self.entity_name} is not an object")
        unknown = sorted(set(patched) - set(self.model.model_fields))
        if unknown:
            raise ValueError(f"Unknown property '{unknown[0]}' for {self.entity_name}")
        try:
            candidate = self.model.model_validate(patched)
        except ValidationError as e:
            raise ValueError(f"Patched {self.entity_name} is invalid: {e.errors()[0]['msg']}")
        for name in self.model.model_fields:
            if name not in PRESERVED_ON_PATCH:
                setattr(existing, name, getattr(candidate, name))
        self.repo.save(existing)
        logger.info("patched %s id=%s tenant=%s ops=%d", self.entity_name, entity_id, self.tenant_id, len(operations))
        return True

    def delete(self, entity_id: uuid.UUID) -> bool:
        """Delete an existing row."""
        existing = self._require(entity_id)
        self.repo.delete(existing)
        logger.info("deleted %s id=%s tenant=%s", self.entity_name, entity_id, self.tenant_id)
        return True

    def map_to_fields(self, entity: TenantEntity, fields: Optional[str]) -> Dict[str, Any]:
        names = ["id"]
        for raw in (fields or "").split(","):
            if not raw.strip() or "." in raw:
                continue
            name = normalize_field_name(raw)
            if name in self.model.model_fields and name not in names:
                names.append(name)
        return {name: getattr(entity, name) for name in names}

    def _require(self, entity_id: uuid.UUID) -> TenantEntity:
        entity = self.repo.get(entity_id, self.tenant_id)
        if entity is None:
            raise NotFoundError("No data found!")
        return entity
