"""HTTP controllers for the EMR entities.

Every entity gets the same six endpoints under `/api/<entity>`:

- POST   /api/<entity>            create, returns `{"id": ...}`
- GET    /api/<entity>            filtered/searched/sorted page of rows
- GET    /api/<entity>/{id}       one row projected to `fields`
- DELETE /api/<entity>/{id}       returns `{"status": true}`
- PUT    /api/<entity>/{id}       full update, returns `{"status": true}`
- PATCH  /api/<entity>/{id}       JSON Patch, returns `{"status": true}`

Controllers are intentionally thin: they check the caller's entitlement,
stamp tenant and audit columns, delegate to `EntityService` and wrap the
result. `build_entity_router` produces the router for one entity.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Type

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlmodel import Session

from . import services
from .auth import Entitlements, Identity, get_current_identity, user_authorize
from .config import settings
from .database import get_session
from .models import TenantEntity
from .schemas import FILTER_LIST, IdOut, PatchOperation, StatusOut

# Entity name -> dependency building its service; tests override these.
SERVICE_PROVIDERS: Dict[str, Callable] = {}


def entity_service_provider(model: Type[TenantEntity]):
    """Build the dependency that yields a tenant-scoped service for `model`."""
    def provide(db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)) -> services.EntityService:
        return services.EntityService(db, model, identity.tenant_id)
    return provide


def stamp_created(entity: TenantEntity, identity: Identity) -> None:
    """Set tenant and whichever creation audit columns the entity has."""
    fields = type(entity).model_fields
    entity.tenant_id = identity.tenant_id
    if "created_by" in fields:
        entity.created_by = identity.user_id
    if "created_on" in fields:
        entity.created_on = datetime.now(timezone.utc)


def stamp_updated(entity: TenantEntity, identity: Identity) -> None:
    """Set tenant and whichever update audit columns the entity has."""
    fields = type(entity).model_fields
    entity.tenant_id = identity.tenant_id
    if "updated_by" in fields:
        entity.updated_by = identity.user_id
    if "updated_on" in fields:
        entity.updated_on = datetime.now(timezone.utc)


def materialize(model: Type[TenantEntity], body: TenantEntity) -> TenantEntity:
    """Re-validate a request body into a session-ready model instance."""
    try:
        return model.model_validate(body.model_dump())
    except ValidationError as e:
        raise RequestValidationError(e.errors())


@contextmanager
def service_errors():
    """Map service exceptions onto HTTP errors."""
    try:
        yield
    except services.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def build_entity_router(entity: str, model: Type[TenantEntity]) -> APIRouter:
    """Create the CRUD router for `model`, exposed as `/api/<entity lowercase>`.

    `entity` is also the name entitlements are checked against.
    """
    router = APIRouter(prefix=f"/api/{entity.lower()}", tags=[entity])
    provide_service = entity_service_provider(model)
    SERVICE_PROVIDERS[entity] = provide_service

    @router.post('', response_model=IdOut, name=f'create_{entity}')
    def post(
        body: model,
        identity: Identity = Depends(user_authorize(entity, Entitlements.CREATE)),
        svc: services.EntityService = Depends(provide_service),
    ):
        """Add a new row. Tenant and creation stamps come from the caller's token."""
        item = materialize(model, body)
        stamp_created(item, identity)
        with service_errors():
            new_id = svc.create(item)
        return {'id': new_id}

    @router.get('', response_model=List[model], name=f'list_{entity}')
    def get(
        filters: Optional[str] = Query(default=None, description='JSON list: [{"PropertyName": "Name", "Operator": "Equal", "Value": "x"}]'),
        search_term: Optional[str] = Query(default=None, alias='searchTerm'),
        page_number: int = Query(default=1, alias='pageNumber'),
        page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, alias='pageSize'),
        sort_field: Optional[str] = Query(default=None, alias='sortField'),
        sort_order: str = Query(default='asc', alias='sortOrder'),
        identity: Identity = Depends(user_authorize(entity, Entitlements.READ)),
        svc: services.EntityService = Depends(provide_service),
    ):
        """Retrieve a page of rows based on the given filters."""
        if page_size < 1:
            raise HTTPException(status_code=400, detail='Page size invalid.')
        if page_number < 1:
            raise HTTPException(status_code=400, detail='Page number invalid.')
        filter_criteria = None
        if filters:
            try:
                filter_criteria = FILTER_LIST.validate_json(filters)
            except ValidationError:
                raise HTTPException(status_code=400, detail='Invalid filter criteria.')
        with service_errors():
            return svc.get(filter_criteria, search_term, page_number, page_size, sort_field, sort_order)

    @router.get('/{id}', name=f'get_{entity}')
    def get_by_id(
        id: uuid.UUID,
        fields: Optional[str] = None,
        identity: Identity = Depends(user_authorize(entity, Entitlements.READ)),
        svc: services.EntityService = Depends(provide_service),
    ):
        """Retrieve one row; `fields` selects the returned properties."""
        with service_errors():
            return svc.get_by_id(id, fields)

    @router.delete('/{id}', response_model=StatusOut, name=f'delete_{entity}')
    def delete_by_id(
        id: uuid.UUID,
        identity: Identity = Depends(user_authorize(entity, Entitlements.DELETE)),
        svc: services.EntityService = Depends(provide_service),
    ):
        """Delete one row."""
        with service_errors():
            status = svc.delete(id)
        return {'status': status}

    @router.put('/{id}', response_model=StatusOut, name=f'update_{entity}')
    def update_by_id(
        id: uuid.UUID,
        body: model,
        identity: Identity = Depends(user_authorize(entity, Entitlements.UPDATE)),
        svc: services.EntityService = Depends(provide_service),
    ):
        """Replace one row. The body id must match the route id."""
        item = materialize(model, body)
        if item.id != id:
            raise HTTPException(status_code=400, detail='Mismatched Id')
        stamp_updated(item, identity)
        with service_errors():
            status = svc.update(id, item)
        return {'status': status}

    @router.patch('/{id}', response_model=StatusOut, name=f'patch_{entity}')
    def patch_by_id(
        id: uuid.UUID,
        operations: Optional[List[PatchOperation]] = Body(default=None),
        identity: Identity = Depends(user_authorize(entity, Entitlements.UPDATE)),
        svc: services.EntityService = Depends(provide_service),
    ):
        """Partially update one row with a JSON Patch document."""
        if operations is None:
            raise HTTPException(status_code=400, detail='Patch document is missing.')
        with service_errors():
            status = svc.patch(id, [op.to_json_patch() for op in operations])
        return {'status': status}

    return router
