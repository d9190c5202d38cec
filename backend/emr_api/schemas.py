"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Entity bodies themselves are the SQLModel
tables from `models`.
"""

import uuid
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class FilterCriteria(BaseModel):
    """A single `{"PropertyName", "Operator", "Value"}` list filter."""
    model_config = ConfigDict(populate_by_name=True)

    property_name: str = Field(alias="PropertyName")
    operator: str = Field(default="Equal", alias="Operator")
    value: Any = Field(default=None, alias="Value")


FILTER_LIST = TypeAdapter(List[FilterCriteria])


class PatchOperation(BaseModel):
    """One RFC 6902 JSON Patch operation."""
    model_config = ConfigDict(populate_by_name=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_: Optional[str] = Field(default=None, alias="from")

    def to_json_patch(self) -> dict:
        """Return the operation as the plain dict `jsonpatch` expects."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class IdOut(BaseModel):
    """Response of a create call."""
    id: uuid.UUID


class StatusOut(BaseModel):
    """Response of delete/update/patch calls."""
    status: bool
