"""Pydantic models shared by several routers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from apps.api.services.users import Role


class CamelModel(BaseModel):
    """Serialises to camelCase keys and accepts either casing on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserModel(CamelModel):
    id: str
    email: str
    name: str
    role: Role
    created_at: datetime