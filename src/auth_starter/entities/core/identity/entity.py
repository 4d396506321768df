"""Role domain entity."""

from pydantic import Field

from src.auth_starter.entities._base import Entity, new_id


class Role(Entity):
    name: str = Field(description="Role name")
    normalized_name: str = Field(description="Upper-cased role name for lookups")
    concurrency_stamp: str = Field(default_factory=new_id)
