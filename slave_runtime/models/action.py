# slave_runtime/models/action.py
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from slave_runtime.status import SlaveAction, parse_action


class ActionRequest(BaseModel):
    """A single controller command, as published on slave/<id>/action(s)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: UUID = Field(alias="Id")
    image_name: str = Field(alias="ImageName")
    tag: str = Field(alias="Tag")
    image_source: Optional[str] = Field(default=None, alias="ImageSource")
    action: Optional[SlaveAction] = Field(default=None, alias="Action")

    @field_validator("action", mode="before")
    @classmethod
    def _known_action_or_none(cls, value):
        return parse_action(value)

    @property
    def workload_id(self) -> str:
        return str(self.id)

    @property
    def image_full_name(self) -> str:
        return f"{self.image_name}:{self.tag}"
