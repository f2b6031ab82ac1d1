"""Entity records exchanged with the workspace backend.

The backend speaks camelCase JSON; the models accept either the wire alias
or the Python field name. Unknown keys (userId, timestamps we do not use)
are dropped, missing required keys are rejected at the boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NodeType = Literal["space", "vault", "log"]


class Entity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class Space(Entity):
    id: str = Field(min_length=1)
    name: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class Vault(Entity):
    id: str = Field(min_length=1)
    space_id: str = Field(alias="spaceId")
    name: str
    path: str
    parent_id: Optional[str] = Field(default=None, alias="parentId")


class Log(Entity):
    id: str = Field(min_length=1)
    space_id: str = Field(alias="spaceId")
    vault_id: str = Field(alias="vaultId")
    name: str
    path: str
    language: str = ""
    code: str = ""


class TreeNode(Entity):
    id: str = Field(min_length=1)
    name: str
    type: NodeType
    path: str = ""
    language: Optional[str] = None
    children: list[TreeNode] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _null_children(cls, value):
        return [] if value is None else value

    @property
    def is_vault(self) -> bool:
        return self.type == "vault"

    @property
    def is_log(self) -> bool:
        return self.type == "log"


class RunResult(Entity):
    stdout: str = ""
    stderr: str = ""
    code: int = 0
    output: str = ""

    @property
    def failed(self) -> bool:
        return self.code != 0


class GenerateResponse(Entity):
    code: str
    provider: str = ""
