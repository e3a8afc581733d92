from typing import Literal

from pydantic import BaseModel, Field


class OwnerBootstrapIn(BaseModel):
    kind: Literal["individual", "platform"] = "individual"
    name: str = Field(min_length=1, max_length=200)
    is_trusted: bool = False


class OwnerBootstrapOut(BaseModel):
    owner_id: str
    kind: str
    is_trusted: bool
    # issued only for individual owners; platform profiles are managed by admins
    developer_api_key: str | None


class AdminBootstrapOut(BaseModel):
    api_key_id: str
    platform_admin_api_key: str


class OwnerTrustIn(BaseModel):
    is_trusted: bool


class OwnerOut(BaseModel):
    id: str
    kind: str
    name: str
    is_trusted: bool
