from pydantic import BaseModel


class MeOut(BaseModel):
    api_key_id: str
    role: str
    owner_kind: str | None
    owner_id: str | None
