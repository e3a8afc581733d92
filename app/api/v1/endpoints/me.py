from fastapi import APIRouter, Depends

from app.schemas.me import MeOut
from app.services.auth import Actor, get_actor

router = APIRouter()

@router.get("/me", response_model=MeOut)
async def me(actor: Actor = Depends(get_actor)) -> MeOut:
    return MeOut(
        api_key_id=actor.api_key_id,
        role=actor.role,
        owner_kind=actor.owner.kind if actor.owner else None,
        owner_id=actor.owner.id if actor.owner else None,
    )
