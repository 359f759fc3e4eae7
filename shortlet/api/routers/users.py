from fastapi import APIRouter

from shortlet.api.dependencies import CurrentUser
from shortlet.schemas.user import UserBase

router = APIRouter()


@router.get("/me", response_model=UserBase)
async def me(current_user: CurrentUser):
    return UserBase.model_validate(current_user)
