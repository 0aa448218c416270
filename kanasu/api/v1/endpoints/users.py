from fastapi import APIRouter, Depends

from kanasu.api.dependencies import get_current_user
from kanasu.core.response import success_response
from kanasu.models.user import User

router = APIRouter()


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return success_response({
        "id": current_user.id,
        "name": current_user.name,
        "email": current_user.email,
        "role": current_user.role,
    })
