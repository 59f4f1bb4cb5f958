from fastapi import APIRouter, Depends

from clinic.auth.dependencies import get_current_caller
from clinic.scheduling.ports import CallerIdentity

router = APIRouter(tags=['auth'])


@router.get("/me")
def me(caller: CallerIdentity = Depends(get_current_caller)):
    return {"id": caller.user_id, "email": caller.email, "role": caller.role.value}
