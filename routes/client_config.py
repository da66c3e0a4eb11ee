from fastapi import APIRouter, Depends

from config import Settings, get_settings

router = APIRouter()


@router.get("/stripe")
def stripe_config(settings: Settings = Depends(get_settings)):
    return {"publishable_key": settings.stripe_publishable_key}
