"""Read-only view of the engine settings in effect."""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_engine_config
from app.schemas import EngineConfigOut
from app.services.engine_config import EngineConfig

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/engine", response_model=EngineConfigOut)
async def engine_settings(config: EngineConfig = Depends(get_engine_config)):
    return config
