"""Display settings: rotation cycle speed."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from posterbuddy.api.errors import raise_for_result
from posterbuddy.api.state import AppState, get_state

router = APIRouter()


class SettingsBody(BaseModel):
    cycle_speed: float = Field(gt=0, description="Seconds between automatic poster advances")


@router.get("")
def get_settings(state: AppState = Depends(get_state)):
    """Current cycle speed; the default when nothing has been saved yet."""
    result = state.adapter.get_settings()
    raise_for_result(result)
    return {"cycle_speed": result.value.cycle_speed}


@router.put("")
def save_settings(body: SettingsBody, state: AppState = Depends(get_state)):
    """Save the cycle speed (merged into the settings document, created if missing)."""
    result = state.controller.save_cycle_speed(body.cycle_speed)
    raise_for_result(result)
    return {"cycle_speed": body.cycle_speed}
