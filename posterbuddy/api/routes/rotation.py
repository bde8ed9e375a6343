"""Kiosk rotation: current poster, navigation, manual reload."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from posterbuddy.api.routes.posters import poster_to_dict
from posterbuddy.api.state import AppState, get_state
from posterbuddy.models.rotation import RotationSnapshot

router = APIRouter()


class KeyBody(BaseModel):
    key: str


def _snapshot_to_dict(s: RotationSnapshot) -> dict:
    return {
        "phase": s.phase.value,
        "index": s.index,
        "total": s.total,
        "cycle_speed": s.cycle_speed,
        "poster": poster_to_dict(s.poster) if s.poster else None,
        "error": s.error,
    }


@router.get("")
def get_rotation(state: AppState = Depends(get_state)):
    """What the kiosk should show right now."""
    return _snapshot_to_dict(state.controller.snapshot())


@router.post("/next")
def next_poster(state: AppState = Depends(get_state)):
    state.controller.navigate(1)
    return _snapshot_to_dict(state.controller.snapshot())


@router.post("/previous")
def previous_poster(state: AppState = Depends(get_state)):
    state.controller.navigate(-1)
    return _snapshot_to_dict(state.controller.snapshot())


@router.post("/jump/{index}")
def jump_to(index: int, state: AppState = Depends(get_state)):
    if not state.controller.jump(index):
        raise HTTPException(status_code=404, detail="No poster at that index")
    return _snapshot_to_dict(state.controller.snapshot())


@router.post("/key")
def key_press(body: KeyBody, state: AppState = Depends(get_state)):
    """Forward a kiosk key press (ArrowLeft / ArrowRight)."""
    state.controller.handle_key(body.key)
    return _snapshot_to_dict(state.controller.snapshot())


@router.post("/reload")
def reload_posters(state: AppState = Depends(get_state)):
    """Refetch from the store now; a failure shows up in the snapshot's error."""
    state.controller.reload()
    return _snapshot_to_dict(state.controller.snapshot())
