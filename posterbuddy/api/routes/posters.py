"""Poster CRUD, batch delete, bulk upload and info file export."""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from posterbuddy.api.errors import raise_for_result
from posterbuddy.api.state import AppState, get_state
from posterbuddy.core.upload import info_filename, plan_upload, render_info_file
from posterbuddy.models.poster import Poster, UploadedFile

router = APIRouter()


class CreatePosterBody(BaseModel):
    id: Optional[str] = None
    name: str = ""
    poster_url: str = ""
    logo_url: str = ""
    description: str = ""
    starring: str = ""
    director: str = ""
    runtime: str = ""
    genre: str = ""
    rating: str = ""
    poster_ai_hint: str = ""


class UpdatePosterBody(BaseModel):
    name: Optional[str] = None
    poster_url: Optional[str] = None
    logo_url: Optional[str] = None
    description: Optional[str] = None
    starring: Optional[str] = None
    director: Optional[str] = None
    runtime: Optional[str] = None
    genre: Optional[str] = None
    rating: Optional[str] = None
    poster_ai_hint: Optional[str] = None


class BatchDeleteBody(BaseModel):
    ids: List[str]


def poster_to_dict(p: Poster) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "poster_url": p.poster_url,
        "logo_url": p.logo_url,
        "display_poster_url": p.display_poster_url,
        "display_logo_url": p.display_logo_url,
        "description": p.description,
        "starring": p.starring,
        "director": p.director,
        "runtime": p.runtime,
        "genre": p.genre,
        "rating": p.rating,
        "poster_ai_hint": p.poster_ai_hint,
    }


def _get_or_404(state: AppState, poster_id: str) -> Poster:
    result = state.adapter.get_poster(poster_id)
    raise_for_result(result)
    if result.value is None:
        raise HTTPException(status_code=404, detail="Poster not found")
    return result.value


@router.get("/")
def list_posters(state: AppState = Depends(get_state)):
    """List all posters in store order."""
    result = state.adapter.list_posters()
    raise_for_result(result)
    return [poster_to_dict(p) for p in result.value]


@router.post("/", status_code=201)
def create_poster(body: CreatePosterBody, state: AppState = Depends(get_state)):
    """Add a poster. The store assigns the id unless one is given."""
    changes = body.model_dump(exclude={"id"})
    result = state.controller.add_poster(changes, body.id or None)
    raise_for_result(result)
    return poster_to_dict(Poster(id=result.value, **changes))


@router.post("/batchDelete")
def batch_delete(body: BatchDeleteBody, state: AppState = Depends(get_state)):
    """Delete several posters in one atomic commit; unknown ids are ignored."""
    ids = sorted(set(body.ids))
    result = state.controller.delete_posters(ids)
    raise_for_result(result)
    return {"ok": True, "requested": len(ids)}


@router.post("/upload")
def upload_posters(
    files: List[UploadFile] = File(...),
    state: AppState = Depends(get_state),
):
    """Bulk upload <name>_poster.*, <name>_logo.*, <name>_info.txt sets."""
    uploads = [
        UploadedFile(filename=f.filename or "", data=f.file.read(), content_type=f.content_type)
        for f in files
    ]
    plan = plan_upload(uploads, state.config.upload_missing_policy)
    rejected = [{"name": name, "error": error} for name, error in plan.rejected]
    if not plan.items:
        raise HTTPException(
            status_code=400,
            detail={"message": "No valid poster sets found", "rejected": rejected},
        )
    # Partial failures are reported per item rather than failing the request
    report = state.controller.add_posters(plan.items).value
    return {
        "added": len(report.succeeded),
        "ids": report.succeeded,
        "failed": [{"name": name, "error": error} for name, error in report.failed],
        "rejected": rejected,
    }


@router.get("/{poster_id}")
def get_poster(poster_id: str, state: AppState = Depends(get_state)):
    return poster_to_dict(_get_or_404(state, poster_id))


@router.get("/{poster_id}/info", response_class=PlainTextResponse)
def download_info(poster_id: str, state: AppState = Depends(get_state)):
    """Info file in the format the bulk upload reads back."""
    poster = _get_or_404(state, poster_id)
    return PlainTextResponse(
        render_info_file(poster),
        headers={"Content-Disposition": f'attachment; filename="{info_filename(poster)}"'},
    )


@router.patch("/{poster_id}")
def update_poster(poster_id: str, body: UpdatePosterBody, state: AppState = Depends(get_state)):
    """Replace only the fields sent. Unknown ids are a 404."""
    changes = body.model_dump(exclude_unset=True)
    result = state.controller.update_poster(poster_id, changes)
    raise_for_result(result)
    return poster_to_dict(_get_or_404(state, poster_id))


@router.delete("/{poster_id}", status_code=204)
def delete_poster(poster_id: str, state: AppState = Depends(get_state)):
    """Delete a poster; deleting an unknown id also succeeds."""
    result = state.controller.delete_poster(poster_id)
    raise_for_result(result)
    return Response(status_code=204)
