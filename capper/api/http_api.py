from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from capper.clustering import EmptyInputError
from capper.core.env import configure_logging, load_dotenv_if_present
from capper.core.models import Coordinate, PhotoRecord, RecapDraft
from capper.drafts import DraftNotFound, DraftSuperseded, RecapService, build_recap_service

load_dotenv_if_present()
configure_logging()

recap_service = build_recap_service()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    service_factory = app.dependency_overrides.get(get_recap_service, get_recap_service)
    await service_factory().aclose()


app = FastAPI(title="Capper Recap API", lifespan=lifespan)


def get_recap_service() -> RecapService:
    return recap_service


class DraftRequest(BaseModel):
    photos: list[PhotoRecord]
    home: Optional[Coordinate] = None
    exclude_radius_miles: float = Field(default=50.0, ge=0)


class RenameRequest(BaseModel):
    custom_title: Optional[str] = None


def _draft_payload(draft: RecapDraft) -> dict:
    return {"draft": draft.model_dump()}


def _require_draft(service: RecapService, draft_id: str) -> RecapDraft:
    draft = service.store.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return draft


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/drafts")
async def create_draft(
    req: DraftRequest, service: RecapService = Depends(get_recap_service)
) -> dict:
    try:
        draft = await service.build_draft(
            req.photos, home=req.home, exclude_radius_miles=req.exclude_radius_miles
        )
    except EmptyInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except DraftSuperseded as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _draft_payload(draft)


@app.get("/drafts/current")
def current_draft(service: RecapService = Depends(get_recap_service)) -> dict:
    draft = service.store.current
    if draft is None:
        raise HTTPException(status_code=404, detail="No live draft")
    return _draft_payload(draft)


@app.get("/drafts/{draft_id}")
def get_draft(draft_id: str, service: RecapService = Depends(get_recap_service)) -> dict:
    return _draft_payload(_require_draft(service, draft_id))


@app.patch("/drafts/{draft_id}/clusters/{cluster_id}")
def rename_cluster(
    draft_id: str,
    cluster_id: str,
    req: RenameRequest,
    service: RecapService = Depends(get_recap_service),
) -> dict:
    try:
        cluster = service.rename_cluster(draft_id, cluster_id, req.custom_title)
    except DraftNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"cluster": cluster.model_dump()}


@app.delete("/drafts/{draft_id}")
def discard_draft(draft_id: str, service: RecapService = Depends(get_recap_service)) -> dict:
    if not service.discard(draft_id):
        raise HTTPException(status_code=404, detail="Draft not found")
    return {"discarded": draft_id}
