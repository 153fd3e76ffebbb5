from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from apollo.auth import get_client_ip, get_config, verify_caller
from apollo.config import ApolloConfig
from apollo.db import get_db
from apollo.genai_helper import get_genai_client
from apollo.rate_limit import RateLimiter
from apollo.routes.utils import get_rate_limiter
from apollo.storage import BlobStore, get_blob_store

from .orchestrator import PanelImagesOrchestrator
from .schema import PanelImagesRequest, PanelImagesResponse

router = APIRouter(prefix="/v1/toon", tags=["toon"])


@router.post("/panel-images", response_model=PanelImagesResponse)
async def generate_panel_images(
    payload: PanelImagesRequest,
    uid: str = Depends(verify_caller),
    client_ip: str = Depends(get_client_ip),
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    blob_store: BlobStore = Depends(get_blob_store),
    client: Any = Depends(get_genai_client),
    config: ApolloConfig = Depends(get_config),
) -> PanelImagesResponse:
    orchestrator = PanelImagesOrchestrator(db, blob_store, client, rate_limiter, config)
    return await orchestrator.run(payload, uid=uid, client_ip=client_ip)
