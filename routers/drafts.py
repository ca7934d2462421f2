#backend/routers/drafts.py
import json
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from db import Session, get_session, select, DraftAsset, replace_drafts
from security import check_api_key
from social.platforms import Platform

router = APIRouter(prefix="/api/drafts", tags=["drafts"])

class DraftIn(BaseModel):
    id: str
    name: str = ""
    prompt: str = ""
    description: str = ""
    hashtags: List[str] = []
    platforms: List[Platform] = []
    media_url: Optional[str] = None
    status: str = "idle"
    error_message: Optional[str] = None

def _out(d: DraftAsset) -> DraftIn:
    return DraftIn(
        id=d.id, name=d.name, prompt=d.prompt, description=d.description,
        hashtags=json.loads(d.hashtags_json or "[]"),
        platforms=json.loads(d.platforms_json or "[]"),
        media_url=d.media_url, status=d.status, error_message=d.error_message,
    )

@router.get("", response_model=List[DraftIn])
def list_drafts(session: Session = Depends(get_session)):
    return [_out(d) for d in session.exec(select(DraftAsset)).all()]

@router.put("", response_model=List[DraftIn], dependencies=[Depends(check_api_key)])
def save_drafts(payload: List[DraftIn], session: Session = Depends(get_session)):
    rows = [
        DraftAsset(
            id=d.id, name=d.name, prompt=d.prompt, description=d.description,
            hashtags_json=json.dumps(d.hashtags),
            platforms_json=json.dumps([p.value for p in d.platforms]),
            media_url=d.media_url,
            status=d.status, error_message=d.error_message,
        )
        for d in payload
    ]
    # blob: sólo vive en el navegador que lo creó
    for r in rows:
        if r.media_url and r.media_url.startswith("blob:"):
            r.media_url = None
    return [_out(d) for d in replace_drafts(session, rows)]
