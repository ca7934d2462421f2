#backend/routers/posts.py
import logging
from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from db import Session, get_session, PostRecord, list_posts, update_engagement
from deps import get_credential_store, get_graph
from security import check_api_key
from social.credentials import CredentialStore
from social.errors import GraphAPIError
from social.graph import GraphClient
from social.insights import fetch_post_insights, delete_remote_post, owner_platform
from social.platforms import Platform
from social.publish import Post, Engagement

log = logging.getLogger("routers.posts")

router = APIRouter(prefix="/api", tags=["posts"])

class InsightsIn(BaseModel):
    post_id: str
    page_access_token: Optional[str] = None

class DeleteIn(BaseModel):
    page_access_token: Optional[str] = None

def _token(explicit: Optional[str], store: CredentialStore) -> Optional[str]:
    return explicit or store.snapshot().facebook.page_access_token

def _owner(post_id: str, rec: Optional[PostRecord]) -> Optional[Platform]:
    return owner_platform(post_id, rec.published_on() if rec else ())

@router.get("/posts", response_model=List[Post])
def get_posts(session: Session = Depends(get_session)):
    return list_posts(session)

@router.post("/post-insights", response_model=Engagement, dependencies=[Depends(check_api_key)])
def post_insights(payload: InsightsIn,
                  session: Session = Depends(get_session),
                  store: CredentialStore = Depends(get_credential_store),
                  graph: GraphClient = Depends(get_graph)):
    token = _token(payload.page_access_token, store)
    if not token:
        raise HTTPException(400, "Missing required fields: post_id, page_access_token")
    owner = _owner(payload.post_id, session.get(PostRecord, payload.post_id))
    if owner is None:
        raise HTTPException(400, "Local posts have no platform insights.")
    try:
        insights = fetch_post_insights(graph, payload.post_id, token, owner)
    except GraphAPIError as e:
        raise HTTPException(502, f"Failed to fetch post insights: {e.reason}")
    update_engagement(session, payload.post_id, **insights)
    return Engagement(**insights)

@router.delete("/post/{post_id}", dependencies=[Depends(check_api_key)])
def delete_post(post_id: str, payload: Optional[DeleteIn] = None,
                session: Session = Depends(get_session),
                store: CredentialStore = Depends(get_credential_store),
                graph: GraphClient = Depends(get_graph)):
    rec = session.get(PostRecord, post_id)
    owner = _owner(post_id, rec)
    # la Graph API no permite borrar media de Instagram: sólo se borra el registro
    remote = owner == Platform.FACEBOOK
    if remote:
        token = _token(payload.page_access_token if payload else None, store)
        if not token:
            raise HTTPException(400, "Missing required fields: post_id, page_access_token")
        try:
            deleted = delete_remote_post(graph, post_id, token)
        except GraphAPIError as e:
            raise HTTPException(502, f"Failed to delete post: {e.reason}")
        if not deleted:
            log.info("Post %s ya no existía en Facebook", post_id)
    elif rec is None:
        raise HTTPException(404, "Post not found")

    if rec is not None:
        session.delete(rec); session.commit()
    return {"success": True, "remote": remote}
