#backend/routers/publish.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from db import Session, get_session, save_post
from deps import get_credential_store, get_graph
from security import check_api_key
from social.credentials import CredentialStore, ConnectionDetails, FacebookDetails, InstagramDetails
from social.errors import PublishFailedError
from social.graph import GraphClient
from social.publish import Post, PublishRequest, publish

log = logging.getLogger("routers.publish")

router = APIRouter(prefix="/api", tags=["publish"])

class PublishIn(PublishRequest):
    # el cliente puede mandar sus propias credenciales; si no, se usa el store
    facebook: Optional[FacebookDetails] = None
    instagram: Optional[InstagramDetails] = None

    def credentials(self, stored: ConnectionDetails) -> ConnectionDetails:
        if self.facebook is None and self.instagram is None:
            return stored
        return ConnectionDetails(
            facebook=self.facebook or FacebookDetails(),
            instagram=self.instagram or InstagramDetails(),
            mock_connected=stored.mock_connected,
        )

    def to_request(self) -> PublishRequest:
        return PublishRequest(**self.model_dump(exclude={"facebook", "instagram"}))

class PublishOut(BaseModel):
    post: Post
    error: Optional[str] = None

@router.post("/publish-post", response_model=PublishOut, dependencies=[Depends(check_api_key)])
def publish_post(
    payload: PublishIn,
    session: Session = Depends(get_session),
    store: CredentialStore = Depends(get_credential_store),
    graph: GraphClient = Depends(get_graph),
):
    credentials = payload.credentials(store.snapshot())
    try:
        outcome = publish(payload.to_request(), credentials, graph)
    except PublishFailedError as e:
        raise HTTPException(status_code=400, detail=e.reason)

    save_post(session, outcome.post)
    if outcome.error_message:
        log.warning("Post %s guardado con fallas: %s", outcome.post.id, outcome.error_message)
    return PublishOut(post=outcome.post, error=outcome.error_message)
