# backend/deps.py
from typing import Iterator

from fastapi import Request

from social.credentials import CredentialStore
from social.graph import GraphClient


def get_credential_store(request: Request) -> CredentialStore:
    store = getattr(request.app.state, "credentials", None)
    if store is None:
        store = CredentialStore()
        request.app.state.credentials = store
    return store


def get_graph() -> Iterator[GraphClient]:
    # una sesión HTTP por request: nada compartido entre publicaciones
    with GraphClient() as graph:
        yield graph
