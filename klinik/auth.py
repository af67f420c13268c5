import logging
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import Unauthorized
from .identity import IdentityError, IdentityProvider
from .policy import Caller
from .records import user_key
from .store import KeyValueStore

log = logging.getLogger("klinik.auth")

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityProvider = Depends(get_identity),
    store: KeyValueStore = Depends(get_store),
) -> Caller:
    """Resolve bearer token -> Caller (id + profil dari store, profil bisa None)."""
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No access token provided")
    try:
        auth_user = identity.get_user(credentials.credentials)
    except IdentityError as e:
        log.info("Auth error while resolving token: %s", e)
        raise Unauthorized("Unauthorized")
    return Caller(id=auth_user.id, profile=store.get(user_key(auth_user.id)))
