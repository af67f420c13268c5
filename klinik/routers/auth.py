from fastapi import APIRouter, Depends

from .. import records
from ..auth import get_caller, get_identity, get_store
from ..identity import IdentityProvider
from ..policy import Caller
from ..schemas import LoginIn, SignupIn
from ..store import KeyValueStore

router = APIRouter()


@router.post("/signup")
def signup(
    body: SignupIn,
    identity: IdentityProvider = Depends(get_identity),
    store: KeyValueStore = Depends(get_store),
):
    """Daftar akun baru (dokter/pasien/admin). Role tidak bisa diubah setelahnya."""
    return {"user": records.register_user(identity, store, body)}


@router.post("/login")
def login(
    body: LoginIn,
    identity: IdentityProvider = Depends(get_identity),
    store: KeyValueStore = Depends(get_store),
):
    return records.login(identity, store, body)


@router.get("/user")
def current_user(caller: Caller = Depends(get_caller)):
    return {"user": records.get_current_user(caller)}
