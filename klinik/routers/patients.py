from fastapi import APIRouter, Depends

from .. import records
from ..auth import get_caller, get_store
from ..policy import Caller
from ..schemas import PatientIn
from ..store import KeyValueStore

router = APIRouter()


@router.get("/patients")
def list_patients(
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    """Semua rekam pasien (hanya dokter & admin)."""
    return {"patients": records.list_patients(store, caller)}


@router.get("/patient/{user_id}")
def get_patient(
    user_id: str,
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    # null jika dokter belum pernah mengisi rekam untuk pasien ini
    return {"patient": records.get_patient(store, caller, user_id)}


@router.post("/patient")
def save_patient(
    body: PatientIn,
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    """Buat/timpa rekam pasien (hanya dokter)."""
    return {"patient": records.upsert_patient(store, caller, body)}
