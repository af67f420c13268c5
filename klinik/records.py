"""
Layanan rekam medis & transaksi obat dengan kontrol akses per role.

Setiap fungsi menerima store (dan identity provider bila perlu) secara eksplisit,
mengecek policy untuk `caller`, lalu membaca/menulis dokumen di key-value store.
Kegagalan dilempar sebagai RecordError (BadRequest/Unauthorized/Forbidden/NotFound).
"""
import logging
import math
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import BadRequest, Forbidden, NotFound, Unauthorized
from .identity import IdentityError, IdentityProvider
from .policy import ADMIN, DOKTER, ROLES, Caller, can_view_patient, require_profile, require_role, sees_all_transactions
from .schemas import LoginIn, PatientIn, SignupIn, TransactionIn, TransactionUpdate
from .store import KeyValueStore

log = logging.getLogger("klinik.records")

BELUM_BAYAR = "Belum Bayar"
LUNAS = "Lunas"
PAYMENT_STATUSES = (BELUM_BAYAR, LUNAS)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def patient_key(user_id: str) -> str:
    return f"patient:{user_id}"


def transaction_key(txn_id: str) -> str:
    return f"transaction:{txn_id}"


def new_transaction_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# ---------- Users ----------

def register_user(identity: IdentityProvider, store: KeyValueStore, body: SignupIn) -> Dict[str, Any]:
    if _blank(body.email) or not body.password or _blank(body.name) or _blank(body.role):
        raise BadRequest("Missing required fields")
    if body.role not in ROLES:
        raise BadRequest("Invalid role. Must be dokter, pasien, or admin")

    name = body.name.strip()
    try:
        auth_user = identity.create_user(body.email, body.password, {"name": name, "role": body.role})
    except IdentityError as e:
        log.info("Error creating user during signup: %s", e)
        raise BadRequest(str(e))

    profile = {
        "id": auth_user.id,
        "email": auth_user.email,
        "name": name,
        "role": body.role,
        "created_at": now_iso(),
    }
    try:
        store.set(user_key(auth_user.id), profile)
    except Exception:
        # akun identity tanpa profil tidak bisa dipakai & memblokir signup ulang
        identity.delete_user(auth_user.id)
        raise
    log.info("User %s registered with role %s", auth_user.id, body.role)
    return {k: profile[k] for k in ("id", "email", "name", "role")}


def login(identity: IdentityProvider, store: KeyValueStore, body: LoginIn) -> Dict[str, Any]:
    if _blank(body.email) or not body.password:
        raise BadRequest("Missing required fields")
    try:
        token = identity.sign_in(body.email, body.password)
        auth_user = identity.get_user(token)
    except IdentityError as e:
        log.info("Login failed: %s", e)
        raise Unauthorized(str(e))
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": store.get(user_key(auth_user.id)),
    }


def get_current_user(caller: Caller) -> Dict[str, Any]:
    return require_profile(caller)


# ---------- Patients ----------

def list_patients(store: KeyValueStore, caller: Caller) -> List[Dict[str, Any]]:
    require_role(caller, DOKTER, ADMIN, message="Forbidden - Only dokter and admin can view all patients")
    return store.get_by_prefix("patient:")


def get_patient(store: KeyValueStore, caller: Caller, user_id: str) -> Optional[Dict[str, Any]]:
    if not can_view_patient(caller, user_id):
        raise Forbidden("Forbidden")
    return store.get(patient_key(user_id))


def upsert_patient(store: KeyValueStore, caller: Caller, body: PatientIn) -> Dict[str, Any]:
    require_role(caller, DOKTER, message="Forbidden - Only dokter can create/update patient records")
    if _blank(body.userId) or _blank(body.nama):
        raise BadRequest("Missing required fields")

    # Upsert penuh: field opsional yang tidak dikirim kembali ke default, bukan dipertahankan
    patient = {
        "userId": body.userId,
        "nama": body.nama.strip(),
        "umur": body.umur or 0,
        "keluhan": body.keluhan or "",
        "catatan_dokter": body.catatan_dokter or "",
        "updated_at": now_iso(),
        "updated_by": caller.name,
    }
    store.set(patient_key(body.userId), patient)
    log.info("Patient record %s saved by %s", body.userId, caller.id)
    return patient


# ---------- Transactions ----------

def list_transactions(store: KeyValueStore, caller: Caller) -> List[Dict[str, Any]]:
    require_profile(caller)
    transactions = store.get_by_prefix("transaction:")
    if sees_all_transactions(caller):
        return transactions
    return [t for t in transactions if t.get("pasien_id") == caller.id]


def _check_status(status: Optional[str]) -> None:
    if status is not None and status not in PAYMENT_STATUSES:
        raise BadRequest("Invalid status_pembayaran. Must be Belum Bayar or Lunas")


def _check_harga(harga) -> None:
    if harga is None:
        return
    if isinstance(harga, bool) or not math.isfinite(harga):
        raise BadRequest("harga must be a finite number")
    if harga < 0:
        raise BadRequest("harga must not be negative")


def create_transaction(store: KeyValueStore, caller: Caller, body: TransactionIn) -> Dict[str, Any]:
    require_role(caller, ADMIN, message="Forbidden - Only admin can create transactions")
    # harga = 0 sah (obat gratis); yang ditolak hanya field yang tidak dikirim
    if _blank(body.pasien_id) or _blank(body.pasien_nama) or _blank(body.obat) or body.harga is None:
        raise BadRequest("Missing required fields")
    _check_harga(body.harga)
    status = body.status_pembayaran or BELUM_BAYAR
    _check_status(status)

    txn_id = new_transaction_id()
    transaction = {
        "id": txn_id,
        "pasien_id": body.pasien_id,
        "pasien_nama": body.pasien_nama.strip(),
        "obat": body.obat.strip(),
        "harga": body.harga,
        "status_pembayaran": status,
        "created_at": now_iso(),
        "created_by": caller.name,
    }
    store.set(transaction_key(txn_id), transaction)
    log.info("Transaction %s created by %s", txn_id, caller.id)
    return transaction


def update_transaction(store: KeyValueStore, caller: Caller, txn_id: str, body: TransactionUpdate) -> Dict[str, Any]:
    require_role(caller, ADMIN, message="Forbidden - Only admin can update transactions")
    _check_status(body.status_pembayaran or None)
    _check_harga(body.harga)

    def merge(existing: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(existing)
        if body.status_pembayaran:
            merged["status_pembayaran"] = body.status_pembayaran
        if body.obat:
            merged["obat"] = body.obat
        if body.harga is not None:
            merged["harga"] = body.harga
        merged["updated_at"] = now_iso()
        merged["updated_by"] = caller.name
        return merged

    updated = store.update(transaction_key(txn_id), merge)
    if updated is None:
        raise NotFound("Transaction not found")
    log.info("Transaction %s updated by %s", txn_id, caller.id)
    return updated


def delete_transaction(store: KeyValueStore, caller: Caller, txn_id: str) -> None:
    require_role(caller, ADMIN, message="Forbidden - Only admin can delete transactions")
    store.delete(transaction_key(txn_id))
    log.info("Transaction %s deleted by %s", txn_id, caller.id)


def summarize_transactions(transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Total pendapatan (Lunas) dan tagihan (Belum Bayar), seperti kartu ringkasan di dashboard."""
    return {
        "jumlah_transaksi": len(transactions),
        "total_pendapatan": sum(t.get("harga") or 0 for t in transactions if t.get("status_pembayaran") == LUNAS),
        "total_belum_bayar": sum(t.get("harga") or 0 for t in transactions if t.get("status_pembayaran") == BELUM_BAYAR),
    }
