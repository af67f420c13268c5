from typing import Optional, Union
from pydantic import BaseModel, StrictInt, confloat

# bool bukan angka; NaN/Infinity ditolak supaya tidak tersimpan ke store
Number = Union[StrictInt, confloat(strict=True, allow_inf_nan=False)]

# Semua field Optional: field wajib dicek manual di service supaya
# pesan error konsisten ("Missing required fields") dan status 400, bukan 422.


class SignupIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PatientIn(BaseModel):
    userId: Optional[str] = None
    nama: Optional[str] = None
    umur: Optional[int] = None
    keluhan: Optional[str] = None
    catatan_dokter: Optional[str] = None


class TransactionIn(BaseModel):
    pasien_id: Optional[str] = None
    pasien_nama: Optional[str] = None
    obat: Optional[str] = None
    harga: Optional[Number] = None
    status_pembayaran: Optional[str] = None


class TransactionUpdate(BaseModel):
    status_pembayaran: Optional[str] = None
    obat: Optional[str] = None
    harga: Optional[Number] = None
