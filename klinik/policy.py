from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import Forbidden, NotFound

DOKTER = "dokter"
PASIEN = "pasien"
ADMIN = "admin"
ROLES = (DOKTER, PASIEN, ADMIN)


@dataclass
class Caller:
    """Identitas pemanggil untuk satu request: id dari token + profil `user:<id>` (boleh None)."""
    id: str
    profile: Optional[Dict[str, Any]] = None

    @property
    def role(self) -> Optional[str]:
        return self.profile.get("role") if self.profile else None

    @property
    def name(self) -> Optional[str]:
        return self.profile.get("name") if self.profile else None


def require_profile(caller: Caller) -> Dict[str, Any]:
    if not caller.profile:
        raise NotFound("User data not found")
    return caller.profile


def require_role(caller: Caller, *roles: str, message: str = "Forbidden") -> Caller:
    # profil hilang = role tidak diketahui -> ditolak
    if caller.role not in roles:
        raise Forbidden(message)
    return caller


def can_view_patient(caller: Caller, user_id: str) -> bool:
    """Pasien hanya boleh melihat datanya sendiri; dokter & admin boleh semua."""
    if caller.id == user_id:
        return True
    return caller.role in (DOKTER, ADMIN)


def sees_all_transactions(caller: Caller) -> bool:
    return caller.role != PASIEN
