from __future__ import annotations

from datetime import timedelta

import pytest

from klinik.database import Base, make_engine, make_session_factory
from klinik.identity import IdentityError, IdentityProvider


@pytest.fixture
def identity(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'identity.db'}")
    Base.metadata.create_all(bind=engine)
    return IdentityProvider(make_session_factory(engine), secret_key="test-secret")


def test_sign_in_issues_token_that_resolves_to_user(identity):
    created = identity.create_user("Sari@Klinik.test", "rahasia123", {"name": "dr. Sari", "role": "dokter"})
    token = identity.sign_in("sari@klinik.test", "rahasia123")

    user = identity.get_user(token)
    assert user.id == created.id
    assert user.email == "sari@klinik.test"
    assert user.user_metadata == {"name": "dr. Sari", "role": "dokter"}


def test_duplicate_email_is_rejected(identity):
    identity.create_user("budi@klinik.test", "rahasia123", {"name": "Budi", "role": "pasien"})
    with pytest.raises(IdentityError):
        identity.create_user("budi@klinik.test", "lainlagi", {"name": "Budi 2", "role": "pasien"})


def test_wrong_password_is_rejected(identity):
    identity.create_user("budi@klinik.test", "rahasia123", {"name": "Budi", "role": "pasien"})
    with pytest.raises(IdentityError):
        identity.sign_in("budi@klinik.test", "salah")
    with pytest.raises(IdentityError):
        identity.sign_in("tidakada@klinik.test", "rahasia123")


def test_invalid_and_expired_tokens_are_rejected(identity):
    created = identity.create_user("budi@klinik.test", "rahasia123", {"name": "Budi", "role": "pasien"})
    with pytest.raises(IdentityError):
        identity.get_user("bukan-token")

    expired = identity.create_access_token(created.id, expires_delta=timedelta(minutes=-1))
    with pytest.raises(IdentityError):
        identity.get_user(expired)


def test_token_signed_with_other_secret_is_rejected(identity, tmp_path):
    created = identity.create_user("budi@klinik.test", "rahasia123", {"name": "Budi", "role": "pasien"})
    engine = make_engine(f"sqlite:///{tmp_path / 'other.db'}")
    other = IdentityProvider(make_session_factory(engine), secret_key="other-secret")
    with pytest.raises(IdentityError):
        identity.get_user(other.create_access_token(created.id))
