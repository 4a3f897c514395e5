"""Phone normalisation and lookup by phone."""

import pytest

from bombily.domain.phones import ensure_e164, normalize_phone
from bombily.infrastructure.repositories import UserRepository


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+7 (900) 000-00-01", "+79000000001"),
        ("8 900 000 00 01", "+79000000001"),
        ("79000000001", "+79000000001"),
        ("", ""),
        ("call me", ""),
    ],
)
def test_ensure_e164(raw, expected):
    assert ensure_e164(raw) == expected


def test_normalize_keeps_plus_and_digits():
    assert normalize_phone(" +7 (900) 000-00-01 ") == "+79000000001"
    assert normalize_phone("8-900") == "8900"


@pytest.mark.asyncio
async def test_lookup_accepts_local_spelling(db_session, world):
    user = await UserRepository(db_session).get_by_phone("8 (900) 000-00-04")
    assert user is not None
    assert user.id == world.driver_a_id


@pytest.mark.asyncio
async def test_lookup_unknown_phone(db_session, world):
    assert await UserRepository(db_session).get_by_phone("+7 999 999 99 99") is None
