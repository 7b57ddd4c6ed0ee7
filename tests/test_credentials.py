import statistics
import time
from datetime import datetime, timedelta, timezone

import pytest

from auth import security
from auth.service import CredentialManager
from core import errors

from fakes import InMemoryStore


@pytest.mark.asyncio
async def test_register_stores_only_a_salted_hash(credentials, store):
    account = await credentials.register("Ana@Example.com ", "pw1")

    assert account.email == "ana@example.com"
    stored = store.accounts["ana@example.com"]
    assert stored.password_hash != "pw1"
    assert stored.password_hash.startswith("$2")
    assert security.verify_password("pw1", stored.password_hash)
    assert "pw1" not in repr(stored)


@pytest.mark.asyncio
async def test_register_twice_yields_already_exists(credentials, store):
    await credentials.register("a@x.com", "pw1")

    with pytest.raises(errors.AlreadyExists):
        await credentials.register("A@X.com", "other")

    assert [a.email for a in store.accounts.values()] == ["a@x.com"]


@pytest.mark.asyncio
async def test_register_rejects_overlong_password(credentials):
    with pytest.raises(errors.ValidationError):
        await credentials.register("a@x.com", "p" * 100)


@pytest.mark.asyncio
async def test_authenticate_issues_session_and_stores_secret_hash(credentials, store):
    await credentials.register("a@x.com", "pw1")

    issued = await credentials.authenticate("a@x.com", "pw1")

    session = store.sessions[issued.client_id]
    assert session.owner_email == "a@x.com"
    assert session.client_secret_hash == security.hash_client_secret(issued.client_secret)
    assert issued.client_secret not in session.client_secret_hash
    assert await credentials.validate(issued.client_id, issued.client_secret) == "a@x.com"


@pytest.mark.asyncio
async def test_each_login_gets_a_fresh_credential(credentials):
    await credentials.register("a@x.com", "pw1")

    first = await credentials.authenticate("a@x.com", "pw1")
    second = await credentials.authenticate("a@x.com", "pw1")

    assert first.client_id != second.client_id
    assert first.client_secret != second.client_secret


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_email_fail_the_same_way(credentials, store):
    await credentials.register("a@x.com", "pw1")

    with pytest.raises(errors.InvalidCredentials) as wrong_password:
        await credentials.authenticate("a@x.com", "nope")
    with pytest.raises(errors.InvalidCredentials) as unknown_email:
        await credentials.authenticate("b@x.com", "pw1")

    assert wrong_password.value.message == unknown_email.value.message
    assert store.sessions == {}


@pytest.mark.asyncio
async def test_unknown_email_still_pays_for_a_bcrypt_check(credentials, monkeypatch):
    burned = []
    real_burn = security.burn_password_check

    def spy(password, *, rounds):
        burned.append(rounds)
        real_burn(password, rounds=rounds)

    monkeypatch.setattr(security, "burn_password_check", spy)

    with pytest.raises(errors.InvalidCredentials):
        await credentials.authenticate("ghost@x.com", "pw")

    assert burned == [4]


@pytest.mark.asyncio
async def test_failure_timing_does_not_reveal_whether_email_exists():
    manager = CredentialManager(InMemoryStore(), bcrypt_rounds=8)
    await manager.register("a@x.com", "pw1")

    async def median_failure_time(email: str) -> float:
        samples = []
        for _ in range(5):
            started = time.perf_counter()
            with pytest.raises(errors.InvalidCredentials):
                await manager.authenticate(email, "wrong")
            samples.append(time.perf_counter() - started)
        return statistics.median(samples)

    # Warm the dummy-hash cache before measuring.
    with pytest.raises(errors.InvalidCredentials):
        await manager.authenticate("nobody@x.com", "wrong")

    known = await median_failure_time("a@x.com")
    unknown = await median_failure_time("nobody@x.com")

    assert 1 / 3 < known / unknown < 3


@pytest.mark.asyncio
async def test_validate_rejects_wrong_secret_and_unknown_client(credentials):
    await credentials.register("a@x.com", "pw1")
    issued = await credentials.authenticate("a@x.com", "pw1")

    with pytest.raises(errors.Unauthorized):
        await credentials.validate(issued.client_id, "not-the-secret")
    with pytest.raises(errors.Unauthorized):
        await credentials.validate("unknown-client", issued.client_secret)
    with pytest.raises(errors.Unauthorized):
        await credentials.validate(issued.client_id, "")


@pytest.mark.asyncio
async def test_expired_session_is_rejected_without_writing(store):
    now = [datetime(2026, 3, 1, tzinfo=timezone.utc)]
    manager = CredentialManager(
        store,
        session_ttl=timedelta(minutes=30),
        bcrypt_rounds=4,
        clock=lambda: now[0],
    )
    await manager.register("a@x.com", "pw1")
    issued = await manager.authenticate("a@x.com", "pw1")

    now[0] += timedelta(minutes=29)
    assert await manager.validate(issued.client_id, issued.client_secret) == "a@x.com"

    now[0] += timedelta(minutes=2)
    writes_before = list(store.writes)
    with pytest.raises(errors.Unauthorized):
        await manager.validate(issued.client_id, issued.client_secret)
    assert store.writes == writes_before
    assert store.sessions[issued.client_id].revoked_at is None


@pytest.mark.asyncio
async def test_revoke_is_idempotent(credentials):
    await credentials.register("a@x.com", "pw1")
    issued = await credentials.authenticate("a@x.com", "pw1")

    await credentials.revoke(issued.client_id)
    await credentials.revoke(issued.client_id)
    await credentials.revoke("never-issued")

    with pytest.raises(errors.Unauthorized):
        await credentials.validate(issued.client_id, issued.client_secret)


@pytest.mark.asyncio
async def test_deleted_account_loses_its_sessions(credentials, store):
    await credentials.register("a@x.com", "pw1")
    issued = await credentials.authenticate("a@x.com", "pw1")
    assert (await credentials.get_account(" A@x.com")).email == "a@x.com"

    await credentials.delete_account("a@x.com")

    assert "a@x.com" not in store.accounts
    with pytest.raises(errors.Unauthorized):
        await credentials.validate(issued.client_id, issued.client_secret)
    with pytest.raises(errors.NotFound):
        await credentials.delete_account("a@x.com")
    with pytest.raises(errors.InvalidCredentials):
        await credentials.authenticate("a@x.com", "pw1")

@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("abc:def", ("abc", "def")),
        ("abc:def:ghi", ("abc", "def:ghi")),
    ],
)
def test_parse_bearer_credential(token, expected):
    assert security.parse_bearer_credential(token) == expected


@pytest.mark.parametrize("token", ["", "abc", "abc:", ":def"])
def test_parse_bearer_credential_rejects_malformed(token):
    with pytest.raises(security.AuthSecurityError):
        security.parse_bearer_credential(token)
