from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.orm import Session

from billingsync.adapters.sqlalchemy import SqlAlchemyPurchaseTokenRepository
from billingsync.domain.errors import TokenConflictError
from billingsync.domain.model import PurchaseToken, PurchaseTokenStatus
from tests.helpers.purchases import USER, days_from_now

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def session(sqlite_engine: Engine) -> Iterator[Session]:
    with Session(sqlite_engine, expire_on_commit=False) as session:
        yield session


def _record(token: str, *, user_id: str = USER, days: float = 30) -> PurchaseToken:
    return PurchaseToken(user_id=user_id, purchase_token=token, expiry_at=days_from_now(days))


def test_get_by_token_finds_the_record(session: Session) -> None:
    repo = SqlAlchemyPurchaseTokenRepository(session)
    record = _record("tok-find")
    repo.add(record)
    session.commit()

    found = repo.get_by_token("tok-find")

    assert found is not None
    assert found.id == record.id
    assert found.status is PurchaseTokenStatus.PENDING
    assert repo.get_by_token("tok-nope") is None


def test_duplicate_token_raises_conflict_and_keeps_the_first(session: Session) -> None:
    repo = SqlAlchemyPurchaseTokenRepository(session)
    first = _record("tok-dup")
    repo.add(first)
    session.commit()

    with pytest.raises(TokenConflictError):
        repo.add(_record("tok-dup", user_id="user-2"))

    stored = repo.get_by_token("tok-dup")
    assert stored is not None
    assert stored.id == first.id
    assert stored.user_id == USER


def test_update_changes_status_and_advances_expiry(session: Session) -> None:
    repo = SqlAlchemyPurchaseTokenRepository(session)
    record = _record("tok-update", days=1)
    repo.add(record)
    session.commit()
    later = record.expiry_at + timedelta(days=30)

    updated = repo.update_status_and_expiry(
        record.id,
        status=PurchaseTokenStatus.ACCESS_GRANTED,
        expiry_at=later,
    )
    session.commit()

    assert updated is not None
    assert updated.status is PurchaseTokenStatus.ACCESS_GRANTED
    assert updated.expiry_at == later


def test_update_never_moves_expiry_backwards(session: Session) -> None:
    repo = SqlAlchemyPurchaseTokenRepository(session)
    record = _record("tok-monotonic", days=30)
    repo.add(record)
    session.commit()
    original = record.expiry_at

    updated = repo.update_status_and_expiry(record.id, expiry_at=original - timedelta(days=10))
    session.commit()

    assert updated is not None
    assert updated.expiry_at == original
    assert updated.status is PurchaseTokenStatus.PENDING


def test_update_of_missing_record_returns_none(session: Session) -> None:
    repo = SqlAlchemyPurchaseTokenRepository(session)

    assert repo.update_status_and_expiry("missing", status=PurchaseTokenStatus.EXPIRED) is None
