from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from billingsync.adapters.entitlements import InMemoryEntitlementGateway
from billingsync.adapters.google_play import InMemoryGooglePlayClient
from billingsync.adapters.sqlalchemy import start_mappers
from billingsync.adapters.sqlalchemy.migrations import upgrade_head
from billingsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyTokenStoreUnitOfWork,
    shutdown,
    startup,
)
from billingsync.domain.model import ProPlan
from billingsync.domain.notifications import NotificationProcessor
from billingsync.domain.reconciliation import Reconciler
from billingsync.domain.token_store import TokenStore
from billingsync.domain.verification import PurchaseVerifier

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection, so threadpool-run handlers see the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def token_store(sqlite_engine: Engine) -> Iterator[TokenStore]:
    startup(engine=sqlite_engine, force=True, migrate=False)
    try:
        yield TokenStore(SqlAlchemyTokenStoreUnitOfWork)
    finally:
        shutdown()


@pytest.fixture
def provider() -> InMemoryGooglePlayClient:
    return InMemoryGooglePlayClient()


@pytest.fixture
def ledger() -> InMemoryEntitlementGateway:
    return InMemoryEntitlementGateway()


@pytest.fixture
def reconciler(
    token_store: TokenStore,
    provider: InMemoryGooglePlayClient,
    ledger: InMemoryEntitlementGateway,
) -> Reconciler:
    return Reconciler(
        store=token_store,
        provider=provider,
        entitlements=ledger,
        plan=ProPlan.with_allotment(30),
    )


@pytest.fixture
def verifier(reconciler: Reconciler) -> PurchaseVerifier:
    return PurchaseVerifier(reconciler, claim_wait_seconds=0.0)


@pytest.fixture
def processor(reconciler: Reconciler) -> NotificationProcessor:
    return NotificationProcessor(reconciler)
