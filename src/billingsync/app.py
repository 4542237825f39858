"""Application wiring: builds the engine's collaborators from configuration."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from billingsync.adapters.entitlements import HttpEntitlementGateway, InMemoryEntitlementGateway
from billingsync.adapters.google_play import GooglePlayClient, InMemoryGooglePlayClient
from billingsync.adapters.push_auth import build_push_verifier
from billingsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyTokenStoreUnitOfWork,
    is_started,
    startup,
)
from billingsync.config import (
    get_entitlement_backend,
    get_entitlement_config,
    get_google_play_config,
    get_pro_plan_credit_allotment,
    get_provider_backend,
    get_push_auth_config,
    get_push_auth_mode,
    get_reconciliation_config,
    get_stub_fixture_path,
)
from billingsync.domain.model import ProPlan
from billingsync.domain.notifications import NotificationProcessor
from billingsync.domain.reconciliation import Reconciler
from billingsync.domain.token_store import TokenStore
from billingsync.domain.verification import PurchaseVerifier

if TYPE_CHECKING:
    from billingsync.adapters.push_auth import PushTokenVerifier
    from billingsync.config import ReconciliationConfig
    from billingsync.domain.ports import EntitlementGateway, ProviderClient
    from billingsync.domain.ports.unit_of_work import TokenStoreUnitOfWork

UnitOfWorkFactory = Callable[[], "TokenStoreUnitOfWork"]


@runtime_checkable
class Closeable(Protocol):
    def close(self) -> None: ...


log = getLogger(__name__)


@dataclass(slots=True)
class BillingServices:
    """Everything the inbound surfaces need to serve requests."""

    verifier: PurchaseVerifier
    processor: NotificationProcessor
    push_verifier: PushTokenVerifier | None
    resources: tuple[Closeable, ...] = ()

    def close(self) -> None:
        """Release the HTTP clients of adapters built from configuration."""

        for resource in self.resources:
            resource.close()


def build_provider() -> ProviderClient:
    backend = get_provider_backend()
    if backend == "stub":
        fixtures = get_stub_fixture_path()
        log.warning("Using in-memory Google Play stub provider")
        return (
            InMemoryGooglePlayClient.from_fixture_file(fixtures)
            if fixtures is not None
            else InMemoryGooglePlayClient()
        )
    return GooglePlayClient(config=get_google_play_config())


def build_entitlements() -> EntitlementGateway:
    if get_entitlement_backend() == "stub":
        log.warning("Using in-memory entitlement ledger")
        return InMemoryEntitlementGateway()
    return HttpEntitlementGateway(config=get_entitlement_config())


def build_push_authenticator() -> PushTokenVerifier | None:
    if get_push_auth_mode() == "disabled":
        log.warning("Push delivery authentication is disabled")
        return None
    return build_push_verifier(get_push_auth_config())


def build_services(
    *,
    provider: ProviderClient | None = None,
    entitlements: EntitlementGateway | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    push_verifier: PushTokenVerifier | None = None,
    authenticate_push: bool = True,
    reconciliation: ReconciliationConfig | None = None,
    database_uri: str | None = None,
) -> BillingServices:
    """Assemble the verification and notification paths.

    Anything not passed in is built from the environment and closed by
    ``BillingServices.close``. Without an explicit ``unit_of_work_factory`` the
    SQLAlchemy adapter is started (and migrated) against ``database_uri``.
    """

    if unit_of_work_factory is None:
        if not is_started():
            startup(database_uri=database_uri)
        unit_of_work_factory = SqlAlchemyTokenStoreUnitOfWork
    settings = reconciliation or get_reconciliation_config()

    built: list[object] = []
    if provider is None:
        provider = build_provider()
        built.append(provider)
    if entitlements is None:
        entitlements = build_entitlements()
        built.append(entitlements)
    if push_verifier is None and authenticate_push:
        push_verifier = build_push_authenticator()
        built.append(push_verifier)

    store = TokenStore(unit_of_work_factory)
    reconciler = Reconciler(
        store=store,
        provider=provider,
        entitlements=entitlements,
        plan=ProPlan.with_allotment(get_pro_plan_credit_allotment()),
    )
    log.info(
        "Billing services ready: provider=%s, entitlements=%s, plan=%s, push_auth=%s",
        type(reconciler.provider).__name__,
        type(reconciler.entitlements).__name__,
        reconciler.plan,
        "on" if push_verifier is not None else "off",
    )
    return BillingServices(
        verifier=PurchaseVerifier(
            reconciler,
            claim_wait_seconds=settings.claim_wait_seconds,
            claim_poll_seconds=settings.claim_poll_seconds,
        ),
        processor=NotificationProcessor(reconciler),
        push_verifier=push_verifier,
        resources=tuple(item for item in built if isinstance(item, Closeable)),
    )
