from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from billingsync.app import BillingServices
from billingsync.domain.model import SubscriptionNotificationType
from billingsync.ui import cli as cli_module
from tests.helpers.purchases import (
    PACKAGE,
    PRODUCT,
    USER,
    make_detail,
    notification_data,
    push_envelope,
)

if TYPE_CHECKING:
    from pathlib import Path

    from billingsync.adapters.entitlements import InMemoryEntitlementGateway
    from billingsync.adapters.google_play import InMemoryGooglePlayClient
    from billingsync.domain.notifications import NotificationProcessor
    from billingsync.domain.verification import PurchaseVerifier


@pytest.fixture
def wired_services(
    monkeypatch: pytest.MonkeyPatch,
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
) -> list[dict[str, object]]:
    calls: list[dict[str, object]] = []

    def fake_build_services(**kwargs: object) -> BillingServices:
        calls.append(kwargs)
        return BillingServices(verifier=verifier, processor=processor, push_verifier=None)

    monkeypatch.setattr(cli_module, "build_services", fake_build_services)
    return calls


def _verify_args(token: str) -> list[str]:
    return [
        "verify",
        "--user-id",
        USER,
        "--package-name",
        PACKAGE,
        "--product-id",
        PRODUCT,
        "--purchase-token",
        token,
    ]


def test_verify_command_grants(
    wired_services: list[dict[str, object]],
    provider: InMemoryGooglePlayClient,
    ledger: InMemoryEntitlementGateway,
) -> None:
    provider.put(make_detail("tok-cli"))

    cli_module.main(_verify_args("tok-cli"))

    assert wired_services == [{"authenticate_push": False}]
    assert ledger.grants() == [USER]


def test_verify_command_exits_one_on_billing_error(
    wired_services: list[dict[str, object]],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(_verify_args("tok-unknown"))

    assert excinfo.value.code == 1


@pytest.mark.parametrize("wrapped", [True, False], ids=["push-envelope", "bare-notification"])
def test_notify_command_accepts_envelope_or_bare_notification(
    wired_services: list[dict[str, object]],
    provider: InMemoryGooglePlayClient,
    ledger: InMemoryEntitlementGateway,
    tmp_path: Path,
    wrapped: bool,
) -> None:
    provider.put(make_detail("tok-file"))
    data = notification_data("tok-file", SubscriptionNotificationType.PURCHASED)
    path = tmp_path / "notification.json"
    path.write_text(json.dumps(push_envelope(data) if wrapped else data), encoding="utf-8")

    cli_module.main(["notify", str(path)])

    assert ledger.grants() == [USER]


def test_notify_command_exits_two_for_missing_file(
    wired_services: list[dict[str, object]],
    tmp_path: Path,
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["notify", str(tmp_path / "absent.json")])

    assert excinfo.value.code == 2
    assert wired_services == []


def test_migrate_command_upgrades_configured_database(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    captured: list[str | None] = []

    def fake_upgrade_head(*, database_uri: str | None = None) -> None:
        captured.append(database_uri)

    database_uri = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URI", database_uri)
    monkeypatch.setattr(cli_module, "upgrade_head", fake_upgrade_head)

    cli_module.main(["migrate"])

    assert captured == [database_uri]


def test_serve_command_runs_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(app: object, **kwargs: object) -> None:
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(cli_module.uvicorn, "run", fake_run)
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://db/billing")

    cli_module.main(["serve", "--port", "9000"])

    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 9000
    assert captured["app"] is not None


def test_missing_command_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main([])

    assert excinfo.value.code == 2


def test_serve_refuses_to_start_without_a_database(monkeypatch: pytest.MonkeyPatch) -> None:
    started: list[object] = []
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setattr(cli_module.uvicorn, "run", lambda app, **kwargs: started.append(app))

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["serve"])

    assert excinfo.value.code == 2
    assert started == []


def test_one_off_commands_close_the_services_they_built(
    monkeypatch: pytest.MonkeyPatch,
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
) -> None:
    closed: list[str] = []

    class _Resource:
        def close(self) -> None:
            closed.append("closed")

    def fake_build_services(**kwargs: object) -> BillingServices:
        return BillingServices(
            verifier=verifier,
            processor=processor,
            push_verifier=None,
            resources=(_Resource(),),
        )

    monkeypatch.setattr(cli_module, "build_services", fake_build_services)

    with pytest.raises(SystemExit):
        cli_module.main(_verify_args("tok-unknown"))

    assert closed == ["closed"]
