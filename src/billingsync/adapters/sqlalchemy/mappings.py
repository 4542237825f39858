"""SQLAlchemy mapping metadata for the purchase token ledger."""

from __future__ import annotations

from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from billingsync.domain.model import PurchaseToken, PurchaseTokenStatus


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _status_values(enum_cls: type[PurchaseTokenStatus]) -> list[str]:
    return [member.value for member in enum_cls]


PurchaseTokenStatusType = Enum(
    PurchaseTokenStatus,
    name="purchase_token_status",
    native_enum=False,
    values_callable=_status_values,
    validate_strings=True,
)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

purchase_token_table = Table(
    "purchase_tokens",
    mapper_registry.metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String, nullable=False),
    Column("purchase_token", String, nullable=False),
    Column("status", PurchaseTokenStatusType, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("expiry_at", UTCDateTime, nullable=False),
    UniqueConstraint("purchase_token"),
    Index(None, "user_id"),
    Index(None, "status"),
)


@cache
def start_mappers() -> orm.registry:
    """Map the domain entities imperatively (idempotent)."""

    mapper_registry.map_imperatively(PurchaseToken, purchase_token_table)
    configure_mappers()
    return mapper_registry
