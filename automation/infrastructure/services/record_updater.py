"""Record updater: field and tag changes on CRM records (implements IRecordUpdater).

Only allowlisted tables are reachable, and every statement is scoped to the
tenant: companies by id, leads and subscriptions by company_id. Field names
are validated by the action params model before they reach this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import column, select, table, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from automation.domain.exceptions import ProviderException
from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_PROVIDER = "record_updater"


@dataclass(frozen=True)
class _RecordTable:
    name: str
    # Column compared with the tenant id.
    tenant_column: str
    taggable: bool = False


_RECORD_TABLES: dict[str, _RecordTable] = {
    "company": _RecordTable("companies", "id", taggable=True),
    "lead": _RecordTable("leads", "company_id", taggable=True),
    "subscription": _RecordTable("company_subscriptions", "company_id"),
}


def _columns(*names: str) -> list:
    return [column(n) for n in dict.fromkeys(names)]


def _record_table(entity: str) -> _RecordTable:
    try:
        return _RECORD_TABLES[entity]
    except KeyError:
        raise ProviderException(_PROVIDER, f"unknown entity '{entity}'") from None


class SqlRecordUpdater:
    """Applies update_field, change_status and add_tag in one transaction each."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def update_field(
        self,
        tenant_id: str,
        entity: str,
        entity_id: str,
        field: str,
        value: Any,
        *,
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Set field = value on the record. Setting the same value twice is harmless."""
        spec = _record_table(entity)
        t = table(spec.name, *_columns("id", spec.tenant_column, field))
        stmt = (
            update(t)
            .where(t.c.id == entity_id, t.c[spec.tenant_column] == tenant_id)
            .values({field: value})
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise ProviderException(
                _PROVIDER, f"failed to update {entity}.{field}: {e.__class__.__name__}"
            ) from e
        if result.rowcount == 0:
            raise ProviderException(
                _PROVIDER, f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id
            )
        logger.info(
            "Updated %s %s field %s (key=%s)", entity, entity_id, field, idempotency_key
        )
        return {
            "updated": True,
            "entity": entity,
            "entity_id": entity_id,
            "field": field,
            "value": value,
        }

    async def add_tag(
        self,
        tenant_id: str,
        entity: str,
        entity_id: str,
        tag: str,
        *,
        idempotency_key: str,
    ) -> bool:
        """Append tag to the record's tags array unless present. Returns whether it was added."""
        spec = _record_table(entity)
        if not spec.taggable:
            raise ProviderException(_PROVIDER, f"{entity} records have no tags")
        t = table(spec.name, *_columns("id", spec.tenant_column, "tags"))
        scope = (t.c.id == entity_id, t.c[spec.tenant_column] == tenant_id)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    current = (
                        await session.execute(
                            select(t.c.tags).where(*scope).with_for_update()
                        )
                    ).one_or_none()
                    if current is None:
                        raise ProviderException(
                            _PROVIDER,
                            f"{entity} {entity_id} not found",
                            entity=entity,
                            entity_id=entity_id,
                        )
                    tags = list(current.tags or [])
                    if tag in tags:
                        return False
                    await session.execute(
                        update(t).where(*scope).values(tags=[*tags, tag])
                    )
        except SQLAlchemyError as e:
            raise ProviderException(
                _PROVIDER, f"failed to tag {entity}: {e.__class__.__name__}"
            ) from e
        logger.info("Tagged %s %s with %r (key=%s)", entity, entity_id, tag, idempotency_key)
        return True
