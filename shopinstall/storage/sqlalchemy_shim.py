from dataclasses import dataclass
from datetime import timezone
from typing import Callable

from sqlalchemy import Boolean, Column, DateTime, JSON, String, Table
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from sqlalchemy.sql import select, update
import zope.interface

from .. import Tenant
from ..interfaces import IShopRegistry


INSERT_BY_DIALECT = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def make_tenants_table(metadata, name="shopinstall_tenants"):
    """The url primary key is what keeps concurrent installs to one row."""
    return Table(
        name,
        metadata,
        Column("url", String(255), primary_key=True),
        Column("access_token", String(255), nullable=True),
        Column("scopes", JSON, nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("provisioning_complete", Boolean, nullable=False, default=False),
        Column("extra", JSON, nullable=False),
    )


@zope.interface.implementer(IShopRegistry)
@dataclass
class SqlalchemyShopRegistry:
    """Store tenants in a table made by `make_tenants_table`."""

    db: Session
    table: Table

    mark_changed: Callable = None

    def get_insert(self):
        dialect_name = self.db.get_bind().dialect.name
        if dialect_name not in INSERT_BY_DIALECT:
            raise NotImplementedError(f"No upsert support for {dialect_name}")
        return INSERT_BY_DIALECT[dialect_name]

    def row_to_tenant(self, row):
        created_at = row["created_at"]
        if created_at is not None and created_at.tzinfo is None:
            # sqlite hands back naive datetimes, we only ever store utc.
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Tenant(
            url=row["url"],
            access_token=row["access_token"],
            scopes=set(row["scopes"] or ()),
            created_at=created_at,
            provisioning_complete=row["provisioning_complete"],
            extra=dict(row["extra"] or {}),
        )

    def get_shop_by_url(self, url):
        row = (
            self.db.execute(select(self.table).where(self.table.c.url == url))
            .mappings()
            .first()
        )
        return self.row_to_tenant(row) if row else None

    def create_tenant(self, tenant):
        """
        Insert the tenant, a re-install updates the existing row instead.

        created_at always stays what the first install wrote.
        """
        values = dict(
            access_token=tenant.access_token,
            scopes=sorted(tenant.scopes),
            extra=tenant.extra,
        )
        insert = self.get_insert()
        self.db.execute(
            insert(self.table)
            .values(
                url=tenant.url,
                created_at=tenant.created_at,
                provisioning_complete=tenant.provisioning_complete,
                **values,
            )
            .on_conflict_do_update(index_elements=[self.table.c.url], set_=values)
        )
        if self.mark_changed:
            self.mark_changed(self.db)
        return self.get_shop_by_url(tenant.url)

    def mark_provisioned(self, url, complete):
        self.db.execute(
            update(self.table)
            .where(self.table.c.url == url)
            .values(provisioning_complete=complete)
        )
        if self.mark_changed:
            self.mark_changed(self.db)
        return self.get_shop_by_url(url)

    def list_pending_provisioning(self):
        rows = (
            self.db.execute(
                select(self.table).where(
                    self.table.c.provisioning_complete.is_(False)
                )
            )
            .mappings()
            .all()
        )
        return [self.row_to_tenant(row) for row in rows]
