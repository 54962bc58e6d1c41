from dataclasses import dataclass, field, replace
import logging
import threading

import zope.interface

from ..interfaces import IShopRegistry


logger = logging.getLogger(__name__)


@zope.interface.implementer(IShopRegistry)
@dataclass
class MemoryShopRegistry:
    """
    Keep tenants in a dict keyed on url.

    Good for development and tests, everything is gone with the process.
    Writes are serialized so one url only ever maps to one tenant.
    """

    tenants: dict = field(default_factory=dict)
    lock: object = field(default_factory=threading.Lock)

    def get_shop_by_url(self, url):
        with self.lock:
            return self.tenants.get(url)

    def create_tenant(self, tenant):
        with self.lock:
            existing = self.tenants.get(tenant.url)
            if existing is None:
                # Own a copy so callers can't change the store behind our back.
                stored = self.tenants[tenant.url] = replace(
                    tenant, scopes=set(tenant.scopes), extra=dict(tenant.extra)
                )
                return stored
            logger.info(f"Tenant {tenant.url} exists, updating it in place.")
            existing.access_token = tenant.access_token
            existing.scopes = set(tenant.scopes)
            existing.extra = dict(tenant.extra)
            return existing

    def mark_provisioned(self, url, complete):
        with self.lock:
            tenant = self.tenants[url]
            tenant.provisioning_complete = complete
            return tenant

    def list_pending_provisioning(self):
        with self.lock:
            tenants = list(self.tenants.values())
        return [tenant for tenant in tenants if not tenant.provisioning_complete]
