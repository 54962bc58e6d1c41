import logging
from dataclasses import dataclass, field, fields

import requests
import zope.interface

from .errors import WebhookProvisioningFailed
from .interfaces import IWebhookProvisioner


logger = logging.getLogger(__name__)


@dataclass
class Webhook:
    address: str
    topic: str
    id: int = None
    api_version: str = None
    created_at: str = None
    fields: list = None
    format: str = None
    metafield_namespaces: list = None
    private_metafield_namespaces: list = None
    updated_at: str = None
    # Whatever we couldn't match.
    cruft: dict = field(default_factory=dict)


class WebhookAPIService:
    """Helps with interacting with shopify's webhook api."""

    api_url: str = "https://{shop_host}/admin/api/{api_version}/webhooks.json"

    GET_LIMIT_MAX: int = 250

    def __init__(self, timeout=10, http=requests):
        self.timeout = timeout
        # Anything with requests compatible `get` and `post`.
        self.http = http

    def get_api_url(self, api_version, shop_host):
        return self.api_url.format(api_version=api_version, shop_host=shop_host)

    def create_webhook(
        self,
        api_version,
        shop_host,
        access_token,
        topic,
        address,
        fields=None,
    ):
        payload = {
            "webhook": {
                "topic": topic,
                "address": address,
                # Always send json.
                "format": "json",
            }
        }
        if fields:
            payload["webhook"]["fields"] = fields
        res = self.http.post(
            self.get_api_url(api_version, shop_host),
            headers={
                "X-Shopify-Access-Token": access_token,
                "Accept": "application/json",
            },
            json=payload,
            timeout=self.timeout,
        )
        # Created comes back as 201.
        if res.status_code in (200, 201):
            return self._coerce_into_webhook(self._get_body_key(res, "webhook", dict))
        else:
            res.raise_for_status()
            raise requests.HTTPError(
                f"Unexpected status {res.status_code} creating webhook", response=res
            )

    def check_limit(self, limit, raise_on_error=True):
        if limit > self.GET_LIMIT_MAX:
            if raise_on_error:
                raise AssertionError(
                    f"The limit {limit} must be less than {self.GET_LIMIT_MAX}"
                )
            return False
        return True

    def get_webhooks(
        self,
        api_version,
        shop_host,
        access_token,
        address=None,
        topic=None,
        limit=50,
        check_limit=True,
    ):
        if check_limit:
            self.check_limit(limit)
        params = {
            "limit": limit,
        }
        if address:
            params["address"] = address
        if topic:
            params["topic"] = topic
        res = self.http.get(
            self.get_api_url(api_version, shop_host),
            headers={
                "X-Shopify-Access-Token": access_token,
                "Accept": "application/json",
            },
            params=params,
            timeout=self.timeout,
        )
        if res.status_code == 200:
            return [
                self._coerce_into_webhook(webhook_dict)
                for webhook_dict in self._get_body_key(res, "webhooks", list)
            ]
        else:
            res.raise_for_status()
            raise requests.HTTPError(
                f"Unexpected status {res.status_code} listing webhooks", response=res
            )

    def _get_body_key(self, res, key, expected_type):
        """Pull key out of the json body, raising ValueError on any other shape."""
        body = res.json()
        if not isinstance(body, dict) or not isinstance(body.get(key), expected_type):
            raise ValueError(f"Webhook response has no {expected_type.__name__} {key!r}.")
        return body[key]

    def _coerce_into_webhook(self, webhook_dict):
        if not isinstance(webhook_dict, dict):
            raise ValueError("Webhook in response is not a json object.")
        for required in ("address", "topic"):
            if required not in webhook_dict:
                raise ValueError(f"Webhook in response is missing {required}.")
        kwargs = {}
        field_by_name = {f.name: f for f in fields(Webhook)}
        cruft = kwargs["cruft"] = {}
        for k in webhook_dict:
            if k in field_by_name and k != "cruft":
                kwargs[k] = webhook_dict[k]
            else:
                cruft[k] = webhook_dict[k]
        webhook = Webhook(**kwargs)
        if webhook.cruft:
            # We save the cruft but don't crash if it exists.
            logger.warning(
                f"Unrecognized keys in webhook response: {','.join(webhook.cruft.keys())}"
            )
        return webhook


@zope.interface.implementer(IWebhookProvisioner)
@dataclass
class WebhookProvisioner:
    """
    Subscribe a freshly installed shop to the webhook topics the app needs.

    Topics already subscribed to our address are left alone so running this
    twice for a shop, ie. on re-install or retry, does not duplicate hooks.
    """

    api: WebhookAPIService
    api_version: str
    address: str = None
    topics: tuple = ()

    def configure(self, tenant):
        if not self.topics:
            return None
        try:
            existing = {
                webhook.topic
                for webhook in self.api.get_webhooks(
                    self.api_version,
                    tenant.url,
                    tenant.access_token,
                    address=self.address,
                    limit=self.api.GET_LIMIT_MAX,
                )
                if webhook.address == self.address
            }
        except (requests.RequestException, ValueError) as e:
            return WebhookProvisioningFailed(
                tenant.url, self.topics, {topic: f"{e}" for topic in self.topics}
            )

        reasons = {}
        for topic in self.topics:
            if topic in existing:
                logger.debug(f"Webhook {topic} already exists for {tenant.url}")
                continue
            try:
                self.api.create_webhook(
                    self.api_version,
                    tenant.url,
                    tenant.access_token,
                    topic,
                    self.address,
                )
            except (requests.RequestException, ValueError) as e:
                reasons[topic] = f"{e}"
            else:
                logger.info(f"Registered webhook {topic} for {tenant.url}")
        if reasons:
            return WebhookProvisioningFailed(tenant.url, reasons.keys(), reasons)
        return None

    def retry_pending(self, registry):
        """
        Configure webhooks again for every tenant that failed before.

        Returns a list of (tenant, error) for the tenants still failing.
        """
        still_failing = []
        for tenant in registry.list_pending_provisioning():
            if not tenant.is_installed:
                continue
            error = self.configure(tenant)
            if error:
                logger.error(f"Retry failed: {error}")
                still_failing.append((tenant, error))
            registry.mark_provisioned(tenant.url, error is None)
        return still_failing
