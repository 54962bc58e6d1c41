import logging
from dataclasses import dataclass, field
from typing import Callable

import zope.interface

from .interfaces import IWebShim, IWebhookHandlerRegistry
from .signature import verify_body
from .util import DEFAULT_PLATFORM_DOMAIN, normalize_shop_host


logger = logging.getLogger(__name__)


@dataclass
class HandlerRegistration:
    handler: Callable
    topic: str = None
    # higher gets called first
    priority: int = 0


@zope.interface.implementer(IWebhookHandlerRegistry)
@dataclass
class HandlerRegistry:
    registrations: list = field(default_factory=list)

    def add(self, webhook_handler, topic=None, priority=0):
        self.registrations.append(HandlerRegistration(webhook_handler, topic, priority))

    def matches(self, topic):
        """
        Get registered handlers that match the given topic, high priority first.
        """
        regs = filter(
            lambda reg: reg.topic == topic or not reg.topic, self.registrations
        )
        return sorted(regs, key=lambda reg: reg.priority, reverse=True)


@dataclass
class WebhookEndpointService:
    """
    Receive the webhooks the provisioner subscribed a tenant to.

    Handlers are called as handler(shop_host, topic, params, state).  Deleting
    a tenant on app/uninstalled is up to the handler the app registers.

    @NOTE: This doesn't handle processing webhooks in the correct order.
        ie. ProductUpdate before ProductCreate for the same product.
    @NOTE: This doesn't handle processing webhooks that are sent more than once.
        ie. ProductCreate x 2 for the same product.
    """

    web_shim: IWebShim

    registry: IWebhookHandlerRegistry

    # Allow state to be made and passed to chain of handlers called for a
    # webhook.
    handler_state_maker: Callable = field(default=dict)

    platform_domain: str = DEFAULT_PLATFORM_DOMAIN

    def process_webhook(self, api_secret):
        hmac_to_verify = self.web_shim.get_header("X-Shopify-Hmac-SHA256")
        # Neither of these is part of the signed body.
        shop_url = self.web_shim.get_header("X-Shopify-Shop-Domain")
        topic = self.web_shim.get_header("X-Shopify-Topic")

        if not shop_url or not topic or not hmac_to_verify:
            return self.web_shim.response_bad_request("Missing webhook headers.")
        if not verify_body(self.web_shim.get_request_body(), hmac_to_verify, api_secret):
            logger.warning(f"Webhook {topic} for {shop_url} failed HMAC check.")
            return self.web_shim.response_401()

        shop_host = normalize_shop_host(shop_url, self.platform_domain)
        if not shop_host:
            return self.web_shim.response_bad_request("Invalid shop domain.")
        regs = self.registry.matches(topic)
        if not regs:
            logger.warning(f"No handler registrations matched topic: {topic}")
        # The contents here is undocumented AFAIK, it just will look kind of like what
        # you send to shopify when registering the hook with them.
        params = self.web_shim.get_request_json_body()
        state = self.handler_state_maker()
        for reg in regs:
            reg.handler(shop_host, topic, params, state)
        return self.web_shim.response_200_string("")
