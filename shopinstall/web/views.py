"""
Pyramid wiring for the installation flow.

    config.include("shopinstall.web.views")
    config.set_installation_flow_factory(
        make_flow_factory(InstallConfig.from_settings(settings), registry_maker)
    )
"""
from dataclasses import dataclass, field
from typing import Callable

import zope.interface

from .. import InstallationFlow, InstallConfig
from ..hooks import DefaultInstallHooks
from ..interfaces import (
    IInstallationFlowFactory,
    IInstallHooks,
    IOAuthClient,
    IWebhookProvisioner,
)
from ..oauth import OAuthClient
from ..webhook_api import WebhookAPIService, WebhookProvisioner
from .pyramid_shim import PyramidWebShim, PyramidWebShimConfig


AUTH_ROUTE = "shopinstall.auth"


INSTALL_ROUTE = "shopinstall.install"


@zope.interface.implementer(IInstallationFlowFactory)
@dataclass
class InstallationFlowFactory:
    """Build one InstallationFlow per request around shared adapters."""

    config: InstallConfig
    # Called with the request, returns an IShopRegistry.
    registry_maker: Callable
    oauth_client: IOAuthClient
    webhook_provisioner: IWebhookProvisioner
    hooks: IInstallHooks = field(default_factory=DefaultInstallHooks)
    shim_config: PyramidWebShimConfig = field(default_factory=PyramidWebShimConfig)

    def __call__(self, request):
        return InstallationFlow(
            config=self.config,
            web_shim=PyramidWebShim(self.shim_config, request),
            registry=self.registry_maker(request),
            oauth_client=self.oauth_client,
            webhook_provisioner=self.webhook_provisioner,
            hooks=self.hooks,
        )


def make_flow_factory(config, registry_maker, hooks=None, shim_config=None):
    """Make a factory with the requests based adapters set up from config."""
    return InstallationFlowFactory(
        config=config,
        registry_maker=registry_maker,
        oauth_client=OAuthClient(
            api_key=config.api_key,
            api_secret=config.api_secret,
            timeout=config.http_timeout_seconds,
        ),
        webhook_provisioner=WebhookProvisioner(
            api=WebhookAPIService(timeout=config.http_timeout_seconds),
            api_version=config.api_version,
            address=config.webhook_address,
            topics=config.webhook_topics,
        ),
        hooks=hooks or DefaultInstallHooks(),
        shim_config=shim_config or PyramidWebShimConfig(),
    )


def get_flow(request):
    factory = request.registry.getUtility(IInstallationFlowFactory)
    return factory(request)


def auth_view(request):
    return get_flow(request).auth()


def install_view(request):
    return get_flow(request).install()


def set_installation_flow_factory(config, factory):
    def register():
        config.registry.registerUtility(factory, IInstallationFlowFactory)

    config.action(IInstallationFlowFactory, register)


def includeme(config):
    settings = config.get_settings()
    config.add_directive("set_installation_flow_factory", set_installation_flow_factory)
    config.add_route(AUTH_ROUTE, settings.get("shopinstall.auth_path", "/auth"))
    config.add_route(
        INSTALL_ROUTE, settings.get("shopinstall.install_path", "/auth/install")
    )
    config.add_view(auth_view, route_name=AUTH_ROUTE, request_method=("GET", "POST"))
    config.add_view(install_view, route_name=INSTALL_ROUTE, request_method="GET")
