from unittest.mock import MagicMock

import pytest

from shopinstall import InstallConfig, InstallationFlow
from shopinstall.storage.memory import MemoryShopRegistry
from tests.fakes import (
    API_SECRET,
    FakeOAuthClient,
    FakeProvisioner,
    FakeWebShim,
    RecordingHooks,
    sign_params,
)


API_KEY = "K"
PLATFORM_DOMAIN = "platform-domain"


@pytest.fixture
def sign():
    return sign_params


@pytest.fixture
def config():
    return InstallConfig(
        api_key=API_KEY,
        api_secret=API_SECRET,
        scopes=("S",),
        redirect_uri="R",
        platform_domain=PLATFORM_DOMAIN,
        webhook_address="https://app.example/webhooks",
        webhook_topics=("app/uninstalled",),
    )


@pytest.fixture
def store():
    return MemoryShopRegistry()


@pytest.fixture
def registry(store):
    """The memory registry, wrapped so calls can be asserted on."""
    return MagicMock(wraps=store)


@pytest.fixture
def oauth_client():
    return FakeOAuthClient()


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def hooks():
    return RecordingHooks()


@pytest.fixture
def make_flow(config, registry, oauth_client, provisioner, hooks):
    def _make_flow(params=None, **kwargs):
        kwargs.setdefault("config", config)
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("oauth_client", oauth_client)
        kwargs.setdefault("webhook_provisioner", provisioner)
        kwargs.setdefault("hooks", hooks)
        form = kwargs.pop("form", {})
        return InstallationFlow(web_shim=FakeWebShim(params or {}, form=form), **kwargs)

    return _make_flow
