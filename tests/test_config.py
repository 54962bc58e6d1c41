from dataclasses import FrozenInstanceError

import pytest

from shopinstall import InstallConfig


def test_config_is_immutable(config):
    with pytest.raises(FrozenInstanceError):
        config.api_key = "other"


def test_scopes_become_a_tuple():
    config = InstallConfig(
        api_key="K", api_secret="s", scopes=["read_orders", "write_orders"], redirect_uri="R"
    )
    assert config.scopes == ("read_orders", "write_orders")


@pytest.mark.parametrize("missing", ["api_key", "api_secret", "redirect_uri"])
def test_required_values(missing):
    values = dict(api_key="K", api_secret="s", scopes="read_orders", redirect_uri="R")
    values[missing] = ""
    with pytest.raises(ValueError, match=missing):
        InstallConfig(**values)


def test_topics_need_an_address():
    with pytest.raises(ValueError, match="webhook_address"):
        InstallConfig(
            api_key="K",
            api_secret="s",
            scopes="read_orders",
            redirect_uri="R",
            webhook_topics="app/uninstalled",
        )


def test_from_settings():
    config = InstallConfig.from_settings(
        {
            "shopinstall.api_key": "K",
            "shopinstall.api_secret": "s",
            "shopinstall.scopes": "read_orders, write_products",
            "shopinstall.redirect_uri": "https://app.example/auth/install",
            "shopinstall.hmac_max_age_seconds": "3600",
            "shopinstall.reinstall_on_scope_change": "true",
            "shopinstall.webhook_address": "https://app.example/webhooks",
            "shopinstall.webhook_topics": "app/uninstalled\nshop/update",
        }
    )
    assert config.scopes == ("read_orders", "write_products")
    assert config.platform_domain == "myshopify.com"
    assert config.api_version == "2024-01"
    assert config.http_timeout_seconds == 10.0
    assert config.hmac_max_age_seconds == 3600
    assert config.reinstall_on_scope_change is True
    assert config.webhook_topics == ("app/uninstalled", "shop/update")


def test_from_settings_list_forms():
    config = InstallConfig.from_settings(
        {
            "shopinstall.api_key": "K",
            "shopinstall.api_secret": "s",
            "shopinstall.scopes": "read_orders,write_products\n  read_customers",
            "shopinstall.redirect_uri": "R",
            "shopinstall.webhook_address": "https://app.example/webhooks",
            "shopinstall.webhook_topics": ["app/uninstalled", "shop/update orders/create"],
        }
    )
    assert config.scopes == ("read_orders", "write_products", "read_customers")
    assert config.webhook_topics == ("app/uninstalled", "shop/update", "orders/create")


def test_from_settings_without_topics():
    config = InstallConfig.from_settings(
        {"shopinstall.api_key": "K", "shopinstall.api_secret": "s", "shopinstall.redirect_uri": "R"}
    )
    assert config.scopes == ()
    assert config.webhook_topics == ()
