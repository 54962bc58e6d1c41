class ShopInstallError(Exception):
    """Base for every failure the installation flow knows how to handle."""


class InvalidShopUrl(ShopInstallError):
    """The shop parameter is missing or is not a shop host, user can fix it."""

    def __init__(self, shop_url):
        self.shop_url = shop_url
        super().__init__(f"Invalid shop URL: {shop_url!r}")


class SignatureInvalid(ShopInstallError):
    """HMAC did not verify, never retried."""

    def __init__(self, shop_url):
        self.shop_url = shop_url
        super().__init__(f"Request signature is not valid for shop {shop_url}")


class TokenExchangeFailed(ShopInstallError):
    """The authorization code could not be traded for an access token."""

    def __init__(self, shop_url, reason, status_code=None):
        self.shop_url = shop_url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Token exchange with {shop_url} failed: {reason}")


class WebhookProvisioningFailed(ShopInstallError):
    def __init__(self, shop_url, failed_topics, reasons=None):
        self.shop_url = shop_url
        self.failed_topics = list(failed_topics)
        self.reasons = reasons or {}
        super().__init__(
            f"Webhook provisioning for {shop_url} failed for topics: "
            f"{', '.join(self.failed_topics)}"
        )
