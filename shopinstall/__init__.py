"""
@NOTE: Resolution for shop url overloading.

shop_url: Whatever came in the `shop` param, untrusted.
shop_host: A shop_url that passed validation, "{label}.{platform_domain}",
    lower-cased.  This is what tenants are keyed on and what we talk to.

@NOTE: Install vs authenticate.

A request to the auth endpoint for a shop we don't know (or know but hold no
token for) is sent to shopify to authorize the app, nothing is written.  The
shop comes back to the install callback with a grant code which we trade for
an access token, then we create the tenant and register webhooks.  A request
for a shop we already know must be signed or we refuse to serve it.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
import time
from urllib.parse import urlencode

from .errors import InvalidShopUrl, SignatureInvalid, WebhookProvisioningFailed
from .hooks import DefaultInstallHooks
from .interfaces import (
    IWebShim,
    IShopRegistry,
    IOAuthClient,
    IWebhookProvisioner,
    IInstallHooks,
)
from .scopes import parse_scopes, scopes_have_changed
from .signature import is_fresh, verify_params
from .util import DEFAULT_PLATFORM_DOMAIN, normalize_shop_host

logger = logging.getLogger(__name__)


def _as_tuple(value):
    """Accept a list or a string, items may also be comma separated."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split()
    return tuple(
        part.strip() for item in value if item for part in item.split(",") if part.strip()
    )


@dataclass(frozen=True)
class InstallConfig:
    """
    Process wide configuration, built once at startup and never changed.
    """

    # The app's client id.
    api_key: str
    # Shared secret, used for the token exchange and to verify signatures.
    api_secret: str
    # The access scopes the app needs, such as read_orders, write_orders, etc.
    scopes: tuple
    # Where shopify sends the grant code, our install callback.
    redirect_uri: str
    platform_domain: str = DEFAULT_PLATFORM_DOMAIN
    api_version: str = "2024-01"
    http_timeout_seconds: float = 10
    # Reject signed requests older than this, None disables the check.
    hmac_max_age_seconds: int = None
    # Send known shops back to authorize when our scopes grew since install.
    reinstall_on_scope_change: bool = False
    # Webhooks registered for each new tenant.
    webhook_address: str = None
    webhook_topics: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "scopes", _as_tuple(self.scopes))
        object.__setattr__(self, "webhook_topics", _as_tuple(self.webhook_topics))
        for name in ("api_key", "api_secret", "redirect_uri"):
            if not getattr(self, name):
                raise ValueError(f"InstallConfig.{name} is required.")
        if self.webhook_topics and not self.webhook_address:
            raise ValueError("InstallConfig.webhook_address is required for topics.")

    @classmethod
    def from_settings(cls, settings, prefix="shopinstall."):
        """Build from a flat settings dict, ie. pyramid's ini settings."""
        from pyramid.settings import asbool, aslist

        def get(name, default=None):
            return settings.get(prefix + name, default)

        max_age = get("hmac_max_age_seconds")
        return cls(
            api_key=get("api_key"),
            api_secret=get("api_secret"),
            scopes=aslist(get("scopes", ""), flatten=True),
            redirect_uri=get("redirect_uri"),
            platform_domain=get("platform_domain", DEFAULT_PLATFORM_DOMAIN),
            api_version=get("api_version", cls.api_version),
            http_timeout_seconds=float(
                get("http_timeout_seconds", cls.http_timeout_seconds)
            ),
            hmac_max_age_seconds=int(max_age) if max_age else None,
            reinstall_on_scope_change=asbool(get("reinstall_on_scope_change", False)),
            webhook_address=get("webhook_address"),
            webhook_topics=aslist(get("webhook_topics", ""), flatten=True),
        )


@dataclass
class Tenant:
    """
    One shop the app is installed in.

    Without an access_token the tenant is not installed and must not be
    served.
    """

    # The shop_host, unique across tenants.
    url: str
    access_token: str = None
    # The granted scopes.
    scopes: set = field(default_factory=set)
    created_at: datetime = None
    # False until webhooks were registered for this shop.
    provisioning_complete: bool = False
    # The rest of the token response, ie. associated_user for online tokens.
    extra: dict = field(default_factory=dict)

    @property
    def is_installed(self):
        return bool(self.access_token)


@dataclass(frozen=True)
class InstallRequest:
    """The parts of one inbound request the flow looks at."""

    shop_url: str
    # Computed once per request.
    signature_valid: bool
    # Only on the install callback.
    authorization_code: str = None
    params: dict = field(default_factory=dict)


class InstallState(enum.Enum):
    AWAITING_SHOP_SELECTION = "awaiting_shop_selection"
    PENDING_INSTALL = "pending_install"
    INSTALL_CALLBACK = "install_callback"
    PROVISIONING = "provisioning"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass
class InstallationFlow:
    """
    Install the app into shops and authenticate requests from installed shops.

    One flow is made per request, the adapters are shared.
    """

    config: InstallConfig
    web_shim: IWebShim
    registry: IShopRegistry
    oauth_client: IOAuthClient
    webhook_provisioner: IWebhookProvisioner
    hooks: IInstallHooks = field(default_factory=DefaultInstallHooks)
    utcnow: callable = field(default=lambda: datetime.now(timezone.utc))
    clock: callable = field(default=time.time)
    state: InstallState = InstallState.AWAITING_SHOP_SELECTION

    forbidden_message_fmt: str = (
        "A store was found, but no valid HMAC parameter was provided. "
        "Please load this app within the {shop_host} admin panel."
    )

    def transition(self, state):
        logger.debug(f"Install flow {self.state.value} -> {state.value}")
        self.state = state

    def read_request(self):
        params = self.web_shim.get_signed_params()
        signature_valid = verify_params(params, self.config.api_secret)
        if signature_valid and self.config.hmac_max_age_seconds is not None:
            if not is_fresh(
                params.get("timestamp"),
                allow_seconds=self.config.hmac_max_age_seconds,
                now=self.clock(),
            ):
                logger.warning("Signed request is too old, likely a replay.")
                signature_valid = False
        if signature_valid:
            # What we act on must be what was signed.
            shop_url, code = params.get("shop"), params.get("code")
        else:
            shop_url, code = self.web_shim.get_param("shop"), self.web_shim.get_param("code")
        return InstallRequest(
            shop_url=shop_url,
            signature_valid=signature_valid,
            authorization_code=code,
            params=params,
        )

    def auth(self):
        """
        Entry point for the app, either start an install or let the shop in.
        """
        install_request = self.read_request()
        if not install_request.shop_url:
            self.transition(InstallState.REJECTED)
            return self.web_shim.response_select_store()

        shop_host = normalize_shop_host(
            install_request.shop_url, self.config.platform_domain
        )
        if not shop_host:
            logger.info(f"{InvalidShopUrl(install_request.shop_url)}")
            self.transition(InstallState.REJECTED)
            return self.web_shim.response_select_store(error="Invalid shop URL")

        tenant = self.registry.get_shop_by_url(shop_host)
        if not tenant or not tenant.is_installed:
            logger.info(f"No installed tenant for {shop_host}, redirect to authorize.")
            return self.redirect_to_authorize(shop_host)

        if not install_request.signature_valid:
            logger.warning(f"{SignatureInvalid(shop_host)}")
            self.transition(InstallState.REJECTED)
            return self.web_shim.response_403(
                self.forbidden_message_fmt.format(shop_host=shop_host)
            )

        if self.config.reinstall_on_scope_change and scopes_have_changed(
            granted_scopes=tenant.scopes, expected_scopes=self.config.scopes
        ):
            logger.info(f"Scopes have changed for {shop_host}, redirect to re-install.")
            return self.redirect_to_authorize(shop_host)

        self.transition(InstallState.AUTHENTICATED)
        return self.hooks.before_render(self, tenant)

    def redirect_to_authorize(self, shop_host):
        """Send the shop to shopify to grant our scopes, nothing is stored."""
        self.transition(InstallState.PENDING_INSTALL)
        query_string = urlencode(
            [
                ("client_id", self.config.api_key),
                ("scope", ",".join(self.config.scopes)),
                ("redirect_uri", self.config.redirect_uri),
            ],
            safe=",",
        )
        return self.web_shim.redirect_302_url(
            f"https://{shop_host}/admin/oauth/authorize?{query_string}"
        )

    def install(self):
        """
        Install callback: trade the grant code for a token, store the tenant
        then register webhooks.
        """
        install_request = self.read_request()
        self.transition(InstallState.INSTALL_CALLBACK)

        # Nothing goes over the network for an unsigned callback.
        if not install_request.signature_valid:
            logger.warning(
                f"Rejected install callback: {SignatureInvalid(install_request.shop_url)}"
            )
            self.transition(InstallState.REJECTED)
            return self.web_shim.response_403("HMAC signature does not match.")

        shop_host = normalize_shop_host(
            install_request.shop_url, self.config.platform_domain
        )
        if not shop_host or not install_request.authorization_code:
            self.transition(InstallState.REJECTED)
            return self.web_shim.response_bad_request(
                "Install callback requires a valid shop and code."
            )

        token_response, error = self.oauth_client.exchange_code(
            shop_host, install_request.authorization_code
        )
        if error:
            logger.error(f"Install aborted, no tenant created: {error}")
            self.transition(InstallState.REJECTED)
            return self.web_shim.response_502(
                f"Could not complete the installation for {shop_host}, please try again."
            )

        self.transition(InstallState.PROVISIONING)
        tenant = self.registry.create_tenant(
            self.build_tenant(shop_host, token_response)
        )
        tenant = self.provision(tenant)
        logger.info(f"Installed app for {shop_host}.")

        self.transition(InstallState.AUTHENTICATED)
        return self.hooks.after_install(self, tenant)

    def build_tenant(self, shop_host, token_response):
        return Tenant(
            url=shop_host,
            access_token=token_response.access_token,
            scopes=parse_scopes(token_response.scope),
            created_at=self.utcnow(),
            extra=token_response.remaining_params(),
        )

    def provision(self, tenant):
        """
        Register webhooks for a stored tenant.

        A failure does not undo the install, the tenant is kept with
        provisioning_complete False so that it can be retried later.
        """
        try:
            error = self.webhook_provisioner.configure(tenant)
        except Exception as e:
            # The tenant is already stored, the install has to finish.
            logger.exception(f"Webhook provisioner raised for {tenant.url}")
            error = WebhookProvisioningFailed(
                tenant.url,
                self.config.webhook_topics,
                {topic: f"{e}" for topic in self.config.webhook_topics},
            )
        if error:
            logger.error(f"{error}; {tenant.url} is marked for provisioning retry.")
        return self.registry.mark_provisioned(tenant.url, error is None)
