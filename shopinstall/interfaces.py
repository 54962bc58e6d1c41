from zope.interface import Interface


class IWebShim(Interface):
    """Framework seam: read the request, build responses."""

    def get_param(name, default=None):
        """Return a single query or form parameter."""

    def get_signed_params():
        """Return the query parameters the platform signed, as a dict."""

    def get_header(name, default=None):
        pass

    def get_request_body():
        pass

    def get_request_json_body():
        pass

    def get_home_url():
        """Return the application's root url."""

    def redirect_302_url(url):
        pass

    def response_select_store(error=None):
        """Render the shop selection prompt, optionally with an error."""

    def response_200_string(content, content_type="text/html"):
        pass

    def response_bad_request(message):
        pass

    def response_401(message=None):
        pass

    def response_403(message=None):
        pass

    def response_502(message=None):
        pass


class IShopRegistry(Interface):
    def get_shop_by_url(url):
        """Return the Tenant stored for url or None."""

    def create_tenant(tenant):
        """Insert tenant, or update the existing row with the same url.

        Returns the stored Tenant.
        """

    def mark_provisioned(url, complete):
        pass

    def list_pending_provisioning():
        """Return tenants whose webhooks were never fully configured."""


class IOAuthClient(Interface):
    def exchange_code(shop_url, code):
        """Return a 2-tuple of (token_response, error)."""


class IWebhookProvisioner(Interface):
    def configure(tenant):
        """Register webhooks for tenant, return an error or None."""


class IInstallHooks(Interface):
    def before_render(flow, tenant):
        """Called for an authenticated request, returns the response."""

    def after_install(flow, tenant):
        """Called once after a tenant is installed, returns the response."""


class IInstallationFlowFactory(Interface):
    def __call__(request):
        """Build an InstallationFlow bound to request."""


class IWebhookHandlerRegistry(Interface):
    pass
