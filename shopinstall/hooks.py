import zope.interface

from .interfaces import IInstallHooks


@zope.interface.implementer(IInstallHooks)
class DefaultInstallHooks:
    """
    What happens when nobody overrides the hooks.

    Subclass and override either method to gate the app, ie. check a
    shop's subscription in before_render.  Whatever the method returns is
    the response, including any rejection.
    """

    def before_render(self, flow, tenant):
        return flow.web_shim.redirect_302_url(flow.web_shim.get_home_url())

    def after_install(self, flow, tenant):
        # Land inside the shop admin so the app loads embedded.
        return flow.web_shim.redirect_302_url(
            f"https://{tenant.url}/admin/apps/{flow.config.api_key}"
        )
