from dataclasses import dataclass
import html

from pyramid.httpexceptions import (
    HTTPBadGateway,
    HTTPBadRequest,
    HTTPForbidden,
    HTTPFound,
    HTTPUnauthorized,
)
from pyramid.renderers import render_to_response
from pyramid.request import Request
import zope.interface

from ..interfaces import IWebShim


@dataclass
class PyramidWebShimConfig:
    # Route the default before_render hook sends authenticated shops to.
    home_route: str = None
    # Renderer for the shop selection page, gets `error` and `shop`.
    select_store_renderer: str = None
    select_store_html_content_fmt: str = """<!DOCTYPE html>
<html>
  <head><title>Select your store</title></head>
  <body>
    %(error)s
    <form method="post">
      <label for="shop">Store URL</label>
      <input id="shop" name="shop" value="%(shop)s" placeholder="example.myshopify.com">
      <button type="submit">Install</button>
    </form>
  </body>
</html>"""


@zope.interface.implementer(IWebShim)
@dataclass
class PyramidWebShim:
    """Shim between the installation flow and pyramid for web tasks."""

    # Configuration params that describe how we should behave.
    config: PyramidWebShimConfig
    # The current request.
    request: Request

    def get_param(self, name, default=None):
        # The shop selection form posts, shopify always uses GET.
        return self.request.params.get(name, default)

    def get_signed_params(self):
        params = {}
        for name in self.request.GET.keys():
            if name.endswith("[]"):
                params[name] = self.request.GET.getall(name)
            else:
                params[name] = self.request.GET.get(name)
        return params

    def get_header(self, name, default=None):
        return self.request.headers.get(name, default)

    def get_request_body(self):
        return self.request.body

    def get_request_json_body(self):
        return self.request.json_body

    def get_home_url(self):
        if self.config.home_route:
            return self.request.route_url(self.config.home_route)
        return self.request.application_url + "/"

    def redirect_302_url(self, url, with_headers=True):
        """Return a redirect, keeping any cookies set on request.response."""
        kwargs = {}
        if with_headers:
            kwargs["headers"] = [
                (name, value)
                for name, value in self.request.response.headerlist
                if name.lower() == "set-cookie"
            ]
        return HTTPFound(url, **kwargs)

    def response_select_store(self, error=None):
        shop = self.get_param("shop", "") or ""
        if self.config.select_store_renderer:
            return render_to_response(
                self.config.select_store_renderer,
                {"error": error, "shop": shop},
                request=self.request,
            )
        content = self.config.select_store_html_content_fmt % {
            "error": f'<p class="error">{html.escape(error)}</p>' if error else "",
            "shop": html.escape(shop),
        }
        return self.response_200_string(content)

    def response_200_string(self, content, content_type="text/html"):
        response = self.request.response
        response.content_type = content_type
        response.text = content
        return response

    def _error_response(self, response_cls, message):
        if not message:
            return response_cls()
        return response_cls(
            content_type="text/plain",
            charset="UTF-8",
            body=message.encode("utf-8"),
        )

    def response_bad_request(self, message):
        return self._error_response(HTTPBadRequest, message)

    def response_401(self, message=None):
        return self._error_response(HTTPUnauthorized, message)

    def response_403(self, message=None):
        return self._error_response(HTTPForbidden, message)

    def response_502(self, message=None):
        return self._error_response(HTTPBadGateway, message)
