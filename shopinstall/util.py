import re


DEFAULT_PLATFORM_DOMAIN = "myshopify.com"


def get_shop_host_re(platform_domain=DEFAULT_PLATFORM_DOMAIN):
    # One host label in front of the platform domain, nothing else.
    return re.compile(
        r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\." + re.escape(platform_domain) + "$",
        re.IGNORECASE,
    )


def normalize_shop_host(shop_host, platform_domain=DEFAULT_PLATFORM_DOMAIN):
    """
    Return the lower-cased shop host or None if it is not a shop host.

    Surrounding whitespace is ignored.
    """
    if not isinstance(shop_host, str):
        return None
    shop_host = shop_host.strip()
    if not get_shop_host_re(platform_domain).match(shop_host):
        return None
    return shop_host.lower()
