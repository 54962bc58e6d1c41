"""
Verify the signatures the platform attaches to requests.

Query strings (oauth redirects, app loads) carry a hex HMAC-SHA256 in the
`hmac` parameter.  Webhooks carry a base64 HMAC-SHA256 of the raw body in the
X-Shopify-Hmac-SHA256 header.  Nothing in here raises on bad input, a
missing or malformed signature just does not verify.
"""
import base64
import hashlib
import hmac
import time
from urllib.parse import urlencode


SIGNATURE_PARAM = "hmac"


# Never part of the signed message.
EXCLUDED_PARAMS = frozenset([SIGNATURE_PARAM, "signature"])


DAY_IN_SECONDS = 24 * 60 * 60


def encode_params_for_hmac(param_items):
    """
    Encode params with special shopify rules.

    RULE #1: ("k[]", ["1", "2"]) is converted to ("k", '["1", "2"]')
    RULE #2: safe chars are ":/" for whatever reason.
    """
    params_to_encode = []
    for (k, v) in sorted(param_items):
        if k in EXCLUDED_PARAMS:
            continue
        elif k.endswith("[]"):
            k = k[:-2]
            if isinstance(v, str):
                v = [v]
            v = "[{}]".format(", ".join(['"{}"'.format(v_item) for v_item in v]))
        params_to_encode.append((k, v))

    return urlencode(params_to_encode, safe=":/")


def calculate_hmac(secret, message):
    if isinstance(message, str):
        message = message.encode("utf8")
    return hmac.new(secret.encode("utf8"), message, hashlib.sha256).hexdigest()


def verify(message, provided_signature, secret):
    """True only when provided_signature is the hex HMAC of message."""
    if not provided_signature or not isinstance(provided_signature, str):
        return False
    if not isinstance(secret, str) or not secret:
        return False
    if not isinstance(message, (str, bytes)):
        return False
    try:
        provided = provided_signature.strip().lower().encode("ascii")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(calculate_hmac(secret, message).encode("ascii"), provided)


def verify_params(params, secret):
    """Verify a dict of query params that includes its own `hmac` param."""
    if not isinstance(params, dict):
        return False
    provided_signature = params.get(SIGNATURE_PARAM)
    try:
        message = encode_params_for_hmac(params.items())
    except TypeError:
        # Mixed key types or values urlencode can't handle.
        return False
    return verify(message, provided_signature, secret)


def compute_body_hmac(secret, body):
    digest = hmac.new(secret.encode("utf-8"), body, digestmod=hashlib.sha256).digest()
    return base64.b64encode(digest)


def verify_body(body, provided_signature, secret):
    """Verify a base64 HMAC of a raw request body, used for webhooks."""
    if not provided_signature or not isinstance(secret, str) or not secret:
        return False
    if not isinstance(body, bytes):
        return False
    if isinstance(provided_signature, str):
        try:
            provided_signature = provided_signature.encode("ascii")
        except UnicodeEncodeError:
            return False
    elif not isinstance(provided_signature, bytes):
        return False
    return hmac.compare_digest(compute_body_hmac(secret, body), provided_signature)


def is_fresh(timestamp, allow_seconds=DAY_IN_SECONDS, now=None):
    """Check a request timestamp is recent enough to not be a replay."""
    try:
        timestamp = int(timestamp)
    except (TypeError, ValueError):
        return False
    now = time.time() if now is None else now
    return now - allow_seconds <= timestamp <= now + allow_seconds
