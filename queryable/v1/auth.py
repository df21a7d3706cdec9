import base64
import binascii
import hmac
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response

from queryable.v1.models import StudioOptions

logger = logging.getLogger(__name__)

BASIC_CHALLENGE = {"WWW-Authenticate": 'Basic realm="Secure Area"'}


def _decode_basic(header: str) -> Optional[str]:
    encoded = header[len("Basic "):].strip()
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


def require_auth(request: Request, options: Optional[StudioOptions]) -> Optional[Response]:
    """Return a 401 response when the request fails the policy, else None."""
    if options is not None and options.dangerously_disable_auth:
        return None

    if options is None or options.basic_auth is None:
        logger.info("Rejecting %s %s: studio has no credentials configured", request.method, request.url.path)
        return PlainTextResponse("Authentication required - no credentials configured", status_code=401)

    header = request.headers.get("Authorization")
    if not header or not header.startswith("Basic "):
        logger.info("Rejecting %s %s: missing basic credentials", request.method, request.url.path)
        return PlainTextResponse("Authentication required", status_code=401, headers=BASIC_CHALLENGE)

    decoded = _decode_basic(header)
    username, _, password = (decoded or "").partition(":")
    expected = options.basic_auth
    user_ok = hmac.compare_digest(username.encode(), expected.username.encode())
    password_ok = hmac.compare_digest(password.encode(), expected.password.encode())
    if decoded is None or not (user_ok and password_ok):
        logger.info("Rejecting %s %s: invalid credentials", request.method, request.url.path)
        return PlainTextResponse("Invalid credentials", status_code=401, headers=BASIC_CHALLENGE)

    return None
