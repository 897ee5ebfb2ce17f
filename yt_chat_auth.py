"""
Request headers for the innertube API.

When a SAPISID session secret is supplied the requests are signed with a
SAPISIDHASH authorization header; without one they go out anonymously,
which is enough for public chats.
"""

import hashlib
import time

YT_ORIGIN = 'https://www.youtube.com'
AUTH_SCHEME = 'SAPISIDHASH'

CLIENT_NAME = 'WEB'
CLIENT_VERSION = '2.20250925.01.00'
CLIENT_NAME_INT = 1

SECRET_COOKIE_NAMES = ('SAPISID', '__Secure-3PAPISID', '__Secure-1PAPISID')


def generate_auth_header(secret, origin=YT_ORIGIN, now=None):
    """SAPISIDHASH header value for secret, or None when there is no secret."""
    if not secret:
        return None
    token = int(now if now is not None else time.time())
    signature = hashlib.sha1(f'{token} {secret} {origin}'.encode('utf-8')).hexdigest()
    return f'{AUTH_SCHEME} {token}_{signature}'


def find_session_secret(cookies):
    """First SAPISID-like cookie value from a dict or a cookie jar."""
    if cookies is None:
        return None
    if hasattr(cookies, 'get_dict'):
        cookies = cookies.get_dict()
    elif not isinstance(cookies, dict):
        cookies = {c.name: c.value for c in cookies}
    for name in SECRET_COOKIE_NAMES:
        value = cookies.get(name)
        if value:
            return value
    return None


def client_info(credentials):
    """(client name, client version) from the credentials' context, with fallbacks."""
    client = {}
    if credentials is not None and credentials.client_context:
        client = credentials.client_context.get('client') or {}
    return client.get('clientName') or CLIENT_NAME, client.get('clientVersion') or CLIENT_VERSION


def build_api_headers(credentials, origin=YT_ORIGIN, json_body=True):
    """Client identity headers plus authorization; build a fresh set per request."""
    _, version = client_info(credentials)
    headers = {
        'X-YouTube-Client-Name': str(CLIENT_NAME_INT),
        'X-YouTube-Client-Version': version,
        'Origin': origin,
    }
    if json_body:
        headers['Content-Type'] = 'application/json'

    if credentials is None:
        return headers

    if credentials.visitor_id:
        headers['X-Goog-Visitor-Id'] = credentials.visitor_id

    auth = generate_auth_header(credentials.session_secret, origin)
    if auth:
        headers['Authorization'] = auth
        headers['X-Origin'] = origin

    return headers
