"""
Fetch the next page of chat actions from the innertube live_chat endpoints.
"""

import copy
import logging

import requests

from yt_chat_auth import build_api_headers, client_info
from yt_chat_errors import TransportError, raise_for_status
from yt_chat_models import LIVE, REPLAY

logger = logging.getLogger(__name__)

API_BASE = 'https://www.youtube.com/youtubei/v1/live_chat'
ENDPOINTS = {
    LIVE: 'get_live_chat',
    REPLAY: 'get_live_chat_replay',
}
REQUEST_TIMEOUT = 30
# Lookback applied to the player offset hint sent upstream.
PLAYER_OFFSET_LOOKBACK_MS = 5000

USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/131.0.0.0 Safari/537.36'


def make_http_session(cookies=None):
    """requests.Session with browser-like headers and optional cookies."""
    session = requests.Session()
    session.headers.update({
        'User-Agent': USER_AGENT,
        'Accept-Language': 'en-US,en;q=0.9',
    })
    if cookies is not None:
        session.cookies.update(cookies)
    return session


def api_url(mode, api_key):
    endpoint = ENDPOINTS[REPLAY] if mode == REPLAY else ENDPOINTS[LIVE]
    return f'{API_BASE}/{endpoint}?key={api_key}'


def prepare_context(credentials, click_tracking_params=None):
    """Copy of the client context with name/version filled in and click tracking attached."""
    context = copy.deepcopy(credentials.client_context) if credentials.client_context else {}
    client = context.setdefault('client', {})
    name, version = client_info(credentials)
    client['clientName'] = name
    client['clientVersion'] = version
    if click_tracking_params:
        context['clickTracking'] = {'clickTrackingParams': click_tracking_params}
    return context


def player_offset_hint(offset_ms):
    return str(max(int(offset_ms) - PLAYER_OFFSET_LOOKBACK_MS, 0))


def build_request_body(credentials, continuation, click_tracking_params=None, offset_ms=None):
    body = {
        'context': prepare_context(credentials, click_tracking_params),
        'continuation': continuation,
    }
    if offset_ms is not None:
        body['currentPlayerState'] = {'playerOffsetMs': player_offset_hint(offset_ms)}
    return body


def fetch_continuation(http, mode, credentials, continuation, click_tracking_params=None,
                       offset_ms=None, timeout=REQUEST_TIMEOUT):
    """POST one continuation request and return its liveChatContinuation payload.

    Raises TransportError on a failed request or an empty continuation body.
    """
    url = api_url(mode, credentials.api_key)
    body = build_request_body(credentials, continuation, click_tracking_params, offset_ms)
    headers = build_api_headers(credentials)

    try:
        r = http.post(url, json=body, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f'YouTube API request failed: {e}') from e

    raise_for_status(r, 'YouTube API request failed')

    try:
        data = r.json()
    except ValueError as e:
        raise TransportError(f'YouTube API returned a non-JSON body: {e}', r.status_code) from e

    payload = None
    if isinstance(data, dict):
        payload = (data.get('continuationContents') or {}).get('liveChatContinuation')
    if not payload:
        raise TransportError('YouTube returned an empty continuation response.', r.status_code)

    logger.debug(f'Fetched {len(payload.get("actions") or [])} actions ({mode})')
    return payload
