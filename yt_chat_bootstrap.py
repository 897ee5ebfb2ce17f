"""
Bootstrap a chat download from the watch page and the popout chat page.

The watch page tells us whether the video has a live chat or a chat
replay, carries the innertube API key and client context (ytcfg), and the
first continuation token. The popout chat page then yields the first
continuation payload, or for replays the continuation of the chronological
"Live chat replay" view.
"""

import logging

import requests

from yt_chat_auth import build_api_headers, find_session_secret
from yt_chat_errors import ConfigurationError, TransportError, raise_for_status
from yt_chat_json import extract_initial_data, extract_player_response, extract_ytcfg
from yt_chat_models import LIVE, MODES, REPLAY, BootstrapResult, Credentials

logger = logging.getLogger(__name__)

WATCH_URL = 'https://www.youtube.com/watch'
CHAT_PAGE_URLS = {
    LIVE: 'https://www.youtube.com/live_chat',
    REPLAY: 'https://www.youtube.com/live_chat_replay',
}
PAGE_TIMEOUT = 30

INITIAL_TOKEN_KEYS = (
    'reloadContinuationData',
    'invalidationContinuationData',
    'timedContinuationData',
    'liveChatReplayContinuationData',
)


def pick_first(obj, keys):
    """Value of the first key present in obj, or None."""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def dig(obj, *path):
    for key in path:
        if isinstance(obj, dict):
            obj = obj.get(key)
        elif isinstance(obj, list) and isinstance(key, int) and -len(obj) <= key < len(obj):
            obj = obj[key]
        else:
            return None
    return obj


def tracking_params(data):
    if not isinstance(data, dict):
        return None
    return data.get('clickTrackingParams') or data.get('trackingParams')


def inspect_availability(initial_data):
    """Which chat flavours the watch page exposes, and the first continuation."""
    conversation_bar = dig(initial_data, 'contents', 'twoColumnWatchNextResults', 'conversationBar') or {}
    live_renderer = conversation_bar.get('liveChatRenderer')
    replay_renderer = conversation_bar.get('liveChatReplayRenderer')

    initial_entry = None
    if live_renderer and live_renderer.get('continuations'):
        initial_entry = live_renderer['continuations'][0]
    elif replay_renderer and replay_renderer.get('continuations'):
        initial_entry = replay_renderer['continuations'][0]

    return {
        'has_chat': bool(live_renderer or replay_renderer),
        'is_live': bool(live_renderer),
        'is_replay': bool(replay_renderer),
        'initial_continuation': pick_first(initial_entry, INITIAL_TOKEN_KEYS),
    }


def credentials_from_ytcfg(ytcfg, session_secret=None):
    if not ytcfg:
        raise ConfigurationError('Failed to read YouTube configuration (ytcfg).')

    api_key = ytcfg.get('INNERTUBE_API_KEY')
    context = ytcfg.get('INNERTUBE_CONTEXT')
    if not api_key or not context:
        raise ConfigurationError('YouTube API credentials are unavailable on this page.')

    visitor_id = ytcfg.get('VISITOR_DATA') or dig(context, 'client', 'visitorData')
    return Credentials(api_key=api_key, client_context=context,
                       visitor_id=visitor_id, session_secret=session_secret)


def _get_page(http, url, params, headers=None, what='page'):
    try:
        r = http.get(url, params=params, headers=headers, timeout=PAGE_TIMEOUT)
    except requests.RequestException as e:
        raise TransportError(f'Unable to retrieve {what}: {e}') from e
    raise_for_status(r, f'Unable to retrieve {what}')
    return r.text


def fetch_watch_page(http, video_id):
    return _get_page(http, WATCH_URL, {'v': video_id}, what='video page')


def inspect_video(http, video_id):
    """Title, author and chat availability of a video."""
    html = fetch_watch_page(http, video_id)
    availability = inspect_availability(extract_initial_data(html) or {})
    details = dig(extract_player_response(html), 'videoDetails') or {}
    return {
        'video_id': video_id,
        'title': details.get('title') or 'YouTube Live Chat',
        'author': details.get('author') or '',
        'has_chat': availability['has_chat'],
        'is_live': availability['is_live'],
        'is_replay': availability['is_replay'],
    }


def _check_mode(availability, mode):
    if mode not in MODES:
        raise ConfigurationError(f'Unknown chat mode: {mode!r}')
    if not availability['has_chat']:
        raise ConfigurationError('This video does not expose a live chat.')
    if mode == REPLAY and not availability['is_replay']:
        raise ConfigurationError('Only the live chat stream is available at the moment.')
    if mode == LIVE and not availability['is_live']:
        raise ConfigurationError('Only the replay chat is available for this video.')


def _replay_view_switch(payload):
    """Continuation data of the second sort/filter menu entry, if there is one."""
    items = dig(payload, 'header', 'liveChatHeaderRenderer', 'viewSelector',
                'sortFilterSubMenuRenderer', 'subMenuItems')
    if not items or len(items) < 2:
        return None
    refresh = dig(items[1], 'continuation', 'reloadContinuationData')
    if refresh and refresh.get('continuation'):
        return refresh
    return None


def bootstrap(http, video_id, mode, session_secret=None, credentials=None):
    """Resolve credentials and the first continuation; raises ConfigurationError."""
    html = fetch_watch_page(http, video_id)
    availability = inspect_availability(extract_initial_data(html) or {})
    _check_mode(availability, mode)

    if credentials is None:
        if session_secret is None:
            session_secret = find_session_secret(getattr(http, 'cookies', None))
        credentials = credentials_from_ytcfg(extract_ytcfg(html), session_secret)

    initial = availability['initial_continuation']
    if not initial or not initial.get('continuation'):
        raise ConfigurationError('Unable to locate the first continuation token.')

    token = initial['continuation']
    click_tracking = tracking_params(initial)

    headers = build_api_headers(credentials, json_body=False)
    chat_html = _get_page(http, CHAT_PAGE_URLS[mode], {'continuation': token},
                          headers=headers, what='live chat page')
    payload = dig(extract_initial_data(chat_html), 'continuationContents', 'liveChatContinuation')
    if not payload:
        raise ConfigurationError('Failed to parse the live chat page.')

    if mode == REPLAY:
        refresh = _replay_view_switch(payload)
        if refresh:
            logger.debug(f'{video_id}: switching to the chronological replay view')
            return BootstrapResult(
                credentials=credentials,
                continuation_token=refresh['continuation'],
                click_tracking_params=tracking_params(refresh) or click_tracking,
                initial_payload=None,
                offset_ms=0,
            )

    return BootstrapResult(
        credentials=credentials,
        continuation_token=token,
        click_tracking_params=click_tracking,
        initial_payload=payload,
        offset_ms=0,
    )
