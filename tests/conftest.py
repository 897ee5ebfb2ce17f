import json
import sys
from pathlib import Path

import pytest

# Add project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from yt_chat_bootstrap import CHAT_PAGE_URLS, WATCH_URL  # noqa: E402

YTCFG = {
    'INNERTUBE_API_KEY': 'test-key',
    'INNERTUBE_CONTEXT': {'client': {'clientName': 'WEB', 'clientVersion': '2.20250101.00.00', 'hl': 'en'}},
    'VISITOR_DATA': 'visitor-1',
}


class FakeResponse:
    def __init__(self, status_code=200, text='', json_data=None):
        self.status_code = status_code
        self.text = text
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError('No JSON object could be decoded')
        return self._json


class FakeHttp:
    """Stands in for requests.Session: GET by URL, POST responses in order."""

    def __init__(self, pages=None, posts=None):
        self.pages = dict(pages or {})
        self.posts = list(posts or [])
        self.cookies = {}
        self.get_calls = []
        self.post_calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.get_calls.append({'url': url, 'params': params, 'headers': headers})
        return self.pages.get(url, FakeResponse(404, 'Not Found'))

    def post(self, url, json=None, headers=None, timeout=None):
        self.post_calls.append({'url': url, 'json': json, 'headers': headers})
        if not self.posts:
            return FakeResponse(500, 'unexpected request')
        response = self.posts.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def text_action(timestamp_usec=None, author='viewer', text='hello'):
    renderer = {'authorName': {'simpleText': author}, 'message': {'runs': [{'text': text}]}}
    if timestamp_usec is not None:
        renderer['timestampUsec'] = str(timestamp_usec)
    return {'addChatItemAction': {'item': {'liveChatTextMessageRenderer': renderer}}}


def replay_action(offset_ms, author='viewer', text='hello'):
    inner = text_action(1_700_000_000_000_000, author, text)
    replay = {'actions': [inner]}
    if offset_ms is not None:
        replay['videoOffsetTimeMsec'] = str(offset_ms)
    return {'replayChatItemAction': replay}


def timed(token, timeout_ms=None, key='timedContinuationData'):
    data = {'continuation': token}
    if timeout_ms is not None:
        data['timeoutMs'] = timeout_ms
    return {key: data}


def replay_continuation(token, tracking='CTP'):
    return {'liveChatReplayContinuationData': {'continuation': token, 'clickTrackingParams': tracking}}


def watch_html(live=True, replay=False, token='T0', ytcfg=YTCFG, title='Test stream'):
    entry = [{'reloadContinuationData': {'continuation': token, 'clickTrackingParams': 'CT0'}}]
    bar = {}
    if live:
        bar['liveChatRenderer'] = {'continuations': entry}
    if replay:
        bar['liveChatReplayRenderer'] = {'continuations': entry}
    initial = {'contents': {'twoColumnWatchNextResults': {'conversationBar': bar}}}
    player = {'videoDetails': {'title': title, 'author': 'Channel'}}
    parts = [
        '<html><head><script>var ytInitialPlayerResponse = ' + json.dumps(player) + ';</script>',
        '<script>var ytInitialData = ' + json.dumps(initial) + ';</script>',
    ]
    if ytcfg is not None:
        parts.append('<script>ytcfg.set(' + json.dumps(ytcfg) + ');</script>')
    parts.append('</head><body></body></html>')
    return ''.join(parts)


def chat_page_html(payload):
    data = {'continuationContents': {'liveChatContinuation': payload}}
    return '<html><script>window["ytInitialData"] = ' + json.dumps(data) + ';</script></html>'


def api_response(payload):
    return FakeResponse(200, json_data={'continuationContents': {'liveChatContinuation': payload}})


def make_http(mode='live', chat_payload=None, posts=None, **watch_kwargs):
    if mode == 'replay':
        watch_kwargs.setdefault('live', False)
        watch_kwargs.setdefault('replay', True)
    pages = {WATCH_URL: FakeResponse(200, watch_html(**watch_kwargs))}
    if chat_payload is not None:
        pages[CHAT_PAGE_URLS[mode]] = FakeResponse(200, chat_page_html(chat_payload))
    return FakeHttp(pages, posts)


class Recorder:
    """Observer that keeps every notification."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)

    def of_type(self, kind):
        return [m for m in self.messages if m['type'] == kind]

    @property
    def last(self):
        return self.messages[-1] if self.messages else None


@pytest.fixture
def recorder():
    return Recorder()
