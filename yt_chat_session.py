"""
Drive a chat download: bootstrap once, then page through continuations
until the chat ends, the caller stops it, or something fails.

Each ChatSession runs on its own thread and owns its Session record.
ChatDownloadManager keeps the per-video registry that start/stop go through.
Observers receive plain dict notifications:

  progress  {video_id, mode, total_events, offset_ms}
  complete  {video_id, mode, file_name, transcript, total_events, status}
  stopped   {video_id, mode}
  error     {video_id, mode, error, error_type}
"""

import json
import logging
import math
import re
import threading

from yt_chat_bootstrap import bootstrap
from yt_chat_errors import LiveChatError
from yt_chat_fetch import fetch_continuation, make_http_session
from yt_chat_models import MODES, Session
from yt_chat_parser import UNRECOGNIZED, normalize

logger = logging.getLogger(__name__)

BOOTSTRAPPING = 'bootstrapping'
POLLING = 'polling'
COMPLETED = 'completed'
UNRECOGNIZED_END = 'unrecognized_end'
STOPPED = 'stopped'
FAILED = 'failed'

DEFAULT_FILE_NAME = 'youtube-livechat.json'


def transcript_file_name(video_id):
    return f'{video_id}.live_chat.json'


def sanitize_filename(name):
    name = re.sub(r'[<>:"/\\|?*]+', '_', name or '')
    name = re.sub(r'\s+', ' ', name).strip()
    return name or DEFAULT_FILE_NAME


def event_record(event):
    """Replay-compatible transcript record for one event."""
    if not event.is_live and 'replayChatItemAction' in event.raw_action:
        return event.raw_action
    return {
        'replayChatItemAction': {'actions': [event.raw_action]},
        'videoOffsetTimeMsec': str(max(event.offset_ms, 0)),
        'isLive': event.is_live,
    }


def format_transcript(events):
    """Newline-delimited JSON, one record per event, in arrival order."""
    return ''.join(json.dumps(event_record(e), ensure_ascii=False) + '\n' for e in events)


def sleep_with_stop(cancel_event, delay_ms):
    """Wait delay_ms or until cancel_event is set; True if cancelled."""
    try:
        seconds = float(delay_ms) / 1000
    except (TypeError, ValueError):
        return cancel_event.is_set()
    if not math.isfinite(seconds) or seconds <= 0:
        return cancel_event.is_set()
    return cancel_event.wait(seconds)


class ChatSession:
    """One chat download, from bootstrap to a terminal state."""

    def __init__(self, http, video_id, mode, observer=None, session_secret=None,
                 credentials=None, started_at_ms=None, keep_partial=False):
        self.http = http
        self.observer = observer
        self.session_secret = session_secret
        self.credentials = credentials
        self.keep_partial = keep_partial
        self.session = Session(mode=mode, video_id=video_id)
        if started_at_ms is not None:
            self.session.started_at_ms = started_at_ms
        self._cancel = threading.Event()
        self._pending = None

    @property
    def video_id(self):
        return self.session.video_id

    @property
    def status(self):
        return self.session.status

    def request_stop(self):
        """Ask the loop to stop; False if a stop was already requested."""
        if self._cancel.is_set():
            return False
        self.session.cancel_requested = True
        self._cancel.set()
        return True

    def _notify(self, kind, **fields):
        if self.observer is None:
            return
        message = {'type': kind, 'video_id': self.session.video_id, 'mode': self.session.mode}
        message.update(fields)
        try:
            self.observer(message)
        except Exception:
            logger.warning(f'Observer failed on {kind} notification', exc_info=True)

    def run(self):
        """Run to a terminal state and return it. Never raises."""
        try:
            self._bootstrap()
            return self._poll()
        except LiveChatError as e:
            return self._fail(e)
        except Exception as e:
            logger.exception(f'{self.video_id}: unexpected error')
            return self._fail(e)

    def _bootstrap(self):
        s = self.session
        s.status = BOOTSTRAPPING
        logger.info(f'{s.video_id}: bootstrapping {s.mode} chat')
        result = bootstrap(self.http, s.video_id, s.mode,
                           session_secret=self.session_secret, credentials=self.credentials)
        self.credentials = result.credentials
        s.continuation_token = result.continuation_token
        s.click_tracking_params = result.click_tracking_params
        s.offset_ms = result.offset_ms
        self._pending = result.initial_payload
        s.status = POLLING

    def _next_payload(self):
        if self._pending is not None:
            payload, self._pending = self._pending, None
            return payload
        s = self.session
        return fetch_continuation(self.http, s.mode, self.credentials, s.continuation_token,
                                  click_tracking_params=s.click_tracking_params,
                                  offset_ms=s.offset_ms)

    def _poll(self):
        s = self.session
        page = 0
        while True:
            if self._cancel.is_set():
                return self._stopped()

            page += 1
            result = normalize(self._next_payload(), s.mode, s.offset_ms, s.started_at_ms)

            s.events.extend(result.events)
            s.offset_ms = result.offset_ms
            s.continuation_token = result.next_token
            if result.next_click_tracking_params:
                s.click_tracking_params = result.next_click_tracking_params

            logger.debug(f'{s.video_id}: page {page} +{len(result.events)} (total {len(s.events)})')
            self._notify('progress', total_events=len(s.events), offset_ms=s.offset_ms)

            if s.continuation_token is None:
                return self._complete(result.end_reason)

            if result.pacing_delay_ms is not None:
                sleep_with_stop(self._cancel, result.pacing_delay_ms)

    def _complete(self, end_reason):
        s = self.session
        s.status = UNRECOGNIZED_END if end_reason == UNRECOGNIZED else COMPLETED
        if s.status == UNRECOGNIZED_END:
            logger.warning(f'{s.video_id}: chat ended on a payload that was not recognized as final')
        logger.info(f'{s.video_id}: {len(s.events)} events, {s.status}')
        self._notify('complete',
                     file_name=transcript_file_name(s.video_id),
                     transcript=format_transcript(s.events),
                     total_events=len(s.events),
                     status=s.status)
        s.events = []
        return s.status

    def _stopped(self):
        s = self.session
        s.status = STOPPED
        logger.info(f'{s.video_id}: stopped after {len(s.events)} events')
        if self.keep_partial:
            self._notify('stopped',
                         file_name=transcript_file_name(s.video_id),
                         transcript=format_transcript(s.events),
                         total_events=len(s.events))
        else:
            self._notify('stopped')
        s.events = []
        return s.status

    def _fail(self, error):
        s = self.session
        s.status = FAILED
        logger.error(f'{s.video_id}: {error}')
        self._notify('error', error=str(error) or type(error).__name__,
                     error_type=type(error).__name__)
        s.events = []
        return s.status


class ChatDownloadManager:
    """Registry of running chat downloads, keyed by video id."""

    def __init__(self, observer=None, http_factory=make_http_session, session_secret=None,
                 keep_partial=False):
        self.observer = observer
        self.http_factory = http_factory
        self.session_secret = session_secret
        self.keep_partial = keep_partial
        self._lock = threading.Lock()
        self._running = {}

    def start(self, video_id, mode):
        if mode not in MODES:
            return {'ok': False, 'error': f'Unknown chat mode: {mode!r}'}

        with self._lock:
            if video_id in self._running:
                return {'ok': False, 'error': 'A live chat download is already running.'}
            chat = ChatSession(self.http_factory(), video_id, mode,
                               observer=self.observer,
                               session_secret=self.session_secret,
                               keep_partial=self.keep_partial)
            thread = threading.Thread(target=self._run, args=(chat,),
                                      name=f'livechat-{video_id}', daemon=True)
            self._running[video_id] = (chat, thread)

        thread.start()
        return {'ok': True}

    def _run(self, chat):
        try:
            chat.run()
        finally:
            with self._lock:
                self._running.pop(chat.video_id, None)

    def stop(self, video_id):
        with self._lock:
            entry = self._running.get(video_id)
        if entry is None:
            return {'ok': False, 'error': 'No live chat download is in progress.'}
        if not entry[0].request_stop():
            return {'ok': False, 'error': 'The live chat download is already stopping.'}
        return {'ok': True}

    def is_running(self, video_id):
        with self._lock:
            return video_id in self._running

    def running(self):
        with self._lock:
            return sorted(self._running)

    def wait(self, video_id, timeout=None):
        """Join the session's thread; True once it has finished."""
        with self._lock:
            entry = self._running.get(video_id)
        if entry is None:
            return True
        entry[1].join(timeout)
        return not entry[1].is_alive()
