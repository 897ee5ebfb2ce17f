#!/usr/bin/env python3
"""
YouTube Live Chat downloader using the innertube API.
Works for both live streams and chat replays; cookies are optional.

Writes a yt-dlp compatible <VIDEO_ID>.live_chat.json (one JSON record per line).

Usage:
  python3 yt_chat_scraper.py <VIDEO_ID_OR_URL> [--mode auto|live|replay] [--output chat.json]
"""

import argparse
import functools
import http.cookiejar
import logging
import os
import re
import sys
import time
from collections import Counter

from yt_chat_auth import find_session_secret
from yt_chat_bootstrap import inspect_video
from yt_chat_errors import LiveChatError, ProtocolError, TransportError
from yt_chat_fetch import make_http_session
from yt_chat_log import setup_logger
from yt_chat_models import LIVE, REPLAY
from yt_chat_session import ChatDownloadManager, sanitize_filename
from yt_chat_stats import flatten_record, parse_transcript

RETRY_DELAY = 5
POLL_INTERVAL = 0.5
RETRYABLE_ERRORS = (TransportError.__name__, ProtocolError.__name__)


def extract_video_id(url):
    for p in [r'(?:v=|/v/|youtu\.be/|/live/)([a-zA-Z0-9_-]{11})', r'^([a-zA-Z0-9_-]{11})$']:
        m = re.search(p, url)
        if m:
            return m.group(1)
    return url


def load_cookies(path):
    """Netscape cookies.txt -> MozillaCookieJar."""
    jar = http.cookiejar.MozillaCookieJar(path)
    jar.load(ignore_discard=True, ignore_expires=True)
    return jar


class TranscriptWriter:
    """Observer that prints progress and saves finished transcripts."""

    def __init__(self, output=None, output_dir='.', progress_every=10):
        self.output = output
        self.output_dir = output_dir
        self.progress_every = progress_every
        self.pages = 0
        self.last = None
        self.saved_path = None
        self.save_error = None
        self.started = time.time()

    def __call__(self, message):
        self.last = message
        kind = message['type']

        if kind == 'progress':
            self.pages += 1
            if self.pages == 1 or self.pages % self.progress_every == 0:
                elapsed = time.time() - self.started
                print(f"  [{elapsed:.0f}s] Page {self.pages}: {message['total_events']} events, "
                      f"offset {message['offset_ms'] / 1000:.1f}s")
        elif kind in ('complete', 'stopped'):
            if 'transcript' in message:
                self.save(message)
            if kind == 'stopped':
                print("Download stopped")
            elif message.get('status') == 'unrecognized_end':
                print("Chat ended on an unrecognized payload; the transcript may be incomplete")
            else:
                print("No more continuation, chat ended")
        elif kind == 'error':
            print(f"  Error: {message['error']}")

    def save(self, message):
        path = self.output or os.path.join(self.output_dir, sanitize_filename(message['file_name']))
        try:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(message['transcript'])
        except OSError as e:
            self.save_error = e
            print(f"  Error: could not write {path}: {e}")
            return
        self.saved_path = path
        print(f"Saved {message['total_events']} events to {path}")

    @property
    def failed(self):
        if self.save_error is not None:
            return True
        return self.last is not None and self.last['type'] == 'error'

    @property
    def retryable(self):
        """Failed on a network or payload error; configuration errors are final."""
        if self.save_error is not None or not self.failed:
            return False
        return self.last.get('error_type') in RETRYABLE_ERRORS


def wait_for_session(manager, video_id, duration=0):
    """Block until the session ends; stop it on Ctrl+C or after duration seconds."""
    start = time.time()
    stop_sent = False
    try:
        while not manager.wait(video_id, timeout=POLL_INTERVAL):
            if duration > 0 and not stop_sent and time.time() - start > duration:
                print(f"\nDuration limit ({duration}s) reached")
                manager.stop(video_id)
                stop_sent = True
    except KeyboardInterrupt:
        print("\nStopped by user")
        manager.stop(video_id)
        manager.wait(video_id)


def print_summary(path):
    with open(path, 'r', encoding='utf-8') as f:
        rows = [row for record in parse_transcript(f.read()) for row in flatten_record(record)]
    authors = Counter(r['author'] for r in rows if r['author'])
    print(f"Unique authors: {len(authors)}")
    for name, count in authors.most_common(5):
        print(f"  {name}: {count} msgs")


def main():
    parser = argparse.ArgumentParser(description='YouTube Live Chat Downloader')
    parser.add_argument('video', help='Video ID or URL')
    parser.add_argument('--mode', '-m', choices=['auto', LIVE, REPLAY], default='auto',
                        help='Chat to download (auto: live if the stream is on air, else replay)')
    parser.add_argument('--output', '-o', default=None, help='Output file (default: <VIDEO_ID>.live_chat.json)')
    parser.add_argument('--output-dir', default='.', help='Directory for the default output file')
    parser.add_argument('--duration', '-d', type=int, default=0, help='Max duration in seconds (0=unlimited, for live)')
    parser.add_argument('--cookies', default=None, help='Netscape cookies.txt for signed-in requests')
    parser.add_argument('--sapisid', default=os.environ.get('YT_SAPISID'),
                        help='SAPISID session secret (default: $YT_SAPISID or the cookies file)')
    parser.add_argument('--retries', type=int, default=0, help='Restart the download this many times after a failure')
    parser.add_argument('--keep-partial', action='store_true', help='Save the events collected so far when stopped')
    parser.add_argument('--info', action='store_true', help='Print chat availability and exit')
    parser.add_argument('--log-file', default=None, help='Also write logs to this file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    args = parser.parse_args()

    setup_logger(log_file=args.log_file, level=logging.DEBUG if args.verbose else logging.WARNING)

    video_id = extract_video_id(args.video)
    cookies = load_cookies(args.cookies) if args.cookies else None
    secret = args.sapisid or find_session_secret(cookies)
    http_factory = functools.partial(make_http_session, cookies)

    print(f"Video ID: {video_id}")

    mode = args.mode
    if args.info or mode == 'auto':
        try:
            info = inspect_video(http_factory(), video_id)
        except LiveChatError as e:
            print(f"Error: {e}")
            sys.exit(1)
        if args.info:
            print(f"Title: {info['title']}")
            print(f"Author: {info['author']}")
            print(f"Live chat: {'yes' if info['is_live'] else 'no'}")
            print(f"Chat replay: {'yes' if info['is_replay'] else 'no'}")
            return
        if not info['has_chat']:
            print("Error: This video does not expose a live chat.")
            sys.exit(1)
        mode = LIVE if info['is_live'] else REPLAY

    print(f"Mode: {mode}")
    print(f"Signed requests: {'yes' if secret else 'no'}")

    writer = TranscriptWriter(output=args.output, output_dir=args.output_dir)
    manager = ChatDownloadManager(observer=writer, http_factory=http_factory,
                                  session_secret=secret, keep_partial=args.keep_partial)

    for attempt in range(args.retries + 1):
        if attempt:
            delay = RETRY_DELAY * attempt
            print(f"Retrying in {delay}s (attempt {attempt + 1}/{args.retries + 1})...")
            time.sleep(delay)

        started = manager.start(video_id, mode)
        if not started['ok']:
            print(f"Error: {started['error']}")
            sys.exit(1)

        print("Polling for messages... (Ctrl+C to stop)")
        wait_for_session(manager, video_id, args.duration)
        if not writer.retryable:
            break

    if writer.failed:
        sys.exit(1)

    if writer.saved_path:
        print(f"\nDone! Transcript saved to {writer.saved_path}")
        print_summary(writer.saved_path)


if __name__ == '__main__':
    main()
