"""
Pull JSON objects embedded in YouTube HTML pages.

Pages assign them to script variables, e.g.
  var ytInitialData = {...};
  window["ytInitialData"] = {...};
  ytcfg.set({...});

The objects are large and deeply nested, so they are sliced out by
counting braces rather than with a regex.
"""

import json
import logging

logger = logging.getLogger(__name__)

INITIAL_DATA_MARKER = 'ytInitialData'
PLAYER_RESPONSE_MARKER = 'ytInitialPlayerResponse'
YTCFG_MARKER = 'ytcfg.set'


def _balanced_object_end(text, start):
    """Index just past the object opening at text[start], or None if unbalanced."""
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return i + 1

    return None


def _iter_objects_after(text, marker):
    pos = text.find(marker)
    while pos != -1:
        start = text.find('{', pos + len(marker))
        if start == -1:
            return
        end = _balanced_object_end(text, start)
        if end is None:
            logger.debug(f'Unbalanced braces after {marker!r} at offset {start}')
        else:
            yield text[start:end]
        pos = text.find(marker, pos + len(marker))


def iter_json_objects(text, marker):
    """Yield every object assigned after an occurrence of marker that parses."""
    if not text or not marker:
        return
    for raw in _iter_objects_after(text, marker):
        try:
            obj = json.loads(raw)
        except ValueError as e:
            logger.debug(f'Could not parse object after {marker!r}: {e}')
            continue
        if isinstance(obj, dict):
            yield obj


def extract_json_object(text, marker):
    """Return the first object after marker that parses, or None if not found."""
    for obj in iter_json_objects(text, marker):
        return obj
    return None


def extract_initial_data(html):
    return extract_json_object(html, INITIAL_DATA_MARKER)


def extract_player_response(html):
    return extract_json_object(html, PLAYER_RESPONSE_MARKER)


def extract_ytcfg(html):
    """Merge every ytcfg.set({...}) fragment on the page; None if there are none."""
    merged = {}
    for fragment in iter_json_objects(html, YTCFG_MARKER):
        merged.update(fragment)
    return merged or None
