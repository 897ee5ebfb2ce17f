"""
Turn liveChatContinuation payloads into offset-tagged events.

Replay payloads carry a videoOffsetTimeMsec on every replayChatItemAction.
Live payloads don't; the offset is derived from the renderer's
timestampUsec relative to the moment the download started.
"""

import logging
import math

from yt_chat_errors import ProtocolError
from yt_chat_models import LIVE, REPLAY, ContinuationResult, Event

logger = logging.getLogger(__name__)

ENDED = 'ended'
UNRECOGNIZED = 'unrecognized'

REPLAY_CONTINUATION_KEYS = ('liveChatReplayContinuationData', 'reloadContinuationData')
LIVE_CONTINUATION_KEYS = ('timedContinuationData', 'invalidationContinuationData')
# Only present in the last page of a replay.
TERMINAL_CONTINUATION_KEYS = ('playerSeekContinuationData',)

ACTION_KEYS = ('addChatItemAction', 'addLiveChatTickerItemAction', 'addBannerToLiveChatCommand')
MESSAGE_RENDERERS = (
    'liveChatTextMessageRenderer',
    'liveChatPaidMessageRenderer',
    'liveChatMembershipItemRenderer',
    'liveChatPaidStickerRenderer',
)


def _parse_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _unwrap_shown_item(renderer):
    """Message renderer behind a ticker/banner, or None."""
    parent = ((renderer.get('showItemEndpoint') or {}).get('showLiveChatItemEndpoint') or {}).get('renderer')
    parent = parent or renderer.get('contents')
    if not isinstance(parent, dict):
        return None
    for name in MESSAGE_RENDERERS:
        if isinstance(parent.get(name), dict):
            return parent[name]
    return None


def _direct_timestamp(renderer):
    return renderer.get('timestampUsec')


def _shown_item_timestamp(renderer):
    inner = _unwrap_shown_item(renderer)
    if inner is not None:
        return inner.get('timestampUsec')
    return renderer.get('timestampUsec')


# First shape present in an action's item wins.
RENDERER_SHAPES = (
    ('liveChatTextMessageRenderer', _direct_timestamp),
    ('liveChatPaidMessageRenderer', _direct_timestamp),
    ('liveChatMembershipItemRenderer', _direct_timestamp),
    ('liveChatPaidStickerRenderer', _direct_timestamp),
    ('liveChatSponsorshipsGiftPurchaseAnnouncementRenderer', _direct_timestamp),
    ('liveChatTickerPaidMessageItemRenderer', _shown_item_timestamp),
    ('liveChatTickerPaidStickerItemRenderer', _shown_item_timestamp),
    ('liveChatTickerSponsorItemRenderer', _shown_item_timestamp),
    ('liveChatBannerRenderer', _shown_item_timestamp),
)
SHAPE_EXTRACTORS = dict(RENDERER_SHAPES)


def action_item(action):
    """The item dict wrapped by a live action, or None."""
    if not isinstance(action, dict):
        return None
    for key in ACTION_KEYS:
        content = action.get(key)
        if isinstance(content, dict):
            item = content.get('item') or content.get('bannerRenderer')
            return item if isinstance(item, dict) else None
    return None


def match_renderer(item):
    """(shape name, renderer) of the first known shape in item, or (None, None)."""
    if not isinstance(item, dict):
        return None, None
    for name, _ in RENDERER_SHAPES:
        if isinstance(item.get(name), dict):
            return name, item[name]
    return None, None


def live_timestamp_ms(action):
    """Wall-clock milliseconds of a live action, or None if it carries no timestamp."""
    name, renderer = match_renderer(action_item(action))
    if renderer is None:
        return None
    usec = _parse_int(SHAPE_EXTRACTORS[name](renderer))
    return usec // 1000 if usec is not None else None


def replay_offset_ms(action):
    replay = action.get('replayChatItemAction') if isinstance(action, dict) else None
    if not isinstance(replay, dict):
        return None
    return _parse_int(replay.get('videoOffsetTimeMsec'))


def parse_timeout_ms(data):
    value = data.get('timeoutMs')
    if value is None:
        value = data.get('timeout')
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(timeout):
        return None
    return int(timeout)


def _lists(payload):
    if not isinstance(payload, dict):
        raise ProtocolError('Continuation payload is not an object.', context=type(payload).__name__)
    actions = payload.get('actions') or []
    continuations = payload.get('continuations')
    if not isinstance(actions, list):
        raise ProtocolError('Continuation actions are not a list.', context=sorted(payload))
    if continuations is not None and not isinstance(continuations, list):
        raise ProtocolError('Continuation entries are not a list.', context=sorted(payload))
    return actions, continuations


def _find_continuation(continuations, keys):
    for entry in continuations or []:
        if not isinstance(entry, dict):
            continue
        for key in keys:
            data = entry.get(key)
            if isinstance(data, dict) and data.get('continuation'):
                return data
    return None


def _end_reason(continuations):
    if not continuations:
        return ENDED
    for entry in continuations:
        if isinstance(entry, dict) and any(key in entry for key in TERMINAL_CONTINUATION_KEYS):
            return ENDED
    logger.warning(f'Unrecognized continuation entries: {[sorted(e) for e in continuations if isinstance(e, dict)]}')
    return UNRECOGNIZED


def normalize_replay(payload, offset_ms=0):
    actions, continuations = _lists(payload)
    result = ContinuationResult(events=[], offset_ms=offset_ms)

    for action in actions:
        offset = replay_offset_ms(action)
        if offset is not None:
            result.offset_ms = max(offset, 0)
        result.events.append(Event(raw_action=action, offset_ms=result.offset_ms, is_live=False))

    data = _find_continuation(continuations, REPLAY_CONTINUATION_KEYS)
    if data:
        result.next_token = data['continuation']
        result.next_click_tracking_params = data.get('clickTrackingParams') or data.get('trackingParams')
    else:
        result.end_reason = _end_reason(continuations)
    return result


def normalize_live(payload, offset_ms=0, started_at_ms=0):
    actions, continuations = _lists(payload)
    result = ContinuationResult(events=[], offset_ms=offset_ms)

    for action in actions:
        timestamp = live_timestamp_ms(action)
        if timestamp is not None:
            result.offset_ms = max(timestamp - started_at_ms, 0)
        result.events.append(Event(raw_action=action, offset_ms=result.offset_ms, is_live=True))

    data = _find_continuation(continuations, LIVE_CONTINUATION_KEYS)
    if data:
        result.next_token = data['continuation']
        result.next_click_tracking_params = data.get('clickTrackingParams')
        result.pacing_delay_ms = parse_timeout_ms(data)
    else:
        result.end_reason = _end_reason(continuations)
    return result


def normalize(payload, mode, offset_ms=0, started_at_ms=0):
    """ContinuationResult for one payload in the given dialect."""
    if mode == REPLAY:
        return normalize_replay(payload, offset_ms)
    if mode == LIVE:
        return normalize_live(payload, offset_ms, started_at_ms)
    raise ProtocolError(f'Unknown chat mode: {mode!r}')
