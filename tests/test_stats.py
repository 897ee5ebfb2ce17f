import json

from conftest import replay_action, text_action
from yt_chat_models import Event
from yt_chat_session import format_transcript
from yt_chat_stats import build_chat_df, flatten_record, format_offset, parse_transcript, run_text, summarize


def sample_transcript():
    events = [
        Event(replay_action(61_000, author='alice', text='first'), offset_ms=61_000, is_live=False),
        Event(text_action(5, author='bob', text='hi'), offset_ms=120_000, is_live=True),
        Event(text_action(6, author='alice', text='again'), offset_ms=125_500, is_live=True),
        Event({'removeChatItemAction': {'targetItemId': 'x'}}, offset_ms=126_000, is_live=True),
    ]
    return format_transcript(events)


def test_parse_transcript_skips_bad_lines():
    content = sample_transcript() + 'not json\n\n[1, 2]\n'
    assert len(parse_transcript(content)) == 4


def test_flatten_replay_record():
    rows = flatten_record(replay_action(61_000, author='alice', text='first'))
    assert rows == [{'offset_s': 61.0, 'is_live': False, 'kind': 'Message', 'author': 'alice', 'message': 'first'}]


def test_flatten_live_record():
    record = json.loads(format_transcript([Event(text_action(5, author='bob', text='hi'), 2500, True)]))
    assert flatten_record(record) == [
        {'offset_s': 2.5, 'is_live': True, 'kind': 'Message', 'author': 'bob', 'message': 'hi'},
    ]


def test_non_chat_actions_are_skipped():
    record = {'replayChatItemAction': {'actions': [{'removeChatItemAction': {}}]}, 'videoOffsetTimeMsec': '1'}
    assert flatten_record(record) == []


def test_run_text_uses_emoji_shortcuts():
    runs = [{'text': 'gg '}, {'emoji': {'emojiId': 'x', 'shortcuts': [':wave:']}}, {'emoji': {'emojiId': 'raw'}}]
    assert run_text(runs) == 'gg :wave:raw'


def test_summary():
    df = build_chat_df(parse_transcript(sample_transcript()))
    stats = summarize(df)
    assert stats['items'] == 3
    assert stats['authors'] == 2
    assert stats['duration_s'] == 64.5
    assert stats['kinds'] == {'Message': 3}
    assert stats['top_authors'][0] == ('alice', 2)


def test_empty_summary():
    stats = summarize(build_chat_df([]))
    assert stats['items'] == 0
    assert stats['top_authors'] == []


def test_format_offset():
    assert format_offset(0) == '0:00:00'
    assert format_offset(3725.9) == '1:02:05'
