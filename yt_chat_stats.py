#!/usr/bin/env python3
"""
YouTube Live Chat transcript statistics.
Reads a <VIDEO_ID>.live_chat.json transcript (live or replay).

Generates:
  1. Chat activity per offset bucket (10s, 1min, 5min) - stacked bars by item kind
  2. Cumulative messages over the stream - line chart
  3. Flattened CSV of every chat item

Usage:
  python3 yt_chat_stats.py <VIDEO_ID.live_chat.json> [--output-dir DIR]
"""

import argparse
import json
import os
import sys
from pathlib import Path

import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from yt_chat_parser import action_item, match_renderer

KIND_LABELS = {
    'liveChatTextMessageRenderer': 'Message',
    'liveChatPaidMessageRenderer': 'Super Chat',
    'liveChatMembershipItemRenderer': 'Membership',
    'liveChatPaidStickerRenderer': 'Super Sticker',
    'liveChatSponsorshipsGiftPurchaseAnnouncementRenderer': 'Gifted memberships',
    'liveChatTickerPaidMessageItemRenderer': 'Ticker',
    'liveChatTickerPaidStickerItemRenderer': 'Ticker',
    'liveChatTickerSponsorItemRenderer': 'Ticker',
    'liveChatBannerRenderer': 'Banner',
}
COLUMNS = ['offset_s', 'is_live', 'kind', 'author', 'message']


def parse_transcript(content):
    """One dict per non-empty line; lines that are not JSON objects are skipped."""
    records = []
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            records.append(record)
    return records


def load_transcript(path):
    with open(path, 'r', encoding='utf-8') as f:
        return parse_transcript(f.read())


def run_text(runs):
    parts = []
    for r in runs or []:
        if 'text' in r:
            parts.append(r['text'])
        else:
            emoji = r.get('emoji', {})
            shortcuts = emoji.get('shortcuts')
            parts.append(shortcuts[0] if shortcuts else emoji.get('emojiId', ''))
    return ''.join(parts)


def flatten_record(record):
    """Rows {offset_s, is_live, kind, author, message} for one transcript record."""
    replay = record.get('replayChatItemAction') or {}
    offset = record.get('videoOffsetTimeMsec', replay.get('videoOffsetTimeMsec', 0))
    try:
        offset_s = int(offset) / 1000
    except (TypeError, ValueError):
        offset_s = 0.0

    rows = []
    for action in replay.get('actions') or []:
        kind, renderer = match_renderer(action_item(action))
        if renderer is None:
            continue
        rows.append({
            'offset_s': offset_s,
            'is_live': bool(record.get('isLive', False)),
            'kind': KIND_LABELS.get(kind, kind),
            'author': renderer.get('authorName', {}).get('simpleText', ''),
            'message': run_text(renderer.get('message', {}).get('runs')),
        })
    return rows


def build_chat_df(records):
    rows = [row for record in records for row in flatten_record(record)]
    return pd.DataFrame(rows, columns=COLUMNS)


def plot_activity_bucketed(df, bucket_seconds, title_suffix, output_path):
    """Stacked bar: chat items per offset bucket, split by kind."""
    if df.empty:
        return

    df2 = df.copy()
    df2['bucket'] = (df2['offset_s'] // bucket_seconds).astype(int)
    pivot = df2.groupby(['bucket', 'kind']).size().unstack(fill_value=0)

    fig, ax = plt.subplots(figsize=(16, 7))
    pivot.plot(kind='bar', stacked=True, ax=ax, width=0.9)

    ax.set_title(f'Chat activity ({title_suffix} buckets)', fontsize=14, fontweight='bold')
    ax.set_xlabel('Stream offset', fontsize=12)
    ax.set_ylabel('Chat items', fontsize=12)

    n_ticks = min(25, len(pivot))
    step = max(1, len(pivot) // n_ticks)
    tick_positions = range(0, len(pivot), step)
    tick_labels = [format_offset(pivot.index[i] * bucket_seconds) for i in tick_positions]
    ax.set_xticks(list(tick_positions))
    ax.set_xticklabels(tick_labels, rotation=45, ha='right', fontsize=9)

    ax.legend(fontsize=11)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()
    print(f"  Saved: {output_path}")


def plot_cumulative_messages(df, output_path):
    """Line chart: cumulative chat items over the stream offset."""
    if df.empty:
        return

    fig, ax = plt.subplots(figsize=(16, 7))

    for kind, kind_df in df.groupby('kind'):
        kind_df = kind_df.sort_values('offset_s')
        ax.plot(kind_df['offset_s'] / 60, range(1, len(kind_df) + 1), label=kind, linewidth=2.5)

    ax.set_title('Cumulative chat items', fontsize=14, fontweight='bold')
    ax.set_xlabel('Stream offset (minutes)', fontsize=12)
    ax.set_ylabel('Items', fontsize=12)
    ax.legend(fontsize=12)
    ax.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()
    print(f"  Saved: {output_path}")


def format_offset(seconds):
    seconds = int(seconds)
    return f'{seconds // 3600:d}:{seconds // 60 % 60:02d}:{seconds % 60:02d}'


def summarize(df):
    """Totals used by print_stats."""
    if df.empty:
        return {'items': 0, 'authors': 0, 'duration_s': 0.0, 'per_minute': 0.0,
                'kinds': {}, 'top_authors': []}
    duration = float(df['offset_s'].max() - df['offset_s'].min())
    return {
        'items': len(df),
        'authors': int(df.loc[df['author'] != '', 'author'].nunique()),
        'duration_s': duration,
        'per_minute': len(df) / max(duration / 60, 1),
        'kinds': {k: int(v) for k, v in df['kind'].value_counts().items()},
        'top_authors': [(k, int(v)) for k, v in df.loc[df['author'] != '', 'author'].value_counts().head(10).items()],
    }


def print_stats(df, record_count):
    stats = summarize(df)
    print(f"\n{'='*50}")
    print(f"  CHAT STATISTICS")
    print(f"{'='*50}")
    print(f"  Transcript records : {record_count}")
    print(f"  Chat items         : {stats['items']}")
    print(f"  Unique authors     : {stats['authors']}")

    if not stats['items']:
        return

    print(f"  Span               : {format_offset(stats['duration_s'])}")
    print(f"  Items/min          : {stats['per_minute']:.1f}")

    print(f"\n  --- BY KIND ---")
    for kind, count in stats['kinds'].items():
        bar = '█' * int(count / stats['items'] * 40)
        print(f"  {kind:<20} {count:6d}  {bar}")

    print(f"\n  --- TOP AUTHORS ---")
    for name, count in stats['top_authors']:
        print(f"  {name}: {count}")


def main():
    parser = argparse.ArgumentParser(description='YouTube Live Chat transcript statistics')
    parser.add_argument('input', help='Transcript file (<VIDEO_ID>.live_chat.json)')
    parser.add_argument('--output-dir', '-o', default=None, help='Output directory')
    args = parser.parse_args()

    if not os.path.exists(args.input):
        print(f"Error: {args.input} not found")
        sys.exit(1)

    output_dir = args.output_dir or os.path.join(os.path.dirname(args.input) or '.', 'chat_stats')
    os.makedirs(output_dir, exist_ok=True)

    print(f"Loading {args.input}...")
    records = load_transcript(args.input)
    print(f"Transcript records: {len(records)}")

    df = build_chat_df(records)
    print_stats(df, len(records))

    print("\nGenerating graphs...")
    base = Path(output_dir)

    for secs, label, filename in [
        (10, '10 second', 'activity_10s.png'),
        (60, '1 minute', 'activity_1min.png'),
        (300, '5 minute', 'activity_5min.png'),
    ]:
        plot_activity_bucketed(df, secs, label, str(base / filename))

    plot_cumulative_messages(df, str(base / 'activity_cumulative.png'))

    csv_path = str(base / 'chat_items.csv')
    df.to_csv(csv_path, index=False)
    print(f"  Saved: {csv_path}")

    print(f"\nDone! All outputs in {output_dir}")


if __name__ == '__main__':
    main()
