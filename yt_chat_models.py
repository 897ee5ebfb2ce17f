"""
Records passed between the bootstrap, fetcher, normalizer and controller.
"""

import time
from dataclasses import dataclass, field

LIVE = 'live'
REPLAY = 'replay'
MODES = (LIVE, REPLAY)


@dataclass(frozen=True)
class Event:
    """One chat action as it arrived, tagged with its transcript offset."""
    raw_action: dict
    offset_ms: int
    is_live: bool


@dataclass(frozen=True)
class Credentials:
    api_key: str
    client_context: dict
    visitor_id: str = None
    session_secret: str = None


@dataclass
class ContinuationResult:
    events: list
    next_token: str = None
    next_click_tracking_params: str = None
    pacing_delay_ms: int = None
    offset_ms: int = 0
    # None while more pages exist, 'ended' or 'unrecognized' otherwise
    end_reason: str = None


@dataclass
class BootstrapResult:
    credentials: Credentials
    continuation_token: str
    click_tracking_params: str = None
    initial_payload: dict = None
    offset_ms: int = 0


@dataclass
class Session:
    mode: str
    video_id: str
    started_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    continuation_token: str = None
    click_tracking_params: str = None
    offset_ms: int = 0
    cancel_requested: bool = False
    events: list = field(default_factory=list)
    status: str = 'bootstrapping'
