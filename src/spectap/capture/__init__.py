"""
spectap Capture Module

Recording proxy that forwards traffic to a real API and saves it as a
replayable session.
"""

from .proxy import RecordingProxy, RecordOptions, build_target_url
from .recording import (
    RecordingSession,
    RecordingEntry,
    SessionWriter,
    encode_body,
    decode_body,
    create_path_matcher,
    parse_status_list,
)

__all__ = [
    'RecordingProxy',
    'RecordOptions',
    'build_target_url',
    'RecordingSession',
    'RecordingEntry',
    'SessionWriter',
    'encode_body',
    'decode_body',
    'create_path_matcher',
    'parse_status_list',
]
