from __future__ import annotations

from canlog.core.sources.pythoncan import (
    MESSAGE_LOG_EXTENSIONS,
    IngestError,
    frame_from_message,
    frame_to_message,
    frames_from_messages,
    is_message_log,
    read_message_log,
    write_message_log,
)

__all__ = [
    "IngestError",
    "MESSAGE_LOG_EXTENSIONS",
    "frame_from_message",
    "frame_to_message",
    "frames_from_messages",
    "is_message_log",
    "read_message_log",
    "write_message_log",
]
