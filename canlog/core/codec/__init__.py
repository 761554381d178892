from __future__ import annotations

from canlog.core.codec.bits import extract_raw, insert_raw, to_signed
from canlog.core.codec.engine import (
    EncodeError,
    decode_frame,
    decode_frames,
    decode_payload,
    decode_signal,
    encode_message,
    encode_signal,
)

__all__ = [
    "EncodeError",
    "decode_frame",
    "decode_frames",
    "decode_payload",
    "decode_signal",
    "encode_message",
    "encode_signal",
    "extract_raw",
    "insert_raw",
    "to_signed",
]
