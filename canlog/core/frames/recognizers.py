"""Line recognizers for the text log conventions we accept.

Each recognizer is a pure function ``str -> Frame | None``. They never raise:
a line that does not fit the expected shape (or fails a content check) yields
None and the caller moves on to the next recognizer.

Examples of the accepted shapes::

    custom     1616522338 0x123 8 11 22 33 44 55 66 77 88
    candump    (1616522338.123456) can0 123#1122334455667788
    pcan_v5    1) 39.9 Rx 14234050 8 00 00 05 00 00 00 00 00
    trc        1) 12.3456 Rx 0x123 8 11 22 33 44 55 66 77 88
    pcan_view  1 12.3456 DT 123 Rx 8 11 22 33 44
"""

from __future__ import annotations

import re
from typing import Callable

from canlog.core.frames.models import Frame, make_frame


Recognizer = Callable[[str], "Frame | None"]

_TS = r"(\d+(?:\.\d*)?)"

CUSTOM_RE = re.compile(r"^\s*(\d+)\s+(0[xX][0-9A-Fa-f]+|[0-9A-Fa-f]+)\s+(\d+)\s+([0-9A-Fa-f\s]*)\s*$")
CANDUMP_RE = re.compile(rf"^\s*\({_TS}\)\s+\w+\s+([0-9A-Fa-f]+)#([0-9A-Fa-f]*)\s*$")
PCAN_V5_RE = re.compile(rf"^\s*\d+\)\s+{_TS}\s+(Rx|Tx)\s+([0-9A-Fa-f]+)\s+\d+\s*([0-9A-Fa-f\s]*)$")
TRC_RE = re.compile(rf"^\s*\d+\)\s+{_TS}\s+(Rx|Tx)\s+((?:0[xX])?[0-9A-Fa-f]+)\s+\d+\s*([0-9A-Fa-f\s]*)$")
PCAN_VIEW_RE = re.compile(
    rf"^\s*\d+\s+{_TS}\s+\w+\s+((?:0[xX])?[0-9A-Fa-f]+)\s+(Rx|Tx)\s+\d+\s*([0-9A-Fa-f\s]*)$"
)

# Column titles that show up in exported header rows of the custom layout.
_HEADER_WORDS = ("timestamp", "can_id", "data(hex)")

_BYTE_RE = re.compile(r"^[0-9A-Fa-f]{1,2}$")


def split_byte_tokens(raw: str) -> list[str]:
    """Whitespace separated bytes, stopping at the first malformed token."""
    out: list[str] = []
    for token in raw.split():
        if not _BYTE_RE.match(token):
            break
        out.append(token.upper().zfill(2))
    return out


def split_byte_pairs(raw: str) -> list[str]:
    """Unseparated hex, chunked in pairs; a dangling nibble is dropped."""
    return [raw[i : i + 2].upper() for i in range(0, len(raw) - 1, 2)]


def recognize_custom(line: str) -> Frame | None:
    lowered = line.lower()
    if any(word in lowered for word in _HEADER_WORDS):
        return None
    match = CUSTOM_RE.match(line)
    if not match:
        return None
    timestamp, can_id, _declared_dlc, raw_data = match.groups()
    return make_frame(float(timestamp), can_id, split_byte_tokens(raw_data))


def recognize_candump(line: str) -> Frame | None:
    match = CANDUMP_RE.match(line)
    if not match:
        return None
    timestamp, can_id, raw_data = match.groups()
    return make_frame(float(timestamp), can_id, split_byte_pairs(raw_data))


def recognize_pcan_v5(line: str) -> Frame | None:
    match = PCAN_V5_RE.match(line)
    if not match:
        return None
    timestamp, direction, can_id, raw_data = match.groups()
    return make_frame(float(timestamp), can_id, split_byte_tokens(raw_data), is_tx=direction == "Tx")


def recognize_trc(line: str) -> Frame | None:
    match = TRC_RE.match(line.strip())
    if not match:
        return None
    timestamp, direction, can_id, raw_data = match.groups()
    return make_frame(float(timestamp), can_id, split_byte_tokens(raw_data), is_tx=direction == "Tx")


def recognize_pcan_view(line: str) -> Frame | None:
    stripped = line.strip()
    if stripped.startswith(";"):
        return None
    match = PCAN_VIEW_RE.match(stripped)
    if not match:
        return None
    timestamp, can_id, direction, raw_data = match.groups()
    return make_frame(float(timestamp), can_id, split_byte_tokens(raw_data), is_tx=direction == "Tx")


RECOGNIZERS: dict[str, Recognizer] = {
    "custom": recognize_custom,
    "candump": recognize_candump,
    "pcan_v5": recognize_pcan_v5,
    "trc": recognize_trc,
    "pcan_view": recognize_pcan_view,
}
