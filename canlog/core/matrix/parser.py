from __future__ import annotations

import re
from dataclasses import dataclass
from functools import reduce

from canlog.core.matrix.models import CanMatrix, MessageDefinition, SignalDefinition, normalize_message_id


_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"

# BO_ <id> <name>: <dlc> [transmitter]
MESSAGE_RE = re.compile(r"^BO_\s+(0[xX][0-9A-Fa-f]+|\d+)\s+(\w+)\s*:\s*(\d+)(?:\s+.*)?$")

# SG_ <name> : <start>|<len>@<order><sign> (<scale>,<offset>) [<min>|<max>] "<unit>" [receivers]
SIGNAL_RE = re.compile(
    r"^SG_\s+(\w+)\s*:\s*(\d+)\|(\d+)@([01])([+-])\s+"
    rf"\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*\)"
    rf"(?:\s+\[\s*({_NUMBER})\s*\|\s*({_NUMBER})\s*\])?"
    r'\s+"([^"]*)"'
)


@dataclass(frozen=True)
class _PendingMessage:
    name: str
    dlc: int
    signals: dict[str, SignalDefinition]


@dataclass(frozen=True)
class _ScanState:
    messages: dict[str, _PendingMessage]
    # None while no BO_ line has been seen yet.
    current: str | None = None


def parse_matrix(text: str) -> CanMatrix:
    """Build a CanMatrix from DBC-style catalog text.

    Only ``BO_`` and ``SG_`` lines are interpreted; every other line (comments,
    attribute sections, value tables, blank lines) is skipped. Signal lines are
    attached to the most recent message line. Malformed lines never raise.
    """

    lines = (text or "").split("\n")
    state = reduce(_step, lines, _ScanState(messages={}))
    return CanMatrix(
        {
            key: MessageDefinition(name=pending.name, dlc=pending.dlc, signals=pending.signals)
            for key, pending in state.messages.items()
        }
    )


def parse_message_line(line: str) -> tuple[str, str, int] | None:
    match = MESSAGE_RE.match(line.strip())
    if not match:
        return None
    raw_id, name, dlc = match.groups()
    return normalize_message_id(raw_id), name, int(dlc)


def parse_signal_line(line: str) -> SignalDefinition | None:
    match = SIGNAL_RE.match(line.strip())
    if not match:
        return None
    name, start, length, order, sign, scale, offset, minimum, maximum, unit = match.groups()
    if int(length) < 1:
        return None
    return SignalDefinition(
        name=name,
        start_bit=int(start),
        length=int(length),
        is_little_endian=order == "1",
        is_signed=sign == "-",
        scale=float(scale),
        offset=float(offset),
        minimum=float(minimum) if minimum is not None else 0.0,
        maximum=float(maximum) if maximum is not None else 0.0,
        unit=unit,
    )


def _step(state: _ScanState, line: str) -> _ScanState:
    message = parse_message_line(line)
    if message is not None:
        key, name, dlc = message
        messages = dict(state.messages)
        messages[key] = _PendingMessage(name=name, dlc=dlc, signals={})
        return _ScanState(messages=messages, current=key)

    if state.current is None:
        return state
    signal = parse_signal_line(line)
    if signal is None:
        return state
    # Last definition wins when a message repeats a signal name.
    pending = state.messages[state.current]
    messages = dict(state.messages)
    messages[state.current] = _PendingMessage(
        name=pending.name,
        dlc=pending.dlc,
        signals={**pending.signals, signal.name: signal},
    )
    return _ScanState(messages=messages, current=state.current)
