from __future__ import annotations

import dataclasses
from typing import Iterable, Mapping

from canlog.core.codec.bits import extract_raw, insert_raw, to_signed
from canlog.core.frames.models import Frame
from canlog.core.matrix.models import CanMatrix, MessageDefinition, SignalDefinition


# Significant digits kept after scaling; hides float noise like 0.30000000000000004.
PHYSICAL_PRECISION = 10


class EncodeError(Exception):
    pass


def round_physical(value: float) -> float:
    return float(f"{value:.{PHYSICAL_PRECISION}g}")


def decode_signal(payload: bytes, signal: SignalDefinition) -> float:
    raw = extract_raw(payload, signal)
    if signal.is_signed:
        raw = to_signed(raw, int(signal.length))
    return round_physical(raw * float(signal.scale) + float(signal.offset))


def decode_payload(payload: bytes, message: MessageDefinition) -> dict[str, float]:
    return {name: decode_signal(payload, signal) for name, signal in message.signals.items()}


def decode_frame(frame: Frame, matrix: CanMatrix) -> Frame:
    """Return ``frame`` with ``decoded`` filled in.

    Frames whose id has no catalog entry come back untouched (``decoded`` stays
    None), which is the normal case for traffic the catalog does not describe.
    """
    message = matrix.message_for(frame.id)
    if message is None:
        return frame
    return dataclasses.replace(frame, decoded=decode_payload(frame.payload, message))


def decode_frames(frames: Iterable[Frame], matrix: CanMatrix) -> list[Frame]:
    return [decode_frame(frame, matrix) for frame in frames]


def physical_to_raw(signal: SignalDefinition, physical: float) -> int:
    scale = float(signal.scale)
    if scale == 0.0:
        raise EncodeError(f"signal {signal.name} has zero scale")
    raw = round((float(physical) - float(signal.offset)) / scale)
    # Wrap into the field width; negative values become two's complement.
    return int(raw) & ((1 << int(signal.length)) - 1)


def encode_signal(payload: bytearray, signal: SignalDefinition, physical: float) -> None:
    insert_raw(payload, signal, physical_to_raw(signal, physical))


def encode_message(message: MessageDefinition, values: Mapping[str, float], *, dlc: int | None = None) -> bytes:
    """Build a payload for ``message`` from physical values; unset signals stay zero."""
    payload = bytearray(int(dlc if dlc is not None else message.dlc))
    for name, value in values.items():
        signal = message.signals.get(name)
        if signal is None:
            raise EncodeError(f"unknown signal {name!r} in message {message.name}")
        encode_signal(payload, signal, value)
    return bytes(payload)
