from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import can

from canlog.core.frames.models import Frame


log = logging.getLogger(__name__)

# Formats handed to python-can instead of the text recognizers.
MESSAGE_LOG_EXTENSIONS = frozenset({".asc", ".blf"})


class IngestError(Exception):
    pass


def is_message_log(path: str | Path) -> bool:
    return Path(path).suffix.lower() in MESSAGE_LOG_EXTENSIONS


def frame_from_message(msg: can.Message) -> Frame:
    data = tuple(f"{b:02X}" for b in bytes(msg.data))
    return Frame(
        timestamp=float(msg.timestamp),
        id=f"0x{int(msg.arbitration_id):X}",
        dlc=len(data),
        data=data,
        is_tx=not bool(getattr(msg, "is_rx", True)),
    )


def frame_to_message(frame: Frame) -> can.Message:
    can_id = frame.arbitration_id or 0
    timestamp = frame.timestamp if isinstance(frame.timestamp, float) else 0.0
    return can.Message(
        timestamp=timestamp,
        arbitration_id=can_id,
        is_extended_id=can_id > 0x7FF,
        data=frame.payload,
        is_rx=not frame.is_tx,
    )


def frames_from_messages(messages: Iterable[can.Message]) -> list[Frame]:
    frames: list[Frame] = []
    for msg in messages:
        # Error and remote frames carry no payload worth decoding.
        if msg.is_error_frame or msg.is_remote_frame:
            continue
        frames.append(frame_from_message(msg))
    return frames


def read_message_log(path: str | Path) -> list[Frame]:
    """Read any log python-can understands (.asc, .blf, .csv, ...) into frames.

    Timestamps are whatever the reader yields; for .asc and .blf that is the
    offset from the first frame of the file, not absolute time.
    """
    p = Path(path).expanduser()
    if not p.exists():
        raise IngestError(f"{p}: file not found")
    try:
        with can.LogReader(str(p)) as reader:
            frames = frames_from_messages(reader)
    except Exception as exc:
        # Readers fail in format-specific ways (struct.error, zlib.error, ...).
        raise IngestError(f"{p}: failed to read message log: {exc}") from exc
    log.debug("Message log read", extra={"path": str(p), "frame_count": len(frames)})
    return frames


def write_message_log(frames: Iterable[Frame], path: str | Path) -> int:
    """Write frames with the python-can writer picked by the file extension.

    .asc and .blf store time relative to the first frame, so reading the file
    back starts the capture at 0.0.
    """
    p = Path(path).expanduser()
    try:
        writer = can.Logger(str(p))
    except Exception as exc:
        raise IngestError(f"{p}: cannot write message log: {exc}") from exc
    count = 0
    try:
        for frame in frames:
            writer.on_message_received(frame_to_message(frame))
            count += 1
    except Exception as exc:
        raise IngestError(f"{p}: failed to write message log: {exc}") from exc
    finally:
        writer.stop()
    log.debug("Message log written", extra={"path": str(p), "frame_count": count})
    return count
