from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable

from canlog.core.frames.models import Frame, canonical_id
from canlog.core.frames.recognizers import split_byte_tokens
from canlog.core.util.stablejson import dumps


CSV_COLUMNS = ("Timestamp", "ID", "Type", "DLC", "Data")
DECODED_COLUMN = "Decoded Signals"


def format_timestamp(value: float | str) -> str:
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    return str(value)


def frames_to_csv(frames: Iterable[Frame]) -> str:
    """Render the converted-log CSV.

    The ``Decoded Signals`` column (compact JSON per row) is present only when
    at least one frame decoded to a non-empty mapping.
    """
    rows = list(frames)
    with_decoded = any(frame.decoded for frame in rows)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    header = list(CSV_COLUMNS)
    if with_decoded:
        header.append(DECODED_COLUMN)
    writer.writerow(header)
    for frame in rows:
        row = [format_timestamp(frame.timestamp), frame.id, frame.direction, str(frame.dlc), " ".join(frame.data)]
        if with_decoded:
            row.append(dumps(frame.decoded, newline=False) if frame.decoded is not None else "")
        writer.writerow(row)
    return buf.getvalue()


def frames_to_jsonl(frames: Iterable[Frame]) -> str:
    return "".join(dumps(frame.to_dict()) for frame in frames)


def parse_converted_csv(text: str) -> list[Frame]:
    """Read back a converted-log CSV; rows without an id or timestamp are skipped."""
    reader = csv.DictReader(io.StringIO(text or ""))
    if not reader.fieldnames:
        return []
    columns = {name.strip().lower(): name for name in reader.fieldnames if name}
    ts_col = columns.get("timestamp")
    id_col = columns.get("id")
    data_col = columns.get("data")
    type_col = columns.get("type")
    decoded_col = columns.get(DECODED_COLUMN.lower())
    if ts_col is None or id_col is None or data_col is None:
        return []

    frames: list[Frame] = []
    for row in reader:
        raw_ts = (row.get(ts_col) or "").strip()
        raw_id = (row.get(id_col) or "").strip()
        if not raw_ts or not raw_id:
            continue
        tokens = split_byte_tokens((row.get(data_col) or "").replace("0x", "").replace("0X", ""))
        decoded = _parse_decoded_cell(row.get(decoded_col) if decoded_col else None)
        frames.append(
            Frame(
                timestamp=_parse_timestamp(raw_ts),
                id=canonical_id(raw_id),
                dlc=len(tokens),
                data=tuple(tokens),
                is_tx="tx" in (row.get(type_col) or "").lower() if type_col else False,
                decoded=decoded,
            )
        )
    return frames


def parse_frames_jsonl(text: str) -> list[Frame]:
    frames: list[Frame] = []
    for line in (text or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(obj, dict) or not isinstance(obj.get("id"), str):
            continue
        tokens = split_byte_tokens(" ".join(str(b) for b in obj.get("data") or []))
        decoded = obj.get("decoded")
        frames.append(
            Frame(
                timestamp=_parse_timestamp(str(obj.get("timestamp", ""))),
                id=canonical_id(obj["id"]),
                dlc=len(tokens),
                data=tuple(tokens),
                is_tx=str(obj.get("direction", "")).lower() == "tx",
                decoded=_coerce_decoded(decoded),
            )
        )
    return frames


def _parse_timestamp(raw: str) -> float | str:
    try:
        return float(raw)
    except ValueError:
        return raw


def _parse_decoded_cell(raw: str | None) -> dict[str, float] | None:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        return None
    return _coerce_decoded(obj)


def _coerce_decoded(obj: Any) -> dict[str, float] | None:
    if not isinstance(obj, dict):
        return None
    out: dict[str, float] = {}
    for key, value in obj.items():
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            out[str(key)] = float(value)
    return out
