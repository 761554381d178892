from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable, Literal

from canlog.core.frames.models import Frame
from canlog.core.frames.recognizers import RECOGNIZERS, Recognizer


FormatName = Literal["log", "trc"]

COMMENT_MARKER = ";"

# Recognizer priority per source extension. Several shapes overlap (pcan_v5 is
# a subset of trc), so the order decides which reading wins on ambiguous lines.
# Changing these is a behavior change for every existing capture.
FORMAT_ORDERS: dict[str, tuple[str, ...]] = {
    "log": ("custom", "candump", "pcan_v5", "trc", "pcan_view"),
    "trc": ("custom", "pcan_v5", "trc", "pcan_view", "candump"),
}

_EXTENSION_FORMATS: dict[str, FormatName] = {
    ".log": "log",
    ".trc": "trc",
}


@dataclass(frozen=True)
class ParserConfig:
    # Order used when the source name has no recognized extension.
    default_format: FormatName = "log"

    def __post_init__(self) -> None:
        if self.default_format not in FORMAT_ORDERS:
            raise ValueError(f"invalid default format: {self.default_format!r}")


def format_for_source(source_name: str | None, config: ParserConfig) -> FormatName:
    if source_name:
        suffix = PurePath(source_name.strip()).suffix.lower()
        fmt = _EXTENSION_FORMATS.get(suffix)
        if fmt is not None:
            return fmt
    return config.default_format


def recognizers_for(source_name: str | None, config: ParserConfig | None = None) -> tuple[Recognizer, ...]:
    fmt = format_for_source(source_name, config or ParserConfig())
    return tuple(RECOGNIZERS[name] for name in FORMAT_ORDERS[fmt])


def parse_line(line: str, recognizers: Iterable[Recognizer]) -> Frame | None:
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_MARKER):
        return None
    for recognize in recognizers:
        frame = recognize(stripped)
        if frame is not None:
            return frame
    return None


def parse_log(text: str, source_name: str | None = None, *, config: ParserConfig | None = None) -> list[Frame]:
    """Parse logger text into frames, in source order.

    Lines that no recognizer accepts are dropped; the result may be empty.
    """

    recognizers = recognizers_for(source_name, config)
    frames: list[Frame] = []
    for line in (text or "").split("\n"):
        frame = parse_line(line, recognizers)
        if frame is not None:
            frames.append(frame)
    return frames
