from __future__ import annotations

from canlog.core.frames.models import Frame, canonical_id, make_frame
from canlog.core.frames.parser import FORMAT_ORDERS, ParserConfig, format_for_source, parse_line, parse_log, recognizers_for
from canlog.core.frames.recognizers import RECOGNIZERS

__all__ = [
    "FORMAT_ORDERS",
    "Frame",
    "ParserConfig",
    "RECOGNIZERS",
    "canonical_id",
    "format_for_source",
    "make_frame",
    "parse_line",
    "parse_log",
    "recognizers_for",
]
