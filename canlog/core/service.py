from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from canlog.core.codec.engine import decode_frame, decode_frames, encode_message
from canlog.core.frames.models import Frame, canonical_id, make_frame
from canlog.core.frames.parser import ParserConfig, parse_log
from canlog.core.frames.recognizers import split_byte_pairs, split_byte_tokens
from canlog.core.matrix.loader import MatrixError, resolve_matrix
from canlog.core.matrix.models import CanMatrix
from canlog.core.sources.pythoncan import IngestError, is_message_log, read_message_log
from canlog.logging import TRACE_LEVEL, source_context


log = logging.getLogger(__name__)


@dataclass
class IngestResult:
    frames: list[Frame] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    matrix_source: str = "default"

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def decoded_count(self) -> int:
        return sum(1 for f in self.frames if f.decoded)

    @property
    def has_decoded(self) -> bool:
        return self.decoded_count > 0

    def unknown_ids(self) -> list[str]:
        return sorted({f.id for f in self.frames if f.decoded is None})


class IngestService:
    """Log ingestion API used by the CLI: parse sources, then decode against one matrix."""

    def __init__(
        self,
        *,
        matrix: CanMatrix | None = None,
        matrix_path: str | Path | None = None,
        parser_config: ParserConfig | None = None,
    ) -> None:
        if matrix is not None:
            self._matrix, self._matrix_source = matrix, "custom"
        else:
            self._matrix, self._matrix_source = resolve_matrix(matrix_path)
        self._parser_config = parser_config or ParserConfig()
        log.debug(
            "Matrix ready",
            extra={
                "matrix": self._matrix_source,
                "messages": len(self._matrix),
                "signals": self._matrix.signal_count,
            },
        )

    @property
    def matrix(self) -> CanMatrix:
        return self._matrix

    @property
    def matrix_source(self) -> str:
        return self._matrix_source

    def parse_text(self, text: str, source_name: str | None = None) -> list[Frame]:
        return parse_log(text, source_name, config=self._parser_config)

    def read_file(self, path: str | Path) -> list[Frame]:
        p = Path(path).expanduser()
        with source_context(p.name):
            if is_message_log(p):
                frames = read_message_log(p)
            else:
                try:
                    text = p.read_text(encoding="utf-8", errors="replace")
                except FileNotFoundError as exc:
                    raise IngestError(f"{p}: file not found") from exc
                except OSError as exc:
                    raise IngestError(f"{p}: failed to read") from exc
                frames = self.parse_text(text, p.name)
            if not frames:
                log.warning("No frames recognized", extra={"path": str(p)})
            else:
                log.info("Log parsed", extra={"path": str(p), "frame_count": len(frames)})
        return frames

    def ingest_files(self, paths: Iterable[str | Path]) -> IngestResult:
        result = IngestResult(matrix_source=self._matrix_source)
        for path in paths:
            result.frames.extend(self.read_file(path))
            result.sources.append(str(path))
        result.frames = self.decode(result.frames)
        log.info(
            "Ingest complete",
            extra={
                "frame_count": result.frame_count,
                "decoded_count": result.decoded_count,
                "source_count": len(result.sources),
            },
        )
        if log.isEnabledFor(TRACE_LEVEL):
            for frame_id in result.unknown_ids():
                log.trace("No catalog entry", extra={"frame_id": frame_id})  # type: ignore[attr-defined]
        return result

    def decode(self, frames: Iterable[Frame]) -> list[Frame]:
        return decode_frames(frames, self._matrix)

    def decode_single(self, frame_id: str, data_hex: str) -> Frame:
        compact = "".join(data_hex.split())
        if len(data_hex.split()) > 1 or len(compact) <= 2:
            tokens = split_byte_tokens(data_hex)
        else:
            tokens = split_byte_pairs(compact)
        return decode_frame(make_frame(0.0, frame_id, tokens), self._matrix)

    def encode(self, frame_id: str, values: Mapping[str, float]) -> Frame:
        message = self._matrix.message_for(canonical_id(frame_id))
        if message is None:
            raise MatrixError(f"no message with id {canonical_id(frame_id)} in {self._matrix_source} matrix")
        payload = encode_message(message, values)
        frame = make_frame(0.0, frame_id, [f"{b:02X}" for b in payload])
        return decode_frame(frame, self._matrix)
