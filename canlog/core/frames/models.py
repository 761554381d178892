from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Frame:
    timestamp: float | str
    # Canonical "0x" + uppercase hex, whatever radix/prefix the source used.
    id: str
    dlc: int
    data: tuple[str, ...]
    is_tx: bool = False
    decoded: dict[str, float] | None = None

    @property
    def direction(self) -> str:
        return "Tx" if self.is_tx else "Rx"

    @property
    def arbitration_id(self) -> int | None:
        try:
            return int(self.id, 16)
        except ValueError:
            return None

    @property
    def payload(self) -> bytes:
        """Payload bytes, limited to the shorter of ``dlc`` and the data tokens.

        Tokens that are not valid hex read as zero so decoding stays total.
        """
        count = max(0, min(int(self.dlc), len(self.data)))
        out = bytearray()
        for token in self.data[:count]:
            try:
                out.append(int(token, 16) & 0xFF)
            except ValueError:
                out.append(0)
        return bytes(out)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "timestamp": self.timestamp,
            "id": self.id,
            "dlc": int(self.dlc),
            "data": list(self.data),
            "direction": self.direction,
        }
        if self.decoded is not None:
            out["decoded"] = dict(self.decoded)
        return out


def canonical_id(raw: str) -> str:
    text = raw.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    return f"0x{text.upper()}"


def make_frame(timestamp: float | str, raw_id: str, tokens: list[str], *, is_tx: bool = False) -> Frame:
    data = tuple(tokens)
    return Frame(timestamp=timestamp, id=canonical_id(raw_id), dlc=len(data), data=data, is_tx=is_tx)
