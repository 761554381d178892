from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping


# DBC extended-frame flag; never part of the identifier seen on the bus.
EXTENDED_ID_FLAG = 0x80000000


@dataclass(frozen=True)
class SignalDefinition:
    name: str
    start_bit: int
    length: int
    is_little_endian: bool
    is_signed: bool
    scale: float = 1.0
    offset: float = 0.0
    # Advisory only; decode never clamps.
    minimum: float = 0.0
    maximum: float = 0.0
    unit: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_bit": int(self.start_bit),
            "length": int(self.length),
            "byte_order": "little_endian" if self.is_little_endian else "big_endian",
            "signed": bool(self.is_signed),
            "scale": float(self.scale),
            "offset": float(self.offset),
            "min": float(self.minimum),
            "max": float(self.maximum),
            "unit": self.unit,
        }


@dataclass(frozen=True)
class MessageDefinition:
    name: str
    dlc: int
    signals: Mapping[str, SignalDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the signal table so a shared matrix cannot be mutated while decoding.
        object.__setattr__(self, "signals", MappingProxyType(dict(self.signals)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "dlc": int(self.dlc),
            "signals": [sig.to_dict() for sig in self.signals.values()],
        }


class CanMatrix(Mapping[str, MessageDefinition]):
    """Read-only catalog keyed by the decimal text of the arbitration id.

    Frames carry their id as ``0x``-prefixed hex; ``key_for`` bridges the two
    representations so a lookup is a single dictionary access.
    """

    __slots__ = ("_messages",)

    def __init__(self, messages: Mapping[str, MessageDefinition] | None = None) -> None:
        normalized: dict[str, MessageDefinition] = {}
        for key, message in (messages or {}).items():
            normalized[normalize_message_id(key)] = message
        self._messages = MappingProxyType(normalized)

    def __getitem__(self, key: str) -> MessageDefinition:
        return self._messages[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"CanMatrix(messages={len(self._messages)}, signals={self.signal_count})"

    @property
    def signal_count(self) -> int:
        return sum(len(m.signals) for m in self._messages.values())

    @staticmethod
    def key_for(frame_id: str | int) -> str | None:
        """Decimal lookup key for a frame id, or None when the id is not hex."""
        if isinstance(frame_id, int):
            return str(frame_id)
        raw = (frame_id or "").strip().lower()
        if raw.startswith("0x"):
            raw = raw[2:]
        if not raw:
            return None
        try:
            return str(int(raw, 16))
        except ValueError:
            return None

    def message_for(self, frame_id: str | int) -> MessageDefinition | None:
        key = self.key_for(frame_id)
        if key is None:
            return None
        return self._messages.get(key)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, message in self._messages.items():
            item = message.to_dict()
            item["id"] = f"0x{int(key):X}"
            out[key] = item
        return out


def normalize_message_id(value: str | int) -> str:
    """Normalize a catalog identifier (decimal or 0x-hex) to decimal text."""
    if isinstance(value, int):
        num = value
    else:
        raw = value.strip()
        if raw.lower().startswith("0x"):
            num = int(raw[2:], 16)
        else:
            num = int(raw, 10)
    if num & EXTENDED_ID_FLAG:
        num &= ~EXTENDED_ID_FLAG
    return str(num)
