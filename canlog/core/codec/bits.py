"""Bit addressing for the two signal layouts found in DBC catalogs.

Little endian (Intel, ``@1``): payload bit ``b`` is bit ``b % 8`` of byte
``b // 8`` counted from the LSB; raw bit ``i`` comes from payload bit
``start + i``.

Big endian (Motorola, ``@0``): the payload is read as one MSB-first stream of
at most 64 bits where stream bit ``k`` is bit ``7 - k % 8`` of byte ``k // 8``.
Bytes are not reversed. The signal covers stream bits ``[start, start + len)``
and the first bit read is the most significant bit of the raw value.

Bits that fall outside the payload read as zero and are never written.
"""

from __future__ import annotations

from canlog.core.matrix.models import SignalDefinition


STREAM_BITS = 64


def extract_raw(payload: bytes, signal: SignalDefinition) -> int:
    """Unsigned raw value of ``signal`` in ``payload``."""
    length = int(signal.length)
    start = int(signal.start_bit)
    if length <= 0:
        return 0
    raw = 0
    if signal.is_little_endian:
        for i in range(length):
            bit = start + i
            byte = bit // 8
            if byte >= len(payload):
                continue
            if (payload[byte] >> (bit % 8)) & 1:
                raw |= 1 << i
        return raw

    stop = min(start + length, STREAM_BITS, 8 * len(payload))
    for k in range(max(start, 0), stop):
        if (payload[k // 8] >> (7 - k % 8)) & 1:
            raw |= 1 << (length - 1 - (k - start))
    return raw


def insert_raw(payload: bytearray, signal: SignalDefinition, raw: int) -> None:
    """Write the low ``length`` bits of ``raw`` into ``payload`` in place."""
    length = int(signal.length)
    start = int(signal.start_bit)
    if length <= 0:
        return
    value = int(raw) & ((1 << length) - 1)
    if signal.is_little_endian:
        for i in range(length):
            bit = start + i
            byte = bit // 8
            if byte >= len(payload):
                continue
            _set_bit(payload, byte, bit % 8, (value >> i) & 1)
        return

    stop = min(start + length, STREAM_BITS, 8 * len(payload))
    for k in range(max(start, 0), stop):
        _set_bit(payload, k // 8, 7 - k % 8, (value >> (length - 1 - (k - start))) & 1)


def to_signed(raw: int, length: int) -> int:
    """Two's complement reinterpretation of a ``length``-bit raw value."""
    if length > 0 and raw & (1 << (length - 1)):
        return raw - (1 << length)
    return raw


def _set_bit(payload: bytearray, byte: int, bit: int, value: int) -> None:
    if value:
        payload[byte] |= 1 << bit
    else:
        payload[byte] &= ~(1 << bit) & 0xFF
