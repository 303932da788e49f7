"""
Byte-comparable composite keys.

Layout of a map key:
    len(namespace) | namespace | len(part1) | part1 | ... | partN

Every component except the last carries a 2-byte big-endian length, the last
is written raw. Integers are 8-byte big-endian, so numeric order is byte
order. Keys sharing leading components therefore sit in one contiguous byte
range, and within that range they sort by the raw bytes of the final part.
"""

from typing import Optional, Tuple, Union

from .contract import MAX_CODE_ID

KeyPart = Union[str, int]

MAX_PART_LENGTH = 0xFFFF


class KeyEncodingError(ValueError):
    """Key component cannot be encoded"""
    pass


def encodePart(part: KeyPart) -> bytes:
    """Encode one key component to bytes"""
    if isinstance(part, bool):
        raise KeyEncodingError(f"Unsupported key component type: {type(part).__name__}")
    if isinstance(part, int):
        if part < 0 or part > MAX_CODE_ID:
            raise KeyEncodingError(f"Integer key component out of u64 range: {part}")
        return part.to_bytes(8, 'big')
    if isinstance(part, str):
        try:
            return part.encode('utf-8')
        except UnicodeEncodeError as e:
            raise KeyEncodingError(f"Key component is not valid UTF-8: {e}")
    raise KeyEncodingError(f"Unsupported key component type: {type(part).__name__}")


def lengthPrefixed(raw: bytes) -> bytes:
    if len(raw) > MAX_PART_LENGTH:
        raise KeyEncodingError(f"Key component too long: {len(raw)} bytes (max {MAX_PART_LENGTH})")
    return len(raw).to_bytes(2, 'big') + raw


def singletonKey(namespace: str) -> bytes:
    """Key of a single-value slot (raw namespace, no length prefix)"""
    return namespace.encode('utf-8')


def prefixKey(namespace: str, *parts: KeyPart) -> bytes:
    """All given components length-prefixed: the shared head of every key below them"""
    out = lengthPrefixed(namespace.encode('utf-8'))
    for part in parts:
        out += lengthPrefixed(encodePart(part))
    return out


def mapKey(namespace: str, *parts: KeyPart) -> bytes:
    """Full map key: leading components length-prefixed, last one raw"""
    if not parts:
        raise KeyEncodingError("Map key needs at least one component")
    return prefixKey(namespace, *parts[:-1]) + encodePart(parts[-1])


def prefixSuccessor(prefix: bytes) -> Optional[bytes]:
    """
    Smallest key greater than every key starting with prefix.

    Returns None when no such key exists (prefix is all 0xff), meaning the
    range is unbounded above.
    """
    raw = bytearray(prefix)
    while raw:
        if raw[-1] < 0xFF:
            raw[-1] += 1
            return bytes(raw)
        raw.pop()
    return None


def prefixRange(namespace: str, *parts: KeyPart) -> Tuple[bytes, Optional[bytes]]:
    """Half-open [start, end) byte range covering every key under the prefix"""
    start = prefixKey(namespace, *parts)
    return start, prefixSuccessor(start)
