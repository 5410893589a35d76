"""Fixed-width integer I/O on binary streams.

Integers are 32-bit signed in native byte order with standard sizes
(``struct`` format prefix ``=``), so files are portable between machines of
the same endianness only.
"""

import struct
from typing import BinaryIO, List, Sequence

from ..errors import CorruptStreamError

INT32 = struct.Struct("=i")


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes or raise CorruptStreamError."""
    try:
        data = stream.read(size)
    except OSError as e:
        raise CorruptStreamError(f"Failed to read {size} bytes: {e}") from e
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise CorruptStreamError(f"Unexpected end of stream: wanted {size} bytes, got {got}")
    return data


def read_int32(stream: BinaryIO) -> int:
    return INT32.unpack(read_exact(stream, INT32.size))[0]


def read_int32s(stream: BinaryIO, count: int) -> List[int]:
    if count == 0:
        return []
    data = read_exact(stream, INT32.size * count)
    return list(struct.unpack(f"={count}i", data))


def write_int32s(stream: BinaryIO, values: Sequence[int]) -> None:
    try:
        stream.write(struct.pack(f"={len(values)}i", *values))
    except struct.error as e:
        raise ValueError(f"Values {list(values)} do not fit in int32: {e}") from e
