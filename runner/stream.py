import struct
from typing import Tuple

from judge.exception import MalformedStreamError

# 1 byte stream selector, 3 reserved bytes, 4 byte big-endian payload length
_HEADER = struct.Struct('>BxxxL')
STDOUT = 1


def demultiplex(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split a docker multiplexed log stream into (stdout, stderr).

    Frames with selector 1 go to stdout, every other selector to stderr.
    Raises MalformedStreamError when a header or payload is cut short.
    """
    stdout = bytearray()
    stderr = bytearray()
    offset = 0
    size = len(data)
    while offset < size:
        if size - offset < _HEADER.size:
            raise MalformedStreamError('truncated stream frame header')
        selector, length = _HEADER.unpack_from(data, offset)
        offset += _HEADER.size
        if size - offset < length:
            raise MalformedStreamError('truncated stream frame payload')
        target = stdout if selector == STDOUT else stderr
        target += data[offset:offset + length]
        offset += length
    return bytes(stdout), bytes(stderr)
