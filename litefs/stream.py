"""Binary framing for the replication stream exchanged between nodes.

Every frame on the wire is a big-endian ``uint32`` frame type followed by a
type-specific payload. Integers are big-endian and strings are prefixed with
their ``uint32`` byte length.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, ClassVar

__all__ = [
    "UnexpectedEOFError",
    "InvalidStreamFrameTypeError",
    "StreamFrameType",
    "StreamFrame",
    "LTXStreamFrame",
    "ReadyStreamFrame",
    "EndStreamFrame",
    "DropDBStreamFrame",
    "HandoffStreamFrame",
    "HWMStreamFrame",
    "HeartbeatStreamFrame",
    "read_stream_frame",
    "write_stream_frame",
]

_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")
_I64 = struct.Struct(">q")


class UnexpectedEOFError(EOFError):
    """The stream ended in the middle of a frame."""

    def __init__(self, message: str = "unexpected EOF") -> None:
        super().__init__(message)


class InvalidStreamFrameTypeError(ValueError):
    """The frame type read from the stream is not a known type."""

    def __init__(self, frame_type: int) -> None:
        super().__init__(f"invalid stream frame type: 0x{frame_type:02x}")
        self.frame_type = frame_type


class StreamFrameType(IntEnum):
    LTX = 1
    READY = 2
    END = 3
    DROP_DB = 4
    HANDOFF = 5
    HWM = 6
    HEARTBEAT = 7


def _read_upto(reader: BinaryIO, n: int) -> bytes:
    """Read up to ``n`` bytes, stopping early only at end of stream."""
    chunks = []
    remaining = n
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _read_exact(reader: BinaryIO, n: int) -> bytes:
    data = _read_upto(reader, n)
    if len(data) != n:
        raise UnexpectedEOFError()
    return data


def _read_u32(reader: BinaryIO) -> int:
    return _U32.unpack(_read_exact(reader, _U32.size))[0]


def _read_u64(reader: BinaryIO) -> int:
    return _U64.unpack(_read_exact(reader, _U64.size))[0]


def _read_i64(reader: BinaryIO) -> int:
    return _I64.unpack(_read_exact(reader, _I64.size))[0]


def _read_string(reader: BinaryIO) -> str:
    n = _read_u32(reader)
    return _read_exact(reader, n).decode("utf-8", errors="surrogateescape")


def _encode_string(value: str) -> bytes:
    data = value.encode("utf-8", errors="surrogateescape")
    return _U32.pack(len(data)) + data


class StreamFrame:
    """Base class of all stream frames."""

    frame_type: ClassVar[StreamFrameType]

    @classmethod
    def read_from(cls, reader: BinaryIO) -> StreamFrame:
        """Decode the frame payload (without the type prefix) from ``reader``."""
        raise NotImplementedError(f"{cls.__name__} does not define a payload decoder")

    def write_to(self, writer: BinaryIO) -> None:
        """Encode the frame payload (without the type prefix) to ``writer``."""
        raise NotImplementedError(f"{type(self).__name__} does not define a payload encoder")


@dataclass
class LTXStreamFrame(StreamFrame):
    """Announces an LTX file of ``size`` bytes for database ``name``."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.LTX

    size: int = 0
    name: str = ""

    @classmethod
    def read_from(cls, reader: BinaryIO) -> LTXStreamFrame:
        size = _read_i64(reader)
        name = _read_string(reader)
        return cls(size=size, name=name)

    def write_to(self, writer: BinaryIO) -> None:
        writer.write(_I64.pack(self.size))
        writer.write(_encode_string(self.name))


@dataclass
class ReadyStreamFrame(StreamFrame):
    """Signals that the initial catch-up is complete."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.READY

    @classmethod
    def read_from(cls, reader: BinaryIO) -> ReadyStreamFrame:
        return cls()

    def write_to(self, writer: BinaryIO) -> None:
        pass


@dataclass
class EndStreamFrame(StreamFrame):
    """Signals the end of the stream."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.END

    @classmethod
    def read_from(cls, reader: BinaryIO) -> EndStreamFrame:
        return cls()

    def write_to(self, writer: BinaryIO) -> None:
        pass


@dataclass
class DropDBStreamFrame(StreamFrame):
    """Notifies replicas that a database was deleted (deprecated)."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.DROP_DB

    name: str = ""

    @classmethod
    def read_from(cls, reader: BinaryIO) -> DropDBStreamFrame:
        return cls(name=_read_string(reader))

    def write_to(self, writer: BinaryIO) -> None:
        writer.write(_encode_string(self.name))


@dataclass
class HandoffStreamFrame(StreamFrame):
    """Hands the primary lease over to the receiving node."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.HANDOFF

    lease_id: str = ""

    @classmethod
    def read_from(cls, reader: BinaryIO) -> HandoffStreamFrame:
        return cls(lease_id=_read_string(reader))

    def write_to(self, writer: BinaryIO) -> None:
        writer.write(_encode_string(self.lease_id))


@dataclass
class HWMStreamFrame(StreamFrame):
    """Propagates the high-water mark TXID of a database to replicas."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.HWM

    txid: int = 0
    name: str = ""

    @classmethod
    def read_from(cls, reader: BinaryIO) -> HWMStreamFrame:
        txid = _read_u64(reader)
        name = _read_string(reader)
        return cls(txid=txid, name=name)

    def write_to(self, writer: BinaryIO) -> None:
        writer.write(_U64.pack(self.txid))
        writer.write(_encode_string(self.name))


@dataclass
class HeartbeatStreamFrame(StreamFrame):
    """Tells replicas there have been no recent transactions."""

    frame_type: ClassVar[StreamFrameType] = StreamFrameType.HEARTBEAT

    timestamp: int = 0  # milliseconds since the Unix epoch

    @classmethod
    def read_from(cls, reader: BinaryIO) -> HeartbeatStreamFrame:
        return cls(timestamp=_read_i64(reader))

    def write_to(self, writer: BinaryIO) -> None:
        writer.write(_I64.pack(self.timestamp))


_FRAME_CLASSES: dict[int, type[StreamFrame]] = {
    cls.frame_type: cls
    for cls in (
        LTXStreamFrame,
        ReadyStreamFrame,
        EndStreamFrame,
        DropDBStreamFrame,
        HandoffStreamFrame,
        HWMStreamFrame,
        HeartbeatStreamFrame,
    )
}


def read_stream_frame(reader: BinaryIO) -> StreamFrame:
    """Read a frame type and its payload from ``reader``.

    Raises ``EOFError`` if the stream ends cleanly before a frame begins and
    ``UnexpectedEOFError`` if it ends partway through one.
    """
    header = _read_upto(reader, _U32.size)
    if not header:
        raise EOFError("EOF")
    if len(header) != _U32.size:
        raise UnexpectedEOFError()
    (typ,) = _U32.unpack(header)

    frame_cls = _FRAME_CLASSES.get(typ)
    if frame_cls is None:
        raise InvalidStreamFrameTypeError(typ)
    return frame_cls.read_from(reader)


def write_stream_frame(writer: BinaryIO, frame: StreamFrame) -> None:
    """Write the frame type followed by the frame payload to ``writer``."""
    writer.write(_U32.pack(frame.frame_type))
    frame.write_to(writer)