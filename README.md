# litefs

Encoding and decoding of the binary frames that replica nodes exchange when
they stream database changes from a primary node.

All of it lives in the `litefs.stream` module.

## Wire format

Every frame starts with a 4-byte big-endian type code, listed in the
`StreamFrameType` enum. A payload that depends on the type follows it.
Integers are big-endian. Strings are UTF-8 bytes that follow a `u32` byte
length.

| Type | `StreamFrameType` | Class                  | Payload                                    |
|------|-------------------|------------------------|--------------------------------------------|
| 1    | `LTX`             | `LTXStreamFrame`       | `size` (i64), `name` (string)              |
| 2    | `READY`           | `ReadyStreamFrame`     | none                                       |
| 3    | `END`             | `EndStreamFrame`       | none                                       |
| 4    | `DROP_DB`         | `DropDBStreamFrame`    | `name` (string), deprecated                |
| 5    | `HANDOFF`         | `HandoffStreamFrame`   | `lease_id` (string)                        |
| 6    | `HWM`             | `HWMStreamFrame`       | `txid` (u64), `name` (string)              |
| 7    | `HEARTBEAT`       | `HeartbeatStreamFrame` | `timestamp`, ms since the Unix epoch (i64) |

Each frame class is a dataclass. The fields in the table are its only fields,
and all of them have defaults (`0` or `""`). Its class attribute `frame_type`
holds its `StreamFrameType`.

## Installation

```
pip install litefs
```

## Usage

```python
import io

from litefs.stream import LTXStreamFrame, read_stream_frame, write_stream_frame

buf = io.BytesIO()
write_stream_frame(buf, LTXStreamFrame(size=100, name="test.db"))

buf.seek(0)
frame = read_stream_frame(buf)
assert frame == LTXStreamFrame(size=100, name="test.db")
```

`write_stream_frame(writer, frame)` writes the type code and then the payload
to any binary file-like object.

`read_stream_frame(reader)` reads one whole frame from any binary file-like
object. It raises:

- `EOFError` when the stream is empty before a frame starts;
- `litefs.stream.UnexpectedEOFError`, a subclass of `EOFError`, when the
  stream ends partway through a frame;
- `litefs.stream.InvalidStreamFrameTypeError`, a subclass of `ValueError`,
  when the type code is unknown. Its message reads like
  `invalid stream frame type: 0x1020304`, and its `frame_type` attribute holds
  the code that was read.

A single payload, without the type code, can be read or written on its own.
Call `read_from(reader)` on a concrete frame class, for example
`HWMStreamFrame.read_from(reader)`, or call `frame.write_to(writer)` on a
frame. A payload that is cut short raises `UnexpectedEOFError`.

## What this package does not do

This package only encodes and decodes frames. It has no network client or
server, opens no connections, and does not read, write or apply the LTX
files that `LTXStreamFrame` announces. A program that streams databases has to
provide its own transport and storage.

## Running the tests

```
pip install -e ".[test]"
pytest
```