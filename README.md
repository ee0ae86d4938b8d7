# msgbus

Building blocks for a message bus. Endpoints carry a `Label`, which is a set
of names. Every message carries a `Selector` that says which endpoints may
take it. A selector holds a `LabelOp` expression, a mode (unicast or
multicast) and a time to live for messages that cannot be routed yet. A
`BusController` admits endpoints and routes encoded messages between them.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Labels and routing expressions (`msgbus.label`)

```python
from msgbus.label import LabelOp, label

moon = label("solar", "earth", "moon")
moon.all(["solar", "moon"])          # True
moon.remove("moon")
moon.all(["moon"])                   # False

op = LabelOp.coerce("foo").and_("bar").or_(~LabelOp.coerce("baz"))
op.validate(label("foo", "bar"))     # True
op.validate(label("baz"))            # False
```

A `Label` keeps the order in which names were inserted and ignores
duplicates.

`LabelOp` expressions are built from `TrueOp`, `FalseOp`, `Leaf`, `Not`,
`And` and `Or`. A `Leaf` matches when the label holds its name.
`LabelOp.coerce` turns a string into a `Leaf`, and turns `True` or `False`
into `TrueOp()` or `FalseOp()`.

## Messages (`msgbus.message`)

```python
from msgbus.message import BytesMessage, Message, Selector

selector = Selector.multicast("receiver")
selector.ttl = 2.0                   # seconds kept when nobody can take it
message = Message(selector, BytesMessage(format=0, data=b"\x00\x01\x02\x03"))
encoded = message.into_encoded()
again = encoded.decode_payload(BytesMessage)
```

Payload types derive from `Payload`, and each one has a 16-byte `UUID`. The
package provides three of them: `BytesMessage`, `ConnectMessage` and
`ConnectMessageAck`.

A `MessageBox(BytesMessage, ...)` groups several payload types, so that a
receiver can decode whichever of them arrives. The box picks the type by
the UUID in the selector. A UUID that is not in the box raises
`TypeUuidNotFound`.

## Wire encoding (`msgbus.codec`, `msgbus.version`)

`Encoder` and `Decoder` write and read a compact binary form:

- Integers use a variable-length form: values below 251 take one byte, and larger values get a tag byte followed by a little-endian value.
- Strings and byte strings carry a length prefix.

`encode_varint` and `decode_varint` expose the integer form on its own.
Selectors, labels, label expressions, versions and the payload types all
encode through these classes.

`version()` returns the protocol `Version` (0.8.1). `Version.compatible`
matches pre-1.0 versions on the minor number and later versions on the
major number.

## Memory regions (`msgbus.memory_registry`)

```python
from msgbus.memory_registry import MemoryRegistry

registry = MemoryRegistry()
region = registry.alloc(16, None)
view = region.map(0, None)
view[0] = 0x2E
region.release()
```

Clones of a `MemoryRegion` share one block, and `ref_count` counts the live
handles. A handle is dropped by calling `release()` or by leaving its
`with` block.

`MemoryRegistry.alloc` hands back an existing region instead of a new one
when all of these hold:

- nobody but the registry holds the region any more;
- it carries the same tag;
- its size is at least `min_size` and below twice `min_size`;
- it was allocated within the registry's `lifetime` (5 seconds by default).

`alloc_with_free` attaches a callback. The registry calls it on the next
`alloc` or `maintain` after the region is no longer held elsewhere, or when
the entry expires.

## The bus controller (`msgbus.bus_controller`)

```python
import queue

from msgbus.bus_controller import BusController, Remote
from msgbus.label import label
from msgbus.message import BytesMessage, ConnectMessage, ConnectMessageAck, Message, Selector
from msgbus.version import version

local = queue.Queue()
controller = BusController(label("controller"), "token", local)

moon = Remote()
connect = Message(
    Selector.unicast(True), ConnectMessage(version(), "token", label("moon"))
).into_encoded()
connect.reply_remote = moon
controller.process(connect)
moon.inbox[0].decode_payload(ConnectMessageAck).payload.kind   # AckKind.OK

controller.process(
    Message(Selector.unicast("moon"), BytesMessage(0, b"hi")).into_encoded()
)
moon.inbox[-1].decode_payload(BytesMessage).payload.data       # b"hi"
```

`BusController.process` handles a single message.

When the message is a `ConnectMessage`, the controller checks it and answers
with a `ConnectMessageAck`. The answer is `ok` with a new endpoint id when
the sender is admitted, `err_version` when its version is incompatible or
its message cannot be read, and `err_token` when the token differs.

Any other message goes to the endpoints whose label matches. A unicast
message goes to the first endpoint that accepts it, and a multicast message
goes to all of them. A message that matches the controller's own label is
also put on `local_queue`.

A message that nobody takes is buffered when its `ttl` is above zero. The
controller retries buffered messages when a new endpoint joins, and drops
them once they expire. Endpoints whose `Remote` is closed are dropped when
a send to them fails, and by the check that `detect_reachable` runs every
30 seconds.

`version_mismatch_reply(remote)` sends an `err_version` answer to a peer.

## Errors (`msgbus.errors`)

Low-level failures raise subclasses of `BusError`:

- `EncodeError`, `DecodeError`;
- `TypeUuidNotFound`;
- `BusTimeout`, `Disconnected`;
- `VersionMismatch`, `TokenMismatch`;
- `IdentifierInUse`, `IdentifierNotInUse`;
- `MemoryRegionMappingError`, `PermissionDenied`.

`JoinError`, `SendError` and `RecvError` each have subclasses for timeouts,
version and token mismatches and permission problems. `RecvError` also has
`RecvDecodeError`. `send_error_from_join` and `recv_error_from_join` map a
join failure onto the matching send or receive failure.

`Options` in `msgbus.options` holds the parameters for joining a bus:

- `identifier`;
- `label`;
- `token`;
- `controller_affinity`.

## What the package does not do

There is no `join` function, and there are no sender or receiver endpoint
objects. Nothing connects separate processes: `Remote` is an in-process
queue, and `MemoryRegion` is ordinary process memory, not memory shared
with the operating system.

The `BusController` has no thread or event loop of its own. The caller
feeds it messages through `process`. There is no command-line program.