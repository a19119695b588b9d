"""
This module handles basic communication structures and functions

Every party owns one transport, bound at its own address. A transport can `send` a message to any
other address on a tag, and `receive`/`probe`/`try_probe` messages addressed to it, filtered by
source and tag. Ordering is preserved per (source, destination, tag) and nothing more.

Two implementations: `LocalTransport` for parties living as threads of one process, connected
through a `LocalHub`, and `ZmqTransport` for parties in separate processes or hosts.
"""

# NOTE neither implementation is thread safe -- a transport is expected to be used by a single
# thread, that of its owner. Sending *to* a transport from many threads is fine

from collections import deque
from dataclasses import dataclass
import logging
import queue
import threading
from typing import Protocol, runtime_checkable

import zmq

from framedist.executor.msg import Message
from framedist.executor.serde import check_tag, des_message, ser_message
from framedist.low.core import Address, Tag

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    pass


@dataclass(frozen=True)
class Envelope:
    source: Address
    tag: Tag
    parts: list[bytes]


@runtime_checkable
class Transport(Protocol):
    @property
    def address(self) -> Address:
        raise NotImplementedError

    def send(self, payload: Message, destination: Address, tag: Tag) -> None:
        """Fire and forget"""
        raise NotImplementedError

    def receive(self, source: Address|None, tag: Tag) -> tuple[Address, Message]:
        """Blocks until a matching message is available, consumes it. `None` source for any"""
        raise NotImplementedError

    def probe(self, source: Address|None, tag: Tag) -> Address:
        """Blocks until a matching message is available, returns its source without consuming it"""
        raise NotImplementedError

    def try_probe(self, source: Address|None, tag: Tag) -> Address|None:
        """Like probe, but returns None at once if no matching message is available"""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class Mailbox:
    """Implements the receiving side of a Transport on top of `_pull`, which provides raw envelopes
    in arrival order. Envelopes pulled while looking for a different tag or source are kept per tag"""

    def __init__(self) -> None:
        self.pending: dict[Tag, deque[Envelope]] = {tag: deque() for tag in Tag}
        self.closed = False

    def _pull(self, timeout_ms: int|None) -> Envelope|None:
        """Next envelope addressed to us, blocking up to timeout_ms (forever if None)"""
        raise NotImplementedError

    def _fill(self, timeout_ms: int|None) -> bool:
        if self.closed:
            raise TransportError("transport is closed")
        envelope = self._pull(timeout_ms)
        if envelope is None:
            return False
        self.pending[envelope.tag].append(envelope)
        return True

    def _match(self, source: Address|None, tag: Tag) -> Envelope|None:
        for envelope in self.pending[tag]:
            if source is None or envelope.source == source:
                return envelope
        return None

    def probe(self, source: Address|None, tag: Tag) -> Address:
        while (envelope := self._match(source, tag)) is None:
            self._fill(None)
        return envelope.source

    def try_probe(self, source: Address|None, tag: Tag) -> Address|None:
        if (envelope := self._match(source, tag)) is None:
            while self._fill(0):
                pass
            envelope = self._match(source, tag)
        return envelope.source if envelope is not None else None

    def receive(self, source: Address|None, tag: Tag) -> tuple[Address, Message]:
        self.probe(source, tag)
        envelope = self._match(source, tag)
        if envelope is None:
            raise TransportError(f"probed message from {source} on {tag.name} vanished")
        self.pending[tag].remove(envelope)
        return envelope.source, des_message(tag, envelope.parts)


## Local

class LocalHub:
    """Registry of in-process transports, keyed by address"""

    def __init__(self) -> None:
        self.queues: dict[Address, queue.Queue[Envelope|None]] = {}
        self.lock = threading.Lock()

    def register(self, address: Address) -> "LocalTransport":
        with self.lock:
            if address in self.queues:
                raise ValueError(f"double registration of {address}")
            self.queues[address] = queue.Queue()
        return LocalTransport(self, address)

    def unregister(self, address: Address) -> None:
        with self.lock:
            self.queues.pop(address, None)

    def deliver(self, destination: Address, envelope: Envelope) -> None:
        with self.lock:
            q = self.queues.get(destination, None)
        if q is None:
            raise TransportError(f"no transport registered at {destination}")
        q.put(envelope)


class LocalTransport(Mailbox):
    def __init__(self, hub: LocalHub, address: Address) -> None:
        super().__init__()
        self.hub = hub
        self._address = address
        self.inbox = hub.queues[address]

    @property
    def address(self) -> Address:
        return self._address

    def _pull(self, timeout_ms: int|None) -> Envelope|None:
        try:
            if timeout_ms == 0:
                return self.inbox.get_nowait()
            return self.inbox.get(timeout=timeout_ms / 1_000 if timeout_ms is not None else None)
        except queue.Empty:
            return None

    def send(self, payload: Message, destination: Address, tag: Tag) -> None:
        if self.closed:
            raise TransportError("transport is closed")
        check_tag(payload, tag)
        self.hub.deliver(destination, Envelope(self._address, tag, ser_message(payload)))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.hub.unregister(self._address)
        # wakes up a receive blocked in another thread, which then finds the transport closed
        self.inbox.put(None)


## Zmq

def _ser_tag(tag: Tag) -> bytes:
    return tag.value.to_bytes(1, "big")


class ZmqTransport(Mailbox):
    """Binds a PULL socket at `address`, connects a PUSH socket per destination on first send.
    Every multipart message is `[source, tag, *payload]`"""

    def __init__(self, address: Address, linger_ms: int = 1000) -> None:
        super().__init__()
        self._address = address
        self.linger_ms = linger_ms
        self.context = zmq.Context()
        self.socket = self.context.socket(zmq.PULL)
        self.socket.bind(address)
        self.poller = zmq.Poller()
        self.poller.register(self.socket, flags=zmq.POLLIN)
        self.peers: dict[Address, zmq.Socket] = {}
        logger.debug(f"bound transport at {address}")

    @property
    def address(self) -> Address:
        return self._address

    def _peer(self, destination: Address) -> zmq.Socket:
        if (socket := self.peers.get(destination, None)) is None:
            socket = self.context.socket(zmq.PUSH)
            # NOTE we set the linger in case the receiving side dies before consuming a message
            # -- otherwise we would hang indefinitely at close
            socket.set(zmq.LINGER, self.linger_ms)
            socket.connect(destination)
            self.peers[destination] = socket
        return socket

    def _pull(self, timeout_ms: int|None) -> Envelope|None:
        ready = self.poller.poll(timeout_ms)
        if len(ready) > 1:
            raise TransportError(f"unexpected number of socket events: {len(ready)}")
        if not ready:
            return None
        data = ready[0][0].recv_multipart()
        if len(data) < 3:
            raise TransportError(f"malformed envelope of {len(data)} parts")
        try:
            tag = Tag(int.from_bytes(data[1], "big"))
        except ValueError as e:
            raise TransportError(f"unknown tag {data[1]!r}") from e
        return Envelope(data[0].decode(), tag, data[2:])

    def send(self, payload: Message, destination: Address, tag: Tag) -> None:
        if self.closed:
            raise TransportError("transport is closed")
        check_tag(payload, tag)
        self._peer(destination).send_multipart([self._address.encode(), _ser_tag(tag), *ser_message(payload)])

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for socket in self.peers.values():
            socket.close()
        self.socket.close()
        self.context.term()
