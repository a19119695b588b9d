"""
Tests the probe/receive semantics of both transports
"""

import threading

import numpy as np
import pytest

from framedist.executor.comms import LocalHub, Transport, TransportError, ZmqTransport
from framedist.executor.msg import ProcessedFrame, TaskRequest
from framedist.low.core import ANY, Done, Frame, Tag


def frame(i: int) -> Frame:
    return Frame(index=i, grid=np.full((2, 2), i))


def check_semantics(a: Transport, b: Transport, c: Transport) -> None:
    # nothing there yet
    assert b.try_probe(ANY, Tag.TASK_REQUEST) is None

    a.send(ProcessedFrame(frame=frame(0)), b.address, Tag.PROCESSED_FRAME)
    a.send(TaskRequest(worker=a.address, last_submitted=0), b.address, Tag.TASK_REQUEST)
    c.send(ProcessedFrame(frame=frame(1)), b.address, Tag.PROCESSED_FRAME)
    a.send(ProcessedFrame(frame=frame(2)), b.address, Tag.PROCESSED_FRAME)

    # probing one tag does not lose the other
    assert b.probe(ANY, Tag.TASK_REQUEST) == a.address
    assert b.probe(ANY, Tag.TASK_REQUEST) == a.address # not consumed
    assert b.receive(ANY, Tag.TASK_REQUEST) == (a.address, TaskRequest(worker=a.address, last_submitted=0))

    # source filter, fifo per source
    assert b.receive(c.address, Tag.PROCESSED_FRAME) == (c.address, ProcessedFrame(frame=frame(1)))
    assert b.receive(a.address, Tag.PROCESSED_FRAME) == (a.address, ProcessedFrame(frame=frame(0)))
    assert b.receive(ANY, Tag.PROCESSED_FRAME) == (a.address, ProcessedFrame(frame=frame(2)))
    assert b.try_probe(ANY, Tag.PROCESSED_FRAME) is None

    b.send(Done(), a.address, Tag.TASK_RESPONSE)
    assert a.receive(b.address, Tag.TASK_RESPONSE) == (b.address, Done())


def test_local():
    hub = LocalHub()
    a, b, c = hub.register("a"), hub.register("b"), hub.register("c")
    check_semantics(a, b, c)
    with pytest.raises(TransportError):
        a.send(Done(), "nowhere", Tag.TASK_RESPONSE)
    with pytest.raises(ValueError):
        hub.register("a")
    b.close()
    with pytest.raises(TransportError):
        a.send(Done(), "b", Tag.TASK_RESPONSE)
    with pytest.raises(TransportError):
        b.try_probe(ANY, Tag.TASK_REQUEST)
    with pytest.raises(TransportError):
        b.send(Done(), a.address, Tag.TASK_RESPONSE)


def test_local_close_wakes_receiver():
    hub = LocalHub()
    a = hub.register("a")
    errors: list[Exception] = []

    def target() -> None:
        try:
            a.receive(ANY, Tag.TASK_RESPONSE)
        except TransportError as e:
            errors.append(e)

    receiver = threading.Thread(target=target)
    receiver.start()
    receiver.join(0.1)
    assert receiver.is_alive()
    a.close()
    receiver.join(2)
    assert not receiver.is_alive()
    assert len(errors) == 1


def test_local_wrong_tag():
    hub = LocalHub()
    a, b = hub.register("a"), hub.register("b")
    with pytest.raises(ValueError):
        a.send(Done(), b.address, Tag.TASK_REQUEST)


def test_zmq():
    transports = [ZmqTransport(f"tcp://localhost:{port}") for port in (13301, 13302, 13303)]
    try:
        a, b, c = transports
        check_semantics(a, b, c)
    finally:
        for t in transports:
            t.close()
    with pytest.raises(TransportError):
        a.send(Done(), b.address, Tag.TASK_RESPONSE)
