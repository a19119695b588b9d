"""
Drives a single worker from a scripted pseudo-coordinator, checking the messages it sends
"""

from threading import Thread

import numpy as np
import pytest

from framedist.executor.comms import LocalHub
from framedist.executor.msg import ProcessedFrame, TaskRequest
from framedist.executor.worker import Worker, WorkerState, worker_loop
from framedist.low.core import ANY, Assigned, Done, Frame, Tag
from framedist.transform import blur_with_delay


def test_worker_sequence():
    hub = LocalHub()
    coordinator = hub.register("coordinator")
    wt = hub.register("w1")
    worker = Worker(wt, "coordinator", blur_with_delay(0))
    frame = Frame(index=7, grid=np.array([[4, 6], [8, 300]]))

    coordinator.send(Assigned(frame=frame), "w1", Tag.TASK_RESPONSE)
    worker.step()
    assert worker.state == WorkerState.requesting
    assert coordinator.receive(ANY, Tag.TASK_REQUEST) == ("w1", TaskRequest(worker="w1", last_submitted=None))
    source, result = coordinator.receive(ANY, Tag.PROCESSED_FRAME)
    assert source == "w1"
    assert result == ProcessedFrame(frame=Frame(index=7, grid=np.array([[12, 13], [14, 160]])))

    coordinator.send(Done(), "w1", Tag.TASK_RESPONSE)
    worker.step()
    assert worker.state == WorkerState.terminated
    assert coordinator.receive(ANY, Tag.TASK_REQUEST) == ("w1", TaskRequest(worker="w1", last_submitted=7))
    # nothing after the terminating request
    assert coordinator.try_probe(ANY, Tag.TASK_REQUEST) is None
    assert coordinator.try_probe(ANY, Tag.PROCESSED_FRAME) is None
    with pytest.raises(ValueError):
        worker.step()


def test_worker_loop_counts():
    hub = LocalHub()
    coordinator = hub.register("coordinator")
    wt = hub.register("w1")
    results = []
    t = Thread(target=lambda: results.append(worker_loop(wt, "coordinator", blur_with_delay(0))))
    t.start()
    for i in range(3):
        coordinator.receive("w1", Tag.TASK_REQUEST)
        coordinator.send(Assigned(frame=Frame(index=i, grid=np.zeros((1, 1), dtype=int))), "w1", Tag.TASK_RESPONSE)
        _, m = coordinator.receive("w1", Tag.PROCESSED_FRAME)
        assert m.index == i
    coordinator.receive("w1", Tag.TASK_REQUEST)
    coordinator.send(Done(), "w1", Tag.TASK_RESPONSE)
    t.join(2.0)
    assert not t.is_alive()
    assert results == [3]


def test_worker_rejects_reshaping_transform():
    hub = LocalHub()
    coordinator = hub.register("coordinator")
    wt = hub.register("w1")
    worker = Worker(wt, "coordinator", lambda f: Frame(index=f.index, grid=np.zeros((3, 3), dtype=int)))
    coordinator.send(Assigned(frame=Frame(index=0, grid=np.zeros((2, 2), dtype=int))), "w1", Tag.TASK_RESPONSE)
    with pytest.raises(ValueError):
        worker.step()
