"""
The worker loop -- requests a task, processes it, submits the result, repeats until told there
is no more work. Holds at most one task at a time, and always submits before requesting again
"""

from enum import Enum
import logging

from framedist.executor.comms import Transport
from framedist.executor.msg import ProcessedFrame, TaskRequest
from framedist.low.core import Address, Assigned, Done, ProtocolError, Tag, TaskIndex
from framedist.low.tracing import TaskLifecycle, label, mark, timer
from framedist.transform import FrameTransform

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    requesting = "requesting"
    assigned = "assigned"
    processing = "processing"
    submitting = "submitting"
    terminated = "terminated"


class Worker:
    def __init__(self, transport: Transport, coordinator: Address, process: FrameTransform) -> None:
        self.transport = transport
        self.coordinator = coordinator
        self.process = process
        self.state = WorkerState.requesting
        self.last_submitted: TaskIndex|None = None
        self.processed = 0

    def _transition(self, state: WorkerState) -> None:
        logger.debug(f"worker {self.transport.address}: {self.state.value} -> {state.value}")
        self.state = state

    def step(self) -> None:
        """Runs one request-process-submit cycle, or terminates"""
        if self.state != WorkerState.requesting:
            raise ValueError(f"cannot step from {self.state}")
        request = TaskRequest(worker=self.transport.address, last_submitted=self.last_submitted)
        self.transport.send(request, self.coordinator, Tag.TASK_REQUEST)
        _, response = self.transport.receive(self.coordinator, Tag.TASK_RESPONSE)

        if isinstance(response, Done):
            self._transition(WorkerState.terminated)
            return
        elif not isinstance(response, Assigned):
            raise ProtocolError(f"expected a task response, gotten {type(response)}")
        self._transition(WorkerState.assigned)
        frame = response.frame
        mark({"task": frame.index, "action": TaskLifecycle.received})

        self._transition(WorkerState.processing)
        result = timer(self.process, f"compute of frame {frame.index}")(frame)
        if result.index != frame.index or result.shape != frame.shape:
            raise ValueError(f"transform changed frame {frame.index} {frame.shape} into {result.index} {result.shape}")
        mark({"task": frame.index, "action": TaskLifecycle.computed})

        self._transition(WorkerState.submitting)
        self.transport.send(ProcessedFrame(frame=result), self.coordinator, Tag.PROCESSED_FRAME)
        mark({"task": frame.index, "action": TaskLifecycle.submitted})
        self.last_submitted = frame.index
        self.processed += 1
        self._transition(WorkerState.requesting)

    def run(self) -> int:
        """Loops until Done, returns the number of processed frames"""
        while self.state != WorkerState.terminated:
            self.step()
        logger.debug(f"worker {self.transport.address} terminated after {self.processed} frames")
        return self.processed


def worker_loop(transport: Transport, coordinator: Address, process: FrameTransform) -> int:
    label("worker", transport.address)
    try:
        return Worker(transport, coordinator, process).run()
    except Exception:
        logger.exception(f"worker {transport.address} failed")
        raise
