"""
The coordinator loop. Answers task requests from workers as they come, collects their results
in whatever order they arrive, and terminates once every worker has been told there is no more
work *and* every dispatched task's result is in the buffer.

Each round of the loop has two phases:
 - dispatch: block on the request channel until some worker asks for work, then answer it
 - drain: consume every result already waiting, without blocking

Results are only ever a byproduct of earlier requests, so blocking on requests never starves
the result channel -- and since drain never blocks, slow workers never stall dispatching.

Termination: a worker's request carries the index of the result it submitted just before. If
that result has not been drained yet, the coordinator receives it from that worker before
answering. As the submission is sent before the request, this receive always completes. Thus
when a worker is sent `Done`, all of its results are collected, and when all workers are, the
buffer is full.
"""

from dataclasses import dataclass
import logging
from time import perf_counter_ns

from framedist.executor.comms import Transport
from framedist.executor.msg import ProcessedFrame, TaskRequest
from framedist.low.core import ANY, Address, Assigned, Done, Frame, IncompleteResultsError, ProtocolError, Tag, TaskIndex
from framedist.low.tracing import CoordinatorPhases, TaskLifecycle, label, mark
from framedist.scheduler.core import CoordinatorState, collect, has_running, initialize, next_assignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    results: list[Frame] # by index
    dispatched: dict[Address, int] # tasks per worker
    elapsed_ns: int


def _receive_result(transport: Transport, state: CoordinatorState, source: Address|None) -> None:
    worker, m = transport.receive(source, Tag.PROCESSED_FRAME)
    if not isinstance(m, ProcessedFrame):
        raise ProtocolError(f"expected ProcessedFrame from {worker}, gotten {type(m)}")
    collect(state, worker, m.frame)
    mark({"task": m.index, "worker": worker, "action": TaskLifecycle.collected})
    logger.debug(f"received processed frame {m.index} from worker {worker}")


def confirm(transport: Transport, state: CoordinatorState, worker: Address, last_submitted: TaskIndex|None) -> None:
    """Ensures the result `worker` acknowledges as submitted is in the buffer"""
    held = state.in_flight.get(worker, None)
    if last_submitted is None:
        if held is not None:
            raise ProtocolError(f"worker {worker} requested again without submitting {held}")
        return
    if held is None:
        if state.last_collected.get(worker, None) != last_submitted:
            raise ProtocolError(f"worker {worker} acknowledges {last_submitted}, but its latest collected result is {state.last_collected.get(worker, None)}")
        return
    if held != last_submitted:
        raise ProtocolError(f"worker {worker} acknowledges {last_submitted}, but holds {held}")
    mark({"action": CoordinatorPhases.confirm, "worker": worker, "task": held})
    logger.debug(f"awaiting result {held} from {worker} before answering its request")
    while worker in state.in_flight:
        _receive_result(transport, state, worker)


def dispatch(transport: Transport, state: CoordinatorState) -> None:
    """Blocks until a task request arrives, answers it with the next task or with Done"""
    mark({"action": CoordinatorPhases.dispatch})
    worker, m = transport.receive(ANY, Tag.TASK_REQUEST)
    if not isinstance(m, TaskRequest):
        raise ProtocolError(f"expected TaskRequest from {worker}, gotten {type(m)}")
    if m.worker != worker:
        raise ProtocolError(f"request from {worker} claims to come from {m.worker}")
    logger.debug(f"task request from {worker}")
    confirm(transport, state, worker, m.last_submitted)

    frame = next_assignment(state, worker)
    if frame is None:
        transport.send(Done(), worker, Tag.TASK_RESPONSE)
        logger.debug(f"sent done to {worker}, {state.completed_workers}/{state.workers} workers finished")
    else:
        transport.send(Assigned(frame=frame), worker, Tag.TASK_RESPONSE)
        mark({"task": frame.index, "worker": worker, "action": TaskLifecycle.dispatched})
        logger.debug(f"assigned task {frame.index} to worker {worker}")


def drain(transport: Transport, state: CoordinatorState) -> int:
    """Collects all results available right now, returns how many"""
    mark({"action": CoordinatorPhases.drain})
    count = 0
    while (source := transport.try_probe(ANY, Tag.PROCESSED_FRAME)) is not None:
        _receive_result(transport, state, source)
        count += 1
    return count


def run(transport: Transport, frames: list[Frame], workers: int) -> RunSummary:
    """Runs the coordinator until all `workers` have been sent Done. Each worker must run the
    worker loop against `transport.address`"""
    start = perf_counter_ns()
    label("host", "coordinator")
    state = initialize(frames, workers)
    logger.info(f"coordinating {len(frames)} tasks over {workers} workers")
    for frame in frames:
        mark({"task": frame.index, "action": TaskLifecycle.queued})

    try:
        while has_running(state):
            dispatch(transport, state)
            drain(transport, state)
    except Exception:
        logger.error("crash in coordinator, aborting the run")
        raise
    finally:
        mark({"action": CoordinatorPhases.shutdown})

    if not state.results.is_complete():
        raise IncompleteResultsError(state.results.missing())
    end = perf_counter_ns()
    logger.info(f"collected {len(state.results)} results in {(end-start)/1e9:.3f}s")
    return RunSummary(results=state.results.frames(), dispatched=dict(state.dispatched), elapsed_ns=end-start)
