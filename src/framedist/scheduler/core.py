"""
Data structures owned by the coordinator: the backlog of unassigned tasks, the index-addressed
buffer of results, and the overall state tracking which worker holds what
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from framedist.low.core import Address, Frame, IncompleteResultsError, ProtocolError, TaskIndex


class TaskQueue:
    """FIFO backlog of task indices. An index leaves the queue on dispatch and never returns"""

    def __init__(self, indices: Iterable[TaskIndex] = ()) -> None:
        self.tasks: deque[TaskIndex] = deque()
        for index in indices:
            self.push(index)

    @classmethod
    def of_size(cls, n: int) -> "TaskQueue":
        return cls(range(n))

    def push(self, index: TaskIndex) -> None:
        self.tasks.append(index)

    def pop(self) -> TaskIndex|None:
        return self.tasks.popleft() if self.tasks else None

    def __len__(self) -> int:
        return len(self.tasks)

    def __bool__(self) -> bool:
        return bool(self.tasks)


class ResultBuffer:
    """Fixed number of slots, each filled exactly once"""

    def __init__(self, size: int) -> None:
        self.slots: list[Frame|None] = [None] * size
        self.filled = 0

    def fill(self, frame: Frame) -> None:
        if not 0 <= frame.index < len(self.slots):
            raise ProtocolError(f"result index {frame.index} out of range 0..{len(self.slots)-1}")
        if self.slots[frame.index] is not None:
            raise ProtocolError(f"result {frame.index} delivered twice")
        self.slots[frame.index] = frame
        self.filled += 1

    def has(self, index: TaskIndex) -> bool:
        return 0 <= index < len(self.slots) and self.slots[index] is not None

    def is_complete(self) -> bool:
        return self.filled == len(self.slots)

    def missing(self) -> list[TaskIndex]:
        return [i for i, e in enumerate(self.slots) if e is None]

    def frames(self) -> list[Frame]:
        """All results in index order. Raises if any slot is still empty"""
        if not self.is_complete():
            raise IncompleteResultsError(self.missing())
        return [e for e in self.slots if e is not None]

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[Frame|None]:
        return iter(self.slots)


@dataclass
class CoordinatorState:
    """Everything the coordinator tracks. Mutated by the coordinator's thread only"""
    frames: list[Frame] # all tasks' inputs, by index
    workers: int # size of the pool
    queue: TaskQueue
    results: ResultBuffer
    in_flight: dict[Address, TaskIndex] = field(default_factory=dict) # add on dispatch, remove on collect
    dispatched: dict[Address, int] = field(default_factory=dict) # per worker count, for reporting
    finished: set[Address] = field(default_factory=set) # workers that were sent Done
    last_collected: dict[Address, TaskIndex] = field(default_factory=dict) # latest result stored per worker

    @property
    def completed_workers(self) -> int:
        return len(self.finished)


def initialize(frames: list[Frame], workers: int) -> CoordinatorState:
    if workers < 1:
        raise ValueError(f"at least one worker required, gotten {workers}")
    for i, frame in enumerate(frames):
        if frame.index != i:
            raise ValueError(f"frame indices must be dense and ordered, gotten {frame.index} at position {i}")
    return CoordinatorState(
        frames=frames,
        workers=workers,
        queue=TaskQueue.of_size(len(frames)),
        results=ResultBuffer(len(frames)),
    )


def has_running(state: CoordinatorState) -> bool:
    return state.completed_workers < state.workers


def next_assignment(state: CoordinatorState, worker: Address) -> Frame|None:
    """Pops the next task for `worker`, or None if the queue is exhausted -- in which case the
    worker is counted as finished"""
    if worker in state.finished:
        raise ProtocolError(f"worker {worker} requested a task after being sent done")
    if worker in state.in_flight:
        raise ProtocolError(f"worker {worker} requested a task while holding {state.in_flight[worker]}")
    index = state.queue.pop()
    if index is None:
        state.finished.add(worker)
        return None
    state.in_flight[worker] = index
    state.dispatched[worker] = state.dispatched.get(worker, 0) + 1
    return state.frames[index]


def collect(state: CoordinatorState, worker: Address, frame: Frame) -> None:
    if state.in_flight.get(worker, None) != frame.index:
        raise ProtocolError(f"worker {worker} submitted {frame.index}, but holds {state.in_flight.get(worker, None)}")
    if frame.shape != state.frames[frame.index].shape:
        raise ProtocolError(f"result {frame.index} has shape {frame.shape}, expected {state.frames[frame.index].shape}")
    state.results.fill(frame)
    state.in_flight.pop(worker)
    state.last_collected[worker] = frame.index
