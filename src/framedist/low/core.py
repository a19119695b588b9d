"""
Core data structures -- frames, task assignments and the tags of the message channels
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

# NOTE addresses are opaque to everything but the transport: a name for the in-process
# transport, a zmq endpoint like tcp://host:port for the zmq one
Address = str
ANY: None = None # wildcard source for receive/probe

TaskIndex = int
DONE_INDEX: TaskIndex = -1 # wire-level only, never leaves serde


class Tag(IntEnum):
    TASK_REQUEST = 1
    TASK_RESPONSE = 2
    PROCESSED_FRAME = 3


@dataclass(frozen=True, eq=False)
class Frame:
    """Fixed-size grid of integer samples, identified by its position in the source sequence"""
    index: TaskIndex
    grid: np.ndarray

    def __post_init__(self) -> None:
        if self.grid.ndim != 2:
            raise ValueError(f"frame grid must be 2-D, gotten {self.grid.ndim}-D")
        if self.index < 0:
            raise ValueError(f"frame index must be non-negative, gotten {self.index}")
        # we own a private, read only copy -- frames are never mutated after creation
        grid = np.array(self.grid, copy=True)
        grid.flags.writeable = False
        object.__setattr__(self, "grid", grid)

    @property
    def shape(self) -> tuple[int, int]:
        return self.grid.shape # type: ignore

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.index == other.index and self.grid.shape == other.grid.shape and bool(np.array_equal(self.grid, other.grid))

    def __hash__(self) -> int:
        return hash((self.index, self.grid.shape, self.grid.tobytes()))

    def __repr__(self) -> str:
        return f"Frame(index={self.index}, shape={self.shape})"


@dataclass(frozen=True)
class Assigned:
    frame: Frame

    @property
    def index(self) -> TaskIndex:
        return self.frame.index


@dataclass(frozen=True)
class Done:
    pass


Assignment = Assigned|Done


class ProtocolError(ValueError):
    """A party deviated from the request/response/submit sequence"""


class IncompleteResultsError(RuntimeError):
    def __init__(self, missing: list[TaskIndex]) -> None:
        self.missing = missing
        head = ",".join(str(e) for e in missing[:10])
        super().__init__(f"{len(missing)} results missing at termination: {head}{',...' if len(missing) > 10 else ''}")
