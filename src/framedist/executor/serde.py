"""
This module is responsible for Serialization & Deserialization of messages into lists of
byte frames, which the transports ship as a single multipart unit
"""

# NOTE task indices travel as fixed width signed ints, grids as raw numpy buffers preceded by a
# pickled (dtype, shape) header. Only the TaskRequest, which is small and rare, is pickled whole.
# Layout per tag:
#  TASK_REQUEST    -> [pickle(TaskRequest)]
#  TASK_RESPONSE   -> [index] for Done (index == -1), [index, grid header, grid] for Assigned
#  PROCESSED_FRAME -> [index, grid header, grid]

import pickle

import numpy as np

from framedist.executor.msg import Message, ProcessedFrame, TaskRequest, tag_of
from framedist.low.core import DONE_INDEX, Assigned, Done, Frame, Tag, TaskIndex
from framedist.low.func import assert_never

INDEX_BYTES = 8


class SerdeError(ValueError):
    pass


def ser_index(i: TaskIndex) -> bytes:
    return i.to_bytes(INDEX_BYTES, "big", signed=True)


def des_index(b: bytes) -> TaskIndex:
    if len(b) != INDEX_BYTES:
        raise SerdeError(f"expected index of {INDEX_BYTES} bytes, gotten {len(b)}")
    return int.from_bytes(b, "big", signed=True)


def ser_grid(grid: np.ndarray) -> list[bytes]:
    header = pickle.dumps((grid.dtype.str, grid.shape))
    return [header, np.ascontiguousarray(grid).tobytes()]


def des_grid(header: bytes, body: bytes) -> np.ndarray:
    dtype, shape = pickle.loads(header)
    return np.frombuffer(body, dtype=np.dtype(dtype)).reshape(shape)


def ser_message(m: Message) -> list[bytes]:
    if isinstance(m, TaskRequest):
        return [pickle.dumps(m)]
    elif isinstance(m, Done):
        return [ser_index(DONE_INDEX)]
    elif isinstance(m, Assigned|ProcessedFrame):
        return [ser_index(m.frame.index), *ser_grid(m.frame.grid)]
    else:
        assert_never(m)


def des_message(tag: Tag, parts: list[bytes]) -> Message:
    if not parts:
        raise SerdeError(f"empty message on {tag.name}")
    if tag == Tag.TASK_REQUEST:
        m = pickle.loads(parts[0])
        if not isinstance(m, TaskRequest) or len(parts) != 1:
            raise SerdeError(f"malformed task request: {type(m)} in {len(parts)} parts")
        return m
    index = des_index(parts[0])
    if tag == Tag.TASK_RESPONSE and index == DONE_INDEX:
        if len(parts) != 1:
            raise SerdeError(f"expected a bare index for done, gotten {len(parts)} parts")
        return Done()
    if len(parts) != 3:
        raise SerdeError(f"expected index and grid in 3 parts on {tag.name}, gotten {len(parts)}")
    frame = Frame(index=index, grid=des_grid(parts[1], parts[2]))
    if tag == Tag.TASK_RESPONSE:
        return Assigned(frame=frame)
    elif tag == Tag.PROCESSED_FRAME:
        return ProcessedFrame(frame=frame)
    else:
        raise SerdeError(f"unexpected tag {tag}")


def check_tag(m: Message, tag: Tag) -> None:
    if (expected := tag_of(m)) != tag:
        raise SerdeError(f"message {type(m).__name__} belongs to {expected.name}, not {tag.name}")
