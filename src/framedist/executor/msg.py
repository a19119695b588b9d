"""
This module defines all messages exchanged between the coordinator and the workers, together
with the tag (channel) each of them travels on
"""

# NOTE about representation -- we could have gone with pydantic, but since we wouldnt use
# its native serde to json (frames are binary numpy data), there is no point in the overhead.
# We are sticking to plain dataclasses

from dataclasses import dataclass

from framedist.low.core import Address, Assigned, Done, Frame, Tag, TaskIndex
from framedist.low.func import assert_never


@dataclass(frozen=True)
class TaskRequest:
    worker: Address
    # index of the result this worker submitted just before this request, None on the first
    # request. Lets the coordinator confirm receipt before answering
    last_submitted: TaskIndex|None = None


@dataclass(frozen=True)
class ProcessedFrame:
    frame: Frame

    @property
    def index(self) -> TaskIndex:
        return self.frame.index


TaskResponse = Assigned|Done
Message = TaskRequest|TaskResponse|ProcessedFrame


def tag_of(m: Message) -> Tag:
    if isinstance(m, TaskRequest):
        return Tag.TASK_REQUEST
    elif isinstance(m, Assigned|Done):
        return Tag.TASK_RESPONSE
    elif isinstance(m, ProcessedFrame):
        return Tag.PROCESSED_FRAME
    else:
        assert_never(m)
