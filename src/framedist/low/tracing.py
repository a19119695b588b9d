"""
Interface for tracing important events that can be used for extracting performance information

Currently, the export is handled just by logging, assuming to be parsed later. We log at debug
level since this is assumed to be high level tracing
"""

from enum import Enum
import logging
import threading
import time
from typing import Callable, TypeVar, ParamSpec

# NOTE labels are per thread, since the coordinator and workers may share a process
_local = threading.local()

logger = logging.getLogger(__name__)


class TaskLifecycle(str, Enum):
    queued = "task_queued"
    dispatched = "task_dispatched"
    received = "task_received"
    computed = "task_computed"
    submitted = "task_submitted"
    collected = "task_collected"


class CoordinatorPhases(str, Enum):
    dispatch = "ctrl_dispatch"
    drain = "ctrl_drain"
    confirm = "ctrl_confirm"
    shutdown = "ctrl_shutdown"


def _labels(labels: dict) -> str:
    return ";".join(f"{k}={v.value if isinstance(v, Enum) else v}" for k, v in labels.items())


def _current() -> dict[str, str]:
    if not hasattr(_local, "d"):
        _local.d = {}
    return _local.d


def label(key: str, value: str) -> None:
    """Makes all subsequent marks of the calling thread contain this KV. Carries over to
    subprocesses later forked from this thread, but not to spawned ones nor to other threads"""
    _current()[key] = value


def mark(labels: dict) -> None:
    at = time.perf_counter_ns()
    event = _labels({**_current(), **labels})
    logger.debug(f"{event};{at=}")


P = ParamSpec("P")
R = TypeVar("R")

def timer(f: Callable[P, R], name: str) -> Callable[P, R]:
    """Wraps `f` so that each invocation logs its elapsed time under `name`"""
    def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter_ns()
        result = f(*args, **kwargs)
        end = time.perf_counter_ns()
        logger.debug(f"{name} elapsed {(end-start)/1e9: .5f} s")
        return result
    return wrapped
