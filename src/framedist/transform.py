"""
The per-frame transform applied by workers. Pure and CPU bound, with an optional sleep to
simulate variable latency
"""

import functools
import time
from typing import Callable

import numpy as np

from framedist.frames import SAMPLE_MAX, SAMPLE_MIN
from framedist.low.core import Frame

FrameTransform = Callable[[Frame], Frame]

SIMULATED_DELAY_MS = 50


def blur(frame: Frame, delay_ms: int = SIMULATED_DELAY_MS) -> Frame:
    """Halves each sample (integer division truncating toward zero), adds 10 and clamps to the
    sample range"""
    halved = np.sign(frame.grid) * (np.abs(frame.grid) // 2)
    grid = np.clip(halved + 10, SAMPLE_MIN, SAMPLE_MAX)
    if delay_ms > 0:
        time.sleep(delay_ms / 1_000)
    return Frame(index=frame.index, grid=grid)


def blur_with_delay(delay_ms: int) -> FrameTransform:
    # NOTE must stay picklable, it is shipped to worker processes
    return functools.partial(blur, delay_ms=delay_ms)
