import time

import numpy as np

from framedist.low.core import Frame
from framedist.transform import blur, blur_with_delay


def test_blur_values():
    frame = Frame(index=3, grid=np.array([[0, 1, 2], [100, 255, 254]]))
    result = blur(frame, delay_ms=0)
    assert result.index == 3
    assert result.grid.tolist() == [[10, 10, 11], [60, 137, 137]]


def test_blur_clamps():
    frame = Frame(index=0, grid=np.array([[-100, 600]]))
    assert blur(frame, delay_ms=0).grid.tolist() == [[0, 255]]


def test_blur_delay():
    frame = Frame(index=0, grid=np.zeros((1, 1), dtype=int))
    start = time.perf_counter()
    blur_with_delay(30)(frame)
    assert time.perf_counter() - start >= 0.03


def test_blur_truncates_negatives_toward_zero():
    frame = Frame(index=0, grid=np.array([[-3, -1, 3]]))
    assert blur(frame, delay_ms=0).grid.tolist() == [[9, 10, 11]]
