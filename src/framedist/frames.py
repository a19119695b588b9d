"""
Frame source -- cuts a 2-D dataset into fixed-size overlapping frames by sliding a window
over it with unit stride, enumerating row-major, and a generator of random datasets
"""

from typing import Iterator
import logging

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from framedist.low.core import Frame

logger = logging.getLogger(__name__)

SAMPLE_MIN = 0
SAMPLE_MAX = 255


def _validate(shape: tuple[int, ...], frame_rows: int, frame_cols: int) -> None:
    if len(shape) != 2:
        raise ValueError(f"dataset must be 2-D, gotten shape {shape}")
    if frame_rows <= 0 or frame_cols <= 0:
        raise ValueError(f"frame dimensions must be positive, gotten {frame_rows}x{frame_cols}")


def frame_count(shape: tuple[int, ...], frame_rows: int, frame_cols: int) -> int:
    """How many frames `extract_frames` yields for a dataset of the given shape"""
    _validate(shape, frame_rows, frame_cols)
    rows, cols = shape
    return max(rows - frame_rows + 1, 0) * max(cols - frame_cols + 1, 0)


def extract_frames(dataset: np.ndarray, frame_rows: int, frame_cols: int) -> Iterator[Frame]:
    """Yields all `frame_rows x frame_cols` windows of the dataset, all column offsets of a row
    before advancing the row. Yields nothing if the dataset is smaller than the window"""
    _validate(dataset.shape, frame_rows, frame_cols)
    if frame_count(dataset.shape, frame_rows, frame_cols) == 0:
        logger.warning(f"dataset of shape {dataset.shape} is smaller than the {frame_rows}x{frame_cols} window, no frames")
        return
    windows = sliding_window_view(dataset, (frame_rows, frame_cols))
    index = 0
    for i in range(windows.shape[0]):
        for j in range(windows.shape[1]):
            yield Frame(index=index, grid=windows[i, j])
            index += 1


def generate_dataset(rows: int, cols: int, seed: int|None = None) -> np.ndarray:
    if rows < 0 or cols < 0:
        raise ValueError(f"dataset dimensions must be non-negative, gotten {rows}x{cols}")
    rng = np.random.default_rng(seed)
    return rng.integers(SAMPLE_MIN, SAMPLE_MAX + 1, size=(rows, cols), dtype=np.int64)
