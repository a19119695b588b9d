"""
Writes the dataset and the processed frames as fixed-width integer tables. Meant for reading by
humans, not parsing
"""

from typing import Iterable, TextIO
import logging

import numpy as np

from framedist.low.core import Frame

logger = logging.getLogger(__name__)

CELL_WIDTH = 3


def _write_grid(f: TextIO, grid: np.ndarray) -> None:
    for row in grid:
        f.write("".join(f"{int(v):{CELL_WIDTH}d} " for v in row))
        f.write("\n")


def write_results(f: TextIO, dataset: np.ndarray, frames: Iterable[Frame]) -> None:
    rows, cols = dataset.shape
    f.write(f"Original Video ({rows}x{cols}):\n")
    _write_grid(f, dataset)
    f.write("\nProcessed Frames:\n")
    for frame in frames:
        frows, fcols = frame.shape
        f.write(f"Frame {frame.index + 1} ({frows}x{fcols}):\n")
        _write_grid(f, frame.grid)
        f.write("\n")


def write_results_file(path: str, dataset: np.ndarray, frames: Iterable[Frame]) -> None:
    with open(path, "w") as f:
        write_results(f, dataset, frames)
    logger.info(f"results written to {path}")
