import io

import numpy as np

from framedist.low.core import Frame
from framedist.sink import write_results, write_results_file


def test_write_results():
    dataset = np.array([[1, 22, 255], [0, 7, 100]])
    frames = [
        Frame(index=0, grid=np.array([[10, 21]])),
        Frame(index=1, grid=np.array([[137, 5]])),
    ]
    buf = io.StringIO()
    write_results(buf, dataset, frames)
    assert buf.getvalue().split("\n") == [
        "Original Video (2x3):",
        "  1  22 255 ",
        "  0   7 100 ",
        "",
        "Processed Frames:",
        "Frame 1 (1x2):",
        " 10  21 ",
        "",
        "Frame 2 (1x2):",
        "137   5 ",
        "",
        "",
    ]


def test_write_results_file(tmp_path):
    path = tmp_path / "out.txt"
    write_results_file(str(path), np.zeros((1, 1), dtype=int), [])
    assert path.read_text() == "Original Video (1x1):\n  0 \n\nProcessed Frames:\n"
