import numpy as np
import pytest

from framedist.frames import extract_frames, frame_count, generate_dataset
from framedist.low.core import Frame


def test_window_enumeration():
    dataset = np.arange(12).reshape(3, 4)
    frames = list(extract_frames(dataset, 2, 3))
    assert frame_count(dataset.shape, 2, 3) == 4
    assert [f.index for f in frames] == [0, 1, 2, 3]
    # row-major: all column offsets of the first row first
    assert frames[0].grid.tolist() == [[0, 1, 2], [4, 5, 6]]
    assert frames[1].grid.tolist() == [[1, 2, 3], [5, 6, 7]]
    assert frames[2].grid.tolist() == [[4, 5, 6], [8, 9, 10]]
    assert frames[3].grid.tolist() == [[5, 6, 7], [9, 10, 11]]


def test_reference_dimensions():
    dataset = generate_dataset(20, 20, seed=42)
    frames = list(extract_frames(dataset, 4, 5))
    assert len(frames) == 17 * 16 == 272
    assert frames[-1].index == 271
    assert all(f.shape == (4, 5) for f in frames)
    assert dataset.min() >= 0 and dataset.max() <= 255


def test_deterministic():
    dataset = generate_dataset(8, 9, seed=1)
    assert list(extract_frames(dataset, 3, 2)) == list(extract_frames(dataset, 3, 2))
    assert np.array_equal(dataset, generate_dataset(8, 9, seed=1))


def test_smaller_than_window():
    assert list(extract_frames(np.zeros((3, 3), dtype=int), 4, 5)) == []
    assert list(extract_frames(np.zeros((10, 3), dtype=int), 4, 5)) == []
    assert list(extract_frames(np.zeros((0, 0), dtype=int), 1, 1)) == []
    assert frame_count((3, 3), 4, 5) == 0


def test_invalid_input():
    with pytest.raises(ValueError):
        list(extract_frames(np.zeros((4, 4)), 0, 2))
    with pytest.raises(ValueError):
        list(extract_frames(np.zeros((4, 4, 4)), 2, 2))
    with pytest.raises(ValueError):
        generate_dataset(-1, 2)


def test_frame_immutable():
    source = np.ones((2, 2), dtype=int)
    frame = Frame(index=0, grid=source)
    source[0, 0] = 7
    assert frame.grid[0, 0] == 1
    with pytest.raises(ValueError):
        frame.grid[0, 0] = 5
    with pytest.raises(ValueError):
        Frame(index=-1, grid=source)
