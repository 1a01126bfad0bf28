"""
Unit Tests: IDX Dataset Files
=============================

Run with: pytest tests/test_datasets.py -v
"""

import gzip
import struct

import numpy as np
import pytest

from scalargrad.datasets import (
    DatasetError,
    load_idx_images,
    load_idx_labels,
    load_mnist,
)


def idx_images(pixels: np.ndarray) -> bytes:
    n, rows, cols = pixels.shape
    return struct.pack(">IIII", 2051, n, rows, cols) + pixels.astype(np.uint8).tobytes()


def idx_labels(labels) -> bytes:
    return struct.pack(">II", 2049, len(labels)) + bytes(labels)


@pytest.fixture
def pixels() -> np.ndarray:
    return np.array([[[0, 255], [127, 51]], [[10, 20], [30, 40]]], dtype=np.uint8)


class TestIdxFiles:

    def test_images(self, tmp_path, pixels) -> None:
        path = tmp_path / "images-idx3-ubyte"
        path.write_bytes(idx_images(pixels))

        images = load_idx_images(path)
        assert images.shape == (2, 4)
        assert images.dtype == np.float64
        assert images[0, 0] == -1.0
        assert images[0, 1] == 1.0
        assert images[1].tolist() == pytest.approx([p / 127.5 - 1.0 for p in (10, 20, 30, 40)])

    def test_gzipped_images(self, tmp_path, pixels) -> None:
        path = tmp_path / "images-idx3-ubyte.gz"
        with gzip.open(path, "wb") as f:
            f.write(idx_images(pixels))

        assert load_idx_images(path).shape == (2, 4)

    def test_labels(self, tmp_path) -> None:
        path = tmp_path / "labels-idx1-ubyte"
        path.write_bytes(idx_labels([7, 2, 1]))

        labels = load_idx_labels(path)
        assert labels.tolist() == [7, 2, 1]
        assert labels.dtype == np.uint8

    def test_bad_magic(self, tmp_path) -> None:
        path = tmp_path / "labels-idx1-ubyte"
        path.write_bytes(struct.pack(">II", 2051, 1) + b"\x00")

        with pytest.raises(DatasetError, match="magic"):
            load_idx_labels(path)

    def test_truncated_payload(self, tmp_path, pixels) -> None:
        path = tmp_path / "images-idx3-ubyte"
        path.write_bytes(idx_images(pixels)[:-1])

        with pytest.raises(DatasetError):
            load_idx_images(path)

    def test_truncated_header(self, tmp_path) -> None:
        path = tmp_path / "labels-idx1-ubyte"
        path.write_bytes(b"\x00\x00")

        with pytest.raises(DatasetError):
            load_idx_labels(path)

    def test_dataset_error_is_value_error(self) -> None:
        assert issubclass(DatasetError, ValueError)


class TestLoadMnist:

    def test_test_split(self, tmp_path, pixels) -> None:
        (tmp_path / "t10k-images-idx3-ubyte").write_bytes(idx_images(pixels))
        with gzip.open(tmp_path / "t10k-labels-idx1-ubyte.gz", "wb") as f:
            f.write(idx_labels([3, 4]))

        images, labels = load_mnist(tmp_path, train=False)
        assert images.shape == (2, 4)
        assert labels.tolist() == [3, 4]

    def test_count_mismatch(self, tmp_path, pixels) -> None:
        (tmp_path / "train-images-idx3-ubyte").write_bytes(idx_images(pixels))
        (tmp_path / "train-labels-idx1-ubyte").write_bytes(idx_labels([1]))

        with pytest.raises(DatasetError, match="mismatch"):
            load_mnist(tmp_path)

    def test_missing_files(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_mnist(tmp_path)
