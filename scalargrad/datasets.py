"""MNIST / IDX dataset files."""

from __future__ import annotations

import gzip
import logging
import struct
from pathlib import Path
from typing import BinaryIO, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

IMAGES_MAGIC = 2051
LABELS_MAGIC = 2049

FILES = {
    "train_images": "train-images-idx3-ubyte",
    "train_labels": "train-labels-idx1-ubyte",
    "test_images": "t10k-images-idx3-ubyte",
    "test_labels": "t10k-labels-idx1-ubyte",
}


class DatasetError(ValueError):
    """Raised when a dataset file is malformed."""


def _open(path: Path) -> BinaryIO:
    if path.suffix == ".gz":
        return gzip.open(path, "rb")
    return open(path, "rb")


def _read_header(f: BinaryIO, path: Path, magic: int, ndims: int) -> Tuple[int, ...]:
    header = f.read(4 * (1 + ndims))
    if len(header) != 4 * (1 + ndims):
        raise DatasetError(f"Truncated header in {path}")
    found, *dims = struct.unpack(f">{1 + ndims}I", header)
    if found != magic:
        raise DatasetError(f"Invalid magic number in {path}: {found}")
    return tuple(dims)


def load_idx_images(path: PathLike) -> np.ndarray:
    """
    Read an IDX3 image file (plain or gzipped).

    Pixels are standardised to roughly [-1, 1] as pixel / 127.5 - 1.0 and
    each image is flattened to a row.

    Returns:
        float64 array of shape (n, rows * cols).

    Raises:
        DatasetError: On a wrong magic number or truncated payload.
    """
    path = Path(path)
    with _open(path) as f:
        n, rows, cols = _read_header(f, path, IMAGES_MAGIC, 3)
        data = f.read(n * rows * cols)
    if len(data) != n * rows * cols:
        raise DatasetError(
            f"Expected {n * rows * cols} pixel bytes in {path}, got {len(data)}"
        )
    pixels = np.frombuffer(data, dtype=np.uint8).reshape(n, rows * cols)
    return pixels.astype(np.float64) / 127.5 - 1.0


def load_idx_labels(path: PathLike) -> np.ndarray:
    """
    Read an IDX1 label file (plain or gzipped).

    Returns:
        uint8 array of shape (n,).

    Raises:
        DatasetError: On a wrong magic number or truncated payload.
    """
    path = Path(path)
    with _open(path) as f:
        (n,) = _read_header(f, path, LABELS_MAGIC, 1)
        data = f.read(n)
    if len(data) != n:
        raise DatasetError(f"Expected {n} labels in {path}, got {len(data)}")
    return np.frombuffer(data, dtype=np.uint8).copy()


def _locate(root: Path, name: str) -> Path:
    for candidate in (root / name, root / (name + ".gz")):
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"Neither {name} nor {name}.gz found in {root}")


def load_mnist(root: PathLike, train: bool = True) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load one MNIST split from a directory holding the standard file names.

    Args:
        root: Directory with the IDX files (gzipped or not).
        train: True for the training split, False for the test split.

    Returns:
        (images, labels) as returned by load_idx_images / load_idx_labels.

    Raises:
        DatasetError: If the image and label counts differ.
    """
    root = Path(root)
    split = "train" if train else "test"
    images = load_idx_images(_locate(root, FILES[f"{split}_images"]))
    labels = load_idx_labels(_locate(root, FILES[f"{split}_labels"]))
    if len(images) != len(labels):
        raise DatasetError(
            f"{split} images and labels count mismatch: "
            f"{len(images)} vs {len(labels)}"
        )
    logger.info("Loaded MNIST %s split: %d images", split, len(images))
    return images, labels
