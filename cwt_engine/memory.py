# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Reusable coefficient buffers for repeated transforms.

A ``CoefficientPool`` hands out zeroed arrays keyed by shape and dtype and
takes them back once the caller is done. Using a pool never changes a
transform's output; it only avoids reallocating large matrices when the
same shapes are requested over and over.
"""

import logging
import threading
from collections import defaultdict

import numpy as np

from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class CoefficientPool:
    """
    Thread-safe pool of numpy arrays.

    Args:
        max_arrays_per_shape (int): Arrays kept per (shape, dtype) key;
            extra released arrays are dropped
    """

    def __init__(self, max_arrays_per_shape=16):
        if max_arrays_per_shape < 1:
            raise InvalidArgumentError(
                f"max_arrays_per_shape must be positive, got {max_arrays_per_shape}")
        self.max_arrays_per_shape = int(max_arrays_per_shape)
        self._free = defaultdict(list)
        self._lock = threading.Lock()
        self._allocations = 0
        self._hits = 0

    @staticmethod
    def _key(shape, dtype):
        return tuple(int(d) for d in shape), np.dtype(dtype).str

    def allocate(self, shape, dtype=np.float64):
        """Return a zero-filled array of ``shape`` and ``dtype``."""
        if any(int(d) <= 0 for d in shape):
            raise InvalidArgumentError(f"Invalid array shape: {shape}")
        key = self._key(shape, dtype)
        with self._lock:
            self._allocations += 1
            free = self._free.get(key)
            if free:
                self._hits += 1
                array = free.pop()
            else:
                array = None
        if array is None:
            return np.zeros(key[0], dtype=dtype)
        array.fill(0)
        return array

    def release(self, array):
        """Give an array back to the pool."""
        if array is None:
            return
        key = self._key(array.shape, array.dtype)
        with self._lock:
            free = self._free[key]
            if len(free) < self.max_arrays_per_shape:
                free.append(array)

    def clear(self):
        with self._lock:
            self._free.clear()

    def stats(self):
        """Return allocation counters and the number of pooled arrays."""
        with self._lock:
            return {
                'allocations': self._allocations,
                'hits': self._hits,
                'pooled': sum(len(v) for v in self._free.values()),
            }
