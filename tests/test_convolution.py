# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Unit tests for the convolution engine and boundary handling.
"""

import unittest

import numpy as np
import pytest

from cwt_engine.convolution import (
    BoundaryMode, ConvolutionEngine,
    boundary_index, extend_signal, map_indices
)
from cwt_engine.exceptions import InvalidArgumentError


class TestBoundaryHandling:
    """Test signal extension against numpy padding."""

    signal = np.array([1.0, 2.0, 3.0, 4.0, 5.0])

    @pytest.mark.parametrize("mode, pad_mode", [
        (BoundaryMode.REFLECT, 'reflect'),
        (BoundaryMode.SYMMETRIC, 'symmetric'),
        (BoundaryMode.PERIODIC, 'wrap'),
        (BoundaryMode.ZERO, 'constant'),
    ])
    def test_extend_matches_numpy_pad(self, mode, pad_mode):
        extended = extend_signal(self.signal, 3, 2, mode)
        np.testing.assert_array_equal(extended, np.pad(self.signal, (3, 2), mode=pad_mode))

    def test_reflect_does_not_repeat_edge(self):
        extended = extend_signal(self.signal, 2, 2, BoundaryMode.REFLECT)
        assert extended.tolist() == [3.0, 2.0, 1.0, 2.0, 3.0, 4.0, 5.0, 4.0, 3.0]

    def test_symmetric_repeats_edge(self):
        extended = extend_signal(self.signal, 2, 2, BoundaryMode.SYMMETRIC)
        assert extended.tolist() == [2.0, 1.0, 1.0, 2.0, 3.0, 4.0, 5.0, 5.0, 4.0]

    def test_extension_longer_than_signal(self):
        extended = extend_signal(self.signal, 12, 12, BoundaryMode.PERIODIC)
        np.testing.assert_array_equal(extended, np.pad(self.signal, 12, mode='wrap'))

    def test_boundary_index(self):
        assert boundary_index(-1, 5, BoundaryMode.PERIODIC) == 4
        assert boundary_index(-1, 5, BoundaryMode.SYMMETRIC) == 0
        assert boundary_index(-1, 5, BoundaryMode.REFLECT) == 1
        assert boundary_index(5, 5, BoundaryMode.REFLECT) == 3
        assert boundary_index(-1, 5, BoundaryMode.ZERO) == -1
        assert boundary_index(2, 5, BoundaryMode.ZERO) == 2

    def test_single_sample_reflect(self):
        mapped, valid = map_indices([-3, 0, 4], 1, BoundaryMode.REFLECT)
        assert mapped.tolist() == [0, 0, 0]
        assert valid is None


class TestConvolutionEngine(unittest.TestCase):
    """Test direct, blocked and padded convolution."""

    def setUp(self):
        self.engine = ConvolutionEngine(BoundaryMode.PERIODIC)
        rng = np.random.default_rng(7)
        self.signal = rng.standard_normal(300)
        self.samples = rng.standard_normal(41)

    def test_correlation_convention(self):
        signal = np.zeros(20)
        signal[10] = 1.0
        out = self.engine.convolve(signal, np.array([1.0, 2.0, 3.0]), 1.0,
                                   BoundaryMode.ZERO, normalize=False)
        np.testing.assert_array_equal(out[9:12], [3.0, 2.0, 1.0])
        self.assertEqual(np.count_nonzero(out), 3)

    def test_normalization(self):
        raw = self.engine.convolve(self.signal, self.samples, 4.0, normalize=False)
        normalized = self.engine.convolve(self.signal, self.samples, 4.0)
        np.testing.assert_allclose(normalized, raw / 2.0)

    def test_blocked_identical_to_direct(self):
        engine = ConvolutionEngine(BoundaryMode.REFLECT, block_size=17)
        for mode in BoundaryMode:
            direct = engine.convolve_direct(self.signal, self.samples, 3.0, mode)
            blocked = engine.convolve_blocked(self.signal, self.samples, 3.0, mode)
            self.assertTrue(np.array_equal(direct, blocked), mode)

    def test_blocking_heuristic(self):
        engine = ConvolutionEngine(block_size=16, blocking_threshold=64)
        out = engine.convolve(self.signal, self.samples, 2.0)
        expected = engine.convolve_direct(self.signal, self.samples, 2.0)
        self.assertTrue(np.array_equal(out, expected))

    def test_periodic_padding_matches_plain(self):
        padded = self.engine.convolve_with_padding(
            self.signal, self.samples, 2.0, BoundaryMode.PERIODIC)
        plain = self.engine.convolve(self.signal, self.samples, 2.0, BoundaryMode.PERIODIC)
        np.testing.assert_allclose(padded, plain, rtol=0, atol=1e-12)

    def test_padding_matches_inline_for_all_modes(self):
        for mode in BoundaryMode:
            padded = self.engine.convolve_with_padding(self.signal, self.samples, 2.0, mode)
            inline = self.engine.convolve(self.signal, self.samples, 2.0, mode)
            np.testing.assert_allclose(padded, inline, rtol=0, atol=1e-12)

    def test_complex_samples(self):
        samples = self.samples + 1j * self.samples[::-1]
        out = self.engine.convolve(self.signal, samples, 1.0)
        self.assertTrue(np.iscomplexobj(out))
        np.testing.assert_allclose(
            out.real, self.engine.convolve(self.signal, self.samples, 1.0))

    def test_multi_scale(self):
        rows = [self.samples, self.samples[:11]]
        out = self.engine.convolve_multi_scale(self.signal, rows, [1.0, 4.0])
        self.assertEqual(out.shape, (2, self.signal.size))
        with self.assertRaises(InvalidArgumentError):
            self.engine.convolve_multi_scale(self.signal, rows, [1.0])

    def test_validation(self):
        with self.assertRaises(InvalidArgumentError):
            self.engine.convolve(np.array([]), self.samples, 1.0)
        with self.assertRaises(InvalidArgumentError):
            self.engine.convolve(self.signal, self.samples, 0.0)
        with self.assertRaises(InvalidArgumentError):
            self.engine.convolve(None, self.samples, 1.0)
        with self.assertRaises(InvalidArgumentError):
            ConvolutionEngine(block_size=0)
