# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Unit tests for the spectral kernel.
"""

import unittest

import numpy as np

from cwt_engine.exceptions import InvalidArgumentError
from cwt_engine.spectral import (
    FFTAlgorithm, SpectralKernel, TwiddleCache,
    is_power_of_two, next_power_of_two
)


class TestPowerOfTwo(unittest.TestCase):
    """Test power-of-two helpers."""

    def test_is_power_of_two(self):
        for n in [1, 2, 4, 1024, 2 ** 20]:
            self.assertTrue(is_power_of_two(n))
        for n in [0, -2, 3, 6, 1000]:
            self.assertFalse(is_power_of_two(n))

    def test_next_power_of_two(self):
        self.assertEqual(next_power_of_two(0), 1)
        self.assertEqual(next_power_of_two(1), 1)
        self.assertEqual(next_power_of_two(5), 8)
        self.assertEqual(next_power_of_two(64), 64)
        self.assertEqual(next_power_of_two(65), 128)


class TestSpectralKernel(unittest.TestCase):
    """Test FFT primitives against numpy."""

    def setUp(self):
        self.kernel = SpectralKernel()
        self.rng = np.random.default_rng(42)

    def test_fft_matches_numpy(self):
        for n in [1, 2, 4, 8, 64, 1024]:
            x = self.rng.standard_normal(n)
            np.testing.assert_allclose(self.kernel.fft(x), np.fft.fft(x), atol=1e-9)

    def test_fft_complex_matches_numpy(self):
        x = self.rng.standard_normal(256) + 1j * self.rng.standard_normal(256)
        np.testing.assert_allclose(self.kernel.fft_complex(x), np.fft.fft(x), atol=1e-9)

    def test_inverse_round_trip(self):
        x = self.rng.standard_normal(512)
        np.testing.assert_allclose(self.kernel.ifft(self.kernel.fft(x)), x, atol=1e-12)

        z = self.rng.standard_normal(128) + 1j * self.rng.standard_normal(128)
        np.testing.assert_allclose(
            self.kernel.ifft_complex(self.kernel.fft_complex(z)), z, atol=1e-12)

    def test_rows_transformed_independently(self):
        x = self.rng.standard_normal((3, 32))
        np.testing.assert_allclose(self.kernel.fft(x), np.fft.fft(x, axis=-1), atol=1e-10)

    def test_numpy_algorithm(self):
        kernel = SpectralKernel(FFTAlgorithm.NUMPY)
        x = self.rng.standard_normal(64)
        np.testing.assert_allclose(kernel.fft(x), self.kernel.fft(x), atol=1e-10)

    def test_cached_and_uncached_are_identical(self):
        x = self.rng.standard_normal(256)
        cached = self.kernel.fft(x, use_cache=True)
        uncached = self.kernel.fft(x, use_cache=False)
        self.assertTrue(np.array_equal(cached, uncached))

    def test_input_not_modified(self):
        x = self.rng.standard_normal(64)
        original = x.copy()
        self.kernel.fft(x)
        np.testing.assert_array_equal(x, original)

    def test_validation(self):
        with self.assertRaises(InvalidArgumentError):
            self.kernel.fft(np.ones(6))
        with self.assertRaises(InvalidArgumentError):
            self.kernel.fft(np.array([1.0, np.nan, 0.0, 1.0]))
        with self.assertRaises(InvalidArgumentError):
            self.kernel.fft(None)
        with self.assertRaises(InvalidArgumentError):
            self.kernel.fft(np.ones(4, dtype=complex))
        with self.assertRaises(InvalidArgumentError):
            self.kernel.fft(np.ones((2, 2, 2)))

    def test_circular_convolution(self):
        a = self.rng.standard_normal(16)
        b = self.rng.standard_normal(16)
        expected = np.real(np.fft.ifft(np.fft.fft(a) * np.fft.fft(b)))
        np.testing.assert_allclose(self.kernel.convolve(a, b), expected, atol=1e-10)

        with self.assertRaises(InvalidArgumentError):
            self.kernel.convolve(np.ones(8), np.ones(16))

    def test_linear_convolution(self):
        signal = self.rng.standard_normal(100)
        kernel = self.rng.standard_normal(13)
        np.testing.assert_allclose(
            self.kernel.convolve_linear(signal, kernel), np.convolve(signal, kernel), atol=1e-10)


class TestTwiddleCache:
    """Test the twiddle factor cache."""

    def test_hits_and_misses(self):
        cache = TwiddleCache()
        first = cache.twiddles(64)
        second = cache.twiddles(64)
        assert first is second
        assert cache.misses == 1
        assert cache.hits == 1
        assert cache.cached_sizes() == [64]
        assert len(cache) == 1

    def test_large_sizes_not_stored(self):
        cache = TwiddleCache(max_cached_size=16)
        table = cache.twiddles(32)
        assert table.shape == (16,)
        assert len(cache) == 0

    def test_tables_read_only(self):
        cache = TwiddleCache()
        table = cache.twiddles(8)
        assert not table.flags.writeable

    def test_clear(self):
        cache = TwiddleCache()
        cache.twiddles(8)
        cache.bit_reversal(8)
        cache.clear()
        assert len(cache) == 0
        assert cache.hits == 0 and cache.misses == 0

    def test_bit_reversal(self):
        cache = TwiddleCache()
        assert cache.bit_reversal(8).tolist() == [0, 4, 2, 6, 1, 5, 3, 7]
