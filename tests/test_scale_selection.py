# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Tests for scale selection strategies and scale spaces.
"""

import math
import os
import tempfile
import unittest

import numpy as np
import pytest

from conftest import generate_test_signal

from cwt_engine.exceptions import InvalidArgumentError, InvalidConfigurationError
from cwt_engine.scale_selection import (
    AdaptiveScaleSelector, DyadicScaleSelector, OptimalScaleSelector,
    ScaleSelectionConfig, ScaleSpace, ScaleSpacing, ScaleType,
    SignalAdaptiveScaleSelector, adaptive_ratio_cap,
    frequency_to_mel, mel_to_frequency
)
from cwt_engine.wavelets import MexicanHatWavelet, MorletWavelet, PaulWavelet


def _two_tone(length=2048, sample_rate=200.0):
    return (generate_test_signal(length, 10.0, sample_rate)
            + generate_test_signal(length, 25.0, sample_rate))


class TestScaleSelectionConfig(unittest.TestCase):
    """Test scale selection options."""

    def test_defaults(self):
        config = ScaleSelectionConfig(100.0)
        self.assertEqual(config.scales_per_octave, 10)
        self.assertEqual(config.max_scales, 200)
        self.assertIs(config.spacing, ScaleSpacing.LOGARITHMIC)
        self.assertFalse(config.has_frequency_range)

    def test_validation(self):
        with self.assertRaises(InvalidConfigurationError):
            ScaleSelectionConfig(0.0)
        with self.assertRaises(InvalidConfigurationError):
            ScaleSelectionConfig(100.0, min_frequency=40.0, max_frequency=5.0)
        with self.assertRaises(InvalidConfigurationError):
            ScaleSelectionConfig(100.0, scales_per_octave=0)
        with self.assertRaises(InvalidConfigurationError):
            ScaleSelectionConfig(100.0, max_scales=0)
        with self.assertRaises(InvalidConfigurationError):
            ScaleSelectionConfig(100.0, spacing='octaves')

    def test_from_dict(self):
        config = ScaleSelectionConfig.from_dict({'sampling_rate': 50.0, 'spacing': 'mel_scale'})
        self.assertIs(config.spacing, ScaleSpacing.MEL_SCALE)
        with self.assertRaises(InvalidConfigurationError):
            ScaleSelectionConfig.from_dict({'sampling_rate': 50.0, 'octaves': 3})

    def test_from_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "scales.yaml")
            with open(path, 'w') as f:
                f.write("sampling_rate: 1000\nmin_frequency: 10\nmax_frequency: 100\n")
            config = ScaleSelectionConfig.from_yaml(path)
        self.assertTrue(config.has_frequency_range)
        self.assertEqual(config.sampling_rate, 1000)


class TestOptimalScaleSelector:
    """Test wavelet- and length-driven scale selection."""

    fs = 100.0

    @pytest.fixture
    def signal(self):
        return generate_test_signal(1024, 5.0, self.fs)

    @pytest.mark.parametrize("spacing", list(ScaleSpacing))
    def test_scales_positive_and_ascending(self, signal, spacing):
        config = ScaleSelectionConfig(self.fs, spacing=spacing)
        for wavelet in [MorletWavelet(), MexicanHatWavelet(), PaulWavelet()]:
            scales = OptimalScaleSelector().select_scales(signal, wavelet, config)
            assert scales.size >= 1
            assert np.all(scales > 0)
            assert np.all(np.diff(scales) > 0)
            assert scales.size <= config.max_scales

    def test_explicit_range_is_covered(self, signal):
        config = ScaleSelectionConfig(self.fs, min_frequency=5.0, max_frequency=40.0)
        wavelet = MorletWavelet()
        scales = OptimalScaleSelector().select_scales(signal, wavelet, config)
        fmin, fmax = AdaptiveScaleSelector.get_frequency_range(scales, wavelet, self.fs)
        assert fmin <= 5.0
        assert fmax >= 40.0

    def test_automatic_range(self):
        lo, hi = OptimalScaleSelector().scale_range(
            1024, MorletWavelet(), ScaleSelectionConfig(self.fs))
        # (1 + bw/fc) * 2 fc = 4, halved by the bandwidth factor, times 0.8
        assert lo == pytest.approx(1.6)
        assert hi == pytest.approx(1024 / (4 * math.pi) * 2 * 1.2)

    def test_logarithmic_count(self, signal):
        selector = OptimalScaleSelector.logarithmic(scales_per_octave=4)
        scales = selector.select_scales(signal, MorletWavelet(), self.fs)
        lo, hi = selector.scale_range(signal.size, MorletWavelet(), ScaleSelectionConfig(self.fs))
        assert scales.size == math.ceil(math.log2(hi / lo) * 4)
        ratios = scales[1:] / scales[:-1]
        np.testing.assert_allclose(ratios, ratios[0])

    def test_max_scales(self, signal):
        config = ScaleSelectionConfig(self.fs, scales_per_octave=64, max_scales=20)
        scales = OptimalScaleSelector().select_scales(signal, MorletWavelet(), config)
        assert scales.size == 20

    @pytest.mark.parametrize("spacing", list(ScaleSpacing))
    def test_single_scale_cap(self, signal, spacing):
        config = ScaleSelectionConfig(self.fs, spacing=spacing, max_scales=1)
        scales = OptimalScaleSelector().select_scales(signal, MorletWavelet(), config)
        assert scales.size == 1

    def test_frequency_resolution_lifts_cap(self, signal):
        selector = OptimalScaleSelector()
        capped = ScaleSelectionConfig(self.fs, scales_per_octave=64, max_scales=20)
        resolved = capped.replace(frequency_resolution=0.5)
        lo, hi = selector.scale_range(signal.size, MorletWavelet(), capped)
        scales = selector.select_scales(signal, MorletWavelet(), resolved)
        assert scales.size == math.ceil(math.log2(hi / lo) * 64)
        assert scales.size > 20

    def test_factories(self):
        assert OptimalScaleSelector.linear().spacing is ScaleSpacing.LINEAR
        assert OptimalScaleSelector.mel_scale().spacing is ScaleSpacing.MEL_SCALE
        assert OptimalScaleSelector.wavelet_optimized().spacing is ScaleSpacing.ADAPTIVE

    def test_critical_sampling(self):
        wavelet = MorletWavelet()
        selector = OptimalScaleSelector(wavelet)
        scales = selector.generate_critical_sampling_scales(wavelet, 1024, self.fs)
        cap = adaptive_ratio_cap(wavelet)
        assert scales[0] == 2.0
        assert scales[-1] <= 1024 / 4
        np.testing.assert_allclose(scales[1:] / scales[:-1], min(math.exp(math.pi), cap))
        with pytest.raises(InvalidArgumentError):
            selector.generate_critical_sampling_scales(wavelet, 1024, 0.0)

    def test_ratio_cap_bounds(self):
        for wavelet in [MorletWavelet(), MorletWavelet(bandwidth=0.2, center_frequency=3.0),
                        PaulWavelet(), MexicanHatWavelet()]:
            assert 1.5 <= adaptive_ratio_cap(wavelet) <= 5.0
        assert adaptive_ratio_cap(MorletWavelet()) == adaptive_ratio_cap(MorletWavelet())

    def test_frequency_resolution(self):
        scales = OptimalScaleSelector.generate_scales_for_frequency_resolution(
            10.0, 20.0, MorletWavelet(), 100.0, 2.5)
        np.testing.assert_allclose(np.sort(100.0 / scales), [10.0, 12.5, 15.0, 17.5, 20.0])
        assert np.all(np.diff(scales) > 0)

    def test_invalid_arguments(self, signal):
        selector = OptimalScaleSelector()
        with pytest.raises(InvalidArgumentError):
            selector.select_scales(signal, None, self.fs)
        with pytest.raises(InvalidArgumentError):
            selector.select_scales(signal, MorletWavelet(), None)
        with pytest.raises(InvalidArgumentError):
            selector.select_scales(signal, MorletWavelet(), -1.0)
        with pytest.raises(InvalidArgumentError):
            selector.select_scales(None, MorletWavelet(), self.fs)


class TestSignalAdaptiveScaleSelector(unittest.TestCase):
    """Test spectrum-driven scale selection."""

    def setUp(self):
        self.fs = 200.0
        self.signal = _two_tone(2048, self.fs)
        self.selector = SignalAdaptiveScaleSelector()

    def test_dominant_frequencies(self):
        characteristics = self.selector.analyze_signal(self.signal, self.fs)
        found = [p.frequency for p in characteristics.dominant_frequencies]
        self.assertTrue(any(abs(f - 10.0) < 0.5 for f in found), found)
        self.assertTrue(any(abs(f - 25.0) < 0.5 for f in found), found)
        for peak in characteristics.dominant_frequencies:
            self.assertGreater(peak.relative_strength, 0.01)

    def test_statistics(self):
        characteristics = self.selector.analyze_signal(self.signal, self.fs)
        self.assertAlmostEqual(characteristics.mean, 0.0, places=2)
        self.assertAlmostEqual(characteristics.variance, 1.0, places=1)
        self.assertGreater(characteristics.spectral_centroid, 10.0)
        self.assertLess(characteristics.spectral_centroid, 25.0)
        self.assertGreater(characteristics.effective_bandwidth, 0.0)

    def test_constant_signal(self):
        characteristics = self.selector.analyze_signal(np.ones(256), self.fs)
        self.assertEqual(characteristics.variance, 0.0)
        self.assertEqual(characteristics.skewness, 0.0)
        self.assertEqual(characteristics.kurtosis, 0.0)

    def test_scales_cover_peaks(self):
        wavelet = MorletWavelet()
        scales = self.selector.select_scales(self.signal, wavelet, self.fs)
        self.assertTrue(np.all(scales > 0))
        self.assertTrue(np.all(np.diff(scales) > 0))
        fmin, fmax = AdaptiveScaleSelector.get_frequency_range(scales, wavelet, self.fs)
        self.assertLessEqual(fmin, 10.5)
        self.assertGreaterEqual(fmax, 24.5)

    def test_pruning(self):
        config = ScaleSelectionConfig(self.fs, spacing=ScaleSpacing.ADAPTIVE, max_scales=8)
        scales = self.selector.select_scales(self.signal, MorletWavelet(), config)
        self.assertEqual(scales.size, 8)
        self.assertTrue(np.all(np.diff(scales) > 0))

    def test_explicit_range(self):
        config = ScaleSelectionConfig(self.fs, min_frequency=5.0, max_frequency=50.0)
        characteristics = self.selector.analyze_signal(self.signal, self.fs)
        self.assertEqual(SignalAdaptiveScaleSelector.frequency_range(characteristics, config),
                         (5.0, 50.0))


class TestDyadicScaleSelector(unittest.TestCase):
    """Test power-of-two scale selection."""

    def test_powers_of_two(self):
        signal = generate_test_signal(1024, 5.0, 100.0)
        scales = DyadicScaleSelector().select_scales(signal, MorletWavelet(), 100.0)
        np.testing.assert_array_equal(scales, 2.0 ** np.arange(9))

    def test_frequency_range(self):
        signal = generate_test_signal(1024, 5.0, 100.0)
        config = ScaleSelectionConfig(100.0, min_frequency=2.0, max_frequency=20.0,
                                      use_signal_adaptation=False)
        scales = DyadicScaleSelector().select_scales(signal, MorletWavelet(), config)
        np.testing.assert_array_equal(scales, [8.0, 16.0, 32.0])

    def test_generate_dyadic_scales(self):
        np.testing.assert_array_equal(DyadicScaleSelector.generate_dyadic_scales(3, 40),
                                      [4.0, 8.0, 16.0, 32.0])
        with self.assertRaises(InvalidArgumentError):
            DyadicScaleSelector.generate_dyadic_scales(8, 4)


class TestScaleSpace(unittest.TestCase):
    """Test the immutable scale container."""

    def test_factories(self):
        self.assertEqual(ScaleSpace.linear(1, 10, 10).scale_type, ScaleType.LINEAR)
        log_space = ScaleSpace.logarithmic(1, 64, 7)
        np.testing.assert_allclose(log_space.scales, 2.0 ** np.arange(7))
        dyadic = ScaleSpace.dyadic(1, 4)
        self.assertEqual(list(dyadic), [2.0, 4.0, 8.0, 16.0])
        self.assertEqual(dyadic.scale_type, ScaleType.DYADIC)

    def test_custom_sorts(self):
        space = ScaleSpace.custom([4.0, 1.0, 2.0])
        self.assertEqual(list(space), [1.0, 2.0, 4.0])
        with self.assertRaises(InvalidArgumentError):
            ScaleSpace.custom_sorted([4.0, 1.0, 2.0])
        with self.assertRaises(InvalidArgumentError):
            ScaleSpace.custom([1.0, 1.0])

    def test_validation(self):
        with self.assertRaises(InvalidArgumentError):
            ScaleSpace([])
        with self.assertRaises(InvalidArgumentError):
            ScaleSpace([0.0, 1.0])
        with self.assertRaises(InvalidArgumentError):
            ScaleSpace.linear(5, 1, 10)
        with self.assertRaises(InvalidArgumentError):
            ScaleSpace.dyadic(3, 1)

    def test_immutable(self):
        space = ScaleSpace.linear(1, 4, 4)
        copy = space.scales
        copy[0] = 100.0
        self.assertEqual(space[0], 1.0)
        with self.assertRaises(IndexError):
            space[4]

    def test_frequencies(self):
        wavelet = MorletWavelet()
        space = ScaleSpace.for_frequency_range(5.0, 40.0, 100.0, wavelet, 16)
        frequencies = space.to_frequencies(wavelet, 100.0)
        self.assertAlmostEqual(frequencies[0], 40.0)
        self.assertAlmostEqual(frequencies[-1], 5.0)
        self.assertEqual(space.find_scale_index_for_frequency(40.0, wavelet, 100.0), 0)
        self.assertEqual(ScaleSpace.scale_to_frequency(4.0, wavelet, 100.0), 25.0)
        self.assertEqual(len(space), 16)


class TestMelConversion:

    def test_round_trip(self):
        frequencies = np.array([0.0, 100.0, 1000.0, 8000.0])
        np.testing.assert_allclose(mel_to_frequency(frequency_to_mel(frequencies)), frequencies,
                                   atol=1e-9)

    def test_estimate_scale_count(self):
        assert AdaptiveScaleSelector.estimate_scale_count(10.0, 40.0, 12) == 24
        with pytest.raises(InvalidArgumentError):
            AdaptiveScaleSelector.estimate_scale_count(40.0, 10.0, 12)
