# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Discrete wavelet transforms used to rebuild signals from dyadic CWT scales.

Only what the DWT and MODWT based inverse CWT strategies need is provided:
a periodized multilevel DWT on top of PyWavelets and a circular MODWT with
exact reconstruction for any signal length.
"""

import logging

import numpy as np
import pywt

from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


def _as_signal(signal):
    signal = np.asarray(signal, dtype=np.float64)
    if signal.ndim != 1 or signal.size == 0:
        raise InvalidArgumentError("Signal must be a non-empty 1-D array")
    return signal


def _discrete_wavelet(wavelet):
    if isinstance(wavelet, pywt.Wavelet):
        return wavelet
    try:
        return pywt.Wavelet(wavelet)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown discrete wavelet: {wavelet!r}") from e


def match_discrete_wavelet(wavelet):
    """
    Pick the discrete wavelet closest to a continuous one.

    Args:
        wavelet (ContinuousWavelet): Continuous wavelet

    Returns:
        str: PyWavelets name, ``db2`` for Paul wavelets and ``db4`` otherwise
    """
    if 'paul' in wavelet.name.lower():
        return 'db2'
    return 'db4'


class DiscreteWaveletTransform:
    """
    Periodized Discrete Wavelet Transform (DWT).

    Each level halves the approximation (rounding up for odd lengths) and
    produces a detail band of the same length.

    Args:
        wavelet (str or pywt.Wavelet): Orthogonal wavelet, e.g. ``'db4'``
    """

    MODE = 'periodization'

    def __init__(self, wavelet='db4'):
        self.wavelet = _discrete_wavelet(wavelet)

    @property
    def filter_length(self):
        return self.wavelet.dec_len

    def max_level(self, signal_length):
        """Deepest useful decomposition level for ``signal_length`` samples."""
        return pywt.dwt_max_level(signal_length, self.wavelet.dec_len)

    def forward(self, signal, levels=1):
        """
        Perform forward DWT.

        Args:
            signal (numpy.ndarray): Input signal
            levels (int): Number of decomposition levels

        Returns:
            dict: ``approximation`` holds the signal followed by the
            approximations of levels 1..J, ``detail`` the details of
            levels 1..J
        """
        signal = _as_signal(signal)
        if levels < 1:
            raise InvalidArgumentError(f"Levels must be positive, got {levels}")
        if signal.size < 2 ** levels:
            raise InvalidArgumentError(f"Signal length must be at least 2^{levels}")

        approx_coeffs = [signal]
        detail_coeffs = []
        for _ in range(levels):
            approx, detail = pywt.dwt(approx_coeffs[-1], self.wavelet, mode=self.MODE)
            approx_coeffs.append(approx)
            detail_coeffs.append(detail)

        return {
            'approximation': approx_coeffs,
            'detail': detail_coeffs,
        }

    def idwt(self, approximation, detail):
        """Single level reconstruction; ``detail`` may be None."""
        return pywt.idwt(approximation, detail, self.wavelet, mode=self.MODE)

    def inverse(self, coeffs):
        """
        Perform inverse DWT.

        Args:
            coeffs (dict): Output of ``forward``. The approximation entry may
                also be a single array holding the coarsest approximation.

        Returns:
            numpy.ndarray: Reconstructed signal
        """
        approx_coeffs = coeffs['approximation']
        detail_coeffs = coeffs['detail']
        if isinstance(approx_coeffs, (list, tuple)):
            reconstruction = np.asarray(approx_coeffs[-1], dtype=np.float64)
            sizes = [len(a) for a in approx_coeffs[:-1]]
        else:
            reconstruction = np.asarray(approx_coeffs, dtype=np.float64)
            sizes = [None] * len(detail_coeffs)

        for level in range(len(detail_coeffs) - 1, -1, -1):
            detail = detail_coeffs[level]
            if detail is not None and len(detail) != len(reconstruction):
                raise InvalidArgumentError(
                    f"Level {level + 1} detail length {len(detail)} does not match "
                    f"approximation length {len(reconstruction)}")
            reconstruction = self.idwt(reconstruction, detail)
            if sizes[level] is not None:
                # Odd lengths were padded by one sample on the way down
                reconstruction = reconstruction[:sizes[level]]
        return reconstruction


class MaximalOverlapDWT:
    """
    Maximal Overlap Discrete Wavelet Transform (MODWT).

    The MODWT does not downsample, so every level keeps the signal length
    and the transform is translation invariant. Filters are the orthogonal
    DWT filters scaled by 1/sqrt(2); at level j they are applied circularly
    with a stride of 2^(j-1) samples (pyramid algorithm), which gives exact
    reconstruction for any length.

    Args:
        wavelet (str or pywt.Wavelet): Orthogonal wavelet, e.g. ``'db4'``
    """

    def __init__(self, wavelet='db4'):
        self.wavelet = _discrete_wavelet(wavelet)
        if not self.wavelet.orthogonal:
            raise InvalidArgumentError(f"MODWT needs an orthogonal wavelet, got {self.wavelet.name}")
        scaling = np.asarray(self.wavelet.rec_lo, dtype=np.float64)
        length = scaling.size
        # Quadrature mirror of the scaling filter
        wavelet_filter = np.array([(-1) ** l * scaling[length - 1 - l] for l in range(length)])
        self.scaling_filter = scaling / np.sqrt(2)
        self.wavelet_filter = wavelet_filter / np.sqrt(2)

    @staticmethod
    def _circular_filter(signal, filter_coef, stride):
        result = np.zeros_like(signal)
        for l, coef in enumerate(filter_coef):
            result += coef * np.roll(signal, stride * l)
        return result

    @staticmethod
    def _circular_filter_adjoint(signal, filter_coef, stride):
        result = np.zeros_like(signal)
        for l, coef in enumerate(filter_coef):
            result += coef * np.roll(signal, -stride * l)
        return result

    def forward(self, signal, levels=1):
        """
        Perform forward MODWT.

        Args:
            signal (numpy.ndarray): Input signal
            levels (int): Number of decomposition levels

        Returns:
            dict: ``wavelet`` holds W_1..W_J and ``scaling`` holds V_J, all
            with the length of the signal
        """
        signal = _as_signal(signal)
        if levels < 1:
            raise InvalidArgumentError(f"Levels must be positive, got {levels}")

        wavelet_coeffs = []
        scaling = signal.copy()
        for level in range(1, levels + 1):
            stride = 2 ** (level - 1)
            wavelet_coeffs.append(self._circular_filter(scaling, self.wavelet_filter, stride))
            scaling = self._circular_filter(scaling, self.scaling_filter, stride)

        return {
            'wavelet': wavelet_coeffs,
            'scaling': scaling,
        }

    def inverse(self, coeffs):
        """
        Perform inverse MODWT.

        Args:
            coeffs (dict): ``wavelet`` (W_1..W_J, entries may be None for
                missing levels) and ``scaling`` (V_J)

        Returns:
            numpy.ndarray: Reconstructed signal
        """
        wavelet_coeffs = coeffs['wavelet']
        reconstruction = np.asarray(coeffs['scaling'], dtype=np.float64).copy()
        n = reconstruction.size

        for level in range(len(wavelet_coeffs), 0, -1):
            stride = 2 ** (level - 1)
            detail = wavelet_coeffs[level - 1]
            detail = np.zeros(n) if detail is None else np.asarray(detail, dtype=np.float64)
            if detail.size != n:
                raise InvalidArgumentError(
                    f"Level {level} wavelet coefficients have length {detail.size}, expected {n}")
            reconstruction = (
                self._circular_filter_adjoint(detail, self.wavelet_filter, stride)
                + self._circular_filter_adjoint(reconstruction, self.scaling_filter, stride))
        return reconstruction
