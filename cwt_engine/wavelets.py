# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Continuous mother wavelets.

Every wavelet exposes a vectorized ``psi(t)`` (real part), its center
frequency and bandwidth, a ``name`` used for family matching, and
``discretize(n)``. Complex wavelets derive from ``ComplexContinuousWavelet``
and additionally provide ``psi_imaginary(t)``; ``is_complex`` is the only
thing the transforms look at to tell the two kinds apart.
"""

import math
from abc import ABC, abstractmethod

import numpy as np
from scipy import special

from .exceptions import InvalidArgumentError


def _evaluate(function, t):
    """Apply ``function`` to ``t`` and return a float for scalar input."""
    values = function(np.asarray(t, dtype=np.float64))
    if np.ndim(t) == 0:
        return float(values)
    return values


def _require_positive(value, what):
    if value is None or not value > 0 or not np.isfinite(value):
        raise InvalidArgumentError(f"{what} must be positive, got {value}")
    return float(value)


class ContinuousWavelet(ABC):
    """Base class for real-valued continuous wavelets."""

    is_complex = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Short family name, e.g. ``morlet`` or ``dog4``."""

    @property
    @abstractmethod
    def center_frequency(self) -> float:
        """Center frequency in cycles per unit time."""

    @property
    @abstractmethod
    def bandwidth(self) -> float:
        """Bandwidth parameter; also sets the sampled support of the wavelet."""

    @abstractmethod
    def _psi(self, t):
        pass

    def psi(self, t):
        """Evaluate the (real part of the) wavelet at ``t``."""
        return _evaluate(self._psi, t)

    @property
    def description(self) -> str:
        return self.name

    @property
    def effective_support(self) -> float:
        """Half width of the time interval holding nearly all the energy."""
        return 4.0 * self.bandwidth

    def discretize(self, length: int) -> np.ndarray:
        """
        Sample the wavelet over its effective support with unit energy.

        Args:
            length (int): Number of samples

        Returns:
            numpy.ndarray: Energy-normalized samples of the real part
        """
        if length is None or length < 1:
            raise InvalidArgumentError(f"Length must be positive, got {length}")
        support = self.effective_support
        t = np.linspace(-support, support, int(length))
        samples = np.asarray(self._psi(t), dtype=np.float64)
        energy = np.sqrt(np.sum(samples ** 2))
        if energy < 1e-10:
            return np.zeros(int(length))
        return samples / energy

    def __repr__(self):
        return f"{type(self).__name__}({self.description})"


class ComplexContinuousWavelet(ContinuousWavelet):
    """Base class for complex-valued continuous wavelets."""

    is_complex = True

    @abstractmethod
    def _psi_imaginary(self, t):
        pass

    def psi_imaginary(self, t):
        """Evaluate the imaginary part of the wavelet at ``t``."""
        return _evaluate(self._psi_imaginary, t)

    def psi_complex(self, t):
        t = np.asarray(t, dtype=np.float64)
        values = self._psi(t) + 1j * self._psi_imaginary(t)
        if values.ndim == 0:
            return complex(values)
        return values


class MorletWavelet(ContinuousWavelet):
    """
    Real Morlet wavelet with the admissibility correction term.

    ``psi(t) = pi^(-1/4) / sqrt(sigma) * exp(-t^2 / (2 sigma^2))
    * (cos(2 pi fc t) - exp(-(2 pi fc sigma)^2 / 2))``

    Args:
        bandwidth (float): Gaussian envelope width sigma
        center_frequency (float): Modulation frequency fc
    """

    def __init__(self, bandwidth=1.0, center_frequency=1.0):
        self._sigma = _require_positive(bandwidth, "Bandwidth")
        self._fc = _require_positive(center_frequency, "Center frequency")
        self._omega0 = 2.0 * math.pi * self._fc
        self._norm = math.pi ** -0.25 / math.sqrt(self._sigma)
        self._correction = math.exp(-0.5 * (self._omega0 * self._sigma) ** 2)

    @property
    def name(self):
        return "morlet"

    @property
    def center_frequency(self):
        return self._fc

    @property
    def bandwidth(self):
        return self._sigma

    @property
    def description(self):
        return f"morlet(bandwidth={self._sigma:g}, center_frequency={self._fc:g})"

    def _envelope(self, t):
        return self._norm * np.exp(-0.5 * (t / self._sigma) ** 2)

    def _psi(self, t):
        return self._envelope(t) * (np.cos(self._omega0 * t) - self._correction)


class ComplexMorletWavelet(ComplexContinuousWavelet, MorletWavelet):
    """Analytic Morlet wavelet; the real part equals ``MorletWavelet``."""

    @property
    def name(self):
        return "complex-morlet"

    @property
    def description(self):
        return (f"complex-morlet(bandwidth={self._sigma:g}, "
                f"center_frequency={self._fc:g})")

    def _psi_imaginary(self, t):
        return self._envelope(t) * np.sin(self._omega0 * t)


class DOGWavelet(ContinuousWavelet):
    """
    Derivative of Gaussian wavelet of order ``m``.

    ``psi(t) = (-1)^(m+1) / sqrt(Gamma(m + 1/2)) * d^m/dt^m exp(-t^2 / 2)``
    """

    def __init__(self, order=2):
        if order is None or int(order) != order or not 1 <= order <= 8:
            raise InvalidArgumentError(f"DOG order must be an integer in [1, 8], got {order}")
        self._order = int(order)
        self._norm = (-1) ** (self._order + 1) / math.sqrt(special.gamma(self._order + 0.5))

    @property
    def order(self):
        return self._order

    @property
    def name(self):
        return f"dog{self._order}"

    @property
    def center_frequency(self):
        return math.sqrt(self._order) / (2.0 * math.pi)

    @property
    def bandwidth(self):
        return 1.0

    @property
    def effective_support(self):
        return 5.0

    def _psi(self, t):
        # d^m/dt^m exp(-t^2/2) = (-1)^m He_m(t) exp(-t^2/2)
        derivative = (-1) ** self._order * special.eval_hermitenorm(self._order, t)
        return self._norm * derivative * np.exp(-0.5 * t ** 2)


class MexicanHatWavelet(ContinuousWavelet):
    """
    Mexican hat (Ricker) wavelet, the DOG wavelet of order 2.

    Args:
        sigma (float): Width of the central lobe
    """

    def __init__(self, sigma=1.0):
        self._sigma = _require_positive(sigma, "Sigma")
        self._norm = 2.0 / (math.sqrt(3.0 * self._sigma) * math.pi ** 0.25)

    @property
    def name(self):
        return "mexh"

    @property
    def center_frequency(self):
        return math.sqrt(2.0) / (2.0 * math.pi * self._sigma)

    @property
    def bandwidth(self):
        return self._sigma

    @property
    def effective_support(self):
        return 5.0 * self._sigma

    def _psi(self, t):
        x2 = (t / self._sigma) ** 2
        return self._norm * (1.0 - x2) * np.exp(-0.5 * x2)


# sqrt(2 / (2n-1)!!) keeps the derivatives comparable in energy
_DERIVATIVE_NORMS = {
    n: math.sqrt(2.0 / special.factorial2(2 * n - 1, exact=True)) for n in range(1, 9)
}


class GaussianDerivativeWavelet(ContinuousWavelet):
    """
    n-th derivative of a Gaussian with width ``sigma`` (``gaus<n>``).

    Args:
        order (int): Derivative order, 1 to 8
        sigma (float): Gaussian width
    """

    def __init__(self, order=1, sigma=1.0):
        if order is None or int(order) != order or order < 1:
            raise InvalidArgumentError(f"Derivative order must be positive, got {order}")
        if order > 8:
            raise InvalidArgumentError(f"Derivative order too large (max 8), got {order}")
        self._order = int(order)
        self._sigma = _require_positive(sigma, "Scale parameter sigma")
        gauss_norm = 1.0 / math.sqrt(2.0 * math.pi * self._sigma ** 2)
        self._norm = gauss_norm * _DERIVATIVE_NORMS[self._order]

    @property
    def order(self):
        return self._order

    @property
    def sigma(self):
        return self._sigma

    @property
    def name(self):
        return f"gaus{self._order}"

    @property
    def description(self):
        return f"gaus{self._order}(sigma={self._sigma:g})"

    @property
    def center_frequency(self):
        return math.sqrt(self._order) / (2.0 * math.pi * self._sigma)

    @property
    def bandwidth(self):
        return math.sqrt(self._order) / (self._sigma * math.sqrt(2.0))

    @property
    def effective_support(self):
        return 4.0 * self._sigma * math.sqrt(self._order)

    def _psi(self, t):
        x = t / self._sigma
        gaussian = np.exp(-0.5 * x ** 2) * self._norm
        hermite = special.eval_hermitenorm(self._order, x)
        return (-1) ** self._order * hermite / self._sigma ** self._order * gaussian


class PaulWavelet(ComplexContinuousWavelet):
    """
    Paul wavelet of order ``m``.

    ``psi(t) = 2^m i^m m! / sqrt(pi (2m)!) * (1 - i t)^-(m+1)``
    """

    def __init__(self, order=4):
        if order is None or int(order) != order or not 1 <= order <= 20:
            raise InvalidArgumentError(f"Paul order must be an integer in [1, 20], got {order}")
        self._order = int(order)
        self._coefficient = (2 ** self._order * 1j ** self._order * math.factorial(self._order)
                             / math.sqrt(math.pi * math.factorial(2 * self._order)))

    @property
    def order(self):
        return self._order

    @property
    def name(self):
        return f"paul{self._order}"

    @property
    def center_frequency(self):
        return self._order / (2.0 * math.pi)

    @property
    def bandwidth(self):
        return 1.0

    def _complex(self, t):
        return self._coefficient * (1.0 - 1j * t) ** -(self._order + 1)

    def _psi(self, t):
        return self._complex(t).real

    def _psi_imaginary(self, t):
        return self._complex(t).imag


class ShannonWavelet(ContinuousWavelet):
    """
    Real Shannon wavelet ``sqrt(fb) * sinc(fb t) * cos(2 pi fc t)``.

    Its spectrum is a pair of rectangles of width ``fb`` centered on
    ``+-fc``; ``fc > fb / 2`` keeps the DC bin empty.
    """

    def __init__(self, bandwidth=0.5, center_frequency=1.5):
        self._fb = _require_positive(bandwidth, "Bandwidth")
        self._fc = _require_positive(center_frequency, "Center frequency")
        if self._fc <= self._fb / 2.0:
            raise InvalidArgumentError(
                f"Center frequency must exceed half the bandwidth, got fc={self._fc}, fb={self._fb}")

    @property
    def name(self):
        return "shannon"

    @property
    def center_frequency(self):
        return self._fc

    @property
    def bandwidth(self):
        return self._fb

    @property
    def effective_support(self):
        return 8.0 / self._fb

    def _psi(self, t):
        return math.sqrt(self._fb) * np.sinc(self._fb * t) * np.cos(2.0 * math.pi * self._fc * t)


class ComplexGaussianWavelet(ComplexContinuousWavelet):
    """
    Hermite-modulated complex Gaussian wavelet (``cgau<n>``).

    ``psi(t) = N * H_n(t / sigma) * exp(-t^2 / (2 sigma^2)) * exp(i omega0 t)``
    """

    def __init__(self, order=1, sigma=1.0, omega0=5.0):
        if order is None or int(order) != order or not 1 <= order <= 8:
            raise InvalidArgumentError(f"Order must be an integer in [1, 8], got {order}")
        self._order = int(order)
        self._sigma = _require_positive(sigma, "Sigma")
        self._omega0 = _require_positive(omega0, "Modulation frequency")
        self._norm = 1.0 / (self._sigma ** (self._order + 0.5)
                            * math.sqrt(2 ** self._order * math.factorial(self._order)
                                        * math.sqrt(math.pi)))

    @property
    def name(self):
        return f"cgau{self._order}"

    @property
    def center_frequency(self):
        return self._omega0 / (2.0 * math.pi)

    @property
    def bandwidth(self):
        return math.sqrt(self._order + 0.5) / (self._sigma * math.sqrt(2.0 * math.pi))

    @property
    def effective_support(self):
        return 5.0 * self._sigma

    def _envelope(self, t):
        x = t / self._sigma
        return self._norm * special.eval_hermite(self._order, x) * np.exp(-0.5 * x ** 2)

    def _psi(self, t):
        return self._envelope(t) * np.cos(self._omega0 * t)

    def _psi_imaginary(self, t):
        return self._envelope(t) * np.sin(self._omega0 * t)
