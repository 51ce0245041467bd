# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Global pytest configuration.
"""

import os
import sys

import numpy as np
import pytest

# Add the project root to the Python path so tests can import modules properly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


def generate_test_signal(length=1024, freq=5.0, sample_rate=100.0):
    """Sine wave of ``freq`` Hz."""
    t = np.arange(length) / sample_rate
    return np.sin(2 * np.pi * freq * t)


def generate_chirp_signal(length=2048, f0=10.0, f1=90.0):
    """Linear chirp whose frequency goes from f0 to f1 Hz over one second."""
    t = np.arange(length) / length
    return np.sin(2 * np.pi * (f0 * t + (f1 - f0) / 2 * t ** 2))


@pytest.fixture
def sine_signal():
    return generate_test_signal(256, freq=5.0, sample_rate=100.0)


@pytest.fixture
def random_signal():
    return np.random.default_rng(1234).standard_normal(200)


@pytest.fixture
def chirp_signal():
    return generate_chirp_signal()


@pytest.fixture
def temp_output_dir(tmp_path):
    """Fixture to provide a temporary directory for test outputs."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir
