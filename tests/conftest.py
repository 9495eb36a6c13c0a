"""
Pytest fixtures for the galaxy test suite.
"""
import os

import numpy as np
import pytest

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from galaxy import GalaxyParameters


@pytest.fixture
def small_params():
    """A small, fast galaxy with spiral arms enabled."""
    return GalaxyParameters(count=300, radius=5.0, seed=1234)


@pytest.fixture
def rng():
    """Seeded random generator for reproducible draws."""
    return np.random.default_rng(2024)
