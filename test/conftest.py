"""
conftest.py - pytest fixtures shared across the test suite.

Puts ``src/`` on the import path, forces the Agg matplotlib backend and
provides the small geometric values most test modules need.
"""

import os
import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

os.environ.setdefault("MPLBACKEND", "Agg")

from push_planner.geometry import Rect  # noqa: E402
from push_planner.models import MoveableBox, RobotPose  # noqa: E402


# =========================================================================
# Geometry fixtures
# =========================================================================

@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator so sampling tests are reproducible."""
    return np.random.default_rng(0)


@pytest.fixture
def centre_block() -> Rect:
    """0.2 x 0.2 static block in the middle of the workspace."""
    return Rect(0.4, 0.4, 0.2, 0.2)


@pytest.fixture
def small_box() -> MoveableBox:
    """0.05 square box near the lower-left corner."""
    return MoveableBox.square("goal_0", 0.1, 0.1, 0.05)


@pytest.fixture
def robot_pose() -> RobotPose:
    """Horizontal robot of width 0.05 at the workspace centre."""
    return RobotPose(0.5, 0.5, 0.0, 0.05)
