import importlib.util
import math

import pytest

from spirogears_core import GearRegistry
from spirogears_math import get_backend_name, list_backends, preview_path, set_backend


def test_numba_backend_availability():
    backends = list_backends(available_only=True)
    names = {backend.name for backend in backends}
    assert "python" in names

    numba_available = importlib.util.find_spec("numba") is not None
    if numba_available:
        assert "numba" in names
    else:
        assert "numba" not in names


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError):
        set_backend("fortran")
    assert get_backend_name() in {b.name for b in list_backends()}


def test_preview_edge_cases():
    set_backend("python")
    registry = GearRegistry()
    fixed = registry.add_fixed((0.0, 0.0))
    gear = registry.add_rotating(fixed.handle)
    assert preview_path(fixed, gear, 0) == []
    fixed.radius = 0.0
    assert preview_path(fixed, gear, 10) == []


@pytest.mark.skipif(importlib.util.find_spec("numba") is None, reason="numba not installed")
def test_numba_preview_matches_python():
    registry = GearRegistry()
    fixed = registry.add_fixed((5.0, -3.0))
    gear = registry.add_rotating(fixed.handle, speed=0.07, radius=41.0, pen_offset=33.0)
    try:
        set_backend("python")
        expected = preview_path(fixed, gear, 200)
        set_backend("numba")
        actual = preview_path(fixed, gear, 200)
    finally:
        set_backend("python")

    assert len(actual) == len(expected)
    for (ax, ay), (ex, ey) in zip(actual, expected):
        assert math.isclose(ax, ex, abs_tol=1e-6)
        assert math.isclose(ay, ey, abs_tol=1e-6)
