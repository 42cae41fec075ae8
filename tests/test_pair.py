"""
Tests for vectors and observer/mobile pairs.

Validates:
1. Vector construction and approximate equality (norm-1 / norm-2)
2. Derived relative vector and length of a Pair
3. Geometric transforms applied to both points
4. Interpolation between pairs
"""

import numpy as np
import pytest

from pointmass.pair import Pair
from pointmass.vectors import EX, EZ, is_close, lerp, rotation_matrix, unit_normal, vec3


class TestVectors:
    """Tests for vector helpers."""

    def test_vec3_copies_input(self):
        u = np.array([1.0, 2.0, 3.0])
        v = vec3(u)
        v[0] = 10.0
        assert u[0] == 1.0
        assert v.dtype == np.float64

    def test_vec3_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            vec3([1.0, 2.0])

    def test_is_close_norms(self):
        u = np.array([0.0, 0.0, 0.0])
        v = np.array([0.3, 0.4, 0.0])
        # Euclidean distance 0.5, norm-1 distance 0.7
        assert is_close(u, v, tol=0.5, norm=2)
        assert not is_close(u, v, tol=0.5, norm=1)
        assert is_close(u, v, tol=0.7, norm=1)

    def test_is_close_rejects_unknown_norm(self):
        with pytest.raises(ValueError):
            is_close(EX, EX, norm=3)

    def test_lerp_endpoints(self):
        u = np.array([0.1, 0.2, 0.3])
        v = np.array([1.0, -1.0, 2.0])
        assert np.array_equal(lerp(u, v, 0.0), u)
        assert np.allclose(lerp(u, v, 1.0), v)
        assert np.allclose(lerp(u, v, 0.5), 0.5 * (u + v))

    def test_unit_normal_orthogonal(self):
        for axis in ([0, 0, 1], [1, 1, 0], [0.3, -2.0, 0.5]):
            n = unit_normal(axis)
            assert abs(np.linalg.norm(n) - 1.0) < 1e-12
            assert abs(np.dot(n, axis)) < 1e-12

    def test_rotation_matrix_quarter_turn(self):
        m = rotation_matrix(EZ, np.pi / 2)
        assert np.allclose(m @ EX, [0.0, 1.0, 0.0])
        assert np.allclose(m @ m.T, np.eye(3))


class TestPair:
    """Tests for the Pair dataclass."""

    def test_relative_and_length(self):
        pair = Pair(origin=[1, 1, 0], position=[4, 5, 0])
        assert np.allclose(pair.relative, [3, 4, 0])
        assert pair.length == pytest.approx(5.0)

    def test_relative_setter_keeps_origin(self):
        pair = Pair(origin=[1, 1, 1], position=[2, 2, 2])
        pair.relative = [0, 0, 3]
        assert np.allclose(pair.origin, [1, 1, 1])
        assert np.allclose(pair.position, [1, 1, 4])

    def test_length_setter_scales_relative(self):
        pair = Pair(origin=[1, 0, 0], position=[1, 2, 0])
        pair.length = 4.0
        assert np.allclose(pair.position, [1, 4, 0])
        assert pair.length == pytest.approx(4.0)

    def test_length_setter_on_zero_pair(self):
        pair = Pair.zeros([1, 2, 3])
        pair.length = 2.0
        assert pair.length == 0.0

    def test_translate_preserves_relative(self):
        pair = Pair(origin=[0, 0, 0], position=[1, 2, 3])
        rel = pair.relative
        pair.translate([5, -5, 1])
        assert np.allclose(pair.relative, rel)
        assert np.allclose(pair.origin, [5, -5, 1])

    def test_homothetic_scales_both(self):
        pair = Pair(origin=[1, 0, 0], position=[1, 1, 0]).homothetic(2.0)
        assert np.allclose(pair.origin, [2, 0, 0])
        assert np.allclose(pair.position, [2, 2, 0])

    def test_transform_rotation_preserves_length(self):
        pair = Pair(origin=[1, 0, 0], position=[2, 3, 0])
        before = pair.length
        pair.transform(rotation_matrix([1, 1, 1], 0.7))
        assert pair.length == pytest.approx(before)

    def test_affine(self):
        pair = Pair(origin=[1, 0, 0], position=[0, 1, 0])
        pair.affine(2.0 * np.eye(3), [0, 0, 1])
        assert np.allclose(pair.origin, [2, 0, 1])
        assert np.allclose(pair.position, [0, 2, 1])

    def test_is_equal_compares_relatives(self):
        a = Pair(origin=[0, 0, 0], position=[1, 0, 0])
        b = Pair(origin=[5, 5, 5], position=[6, 5, 5])
        assert a.is_equal(b)
        assert not a.is_equal(Pair.vect([1, 1e-3, 0]))
        assert a.is_equal(Pair.vect([1, 1e-3, 0]), tol=1e-2)

    def test_copy_is_independent(self):
        a = Pair.vect([1, 2, 3])
        b = a.copy()
        b.position[0] = 100.0
        assert a.position[0] == 1.0

    def test_interpolate(self):
        p0 = Pair(origin=[0, 0, 0], position=[1, 0, 0])
        p1 = Pair(origin=[2, 0, 0], position=[1, 4, 0])
        mid = Pair.interpolate(p0, p1, 0.25)
        assert np.allclose(mid.origin, [0.5, 0, 0])
        assert np.allclose(mid.position, [1, 1, 0])

    def test_is_finite(self):
        assert Pair.vect([1, 2, 3]).is_finite()
        assert not Pair.vect([np.nan, 0, 0]).is_finite()

    def test_is_zero(self):
        assert Pair.zeros([3, 3, 3]).is_zero()
        assert not Pair.vect([0, 0, 1]).is_zero()
