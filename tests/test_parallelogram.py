"""Unit tests for parallelogram intersection.

Tests cover:
- Ray hitting the parallelogram center (front and back face)
- Ray hitting edges and the implied fourth corner region
- Ray missing (outside bounds, parallel to the plane)
- Three-corner construction
"""

import pytest
import taichi as ti


def _query(origin, direction, t_min=1e-6, t_max=1000.0):
    """Intersect one ray with the parallelogram spanning [-1,1] x [-1,1] at z=0."""
    from src.whitted.geometry.parallelogram import Parallelogram, hit_parallelogram, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, t_min: ti.f32, t_max: ti.f32):
        shape = Parallelogram(
            corner=vec3(-1.0, -1.0, 0.0),
            edge_u=vec3(2.0, 0.0, 0.0),
            edge_v=vec3(0.0, 2.0, 0.0),
        )
        record = hit_parallelogram(o, d, shape, t_min, t_max)
        hit[None] = record.hit
        t_val[None] = record.t
        normal[None] = record.normal
        front_face[None] = record.front_face

    test_kernel(vec3(*origin), vec3(*direction), t_min, t_max)
    return hit[None], t_val[None], normal[None], front_face[None]


class TestParallelogramBasics:
    """Tests for construction helpers."""

    def test_from_points(self):
        """Test the three-corner form becomes a corner and two edges."""
        from src.whitted.geometry.parallelogram import parallelogram_from_points

        corner, edge_u, edge_v = parallelogram_from_points((1, 2, 3), (4, 2, 3), (1, 2, -1))
        assert corner == (1.0, 2.0, 3.0)
        assert edge_u == (3.0, 0.0, 0.0)
        assert edge_v == (0.0, 0.0, -4.0)

    def test_normal(self):
        """Test the normal follows cross(edge_u, edge_v)."""
        from src.whitted.geometry.parallelogram import (
            Parallelogram,
            parallelogram_normal,
            vec3,
        )

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            shape = Parallelogram(
                corner=vec3(0.0, 0.0, 0.0),
                edge_u=vec3(1.0, 0.0, 0.0),
                edge_v=vec3(0.0, 1.0, 0.0),
            )
            result[None] = parallelogram_normal(shape)

        test_kernel()
        n = result[None]
        assert abs(n[0]) < 1e-6
        assert abs(n[1]) < 1e-6
        assert abs(n[2] - 1.0) < 1e-6


class TestParallelogramIntersection:
    """Tests for ray-parallelogram intersection."""

    def test_hit_center_front(self):
        hit, t, normal, front_face = _query((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t - 5.0) < 1e-5
        assert abs(normal[2] - 1.0) < 1e-6
        assert front_face == 1

    def test_hit_center_back(self):
        """Test a ray from behind sees a normal flipped toward it."""
        hit, t, normal, front_face = _query((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 1
        assert abs(t - 5.0) < 1e-5
        assert abs(normal[2] - (-1.0)) < 1e-6
        assert front_face == 0

    def test_edge_is_inclusive(self):
        """Test a hit exactly on the far edge (alpha == 1) counts."""
        hit, _, _, _ = _query((1.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1

    def test_fourth_corner_region(self):
        """Test the region near point2 + point3 - point1 is inside."""
        hit, _, _, _ = _query((0.9, 0.9, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1

    @pytest.mark.parametrize("x,y", [(1.5, 0.0), (0.0, -1.5), (2.0, 2.0)])
    def test_outside_misses(self, x, y):
        hit, _, _, _ = _query((x, y, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_parallel_ray_misses(self):
        hit, _, _, _ = _query((0.0, 0.0, 1.0), (1.0, 0.0, 0.0))
        assert hit == 0

    def test_behind_origin_misses(self):
        hit, _, _, _ = _query((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert hit == 0

    def test_t_min_rejects_close_hit(self):
        """Test a hit at t <= t_min is ignored."""
        hit, _, _, _ = _query((0.0, 0.0, 1e-4), (0.0, 0.0, -1.0), t_min=1e-3)
        assert hit == 0
