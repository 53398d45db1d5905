"""Unit tests for sphere intersection and the shared HitRecord helpers."""

import math

import pytest
import taichi as ti


def _query(origin, direction, center=(0.0, 0.0, 0.0), radius=1.0, t_min=1e-3, t_max=1e4):
    """Run hit_sphere once and return (hit, t, point, normal, front_face)."""
    from src.whitted.geometry.sphere import Sphere, hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, c: vec3, r: ti.f32, lo: ti.f32, hi: ti.f32):
        record = hit_sphere(o, d, Sphere(center=c, radius=r), lo, hi)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        front_face[None] = record.front_face

    test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius, t_min, t_max)
    return (
        hit[None],
        t_val[None],
        tuple(point[None].to_numpy()),
        tuple(normal[None].to_numpy()),
        front_face[None],
    )


def _record(geometric_normal, ray_direction):
    from src.whitted.geometry.sphere import facing_record, vec3

    normal = ti.field(dtype=ti.math.vec3, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(n: vec3, d: vec3):
        rec = facing_record(1.0, vec3(0.0, 0.0, 0.0), n, d)
        normal[None] = rec.normal
        front_face[None] = rec.front_face

    test_kernel(vec3(*geometric_normal), vec3(*ray_direction))
    return tuple(normal[None].to_numpy()), front_face[None]


class TestHitRecordHelpers:
    """Tests for the HitRecord constructors shared by all primitives."""

    def test_miss_record(self):
        from src.whitted.geometry.sphere import miss_record

        hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            hit[None] = miss_record().hit

        test_kernel()
        assert hit[None] == 0

    def test_facing_record_keeps_normal_against_ray(self):
        normal, front = _record((0.0, 0.0, 1.0), (0.0, 0.0, -1.0))
        assert normal == pytest.approx((0.0, 0.0, 1.0))
        assert front == 1

    def test_facing_record_flips_normal_with_ray(self):
        normal, front = _record((0.0, 0.0, 1.0), (0.0, 0.0, 1.0))
        assert normal == pytest.approx((0.0, 0.0, -1.0))
        assert front == 0


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_head_on_hit(self):
        hit, t, point, normal, front = _query((0, 0, 5), (0, 0, -1))
        assert hit == 1
        assert t == pytest.approx(4.0, abs=1e-5)
        assert point == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert normal == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert front == 1

    def test_off_center_hit(self):
        hit, t, _, normal, _ = _query((0.6, 0, 5), (0, 0, -1))
        assert hit == 1
        assert t == pytest.approx(4.2, abs=1e-5)
        assert normal == pytest.approx((0.6, 0.0, 0.8), abs=1e-5)

    def test_ray_from_inside_hits_far_side(self):
        """Test the normal is flipped inward for a ray leaving the sphere."""
        hit, t, _, normal, front = _query((0, 0, 0), (0, 0, 1))
        assert hit == 1
        assert t == pytest.approx(1.0, abs=1e-5)
        assert normal == pytest.approx((0.0, 0.0, -1.0), abs=1e-5)
        assert front == 0

    def test_tangent_ray_hits(self):
        hit, t, point, _, _ = _query((1, 0, -5), (0, 0, 1))
        assert hit == 1
        assert t == pytest.approx(5.0, abs=1e-4)
        assert point == pytest.approx((1.0, 0.0, 0.0), abs=1e-4)

    @pytest.mark.parametrize(
        "origin,direction",
        [
            ((5, 0, 0), (0, 0, -1)),  # passes beside
            ((0, 0, 5), (0, 0, 1)),  # points away
            ((0, 0, 5), (0, 0, 0)),  # zero direction
        ],
    )
    def test_misses(self, origin, direction):
        assert _query(origin, direction)[0] == 0

    def test_unnormalized_direction(self):
        """Test t is measured in units of the direction vector."""
        hit, t, point, _, _ = _query((0, 0, 5), (0, 0, -2))
        assert hit == 1
        assert t == pytest.approx(2.0, abs=1e-5)
        assert point == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)

    def test_oblique_hit_lies_on_surface(self):
        s = 1.0 / math.sqrt(2.0)
        hit, _, point, normal, front = _query((5, 0, 5), (-s, 0, -s), radius=2.0)
        assert hit == 1
        assert front == 1
        assert math.dist(point, (0.0, 0.0, 0.0)) == pytest.approx(2.0, abs=1e-4)
        assert math.dist(normal, (0.0, 0.0, 0.0)) == pytest.approx(1.0, abs=1e-5)


class TestRobustQuadratic:
    """Tests for numerical robustness of the quadratic solve."""

    def test_large_distance(self):
        hit, t, _, _, _ = _query((0, 0, 1e6), (0, 0, -1), radius=1000.0, t_max=1e10)
        assert hit == 1
        # f32 keeps about 7 significant digits
        assert t == pytest.approx(999000.0, abs=100.0)

    def test_small_sphere(self):
        hit, t, _, _, _ = _query((0, 0, 1), (0, 0, -1), radius=0.001, t_min=1e-6)
        assert hit == 1
        assert t == pytest.approx(0.999, abs=1e-4)

    def test_near_tangent_has_no_nan(self):
        hit, _, point, _, _ = _query((1.0 + 1e-7, 0, -5), (0, 0, 1))
        if hit == 1:
            assert all(not math.isnan(c) for c in point)


class TestOpenInterval:
    """Tests that accepted hits satisfy t_min < t < t_max strictly."""

    def test_hit_exactly_at_t_max_rejected(self):
        # Near root at t=4, far root at t=6
        assert _query((0, 0, 5), (0, 0, -1), t_max=4.0)[0] == 0

    def test_hit_beyond_t_max_rejected(self):
        assert _query((0, 0, 100), (0, 0, -1), t_max=50.0)[0] == 0

    def test_near_root_at_t_min_falls_back_to_far_root(self):
        hit, t, _, normal, front = _query((0, 0, 5), (0, 0, -1), t_min=4.0)
        assert hit == 1
        assert t == pytest.approx(6.0, abs=1e-5)
        assert normal == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert front == 0
