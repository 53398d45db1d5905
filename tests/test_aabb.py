"""Unit tests for axis-aligned bounding boxes.

Tests cover:
- Host-side AABB construction, extension and union
- Longest-axis selection used by the centroid split
- Taichi slab test, including rays with zero direction components
"""

import numpy as np
import taichi as ti


class TestAABBHost:
    """Tests for the host-side AABB class."""

    def test_empty_box(self):
        from src.whitted.geometry.aabb import AABB

        box = AABB.empty()
        assert box.is_empty()
        assert not box.contains((0.0, 0.0, 0.0))

    def test_extend_single_point(self):
        """Test extending an empty box by a point yields that point."""
        from src.whitted.geometry.aabb import AABB

        box = AABB.empty()
        box.extend((1.0, -2.0, 3.0))
        assert not box.is_empty()
        np.testing.assert_array_equal(box.minimum, [1.0, -2.0, 3.0])
        np.testing.assert_array_equal(box.maximum, [1.0, -2.0, 3.0])

    def test_extend_triangle(self):
        from src.whitted.geometry.aabb import AABB

        box = AABB.empty()
        box.extend_triangle([(0, 0, 0), (2, -1, 0), (1, 3, -4)])
        np.testing.assert_array_equal(box.minimum, [0, -1, -4])
        np.testing.assert_array_equal(box.maximum, [2, 3, 0])

    def test_from_points(self):
        from src.whitted.geometry.aabb import AABB

        box = AABB.from_points([(1, 2, 3), (-1, 5, 0)])
        assert box == AABB((-1, 2, 0), (1, 5, 3))

    def test_union(self):
        from src.whitted.geometry.aabb import AABB

        a = AABB((0, 0, 0), (1, 1, 1))
        b = AABB((-1, 0.5, 0.5), (0.5, 2, 0.5))
        assert a.union(b) == AABB((-1, 0, 0), (1, 2, 1))

    def test_union_with_empty_is_identity(self):
        from src.whitted.geometry.aabb import AABB

        a = AABB((0, 0, 0), (1, 1, 1))
        assert AABB.empty().union(a) == a

    def test_contains_boundary(self):
        from src.whitted.geometry.aabb import AABB

        box = AABB((0, 0, 0), (1, 1, 1))
        assert box.contains((1.0, 0.0, 0.5))
        assert not box.contains((1.01, 0.0, 0.5))

    def test_longest_axis(self):
        from src.whitted.geometry.aabb import AABB

        assert AABB((0, 0, 0), (1, 3, 2)).longest_axis() == 1
        assert AABB((0, 0, 0), (1, 1, 5)).longest_axis() == 2

    def test_longest_axis_tie_picks_lowest(self):
        from src.whitted.geometry.aabb import AABB

        assert AABB((0, 0, 0), (2, 2, 2)).longest_axis() == 0


def _slab(origin, direction, box_min=(-1.0, -1.0, -1.0), box_max=(1.0, 1.0, 1.0)):
    from src.whitted.core.ray import safe_inverse, vec3
    from src.whitted.geometry.aabb import hit_aabb

    result = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, lo: vec3, hi: vec3):
        result[None] = hit_aabb(o, safe_inverse(d), lo, hi)

    test_kernel(vec3(*origin), vec3(*direction), vec3(*box_min), vec3(*box_max))
    return result[None]


class TestSlabTest:
    """Tests for the Taichi slab test."""

    def test_hit_head_on(self):
        assert _slab((0.0, 0.0, 5.0), (0.0, 0.0, -1.0)) == 1

    def test_origin_inside(self):
        assert _slab((0.0, 0.0, 0.0), (0.3, -0.2, 0.9)) == 1

    def test_box_behind_ray(self):
        assert _slab((0.0, 0.0, 5.0), (0.0, 0.0, 1.0)) == 0

    def test_axis_parallel_ray_outside_slab(self):
        """Test a ray with zero x direction outside the x slab misses."""
        assert _slab((2.0, 0.0, 5.0), (0.0, 0.0, -1.0)) == 0

    def test_axis_parallel_ray_inside_slab(self):
        """Test a ray with two zero components inside both slabs hits."""
        assert _slab((0.5, -0.5, 5.0), (0.0, 0.0, -1.0)) == 1

    def test_diagonal_miss(self):
        assert _slab((3.0, 0.0, 3.0), (1.0, 0.0, 1.0)) == 0

    def test_diagonal_hit(self):
        assert _slab((-3.0, -3.0, -3.0), (1.0, 1.0, 1.0)) == 1

    def test_flat_box(self):
        """Test a box with zero thickness along z is still hit."""
        assert _slab((0.2, 0.2, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), (1.0, 1.0, 0.0)) == 1


def _slab_batch(origins, directions, box_mins, box_maxs):
    """Run the slab test on rows of (n, 3) float32 arrays."""
    from src.whitted.core.ray import safe_inverse, vec3
    from src.whitted.geometry.aabb import hit_aabb

    result = np.zeros(len(origins), dtype=np.int32)

    @ti.kernel
    def test_kernel(
        o: ti.types.ndarray(),
        d: ti.types.ndarray(),
        lo: ti.types.ndarray(),
        hi: ti.types.ndarray(),
        out: ti.types.ndarray(),
    ):
        for k in range(out.shape[0]):
            origin = vec3(o[k, 0], o[k, 1], o[k, 2])
            direction = vec3(d[k, 0], d[k, 1], d[k, 2])
            box_min = vec3(lo[k, 0], lo[k, 1], lo[k, 2])
            box_max = vec3(hi[k, 0], hi[k, 1], hi[k, 2])
            out[k] = hit_aabb(origin, safe_inverse(direction), box_min, box_max)

    test_kernel(origins, directions, box_mins, box_maxs, result)
    return result


class TestSlabAgreesWithContainment:
    """A ray through any point inside a box must report a hit."""

    def test_random_rays_through_contained_points(self):
        rng = np.random.default_rng(3)
        n = 500

        box_mins = rng.uniform(-10.0, 10.0, size=(n, 3))
        box_maxs = box_mins + rng.uniform(0.1, 5.0, size=(n, 3))
        # Interior points, kept away from the faces
        frac = rng.uniform(0.05, 0.95, size=(n, 3))
        points = box_mins + frac * (box_maxs - box_mins)

        directions = rng.normal(size=(n, 3))
        # Zero out components at random, keeping at least one per ray
        zero = rng.random(size=(n, 3)) < 0.3
        zero[zero.all(axis=1), 0] = False
        directions[zero] = 0.0
        assert np.any(zero)

        # Start behind the point so it lies at t > 0
        origins = points - rng.uniform(0.5, 20.0, size=(n, 1)) * directions

        hits = _slab_batch(
            origins.astype(np.float32),
            directions.astype(np.float32),
            box_mins.astype(np.float32),
            box_maxs.astype(np.float32),
        )
        assert np.all(hits == 1), np.flatnonzero(hits != 1)

    def test_contained_origin_hits_in_any_direction(self):
        rng = np.random.default_rng(5)
        n = 200
        box_mins = np.full((n, 3), -1.0, dtype=np.float32)
        box_maxs = np.full((n, 3), 1.0, dtype=np.float32)
        origins = rng.uniform(-0.9, 0.9, size=(n, 3)).astype(np.float32)
        directions = rng.normal(size=(n, 3)).astype(np.float32)
        directions[::4, 1:] = 0.0

        assert np.all(_slab_batch(origins, directions, box_mins, box_maxs) == 1)


class TestGeometryPackageImport:
    """The geometry package, including the slab test, loads and compiles."""

    def test_package_exports_aabb(self):
        import src.whitted.geometry as geometry

        assert geometry.AABB.empty().minimum[0] == np.inf
        assert callable(geometry.hit_aabb)
        assert _slab((0.0, 0.0, 5.0), (0.0, 0.0, -1.0)) == 1
