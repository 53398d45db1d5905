"""Unit tests for mesh upload and BVH traversal on the Taichi side.

Tests cover:
- Arena bookkeeping for one and several meshes
- Upload validation (empty mesh, mismatched or too deep BVH)
- BVH traversal agreeing with a linear scan over the same triangles
- Query errors for unknown meshes
"""

import numpy as np
import pytest


def _random_triangles(count, seed=0):
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-2.0, 2.0, size=(count, 1, 3))
    offsets = rng.uniform(-0.4, 0.4, size=(count, 3, 3))
    return (centers + offsets).astype(np.float32)


def _random_rays(count, seed=1):
    rng = np.random.default_rng(seed)
    origins = rng.uniform(-3.0, 3.0, size=(count, 3))
    origins[:, 2] = 6.0
    targets = rng.uniform(-2.5, 2.5, size=(count, 3))
    directions = targets - origins
    directions /= np.linalg.norm(directions, axis=1, keepdims=True)
    return origins, directions


class TestUpload:
    """Tests for copying meshes into the arenas."""

    def test_upload_returns_sequential_indices(self):
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import (
            get_mesh_count,
            get_node_count,
            get_triangle_count,
            upload_mesh,
        )

        a = _random_triangles(10)
        b = _random_triangles(5, seed=4)
        assert upload_mesh(a, BVH.build(a)) == 0
        assert upload_mesh(b) == 1
        assert get_mesh_count() == 2
        assert get_triangle_count() == 15
        assert get_node_count() == 19

    def test_upload_rebases_second_mesh(self):
        """Test the second mesh's nodes point at its own triangles."""
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import mesh_root, node_left, node_primitive, upload_mesh

        a = _random_triangles(4)
        b = _random_triangles(3, seed=2)
        upload_mesh(a, BVH.build(a))
        upload_mesh(b, BVH.build(b))

        root = mesh_root[1]
        assert root == 7
        assert node_left[root] == 8
        leaves = sorted(node_primitive[n] for n in range(7, 12) if node_primitive[n] >= 0)
        assert leaves == [4, 5, 6]

    def test_clear_meshes(self):
        from src.whitted.scene.mesh import clear_meshes, get_mesh_count, upload_mesh

        upload_mesh(_random_triangles(3))
        clear_meshes()
        assert get_mesh_count() == 0
        assert upload_mesh(_random_triangles(3)) == 0

    def test_empty_mesh_raises(self):
        from src.whitted.scene.mesh import upload_mesh

        with pytest.raises(ValueError, match="empty"):
            upload_mesh(np.zeros((0, 3, 3), dtype=np.float32))

    def test_mismatched_bvh_raises(self):
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import upload_mesh

        tris = _random_triangles(6)
        with pytest.raises(ValueError, match="leaves"):
            upload_mesh(tris, BVH.build(tris[:4]))

    def test_too_deep_bvh_raises(self):
        """Test a tree deeper than the traversal stack allows is rejected."""
        from dataclasses import replace

        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import BVH_STACK_SIZE, upload_mesh

        tris = _random_triangles(4)
        deep = replace(BVH.build(tris), depth=BVH_STACK_SIZE - 1)
        with pytest.raises(ValueError, match="depth"):
            upload_mesh(tris, deep)


class TestTraversal:
    """Tests that BVH traversal finds the same nearest hit as a linear scan."""

    @pytest.mark.parametrize("policy", [0, 1])
    def test_bvh_matches_linear_scan(self, policy):
        from src.whitted.geometry.bvh import BVH, SplitPolicy
        from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

        tris = _random_triangles(200, seed=policy + 10)
        mesh = upload_mesh(tris, BVH.build(tris, SplitPolicy(policy)))

        origins, directions = _random_rays(100)
        hits = 0
        for o, d in zip(origins, directions):
            fast = mesh_nearest_hit(mesh, tuple(o), tuple(d))
            slow = mesh_nearest_hit(mesh, tuple(o), tuple(d), brute_force=True)
            assert (fast is None) == (slow is None)
            if fast is not None:
                hits += 1
                assert fast.t == pytest.approx(slow.t, abs=1e-5)
                np.testing.assert_allclose(fast.normal, slow.normal, atol=1e-5)
        assert hits > 10

    def test_unaccelerated_mesh(self):
        from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

        tris = np.array([[(0, 0, 0), (1, 0, 0), (0, 1, 0)]], dtype=np.float32)
        mesh = upload_mesh(tris)
        hit = mesh_nearest_hit(mesh, (0.25, 0.25, 2.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.t == pytest.approx(2.0)
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0))

    def test_nearest_of_stacked_triangles(self):
        """Test the closest of several overlapping triangles is reported."""
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

        tris = np.array(
            [[(0, 0, z), (1, 0, z), (0, 1, z)] for z in (-2.0, 1.0, -1.0, 0.5)],
            dtype=np.float32,
        )
        mesh = upload_mesh(tris, BVH.build(tris))
        hit = mesh_nearest_hit(mesh, (0.2, 0.2, 3.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.t == pytest.approx(2.0)
        assert hit.point[2] == pytest.approx(1.0)

    def test_t_max_limits_traversal(self):
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

        tris = np.array([[(0, 0, 0), (1, 0, 0), (0, 1, 0)]] * 2, dtype=np.float32)
        mesh = upload_mesh(tris, BVH.build(tris))
        assert mesh_nearest_hit(mesh, (0.2, 0.2, 3.0), (0.0, 0.0, -1.0), t_max=2.5) is None

    def test_miss_returns_none(self):
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

        tris = _random_triangles(20)
        mesh = upload_mesh(tris, BVH.build(tris))
        assert mesh_nearest_hit(mesh, (0.0, 0.0, 10.0), (0.0, 0.0, 1.0)) is None

    def test_axis_aligned_ray_through_flat_mesh(self):
        """Test rays with zero direction components traverse flat node boxes."""
        from src.whitted.geometry.bvh import BVH
        from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

        tris = np.array(
            [[(x, 0, 0), (x + 1, 0, 0), (x, 1, 0)] for x in range(8)],
            dtype=np.float32,
        )
        mesh = upload_mesh(tris, BVH.build(tris))
        hit = mesh_nearest_hit(mesh, (5.2, 0.3, 1.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.point[0] == pytest.approx(5.2)

    def test_unknown_mesh_raises(self):
        from src.whitted.scene.mesh import mesh_nearest_hit

        with pytest.raises(IndexError):
            mesh_nearest_hit(0, (0.0, 0.0, 1.0), (0.0, 0.0, -1.0))
