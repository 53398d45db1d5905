"""Bounding volume hierarchy construction.

A BVH is built once, on the host, over an immutable caller-owned triangle
array. It is stored as a flat node arena: parallel NumPy arrays indexed by
node id, root at index 0, nodes in depth-first pre-order. A leaf owns
exactly one triangle index and no children; an internal node owns exactly
two children and no triangle index. The BVH never copies geometry.

Construction recursively takes the union box of an index subset, emits a
leaf for a single index and otherwise halves the subset and recurses on
both halves. Two split policies are available:

    INSERTION_ORDER: halve the subset in its current order. This is the
        default and reproduces the reference renderer, whose trees are valid
        but not spatially tight.
    CENTROID_MEDIAN: stable-sort the subset by triangle centroid along the
        longest axis of the node box, then halve. Query results are the
        same; traversal visits fewer nodes.

Either way, n triangles give n leaves and n - 1 internal nodes.

Traversal runs on the Taichi side, see src.whitted.scene.mesh.

Example:
    >>> import numpy as np
    >>> tris = np.random.default_rng(0).random((100, 3, 3), dtype=np.float32)
    >>> bvh = BVH.build(tris, split_policy=SplitPolicy.CENTROID_MEDIAN)
    >>> bvh.leaf_count, bvh.internal_count
    (100, 99)
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import numpy.typing as npt

from .aabb import AABB
from .triangle import as_triangle_array, triangle_bounds, triangle_centroids

logger = logging.getLogger(__name__)

# Marker for "no child" / "no primitive" in the node arrays
NO_INDEX = -1


class SplitPolicy(IntEnum):
    """How an index subset is divided between the two children of a node."""

    INSERTION_ORDER = 0
    CENTROID_MEDIAN = 1


@dataclass(frozen=True)
class BVH:
    """Flat node arena of a bounding volume hierarchy.

    Attributes:
        bounds_min: (node_count, 3) float32 minimum corners.
        bounds_max: (node_count, 3) float32 maximum corners.
        left: (node_count,) int32 left child ids, NO_INDEX for leaves.
        right: (node_count,) int32 right child ids, NO_INDEX for leaves.
        primitive: (node_count,) int32 triangle indices, NO_INDEX for
            internal nodes.
        depth: Number of edges on the longest root-to-leaf path.
        split_policy: Policy the tree was built with.
    """

    bounds_min: npt.NDArray[np.float32]
    bounds_max: npt.NDArray[np.float32]
    left: npt.NDArray[np.int32]
    right: npt.NDArray[np.int32]
    primitive: npt.NDArray[np.int32]
    depth: int
    split_policy: SplitPolicy

    @classmethod
    def build(
        cls,
        triangles: npt.ArrayLike,
        split_policy: SplitPolicy = SplitPolicy.INSERTION_ORDER,
    ) -> BVH:
        """Build a BVH over every triangle of an (n, 3, 3) array.

        Args:
            triangles: The triangle array. It is read, never stored.
            split_policy: How node subsets are halved.

        Returns:
            The built hierarchy.

        Raises:
            ValueError: If the array is empty or not of shape (n, 3, 3).
        """
        array = as_triangle_array(triangles)
        if len(array) == 0:
            raise ValueError("Cannot build a BVH over an empty triangle set")

        builder = _Builder(array, SplitPolicy(split_policy))
        builder.build(np.arange(len(array), dtype=np.int64), depth=0)
        bvh = builder.finish()

        logger.debug(
            "Built BVH over %d triangles: %d nodes, depth %d, policy %s",
            len(array),
            bvh.node_count,
            bvh.depth,
            bvh.split_policy.name,
        )
        return bvh

    @property
    def node_count(self) -> int:
        return int(len(self.primitive))

    @property
    def leaf_count(self) -> int:
        return int(np.count_nonzero(self.primitive != NO_INDEX))

    @property
    def internal_count(self) -> int:
        return self.node_count - self.leaf_count

    def is_leaf(self, node: int) -> bool:
        return bool(self.primitive[node] != NO_INDEX)

    def node_bounds(self, node: int) -> AABB:
        return AABB(self.bounds_min[node], self.bounds_max[node])

    @property
    def root_bounds(self) -> AABB:
        return self.node_bounds(0)

    def leaf_primitives(self) -> npt.NDArray[np.int32]:
        """Triangle indices of all leaves, in node (pre-order) order."""
        return self.primitive[self.primitive != NO_INDEX]

    def inorder_repr(self) -> str:
        """Leaves in in-order, formatted as "N-{node} T-{triangle} " each."""
        parts: list[str] = []
        stack: list[int] = []
        node = 0
        # Iterative in-order walk; internal nodes emit nothing.
        while stack or node != NO_INDEX:
            while node != NO_INDEX:
                stack.append(node)
                node = int(self.left[node])
            node = stack.pop()
            if self.is_leaf(node):
                parts.append(f"N-{node} T-{int(self.primitive[node])} ")
            node = int(self.right[node])
        return "".join(parts)

    def box_lines(self) -> list[str]:
        """One line per node in breadth-first order.

        Format: "T-{triangle or -1} N-{node} [min xyz] [max xyz]" with six
        decimals per coordinate.
        """
        lines = []
        queue = deque([0])
        while queue:
            node = queue.popleft()
            lo = self.bounds_min[node]
            hi = self.bounds_max[node]
            lines.append(
                f"T-{int(self.primitive[node])} N-{node} "
                f"[{lo[0]:.6f} {lo[1]:.6f} {lo[2]:.6f}] "
                f"[{hi[0]:.6f} {hi[1]:.6f} {hi[2]:.6f}]"
            )
            if not self.is_leaf(node):
                queue.append(int(self.left[node]))
                queue.append(int(self.right[node]))
        return lines


class _Builder:
    """Accumulates nodes in pre-order while recursing over index subsets."""

    def __init__(self, triangles: npt.NDArray[np.float32], split_policy: SplitPolicy) -> None:
        self.split_policy = split_policy
        self.tri_min, self.tri_max = triangle_bounds(triangles)
        self.centroids = triangle_centroids(triangles)
        self.bounds_min: list[npt.NDArray[np.float32]] = []
        self.bounds_max: list[npt.NDArray[np.float32]] = []
        self.left: list[int] = []
        self.right: list[int] = []
        self.primitive: list[int] = []
        self.depth = 0

    def _subset_bounds(self, indices: npt.NDArray[np.int64]) -> AABB:
        return AABB(self.tri_min[indices].min(axis=0), self.tri_max[indices].max(axis=0))

    def _add_node(self, box: AABB) -> int:
        node = len(self.primitive)
        self.bounds_min.append(box.minimum)
        self.bounds_max.append(box.maximum)
        self.left.append(NO_INDEX)
        self.right.append(NO_INDEX)
        self.primitive.append(NO_INDEX)
        return node

    def _order(self, indices: npt.NDArray[np.int64], box: AABB) -> npt.NDArray[np.int64]:
        if self.split_policy == SplitPolicy.CENTROID_MEDIAN:
            axis = box.longest_axis()
            return indices[np.argsort(self.centroids[indices, axis], kind="stable")]
        return indices

    def build(self, indices: npt.NDArray[np.int64], depth: int) -> int:
        if len(indices) == 0:
            raise ValueError("Cannot create a BVH node with no triangles")

        self.depth = max(self.depth, depth)
        box = self._subset_bounds(indices)
        node = self._add_node(box)

        if len(indices) == 1:
            self.primitive[node] = int(indices[0])
            return node

        ordered = self._order(indices, box)
        mid = len(ordered) // 2
        self.left[node] = self.build(ordered[:mid], depth + 1)
        self.right[node] = self.build(ordered[mid:], depth + 1)
        return node

    def finish(self) -> BVH:
        return BVH(
            bounds_min=np.asarray(self.bounds_min, dtype=np.float32).reshape(-1, 3),
            bounds_max=np.asarray(self.bounds_max, dtype=np.float32).reshape(-1, 3),
            left=np.asarray(self.left, dtype=np.int32),
            right=np.asarray(self.right, dtype=np.int32),
            primitive=np.asarray(self.primitive, dtype=np.int32),
            depth=self.depth,
            split_policy=self.split_policy,
        )
