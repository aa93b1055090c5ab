from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from model_errors import TopologyError

# Child index marking "no child"; a node is a leaf iff both children are LEAF.
LEAF = -1

# Category codes at or above this cannot be represented exactly in float32,
# which is what upstream stores feature values as.
MAX_CATEGORY = 1 << 24

LEAF_VALUE_FIELDS = ("base_weights", "split_conditions")


@dataclass
class TreeArrays:
    """Per-node arrays of one tree as read from a model dump, not yet validated."""

    split_indices: list[int]
    split_conditions: list[float]
    left_children: list[int]
    right_children: list[int]
    base_weights: list[float]
    default_left: list[bool] | None = None
    split_type: list[int] | None = None
    categories: list[int] | None = None
    categories_nodes: list[int] | None = None
    categories_segments: list[int] | None = None
    categories_sizes: list[int] | None = None

    def node_fields(self) -> dict[str, list]:
        fields = {
            "split_indices": self.split_indices,
            "split_conditions": self.split_conditions,
            "left_children": self.left_children,
            "right_children": self.right_children,
            "base_weights": self.base_weights,
        }
        if self.default_left is not None:
            fields["default_left"] = self.default_left
        if self.split_type is not None:
            fields["split_type"] = self.split_type
        return fields


def _frozen(values, dtype) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Tree:
    split_feature_index: np.ndarray
    split_condition: np.ndarray
    left_child: np.ndarray
    right_child: np.ndarray
    leaf_weight: np.ndarray
    default_left: np.ndarray
    is_categorical: np.ndarray
    category_begin: np.ndarray
    category_size: np.ndarray
    categories: np.ndarray
    is_leaf: np.ndarray
    max_depth: int

    @property
    def num_nodes(self) -> int:
        return int(self.left_child.shape[0])

    @property
    def has_categorical(self) -> bool:
        return bool(np.any(self.is_categorical))

    def categories_for(self, node: int) -> np.ndarray:
        begin = int(self.category_begin[node])
        if begin < 0:
            return self.categories[:0]
        return self.categories[begin:begin + int(self.category_size[node])]

    def category_goes_right(self, node: int, values: np.ndarray) -> np.ndarray:
        """Categorical split decision: matching categories go right, everything else left."""
        values = np.asarray(values, dtype=np.float64)
        valid = (values >= 0.0) & (values < MAX_CATEGORY)
        codes = np.where(valid, values, -1.0).astype(np.int64)
        return valid & np.isin(codes, self.categories_for(node))

    def predict_row(self, row_values: np.ndarray) -> float:
        """Traverse the tree for one row of values indexed by feature id."""
        node = 0
        while not self.is_leaf[node]:
            value = float(row_values[self.split_feature_index[node]])
            if not np.isfinite(value):
                go_left = bool(self.default_left[node])
            elif self.is_categorical[node]:
                go_left = not bool(self.category_goes_right(node, np.array([value]))[0])
            else:
                go_left = value < self.split_condition[node]

            node = int(self.left_child[node] if go_left else self.right_child[node])

        return float(self.leaf_weight[node])

    @classmethod
    def from_arrays(
        cls,
        arrays: TreeArrays,
        num_features: int,
        tree_index: int = 0,
        leaf_value_field: str = "base_weights",
    ) -> Tree:
        """Validate parsed node arrays and freeze them into a Tree.

        Node ids are topologically ordered (parents before children), so a
        single forward pass over the child arrays detects out-of-range ids
        and cycles.
        """
        if leaf_value_field not in LEAF_VALUE_FIELDS:
            raise ValueError(f"leaf_value_field must be one of: {', '.join(LEAF_VALUE_FIELDS)}")

        lengths = {name: len(values) for name, values in arrays.node_fields().items()}
        num_nodes = lengths["split_indices"]
        if len(set(lengths.values())) != 1:
            raise TopologyError(tree_index, f"node arrays differ in length: {lengths}")
        if num_nodes == 0:
            raise TopologyError(tree_index, "tree has no nodes")

        left = np.asarray(arrays.left_children, dtype=np.int64)
        right = np.asarray(arrays.right_children, dtype=np.int64)
        left_leaf = left == LEAF
        right_leaf = right == LEAF
        if np.any(left_leaf != right_leaf):
            node = int(np.flatnonzero(left_leaf != right_leaf)[0])
            raise TopologyError(tree_index, f"node {node} has exactly one child")

        is_leaf = left_leaf
        internal = ~is_leaf
        node_ids = np.arange(num_nodes, dtype=np.int64)

        for side, children in (("left", left), ("right", right)):
            bad = internal & ((children <= node_ids) | (children >= num_nodes))
            if np.any(bad):
                node = int(np.flatnonzero(bad)[0])
                raise TopologyError(
                    tree_index,
                    f"node {node} has {side} child {int(children[node])}, "
                    f"expected a node id in [{node + 1}, {num_nodes})",
                )

        parent_counts = np.bincount(
            np.concatenate([left[internal], right[internal]]),
            minlength=num_nodes,
        )
        if np.any(parent_counts > 1):
            node = int(np.flatnonzero(parent_counts > 1)[0])
            raise TopologyError(tree_index, f"node {node} has more than one parent")

        features = np.asarray(arrays.split_indices, dtype=np.int64)
        bad_features = internal & ((features < 0) | (features >= num_features))
        if np.any(bad_features):
            node = int(np.flatnonzero(bad_features)[0])
            raise TopologyError(
                tree_index,
                f"node {node} splits on feature {int(features[node])}, "
                f"expected [0, {num_features})",
            )

        if arrays.default_left is None:
            default_left = np.ones(num_nodes, dtype=bool)
        else:
            default_left = np.asarray(arrays.default_left, dtype=bool)

        is_categorical, category_begin, category_size, categories = cls._categorical_splits(
            arrays, internal, tree_index
        )

        depth = np.zeros(num_nodes, dtype=np.int64)
        for node in np.flatnonzero(internal):
            depth[left[node]] = depth[node] + 1
            depth[right[node]] = depth[node] + 1

        leaf_source = arrays.base_weights
        if leaf_value_field == "split_conditions":
            leaf_source = arrays.split_conditions

        return cls(
            split_feature_index=_frozen(np.where(internal, features, 0), np.int32),
            split_condition=_frozen(arrays.split_conditions, np.float64),
            left_child=_frozen(left, np.int32),
            right_child=_frozen(right, np.int32),
            leaf_weight=_frozen(leaf_source, np.float64),
            default_left=_frozen(default_left, bool),
            is_categorical=_frozen(is_categorical, bool),
            category_begin=_frozen(category_begin, np.int64),
            category_size=_frozen(category_size, np.int64),
            categories=_frozen(categories, np.int64),
            is_leaf=_frozen(is_leaf, bool),
            max_depth=int(depth.max()),
        )

    @staticmethod
    def _categorical_splits(
        arrays: TreeArrays,
        internal: np.ndarray,
        tree_index: int,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        num_nodes = internal.shape[0]
        category_begin = np.full(num_nodes, -1, dtype=np.int64)
        category_size = np.zeros(num_nodes, dtype=np.int64)

        if arrays.split_type is None:
            if arrays.categories_nodes:
                raise TopologyError(tree_index, "category sets given without split_type")
            return np.zeros(num_nodes, dtype=bool), category_begin, category_size, np.array([], dtype=np.int64)

        split_type = np.asarray(arrays.split_type, dtype=np.int64)
        if np.any((split_type != 0) & (split_type != 1)):
            node = int(np.flatnonzero((split_type != 0) & (split_type != 1))[0])
            raise TopologyError(tree_index, f"node {node} has unknown split type {int(split_type[node])}")
        is_categorical = internal & (split_type == 1)

        categories = np.asarray(arrays.categories or [], dtype=np.int64)
        nodes = arrays.categories_nodes or []
        segments = arrays.categories_segments or []
        sizes = arrays.categories_sizes or []
        if not (len(nodes) == len(segments) == len(sizes)):
            raise TopologyError(
                tree_index,
                "categories_nodes, categories_segments and categories_sizes differ in length",
            )

        for node, begin, size in zip(nodes, segments, sizes):
            if not (0 <= node < num_nodes) or not is_categorical[node]:
                raise TopologyError(tree_index, f"category set given for non-categorical node {node}")
            if category_begin[node] >= 0:
                raise TopologyError(tree_index, f"node {node} has more than one category set")
            if begin < 0 or size < 1 or begin + size > categories.shape[0]:
                raise TopologyError(
                    tree_index,
                    f"category segment [{begin}, {begin + size}) of node {node} is out of bounds",
                )
            category_begin[node] = begin
            category_size[node] = size

        missing_sets = is_categorical & (category_begin < 0)
        if np.any(missing_sets):
            node = int(np.flatnonzero(missing_sets)[0])
            raise TopologyError(tree_index, f"categorical node {node} has no category set")

        return is_categorical, category_begin, category_size, categories
