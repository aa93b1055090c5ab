from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property

from data_structures.features import FeatureMetadata
from data_structures.tree import Tree
from objective import Objective


@dataclass(frozen=True, eq=False)
class TreeEnsemble:
    """Immutable boosted ensemble: trees in boosting order plus global metadata.

    Trees are assigned to output classes round-robin: tree ``t`` contributes to
    class ``t % num_outputs``, matching one tree per class per boosting round.
    """

    trees: tuple[Tree, ...]
    features: FeatureMetadata
    objective: Objective = Objective.SQUARED_ERROR
    base_score: float = 0.0
    num_class: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "trees", tuple(self.trees))
        object.__setattr__(self, "base_score", float(self.base_score))
        if self.num_class < 0:
            raise ValueError("num_class must be >= 0")

    @property
    def num_trees(self) -> int:
        return len(self.trees)

    @property
    def num_outputs(self) -> int:
        return max(1, self.num_class)

    def tree_class(self, tree_index: int) -> int:
        return tree_index % self.num_outputs

    @cached_property
    def used_features(self) -> tuple[int, ...]:
        """Feature ids referenced by at least one split, ascending."""
        used: set[int] = set()
        for tree in self.trees:
            used.update(int(f) for f in tree.split_feature_index[~tree.is_leaf])
        return tuple(sorted(used))
