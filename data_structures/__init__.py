"""
Data structures for tree ensemble inference.

Trees are stored as flat per-node arrays addressed by integer node id,
grouped into an immutable ensemble together with feature metadata.
"""

from data_structures.ensemble import TreeEnsemble
from data_structures.features import FeatureMetadata
from data_structures.tree import LEAF, Tree, TreeArrays

__all__ = ["FeatureMetadata", "LEAF", "Tree", "TreeArrays", "TreeEnsemble"]
