"""Builders for small XGBoost-style JSON model dumps used across the tests."""

import numpy as np


def tree_json(split_indices, split_conditions, left_children, right_children, base_weights, **extra):
    tree = {
        "split_indices": list(split_indices),
        "split_conditions": list(split_conditions),
        "left_children": list(left_children),
        "right_children": list(right_children),
        "base_weights": list(base_weights),
    }
    tree.update(extra)
    return tree


def stump(feature, threshold, left_weight, right_weight, **extra):
    """One split at the root with two leaves; leaf values mirror upstream in split_conditions."""
    return tree_json(
        split_indices=[feature, 0, 0],
        split_conditions=[threshold, left_weight, right_weight],
        left_children=[1, -1, -1],
        right_children=[2, -1, -1],
        base_weights=[0.0, left_weight, right_weight],
        **extra,
    )


def leaf(weight):
    return tree_json([0], [weight], [-1], [-1], [weight])


def random_tree(rng, num_features, depth):
    """Complete binary tree in breadth-first order, so children always follow parents."""
    num_internal = 2 ** depth - 1
    num_nodes = 2 ** (depth + 1) - 1
    left = [2 * i + 1 if i < num_internal else -1 for i in range(num_nodes)]
    right = [2 * i + 2 if i < num_internal else -1 for i in range(num_nodes)]
    weights = rng.normal(size=num_nodes).tolist()
    return tree_json(
        split_indices=rng.integers(0, num_features, size=num_nodes).tolist(),
        split_conditions=rng.normal(size=num_nodes).tolist(),
        left_children=left,
        right_children=right,
        base_weights=weights,
        default_left=rng.integers(0, 2, size=num_nodes).tolist(),
    )


def model_json(
    trees,
    feature_names=("carat",),
    feature_types=None,
    objective="reg:squarederror",
    base_score=None,
    num_class=None,
):
    learner_model_param = {"num_feature": str(len(feature_names))}
    if base_score is not None:
        learner_model_param["base_score"] = base_score
    if num_class is not None:
        learner_model_param["num_class"] = num_class

    if feature_types is None:
        feature_types = ["float"] * len(feature_names)

    return {
        "learner": {
            "feature_names": list(feature_names),
            "feature_types": list(feature_types),
            "objective": {"name": objective},
            "learner_model_param": learner_model_param,
            "gradient_booster": {
                "name": "gbtree",
                "model": {
                    "trees": list(trees),
                    "tree_info": [0] * len(trees),
                },
            },
        },
        "version": [2, 0, 3],
    }


def random_model(seed=0, num_features=5, num_trees=12, depth=4, **kwargs):
    rng = np.random.default_rng(seed)
    names = [f"f{i}" for i in range(num_features)]
    trees = [random_tree(rng, num_features, depth) for _ in range(num_trees)]
    return model_json(trees, feature_names=names, **kwargs)


def random_columns(seed=0, num_features=5, num_rows=100, missing_rate=0.1):
    rng = np.random.default_rng(seed)
    columns = {}
    for i in range(num_features):
        values = rng.normal(size=num_rows)
        values[rng.uniform(size=num_rows) < missing_rate] = np.nan
        columns[f"f{i}"] = values
    return columns
