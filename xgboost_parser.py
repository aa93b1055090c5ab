from __future__ import annotations

import math
from typing import Any, Callable, Mapping

from data_structures.tree import LEAF, TreeArrays
from model_errors import InvalidFieldType, MissingField
from objective import Objective

_ABSENT = object()


def _lookup(node: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return _ABSENT
        node = node[key]
    return node


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_child_index(value: Any) -> bool:
    return _is_int(value) and value >= LEAF


def _is_flag(value: Any) -> bool:
    return isinstance(value, bool) or (_is_int(value) and value in (0, 1))


def _extract_array(
    node: Any,
    field: str,
    check: Callable[[Any], bool],
    convert: Callable[[Any], Any],
    required: bool = True,
) -> list | None:
    values = _lookup(node, field)
    if values is _ABSENT and not required:
        return None
    if not isinstance(values, list):
        raise MissingField(field)
    for position, value in enumerate(values):
        if not check(value):
            raise InvalidFieldType(field, f"unexpected element {value!r} at position {position}")
    return [convert(value) for value in values]


def _parse_scalar(raw: Any, field: str) -> float:
    """Read a model parameter stored either as a number or as its string form."""
    if _is_number(raw):
        return float(raw)
    if not isinstance(raw, str):
        raise InvalidFieldType(field, f"expected a number, got {type(raw).__name__}")

    text = raw.strip()
    # Newer dumps store per-target parameters as a bracketed vector.
    if text.startswith("[") and text.endswith("]"):
        parts = [part.strip() for part in text[1:-1].split(",") if part.strip()]
    else:
        parts = [text]

    try:
        values = [float(part) for part in parts]
    except ValueError:
        raise InvalidFieldType(field, f"cannot parse {raw!r}") from None
    if not values or any(v != values[0] for v in values):
        raise InvalidFieldType(field, f"expected a single value, got {raw!r}")
    return values[0]


class XGBoostParser:
    """Reads the XGBoost JSON model dump (``Booster.save_model("model.json")``)."""

    def parse_feature_metadata(self, model_json: Mapping) -> tuple[list[str], list[str]]:
        learner = _lookup(model_json, "learner")
        names = _extract_array(learner, "feature_names", lambda v: isinstance(v, str), str)
        types = _extract_array(learner, "feature_types", lambda v: isinstance(v, str), str)
        return names, types

    def parse_tree_arrays(self, tree_json: Mapping) -> TreeArrays:
        return TreeArrays(
            split_indices=_extract_array(tree_json, "split_indices", _is_int, int),
            split_conditions=_extract_array(tree_json, "split_conditions", _is_number, float),
            left_children=_extract_array(tree_json, "left_children", _is_child_index, int),
            right_children=_extract_array(tree_json, "right_children", _is_child_index, int),
            base_weights=_extract_array(tree_json, "base_weights", _is_number, float),
            default_left=_extract_array(tree_json, "default_left", _is_flag, bool, required=False),
            split_type=_extract_array(tree_json, "split_type", _is_int, int, required=False),
            categories=_extract_array(tree_json, "categories", _is_int, int, required=False),
            categories_nodes=_extract_array(tree_json, "categories_nodes", _is_int, int, required=False),
            categories_segments=_extract_array(
                tree_json, "categories_segments", _is_int, int, required=False
            ),
            categories_sizes=_extract_array(tree_json, "categories_sizes", _is_int, int, required=False),
        )

    def parse_objective(self, model_json: Mapping) -> Objective:
        name = _lookup(model_json, "learner", "objective", "name")
        if not isinstance(name, str):
            raise MissingField("objective.name")
        return Objective.from_name(name)

    def parse_base_score(self, model_json: Mapping, objective: Objective) -> float:
        raw = _lookup(model_json, "learner", "learner_model_param", "base_score")
        if raw is _ABSENT:
            return 0.0
        base_score = _parse_scalar(raw, "base_score")
        if not math.isfinite(base_score):
            raise InvalidFieldType("base_score", f"expected a finite value, got {raw!r}")
        return objective.base_margin(base_score)

    def parse_num_class(self, model_json: Mapping) -> int:
        raw = _lookup(model_json, "learner", "learner_model_param", "num_class")
        if raw is _ABSENT:
            return 0
        value = _parse_scalar(raw, "num_class")
        if not math.isfinite(value) or value < 0 or value != int(value):
            raise InvalidFieldType("num_class", f"expected a non-negative integer, got {raw!r}")
        return int(value)

    def tree_list(self, model_json: Mapping) -> list[Mapping]:
        booster = _lookup(model_json, "learner", "gradient_booster")
        trees = _lookup(booster, "model", "trees")
        if trees is _ABSENT:
            # The dart booster nests its trees under an inner gbtree.
            trees = _lookup(booster, "gbtree", "model", "trees")
        if trees is _ABSENT:
            raise MissingField("trees")
        if not isinstance(trees, list) or not all(isinstance(t, Mapping) for t in trees):
            raise InvalidFieldType("trees", "expected an array of tree objects")
        return trees
