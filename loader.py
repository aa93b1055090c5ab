from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol

from data_structures.ensemble import TreeEnsemble
from data_structures.features import FeatureMetadata
from data_structures.tree import LEAF_VALUE_FIELDS, Tree, TreeArrays
from model_errors import InvalidFieldType, MissingField
from objective import Objective
from xgboost_parser import XGBoostParser

logger = logging.getLogger(__name__)


@dataclass
class LoaderParams:
    leaf_value_field: str = "base_weights"  # one of: base_weights, split_conditions
    max_trees: int | None = None  # boosting rounds to keep, None keeps all

    def __post_init__(self) -> None:
        if self.leaf_value_field not in LEAF_VALUE_FIELDS:
            raise ValueError(f"leaf_value_field must be one of: {', '.join(LEAF_VALUE_FIELDS)}")
        if self.max_trees is not None and self.max_trees < 0:
            raise ValueError("max_trees must be >= 0")


class ModelFormatParser(Protocol):
    def parse_feature_metadata(self, model_json: Mapping) -> tuple[list[str], list[str]]: ...

    def parse_tree_arrays(self, tree_json: Mapping) -> TreeArrays: ...

    def parse_objective(self, model_json: Mapping) -> Objective: ...

    def parse_base_score(self, model_json: Mapping, objective: Objective) -> float: ...

    def parse_num_class(self, model_json: Mapping) -> int: ...

    def tree_list(self, model_json: Mapping) -> list[Mapping]: ...


class ModelFormat(Enum):
    XGBOOST_JSON = "xgboost_json"


_PARSERS: dict[ModelFormat, type] = {
    ModelFormat.XGBOOST_JSON: XGBoostParser,
}


def detect_format(model_json: Mapping) -> ModelFormat:
    if isinstance(model_json, Mapping) and "learner" in model_json:
        return ModelFormat.XGBOOST_JSON
    raise MissingField("learner")


def parser_for(model_format: ModelFormat) -> ModelFormatParser:
    return _PARSERS[model_format]()


def _decode(model: Any) -> Mapping:
    if isinstance(model, (str, bytes, bytearray)):
        try:
            model = json.loads(model)
        except json.JSONDecodeError as e:
            raise InvalidFieldType("model", f"not valid JSON: {e}") from e
    if not isinstance(model, Mapping):
        raise InvalidFieldType("model", f"expected a JSON object, got {type(model).__name__}")
    return model


def load(
    model_json: Mapping | str | bytes,
    params: LoaderParams | None = None,
    model_format: ModelFormat | str | None = None,
) -> TreeEnsemble:
    """Build an immutable ensemble from a model dump, failing on the first error.

    Accepts the decoded JSON object or its text. Nothing is returned unless
    every tree parsed and validated.
    """
    params = params or LoaderParams()
    model_json = _decode(model_json)
    if model_format is None:
        model_format = detect_format(model_json)
    try:
        model_format = ModelFormat(model_format)
    except ValueError:
        raise InvalidFieldType("model_format", f"unknown model format {model_format!r}") from None
    parser = parser_for(model_format)

    names, types = parser.parse_feature_metadata(model_json)
    features = FeatureMetadata(names=tuple(names), types=tuple(types))
    objective = parser.parse_objective(model_json)
    num_class = parser.parse_num_class(model_json)
    objective.check_num_class(num_class)
    base_score = parser.parse_base_score(model_json, objective)

    tree_json_list = parser.tree_list(model_json)
    if params.max_trees is not None:
        tree_json_list = tree_json_list[: params.max_trees * max(1, num_class)]

    trees = []
    for tree_index, tree_json in enumerate(tree_json_list):
        arrays = parser.parse_tree_arrays(tree_json)
        tree = Tree.from_arrays(
            arrays,
            num_features=features.num_features,
            tree_index=tree_index,
            leaf_value_field=params.leaf_value_field,
        )
        logger.debug("Tree %d: %d nodes, depth %d", tree_index, tree.num_nodes, tree.max_depth)
        trees.append(tree)

    ensemble = TreeEnsemble(
        trees=tuple(trees),
        features=features,
        objective=objective,
        base_score=base_score,
        num_class=num_class,
    )
    logger.info(
        "Loaded %s model: %d trees, %d features, %d outputs, objective=%s",
        model_format.value,
        ensemble.num_trees,
        features.num_features,
        ensemble.num_outputs,
        objective.names[0],
    )
    return ensemble
