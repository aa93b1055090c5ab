from __future__ import annotations

from dataclasses import dataclass

from model_errors import InvalidFieldType

CATEGORICAL_TYPE = "c"
DEFAULT_TYPE = "float"


@dataclass(frozen=True)
class FeatureMetadata:
    names: tuple[str, ...]
    types: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "names", tuple(self.names))
        types = tuple(self.types)
        # Upstream writes an empty type list when types were never set.
        if not types and self.names:
            types = (DEFAULT_TYPE,) * len(self.names)
        object.__setattr__(self, "types", types)

        if len(set(self.names)) != len(self.names):
            raise InvalidFieldType("feature_names", "feature names must be unique")
        if len(self.types) != len(self.names):
            raise InvalidFieldType(
                "feature_types",
                f"expected {len(self.names)} types, got {len(self.types)}",
            )

    @property
    def num_features(self) -> int:
        return len(self.names)

    def index_of(self, name: str) -> int:
        return self.names.index(name)

    def is_categorical(self, index: int) -> bool:
        return self.types[index] == CATEGORICAL_TYPE
