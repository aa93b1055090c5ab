class ModelError(ValueError):
    """Raised while loading a model; the artifact itself needs fixing."""


class MissingField(ModelError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required field: {field}")
        self.field = field


class InvalidFieldType(ModelError):
    def __init__(self, field: str, detail: str | None = None) -> None:
        message = f"Invalid type for field: {field}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.field = field
        self.detail = detail


class UnsupportedObjective(ModelError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unsupported objective: {name}")
        self.name = name


class TopologyError(ModelError):
    def __init__(self, tree_index: int, detail: str) -> None:
        super().__init__(f"Invalid topology in tree {tree_index}: {detail}")
        self.tree_index = tree_index
        self.detail = detail


class PredictionError(ValueError):
    """Raised while scoring a batch; the request needs fixing."""


class FeatureNotFound(PredictionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Feature not found in batch: {name}")
        self.name = name


class TypeMismatch(PredictionError):
    def __init__(self, name: str, detail: str | None = None) -> None:
        message = f"Column cannot be read as float64: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.name = name
        self.detail = detail
