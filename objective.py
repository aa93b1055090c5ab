from __future__ import annotations

from enum import Enum

import numpy as np

from model_errors import InvalidFieldType, UnsupportedObjective


class Objective(Enum):
    """Post-processing applied to accumulated raw tree scores."""

    SQUARED_ERROR = ("reg:squarederror",)
    LOGISTIC = ("reg:logistic", "binary:logistic")
    SOFTPROB = ("multi:softprob",)

    @property
    def names(self) -> tuple[str, ...]:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> Objective:
        for objective in cls:
            if name in objective.names:
                return objective
        raise UnsupportedObjective(name)

    def apply(self, raw: np.ndarray) -> np.ndarray:
        """Transform raw scores of shape (rows, outputs) into predictions."""
        raw = np.asarray(raw, dtype=np.float64)
        if self is Objective.SQUARED_ERROR:
            return raw.copy()
        if self is Objective.LOGISTIC:
            return np.exp(-np.logaddexp(0.0, -raw))

        # Shift by the row maximum so exp() cannot overflow.
        shifted = raw - np.max(raw, axis=1, keepdims=True)
        exp = np.exp(shifted)
        return exp / np.sum(exp, axis=1, keepdims=True)

    def base_margin(self, base_score: float) -> float:
        """Map a stored base score into the raw-score space trees add to."""
        if self is Objective.LOGISTIC:
            if not (0.0 < base_score < 1.0):
                raise InvalidFieldType(
                    "base_score",
                    f"logistic base score must be in (0, 1), got {base_score}",
                )
            return float(np.log(base_score / (1.0 - base_score)))
        return float(base_score)

    def check_num_class(self, num_class: int) -> None:
        if self is Objective.SOFTPROB and num_class < 2:
            raise InvalidFieldType("num_class", f"{self.names[0]} needs num_class >= 2")
