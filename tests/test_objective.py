import warnings

import numpy as np
import pytest

from model_errors import InvalidFieldType, UnsupportedObjective
from objective import Objective


def test_names_map_to_variants():
    assert Objective.from_name("reg:squarederror") is Objective.SQUARED_ERROR
    assert Objective.from_name("reg:logistic") is Objective.LOGISTIC
    assert Objective.from_name("binary:logistic") is Objective.LOGISTIC
    assert Objective.from_name("multi:softprob") is Objective.SOFTPROB


@pytest.mark.parametrize("name", ["multi:softmax", "reg:gamma", "rank:pairwise", ""])
def test_unknown_names_are_rejected(name):
    with pytest.raises(UnsupportedObjective) as excinfo:
        Objective.from_name(name)

    assert excinfo.value.name == name


def test_squared_error_is_identity_and_does_not_alias_input():
    raw = np.array([[0.1], [-3.0]])

    out = Objective.SQUARED_ERROR.apply(raw)
    out[0, 0] = 7.0

    assert raw[0, 0] == 0.1


def test_softmax_is_stable_for_large_margins():
    out = Objective.SOFTPROB.apply(np.array([[1000.0, 1000.0], [0.0, np.log(3.0)]]))

    assert np.allclose(out, [[0.5, 0.5], [0.25, 0.75]])


def test_logistic_base_margin_bounds():
    assert Objective.LOGISTIC.base_margin(0.5) == 0.0
    assert Objective.SQUARED_ERROR.base_margin(3.5) == 3.5

    with pytest.raises(InvalidFieldType):
        Objective.LOGISTIC.base_margin(1.0)


def test_logistic_saturates_without_overflow_warning():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = Objective.LOGISTIC.apply(np.array([[-1000.0], [0.0], [1000.0]]))

    assert np.allclose(out[:, 0], [0.0, 0.5, 1.0])
