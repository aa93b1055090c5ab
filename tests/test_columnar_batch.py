import numpy as np
import pandas as pd
import pytest

from columnar_batch import ColumnarBatch, DataFrameBatch, MappingBatch, as_batch, column_as_float64
from model_errors import TypeMismatch


class _RecordBatchLike:
    num_rows = 2

    def column(self, name):
        if name != "carat":
            raise KeyError(name)
        return np.array([1, 2], dtype=np.int32)


def test_as_batch_picks_adapter():
    frame = pd.DataFrame({"carat": [1.0]})
    native = _RecordBatchLike()

    assert isinstance(as_batch(frame), DataFrameBatch)
    assert isinstance(as_batch({"carat": [1.0]}), MappingBatch)
    assert as_batch(native) is native
    assert isinstance(native, ColumnarBatch)

    with pytest.raises(TypeError):
        as_batch([1.0, 2.0])


def test_mapping_batch_row_count():
    assert MappingBatch({"a": [1, 2, 3]}).num_rows == 3
    assert MappingBatch({}).num_rows == 0
    assert MappingBatch({"a": [1, 2], "b": [1]}).num_rows == 2
    assert MappingBatch({"a": 0.5, "b": [1, 2, 3]}).num_rows == 3


def test_numeric_columns_are_widened():
    out = column_as_float64("carat", np.array([1, 2], dtype=np.int32), 2)

    assert out.dtype == np.float64
    assert out.tolist() == [1.0, 2.0]
    assert column_as_float64("flag", [True, False], 2).tolist() == [1.0, 0.0]


def test_nulls_become_nan():
    out = column_as_float64("carat", [1.0, None], 2)

    assert out[0] == 1.0
    assert np.isnan(out[1])


@pytest.mark.parametrize(
    "values",
    [["a", "b"], [1.0, "b"], pd.Series(["a", "b"]), np.zeros((2, 2))],
)
def test_non_numeric_columns_are_rejected(values):
    with pytest.raises(TypeMismatch) as excinfo:
        column_as_float64("carat", values, 2)

    assert excinfo.value.name == "carat"


def test_length_mismatch_is_rejected():
    with pytest.raises(TypeMismatch):
        column_as_float64("carat", [1.0, 2.0, 3.0], 2)
