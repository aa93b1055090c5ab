from __future__ import annotations

from numbers import Real
from typing import Any, Mapping, Protocol, runtime_checkable

import numpy as np
import pandas as pd

from model_errors import TypeMismatch


@runtime_checkable
class ColumnarBatch(Protocol):
    """Named numeric columns sharing one row count.

    ``column`` raises ``KeyError`` for unknown names. A pyarrow ``RecordBatch``
    already satisfies this protocol.
    """

    @property
    def num_rows(self) -> int: ...

    def column(self, name: str) -> Any: ...


class MappingBatch:
    """Batch over a mapping of column name to 1-D array-like."""

    def __init__(self, columns: Mapping[str, Any], num_rows: int | None = None) -> None:
        self.columns = columns
        if num_rows is None:
            # Row count comes from the first column; each column read is checked against it.
            num_rows = 0
            for values in columns.values():
                if np.ndim(values) >= 1:
                    num_rows = len(values)
                    break
        self._num_rows = int(num_rows)

    @property
    def num_rows(self) -> int:
        return self._num_rows

    def column(self, name: str) -> Any:
        return self.columns[name]


class DataFrameBatch:
    def __init__(self, frame: pd.DataFrame) -> None:
        self.frame = frame

    @property
    def num_rows(self) -> int:
        return int(self.frame.shape[0])

    def column(self, name: str) -> pd.Series:
        return self.frame[name]


def as_batch(data: Any) -> ColumnarBatch:
    if isinstance(data, pd.DataFrame):
        return DataFrameBatch(data)
    if isinstance(data, ColumnarBatch):
        return data
    if isinstance(data, Mapping):
        return MappingBatch(data)
    raise TypeError(f"Cannot read columns from {type(data).__name__}")


def column_as_float64(name: str, values: Any, num_rows: int) -> np.ndarray:
    """Coerce one column to a float64 vector; nulls become NaN."""
    if isinstance(values, pd.Series):
        dtype = values.dtype
        if not (pd.api.types.is_numeric_dtype(dtype) or pd.api.types.is_bool_dtype(dtype)):
            raise TypeMismatch(name, f"dtype {values.dtype}")
        arr = values.to_numpy(dtype=np.float64, na_value=np.nan)
    else:
        arr = _numeric_array(name, values)

    if arr.ndim != 1:
        raise TypeMismatch(name, f"expected a 1-D column, got shape {arr.shape}")
    if arr.shape[0] != num_rows:
        raise TypeMismatch(name, f"expected {num_rows} rows, got {arr.shape[0]}")
    return arr


def _numeric_array(name: str, values: Any) -> np.ndarray:
    arr = np.asarray(values)
    if arr.dtype.kind in "biuf":
        return arr.astype(np.float64, copy=False)
    if arr.dtype.kind == "O":
        items = arr.ravel()
        if all(v is None or isinstance(v, (Real, np.bool_)) for v in items):
            coerced = [np.nan if v is None else float(v) for v in items]
            return np.array(coerced, dtype=np.float64).reshape(arr.shape)
    raise TypeMismatch(name, f"dtype {arr.dtype}")
