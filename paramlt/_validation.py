"""Input validation helpers and error types for paramlt.

Every scaling routine checks shapes through these helpers before touching
the target, so a failed call never leaves a partially updated matrix.
"""

from __future__ import annotations

from typing import Any

import numpy as np


class DimensionMismatch(ValueError):
    """Raised when operand shapes are incompatible with the factor size."""


class BlockStructureError(ValueError):
    """Raised when a sparse matrix lacks the repeated block pattern a scaling needs."""


def _checksquare(A: Any, *, name: str = "A") -> int:
    """Return the side length of a square 2D array.

    Parameters
    ----------
    A : array-like
        Matrix expected to be square.
    name : str, optional
        Variable name for error messages.

    Returns
    -------
    int
        Number of rows (= number of columns).

    Raises
    ------
    DimensionMismatch
        If ``A`` is not 2D or not square.
    """
    shape = np.shape(A)
    if len(shape) != 2:
        raise DimensionMismatch(
            f"{name} must be 2D, got {len(shape)}D with shape {shape}"
        )
    m, n = shape
    if m != n:
        raise DimensionMismatch(f"{name} must be square, got shape {shape}")
    return int(m)


def _check_multiple(size: int, l: int, *, what: str) -> int:
    """Return ``size // l`` after checking that ``l`` divides ``size``.

    Parameters
    ----------
    size : int
        Dimension (or stored-value count) of the target.
    l : int
        Side length of the triangular factor.
    what : str
        Description of ``size`` used in the error, e.g. ``"size(B, 1)"``.

    Raises
    ------
    DimensionMismatch
        If ``size`` is not an exact multiple of ``l``.
    """
    q, r = divmod(int(size), int(l))
    if r != 0:
        raise DimensionMismatch(
            f"{what} = {size} is not a multiple of the factor size {l}. "
            f"Check that the target was built for a term with {l} columns per level."
        )
    return q


def _check_theta_length(v: np.ndarray, expected: int, *, name: str = "v") -> None:
    if v.ndim != 1:
        raise DimensionMismatch(
            f"{name} must be 1D, got {v.ndim}D with shape {v.shape}. "
            f"Try {name}.ravel()."
        )
    if v.shape[0] != expected:
        raise DimensionMismatch(
            f"len({name}) = {v.shape[0]} does not match nlower = {expected}"
        )


def _as_theta(v: Any, *, name: str = "v") -> np.ndarray:
    """Convert a parameter vector to a float64 array with a helpful error."""
    try:
        return np.asarray(v, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} cannot be converted to numeric array: {e}") from e


def _check_csc_column_groups(
    indices: np.ndarray, indptr: np.ndarray, l: int, *, name: str = "A"
) -> None:
    """Check that each group of ``l`` columns shares one row-index pattern.

    Columns ``g*l, ..., g*l + l - 1`` must all store exactly the rows stored in
    column ``g*l``. The whole matrix is checked before returning so callers can
    mutate afterwards without risk of a half-scaled result.

    Raises
    ------
    BlockStructureError
        On the first column whose pattern differs from its group's first column.
    """
    ncols = indptr.shape[0] - 1
    for first in range(0, ncols, l):
        rows1 = indices[indptr[first] : indptr[first + 1]]
        for j in range(first + 1, first + l):
            rows = indices[indptr[j] : indptr[j + 1]]
            if not np.array_equal(rows, rows1):
                raise BlockStructureError(
                    f"{name} does not have block structure for tscale: column {j} "
                    f"stores rows {rows.tolist()} but column {first} stores "
                    f"{rows1.tolist()}"
                )


def _check_csc_row_runs(
    indices: np.ndarray, indptr: np.ndarray, l: int, *, name: str = "B"
) -> None:
    """Check that stored rows come in aligned runs ``g*l, ..., g*l + l - 1``.

    This is the layout the left sparse scaling assumes when it views the
    stored values as an ``l × (nnz / l)`` matrix.

    Raises
    ------
    BlockStructureError
        If a column's stored count is not a multiple of ``l`` or a run is not
        a complete, aligned block of rows.
    """
    offsets = np.arange(l)
    for j in range(indptr.shape[0] - 1):
        rows = indices[indptr[j] : indptr[j + 1]]
        if rows.shape[0] % l != 0:
            raise BlockStructureError(
                f"{name} column {j} stores {rows.shape[0]} values, "
                f"not a multiple of the factor size {l}"
            )
        runs = rows.reshape(-1, l)
        starts = runs[:, 0]
        if np.any(starts % l != 0) or not np.array_equal(
            runs, starts[:, None] + offsets[None, :]
        ):
            raise BlockStructureError(
                f"{name} column {j} does not store rows in aligned runs of {l}: "
                f"{rows.tolist()}"
            )
