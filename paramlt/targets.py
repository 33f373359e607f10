"""Matrix representations that can be scaled by a triangular factor."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy import sparse

from ._validation import DimensionMismatch


class TargetKind(enum.Enum):
    DENSE = "dense"
    DIAGONAL = "diagonal"
    HBLKDIAG = "hblkdiag"
    SPARSE_CSC = "sparse_csc"


@dataclass
class Diagonal:
    """Diagonal matrix stored as its 1D diagonal."""

    diag: np.ndarray

    def __post_init__(self) -> None:
        diag = np.asarray(self.diag)
        if diag.ndim != 1:
            raise DimensionMismatch(
                f"diag must be 1D, got {diag.ndim}D with shape {diag.shape}"
            )
        self.diag = diag

    @property
    def shape(self) -> tuple[int, int]:
        n = self.diag.shape[0]
        return (n, n)


@dataclass
class HBlkDiag:
    """Homogeneous block-diagonal matrix.

    ``arr`` has shape ``(r, s, k)``: ``arr[:, :, i]`` is the ``i``-th ``r × s``
    block on the diagonal. The blocks of a ``k``-level grouping factor share
    one shape, so storing them as a 3D array avoids a general sparse matrix.
    """

    arr: np.ndarray

    def __post_init__(self) -> None:
        arr = np.asarray(self.arr)
        if arr.ndim != 3:
            raise DimensionMismatch(
                f"arr must be 3D (r, s, k), got {arr.ndim}D with shape {arr.shape}"
            )
        self.arr = arr

    @classmethod
    def from_blocks(cls, blocks: list[np.ndarray]) -> HBlkDiag:
        """Stack equally shaped 2D blocks along a trailing block axis."""
        if len(blocks) == 0:
            raise ValueError("blocks must contain at least one block")
        return cls(np.asfortranarray(np.stack(blocks, axis=2), dtype=np.float64))

    @property
    def shape(self) -> tuple[int, int]:
        r, s, k = self.arr.shape
        return (r * k, s * k)

    def toarray(self) -> np.ndarray:
        r, s, k = self.arr.shape
        out = np.zeros((r * k, s * k), dtype=self.arr.dtype)
        for i in range(k):
            out[i * r : (i + 1) * r, i * s : (i + 1) * s] = self.arr[:, :, i]
        return out


def _check_floating(dtype: np.dtype, *, what: str) -> None:
    if not np.issubdtype(dtype, np.floating):
        raise TypeError(
            f"{what} must hold floating-point values to be scaled in place, "
            f"got dtype {dtype}. Convert once with .astype(np.float64)."
        )


def classify_target(target: Any) -> TargetKind:
    """Return the representation kind of ``target``.

    Raises
    ------
    TypeError
        For anything other than a 1D/2D ndarray, :class:`Diagonal`,
        :class:`HBlkDiag` or a CSC sparse matrix. Other sparse formats must be
        converted by the caller (``.tocsc()``) since the scaling works on the
        caller's storage in place. Also raised, before any value changes, for
        targets whose stored values are not floating point.
    """
    if isinstance(target, HBlkDiag):
        _check_floating(target.arr.dtype, what="HBlkDiag.arr")
        return TargetKind.HBLKDIAG
    if isinstance(target, Diagonal):
        _check_floating(target.diag.dtype, what="Diagonal.diag")
        return TargetKind.DIAGONAL
    if sparse.issparse(target):
        if target.format != "csc":
            raise TypeError(
                f"sparse targets must be in CSC format, got {target.format!r}. "
                f"Convert once with .tocsc() and keep the converted matrix."
            )
        _check_floating(target.data.dtype, what="sparse target data")
        return TargetKind.SPARSE_CSC
    if isinstance(target, np.ndarray):
        if target.ndim not in (1, 2):
            raise TypeError(
                f"dense targets must be 1D or 2D, got {target.ndim}D array"
            )
        _check_floating(target.dtype, what="dense target")
        return TargetKind.DENSE
    raise TypeError(f"cannot scale a target of type {type(target).__name__}")
