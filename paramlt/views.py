"""Explicit reshape-without-copy views over existing array storage.

Scaling a large structured matrix by a small factor amounts to multiplying
many small ``l``-sized slabs of its storage. Rather than relying on
``reshape`` happening to return a view, :class:`StridedView` spells out the
shape, element strides and offset of each slab and checks that they stay
inside the storage of the array they alias.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.lib.stride_tricks import as_strided


def column_major_strides(shape: Sequence[int]) -> tuple[int, ...]:
    """Element strides of a contiguous column-major array of ``shape``."""
    strides = []
    step = 1
    for d in shape:
        strides.append(step)
        step *= int(d)
    return tuple(strides)


def _extent(shape, strides, offset) -> tuple[int, int]:
    """Lowest and highest element index reachable by a strided layout."""
    lo = hi = offset
    for d, st in zip(shape, strides):
        span = (d - 1) * st
        if span < 0:
            lo += span
        else:
            hi += span
    return lo, hi


class StridedView:
    """Window of shape ``shape`` over the memory of ``base``.

    Parameters
    ----------
    base : np.ndarray
        Array whose memory is aliased. Element ``0`` of the view's coordinate
        system is the first element of ``base``.
    shape : sequence of int
        Shape of the view.
    strides : sequence of int
        Strides in elements (not bytes), one per dimension.
    offset : int
        Element offset of the view's first element (negative offsets occur
        for bases with negative strides).

    Raises
    ------
    ValueError
        If the layout reaches outside the extent of ``base``, strides and
        shape disagree in length, or ``base`` has strides that are not whole
        elements.
    """

    def __init__(
        self,
        base: np.ndarray,
        shape: Sequence[int],
        strides: Sequence[int],
        offset: int = 0,
    ) -> None:
        if not isinstance(base, np.ndarray):
            raise TypeError(f"base must be a numpy array, got {type(base).__name__}")
        shape = tuple(int(d) for d in shape)
        strides = tuple(int(s) for s in strides)
        if len(shape) != len(strides):
            raise ValueError(
                f"shape {shape} and strides {strides} must have the same length"
            )
        if any(d < 0 for d in shape):
            raise ValueError(f"shape must be non-negative, got {shape}")

        itemsize = base.itemsize
        if any(s % itemsize for s in base.strides):
            raise ValueError(
                f"base strides {base.strides} are not multiples of itemsize {itemsize}"
            )
        base_strides = tuple(s // itemsize for s in base.strides)

        if 0 not in shape:
            lo, hi = _extent(shape, strides, offset)
            if base.size == 0:
                raise ValueError("cannot take a non-empty view of an empty array")
            blo, bhi = _extent(base.shape, base_strides, 0)
            if lo < blo or hi > bhi:
                raise ValueError(
                    f"view (shape={shape}, strides={strides}, offset={offset}) "
                    f"reaches elements [{lo}, {hi}] outside base extent [{blo}, {bhi}]"
                )

        self.base = base
        self.shape = shape
        self.strides = strides
        self.offset = int(offset)

    @classmethod
    def of(cls, arr: np.ndarray) -> StridedView:
        """View ``arr`` with its own shape and strides."""
        return cls(arr, arr.shape, tuple(s // arr.itemsize for s in arr.strides))

    def reshape(
        self,
        shape: Sequence[int],
        strides: Sequence[int] | None = None,
        offset: int = 0,
    ) -> StridedView:
        """New view over the same base, ``offset`` elements past this one.

        Without ``strides`` the new view is laid out column-major from its
        first element, which is only meaningful when that memory is
        contiguous.
        """
        if strides is None:
            strides = column_major_strides(shape)
        return StridedView(self.base, shape, strides, self.offset + offset)

    def array(self) -> np.ndarray:
        """Writeable ndarray aliasing the viewed elements (no copy)."""
        itemsize = self.base.itemsize
        anchor = self.base
        if self.offset:
            # second element of a two-element walk lands on the offset
            anchor = as_strided(
                self.base, shape=(2,), strides=(self.offset * itemsize,)
            )[1:]
        return as_strided(
            anchor,
            shape=self.shape,
            strides=tuple(s * itemsize for s in self.strides),
            writeable=True,
        )

    def lmul_transpose(self, L: np.ndarray) -> None:
        """In place ``V <- L' V`` contracting the leading axis of the view."""
        V = self.array()
        V[...] = np.tensordot(L, V, axes=(0, 0))

    def rmul(self, L: np.ndarray) -> None:
        """In place ``V <- V L`` contracting the trailing axis of the view."""
        V = self.array()
        V[...] = V @ L

    def __repr__(self) -> str:
        return (
            f"StridedView(shape={self.shape}, strides={self.strides}, "
            f"offset={self.offset})"
        )
