"""In-place scaling of structured matrices by a lower-triangular factor.

The model's random-effects factor Λ is block diagonal with one copy of a
small ``l × l`` lower-triangular matrix per grouping level. Products such as
``Λ'Z'ZΛ`` are evaluated here by applying the small factor to each ``l``-sized
slab of the target's storage, never building the expanded Λ.

Two sides are supported:

* :func:`lscale` applies ``Λ'`` from the left (``Λ'Z``-style products);
* :func:`rscale` applies ``Λ`` from the right (``ZΛ``-style products).

:func:`tscale` is the two-argument form that picks the side from which
argument is the factor. All variants validate before mutating and return
the target they were given.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from ._config import get_strict_sparse
from ._validation import (
    DimensionMismatch,
    _check_csc_column_groups,
    _check_csc_row_runs,
    _check_multiple,
)
from .lowertri import LowerTriangularFactor
from .targets import Diagonal, HBlkDiag, TargetKind, classify_target
from .views import StridedView

logger = logging.getLogger(__name__)


def _check_factor(factor: Any, *, name: str) -> LowerTriangularFactor:
    if not isinstance(factor, LowerTriangularFactor):
        raise TypeError(
            f"{name} must be a LowerTriangularFactor, got {type(factor).__name__}"
        )
    return factor


def _element_strides(arr: np.ndarray) -> tuple[int, ...]:
    return StridedView.of(arr).strides


# ----------------------------------------------------------------------
# Λ' from the left
# ----------------------------------------------------------------------
def _lscale_hblkdiag(A: LowerTriangularFactor, B: HBlkDiag) -> HBlkDiag:
    Ba = B.arr
    r, s, k = Ba.shape
    n = A.n
    if n != r:
        raise DimensionMismatch(
            f"size(A, 2) = {n} does not match the block row count {r} of B"
        )
    if n == 1:
        Ba *= A.data[0, 0]
        return B
    view = StridedView.of(Ba)
    sr, ss, sk = view.strides
    if sk == s * ss:
        # blocks sit side by side: one r × (s·k) slab
        view = view.reshape((r, s * k), (sr, ss))
    view.lmul_transpose(A.data)
    return B


def _lscale_diagonal(A: LowerTriangularFactor, B: Diagonal) -> Diagonal:
    if A.n != 1:
        raise DimensionMismatch(
            f"A must be a 1×1 LowerTriangularFactor to scale a Diagonal, got {A.n}×{A.n}"
        )
    B.diag *= A.data[0, 0]
    return B


def _lscale_dense(A: LowerTriangularFactor, B: np.ndarray) -> np.ndarray:
    l = A.n
    if l == 1:
        B *= A.data[0, 0]
        return B
    m = B.shape[0]
    q = _check_multiple(m, l, what="size(B, 1)")
    view = StridedView.of(B)
    if B.ndim == 1:
        (s0,) = view.strides
        slab = view.reshape((l, q), (s0, l * s0))
    else:
        s0, s1 = view.strides
        slab = view.reshape((l, q, B.shape[1]), (s0, l * s0, s1))
    slab.lmul_transpose(A.data)
    return B


def _lscale_sparse(A: LowerTriangularFactor, B: Any, strict: bool) -> Any:
    l = A.n
    if l == 1:
        B.data[: B.nnz] *= A.data[0, 0]
        return B
    m, _ = B.shape
    _check_multiple(m, l, what="size(B, 1)")
    q = _check_multiple(B.nnz, l, what="nnz(B)")
    if strict:
        logger.debug("lscale: verifying aligned row runs of %d", l)
        _check_csc_row_runs(B.indices, B.indptr, l, name="B")
    (ds,) = _element_strides(B.data)
    StridedView.of(B.data).reshape((l, q), (ds, l * ds)).lmul_transpose(A.data)
    return B


def lscale(factor: LowerTriangularFactor, target: Any, *, strict: bool | None = None):
    """Scale ``target`` in place by ``Λ'`` from the left and return it.

    Parameters
    ----------
    factor : LowerTriangularFactor
        The ``l × l`` factor Λ.
    target : ndarray, Diagonal, HBlkDiag or CSC sparse matrix
        Matrix whose rows come in groups of ``l`` (for :class:`HBlkDiag`,
        whose block row count equals ``l``). Modified in place.
    strict : bool, optional
        For sparse targets, also verify that stored rows form aligned runs of
        ``l``. Defaults to :func:`paramlt.get_strict_sparse`.

    Returns
    -------
    The same ``target`` object.

    Raises
    ------
    DimensionMismatch
        If the target's rows (or stored values) are not a multiple of ``l``,
        or a Diagonal target is paired with a factor larger than ``1 × 1``.
    BlockStructureError
        In strict mode, if a sparse target's rows are not in aligned runs.
    TypeError
        For unsupported target types or targets that do not store floating
        point values.
    """
    A = _check_factor(factor, name="factor")
    kind = classify_target(target)
    logger.debug("lscale: %s target, factor size %d", kind.value, A.n)
    if kind is TargetKind.HBLKDIAG:
        return _lscale_hblkdiag(A, target)
    elif kind is TargetKind.DIAGONAL:
        return _lscale_diagonal(A, target)
    elif kind is TargetKind.DENSE:
        return _lscale_dense(A, target)
    elif kind is TargetKind.SPARSE_CSC:
        if strict is None:
            strict = get_strict_sparse()
        return _lscale_sparse(A, target, strict)
    raise TypeError(f"no left scaling for target kind {kind}")  # pragma: no cover


# ----------------------------------------------------------------------
# Λ from the right
# ----------------------------------------------------------------------
def _rscale_sparse(A: Any, B: LowerTriangularFactor) -> Any:
    l = B.n
    if l == 1:
        A.data[: A.nnz] *= B.data[0, 0]
        return A
    _, n = A.shape
    _check_multiple(A.nnz, l, what="nnz(A)")
    q = _check_multiple(n, l, what="size(A, 2)")
    Acp = A.indptr
    _check_csc_column_groups(A.indices, Acp, l, name="A")
    values = StridedView.of(A.data)
    (ds,) = values.strides
    for k in range(q):
        first = k * l
        start = int(Acp[first])
        lnzr = int(Acp[first + 1]) - start
        if lnzr == 0:
            continue
        values.reshape((lnzr, l), (ds, lnzr * ds), offset=start * ds).rmul(B.data)
    return A


def _rscale_hblkdiag(A: HBlkDiag, B: LowerTriangularFactor) -> HBlkDiag:
    aa = A.arr
    r, s, k = aa.shape
    l = B.n
    if l == 1:
        aa *= B.data[0, 0]
        return A
    if s != l:
        raise DimensionMismatch(
            f"block column count {s} of A does not match size(B, 1) = {l}"
        )
    scr = np.empty((r, s), dtype=aa.dtype)
    scratch = StridedView.of(scr)
    for i in range(k):
        scr[...] = aa[:, :, i]
        scratch.rmul(B.data)
        aa[:, :, i] = scr
    return A


def _rscale_diagonal(A: Diagonal, B: LowerTriangularFactor) -> Diagonal:
    if B.n != 1:
        raise DimensionMismatch(
            f"in rscale(A::Diagonal, B) B must be 1×1, got {B.n}×{B.n}"
        )
    A.diag *= B.data[0, 0]
    return A


def _rscale_dense(A: np.ndarray, B: LowerTriangularFactor) -> np.ndarray:
    l = B.n
    if l == 1:
        A *= B.data[0, 0]
        return A
    A2 = A[:, None] if A.ndim == 1 else A
    m, n = A2.shape
    q = _check_multiple(n, l, what="size(A, 2)")
    view = StridedView.of(A2)
    s0, s1 = view.strides
    for k in range(q):
        view.reshape((m, l), (s0, s1), offset=k * l * s1).rmul(B.data)
    return A


def rscale(target: Any, factor: LowerTriangularFactor):
    """Scale ``target`` in place by Λ from the right and return it.

    Sparse targets must store identical row patterns in every column of a
    group of ``l`` consecutive columns; the whole matrix is checked before any
    value changes.

    Raises
    ------
    DimensionMismatch
        If the target's columns (or stored values) are not a multiple of
        ``l``, an :class:`HBlkDiag` block has a column count other than ``l``,
        or a Diagonal target is paired with a factor larger than ``1 × 1``.
    BlockStructureError
        If a sparse target's column groups do not share row patterns.
    TypeError
        For unsupported target types or targets that do not store floating
        point values.
    """
    B = _check_factor(factor, name="factor")
    kind = classify_target(target)
    logger.debug("rscale: %s target, factor size %d", kind.value, B.n)
    if kind is TargetKind.SPARSE_CSC:
        return _rscale_sparse(target, B)
    elif kind is TargetKind.HBLKDIAG:
        return _rscale_hblkdiag(target, B)
    elif kind is TargetKind.DIAGONAL:
        return _rscale_diagonal(target, B)
    elif kind is TargetKind.DENSE:
        return _rscale_dense(target, B)
    raise TypeError(f"no right scaling for target kind {kind}")  # pragma: no cover


def tscale(A: Any, B: Any, *, strict: bool | None = None):
    """Scale using the implicit expansion of a lower-triangular factor.

    ``tscale(factor, target)`` is :func:`lscale`; ``tscale(target, factor)`` is
    :func:`rscale`. Used to evaluate ``Λ'Z'ZΛ`` from ``Z'Z`` without forming Λ.

    ``strict`` only exists for the left side; passing it with the factor as
    the second argument raises ``TypeError``.
    """
    a_is_factor = isinstance(A, LowerTriangularFactor)
    b_is_factor = isinstance(B, LowerTriangularFactor)
    if a_is_factor and not b_is_factor:
        return lscale(A, B, strict=strict)
    if b_is_factor and not a_is_factor:
        if strict is not None:
            raise TypeError("strict applies only when the factor is the first argument")
        return rscale(A, B)
    raise TypeError(
        "tscale needs exactly one LowerTriangularFactor argument, got "
        f"{type(A).__name__} and {type(B).__name__}"
    )
