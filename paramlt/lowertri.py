"""Lower-triangular relative covariance factors and their parameter vectors.

A random-effects term with ``n`` columns per grouping level carries an
``n × n`` lower-triangular factor Λ. The optimizer never sees Λ itself; it
works on θ, the lower triangle of Λ packed column by column::

    θ = [Λ[0,0], Λ[1,0], ..., Λ[n-1,0], Λ[1,1], ..., Λ[n-1,1], ..., Λ[n-1,n-1]]

Diagonal entries are bounded below by zero and off-diagonal entries are free,
which gives the box constraints returned by :func:`lower_bounds`.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from scipy.linalg import solve_triangular

from ._validation import (
    DimensionMismatch,
    _as_theta,
    _check_theta_length,
    _checksquare,
)

THETA_KEYS = ("theta", "θ")


def nlower(n: Any) -> int:
    """Number of stored entries in an ``n × n`` lower triangle, ``n(n+1)/2``.

    ``n`` may also be a :class:`LowerTriangularFactor` or a square 2D array,
    in which case its side length is used.
    """
    if isinstance(n, LowerTriangularFactor):
        n = n.n
    elif np.ndim(n) == 2:
        n = _checksquare(n)
    if isinstance(n, (bool, np.bool_)) or not isinstance(n, (int, np.integer)):
        raise ValueError(f"n must be a non-negative integer, got {n!r}")
    if n < 0:
        raise ValueError(f"n must be a non-negative integer, got {n}")
    return (int(n) * (int(n) + 1)) >> 1


def lower_bounds(n: int) -> np.ndarray:
    """Lower bounds on θ for an ``n × n`` factor.

    Positions holding diagonal entries get ``0``; all others get ``-inf``.
    The diagonal of column ``j`` sits ``n - j + 1`` places after the diagonal
    of column ``j - 1``, so the loop walks those steps from ``n`` down to 2.
    """
    res = np.full(nlower(n), -np.inf)
    k = -n - 1
    for j in range(n + 1, 1, -1):
        k += j
        res[k] = 0.0
    return res


class LowerTriangularFactor:
    """Square lower-triangular factor Λ with a θ view of its free entries.

    Parameters
    ----------
    data : array-like
        Square matrix. It is copied to float64 and its strict upper triangle
        is set to zero.

    Notes
    -----
    The side length is fixed at construction; :meth:`set_parameters` writes
    the lower triangle in place and never reallocates.
    """

    def __init__(self, data: Any) -> None:
        n = _checksquare(data, name="data")
        if n < 1:
            raise DimensionMismatch("data must be at least 1×1")
        arr = np.array(data, dtype=np.float64, order="F")
        arr[np.triu_indices(n, k=1)] = 0.0
        self.data = arr

    @classmethod
    def identity(cls, n: int) -> LowerTriangularFactor:
        if n < 1:
            raise ValueError(f"factor size must be at least 1, got {n}")
        return cls(np.eye(n))

    @property
    def n(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape

    @property
    def nlower(self) -> int:
        return nlower(self.n)

    # ------------------------------------------------------------------
    # θ codec
    # ------------------------------------------------------------------
    def parameters(self) -> np.ndarray:
        """Return a new vector with the lower triangle in column-major order."""
        n = self.n
        res = np.empty(nlower(n))
        k = 0
        for j in range(n):
            res[k : k + n - j] = self.data[j:, j]
            k += n - j
        return res

    def set_parameters(self, v: Any) -> LowerTriangularFactor:
        """Copy ``v`` into the lower triangle using column-major order.

        Raises
        ------
        DimensionMismatch
            If ``len(v) != nlower(n)``. Λ is left untouched in that case.
        """
        v = _as_theta(v)
        n = self.n
        _check_theta_length(v, nlower(n))
        k = 0
        for j in range(n):
            for i in range(j, n):
                self.data[i, j] = v[k]
                k += 1
        return self

    def __getitem__(self, key: str) -> np.ndarray:
        if key not in THETA_KEYS:
            raise KeyError(key)
        return self.parameters()

    def __setitem__(self, key: str, v: Any) -> None:
        if key not in THETA_KEYS:
            raise KeyError(key)
        self.set_parameters(v)

    def lower_bounds(self) -> np.ndarray:
        return lower_bounds(self.n)

    # ------------------------------------------------------------------
    # Conveniences
    # ------------------------------------------------------------------
    def to_array(self) -> np.ndarray:
        return self.data.copy()

    def inverse(self) -> LowerTriangularFactor:
        """Return a new factor holding Λ⁻¹ (also lower triangular).

        Raises ``numpy.linalg.LinAlgError`` if a diagonal entry is zero.
        """
        inv = solve_triangular(self.data, np.eye(self.n), lower=True)
        return LowerTriangularFactor(inv)

    def __repr__(self) -> str:
        return f"LowerTriangularFactor(n={self.n}, theta={self.parameters().tolist()})"


def factor_for_term(term: Any) -> LowerTriangularFactor:
    """Create an identity factor compatible with the blocks of ``term``.

    A scalar random-effects term (1D ``z``) gets a ``1 × 1`` factor of ones;
    a vector-valued term whose ``z`` has ``n`` rows gets the ``n × n``
    identity.
    """
    z = getattr(term, "z", None)
    if z is None:
        raise TypeError(
            f"{type(term).__name__} has no 'z' design block; cannot size a factor"
        )
    ndim = np.ndim(z)
    if ndim == 1:
        return LowerTriangularFactor(np.ones((1, 1)))
    if ndim == 2:
        return LowerTriangularFactor.identity(np.shape(z)[0])
    raise TypeError(f"term.z must be 1D or 2D, got {ndim}D")
