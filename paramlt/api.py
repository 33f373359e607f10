"""Parameter vectors spanning all random-effects terms of a model."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from ._validation import DimensionMismatch, _as_theta
from .lowertri import LowerTriangularFactor, factor_for_term
from .ops import lscale, rscale


def _term_name(name: Any, index: int) -> str:
    return str(name) if name is not None else f"term{index}"


def stack_parameters(factors: Sequence[LowerTriangularFactor]) -> np.ndarray:
    """Concatenate the θ vectors of ``factors`` in order."""
    if len(factors) == 0:
        return np.empty(0)
    return np.concatenate([f.parameters() for f in factors], axis=0)


def unstack_parameters(theta: np.ndarray, sizes: list[int]) -> list[np.ndarray]:
    """Split a model-wide θ into consecutive per-term pieces.

    ``sizes`` holds each term's ``nlower``; the pieces are views into ``theta``.
    """
    out, i = [], 0
    for p in sizes:
        out.append(theta[i : i + p])
        i += p
    return out


@dataclass
class _Term:
    name: str
    factor: LowerTriangularFactor


class FactorSet:
    """Named collection of per-term factors seen by the optimizer as one θ.

    Parameters
    ----------
    factors : mapping or sequence
        Either ``{name: factor}``, a sequence of ``(name, factor)`` pairs, or a
        sequence of bare factors (named ``term0``, ``term1``, ...).

    Examples
    --------
    >>> fs = FactorSet({"subject": LowerTriangularFactor.identity(2)})
    >>> fs.parameters()
    array([1., 0., 1.])
    >>> fs.lower_bounds()
    array([  0., -inf,   0.])
    """

    def __init__(
        self,
        factors: Mapping[Any, LowerTriangularFactor]
        | Sequence[LowerTriangularFactor | tuple[Any, LowerTriangularFactor]],
    ) -> None:
        if isinstance(factors, Mapping):
            items = list(factors.items())
        else:
            items = [
                item if isinstance(item, tuple) else (None, item) for item in factors
            ]
        if len(items) == 0:
            raise ValueError("factors must contain at least one term")

        terms: list[_Term] = []
        seen: set[str] = set()
        for idx, (name, factor) in enumerate(items):
            if not isinstance(factor, LowerTriangularFactor):
                raise TypeError(
                    f"term {idx} must be a LowerTriangularFactor, "
                    f"got {type(factor).__name__}"
                )
            label = _term_name(name, idx)
            if label in seen:
                raise ValueError(f"duplicate term name {label!r}")
            seen.add(label)
            terms.append(_Term(name=label, factor=factor))
        self._terms = terms

    @classmethod
    def from_terms(
        cls, terms: Mapping[Any, Any] | Sequence[Any]
    ) -> FactorSet:
        """Identity-initialised factors sized for each model term."""
        if isinstance(terms, Mapping):
            return cls({name: factor_for_term(t) for name, t in terms.items()})
        return cls([factor_for_term(t) for t in terms])

    @property
    def names(self) -> list[str]:
        return [t.name for t in self._terms]

    @property
    def nterms(self) -> int:
        return len(self._terms)

    @property
    def nparameters(self) -> int:
        return sum(t.factor.nlower for t in self._terms)

    def __getitem__(self, name: str) -> LowerTriangularFactor:
        for t in self._terms:
            if t.name == name:
                return t.factor
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self):
        return iter(t.factor for t in self._terms)

    def slices(self) -> dict[str, slice]:
        """Position of each term's θ within the stacked vector."""
        out, i = {}, 0
        for t in self._terms:
            p = t.factor.nlower
            out[t.name] = slice(i, i + p)
            i += p
        return out

    # ------------------------------------------------------------------
    # Optimizer-facing θ
    # ------------------------------------------------------------------
    def parameters(self) -> np.ndarray:
        return stack_parameters([t.factor for t in self._terms])

    def set_parameters(self, theta: Any) -> FactorSet:
        """Write a stacked θ into every factor.

        The total length is checked before any factor is written, so a wrong
        length leaves every factor unchanged.
        """
        theta = _as_theta(theta, name="theta")
        if theta.ndim != 1 or theta.shape[0] != self.nparameters:
            raise DimensionMismatch(
                f"theta has shape {theta.shape} but the terms hold "
                f"{self.nparameters} parameters"
            )
        pieces = unstack_parameters(theta, [t.factor.nlower for t in self._terms])
        for t, piece in zip(self._terms, pieces, strict=True):
            t.factor.set_parameters(piece)
        return self

    def lower_bounds(self) -> np.ndarray:
        return np.concatenate([t.factor.lower_bounds() for t in self._terms])

    # ------------------------------------------------------------------
    # Scaling
    # ------------------------------------------------------------------
    def scale(self, name: str, target: Any, *, side: str = "left", strict: bool | None = None):
        """Scale ``target`` in place by the factor of term ``name``.

        ``side="left"`` applies Λ' from the left (:func:`lscale`),
        ``side="right"`` applies Λ from the right (:func:`rscale`).
        ``strict`` is only accepted with ``side="left"``.
        """
        factor = self[name]
        if side == "left":
            return lscale(factor, target, strict=strict)
        if side == "right":
            if strict is not None:
                raise TypeError("strict applies only to side='left'")
            return rscale(target, factor)
        raise ValueError(f"side must be 'left' or 'right', got {side!r}")

    def summary_dict(self) -> dict[str, Any]:
        return {
            "nterms": self.nterms,
            "nparameters": self.nparameters,
            "sizes": {t.name: t.factor.n for t in self._terms},
        }
