"""Evaluate Λ'Z'ZΛ from a cached Z'Z the way a fitting loop would."""

from types import SimpleNamespace

import numpy as np
from scipy import sparse

from paramlt import FactorSet, HBlkDiag, lscale, rscale
from paramlt.lowertri import LowerTriangularFactor


def _vector_term(rng, n_obs=40, n_groups=5):
    """Random intercept + slope design: columns ordered level-major."""
    groups = rng.integers(0, n_groups, size=n_obs)
    groups[:n_groups] = np.arange(n_groups)  # every level observed
    x = 1.0 + rng.random(n_obs)
    rows = np.repeat(np.arange(n_obs), 2)
    cols = np.column_stack([2 * groups, 2 * groups + 1]).ravel()
    vals = np.column_stack([np.ones(n_obs), x]).ravel()
    Z = sparse.csc_matrix((vals, (rows, cols)), shape=(n_obs, 2 * n_groups))
    Z.sort_indices()
    return Z, n_groups


def _ztz_blocks(Z, n_groups):
    dense = (Z.T @ Z).toarray()
    return [dense[2 * g : 2 * g + 2, 2 * g : 2 * g + 2] for g in range(n_groups)]


def test_lambda_ztz_lambda_from_cached_blocks():
    rng = np.random.default_rng(2024)
    Z, k = _vector_term(rng)
    cached = HBlkDiag.from_blocks(_ztz_blocks(Z, k))

    fs = FactorSet({"subject": LowerTriangularFactor.identity(2)})
    for theta in ([1.0, 0.0, 1.0], [0.7, -0.3, 1.4], [2.0, 0.5, 0.0]):
        fs.set_parameters(theta)
        L = fs["subject"]
        Lam = np.kron(np.eye(k), L.data)

        work = HBlkDiag(cached.arr.copy())
        lscale(L, work)
        rscale(work, L)

        expected = Lam.T @ (Z.T @ Z).toarray() @ Lam
        assert np.allclose(work.toarray(), expected, rtol=1e-10, atol=1e-10)

    # the cached Z'Z is never touched
    np.testing.assert_allclose(cached.toarray(), (Z.T @ Z).toarray())


def test_z_lambda_on_sparse_design():
    rng = np.random.default_rng(11)
    Z, k = _vector_term(rng)
    L = LowerTriangularFactor([[1.5, 0.0], [0.25, 0.5]])
    expected = Z.toarray() @ np.kron(np.eye(k), L.data)

    ZL = Z.copy()
    rscale(ZL, L)

    assert np.allclose(ZL.toarray(), expected, rtol=1e-12, atol=1e-12)


def test_dense_and_block_paths_agree():
    rng = np.random.default_rng(5)
    Z, k = _vector_term(rng)
    L = LowerTriangularFactor([[0.9, 0.0], [-0.4, 1.1]])

    dense = (Z.T @ Z).toarray()
    lscale(L, dense)
    rscale(dense, L)

    blocks = HBlkDiag.from_blocks(_ztz_blocks(Z, k))
    lscale(L, blocks)
    rscale(blocks, L)

    assert np.allclose(dense, blocks.toarray(), rtol=1e-12, atol=1e-12)


def test_scalar_term_scaling_matches_theta_squared():
    rng = np.random.default_rng(3)
    n_obs, k = 30, 4
    groups = np.concatenate([np.arange(k), rng.integers(0, k, size=n_obs - k)])
    Z = sparse.csc_matrix(
        (np.ones(n_obs), (np.arange(n_obs), groups)), shape=(n_obs, k)
    )
    ztz = (Z.T @ Z).toarray()

    fs = FactorSet.from_terms([SimpleNamespace(z=np.ones(n_obs))])
    fs.set_parameters([0.6])
    target = ztz.copy()
    fs.scale("term0", target, side="left")
    fs.scale("term0", target, side="right")

    assert np.allclose(target, 0.36 * ztz)
