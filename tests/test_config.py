import numpy as np
import pytest
from scipy import sparse

import paramlt
from paramlt import BlockStructureError, LowerTriangularFactor, lscale
from paramlt._config import get_strict_sparse, set_strict_sparse


@pytest.fixture(autouse=True)
def _reset_strict(monkeypatch):
    monkeypatch.delenv("PARAMLT_STRICT_SPARSE", raising=False)
    set_strict_sparse(None)
    yield
    set_strict_sparse(None)


def test_default_is_not_strict():
    assert get_strict_sparse() is False


@pytest.mark.parametrize("value, expected", [
    ("1", True), ("TRUE", True), (" yes ", True), ("on", True),
    ("0", False), ("false", False), ("off", False), ("maybe", False),
])
def test_environment_variable(monkeypatch, value, expected):
    monkeypatch.setenv("PARAMLT_STRICT_SPARSE", value)
    assert get_strict_sparse() is expected


def test_programmatic_override_beats_environment(monkeypatch):
    monkeypatch.setenv("PARAMLT_STRICT_SPARSE", "1")
    paramlt.set_strict_sparse(False)
    assert paramlt.get_strict_sparse() is False
    paramlt.set_strict_sparse(None)
    assert paramlt.get_strict_sparse() is True


def test_invalid_override_raises():
    with pytest.raises(ValueError, match="True, False or None"):
        set_strict_sparse("yes")


def test_strict_setting_reaches_sparse_left_scaling(monkeypatch):
    def misaligned():
        return sparse.csc_matrix(
            (np.ones(2), np.array([1, 2]), np.array([0, 2])), shape=(4, 1)
        )

    L = LowerTriangularFactor.identity(2)
    lscale(L, misaligned())

    monkeypatch.setenv("PARAMLT_STRICT_SPARSE", "yes")
    with pytest.raises(BlockStructureError):
        lscale(L, misaligned())
    # an explicit argument wins over the configured value
    lscale(L, misaligned(), strict=False)
