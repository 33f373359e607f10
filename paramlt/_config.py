"""Runtime configuration for paramlt.

Controls whether scaling a sparse matrix from the left verifies that its
stored values really form aligned runs of the factor size. The right-hand
sparse scaling always verifies its column groups; the left-hand one only
checks that the counts are multiples of the factor size unless strict mode
is on.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_strict_sparse`.
    2. The ``PARAMLT_STRICT_SPARSE`` environment variable.
    3. Default: ``False``.

Examples:
    Enable strict checks from the shell::

        export PARAMLT_STRICT_SPARSE=1

    Enable them programmatically, then restore the default resolution::

        import paramlt
        paramlt.set_strict_sparse(True)
        paramlt.set_strict_sparse(None)
"""

from __future__ import annotations

import os

_ENV_VAR = "PARAMLT_STRICT_SPARSE"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

# None means "no programmatic override has been set".
_strict_override: bool | None = None


def get_strict_sparse() -> bool:
    """Return whether strict sparse block checks are enabled.

    Returns:
        ``True`` if the left sparse scaling should verify row runs.
    """
    if _strict_override is not None:
        return _strict_override

    env = os.environ.get(_ENV_VAR, "").strip().lower()
    if env in _TRUE:
        return True
    if env in _FALSE:
        return False

    return False


def set_strict_sparse(value: bool | None) -> None:
    """Override the strict sparse setting.

    Args:
        value: ``True`` or ``False`` to force the setting, ``None`` to
            restore the default resolution order.

    Raises:
        ValueError: If *value* is not a bool or ``None``.
    """
    global _strict_override
    if value is not None and not isinstance(value, bool):
        raise ValueError(
            f"strict sparse setting must be True, False or None, got {value!r}"
        )
    _strict_override = value
