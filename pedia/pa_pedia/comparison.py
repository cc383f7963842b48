"""
PA Pedia - Value Comparison
============================
Signed deltas and better/worse judgements for a stat shown next to the
same stat of another unit or group.
"""

from numbers import Real
from typing import Optional, Union

from pa_pedia.models import ComparisonValue, Directionality, Judgement

Value = Union[float, int, str, None]


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def format_comparison(
    value: Value,
    compare_value: Value = None,
    policy: Union[Directionality, str] = Directionality.NEUTRAL,
) -> ComparisonValue:
    """
    Compare value against compare_value.

    No diff when compare_value is missing, equal, or either side is not a
    number. For NEUTRAL the diff is reported without a judgement.
    """
    policy = Directionality(policy)
    result = ComparisonValue(value=value)

    if compare_value is None or not _is_number(value) or not _is_number(compare_value):
        return result

    diff = value - compare_value
    if diff == 0:
        return result

    result.diff = diff
    if policy is Directionality.NEUTRAL:
        return result

    better = diff > 0 if policy is Directionality.HIGHER_BETTER else diff < 0
    result.judgement = Judgement.IMPROVED if better else Judgement.REGRESSED
    return result


def format_diff(diff: float, suffix: str = "") -> str:
    """'+50', '-2.5s'. Near-whole numbers print without decimals."""
    is_whole = abs(diff - round(diff)) < 0.0001
    magnitude = f"{abs(diff):.0f}" if is_whole else f"{abs(diff):.1f}"
    sign = "+" if diff > 0 else "-"
    return f"{sign}{magnitude}{suffix}"


def is_different(a, b) -> bool:
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    return a != b
