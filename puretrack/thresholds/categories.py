"""Digest category derivation.

A category buckets related alerts so that, for example, every "pH high"
alert a recipient gets on one day lands in a single digest. It is
derived from the parameter and which side of the warning band the value
sits on.
"""

from puretrack.thresholds.config import ThresholdConfig

MULTI_PARAM = "multi_param"

VALID_CATEGORIES: frozenset[str] = frozenset({
    "ph_high",
    "ph_low",
    "tds_high",
    "tds_low",
    "turbidity_high",
    "turbidity_low",
    MULTI_PARAM,
})

CATEGORY_LABELS: dict[str, str] = {
    "ph_high": "pH High",
    "ph_low": "pH Low",
    "tds_high": "TDS High",
    "tds_low": "TDS Low",
    "turbidity_high": "Turbidity High",
    "turbidity_low": "Turbidity Low",
    MULTI_PARAM: "Multiple Parameters",
}


def categorize_alert(parameter: str, value: float, thresholds: ThresholdConfig) -> str:
    """Map a parameter value to its digest category.

    Values above ``warningMax`` are ``{parameter}_high``, values below
    ``warningMin`` are ``{parameter}_low``. Anything inside the warning
    band (typically trend alerts) falls back to ``multi_param``.

    Args:
        parameter: Water parameter of the alert.
        value: The alert's measured value.
        thresholds: Active threshold configuration.

    Returns:
        Category key.
    """
    try:
        bounds = thresholds.for_parameter(parameter)
    except KeyError:
        return MULTI_PARAM

    if bounds.warning_max is not None and value > bounds.warning_max:
        return f"{parameter}_high"
    if bounds.warning_min is not None and value < bounds.warning_min:
        return f"{parameter}_low"
    return MULTI_PARAM
