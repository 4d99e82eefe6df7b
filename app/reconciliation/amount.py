"""
Amount comparison between the stored order and what the gateway observed.
"""

DEFAULT_TOLERANCE = 0.01


def amount_matches(expected: float, observed: float | None, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """True when observed is unknown or within tolerance of expected."""
    if observed is None:
        return True
    return abs(float(observed) - float(expected)) <= tolerance
