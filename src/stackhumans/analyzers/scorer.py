"""Contributor importance scoring."""

import math


def score(contributions: int, downloads: int) -> float:
    """Weight a contribution count by package popularity.

    ``contributions * log10(downloads + 1)``. The log keeps a contributor to
    a package with a billion downloads from drowning out everyone else, while
    still ranking them above an equally prolific contributor to an unused one.
    Negative inputs are treated as 0.
    """
    contributions = max(contributions, 0)
    downloads = max(downloads, 0)
    return contributions * math.log10(downloads + 1)
