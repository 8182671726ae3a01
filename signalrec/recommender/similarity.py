"""Similarity functions shared by the collaborative filters.

Both functions are pure and return values in [0, 1].
"""

from typing import AbstractSet

from signalrec.models import Product

CATEGORY_WEIGHT = 0.4
SUBCATEGORY_WEIGHT = 0.2
BRAND_WEIGHT = 0.2
PRICE_WEIGHT = 0.2

# Prices count as similar below this relative difference
PRICE_TOLERANCE = 0.2


def set_similarity(set_a: AbstractSet[str], set_b: AbstractSet[str]) -> float:
    """Jaccard index of two sets; 0.0 when both are empty.

    Example:
        >>> set_similarity({"p1", "p2", "p3"}, {"p1", "p2", "p4"})
        0.5
    """
    union = len(set_a | set_b)
    if union == 0:
        return 0.0
    return len(set_a & set_b) / union


def relative_price_difference(price_a: float, price_b: float) -> float:
    """Absolute price difference relative to the larger price."""
    reference = max(price_a, price_b)
    if reference <= 0:
        return 0.0
    return abs(price_a - price_b) / reference


def product_similarity(p1: Product, p2: Product) -> float:
    """Attribute similarity of two products.

    Category, subcategory, brand and price each carry a fixed weight. Only
    signals both products have data for are evaluated, and the matched
    weight is divided by the evaluated weight, so products lacking brand
    data are still compared fairly on the remaining attributes. The
    subcategory only matches inside the same category.

    Args:
        p1: First product.
        p2: Second product.

    Returns:
        Similarity in [0, 1]; identical in both argument orders.
    """
    matched = 0.0
    evaluated = 0.0

    same_category = False
    if p1.category and p2.category:
        evaluated += CATEGORY_WEIGHT
        if p1.category == p2.category:
            same_category = True
            matched += CATEGORY_WEIGHT

    if p1.subcategory and p2.subcategory:
        evaluated += SUBCATEGORY_WEIGHT
        if same_category and p1.subcategory == p2.subcategory:
            matched += SUBCATEGORY_WEIGHT

    if p1.brand and p2.brand:
        evaluated += BRAND_WEIGHT
        if p1.brand == p2.brand:
            matched += BRAND_WEIGHT

    if p1.price > 0 or p2.price > 0:
        evaluated += PRICE_WEIGHT
        if relative_price_difference(p1.price, p2.price) < PRICE_TOLERANCE:
            matched += PRICE_WEIGHT

    if evaluated == 0:
        return 0.0
    return matched / evaluated
