"""Content-based recommender.

Scores every catalog product directly against a user's preferences. Each
score is absolute (at most 1.0), not normalized across the catalog.
"""

import logging
from typing import Iterable, List

from signalrec.models import Product, Recommendation, UserProfile
from signalrec.recommender.utils import ProductLike, coerce_catalog, rank_scores

# Configure module logger
logger = logging.getLogger(__name__)

CONTENT_BASED_ALGORITHM = "content_based"
CONTENT_BASED_REASON = "based on your preferences"
CONTENT_BASED_CONFIDENCE = 0.7

CATEGORY_BONUS = 0.3
BRAND_BONUS = 0.2
PRICE_RANGE_BONUS = 0.2
POPULARITY_WEIGHT = 0.15
RATING_WEIGHT = 0.15
MAX_RATING = 5.0


def content_score(profile: UserProfile, product: Product) -> float:
    """Preference match of a single product, in [0, 1].

    Example:
        A product in an interacted category, of a preferred brand, inside
        the price range, with popularity 0.9 and rating 4.5 scores
        0.3 + 0.2 + 0.2 + 0.135 + 0.135 = 0.97.
    """
    score = 0.0

    if product.category in profile.behavior.categories:
        score += CATEGORY_BONUS

    if product.brand in profile.preferences.brands:
        score += BRAND_BONUS

    if profile.preferences.price_range.contains(product.price):
        score += PRICE_RANGE_BONUS

    score += product.popularity * POPULARITY_WEIGHT
    score += (product.rating / MAX_RATING) * RATING_WEIGHT

    return min(score, 1.0)


class ContentBasedRecommender:
    """Ranks the catalog by preference match."""

    def recommend(
        self,
        profile: UserProfile,
        catalog: Iterable[ProductLike],
        k: int = 10,
    ) -> List[Recommendation]:
        """Get the k products that best match the user's preferences."""
        if k <= 0:
            return []

        products = coerce_catalog(catalog)
        scores = {product.id: content_score(profile, product) for product in products}
        ranked = rank_scores(scores, k)

        logger.debug(
            f"Content-based scored {len(scores)} products for user {profile.user_id}"
        )

        return [
            Recommendation(
                product_id=product_id,
                score=score,
                reason=CONTENT_BASED_REASON,
                confidence=CONTENT_BASED_CONFIDENCE,
                algorithm=CONTENT_BASED_ALGORITHM,
                sources=(CONTENT_BASED_ALGORITHM,),
            )
            for product_id, score in ranked
        ]
