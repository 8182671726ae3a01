"""Context-aware recommendations.

Scores products against the situation a request is made in (time of day,
device, season, holidays). Used either directly over the catalog or as a
second pass that re-weights ensemble output.
"""

import logging
from typing import Dict, Iterable, List, Optional

from signalrec.config import EngineConfig, resolve_config
from signalrec.models import Context, Device, Product, Recommendation, Season
from signalrec.recommender.utils import ProductLike, coerce_catalog, rank_scores

# Configure module logger
logger = logging.getLogger(__name__)

CONTEXT_ALGORITHM = "context_aware"
CONTEXT_CONFIDENCE = 0.75

HOLIDAY_REASON = "perfect for gifting"
NIGHT_REASON = "ideal for relaxing at night"
SUMMER_REASON = "perfect for summer"
WINTER_REASON = "ideal for winter"
DEFAULT_REASON = "recommended for you now"


class ContextAwareAdjuster:
    """Applies situational bonuses on top of a neutral base score."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = resolve_config(config)
        self.rules = self.config.context_rules

    def context_score(self, product: Product, context: Context) -> float:
        """Situational score of a product, in [0, 1]."""
        rules = self.rules
        score = rules.base_score

        if context.is_night and product.category in rules.relaxation_categories:
            score += rules.night_bonus

        if context.device == Device.MOBILE and product.price < rules.mobile_price_threshold:
            score += rules.mobile_bonus

        if context.season == Season.SUMMER:
            if product.category in rules.refreshing_categories:
                score += rules.season_bonus
        elif context.season == Season.WINTER:
            if product.category in rules.warming_categories:
                score += rules.season_bonus

        if context.is_holiday and product.is_gift_appropriate:
            score += rules.holiday_bonus

        return min(score, 1.0)

    def context_reason(self, context: Context) -> str:
        """Single explanation for a context; holiday outranks night, then season."""
        if context.is_holiday:
            return HOLIDAY_REASON
        if context.is_night:
            return NIGHT_REASON
        if context.season == Season.SUMMER:
            return SUMMER_REASON
        if context.season == Season.WINTER:
            return WINTER_REASON
        return DEFAULT_REASON

    def recommend(
        self,
        catalog: Iterable[ProductLike],
        context: Context,
        k: int = 10,
    ) -> List[Recommendation]:
        """Rank the catalog by context score alone."""
        if k <= 0:
            return []

        products = coerce_catalog(catalog)
        scores = {product.id: self.context_score(product, context) for product in products}
        ranked = rank_scores(scores, k)
        reason = self.context_reason(context)

        return [
            Recommendation(
                product_id=product_id,
                score=score,
                reason=reason,
                confidence=CONTEXT_CONFIDENCE,
                algorithm=CONTEXT_ALGORITHM,
                sources=(CONTEXT_ALGORITHM,),
            )
            for product_id, score in ranked
        ]

    def adjust(
        self,
        recommendations: List[Recommendation],
        catalog: Iterable[ProductLike],
        context: Context,
        k: Optional[int] = None,
        separator: Optional[str] = None,
    ) -> List[Recommendation]:
        """Re-weight existing recommendations by context.

        Each score is multiplied by the product's context score, so results
        stay in [0, 1]. Products that earned a context bonus get the
        context reason appended to their explanation. Recommendations whose
        product is not in the catalog keep the neutral base weight.

        Args:
            recommendations: Ranked output of another scorer or the ensemble.
            catalog: Catalog the recommendations were drawn from.
            context: Request context.
            k: Optional cut-off applied after re-ranking.
            separator: Reason separator, defaults to the configured one.

        Returns:
            Re-ranked recommendations; ties keep their incoming order.
        """
        if k is not None and k <= 0:
            return []
        if not recommendations:
            return []

        separator = separator if separator is not None else self.config.reason_separator
        products: Dict[str, Product] = {p.id: p for p in coerce_catalog(catalog)}
        reason = self.context_reason(context)

        adjusted = []
        for rec in recommendations:
            product = products.get(rec.product_id)
            if product is None:
                weight = self.rules.base_score
            else:
                weight = self.context_score(product, context)

            update = {"score": rec.score * weight}
            if weight > self.rules.base_score:
                update["reason"] = f"{rec.reason}{separator}{reason}"
                if CONTEXT_ALGORITHM not in rec.sources:
                    update["sources"] = rec.sources + (CONTEXT_ALGORITHM,)
            adjusted.append(rec.model_copy(update=update))

        adjusted.sort(key=lambda rec: rec.score, reverse=True)
        if k is not None:
            adjusted = adjusted[:k]

        logger.debug(
            "Applied context adjustment",
            extra={"context": context.label(), "num_recommendations": len(adjusted)},
        )
        return adjusted
