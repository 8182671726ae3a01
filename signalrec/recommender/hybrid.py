"""Hybrid recommendation module.

Combines user-based and item-based collaborative filtering, content-based
filtering and the learned scorer into one ranked list, with an optional
context-aware pass on top.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from signalrec.config import EngineConfig, resolve_config
from signalrec.models import Context, Recommendation, UserProfile
from signalrec.recommender.collaborative import (
    ITEM_BASED_ALGORITHM,
    USER_BASED_ALGORITHM,
    ItemBasedRecommender,
    UserBasedRecommender,
)
from signalrec.recommender.content import CONTENT_BASED_ALGORITHM, ContentBasedRecommender
from signalrec.recommender.context import ContextAwareAdjuster
from signalrec.recommender.learned import (
    LEARNED_ALGORITHM,
    LearnedRecommender,
    LinearScorer,
    load_scorer_weights,
)
from signalrec.recommender.utils import (
    ProductLike,
    ProfileLike,
    coerce_catalog,
    ensure_valid_profile,
    rank_scores,
)

# Configure module logger
logger = logging.getLogger(__name__)

HYBRID_ALGORITHM = "hybrid"
DEFAULT_TOP_N = 10


class HybridEnsemble:
    """Merges the output of every scorer with fixed algorithm weights.

    Each scorer runs independently. A scorer that raises or finds nothing
    contributes nothing to the round; it never aborts the recommendation.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        user_based: Optional[UserBasedRecommender] = None,
        item_based: Optional[ItemBasedRecommender] = None,
        content_based: Optional[ContentBasedRecommender] = None,
        learned: Optional[LearnedRecommender] = None,
        context_adjuster: Optional[ContextAwareAdjuster] = None,
    ):
        """Initialize the ensemble.

        Scorers default to instances built from ``config``; pass your own to
        swap one out, e.g. a LearnedRecommender with trained weights.
        """
        self.config = resolve_config(config)
        self.user_based = user_based or UserBasedRecommender(self.config)
        self.item_based = item_based or ItemBasedRecommender(self.config)
        self.content_based = content_based or ContentBasedRecommender()
        self.learned = learned or LearnedRecommender()
        self.context_adjuster = context_adjuster or ContextAwareAdjuster(self.config)

        weights = self.config.weights
        self.algorithm_weights: Dict[str, float] = {
            USER_BASED_ALGORITHM: weights.user_based,
            ITEM_BASED_ALGORITHM: weights.item_based,
            CONTENT_BASED_ALGORITHM: weights.content_based,
            LEARNED_ALGORITHM: weights.learned,
        }

        logger.info(
            "Initialized HybridEnsemble: "
            + ", ".join(f"{name}={w:.2f}" for name, w in self.algorithm_weights.items())
        )

    def _run_scorer(
        self,
        algorithm: str,
        scorer: Callable[[], List[Recommendation]],
        user_id: str,
        failed: List[str],
    ) -> List[Recommendation]:
        """Run one scorer, turning any failure into an empty result."""
        start_time = time.time()
        try:
            recommendations = scorer()
        except Exception as e:
            logger.error(
                "Scorer failed, continuing without it",
                extra={
                    "user_id": user_id,
                    "algorithm": algorithm,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            failed.append(algorithm)
            return []

        logger.debug(
            "Scorer completed",
            extra={
                "user_id": user_id,
                "algorithm": algorithm,
                "num_recommendations": len(recommendations),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return recommendations

    def recommend(
        self,
        user_id: str,
        profile: UserProfile,
        all_profiles: Optional[Mapping[str, ProfileLike]],
        catalog: Iterable[ProductLike],
        k: int = DEFAULT_TOP_N,
        context: Optional[Context] = None,
        return_scores: bool = False,
    ) -> Union[List[Recommendation], Tuple[List[Recommendation], Dict[str, Any]]]:
        """Get hybrid recommendations for a user.

        Args:
            user_id: Target user.
            profile: Target user's profile.
            all_profiles: Every known profile, used by the user-based filter.
            catalog: Products eligible for recommendation.
            k: Maximum number of recommendations; ``k <= 0`` yields [].
            context: Optional request context for the context-aware pass.
            return_scores: Also return a per-algorithm score breakdown.

        Returns:
            Ranked recommendations, or a (recommendations, breakdown) tuple
            when ``return_scores`` is True.

        Raises:
            InvalidProfileError: If ``profile`` is structurally invalid.
        """
        start_time = time.time()
        ensure_valid_profile(profile)

        logger.info(f"Generating hybrid recommendations for user {user_id}, top_n={k}")

        products = coerce_catalog(catalog)
        if k <= 0 or not products:
            if not products:
                logger.warning(f"Empty catalog, no recommendations for user {user_id}")
            return ([], self._empty_breakdown()) if return_scores else []

        candidates = k * self.config.candidate_multiplier
        profiles = all_profiles or {}
        failed: List[str] = []

        scorer_calls: List[Tuple[str, Callable[[], List[Recommendation]]]] = [
            (
                USER_BASED_ALGORITHM,
                lambda: self.user_based.recommend(
                    user_id, profiles, products, candidates, profile=profile
                ),
            ),
            (
                ITEM_BASED_ALGORITHM,
                lambda: self.item_based.recommend(user_id, profile, products, candidates),
            ),
            (
                CONTENT_BASED_ALGORITHM,
                lambda: self.content_based.recommend(profile, products, candidates),
            ),
            (
                LEARNED_ALGORITHM,
                lambda: self.learned.recommend(profile, products, candidates),
            ),
        ]

        # Per product: weighted score, distinct reasons, contributing algorithms
        combined: Dict[str, Dict[str, Any]] = {}
        per_algorithm: Dict[str, Dict[str, float]] = {}

        for algorithm, scorer in scorer_calls:
            recommendations = self._run_scorer(algorithm, scorer, user_id, failed)
            weight = self.algorithm_weights[algorithm]
            per_algorithm[algorithm] = {rec.product_id: rec.score for rec in recommendations}

            for rec in recommendations:
                entry = combined.setdefault(
                    rec.product_id, {"score": 0.0, "reasons": [], "sources": []}
                )
                entry["score"] += rec.score * weight
                if rec.reason not in entry["reasons"]:
                    entry["reasons"].append(rec.reason)
                if algorithm not in entry["sources"]:
                    entry["sources"].append(algorithm)

        position = {product.id: idx for idx, product in enumerate(products)}
        merged = [
            Recommendation(
                product_id=product_id,
                score=combined[product_id]["score"],
                reason=self.config.reason_separator.join(combined[product_id]["reasons"]),
                confidence=self.config.ensemble_confidence,
                algorithm=HYBRID_ALGORITHM,
                sources=tuple(combined[product_id]["sources"]),
            )
            for product_id, _ in rank_scores(
                {pid: entry["score"] for pid, entry in combined.items()},
                len(combined),
                order=position,
            )
        ]

        if context is not None:
            merged = self.context_adjuster.adjust(merged, products, context)

        recommendations = merged[:k]

        logger.info(
            "Hybrid recommendations generated",
            extra={
                "user_id": user_id,
                "num_recommendations": len(recommendations),
                "failed_algorithms": failed,
                "context": context.label() if context is not None else None,
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )

        if return_scores:
            breakdown = {
                "algorithm_scores": {
                    algorithm: {
                        rec.product_id: scores.get(rec.product_id, 0.0)
                        for rec in recommendations
                    }
                    for algorithm, scores in per_algorithm.items()
                },
                "hybrid_scores": {rec.product_id: rec.score for rec in recommendations},
                "weights": dict(self.algorithm_weights),
                "failed_algorithms": failed,
                "context_applied": context is not None,
            }
            return recommendations, breakdown

        return recommendations

    def _empty_breakdown(self) -> Dict[str, Any]:
        return {
            "algorithm_scores": {},
            "hybrid_scores": {},
            "weights": dict(self.algorithm_weights),
            "failed_algorithms": [],
            "context_applied": False,
        }


def create_hybrid_ensemble(
    config: Optional[EngineConfig] = None,
    weights_path: Optional[str] = None,
) -> HybridEnsemble:
    """Create a hybrid recommender, loading learned-scorer weights if given.

    Falls back to the default weight vector when ``weights_path`` is not set.
    """
    scorer = LinearScorer()
    if weights_path is not None:
        scorer = load_scorer_weights(weights_path)
    else:
        logger.debug("No scorer weights path given, using default weights")

    return HybridEnsemble(config=config, learned=LearnedRecommender(scorer))
