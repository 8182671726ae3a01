"""Collaborative filtering recommenders.

User-based filtering scores products bought by behaviorally similar
customers; item-based filtering scores products that resemble what the user
already bought. Neither ever recommends a product the user has purchased.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from signalrec.config import EngineConfig, resolve_config
from signalrec.models import Product, Recommendation, UserProfile
from signalrec.recommender.similarity import product_similarity, set_similarity
from signalrec.recommender.utils import (
    CatalogIndex,
    ProductLike,
    ProfileLike,
    coerce_catalog,
    coerce_profiles,
    rank_scores,
)

# Configure module logger
logger = logging.getLogger(__name__)

USER_BASED_ALGORITHM = "collaborative_filtering_user"
ITEM_BASED_ALGORITHM = "collaborative_filtering_item"

USER_BASED_REASON = "similar customers also purchased"
ITEM_BASED_REASON = "based on products you purchased"

USER_BASED_CONFIDENCE = 0.75
ITEM_BASED_CONFIDENCE = 0.8


class UserBasedRecommender:
    """Recommends what the most similar customers bought."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = resolve_config(config)

    def find_similar_users(
        self,
        target: UserProfile,
        profiles: Mapping[str, UserProfile],
    ) -> List[Tuple[str, float]]:
        """Top neighbors of ``target`` by purchase-set Jaccard similarity.

        Users with zero overlap are not neighbors. Ties keep the iteration
        order of ``profiles``.
        """
        similarities = []
        for user_id, profile in profiles.items():
            if user_id == target.user_id:
                continue
            similarity = set_similarity(target.purchased, profile.purchased)
            if similarity > 0:
                similarities.append((user_id, similarity))

        similarities.sort(key=lambda item: item[1], reverse=True)
        return similarities[: self.config.neighbor_count]

    def recommend(
        self,
        user_id: str,
        all_profiles: Mapping[str, ProfileLike],
        catalog: Iterable[ProductLike],
        k: int = 10,
        profile: Optional[UserProfile] = None,
    ) -> List[Recommendation]:
        """Get user-based collaborative recommendations.

        Args:
            user_id: Target user.
            all_profiles: Every known user profile keyed by user id.
            catalog: Products eligible for recommendation.
            k: Maximum number of recommendations.
            profile: Target profile, looked up in ``all_profiles`` when omitted.

        Returns:
            Up to k recommendations, best first. Empty for unknown users,
            users without purchases, or users without any neighbor.
        """
        if k <= 0:
            return []

        profiles = coerce_profiles(all_profiles)
        target = profile if profile is not None else profiles.get(user_id)
        if target is None:
            logger.debug(f"User {user_id} not found, no user-based recommendations")
            return []

        if not target.purchased:
            return []

        neighbors = self.find_similar_users(target, profiles)
        if not neighbors:
            logger.debug(f"No similar users found for user {user_id}")
            return []

        index = CatalogIndex(coerce_catalog(catalog))

        accumulated: Dict[str, float] = {}
        for neighbor_id, similarity in neighbors:
            for product_id in sorted(profiles[neighbor_id].purchased):
                if product_id in target.purchased or product_id not in index:
                    continue
                accumulated[product_id] = accumulated.get(product_id, 0.0) + similarity

        neighbor_count = len(neighbors)
        scores = {pid: total / neighbor_count for pid, total in accumulated.items()}
        ranked = rank_scores(scores, k, order=index.position)

        logger.debug(
            "User-based recommendations computed",
            extra={
                "user_id": user_id,
                "num_neighbors": neighbor_count,
                "num_candidates": len(scores),
                "num_recommendations": len(ranked),
            },
        )

        return [
            Recommendation(
                product_id=product_id,
                score=score,
                reason=USER_BASED_REASON,
                confidence=USER_BASED_CONFIDENCE,
                algorithm=USER_BASED_ALGORITHM,
                sources=(USER_BASED_ALGORITHM,),
            )
            for product_id, score in ranked
        ]


def find_similar_products(
    product: Product,
    index: CatalogIndex,
    top_n: int = 10,
    exclude_ids: Iterable[str] = (),
) -> List[Tuple[str, float]]:
    """Find the catalog products most similar to ``product``.

    The product itself, excluded ids, and zero-similarity products are left
    out. Ties keep catalog order.

    Args:
        product: Reference product.
        index: Index over the catalog to search.
        top_n: Maximum number of similar products to return.
        exclude_ids: Product ids that must not be returned.

    Returns:
        List of (product_id, similarity) tuples, most similar first.
    """
    excluded = set(exclude_ids)
    excluded.add(product.id)

    similarities = []
    for position in index.candidate_positions(product):
        candidate = index.products[position]
        if candidate.id in excluded:
            continue
        similarity = product_similarity(product, candidate)
        if similarity > 0:
            similarities.append((candidate.id, similarity))

    similarities.sort(key=lambda item: item[1], reverse=True)
    return similarities[:top_n]


class ItemBasedRecommender:
    """Recommends products similar to the ones a user purchased."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = resolve_config(config)

    def recommend(
        self,
        user_id: str,
        profile: UserProfile,
        catalog: Iterable[ProductLike],
        k: int = 10,
    ) -> List[Recommendation]:
        """Get item-based collaborative recommendations.

        Similarities are accumulated per candidate over every purchased
        product and divided by the number of purchases.
        """
        if k <= 0:
            return []

        purchased = profile.purchased
        if not purchased:
            return []

        index = CatalogIndex(coerce_catalog(catalog))

        accumulated: Dict[str, float] = {}
        for purchased_id in sorted(purchased):
            product = index.get(purchased_id)
            if product is None:
                logger.debug(f"Purchased product {purchased_id} not in catalog")
                continue
            similar = find_similar_products(
                product,
                index,
                top_n=self.config.similar_items_per_purchase,
                exclude_ids=purchased,
            )
            for similar_id, similarity in similar:
                accumulated[similar_id] = accumulated.get(similar_id, 0.0) + similarity

        scores = {pid: total / len(purchased) for pid, total in accumulated.items()}
        ranked = rank_scores(scores, k, order=index.position)

        logger.debug(
            "Item-based recommendations computed",
            extra={
                "user_id": user_id,
                "num_purchases": len(purchased),
                "num_candidates": len(scores),
                "num_recommendations": len(ranked),
            },
        )

        return [
            Recommendation(
                product_id=product_id,
                score=score,
                reason=ITEM_BASED_REASON,
                confidence=ITEM_BASED_CONFIDENCE,
                algorithm=ITEM_BASED_ALGORITHM,
                sources=(ITEM_BASED_ALGORITHM,),
            )
            for product_id, score in ranked
        ]
