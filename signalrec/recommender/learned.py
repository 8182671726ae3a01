"""Learned scorer.

A fixed-weight linear model over a normalized (user, product) feature
vector, standing in for a trained predictor. The feature order, the
normalization divisors and the weight vector form the interface a real
model must match; the weights are plain data and can be saved to and
loaded from disk with joblib.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import joblib
import numpy as np

from signalrec.exceptions import ScorerWeightsError
from signalrec.models import Product, Recommendation, UserProfile
from signalrec.recommender.utils import ProductLike, coerce_catalog, rank_scores

# Configure module logger
logger = logging.getLogger(__name__)

LEARNED_ALGORITHM = "deep_learning"
LEARNED_REASON = "AI-recommended"
LEARNED_CONFIDENCE = 0.9

WEIGHTS_FILENAME = "scorer_weights.joblib"

# Feature order and normalization divisors
FEATURE_NAMES = (
    "avg_order_value",
    "purchase_frequency",
    "email_open_rate",
    "click_through_rate",
    "popularity",
    "rating",
    "price",
)
AVG_ORDER_VALUE_SCALE = 1000.0
PURCHASE_FREQUENCY_SCALE = 10.0
RATING_SCALE = 5.0
PRICE_SCALE = 500.0

DEFAULT_WEIGHTS = (0.15, 0.12, 0.08, 0.08, 0.25, 0.22, 0.10)


def build_feature_vector(profile: UserProfile, product: Product) -> np.ndarray:
    """Normalized features of a (user, product) pair in FEATURE_NAMES order."""
    behavior = profile.behavior
    engagement = profile.engagement
    return np.array(
        [
            behavior.avg_order_value / AVG_ORDER_VALUE_SCALE,
            behavior.purchase_frequency / PURCHASE_FREQUENCY_SCALE,
            engagement.email_open_rate,
            engagement.click_through_rate,
            product.popularity,
            product.rating / RATING_SCALE,
            product.price / PRICE_SCALE,
        ],
        dtype=np.float64,
    )


class LinearScorer:
    """Scores a feature vector with a fixed weight vector, clamped to [0, 1]."""

    def __init__(self, weights: Sequence[float] = DEFAULT_WEIGHTS):
        weights_array = np.array(weights, dtype=np.float64)
        if weights_array.shape != (len(FEATURE_NAMES),):
            raise ScorerWeightsError(
                f"Expected {len(FEATURE_NAMES)} weights "
                f"({', '.join(FEATURE_NAMES)}), got shape {weights_array.shape}"
            )
        if not np.all(np.isfinite(weights_array)):
            raise ScorerWeightsError("Scorer weights must be finite numbers")

        self.weights = weights_array
        self.weights.setflags(write=False)

    def score(self, features: np.ndarray) -> float:
        raw = float(np.dot(features, self.weights))
        return float(np.clip(raw, 0.0, 1.0))

    def score_many(self, feature_matrix: np.ndarray) -> np.ndarray:
        """Score one feature vector per row."""
        if feature_matrix.size == 0:
            return np.zeros(0)
        return np.clip(feature_matrix @ self.weights, 0.0, 1.0)


class LearnedRecommender:
    """Ranks the catalog with a LinearScorer."""

    def __init__(self, scorer: Optional[LinearScorer] = None):
        self.scorer = scorer if scorer is not None else LinearScorer()

    def recommend(
        self,
        profile: UserProfile,
        catalog: Iterable[ProductLike],
        k: int = 10,
    ) -> List[Recommendation]:
        """Get the k products with the highest predicted engagement."""
        if k <= 0:
            return []

        products = coerce_catalog(catalog)
        if not products:
            return []

        feature_matrix = np.vstack(
            [build_feature_vector(profile, product) for product in products]
        )
        predicted = self.scorer.score_many(feature_matrix)
        scores = {
            product.id: float(score) for product, score in zip(products, predicted)
        }
        ranked = rank_scores(scores, k)

        return [
            Recommendation(
                product_id=product_id,
                score=score,
                reason=LEARNED_REASON,
                confidence=LEARNED_CONFIDENCE,
                algorithm=LEARNED_ALGORITHM,
                sources=(LEARNED_ALGORITHM,),
            )
            for product_id, score in ranked
        ]


def save_scorer_weights(
    scorer: LinearScorer,
    output_dir: str,
    filename: str = WEIGHTS_FILENAME,
) -> Path:
    """Save a scorer's weight vector to disk.

    Args:
        scorer: Scorer whose weights to save.
        output_dir: Directory to save the weights to; created if missing.
        filename: Weights filename (default: "scorer_weights.joblib").

    Returns:
        Path of the written file.
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    weights_file = output_path / filename
    joblib.dump(
        {
            "feature_names": list(FEATURE_NAMES),
            "weights": scorer.weights.tolist(),
        },
        weights_file,
    )
    logger.info(f"Saved scorer weights to {weights_file}")
    return weights_file


def load_scorer_weights(weights_path: str) -> LinearScorer:
    """Load a LinearScorer from a weights file or a directory containing one.

    Raises:
        FileNotFoundError: If the weights file does not exist.
        ScorerWeightsError: If the file is unreadable or its feature order
            does not match FEATURE_NAMES.
    """
    path = Path(weights_path)
    if path.is_dir():
        path = path / WEIGHTS_FILENAME
    if not path.exists():
        raise FileNotFoundError(f"Scorer weights not found: {path}")

    try:
        data = joblib.load(path)
    except Exception as e:
        raise ScorerWeightsError(
            f"Failed to load scorer weights from '{path}': {e}", str(path)
        ) from e

    if not isinstance(data, dict) or "weights" not in data:
        raise ScorerWeightsError(f"Malformed scorer weights file: {path}", str(path))

    feature_names = tuple(data.get("feature_names", FEATURE_NAMES))
    if feature_names != FEATURE_NAMES:
        raise ScorerWeightsError(
            f"Feature order mismatch: expected {FEATURE_NAMES}, got {feature_names}",
            str(path),
        )

    logger.info(f"Loaded scorer weights from {path}")
    return LinearScorer(data["weights"])
