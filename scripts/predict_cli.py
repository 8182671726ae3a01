"""CLI script for getting product recommendations.

Useful for testing and evaluation. Loads a catalog CSV and a profiles JSON,
gets recommendations for a user and prints them to the console.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from signalrec.config import EngineConfig, default_log_level, load_config, resolve_config
from signalrec.exceptions import SignalRecError
from signalrec.logging_config import setup_logging
from signalrec.models import Context, Recommendation
from signalrec.recommender.collaborative import ItemBasedRecommender, UserBasedRecommender
from signalrec.recommender.content import ContentBasedRecommender
from signalrec.recommender.context import ContextAwareAdjuster
from signalrec.recommender.hybrid import create_hybrid_ensemble
from signalrec.recommender.learned import LearnedRecommender, LinearScorer, load_scorer_weights
from signalrec.recommender.utils import load_catalog_csv, load_profiles_json

# Setup logging
logging.basicConfig(
    level=default_log_level(),
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)

Mode = Literal["hybrid", "user", "item", "content", "learned", "context"]
MODES = ["hybrid", "user", "item", "content", "learned", "context"]


def build_context(
    device: Optional[str] = None,
    season: Optional[str] = None,
    holiday: bool = False,
    hour: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Context:
    """Build a request context from CLI options; unset fields use ``now``."""
    now = now or datetime.now()
    if hour is not None:
        now = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    data: Dict[str, Any] = {"time": now, "is_holiday": holiday}
    if device is not None:
        data["device"] = device
    if season is not None:
        data["season"] = season
    return Context(**data)


def get_recommendations(
    user_id: str,
    catalog_path: str,
    profiles_path: str,
    top_n: int = 10,
    mode: Mode = "hybrid",
    context: Optional[Context] = None,
    weights_path: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    explain: bool = False,
) -> tuple[List[Recommendation], Optional[Dict]]:
    """Get recommendations for a user.

    Args:
        user_id: User ID to get recommendations for
        catalog_path: Catalog CSV file
        profiles_path: Profiles JSON file
        top_n: Number of recommendations to return
        mode: Scorer to use, or "hybrid" for the full ensemble
        context: Optional request context
        weights_path: Optional learned-scorer weights file or directory
        config: Optional engine configuration
        explain: If True, also return score breakdown (hybrid mode only)

    Returns:
        Tuple of (recommendations list, optional scores dict)

    Raises:
        FileNotFoundError: If an input file does not exist.
        SignalRecError: If the user's profile or the weights file is invalid.
    """
    config = resolve_config(config)
    catalog = load_catalog_csv(catalog_path)
    profiles = load_profiles_json(profiles_path)

    profile = profiles.get(user_id)
    if profile is None and mode not in ("context", "user"):
        logger.warning(f"User {user_id} not found in {profiles_path}")
        return [], {"method": "unknown_user"} if explain else None

    if mode == "hybrid":
        ensemble = create_hybrid_ensemble(config=config, weights_path=weights_path)
        if explain:
            return ensemble.recommend(
                user_id, profile, profiles, catalog, k=top_n, context=context, return_scores=True
            )
        return ensemble.recommend(user_id, profile, profiles, catalog, k=top_n, context=context), None

    if mode == "user":
        recommendations = UserBasedRecommender(config).recommend(user_id, profiles, catalog, top_n)
    elif mode == "item":
        recommendations = ItemBasedRecommender(config).recommend(user_id, profile, catalog, top_n)
    elif mode == "content":
        recommendations = ContentBasedRecommender().recommend(profile, catalog, top_n)
    elif mode == "learned":
        scorer = load_scorer_weights(weights_path) if weights_path else LinearScorer()
        recommendations = LearnedRecommender(scorer).recommend(profile, catalog, top_n)
    else:
        recommendations = ContextAwareAdjuster(config).recommend(
            catalog, context or build_context(), top_n
        )

    if context is not None and mode != "context":
        recommendations = ContextAwareAdjuster(config).adjust(recommendations, catalog, context, k=top_n)

    scores = {"method": mode} if explain else None
    return recommendations, scores


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/predict_cli.py u1
  python scripts/predict_cli.py u1 --top-n 5
  python scripts/predict_cli.py u1 --mode content
  python scripts/predict_cli.py u1 --device mobile --hour 22 --explain
        """
    )

    parser.add_argument("user_id", type=str, help="User ID to get recommendations for")

    parser.add_argument(
        "--catalog",
        type=str,
        default="data/catalog.csv",
        help="Catalog CSV file (default: data/catalog.csv)"
    )

    parser.add_argument(
        "--profiles",
        type=str,
        default="data/profiles.json",
        help="User profiles JSON file (default: data/profiles.json)"
    )

    parser.add_argument(
        "--top-n",
        type=int,
        default=10,
        help="Number of recommendations to return (default: 10)"
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=MODES,
        default="hybrid",
        help="Recommendation mode (default: hybrid)"
    )

    parser.add_argument("--device", choices=["mobile", "desktop", "tablet"], help="Request device")
    parser.add_argument("--season", choices=["spring", "summer", "fall", "winter"], help="Season override")
    parser.add_argument("--holiday", action="store_true", help="Treat the request as made on a holiday")
    parser.add_argument("--hour", type=int, choices=range(24), metavar="0-23", help="Hour of the request")

    parser.add_argument(
        "--weights",
        type=str,
        default=None,
        help="Learned-scorer weights file or directory (default: built-in weights)"
    )

    parser.add_argument("--config", type=str, default=None, help="Engine config JSON file")

    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show score breakdown for recommendations"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")

    args = parser.parse_args(argv)

    if args.json_logs:
        setup_logging("DEBUG" if args.verbose else default_log_level(), json_format=True)
    elif args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    context = None
    if args.device or args.season or args.holiday or args.hour is not None:
        context = build_context(args.device, args.season, args.holiday, args.hour)

    try:
        config = load_config(args.config) if args.config else None
        recommendations, scores = get_recommendations(
            user_id=args.user_id,
            catalog_path=args.catalog,
            profiles_path=args.profiles,
            top_n=args.top_n,
            mode=args.mode,
            context=context,
            weights_path=args.weights,
            config=config,
            explain=args.explain,
        )
    except FileNotFoundError as e:
        print(f"Error: input file not found", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        sys.exit(1)
    except (SignalRecError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Print results
    print(f"\nRecommendations for user {args.user_id} (mode: {args.mode}):")
    if context is not None:
        print(f"  Context: {context.label()}, season={context.season.value}, holiday={context.is_holiday}")
    for rank, rec in enumerate(recommendations, start=1):
        print(f"  {rank:>2}. {rec.product_id:<10} score={rec.score:.4f}  {rec.reason}")

    if args.explain and scores:
        print(f"\nScore breakdown:")
        if "method" in scores:
            print(f"  Method: {scores['method']}")
        for algorithm, algorithm_scores in scores.get("algorithm_scores", {}).items():
            print(f"  {algorithm}: {algorithm_scores}")
        if scores.get("failed_algorithms"):
            print(f"  Failed algorithms: {scores['failed_algorithms']}")
        if "weights" in scores:
            print(f"  Weights: {scores['weights']}")

    print()


if __name__ == "__main__":
    main()
