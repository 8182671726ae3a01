"""Utility functions for the recommendation engine.

This module provides helpers shared by every scorer: reading and validating
catalog entries and user profiles, indexing the catalog, ranking score maps,
and loading catalog/profile data from disk.
"""

import bisect
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import pandas as pd
from pydantic import ValidationError

from signalrec.exceptions import InvalidProductError, InvalidProfileError
from signalrec.models import Product, UserProfile
from signalrec.recommender.similarity import PRICE_TOLERANCE

# Configure module logger
logger = logging.getLogger(__name__)

ProductLike = Union[Product, Mapping[str, Any]]
ProfileLike = Union[UserProfile, Mapping[str, Any]]

# Catalog CSV columns
REQUIRED_CATALOG_COLUMNS = {"id", "category", "price", "popularity", "rating"}
OPTIONAL_CATALOG_COLUMNS = {
    "name": "",
    "subcategory": "",
    "brand": "",
    "attributes": "{}",
    "review_count": 0,
}


def parse_product(data: ProductLike) -> Product:
    """Read a catalog entry as a Product.

    Raises:
        InvalidProductError: If required fields are missing or out of range.
    """
    if isinstance(data, Product):
        return data
    try:
        return Product.model_validate(data)
    except ValidationError as e:
        product_id = data.get("id") if isinstance(data, Mapping) else None
        raise InvalidProductError(product_id, e.errors(include_url=False)) from e


def parse_profile(data: ProfileLike) -> UserProfile:
    """Read a user profile, failing fast on structurally invalid input.

    Raises:
        InvalidProfileError: If the profile is malformed, e.g. its price
            range minimum exceeds the maximum.
    """
    if isinstance(data, UserProfile):
        return ensure_valid_profile(data)
    try:
        return UserProfile.model_validate(data)
    except ValidationError as e:
        user_id = data.get("user_id") if isinstance(data, Mapping) else None
        raise InvalidProfileError(user_id, e.errors(include_url=False)) from e


def ensure_valid_profile(profile: UserProfile) -> UserProfile:
    """Check invariants that model_construct() could have bypassed."""
    price_range = profile.preferences.price_range
    if price_range.min > price_range.max:
        raise InvalidProfileError(
            profile.user_id,
            [f"price range min ({price_range.min}) exceeds max ({price_range.max})"],
        )
    return profile


def coerce_catalog(catalog: Optional[Iterable[ProductLike]]) -> List[Product]:
    """Return the valid products of a catalog in catalog order.

    Entries that fail validation are logged and skipped, and only the first
    occurrence of a duplicated product id is kept.
    """
    if not catalog:
        return []

    products: List[Product] = []
    seen: Set[str] = set()
    for entry in catalog:
        try:
            product = parse_product(entry)
        except InvalidProductError as e:
            logger.warning(
                "Skipping invalid catalog entry",
                extra={"product_id": e.details.get("product_id"), "error": e.message},
            )
            continue
        if product.id in seen:
            logger.debug(f"Skipping duplicate catalog entry {product.id}")
            continue
        seen.add(product.id)
        products.append(product)
    return products


def coerce_profiles(
    profiles: Optional[Mapping[str, ProfileLike]],
) -> Dict[str, UserProfile]:
    """Return the valid profiles of a user mapping, preserving its order."""
    if not profiles:
        return {}

    result: Dict[str, UserProfile] = {}
    for user_id, entry in profiles.items():
        try:
            result[str(user_id)] = parse_profile(entry)
        except InvalidProfileError as e:
            logger.warning(
                "Skipping invalid user profile",
                extra={"user_id": str(user_id), "error": e.message},
            )
    return result


def rank_scores(
    scores: Mapping[str, float],
    k: int,
    order: Optional[Mapping[str, int]] = None,
) -> List[Tuple[str, float]]:
    """Sort a score map descending and keep the top k entries.

    Ties keep catalog order: when ``order`` maps product ids to catalog
    positions it is used as the secondary key, otherwise the insertion
    order of ``scores`` is kept (the sort is stable).

    Args:
        scores: Product id to score.
        k: Number of entries to keep; ``k <= 0`` yields an empty list.
        order: Optional product id to catalog position.

    Returns:
        List of (product_id, score) tuples, best first.
    """
    if k <= 0 or not scores:
        return []

    items = list(scores.items())
    if order is not None:
        fallback = len(order)
        items.sort(key=lambda item: order.get(item[0], fallback))
    items.sort(key=lambda item: item[1], reverse=True)
    return items[:k]


class CatalogIndex:
    """Lookup structures over a validated catalog.

    Buckets products by category and brand and keeps a price-sorted list,
    so the item-based filter only scores products that can share at least
    one attribute with a given product.
    """

    def __init__(self, products: List[Product]):
        self.products = products
        self.position: Dict[str, int] = {}
        self.by_category: Dict[str, List[int]] = {}
        self.by_brand: Dict[str, List[int]] = {}

        for idx, product in enumerate(products):
            self.position[product.id] = idx
            if product.category:
                self.by_category.setdefault(product.category, []).append(idx)
            if product.brand:
                self.by_brand.setdefault(product.brand, []).append(idx)

        price_order = sorted(range(len(products)), key=lambda i: products[i].price)
        self._sorted_prices = [products[i].price for i in price_order]
        self._price_order = price_order

    def __len__(self) -> int:
        return len(self.products)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self.position

    def get(self, product_id: str) -> Optional[Product]:
        idx = self.position.get(product_id)
        return self.products[idx] if idx is not None else None

    def candidate_positions(self, product: Product) -> List[int]:
        """Catalog positions of products that may be similar to ``product``.

        Anything outside the returned set shares neither category, brand
        nor price band with the product and therefore has zero similarity.
        """
        candidates: Set[int] = set()
        if product.category:
            candidates.update(self.by_category.get(product.category, ()))
        if product.brand:
            candidates.update(self.by_brand.get(product.brand, ()))

        if product.price > 0:
            # Widened bounds; exact tolerance is applied by product_similarity
            low = product.price * (1 - PRICE_TOLERANCE) * 0.999
            high = product.price / (1 - PRICE_TOLERANCE) * 1.001
            start = bisect.bisect_left(self._sorted_prices, low)
            end = bisect.bisect_right(self._sorted_prices, high)
            candidates.update(self._price_order[start:end])

        return sorted(candidates)


def load_catalog_csv(csv_path: str) -> List[Product]:
    """Load a product catalog from CSV.

    Args:
        csv_path: Path to a CSV file with at least the columns id, category,
            price, popularity and rating. The optional ``attributes`` column
            holds a JSON object per row.

    Returns:
        Valid products in file order; invalid rows are skipped with a warning.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If required columns are missing or the file is empty.
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading catalog from {csv_path}")
    df = pd.read_csv(csv_path, dtype={"id": str})

    if not REQUIRED_CATALOG_COLUMNS.issubset(df.columns):
        missing = REQUIRED_CATALOG_COLUMNS - set(df.columns)
        raise ValueError(f"CSV missing required columns: {sorted(missing)}")

    if df.empty:
        raise ValueError("Cannot load catalog from empty CSV")

    for column, default in OPTIONAL_CATALOG_COLUMNS.items():
        if column not in df.columns:
            df[column] = default
        df[column] = df[column].fillna(default)

    records = df.to_dict(orient="records")
    for record in records:
        raw_attributes = record.get("attributes")
        if isinstance(raw_attributes, str):
            try:
                record["attributes"] = json.loads(raw_attributes) if raw_attributes else {}
            except json.JSONDecodeError:
                logger.warning(f"Unreadable attributes for product {record.get('id')}")
                record["attributes"] = {}

    products = coerce_catalog(records)
    logger.info(f"Loaded {len(products)} products ({len(records) - len(products)} skipped)")
    return products


def load_profiles_json(json_path: str) -> Dict[str, UserProfile]:
    """Load user profiles from a JSON list of profile objects.

    Raises:
        FileNotFoundError: If the JSON file does not exist.
        ValueError: If the file does not hold a list.
    """
    json_file = Path(json_path)
    if not json_file.exists():
        raise FileNotFoundError(f"Profiles file not found: {json_path}")

    with json_file.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError("Profiles JSON must contain a list of profile objects")

    keyed = {str(entry.get("user_id")): entry for entry in raw if isinstance(entry, dict)}
    profiles = coerce_profiles(keyed)
    logger.info(f"Loaded {len(profiles)} user profiles from {json_path}")
    return profiles
