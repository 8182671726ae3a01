"""Generate a fake catalog and fake user profiles for testing and development.

Writes a product catalog CSV and a JSON list of user profiles in the formats
read by signalrec.recommender.utils.load_catalog_csv and load_profiles_json.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        df = generate_fake_catalog(num_products=200)
"""

import json
import random
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_MAX_PURCHASES = 8

CATEGORIES = {
    "electronics": ["phones", "audio", "laptops"],
    "fashion": ["shoes", "jackets", "accessories"],
    "home": ["kitchen", "decor", "bedding"],
    "relaxation": ["candles", "tea", "bath"],
    "refreshing": ["juices", "fans", "swimwear"],
    "warming": ["blankets", "heaters", "coats"],
}
BRANDS = ["acme", "globex", "initech", "umbrella", "hooli", "stark"]
COLORS = ["black", "white", "red", "blue", "green"]
MATERIALS = ["cotton", "wool", "leather", "steel", "plastic"]


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate a synthetic product catalog.

    Args:
        num_products: Number of products to generate. Must be positive.
        seed: Optional random seed for reproducible output.

    Returns:
        A pandas DataFrame with the columns id, name, category, subcategory,
        brand, price, popularity, rating, review_count and attributes (a
        JSON-encoded object per row).

    Raises:
        ValueError: If num_products is non-positive.
    """
    if num_products <= 0:
        raise ValueError("num_products must be positive")

    rng = random.Random(seed)
    rows = []
    for i in range(1, num_products + 1):
        category = rng.choice(sorted(CATEGORIES))
        attributes = {
            "color": rng.choice(COLORS),
            "gift_wrapping": rng.random() < 0.3,
        }
        rows.append({
            "id": f"p{i}",
            "name": f"{category.title()} item {i}",
            "category": category,
            "subcategory": rng.choice(CATEGORIES[category]),
            "brand": rng.choice(BRANDS),
            "price": round(rng.uniform(5, 500), 2),
            "popularity": round(rng.random(), 3),
            "rating": round(rng.uniform(1, 5), 1),
            "review_count": rng.randint(0, 2000),
            "attributes": json.dumps(attributes),
        })

    return pd.DataFrame(rows)


def generate_fake_profiles(
    catalog: pd.DataFrame,
    num_users: int = DEFAULT_NUM_USERS,
    max_purchases: int = DEFAULT_MAX_PURCHASES,
    seed: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Generate synthetic user profiles whose purchases come from ``catalog``.

    Raises:
        ValueError: If num_users or max_purchases is non-positive or the
            catalog is empty.
    """
    if num_users <= 0 or max_purchases <= 0:
        raise ValueError("num_users and max_purchases must be positive")
    if catalog.empty:
        raise ValueError("catalog must not be empty")

    rng = random.Random(seed)
    product_ids = catalog["id"].tolist()
    category_of = dict(zip(catalog["id"], catalog["category"]))

    profiles = []
    for i in range(1, num_users + 1):
        purchased = rng.sample(product_ids, rng.randint(0, min(max_purchases, len(product_ids))))
        low = round(rng.uniform(0, 100), 2)
        profiles.append({
            "user_id": f"u{i}",
            "behavior": {
                "viewed_products": sorted(set(purchased) | set(rng.sample(product_ids, 3))),
                "purchased_products": purchased,
                "categories": sorted({category_of[pid] for pid in purchased}),
                "avg_order_value": round(rng.uniform(10, 800), 2),
                "purchase_frequency": round(rng.uniform(0, 10), 2),
            },
            "preferences": {
                "brands": rng.sample(BRANDS, 2),
                "price_range": {"min": low, "max": round(low + rng.uniform(50, 400), 2)},
                "colors": rng.sample(COLORS, 2),
                "materials": rng.sample(MATERIALS, 1),
            },
            "engagement": {
                "email_open_rate": round(rng.random(), 3),
                "click_through_rate": round(rng.random() * 0.3, 3),
                "time_on_site": round(rng.uniform(0, 1800), 1),
                "pages_per_session": round(rng.uniform(1, 15), 1),
            },
        })

    return profiles


def write_fake_data(
    output_dir: str,
    num_users: int = DEFAULT_NUM_USERS,
    num_products: int = DEFAULT_NUM_PRODUCTS,
    seed: Optional[int] = None,
) -> Dict[str, Path]:
    """Generate and write catalog.csv and profiles.json into ``output_dir``.

    Returns:
        Dictionary with the "catalog" and "profiles" output paths.
    """
    data_dir = Path(output_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    catalog = generate_fake_catalog(num_products=num_products, seed=seed)
    profiles = generate_fake_profiles(catalog, num_users=num_users, seed=seed)

    catalog_path = data_dir / "catalog.csv"
    profiles_path = data_dir / "profiles.json"
    catalog.to_csv(catalog_path, index=False)
    with profiles_path.open("w", encoding="utf-8") as f:
        json.dump(profiles, f, indent=2)

    return {"catalog": catalog_path, "profiles": profiles_path}


def main() -> None:
    """Main entry point for the data generation script.

    Generates fake data with default parameters into the data/ directory and
    prints summary statistics upon completion.
    """
    print(f"Generating {DEFAULT_NUM_PRODUCTS} fake products and {DEFAULT_NUM_USERS} fake users...")

    data_dir = Path(__file__).parent.parent / "data"
    try:
        paths = write_fake_data(str(data_dir), seed=42)
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    catalog = pd.read_csv(paths["catalog"])
    print(f"\nData generated successfully!")
    print(f"Catalog saved to: {paths['catalog']}")
    print(f"Profiles saved to: {paths['profiles']}")
    print(f"\nCatalog preview:")
    print(catalog[["id", "category", "brand", "price", "rating"]].head(10))
    print(f"\nCatalog summary:")
    print(f"  Products: {len(catalog)}")
    print(f"  Categories: {catalog['category'].nunique()}")
    print(f"  Price range: {catalog['price'].min()} to {catalog['price'].max()}")


if __name__ == "__main__":
    main()
