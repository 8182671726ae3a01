"""Shared fixtures for the SignalRec test suite.

Provides a small hand-built catalog and a set of user profiles whose
similarities are easy to work out by hand.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from signalrec.models import Product, UserProfile


def make_product(product_id: str, **fields: Any) -> Product:
    """Build a Product with neutral defaults for the fields not given."""
    data: Dict[str, Any] = {
        "id": product_id,
        "name": f"Product {product_id}",
        "price": 10.0,
        "popularity": 0.5,
        "rating": 4.0,
    }
    data.update(fields)
    return Product(**data)


def make_profile(user_id: str, purchased=(), **fields: Any) -> UserProfile:
    """Build a UserProfile; ``behavior`` fields may be passed flat."""
    behavior = {
        "purchased_products": list(purchased),
        "viewed_products": list(purchased),
    }
    for key in ("categories", "avg_order_value", "purchase_frequency", "search_queries"):
        if key in fields:
            behavior[key] = fields.pop(key)
    return UserProfile(user_id=user_id, behavior=behavior, **fields)


@pytest.fixture
def catalog() -> List[Product]:
    """Eight products across five categories, in a fixed catalog order."""
    return [
        make_product("p1", category="electronics", subcategory="phones", brand="acme",
                     price=100.0, popularity=0.9, rating=4.5),
        make_product("p2", category="electronics", subcategory="phones", brand="acme",
                     price=110.0, popularity=0.6, rating=4.0),
        make_product("p3", category="electronics", subcategory="audio", brand="globex",
                     price=300.0, popularity=0.7, rating=4.2),
        make_product("p4", category="fashion", subcategory="shoes", brand="initech",
                     price=50.0, popularity=0.5, rating=3.8),
        make_product("p5", category="fashion", subcategory="shoes", brand="acme",
                     price=55.0, popularity=0.4, rating=4.1),
        make_product("p6", category="relaxation", subcategory="candles", brand="hooli",
                     price=20.0, popularity=0.3, rating=4.6,
                     attributes={"gift_wrapping": True}),
        make_product("p7", category="refreshing", subcategory="juices", brand="hooli",
                     price=8.0, popularity=0.8, rating=3.9),
        make_product("p8", category="warming", subcategory="blankets", brand="stark",
                     price=150.0, popularity=0.2, rating=4.4),
    ]


@pytest.fixture
def target_profile() -> UserProfile:
    """User u1: bought a phone and shoes, likes acme, spends 40-120."""
    return make_profile(
        "u1",
        purchased=["p1", "p4"],
        categories=["electronics", "fashion"],
        avg_order_value=200.0,
        purchase_frequency=3.0,
        preferences={"brands": ["acme"], "price_range": {"min": 40, "max": 120}},
        engagement={"email_open_rate": 0.4, "click_through_rate": 0.1},
    )


@pytest.fixture
def profiles(target_profile: UserProfile) -> Dict[str, UserProfile]:
    """All known users keyed by id.

    Jaccard similarity to u1: u2 = 2/3, u3 = 1/3, u4 = 0, u5 = 0.
    """
    return {
        "u1": target_profile,
        "u2": make_profile("u2", purchased=["p1", "p2", "p4"]),
        "u3": make_profile("u3", purchased=["p1", "p3"]),
        "u4": make_profile("u4", purchased=["p7"]),
        "u5": make_profile("u5"),
    }
