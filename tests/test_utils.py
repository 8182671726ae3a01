"""Tests for catalog/profile parsing, ranking and data loading helpers."""

import json
from pathlib import Path

import pandas as pd
import pytest

from conftest import make_product
from signalrec.exceptions import InvalidProductError, InvalidProfileError
from signalrec.models import UserProfile
from signalrec.recommender.utils import (
    CatalogIndex,
    coerce_catalog,
    coerce_profiles,
    load_catalog_csv,
    load_profiles_json,
    parse_product,
    parse_profile,
    rank_scores,
)


def write_catalog_csv(path: Path, rows) -> Path:
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_rank_scores_sorts_descending():
    """Test that scores are returned best first and cut to k."""
    ranked = rank_scores({"a": 0.1, "b": 0.9, "c": 0.5}, k=2)
    assert ranked == [("b", 0.9), ("c", 0.5)]


def test_rank_scores_ties_follow_catalog_order():
    """Test that ties are broken by catalog position, not insertion order."""
    scores = {"c": 0.5, "a": 0.5, "b": 0.5}
    order = {"a": 0, "b": 1, "c": 2}
    assert [pid for pid, _ in rank_scores(scores, k=3, order=order)] == ["a", "b", "c"]
    # Without positions the insertion order is kept
    assert [pid for pid, _ in rank_scores(scores, k=3)] == ["c", "a", "b"]


def test_rank_scores_non_positive_k():
    """Test that k <= 0 yields an empty list."""
    assert rank_scores({"a": 1.0}, k=0) == []
    assert rank_scores({"a": 1.0}, k=-1) == []


def test_parse_product_numeric_id():
    """Test that numeric ids from CSV/JSON sources become strings."""
    product = parse_product({"id": 42, "price": 5, "popularity": 0.1, "rating": 3})
    assert product.id == "42"


def test_parse_product_invalid_raises():
    """Test that out-of-range values raise InvalidProductError."""
    with pytest.raises(InvalidProductError) as exc_info:
        parse_product({"id": "x", "price": -1, "popularity": 0.1, "rating": 3})
    assert exc_info.value.details["product_id"] == "x"


def test_parse_product_rejects_nan():
    """Test that NaN numeric fields are rejected."""
    with pytest.raises(InvalidProductError):
        parse_product({"id": "x", "price": 5, "popularity": float("nan"), "rating": 3})


def test_parse_profile_inverted_price_range():
    """Test that a price range with min > max is invalid."""
    with pytest.raises(InvalidProfileError):
        parse_profile({"user_id": "u1", "preferences": {"price_range": {"min": 50, "max": 10}}})


def test_parse_profile_clamps_engagement_rates():
    """Test that engagement rates are clamped into [0, 1]."""
    profile = parse_profile({
        "user_id": "u1",
        "engagement": {"email_open_rate": 1.7, "click_through_rate": -0.2},
    })
    assert profile.engagement.email_open_rate == 1.0
    assert profile.engagement.click_through_rate == 0.0


def test_coerce_catalog_skips_invalid_and_duplicates():
    """Test that invalid and duplicate entries are dropped, order preserved."""
    entries = [
        make_product("a"),
        {"id": "bad", "price": 1, "popularity": 9, "rating": 1},
        make_product("b"),
        make_product("a", price=99.0),
    ]
    products = coerce_catalog(entries)

    assert [p.id for p in products] == ["a", "b"]
    assert products[0].price == 10.0


def test_coerce_profiles_skips_invalid():
    """Test that invalid profiles are dropped from the mapping."""
    profiles = coerce_profiles({
        "ok": {"user_id": "ok"},
        "bad": {"user_id": "bad", "preferences": {"price_range": {"min": 9, "max": 1}}},
    })
    assert list(profiles) == ["ok"]
    assert isinstance(profiles["ok"], UserProfile)


def test_catalog_index_candidates(catalog):
    """Test that candidates share category, brand or price band with the product."""
    index = CatalogIndex(catalog)

    # p1: electronics (p1-p3), acme (p1, p2, p5), price band 80-125 (p1, p2)
    assert index.candidate_positions(catalog[0]) == [0, 1, 2, 4]
    assert "p1" in index
    assert index.get("p8").category == "warming"
    assert index.get("missing") is None


def test_load_catalog_csv(tmp_path):
    """Test loading a catalog with optional columns and JSON attributes."""
    path = write_catalog_csv(tmp_path / "catalog.csv", [
        {"id": "001", "category": "home", "price": 12.5, "popularity": 0.3, "rating": 4.1,
         "attributes": json.dumps({"gift_wrapping": True})},
        {"id": "002", "category": "home", "price": 20.0, "popularity": 0.6, "rating": 3.0,
         "attributes": ""},
    ])
    products = load_catalog_csv(str(path))

    assert [p.id for p in products] == ["001", "002"]
    assert products[0].is_gift_appropriate
    assert products[1].attributes == {}
    assert products[1].brand == ""


def test_load_catalog_csv_skips_invalid_rows(tmp_path):
    """Test that rows failing validation are skipped."""
    path = write_catalog_csv(tmp_path / "catalog.csv", [
        {"id": "a", "category": "home", "price": 5.0, "popularity": 0.3, "rating": 4.1},
        {"id": "b", "category": "home", "price": 5.0, "popularity": 0.3, "rating": 7.5},
    ])
    assert [p.id for p in load_catalog_csv(str(path))] == ["a"]


def test_load_catalog_csv_missing_file(tmp_path):
    """Test that a missing CSV raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_catalog_csv(str(tmp_path / "nope.csv"))


def test_load_catalog_csv_missing_columns(tmp_path):
    """Test that a CSV without required columns raises ValueError."""
    path = write_catalog_csv(tmp_path / "catalog.csv", [{"id": "a", "price": 1.0}])
    with pytest.raises(ValueError, match="missing required columns"):
        load_catalog_csv(str(path))


def test_load_catalog_csv_empty(tmp_path):
    """Test that a CSV with only a header raises ValueError."""
    path = tmp_path / "catalog.csv"
    path.write_text("id,category,price,popularity,rating\n")
    with pytest.raises(ValueError, match="empty"):
        load_catalog_csv(str(path))


def test_load_profiles_json(tmp_path):
    """Test loading profiles keyed by user id."""
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps([
        {"user_id": "u1", "behavior": {"purchased_products": ["p1"]}},
        {"user_id": 2},
    ]))
    profiles = load_profiles_json(str(path))

    assert list(profiles) == ["u1", "2"]
    assert profiles["u1"].purchased == frozenset({"p1"})


def test_load_profiles_json_requires_list(tmp_path):
    """Test that a JSON object instead of a list is rejected."""
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps({"user_id": "u1"}))
    with pytest.raises(ValueError):
        load_profiles_json(str(path))
