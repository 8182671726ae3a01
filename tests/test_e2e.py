"""End-to-end tests for SignalRec.

Generates fake catalog and profile files, then runs the full path from
file loading through every recommendation mode, the CLI entry point and
analytics.
"""

import json
from pathlib import Path
from typing import Dict

import pandas as pd
import pytest

from scripts.generate_fake_data import (
    generate_fake_catalog,
    generate_fake_profiles,
    write_fake_data,
)
from scripts.predict_cli import MODES, build_context, get_recommendations, main
from signalrec.analytics import EventLog, build_analytics_report
from signalrec.recommender.learned import LinearScorer, save_scorer_weights


@pytest.fixture(scope="module")
def fake_data(tmp_path_factory) -> Dict[str, Path]:
    """Write a seeded fake catalog and profile set."""
    data_dir = tmp_path_factory.mktemp("e2e_data")
    return write_fake_data(str(data_dir), num_users=20, num_products=60, seed=7)


def test_generate_fake_catalog_is_reproducible():
    """Test that the same seed produces the same catalog."""
    pd.testing.assert_frame_equal(
        generate_fake_catalog(num_products=10, seed=1),
        generate_fake_catalog(num_products=10, seed=1),
    )


def test_generate_fake_data_rejects_bad_sizes():
    """Test that non-positive sizes are rejected."""
    with pytest.raises(ValueError):
        generate_fake_catalog(num_products=0)
    with pytest.raises(ValueError):
        generate_fake_profiles(generate_fake_catalog(num_products=5, seed=1), num_users=0)


def test_fake_profiles_reference_catalog_products(fake_data):
    """Test that generated purchases only reference catalog products."""
    catalog_ids = set(pd.read_csv(fake_data["catalog"], dtype={"id": str})["id"])
    profiles = json.loads(fake_data["profiles"].read_text())

    assert len(profiles) == 20
    for profile in profiles:
        assert set(profile["behavior"]["purchased_products"]) <= catalog_ids


@pytest.mark.parametrize("mode", MODES)
def test_every_mode_returns_bounded_results(fake_data, mode):
    """Test each recommendation mode against the generated files."""
    recommendations, _ = get_recommendations(
        user_id="u1",
        catalog_path=str(fake_data["catalog"]),
        profiles_path=str(fake_data["profiles"]),
        top_n=5,
        mode=mode,
    )

    assert len(recommendations) <= 5
    scores = [rec.score for rec in recommendations]
    assert scores == sorted(scores, reverse=True)
    assert len({rec.product_id for rec in recommendations}) == len(recommendations)


def test_hybrid_with_context_and_explain(fake_data):
    """Test the hybrid mode with a context and a score breakdown."""
    context = build_context(device="mobile", holiday=True, hour=22)
    recommendations, breakdown = get_recommendations(
        user_id="u2",
        catalog_path=str(fake_data["catalog"]),
        profiles_path=str(fake_data["profiles"]),
        top_n=10,
        context=context,
        explain=True,
    )

    assert len(recommendations) == 10
    assert breakdown["context_applied"] is True
    assert set(breakdown["hybrid_scores"]) == {rec.product_id for rec in recommendations}


def test_hybrid_with_saved_weights(fake_data, tmp_path):
    """Test that a learned-scorer weights file can be plugged in."""
    weights_path = save_scorer_weights(LinearScorer(), str(tmp_path))
    recommendations, _ = get_recommendations(
        user_id="u3",
        catalog_path=str(fake_data["catalog"]),
        profiles_path=str(fake_data["profiles"]),
        top_n=3,
        weights_path=str(weights_path),
    )
    assert len(recommendations) == 3


def test_unknown_user_gets_nothing(fake_data):
    """Test that an unknown user gets an empty list in hybrid mode."""
    recommendations, scores = get_recommendations(
        user_id="ghost",
        catalog_path=str(fake_data["catalog"]),
        profiles_path=str(fake_data["profiles"]),
        explain=True,
    )
    assert recommendations == []
    assert scores == {"method": "unknown_user"}


def test_cli_main_prints_recommendations(fake_data, capsys):
    """Test the CLI entry point end to end."""
    main([
        "u1",
        "--catalog", str(fake_data["catalog"]),
        "--profiles", str(fake_data["profiles"]),
        "--top-n", "3",
        "--hour", "21",
        "--explain",
    ])

    out = capsys.readouterr().out
    assert "Recommendations for user u1 (mode: hybrid)" in out
    assert "Context: desktop_night" in out
    assert "Score breakdown" in out


def test_cli_main_missing_catalog_exits(tmp_path, capsys):
    """Test that a missing input file exits with status 1."""
    with pytest.raises(SystemExit) as exc_info:
        main(["u1", "--catalog", str(tmp_path / "none.csv"), "--profiles", str(tmp_path / "none.json")])

    assert exc_info.value.code == 1
    assert "input file not found" in capsys.readouterr().err


def test_cli_main_invalid_config_exits(fake_data, tmp_path, capsys):
    """Test that an invalid config file exits with status 1."""
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"candidate_multiplier": 0}))

    with pytest.raises(SystemExit) as exc_info:
        main([
            "u1",
            "--catalog", str(fake_data["catalog"]),
            "--profiles", str(fake_data["profiles"]),
            "--config", str(config_path),
        ])
    assert exc_info.value.code == 1


def test_served_recommendations_feed_analytics(fake_data):
    """Test recording served recommendations and reporting on them."""
    log = EventLog()
    context = build_context(device="tablet", hour=12)

    for user_id in ("u1", "u2", "u3"):
        recommendations, _ = get_recommendations(
            user_id=user_id,
            catalog_path=str(fake_data["catalog"]),
            profiles_path=str(fake_data["profiles"]),
            top_n=4,
            context=context,
        )
        log.record_impressions(user_id, recommendations, context)

    first = log.events()[0]
    log.record_click(first.user_id, first.product_id)
    log.record_purchase(first.user_id, first.product_id, revenue=80.0)

    report = build_analytics_report(log)
    assert report.total_recommendations == 12
    assert report.click_through_rate == pytest.approx(100 / 12, abs=0.01)
    assert report.revenue == pytest.approx(80.0)
    assert report.performance_by_context[0].context == "tablet_daytime"
