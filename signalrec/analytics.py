"""Recommendation analytics.

Collects impression, click and purchase events for served recommendations
and aggregates them into click-through, conversion and revenue figures per
algorithm and per context. Analytics only observes; it never feeds back
into ranking.
"""

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from signalrec.models import Context, Recommendation

# Configure module logger
logger = logging.getLogger(__name__)

EVENT_COLUMNS = [
    "event_type",
    "user_id",
    "product_id",
    "algorithm",
    "context",
    "revenue",
    "timestamp",
]


class EventType(str, Enum):
    IMPRESSION = "impression"
    CLICK = "click"
    PURCHASE = "purchase"


class RecommendationEvent(BaseModel):
    """A single interaction with a served recommendation."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    user_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    algorithm: Optional[str] = None
    context: Optional[str] = None
    revenue: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AlgorithmPerformance(BaseModel):
    algorithm: str
    impressions: int
    ctr: float
    conversion_rate: float
    revenue: float


class ContextPerformance(BaseModel):
    context: str
    impressions: int
    ctr: float
    conversion_rate: float


class AnalyticsReport(BaseModel):
    """Aggregated recommendation performance.

    Rates are percentages. With no impressions every rate is 0.
    """

    total_recommendations: int = 0
    click_through_rate: float = 0.0
    conversion_rate: float = 0.0
    average_order_value: float = 0.0
    revenue: float = 0.0
    top_performing_algorithms: List[AlgorithmPerformance] = Field(default_factory=list)
    performance_by_context: List[ContextPerformance] = Field(default_factory=list)


class EventLog:
    """Thread-safe in-memory event sink.

    Clicks and purchases recorded without an algorithm or context are
    attributed to the latest impression of the same (user, product) pair.
    Both the events and that attribution table grow without bound; call
    reset() or start a new log to rotate them.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[RecommendationEvent] = []
        self._served: Dict[Tuple[str, str], Tuple[Optional[str], Optional[str]]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def record_impressions(
        self,
        user_id: str,
        recommendations: Iterable[Recommendation],
        context: Optional[Context] = None,
    ) -> int:
        """Record one impression per served recommendation.

        Returns:
            Number of impressions recorded.
        """
        label = context.label() if context is not None else None
        events = [
            RecommendationEvent(
                event_type=EventType.IMPRESSION,
                user_id=user_id,
                product_id=rec.product_id,
                algorithm=rec.algorithm,
                context=label,
            )
            for rec in recommendations
        ]

        with self._lock:
            self._events.extend(events)
            for event in events:
                self._served[(event.user_id, event.product_id)] = (
                    event.algorithm,
                    event.context,
                )
        return len(events)

    def _record_followup(
        self,
        event_type: EventType,
        user_id: str,
        product_id: str,
        algorithm: Optional[str],
        context: Optional[str],
        revenue: float = 0.0,
    ) -> RecommendationEvent:
        with self._lock:
            served_algorithm, served_context = self._served.get(
                (user_id, product_id), (None, None)
            )
            event = RecommendationEvent(
                event_type=event_type,
                user_id=user_id,
                product_id=product_id,
                algorithm=algorithm if algorithm is not None else served_algorithm,
                context=context if context is not None else served_context,
                revenue=revenue,
            )
            self._events.append(event)

        if event.algorithm is None:
            logger.debug(
                f"Unattributed {event_type.value} event",
                extra={"user_id": user_id, "product_id": product_id},
            )
        return event

    def record_click(
        self,
        user_id: str,
        product_id: str,
        algorithm: Optional[str] = None,
        context: Optional[str] = None,
    ) -> RecommendationEvent:
        return self._record_followup(EventType.CLICK, user_id, product_id, algorithm, context)

    def record_purchase(
        self,
        user_id: str,
        product_id: str,
        revenue: float,
        algorithm: Optional[str] = None,
        context: Optional[str] = None,
    ) -> RecommendationEvent:
        """Record a purchase of a recommended product.

        Raises:
            pydantic.ValidationError: If ``revenue`` is negative or not finite.
        """
        return self._record_followup(
            EventType.PURCHASE, user_id, product_id, algorithm, context, revenue
        )

    def events(self) -> List[RecommendationEvent]:
        with self._lock:
            return list(self._events)

    def to_frame(self) -> pd.DataFrame:
        """Events as a DataFrame with one row per event."""
        return events_to_frame(self.events())

    def reset(self) -> None:
        """Drop all recorded events (useful for testing)."""
        with self._lock:
            self._events = []
            self._served = {}


def events_to_frame(events: Iterable[RecommendationEvent]) -> pd.DataFrame:
    rows = [event.model_dump(mode="json") for event in events]
    df = pd.DataFrame(rows, columns=EVENT_COLUMNS)
    df["revenue"] = df["revenue"].astype(float)
    return df


def _percentage(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def _event_counts(df: pd.DataFrame, key: str) -> pd.DataFrame:
    """Impression, click and purchase counts plus revenue per ``key`` value."""
    keyed = df.dropna(subset=[key])
    if keyed.empty:
        return pd.DataFrame(columns=[e.value for e in EventType] + ["revenue"])

    counts = keyed.groupby([key, "event_type"]).size().unstack(fill_value=0)
    for event_type in EventType:
        if event_type.value not in counts.columns:
            counts[event_type.value] = 0

    revenue = (
        keyed[keyed["event_type"] == EventType.PURCHASE.value]
        .groupby(key)["revenue"]
        .sum()
    )
    counts["revenue"] = revenue.reindex(counts.index, fill_value=0.0)
    return counts


def build_analytics_report(
    events: Union[EventLog, pd.DataFrame, Iterable[RecommendationEvent]],
) -> AnalyticsReport:
    """Aggregate recommendation events into an AnalyticsReport.

    Args:
        events: An EventLog, a DataFrame with EVENT_COLUMNS, or an iterable
            of RecommendationEvent.

    Returns:
        Report with overall rates, per-algorithm performance sorted by CTR
        (best first) and per-context performance sorted by context label.
    """
    if isinstance(events, EventLog):
        df = events.to_frame()
    elif isinstance(events, pd.DataFrame):
        df = events
    else:
        df = events_to_frame(events)

    if df.empty:
        return AnalyticsReport()

    event_types = df["event_type"]
    impressions = int((event_types == EventType.IMPRESSION.value).sum())
    clicks = int((event_types == EventType.CLICK.value).sum())
    purchases = df[event_types == EventType.PURCHASE.value]
    revenue = float(purchases["revenue"].sum())

    by_algorithm = _event_counts(df, "algorithm")
    algorithms = [
        AlgorithmPerformance(
            algorithm=str(algorithm),
            impressions=int(row[EventType.IMPRESSION.value]),
            ctr=_percentage(row[EventType.CLICK.value], row[EventType.IMPRESSION.value]),
            conversion_rate=_percentage(
                row[EventType.PURCHASE.value], row[EventType.IMPRESSION.value]
            ),
            revenue=round(float(row["revenue"]), 2),
        )
        for algorithm, row in by_algorithm.iterrows()
    ]
    # Stable: equal CTRs stay in label order
    algorithms.sort(key=lambda perf: perf.ctr, reverse=True)

    by_context = _event_counts(df, "context")
    contexts = [
        ContextPerformance(
            context=str(context),
            impressions=int(row[EventType.IMPRESSION.value]),
            ctr=_percentage(row[EventType.CLICK.value], row[EventType.IMPRESSION.value]),
            conversion_rate=_percentage(
                row[EventType.PURCHASE.value], row[EventType.IMPRESSION.value]
            ),
        )
        for context, row in by_context.iterrows()
    ]

    report = AnalyticsReport(
        total_recommendations=impressions,
        click_through_rate=_percentage(clicks, impressions),
        conversion_rate=_percentage(len(purchases), impressions),
        average_order_value=round(revenue / len(purchases), 2) if len(purchases) else 0.0,
        revenue=round(revenue, 2),
        top_performing_algorithms=algorithms,
        performance_by_context=contexts,
    )

    logger.info(
        "Built analytics report",
        extra={
            "num_events": len(df),
            "impressions": impressions,
            "clicks": clicks,
            "purchases": len(purchases),
        },
    )
    return report
