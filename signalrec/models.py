"""Data models for the SignalRec recommendation engine.

Defines the entities the engine reads at call time (user profiles, catalog
products, situational context) and the recommendations it returns. All
models are frozen so a recommendation call can never mutate caller data.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

# Hours (inclusive) that count as night time for context scoring
NIGHT_START_HOUR = 20
NIGHT_END_HOUR = 6


def _stringify(value: Any) -> Any:
    """Accept numeric identifiers from CSV/JSON sources."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


class Demographics(BaseModel):
    """Optional demographic attributes, never required by any scorer."""

    model_config = ConfigDict(frozen=True)

    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = None
    location: Optional[str] = None


class Behavior(BaseModel):
    """Behavioral history of a user."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    viewed_products: FrozenSet[str] = frozenset()
    purchased_products: FrozenSet[str] = frozenset()
    search_queries: Tuple[str, ...] = ()
    categories: FrozenSet[str] = frozenset()
    avg_order_value: float = Field(default=0.0, ge=0)
    purchase_frequency: float = Field(default=0.0, ge=0)

    @field_validator("viewed_products", "purchased_products", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(_stringify(v) for v in value)
        return value


class PriceRange(BaseModel):
    """Inclusive price range a user prefers."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(default=0.0, ge=0)
    max: float = Field(default=float("inf"), ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "PriceRange":
        if self.min > self.max:
            raise ValueError(
                f"price range min ({self.min}) exceeds max ({self.max})"
            )
        return self

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max


class Preferences(BaseModel):
    """Declared preferences of a user."""

    model_config = ConfigDict(frozen=True)

    brands: FrozenSet[str] = frozenset()
    price_range: PriceRange = Field(default_factory=PriceRange)
    colors: FrozenSet[str] = frozenset()
    materials: FrozenSet[str] = frozenset()


class Engagement(BaseModel):
    """Engagement statistics used as learned-scorer features.

    Rates are clamped into [0, 1] and durations/counts to non-negative
    values when the profile is read.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    email_open_rate: float = 0.0
    click_through_rate: float = 0.0
    time_on_site: float = 0.0
    pages_per_session: float = 0.0

    @field_validator("email_open_rate", "click_through_rate")
    @classmethod
    def clamp_rate(cls, value: float) -> float:
        return _clamp(value, 0.0, 1.0)

    @field_validator("time_on_site", "pages_per_session")
    @classmethod
    def clamp_non_negative(cls, value: float) -> float:
        return max(value, 0.0)


class UserProfile(BaseModel):
    """Everything the engine knows about one user.

    Owned by the calling application and treated as a read-only snapshot
    for the duration of a recommendation call.

    Example:
        >>> profile = UserProfile(
        ...     user_id="u1",
        ...     behavior={"purchased_products": ["p1", "p2"]},
        ...     preferences={"price_range": {"min": 10, "max": 80}},
        ... )
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    demographics: Demographics = Field(default_factory=Demographics)
    behavior: Behavior = Field(default_factory=Behavior)
    preferences: Preferences = Field(default_factory=Preferences)
    engagement: Engagement = Field(default_factory=Engagement)

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, value: Any) -> Any:
        return _stringify(value)

    @property
    def purchased(self) -> FrozenSet[str]:
        return self.behavior.purchased_products


class Product(BaseModel):
    """A catalog item. Owned by the catalog, never modified by the engine."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str = Field(..., min_length=1)
    name: str = ""
    category: str = ""
    subcategory: str = ""
    price: float = Field(..., ge=0)
    brand: str = ""
    attributes: Dict[str, Any] = Field(default_factory=dict)
    popularity: float = Field(..., ge=0, le=1)
    rating: float = Field(..., ge=0, le=5)
    review_count: int = Field(default=0, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> Any:
        return _stringify(value)

    @property
    def is_gift_appropriate(self) -> bool:
        return bool(
            self.attributes.get("gift_wrapping")
            or self.attributes.get("giftWrapping")
        )


class Recommendation(BaseModel):
    """A single ranked suggestion returned by a scorer or the ensemble."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    score: float
    reason: str
    confidence: float = Field(..., ge=0, le=1)
    algorithm: str
    sources: Tuple[str, ...] = ()


class Device(str, Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"
    TABLET = "tablet"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"


# Northern-hemisphere meteorological seasons
_MONTH_TO_SEASON = {
    12: Season.WINTER, 1: Season.WINTER, 2: Season.WINTER,
    3: Season.SPRING, 4: Season.SPRING, 5: Season.SPRING,
    6: Season.SUMMER, 7: Season.SUMMER, 8: Season.SUMMER,
    9: Season.FALL, 10: Season.FALL, 11: Season.FALL,
}

# Parses every time format the Context.time field accepts (ISO strings, epoch numbers)
_DATETIME_ADAPTER = TypeAdapter(datetime)


class Context(BaseModel):
    """Situational context supplied fresh with a request.

    ``season`` and ``day_of_week`` are derived from ``time`` when omitted.
    """

    model_config = ConfigDict(frozen=True)

    time: datetime
    device: Device = Device.DESKTOP
    location: Optional[str] = None
    weather: Optional[str] = None
    season: Season
    day_of_week: str
    is_holiday: bool = False

    @model_validator(mode="before")
    @classmethod
    def derive_calendar_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "time" not in data:
            return data
        try:
            time = _DATETIME_ADAPTER.validate_python(data["time"])
        except ValidationError:
            # Left for field validation to report
            return data
        data = dict(data)
        if data.get("season") is None:
            data["season"] = _MONTH_TO_SEASON[time.month]
        if not data.get("day_of_week"):
            data["day_of_week"] = time.strftime("%A").lower()
        return data

    @property
    def hour(self) -> int:
        return self.time.hour

    @property
    def is_night(self) -> bool:
        return self.hour >= NIGHT_START_HOUR or self.hour <= NIGHT_END_HOUR

    def label(self) -> str:
        """Short label used to group analytics by context, e.g. ``mobile_night``."""
        daypart = "night" if self.is_night else "daytime"
        return f"{self.device.value}_{daypart}"
