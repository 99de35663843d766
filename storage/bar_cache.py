"""
Raw-bar cache of one pair.

A cache is built once per successful fetch and replaced as a whole by the
next one; legs from different fetches are never merged.
"""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.schemas import Bar


class RawBarCache(BaseModel):
    """
    Raw bars of every leg of a pair, as returned by the sources.

    Attributes:
        lookback: Lookback the bars were fetched for
        interval: Interval the bars were fetched for
        numerator: Raw numerator bars (before aggregation)
        denominator: Raw denominator bars (before aggregation)
        optional: Raw optional-leg bars, empty when degraded or not configured
        granularity: Leg name -> base granularity of its bars
        optional_status: "ok", "degraded" or "absent"
        optional_reason: Why the optional leg degraded
        fetched_at: When the fetch completed (UTC)
    """

    model_config = ConfigDict(frozen=True)

    lookback: Union[int, str]
    interval: str
    numerator: List[Bar]
    denominator: List[Bar]
    optional: List[Bar] = Field(default_factory=list)
    granularity: Dict[str, str] = Field(default_factory=dict)
    optional_status: Literal["ok", "degraded", "absent"] = "absent"
    optional_reason: Optional[str] = None
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def serves(self, granularity: Dict[str, str]) -> bool:
        """
        True when every leg's cached bars have the granularity a new view needs.

        Args:
            granularity: Leg name -> granularity required for the new interval
        """
        return all(self.granularity.get(leg) == needed for leg, needed in granularity.items())

    @property
    def bar_counts(self) -> Dict[str, int]:
        return {
            "numerator": len(self.numerator),
            "denominator": len(self.denominator),
            "optional": len(self.optional),
        }
