"""Model of the AdGuard Home /control/stats response."""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class StatsPayload(BaseModel):
    """One statistics response.

    Every field is optional and kept as sent. Values are checked field by
    field when they are turned into samples, so one badly typed field never
    rejects the rest of the payload.
    """
    model_config = ConfigDict(extra="ignore")

    # Scalar counters
    num_dns_queries: Optional[Any] = None
    num_blocked_filtering: Optional[Any] = None
    avg_processing_time: Optional[Any] = None
    num_replaced_safebrowsing: Optional[Any] = None
    num_replaced_safesearch: Optional[Any] = None
    num_replaced_parental: Optional[Any] = None

    time_units: Optional[Any] = None

    # Top-N lists of single-entry {name: value} mappings
    top_clients: Optional[Any] = None
    top_blocked_domains: Optional[Any] = None
    top_queried_domains: Optional[Any] = None
    top_upstreams_responses: Optional[Any] = None
    top_upstreams_avg_time: Optional[Any] = None

    # Periodic lists, one value per time bucket
    dns_queries: Optional[Any] = None
    blocked_filtering: Optional[Any] = None
    replaced_safebrowsing: Optional[Any] = None
    replaced_parental: Optional[Any] = None
