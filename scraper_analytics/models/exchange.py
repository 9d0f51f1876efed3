"""Pydantic model for a single captured network exchange."""

from __future__ import annotations

import pydantic

from scraper_analytics.utils.serialization import snake_to_camel


class CapturedExchange(pydantic.BaseModel):
    """One request observed on the page, optionally paired with its response.

    Created when the request event fires. The response fields move
    from ``None`` to a value exactly once, when the matching response
    event is correlated back to this record.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True
    )

    id: str
    url: str
    method: str
    headers: dict[str, str] = pydantic.Field(default_factory=dict)
    post_data: str | None = None
    timestamp: str
    resource_type: str
    status: int | None = None
    response_headers: dict[str, str] | None = None
    response_body: str | None = None

    @property
    def is_resolved(self) -> bool:
        """Whether a response has already been correlated to this request."""
        return self.status is not None
