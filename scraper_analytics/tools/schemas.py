"""Pydantic argument models for every tool, plus their JSON input schemas.

Arguments arrive with camelCase keys (``waitTime``, ``filterType``);
the models accept those aliases and expose snake_case attributes.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

import pydantic

from scraper_analytics.models import report
from scraper_analytics.utils import errors
from scraper_analytics.utils import url as url_mod
from scraper_analytics.utils.serialization import snake_to_camel

URL_ERROR_MESSAGE = "URL must be a valid URL with http:// or https://"

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


class _ToolArguments(pydantic.BaseModel):
    """Common config: camelCase aliases and an http(s) ``url`` field."""

    model_config = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)

    url: str

    @pydantic.field_validator("url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        if not url_mod.is_http_url(value):
            raise ValueError(URL_ERROR_MESSAGE)
        return value


class AnalysisOptions(_ToolArguments):
    """Arguments of ``analyze_website_requests``."""

    url: str = pydantic.Field(description="The URL to analyze (must include http:// or https://)")
    wait_time: int | None = pydantic.Field(
        default=None,
        ge=0,
        le=10000,
        description="Additional wait time in milliseconds for dynamic content (default: 3000, max: 10000)",
    )
    include_images: bool = pydantic.Field(
        default=False, description="Whether to include image and media requests (default: false)"
    )
    quick_mode: bool = pydantic.Field(
        default=False, description="Use quick loading mode with minimal waiting (default: false)"
    )


class RequestFilter(_ToolArguments):
    """Arguments of ``get_requests_by_domain`` and ``get_request_details``."""

    url: str = pydantic.Field(description="The URL that was previously analyzed")
    domain: str | None = pydantic.Field(
        default=None, description="The domain to filter requests for (e.g., 'example.com')"
    )
    request_id: str | None = pydantic.Field(
        default=None, description="The unique ID of the request to get details for"
    )


class UrlArguments(_ToolArguments):
    """Arguments of ``get_request_summary``."""

    url: str = pydantic.Field(description="The URL that was previously analyzed")


class ExtractElementsOptions(_ToolArguments):
    """Arguments of ``extract_html_elements``."""

    url: str = pydantic.Field(description="The URL to analyze (must include http:// or https://)")
    filter_type: report.FilterType = pydantic.Field(description="Type of elements to extract")


class FetchOptions(_ToolArguments):
    """Arguments of ``fetch``."""

    url: str = pydantic.Field(description="The URL to fetch (must be a valid URL).")
    method: HttpMethod = pydantic.Field(default="GET", description="The HTTP method to use.")
    headers: dict[str, str] | None = pydantic.Field(
        default=None, description="A key-value map of request headers."
    )
    body: str | None = pydantic.Field(default=None, description="The request body (for POST, PUT, PATCH).")


def _format_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for issue in exc.errors():
        location = ".".join(str(part) for part in issue.get("loc", ())) or "arguments"
        message = str(issue.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{location}: {message}")
    return "; ".join(parts)


def parse_arguments(model: type[ModelT], arguments: dict[str, Any] | None) -> ModelT:
    """Validate raw tool arguments against *model*.

    Raises:
        errors.InvalidArgumentError: With a readable summary of every problem.
    """
    try:
        return model.model_validate(arguments or {})
    except pydantic.ValidationError as exc:
        raise errors.InvalidArgumentError(f"Invalid parameters: {_format_validation_error(exc)}") from exc


def input_schema(model: type[pydantic.BaseModel], required: list[str] | None = None) -> dict[str, Any]:
    """Return the JSON schema advertised for a tool's arguments.

    *required* overrides the model's own required list, for tools that
    share a model but need different fields.
    """
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    if required is not None:
        schema["required"] = required
    return schema
