"""
Module: destination.py
Description: Destination model for registered webhook endpoints.

A destination is an HTTP callback endpoint with a display name and a
minimum interval between deliveries. Its identity is a stable key that
defaults to the normalized endpoint URL.

Key Components:
- Destination: Validated destination model
- normalize_endpoint_url(): Canonical form used as the default identity

Dependencies: pydantic, urllib
Author: Webhook Relay Team
"""

from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from models.errors import DestinationValidationError


def normalize_endpoint_url(url: str) -> str:
    """
    Normalize an endpoint URL so equivalent spellings share one identity.

    Strips surrounding whitespace, lowercases scheme and host and drops
    the trailing slash of an empty path.

    Args:
        url: Raw endpoint URL

    Returns:
        Normalized URL

    Raises:
        ValueError: If the URL is not an absolute http(s) URL
    """
    if not url or not isinstance(url, str):
        raise ValueError("endpoint_url must be a non-empty string")

    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https"):
        raise ValueError("endpoint_url must be a valid HTTP/HTTPS URL")
    if not parts.hostname:
        raise ValueError("endpoint_url must include a host")

    path = parts.path if parts.path != "/" else ""
    return urlunsplit((scheme, parts.netloc.lower(), path, parts.query, parts.fragment))


class Destination(BaseModel):
    """
    Registered webhook destination.

    Attributes:
        id: Stable destination key (defaults to the normalized endpoint URL)
        name: Display name used in notifications
        endpoint_url: Absolute http(s) URL receiving POSTed payloads
        rate_limit_seconds: Minimum seconds between dispatches (0 = unlimited)
        headers: Extra request headers sent with every delivery
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True
    )

    id: str = Field(
        default="",
        description="Stable destination identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Destination display name"
    )
    endpoint_url: str = Field(
        ...,
        validation_alias=AliasChoices("endpoint_url", "endpointURL", "url"),
        description="Webhook endpoint URL"
    )
    rate_limit_seconds: float = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("rate_limit_seconds", "rateLimitSeconds", "rateLimit"),
        description="Minimum interval between dispatches in seconds"
    )
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Additional HTTP headers sent with each delivery"
    )

    @field_validator('rate_limit_seconds', mode='before')
    @classmethod
    def validate_rate_limit(cls, v: Any) -> Any:
        """Treat an empty or missing rate limit as unlimited."""
        if v is None or v == "":
            return 0
        return v

    @field_validator('endpoint_url')
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """Validate and normalize the endpoint URL."""
        return normalize_endpoint_url(v)

    @model_validator(mode='after')
    def default_id(self) -> "Destination":
        """Use the normalized endpoint URL as identity when no id is given."""
        if not self.id:
            self.id = self.endpoint_url
        return self

    @property
    def rate_limited(self) -> bool:
        return self.rate_limit_seconds > 0

    @classmethod
    def ad_hoc(cls, destination_id: str, name: Optional[str] = None) -> "Destination":
        """
        Build a zero-rate-limit destination for an unregistered id.

        The id is taken to be the endpoint URL, matching how triggers
        address destinations, and is stored normalized. An id that is not
        a usable URL still gets a destination so the entry is reported as
        failed rather than lost.
        """
        try:
            return cls(
                name=name or "Webhook",
                endpoint_url=destination_id,
                rate_limit_seconds=0
            )
        except ValidationError:
            return cls.model_construct(
                id=destination_id,
                name=name or "Webhook",
                endpoint_url=destination_id,
                rate_limit_seconds=0,
                headers={}
            )


def parse_destination(item: Any) -> Destination:
    """
    Validate a destination given as a model or a raw mapping.

    Args:
        item: Destination instance or mapping of destination fields

    Returns:
        Validated Destination

    Raises:
        DestinationValidationError: If the configuration is malformed
    """
    if isinstance(item, Destination):
        return item
    if not isinstance(item, dict):
        raise DestinationValidationError("destination must be an object")

    try:
        return Destination.model_validate(item)
    except ValidationError as e:
        raise DestinationValidationError(
            "Invalid destination configuration",
            destination_id=item.get("id") or item.get("endpoint_url") or item.get("url"),
            errors=[
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                for err in e.errors()
            ]
        ) from e
