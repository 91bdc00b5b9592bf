"""Request and response models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RequestDescriptor(BaseModel):
    """One call to a microservice endpoint.

    Parameters
    ----------
    url_pattern : str
        Path pattern with ``:name`` placeholders, e.g. ``/user/:userId``.
    substitutions : dict
        Values for the placeholders in *url_pattern*.
    payload : any
        JSON-serializable payload. Sent as the body of a POST, or as a
        base64 ``payload`` query parameter of a GET.
    transport_options : dict
        Extra keyword arguments handed to the transport unmodified.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    url_pattern: str = Field(alias="url")
    substitutions: dict[str, Any] = Field(default_factory=dict, alias="context")
    payload: Any = None
    transport_options: dict[str, Any] = Field(default_factory=dict, alias="send_options")


@dataclass(slots=True)
class RequestOptions:
    """Fully built request handed to a transport."""

    url: str
    headers: dict[str, str]
    params: dict[str, str] | None = None
    json_body: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TransportResponse:
    """Successful transport result. ``body`` is parsed JSON or raw text."""

    status_code: int
    body: Any = None
    status_message: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
