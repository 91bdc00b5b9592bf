"""Endpoint URL construction from ``:name`` patterns."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from servicejwt.exceptions import ErrorKind, ServiceClientError

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


class EndpointTemplater:
    """Expands URL patterns such as ``/user/:userId`` against a base URL.

    No slash normalization is done: ``base_url`` and the expanded pattern
    are concatenated as-is.
    """

    def __init__(self, base_url: str) -> None:
        self._base_url = base_url

    @property
    def base_url(self) -> str:
        return self._base_url

    def expand(self, url_pattern: str, substitutions: Mapping[str, Any] | None = None) -> str:
        """Return the path for *url_pattern* with placeholders replaced."""
        values = substitutions or {}

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1)
            value = values.get(name)
            if value is None:
                raise ServiceClientError(
                    f'Expected "{name}" to be defined for {url_pattern}',
                    kind=ErrorKind.CONFIG,
                    code="ENOURLPARAM",
                    status_code=500,
                )
            return quote(str(value), safe="")

        return _PLACEHOLDER.sub(_replace, url_pattern)

    def build(self, url_pattern: str, substitutions: Mapping[str, Any] | None = None) -> str:
        """Return the absolute URL for *url_pattern*."""
        return self._base_url + self.expand(url_pattern, substitutions)
