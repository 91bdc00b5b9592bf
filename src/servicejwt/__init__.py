"""servicejwt - Async client for JWT-authenticated service-to-service calls."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("servicejwt")
except PackageNotFoundError:
    __version__ = "0+local"
from servicejwt._normalize import normalize_error
from servicejwt._token import AccessTokenClaims, TokenIssuer, verify_access_token
from servicejwt.client import ServiceClient
from servicejwt.config import ClientOptions, ServiceIdentity
from servicejwt.exceptions import ErrorKind, ServiceClientError, TransportError
from servicejwt.metrics import NOOP_TIMER, HistogramTimer, NoopTimer, Timer
from servicejwt.models import RequestDescriptor, RequestOptions, TransportResponse

__all__ = [
    "__version__",
    "AccessTokenClaims",
    "ClientOptions",
    "ErrorKind",
    "HistogramTimer",
    "NOOP_TIMER",
    "NoopTimer",
    "RequestDescriptor",
    "RequestOptions",
    "ServiceClient",
    "ServiceClientError",
    "ServiceIdentity",
    "Timer",
    "TokenIssuer",
    "TransportError",
    "TransportResponse",
    "normalize_error",
    "verify_access_token",
]
