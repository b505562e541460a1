"""
Exception types shared by the catalog proxy and the metadata extractor

Route handlers translate these into HTTP responses:
- ValidationError -> 400 with its message
- everything else -> 500 with a generic message (detail is only logged)
"""

# Upstream response bodies are appended to the message, which is only logged
MAX_LOGGED_BODY = 500


class ConfigurationError(Exception):
    """Raised when required configuration (e.g. Spotify credentials) is missing"""


class ValidationError(Exception):
    """Raised when a request is missing a required parameter"""


class UpstreamError(Exception):
    """Base class for failures talking to an upstream HTTP service"""
    def __init__(self, message: str, status: int = None, body: str = None):
        self.status = status
        self.body = body
        if body:
            message = f"{message}: {body[:MAX_LOGGED_BODY]}"
        super().__init__(message)


class UpstreamAuthError(UpstreamError):
    """Raised when the token endpoint rejects the credential exchange"""
    def __init__(self, status: int = None, body: str = None):
        super().__init__(f"Spotify token exchange failed (status {status})", status, body)


class UpstreamApiError(UpstreamError):
    """Raised when the catalog API returns a non-success status"""
    def __init__(self, path: str, status: int = None, body: str = None):
        self.path = path
        super().__init__(f"Spotify API request to {path} failed (status {status})", status, body)


class UpstreamTimeoutError(UpstreamError):
    """Raised when an outbound call exceeds its timeout"""
    def __init__(self, url: str, timeout: float = None):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request to {url} timed out after {timeout}s")


class MetadataExtractionError(Exception):
    """Raised when an uploaded audio file cannot be probed"""
