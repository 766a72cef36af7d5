"""
Error taxonomy for schedule & price acquisition.
All of these are recovered inside StudioEngine; callers never see them.
"""
from typing import List, Optional


class AcquisitionError(Exception):
    """Base class for failures while acquiring live studio data"""


class FetchError(AcquisitionError):
    """The page could not be downloaded"""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class NetworkError(FetchError):
    """Host unreachable, connection refused, TLS failure and the like"""


class FetchTimeoutError(FetchError):
    """The request exceeded the configured time budget"""

    def __init__(self, url: str, timeout: float):
        super().__init__(url, f"Timed out after {timeout:.1f}s")
        self.timeout = timeout


class HttpStatusError(FetchError):
    """The server answered with a non-2xx status"""

    def __init__(self, url: str, status_code: int):
        super().__init__(url, f"HTTP {status_code}")
        self.status_code = status_code


class ExtractionExhausted(AcquisitionError):
    """Every extraction strategy came back empty"""

    def __init__(self, attempted: Optional[List[str]] = None):
        self.attempted = list(attempted or [])
        super().__init__(
            "No strategy produced entries (tried: {})".format(", ".join(self.attempted) or "none")
        )
