"""HTTP health checks for deployed services."""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class HealthResult:
    """Outcome of one health check."""

    url: str
    healthy: bool
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[str] = None


class HealthChecker:
    """Probes a health endpoint over HTTP(S)."""

    def __init__(self, timeout: int = 10, verbose: bool = False):
        """
        Initialize health checker.

        Args:
            timeout: Request timeout in seconds
            verbose: Whether to enable verbose output
        """
        self.timeout = timeout
        self.verbose = verbose

    def check(self, url: str, verify: bool = True) -> HealthResult:
        """
        Request the endpoint once; any 2xx response is healthy.

        Args:
            url: Health endpoint URL
            verify: Verify TLS certificates

        Returns:
            HealthResult: Probe outcome
        """
        try:
            response = requests.get(url, timeout=self.timeout, verify=verify)
        except requests.exceptions.SSLError as e:
            logger.debug(f"TLS error for {url}: {e}")
            return HealthResult(url=url, healthy=False, error=f"SSL error: {e}")
        except requests.exceptions.ConnectionError as e:
            logger.debug(f"Connection failed for {url}: {e}")
            return HealthResult(url=url, healthy=False, error=f"Connection failed: {e}")
        except requests.exceptions.Timeout:
            return HealthResult(url=url, healthy=False, error=f"Timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            return HealthResult(url=url, healthy=False, error=str(e))

        healthy = 200 <= response.status_code < 300
        result = HealthResult(
            url=url,
            healthy=healthy,
            status_code=response.status_code,
            body=response.text,
            error=None if healthy else f"HTTP {response.status_code}",
        )

        if self.verbose:
            print(f"Health check {url}: {response.status_code}")

        return result
