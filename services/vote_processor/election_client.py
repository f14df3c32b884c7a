"""HTTP client for the election service validation endpoint."""

import logging
from dataclasses import dataclass

import httpx

from .config import Config

logger = logging.getLogger(__name__)


class ElectionServiceError(Exception):
    """Raised when the election service cannot be reached."""
    pass


@dataclass
class ValidationResult:
    """Outcome of a validation call."""
    status_code: int
    detail: str = ""

    @property
    def accepted(self) -> bool:
        return self.status_code == httpx.codes.OK


class ElectionServiceClient:
    """Synchronous client for GET /election/{id}/validate."""

    def __init__(self, base_url: str = None, timeout: float = None, client: httpx.Client = None):
        """
        Args:
            base_url: Election service base URL
            timeout: Request timeout in seconds
            client: Preconfigured httpx client, used as-is when given
        """
        self._owns_client = client is None
        self.client = client or httpx.Client(
            base_url=base_url or Config.ELECTION_SERVICE,
            timeout=timeout if timeout is not None else Config.VALIDATION_TIMEOUT
        )

    def validate(self, election_id: int, candidate: str) -> ValidationResult:
        """
        Ask the election service whether a vote is acceptable.

        Args:
            election_id: Election identifier
            candidate: Candidate name to check against the ballot

        Returns:
            ValidationResult with the response status code

        Raises:
            ElectionServiceError: On transport failure or timeout
        """
        try:
            response = self.client.get(
                f"/election/{election_id}/validate",
                params={"candidate": candidate}
            )
        except httpx.HTTPError as e:
            raise ElectionServiceError(f"validation request failed: {e}") from e

        detail = ""
        if response.status_code != httpx.codes.OK:
            detail = _error_message(response)
        logger.debug(f"Validation of election {election_id}: {response.status_code} {detail}")
        return ValidationResult(status_code=response.status_code, detail=detail)

    def close(self):
        if self._owns_client:
            self.client.close()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)
