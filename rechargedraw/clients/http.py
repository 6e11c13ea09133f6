import logging
from typing import Any, Callable, Mapping, Optional, TypeVar
from urllib.parse import urljoin

import requests

from ..config import Settings
from ..errors import ConflictError, DrawServiceError, NotFoundError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceClient:
    """Thin JSON-over-HTTP wrapper shared by the draw and winner clients.

    Every call names the repository operation it serves so that failures can
    be reported against that operation.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        session: Optional[requests.Session] = None,
    ):
        settings = settings or Settings.from_env()
        if not settings.api_url:
            raise ValueError("Environment variable 'DRAW_API_URL' is not set")

        self.base_url = settings.api_url.rstrip("/")
        self.token = settings.api_token
        self.timeout = settings.timeout
        self.session = session or requests.Session()

    # -------- headers --------
    @property
    def headers(self) -> Mapping[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    # -------- core request --------
    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        try:
            r = self.session.request(
                method=method.upper(),
                url=url,
                headers=self.headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"{operation}: {method.upper()} {path} unreachable: {e}")
            raise TransportError(operation, f"service unreachable: {e}") from e
        except requests.RequestException as e:
            logger.error(f"{operation}: {method.upper()} {path} failed: {e}")
            raise TransportError(operation, str(e)) from e

        status = r.status_code
        if status >= 400:
            message = _error_message(r)
            logger.debug(f"{operation}: {method.upper()} {path} returned {status}: {message}")
            if status == 404:
                raise NotFoundError(operation, message, status_code=status)
            if status == 409:
                raise ConflictError(operation, message, status_code=status)
            raise TransportError(operation, message, status_code=status)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise TransportError(operation, "response was not valid JSON", status_code=status) from e


def _error_message(response: requests.Response) -> str:
    """Prefer the service's ``error``/``message`` field over the bare status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            if body.get(key):
                return str(body[key])
    return f"HTTP error! status: {response.status_code}"


def parse_payload(operation: str, payload: Any, parser: Callable[[Any], T]) -> T:
    """Run ``parser`` over a response body, reporting malformed data as a transport error."""
    try:
        return parser(payload)
    except DrawServiceError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(operation, f"malformed response: {e}") from e
