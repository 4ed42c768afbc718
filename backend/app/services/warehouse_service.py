r"""backend/app/services/warehouse_service.py

BigQuery bridge for forecast tables produced outside the dashboard.

The client posts a standard-SQL query to the BigQuery REST ``queries``
endpoint using the caller's bearer token, converts the response into a
:class:`WarehouseResult` and hands it to the normaliser.  Failures are
classified from the error text so the API can tell an expired token from a
missing table or a permission problem.  There are no retries.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests

from ..models.schemas import ForecastPoint, WarehouseConfig, WarehouseResult
from .normalizer_service import normalize_result

LOGGER = logging.getLogger(__name__)


class WarehouseError(Exception):
    """A warehouse request failed for a reason other than the classified ones."""

    code = "warehouse_error"


class WarehouseAuthError(WarehouseError):
    code = "warehouse_unauthorized"


class WarehouseNotFoundError(WarehouseError):
    code = "warehouse_not_found"


class WarehousePermissionError(WarehouseError):
    code = "warehouse_forbidden"


def classify_warehouse_error(message: str) -> WarehouseError:
    """Map a failure message onto the matching :class:`WarehouseError` subtype."""

    if "401" in message:
        return WarehouseAuthError(
            "Access token has expired. Generate a new token "
            "(e.g. `gcloud auth print-access-token`) and try again."
        )
    if "404" in message:
        return WarehouseNotFoundError(
            "Table not found. Please check the project, dataset and table ids."
        )
    if "403" in message:
        return WarehousePermissionError(
            "Permission denied. The token's account cannot read this table."
        )
    return WarehouseError(message or "Unknown BigQuery error")


def build_query(config: WarehouseConfig, limit: int) -> str:
    return f"SELECT * FROM `{config.table_path}` ORDER BY date ASC LIMIT {int(limit)}"


def result_from_payload(payload: Any) -> WarehouseResult:
    """Convert a BigQuery ``queries`` response into ``{column -> cell}`` rows.

    Raises :class:`WarehouseError` when the payload is not a JSON object.
    """

    if not isinstance(payload, dict):
        raise WarehouseError(
            f"Unexpected BigQuery response: expected an object, got {type(payload).__name__}"
        )
    fields = ((payload.get("schema") or {}).get("fields")) or []
    columns: List[str] = [str(field.get("name", "")) for field in fields]
    rows = []
    for raw_row in payload.get("rows") or []:
        cells = raw_row.get("f") or []
        rows.append(
            {
                column: (cells[index] or {}).get("v") if index < len(cells) else None
                for index, column in enumerate(columns)
            }
        )
    return WarehouseResult(columns=columns, rows=rows)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    message = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
    # Keep the status visible to the classifier when the body omits it.
    return f"{response.status_code}: {message or response.reason or 'Unknown BigQuery error'}"


class WarehouseClient:
    """Minimal BigQuery REST client bound to one HTTP session."""

    def __init__(
        self,
        api_url: str = "https://bigquery.googleapis.com/bigquery/v2",
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        row_limit: int = 1000,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.row_limit = row_limit

    # ------------------------------------------------------------------
    def _post_query(self, config: WarehouseConfig, limit: int) -> requests.Response:
        url = f"{self.api_url}/projects/{config.project_id}/queries"
        body = {"query": build_query(config, limit), "useLegacySql": False}
        headers = {
            "Authorization": f"Bearer {config.access_token}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            LOGGER.warning("BigQuery request to %s failed: %s", config.table_path, exc)
            raise WarehouseError(f"BigQuery request failed: {exc}") from exc

        if not response.ok:
            message = _error_message(response)
            LOGGER.warning("BigQuery rejected query on %s: %s", config.table_path, message)
            raise classify_warehouse_error(message)
        return response

    # ------------------------------------------------------------------
    def _query_payload(self, config: WarehouseConfig, limit: int) -> Any:
        response = self._post_query(config, limit)
        try:
            return response.json()
        except ValueError as exc:
            LOGGER.warning("BigQuery returned a non-JSON body for %s", config.table_path)
            raise WarehouseError(f"BigQuery response was not valid JSON: {exc}") from exc

    # ------------------------------------------------------------------
    def fetch_result(self, config: WarehouseConfig) -> WarehouseResult:
        payload = self._query_payload(config, self.row_limit)
        result = result_from_payload(payload)
        LOGGER.info(
            "Fetched %d rows (%d columns) from %s",
            len(result.rows),
            len(result.columns),
            config.table_path,
        )
        return result

    # ------------------------------------------------------------------
    def fetch_forecast(self, config: WarehouseConfig) -> List[ForecastPoint]:
        return normalize_result(self.fetch_result(config))

    # ------------------------------------------------------------------
    def test_connection(self, config: WarehouseConfig) -> bool:
        """Return ``True`` when a one-row query against the table is accepted.

        Only the response status matters; the body is not decoded.
        """

        try:
            self._post_query(config, 1)
        except WarehouseError:
            return False
        return True
