"""HTTP client for the record search and record store service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..errors import LoadError, NotFound
from ..jobs.quota import UsageMeter

logger = logging.getLogger(__name__)


@dataclass
class OuterItem:
    record_id: str
    lines: List[Dict[str, Any]] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class RecordServiceClient:
    """Work-item source and record store backed by a JSON HTTP API.

    ``GET /records?offset=&limit=`` lists outer item references,
    ``GET /records/{id}`` returns an outer item with its ``lines`` and
    ``GET /items/{id}`` returns a sub-item record. Every request is charged
    to the usage meter, retries included.
    """

    def __init__(
        self,
        client: httpx.Client,
        meter: Optional[UsageMeter] = None,
        request_cost: float = 10.0,
        max_attempts: int = 3,
    ) -> None:
        self.client = client
        self.meter = meter
        self.request_cost = request_cost
        self.max_attempts = max_attempts

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, ref: Any = None) -> Any:
        try:
            for attempt in Retrying(
                reraise=True,
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception(_is_transient),
            ):
                with attempt:
                    if self.meter is not None:
                        self.meter.charge(self.request_cost)
                    response = self.client.get(path, params=params)
                    response.raise_for_status()
                    return response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise NotFound(f"{path} not found", ref=ref) from exc
            raise LoadError(f"{path} returned {exc.response.status_code}", ref=ref) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LoadError(f"{path} failed: {exc}", ref=ref) from exc

    def fetch_page(self, offset: int, page_size: int) -> List[str]:
        payload = self._get("/records", params={"offset": offset, "limit": page_size})
        return [str(entry["id"]) for entry in payload.get("results", [])]

    def load_outer(self, ref: str) -> OuterItem:
        payload = self._get(f"/records/{ref}", ref=ref)
        logger.debug("Loaded outer record", extra={"record_id": ref})
        return OuterItem(record_id=str(ref), lines=list(payload.get("lines", [])), data=payload)

    def sub_item_count(self, item: OuterItem) -> int:
        return len(item.lines)

    def load_sub_item_ref(self, item: OuterItem, index: int) -> Optional[str]:
        value = item.lines[index].get("item")
        return str(value) if value is not None else None

    def load_sub_item(self, ref: str) -> Dict[str, Any]:
        return self._get(f"/items/{ref}", ref=ref)


class LoadSubItemProcessor:
    """Reference workload: loads each sub-item record once."""

    def __init__(self, client: RecordServiceClient) -> None:
        self.client = client

    def process(self, item: OuterItem, sub_item_ref: Optional[str]) -> None:
        if not sub_item_ref:
            logger.debug("Line without item reference", extra={"record_id": item.record_id})
            return
        self.client.load_sub_item(sub_item_ref)
        logger.debug("Processed sub-item", extra={"record_id": item.record_id, "item_id": sub_item_ref})


__all__ = ["LoadSubItemProcessor", "OuterItem", "RecordServiceClient"]
