"""Nested outer/inner control loop with checkpointed suspension."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..checkpoint.actions import ADVANCE_INNER, ADVANCE_OUTER, RESET_INNER
from ..checkpoint.store import CheckpointStore
from ..errors import CheckpointError
from ..interfaces import EnablementSignal, RecordStore, SubItemProcessor, WorkItemSource
from ..monitoring.metrics import LOOP_ERRORS, OUTER_ITEMS_COMPLETED, SUB_ITEMS_PROCESSED
from .quota import QuotaGate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class LoopOutcome(str, Enum):
    COMPLETED = "completed"
    SUSPENDED = "suspended"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class LoopResult:
    outcome: LoopOutcome
    outer_items: int = 0
    sub_items: int = 0
    resumed: bool = False
    error: str = ""


class ResumableLoop:
    """Walks outer items page by page and their sub-items from the checkpoint.

    The quota gate is consulted after every sub-item and again after each
    outer item's sub-item loop returns. Suspension persists the checkpoint;
    a disabled job or a processing error ends the invocation without one.
    """

    def __init__(
        self,
        store: CheckpointStore,
        gate: QuotaGate,
        source: WorkItemSource,
        records: RecordStore,
        processor: SubItemProcessor,
        enablement: EnablementSignal,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.store = store
        self.gate = gate
        self.source = source
        self.records = records
        self.processor = processor
        self.enablement = enablement
        self.page_size = page_size

    def run(self) -> LoopResult:
        state = self.store.current()
        result = LoopResult(outcome=LoopOutcome.COMPLETED, resumed=state.resumed)
        if state.resumed:
            logger.info(
                "Resuming from checkpoint at outer item %s, sub-item %s",
                state.outer_offset,
                state.inner_index,
                extra={"state": state.to_dict()},
            )
        else:
            logger.info("Starting loop", extra={"state": state.to_dict()})
        try:
            result.outcome = self._run_pages(result)
        except CheckpointError:
            raise
        except Exception as exc:
            logger.exception("Processing failed, stopping without checkpoint", extra={"state": self.store.current().to_dict()})
            LOOP_ERRORS.inc()
            result.outcome = LoopOutcome.FAILED
            result.error = str(exc)
        return result

    def _run_pages(self, result: LoopResult) -> LoopOutcome:
        while True:
            offset = self.store.current().outer_offset
            page = self.source.fetch_page(offset, self.page_size)
            if not page:
                logger.info("No more work items", extra={"offset": offset})
                return LoopOutcome.COMPLETED

            logger.debug("Fetched page", extra={"offset": offset, "size": len(page)})
            for ref in page:
                if not self.enablement.is_enabled():
                    logger.info("Job is no longer enabled, stopping", extra={"state": self.store.current().to_dict()})
                    return LoopOutcome.ABORTED

                item = self.records.load_outer(ref)
                logger.debug("Processing outer item", extra={"ref": ref, "state": self.store.current().to_dict()})
                finished = self._process_sub_items(item, result)
                if finished:
                    result.outer_items += 1
                    OUTER_ITEMS_COMPLETED.inc()

                if not finished or self.gate.must_suspend():
                    self.store.dispatch(ADVANCE_OUTER)
                    self.store.persist()
                    return LoopOutcome.SUSPENDED
                self.store.dispatch(ADVANCE_OUTER)

    def _process_sub_items(self, item: Any, result: LoopResult) -> bool:
        """Run the remaining sub-items of ``item``; False when suspended mid-way."""

        total = self.records.sub_item_count(item)
        for index in range(self.store.current().inner_index, total):
            sub_item_ref = self.records.load_sub_item_ref(item, index)
            self.processor.process(item, sub_item_ref)
            self.store.dispatch(ADVANCE_INNER)
            result.sub_items += 1
            SUB_ITEMS_PROCESSED.inc()
            if self.gate.must_suspend():
                return False

        self.store.dispatch(RESET_INNER)
        return True


__all__ = ["DEFAULT_PAGE_SIZE", "LoopOutcome", "LoopResult", "ResumableLoop"]
