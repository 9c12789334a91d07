"""
Concurrency-bounded queue scheduler.

Admission is re-evaluated on every workspace mutation: while fewer than
``limit`` documents of the active case are inside a pipeline stage, the
earliest-uploaded QUEUED document that has binary content is moved to
GENERATING_PROSE and its pipeline is started as an asyncio task.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from apps.worker.state_machine import begin_prose
from apps.worker.workspace import Workspace
from packages.shared.models import ProcessedDocument, ProcessingStatus

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY_LIMIT = 2

PipelineRunner = Callable[[str], Awaitable[None]]


def in_flight_count(documents: list[ProcessedDocument]) -> int:
    return sum(1 for d in documents if d.is_in_flight)


def select_next_admission(documents: list[ProcessedDocument], limit: int) -> Optional[str]:
    """Id of the single document to admit next, or None if nothing can start."""
    if in_flight_count(documents) >= limit:
        return None
    # sorted() is stable, so equal timestamps keep insertion order
    queued = sorted(
        (d for d in documents if d.status == ProcessingStatus.QUEUED and d.has_binary),
        key=lambda d: d.uploaded_at,
    )
    return queued[0].id if queued else None


class QueueScheduler:
    def __init__(
        self,
        workspace: Workspace,
        runner: PipelineRunner,
        limit: int = DEFAULT_CONCURRENCY_LIMIT,
    ):
        if limit < 1:
            raise ValueError("concurrency limit must be at least 1")
        self.workspace = workspace
        self.runner = runner
        self.limit = limit
        self._tasks: set[asyncio.Task] = set()
        self._pumping = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.workspace.subscribe(self.on_change)
        self.on_change(self.workspace)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def on_change(self, workspace: Workspace) -> None:
        # Admission itself mutates the workspace and re-enters here.
        if self._pumping:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; admission deferred")
            return

        self._pumping = True
        try:
            while True:
                doc_id = select_next_admission(workspace.active_documents(), self.limit)
                if doc_id is None:
                    break
                self._admit(doc_id)
        finally:
            self._pumping = False

    def _admit(self, doc_id: str) -> None:
        if not self.workspace.update_document(doc_id, begin_prose):
            return
        logger.info(f"[{doc_id}] Admitted to pipeline")
        task = asyncio.create_task(self.runner(doc_id), name=f"pipeline-{doc_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Pipeline task {task.get_name()} raised", exc_info=task.exception())

    async def wait_idle(self) -> None:
        """Wait until every admitted pipeline, including ones admitted meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
