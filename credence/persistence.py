"""
Persistence Outbox — handing finished beliefs to the outside world.

Storage, minting, signing and access control all belong to external
collaborators. The pipeline's only obligation is to hand them an immutable
snapshot whenever a belief is created, evolved, merged or superseded, without
ever waiting on them: belief formation must not stall because a chain node or
database is slow.

Concurrency model:
  - enqueue() is synchronous and non-blocking; the pipeline calls it inline
  - A dispatcher task dequeues snapshots and invokes the hook (sync or async)
  - Failed deliveries are retried with exponential backoff
  - Delivery is idempotent, keyed by (belief_id, version, superseded): a
    snapshot whose key was already delivered is skipped, so a duplicate or
    retried hand-off never reaches the hook twice and never feeds back into
    belief formation
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, Literal, Optional

import structlog
from pydantic import BaseModel

from credence.beliefs.belief import Belief
from credence.config import PersistenceConfig

logger = structlog.get_logger(__name__)

SnapshotKind = Literal["belief.created", "belief.evolved", "belief.merged", "belief.superseded"]

# Hooks may be plain callables or coroutine functions.
PersistenceHook = Callable[["BeliefSnapshot"], Any] | Callable[
    ["BeliefSnapshot"], Coroutine[Any, Any, Any]
]


class BeliefSnapshot(BaseModel):
    """Immutable copy of a belief as handed to external persistence."""

    model_config = {"frozen": True}

    event_type: SnapshotKind
    agent_id: str
    belief_id: str
    version: int
    content: str
    confidence: float
    valence: float
    arousal: float
    primary_sources: tuple[str, ...]
    supporting_sources: tuple[str, ...]
    evidence_feelings: tuple[str, ...]
    evidence_contexts: tuple[str, ...]
    created_at: float
    last_update: float
    adaptability: float
    trust_score: float
    superseded: bool = False
    superseded_by: Optional[str] = None

    @classmethod
    def from_belief(cls, belief: Belief, event_type: SnapshotKind, agent_id: str) -> BeliefSnapshot:
        return cls(
            event_type=event_type,
            agent_id=agent_id,
            belief_id=belief.belief_id,
            version=belief.version,
            content=belief.content,
            confidence=belief.confidence,
            valence=belief.signature.valence,
            arousal=belief.signature.arousal,
            primary_sources=tuple(sorted(belief.sources.primary)),
            supporting_sources=tuple(sorted(belief.sources.supporting)),
            evidence_feelings=belief.evidence.feelings,
            evidence_contexts=belief.evidence.contexts,
            created_at=belief.formation.created_at,
            last_update=belief.formation.last_update,
            adaptability=belief.adaptability,
            trust_score=belief.trust_score,
            superseded=belief.superseded,
            superseded_by=belief.superseded_by,
        )

    @property
    def key(self) -> tuple[str, int, bool]:
        return (self.belief_id, self.version, self.superseded)


_SENTINEL = object()


class PersistenceOutbox:
    """Queue of belief snapshots awaiting delivery to a persistence hook."""

    def __init__(self, hook: PersistenceHook, config: Optional[PersistenceConfig] = None):
        self._hook = hook
        self._config = config or PersistenceConfig()
        self._queue: asyncio.Queue[BeliefSnapshot | object] = asyncio.Queue(
            maxsize=self._config.queue_size,
        )
        self._queued_keys: set[tuple[str, int, bool]] = set()
        self._delivered_keys: set[tuple[str, int, bool]] = set()
        self._failed: list[BeliefSnapshot] = []
        self._dispatcher_task: asyncio.Task[None] | None = None
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the dispatcher task."""
        if self._running:
            return
        self._running = True
        self._dispatcher_task = asyncio.create_task(
            self._dispatch_loop(), name="persistence-outbox-dispatcher"
        )
        logger.info("outbox.started")

    async def stop(self) -> None:
        """Deliver what is queued, then stop the dispatcher."""
        if not self._running:
            return
        self._running = False
        try:
            self._queue.put_nowait(_SENTINEL)
        except asyncio.QueueFull:
            logger.warning("outbox.stop_queue_full_cancelling_directly")
            if self._dispatcher_task is not None:
                self._dispatcher_task.cancel()
        if self._dispatcher_task is not None:
            try:
                await self._dispatcher_task
            except asyncio.CancelledError:
                pass
            self._dispatcher_task = None
        logger.info("outbox.stopped", delivered=len(self._delivered_keys), failed=len(self._failed))

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------

    def enqueue(self, snapshot: BeliefSnapshot) -> bool:
        """Queue a snapshot for delivery. Non-blocking and safe to call from sync code.

        Returns False when the snapshot's key was already queued or delivered,
        or when the queue is full. A snapshot turned away by a full queue is
        recorded in ``failed`` so the host can enqueue it again later.
        """
        key = snapshot.key
        if key in self._delivered_keys or key in self._queued_keys:
            logger.debug("outbox.duplicate_skipped", belief_id=snapshot.belief_id, version=snapshot.version)
            return False
        try:
            self._queue.put_nowait(snapshot)
        except asyncio.QueueFull:
            logger.warning(
                "outbox.queue_full",
                belief_id=snapshot.belief_id,
                version=snapshot.version,
            )
            self._failed.append(snapshot)
            return False
        self._queued_keys.add(key)
        return True

    def requeue_failed(self) -> int:
        """Enqueue every failed snapshot again; returns how many were accepted."""
        failed, self._failed = self._failed, []
        return sum(1 for snapshot in failed if self.enqueue(snapshot))

    async def flush(self) -> None:
        """Wait until every queued snapshot has been delivered or given up on."""
        if not self._running:
            await self.drain()
            return
        await self._queue.join()

    async def drain(self) -> int:
        """Deliver everything currently queued in the calling task.

        For hosts that do not run the dispatcher; returns the number of
        snapshots processed.
        """
        processed = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            try:
                if item is not _SENTINEL:
                    await self._deliver(item)  # type: ignore[arg-type]
                    processed += 1
            finally:
                self._queue.task_done()
        return processed

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------

    async def _dispatch_loop(self) -> None:
        """Dequeue snapshots and deliver them one at a time, in order."""
        while True:
            item = await self._queue.get()
            try:
                if item is _SENTINEL:
                    break
                await self._deliver(item)  # type: ignore[arg-type]
            finally:
                self._queue.task_done()

    async def _deliver(self, snapshot: BeliefSnapshot) -> bool:
        key = snapshot.key
        self._queued_keys.discard(key)
        if key in self._delivered_keys:
            return True

        attempts = self._config.max_retries + 1
        for attempt in range(attempts):
            try:
                result = self._hook(snapshot)
                if asyncio.iscoroutine(result) or asyncio.isfuture(result):
                    await result
            except Exception:
                logger.warning(
                    "outbox.delivery_failed",
                    belief_id=snapshot.belief_id,
                    version=snapshot.version,
                    attempt=attempt + 1,
                    exc_info=True,
                )
                if attempt + 1 < attempts:
                    delay = min(
                        self._config.max_delay,
                        self._config.base_delay * (2 ** attempt),
                    )
                    await asyncio.sleep(delay)
                continue
            self._delivered_keys.add(key)
            logger.debug(
                "outbox.delivered",
                event_type=snapshot.event_type,
                belief_id=snapshot.belief_id,
                version=snapshot.version,
            )
            return True

        self._failed.append(snapshot)
        logger.error(
            "outbox.gave_up",
            belief_id=snapshot.belief_id,
            version=snapshot.version,
            attempts=attempts,
        )
        return False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def pending(self) -> int:
        return len(self._queued_keys)

    @property
    def delivered_keys(self) -> frozenset[tuple[str, int, bool]]:
        return frozenset(self._delivered_keys)

    @property
    def failed(self) -> tuple[BeliefSnapshot, ...]:
        return tuple(self._failed)

    @property
    def is_running(self) -> bool:
        return self._running
