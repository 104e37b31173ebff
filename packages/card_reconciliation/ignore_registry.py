"""Ignore registry: items permanently excluded from one card/competency session.

Items are keyed by :class:`~card_reconciliation.models.SourceRef` (kind plus
id), since a transaction and an allocation may share an id. Membership is the
durable "don't show this again" override. The registry is loaded once per
session from the persistence collaborator and each toggle is applied to the
in-memory set first, then sent to the store. A failed store
call is logged and recorded in :attr:`IgnoreRegistry.pending_sync`; the
in-memory state is never rolled back, so the view stays usable while the
store catches up on the next successful toggle or a full reload.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import Executor, Future
from typing import Protocol

from .competency import Competency
from .logging_setup import get_logger
from .models import SourceRef

logger = get_logger("card_reconciliation.ignore_registry")


class IgnoreStore(Protocol):
    """Persistence collaborator keyed by ``(card_name, competency)``."""

    def get_ignored_ids(self, card_name: str, competency: str) -> list[SourceRef]: ...

    def add_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None: ...

    def remove_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None: ...


class IgnoreRegistry:
    """In-memory ignore set with optimistic, non-rolled-back persistence.

    Parameters
    ----------
    store:
        Optional persistence collaborator. ``None`` keeps the registry purely
        in memory (useful for dry runs and tests).
    executor:
        Optional executor. When given, store calls are submitted to it and the
        toggle returns immediately (fire-and-forget); otherwise the call runs
        inline. Either way failures are logged, not raised.
    """

    def __init__(
        self,
        store: IgnoreStore | None = None,
        *,
        ids: Iterable[SourceRef] = (),
        executor: Executor | None = None,
    ) -> None:
        self._store = store
        self._executor = executor
        self._ids: set[SourceRef] = set(ids)
        self._pending: set[SourceRef] = set()

    @classmethod
    def load(
        cls,
        store: IgnoreStore,
        card_name: str,
        competency: Competency | str,
        *,
        executor: Executor | None = None,
    ) -> IgnoreRegistry:
        """Fetch the persisted ids for ``(card_name, competency)`` once.

        Store errors propagate here: a session cannot start without knowing
        what the user already chose to hide.
        """

        ids = store.get_ignored_ids(card_name, str(competency))
        logger.info("Loaded %d ignored ids for %s/%s", len(ids), card_name, competency)
        return cls(store, ids=ids, executor=executor)

    def reload(self, card_name: str, competency: Competency | str) -> None:
        """Replace the in-memory set with what the store holds for a new key.

        A registry without a store is left as is.
        """

        if self._store is None:
            return
        ids = self._store.get_ignored_ids(card_name, str(competency))
        self._ids = set(ids)
        self._pending.clear()
        logger.info("Reloaded %d ignored ids for %s/%s", len(ids), card_name, competency)

    # ---- queries -------------------------------------------------------

    def is_ignored(self, ref: SourceRef) -> bool:
        return ref in self._ids

    def __contains__(self, ref: object) -> bool:
        return ref in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> frozenset[SourceRef]:
        return frozenset(self._ids)

    @property
    def pending_sync(self) -> frozenset[SourceRef]:
        """Items whose most recent persistence attempt failed."""

        return frozenset(self._pending)

    # ---- mutation ------------------------------------------------------

    def toggle(self, card_name: str, competency: Competency | str, ref: SourceRef) -> bool:
        """Flip membership of ``ref`` and request persistence.

        Returns the new membership (``True`` when the item is now ignored).
        """

        now_ignored = ref not in self._ids
        if now_ignored:
            self._ids.add(ref)
        else:
            self._ids.discard(ref)

        if self._store is None:
            return now_ignored

        comp = str(competency)
        if self._executor is None:
            self._persist(card_name, comp, ref, now_ignored)
        else:
            fut = self._executor.submit(self._persist, card_name, comp, ref, now_ignored)
            fut.add_done_callback(self._log_unexpected)
        return now_ignored

    def _persist(self, card_name: str, competency: str, ref: SourceRef, ignored: bool) -> None:
        assert self._store is not None
        try:
            if ignored:
                self._store.add_ignored_id(card_name, competency, ref)
            else:
                self._store.remove_ignored_id(card_name, competency, ref)
        except Exception as e:
            self._pending.add(ref)
            logger.warning(
                "Failed to persist ignore toggle for %s (%s/%s, ignored=%s): %s",
                ref,
                card_name,
                competency,
                ignored,
                e,
            )
            return
        self._pending.discard(ref)

    @staticmethod
    def _log_unexpected(fut: Future[None]) -> None:
        exc = fut.exception()
        if exc is not None:  # pragma: no cover - _persist already traps store errors
            logger.error("Ignore persistence task crashed: %s", exc)


__all__ = ["IgnoreRegistry", "IgnoreStore"]
