# File: state/autosave.py
from typing import Callable, Optional
import logging
import threading

from state.draft_store import DraftStore
from state.entry_form_store import EntryFormStore

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 2.0

WATCHED_FIELDS = {"entry_id", "title", "description", "authors", "molecule", "is_dirty"}


class AutoSave:
    """
    Debounced draft persistence. One pending timer at most: each relevant
    change while the form is dirty cancels it and schedules a new one.
    """

    def __init__(
        self,
        store: EntryFormStore,
        drafts: DraftStore,
        delay: float = DEBOUNCE_SECONDS,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.store = store
        self.drafts = drafts
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._unsubscribe = store.subscribe(self._on_change)

    def _on_change(self, field_name: str) -> None:
        if field_name not in WATCHED_FIELDS:
            return
        if not self.store.is_dirty:
            # A clean form (fresh or just submitted) has nothing left to save
            if field_name == "is_dirty":
                self.cancel()
            return
        self._schedule()

    def _schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        logger.debug("Autosaving entry draft")
        self.drafts.save_draft()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def flush(self) -> None:
        """Saves immediately if a save is pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            self.drafts.save_draft()

    def cancel(self) -> None:
        """Drops the pending save, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def stop(self) -> None:
        self.cancel()
        self._unsubscribe()
