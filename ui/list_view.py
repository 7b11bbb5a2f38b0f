"""Transaction list controller driving the list state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor, Future
from threading import RLock

from pydantic import ValidationError as PydanticValidationError

from shared.models import SortField, Transaction
from ui.api_client import ApiError, TransactionsApiClient
from ui.create_form import CreateTransactionForm, FormError, provisional_transaction
from ui.filters import FilterPanel
from ui.state import (
    DEFAULT_LIMIT,
    CreateSynced,
    CreateSyncFailed,
    Event,
    FetchFailed,
    FetchSucceeded,
    KeyPressed,
    ListState,
    OptimisticCreated,
    PageChanged,
    RefreshRequested,
    SortToggled,
    WarningDismissed,
    build_query,
    reduce,
)


logger = logging.getLogger(__name__)


Listener = Callable[[ListState], None]


class TransactionListView:
    """Owns the list state and performs the network calls its transitions ask for.

    Without an executor every call runs inline. With one, fetches and create
    writes run in the background; a fetch that has not started yet is
    cancelled when a newer one supersedes it, and any late result for an
    old request id is ignored by the state machine.
    """

    def __init__(
        self,
        client: TransactionsApiClient,
        *,
        limit: int = DEFAULT_LIMIT,
        executor: Executor | None = None,
    ) -> None:
        self._client = client
        self._executor = executor
        self._lock = RLock()
        self._listeners: list[Listener] = []
        self._pending_fetch: Future | None = None
        self.state = ListState(limit=limit)
        self.filter_panel = FilterPanel()
        self.form = CreateTransactionForm()
        self.form_error: str | None = None

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: Event) -> ListState:
        with self._lock:
            before = self.state
            self.state = reduce(before, event)
            after = self.state
            # Listeners run under the lock; notification order matches the order states were applied.
            if after is not before:
                for listener in self._listeners:
                    listener(after)

        if after.request_id != before.request_id:
            self._schedule_fetch(after)
        return after

    def _schedule_fetch(self, state: ListState) -> None:
        if self._executor is None:
            self._fetch(state)
            return
        if self._pending_fetch is not None and not self._pending_fetch.done():
            self._pending_fetch.cancel()
        self._pending_fetch = self._executor.submit(self._fetch, state)

    def _fetch(self, state: ListState) -> None:
        try:
            query = build_query(state)
        except PydanticValidationError as exc:
            self.dispatch(FetchFailed(state.request_id, str(exc.errors()[0].get("msg", "Invalid filters"))))
            return

        try:
            result = self._client.list_transactions(query)
        except ApiError as exc:
            logger.warning(
                "transactions_fetch_failed request_id=%s status_code=%s message=%s",
                state.request_id,
                exc.status_code,
                exc.message,
            )
            self.dispatch(FetchFailed(state.request_id, exc.message or "Failed to load transactions"))
            return
        self.dispatch(FetchSucceeded(state.request_id, result))

    def load(self) -> ListState:
        return self.dispatch(RefreshRequested())

    refresh = load

    def go_to_page(self, page: int) -> ListState:
        return self.dispatch(PageChanged(page))

    def next_page(self) -> ListState:
        return self.handle_key("ArrowRight")

    def previous_page(self) -> ListState:
        return self.handle_key("ArrowLeft")

    def handle_key(self, key: str) -> ListState:
        return self.dispatch(KeyPressed(key))

    def toggle_sort(self, column: SortField | str) -> ListState:
        state = self.dispatch(SortToggled(SortField(column)))
        self.filter_panel.sync(state.filters)
        return state

    def apply_filters(self) -> ListState:
        return self.dispatch(self.filter_panel.apply())

    def reset_filters(self) -> ListState:
        return self.dispatch(self.filter_panel.reset())

    def dismiss_warning(self) -> ListState:
        return self.dispatch(WarningDismissed())

    def submit_create(self, amount: str, type: str) -> Transaction | None:
        """Show the new row immediately, then write it to the server.

        Returns the provisional row, or None when the form is invalid. A
        failed write keeps the row and raises a sync warning instead.
        """

        self.form.amount = amount
        self.form.type = type
        self.form_error = None
        try:
            payload = self.form.validate()
        except FormError as exc:
            self.form_error = str(exc)
            return None

        provisional = provisional_transaction(payload)
        self.dispatch(OptimisticCreated(provisional))

        if self._executor is None:
            self._sync_create(provisional)
        else:
            self._executor.submit(self._sync_create, provisional)
        return provisional

    def _sync_create(self, provisional: Transaction) -> None:
        try:
            created = self._client.create_transaction(
                amount=provisional.amount,
                type=provisional.type,
                timestamp=provisional.timestamp,
            )
        except ApiError as exc:
            logger.warning(
                "transaction_sync_failed temp_id=%s status_code=%s message=%s",
                provisional.id,
                exc.status_code,
                exc.message,
            )
            self.dispatch(CreateSyncFailed(provisional.id))
            return

        self.form.clear()
        self.dispatch(CreateSynced(provisional.id, created))
