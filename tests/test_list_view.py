"""Tests for the list controller: fetch lifecycle, optimistic create and paging."""

from __future__ import annotations

import json
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from http.client import RemoteDisconnected

import pytest

from shared.models import SortField, SortOrder, TransactionType
from ui.api_client import TransactionsApiClient
from ui.create_form import is_provisional
from ui.list_view import TransactionListView
from ui.state import SYNC_WARNING, Status
from tests.fakes import FakeTransactionsApiClient


def _view(**client_kwargs) -> tuple[TransactionListView, FakeTransactionsApiClient]:
    client = FakeTransactionsApiClient(**client_kwargs)
    view = TransactionListView(client, limit=2)
    return view, client


def test_load_fetches_first_page() -> None:
    view, client = _view()

    state = view.load()

    assert state is view.state
    assert view.state.status == Status.SUCCESS
    assert len(view.state.rows) == 2
    assert view.state.result.pagination.total_items == 3
    assert client.queries[0].page == 1


def test_fetch_failure_surfaces_error() -> None:
    view, _ = _view(fail_list=True)

    view.load()

    assert view.state.status == Status.ERROR
    assert view.state.error == "Database operation failed"


def test_keyboard_paging_fetches_next_page_and_clamps() -> None:
    view, client = _view()
    view.load()

    view.handle_key("ArrowRight")
    assert view.state.page == 2
    assert len(view.state.rows) == 1

    view.handle_key("ArrowRight")
    assert view.state.page == 2
    assert len(client.queries) == 2

    view.previous_page()
    assert view.state.page == 1


def test_toggle_sort_refetches_and_syncs_filter_panel() -> None:
    view, client = _view()
    view.load()

    view.toggle_sort("amount")

    assert client.queries[-1].sort_by == SortField.AMOUNT
    assert client.queries[-1].sort_order == SortOrder.ASC
    assert view.filter_panel.draft.sort_by == SortField.AMOUNT
    assert [row.amount for row in view.state.rows] == [Decimal("10.00"), Decimal("50.00")]


def test_apply_and_reset_filters() -> None:
    view, client = _view()
    view.load()

    view.filter_panel.set_type("credit")
    view.filter_panel.set_amount_range("40", None)
    view.apply_filters()

    assert client.queries[-1].type == TransactionType.CREDIT
    assert view.state.result.pagination.total_items == 2

    view.reset_filters()

    assert client.queries[-1].type is None
    assert client.queries[-1].min_amount is None
    assert view.state.result.pagination.total_items == 3


def test_optimistic_create_shows_row_before_write_completes() -> None:
    view, client = _view()
    view.load()
    seen_before_write = []

    original_create = client.create_transaction

    def _observing_create(**kwargs):
        seen_before_write.append(view.state.rows[0])
        return original_create(**kwargs)

    client.create_transaction = _observing_create

    provisional = view.submit_create("42.50", "credit")

    assert is_provisional(seen_before_write[0])
    assert seen_before_write[0].id == provisional.id
    assert view.state.result.pagination.total_items == 4
    assert view.state.rows[0].id == client.created[0].id
    assert view.state.warning is None
    assert view.form.amount == ""


def test_failed_write_keeps_row_and_warns() -> None:
    view, _ = _view(fail_create=True)
    view.load()

    provisional = view.submit_create("12", "debit")

    assert view.state.rows[0].id == provisional.id
    assert view.state.result.pagination.total_items == 4
    assert view.state.warning == SYNC_WARNING


def test_invalid_form_sets_error_without_touching_list() -> None:
    view, client = _view()
    view.load()
    before = view.state

    assert view.submit_create("-3", "credit") is None
    assert view.form_error == "Amount must be positive"
    assert view.state is before
    assert client.created == []


def test_listeners_receive_each_new_state() -> None:
    view, _ = _view()
    statuses: list[Status] = []
    view.subscribe(lambda state: statuses.append(state.status))

    view.load()

    assert statuses == [Status.LOADING, Status.SUCCESS]


class _ManualExecutor:
    """Executor that runs submitted work only when asked."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, object, tuple]] = []

    def submit(self, fn, *args):
        future: Future = Future()
        self.jobs.append((future, fn, args))
        return future

    def run(self, index: int) -> None:
        future, fn, args = self.jobs[index]
        if future.set_running_or_notify_cancel():
            future.set_result(fn(*args))


def test_superseded_fetch_is_cancelled_and_latest_wins() -> None:
    client = FakeTransactionsApiClient()
    executor = _ManualExecutor()
    view = TransactionListView(client, limit=2, executor=executor)

    view.load()
    view.toggle_sort(SortField.AMOUNT)

    assert executor.jobs[0][0].cancelled()

    executor.run(1)
    executor.run(0)

    assert len(client.queries) == 1
    assert view.state.status == Status.SUCCESS
    assert view.state.filters.sort_by == SortField.AMOUNT


class _EmptyPage:
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return json.dumps(
            {
                "status": "success",
                "data": [],
                "pagination": {"page": 1, "limit": 2, "totalItems": 0, "totalPages": 0},
            }
        ).encode("utf-8")


@pytest.mark.parametrize(
    "error",
    [RemoteDisconnected("Remote end closed connection without response"), TimeoutError("timed out")],
)
def test_dropped_connection_fails_fetch(monkeypatch: pytest.MonkeyPatch, error: Exception) -> None:
    def _fail(request, timeout):
        raise error

    monkeypatch.setattr("ui.api_client.urlopen", _fail)
    view = TransactionListView(TransactionsApiClient("http://api.test"), limit=2)

    view.load()

    assert view.state.status == Status.ERROR
    assert view.state.error.startswith("Unable to reach server")


@pytest.mark.parametrize(
    "error",
    [RemoteDisconnected("Remote end closed connection without response"), TimeoutError("timed out")],
)
def test_dropped_connection_during_create_keeps_row_and_warns(
    monkeypatch: pytest.MonkeyPatch, error: Exception
) -> None:
    def _fail_writes(request, timeout):
        if request.get_method() == "GET":
            return _EmptyPage()
        raise error

    monkeypatch.setattr("ui.api_client.urlopen", _fail_writes)
    view = TransactionListView(TransactionsApiClient("http://api.test"), limit=2)
    view.load()

    provisional = view.submit_create("12", "debit")

    assert view.state.rows[0].id == provisional.id
    assert view.state.warning == SYNC_WARNING


def test_listeners_observe_states_in_applied_order_across_threads() -> None:
    executor = ThreadPoolExecutor(max_workers=4)
    view = TransactionListView(FakeTransactionsApiClient(), limit=2, executor=executor)
    out_of_order: list[int] = []

    def _check(state) -> None:
        if state is not view.state:
            out_of_order.append(state.request_id)

    view.subscribe(_check)
    for _ in range(20):
        view.refresh()
    executor.shutdown(wait=True)

    assert out_of_order == []
    assert view.state.status == Status.SUCCESS
