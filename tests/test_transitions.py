import asyncio

import pytest

from conftest import NOW, raw_leak, raw_request
from uc_core_lib.core.exceptions import (
    NotificationWriteError,
    TransitionInFlightError,
    ValidationError,
    WriteError,
)
from uc_core_lib.core.notifications import NotificationEmitter
from uc_core_lib.core.projection import ProjectionStore
from uc_core_lib.core.transitions import TransitionExecutor, build_patch
from uc_core_lib.models import CaseKind, LeakStatus, RequestStatus, normalize_case


@pytest.fixture
def projection(call_log):
    store = ProjectionStore()
    store.replace_all(
        "requests",
        [normalize_case(CaseKind.SERVICE_REQUEST, "req-1", raw_request("req-1").data, now=NOW)],
    )
    store.replace_all(
        "leaks",
        [normalize_case(CaseKind.LEAK_REPORT, "leak-1", raw_leak("leak-1").data, now=NOW)],
    )
    store.add_listener(lambda collection: call_log.append(("projection", collection)))
    return store


@pytest.fixture
def executor(record_store, projection):
    return TransitionExecutor(record_store, projection, NotificationEmitter(record_store))


def test_completed_request_scenario(executor, projection, record_store):
    outcome = asyncio.run(executor.request_transition("req-1", "completed", remarks="fixed"))

    case = projection.get_case("requests", "req-1")
    assert case.status == RequestStatus.COMPLETED
    assert case.remarks == "fixed"
    assert outcome.previous_status == RequestStatus.PENDING
    assert outcome.new_status == RequestStatus.COMPLETED
    assert outcome.case == case

    notification = outcome.notification
    assert notification.account_number == "123456789"
    assert notification.status == "completed"
    assert notification.kind == CaseKind.SERVICE_REQUEST
    assert notification.kind.value == "request"
    assert notification.read is False
    assert notification.record_id == "req-1"

    assert record_store.patches == [("requests", "req-1", {"status": "completed", "remarks": "fixed"})]


def test_success_order_is_patch_then_projection_then_notification(executor, call_log):
    asyncio.run(executor.request_transition("leak-1", LeakStatus.RESOLVED))

    assert call_log == [
        ("patch", "leaks", "leak-1"),
        ("projection", "leaks"),
        ("add", "notifications/987654321/records"),
    ]


def test_leak_patch_writes_both_flags(executor, record_store, projection):
    asyncio.run(executor.request_transition("leak-1", "rejected", remarks="duplicate report"))

    assert record_store.patches == [
        ("leaks", "leak-1", {"resolved": False, "rejected": True, "remarks": "duplicate report"})
    ]
    case = projection.get_case("leaks", "leak-1")
    assert case.rejected and not case.resolved


def test_unknown_status_is_rejected_without_contacting_store(executor, record_store, projection, call_log):
    before = projection.get("requests")

    with pytest.raises(ValidationError):
        asyncio.run(executor.request_transition("req-1", "archived"))

    assert call_log == []
    assert record_store.patches == []
    assert projection.get("requests") == before
    assert not executor.is_in_flight("req-1")


def test_status_valid_for_other_kind_is_rejected(executor, record_store):
    with pytest.raises(ValidationError):
        asyncio.run(executor.request_transition("leak-1", "in-progress"))
    assert record_store.patches == []


def test_unknown_record_is_rejected(executor, record_store):
    with pytest.raises(ValidationError, match="Unknown record"):
        asyncio.run(executor.request_transition("nope", "completed"))
    assert record_store.log == []


def test_remote_failure_leaves_projection_and_sends_no_notification(
    executor, record_store, projection, store_error
):
    record_store.fail_patch = store_error

    with pytest.raises(WriteError) as excinfo:
        asyncio.run(executor.request_transition("req-1", "completed", remarks="fixed"))

    assert not isinstance(excinfo.value, NotificationWriteError)
    assert projection.get_case("requests", "req-1").status == RequestStatus.PENDING
    assert record_store.added == []
    assert not executor.is_in_flight("req-1")


def test_notification_failure_keeps_confirmed_status(executor, record_store, projection, store_error):
    record_store.fail_add = store_error

    with pytest.raises(NotificationWriteError) as excinfo:
        asyncio.run(executor.request_transition("req-1", "in-progress"))

    assert projection.get_case("requests", "req-1").status == RequestStatus.IN_PROGRESS
    assert excinfo.value.case.status == RequestStatus.IN_PROGRESS
    assert not executor.is_in_flight("req-1")


def test_back_to_back_transitions_second_is_refused(executor, record_store):
    async def scenario():
        record_store.patch_gate = asyncio.Event()
        first = asyncio.create_task(executor.request_transition("req-1", "in-progress"))
        await asyncio.sleep(0)
        assert executor.is_in_flight("req-1")

        with pytest.raises(TransitionInFlightError):
            await executor.request_transition("req-1", "completed")

        # other records are not blocked
        other = asyncio.create_task(executor.request_transition("leak-1", "resolved"))

        record_store.patch_gate.set()
        return await first, await other

    first, other = asyncio.run(scenario())

    assert first.new_status == RequestStatus.IN_PROGRESS
    assert other.new_status == LeakStatus.RESOLVED
    assert len(record_store.added) == 2
    assert sorted(patch[1] for patch in record_store.patches) == ["leak-1", "req-1"]
    assert not executor.is_in_flight("req-1")


def test_lock_released_allows_next_transition(executor, projection):
    asyncio.run(executor.request_transition("req-1", "in-progress"))
    asyncio.run(executor.request_transition("req-1", "completed"))

    assert projection.get_case("requests", "req-1").status == RequestStatus.COMPLETED


def test_leaving_terminal_leak_status_is_allowed(executor, projection):
    asyncio.run(executor.request_transition("leak-1", "resolved"))
    asyncio.run(executor.request_transition("leak-1", "pending"))

    assert projection.get_case("leaks", "leak-1").status == LeakStatus.PENDING


def test_record_dropped_by_feed_during_write_still_notifies(executor, record_store, projection):
    async def scenario():
        record_store.patch_gate = asyncio.Event()
        task = asyncio.create_task(executor.request_transition("req-1", "completed"))
        await asyncio.sleep(0)
        projection.replace_all("requests", [])
        record_store.patch_gate.set()
        return await task

    outcome = asyncio.run(scenario())

    assert outcome.case.status == RequestStatus.COMPLETED
    assert projection.get("requests") == ()
    assert len(record_store.added) == 1


def test_build_patch_omits_empty_remarks():
    assert build_patch(CaseKind.SERVICE_REQUEST, RequestStatus.REJECTED) == {"status": "rejected"}
    assert build_patch(CaseKind.LEAK_REPORT, LeakStatus.PENDING, "") == {
        "resolved": False,
        "rejected": False,
    }
