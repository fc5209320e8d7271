import logging
from datetime import datetime, timezone

import pytest

from conftest import NOW, raw_leak, raw_request
from uc_core_lib.models import (
    CaseBase,
    ADDRESS_NOT_AVAILABLE,
    CaseKind,
    LeakReport,
    LeakStatus,
    RequestStatus,
    ServiceRequest,
    normalize_case,
    parse_status,
    status_values,
)


def test_request_normalization_maps_remote_fields():
    record = raw_request(remarks="called customer")
    case = normalize_case(CaseKind.SERVICE_REQUEST, record.id, record.data, now=NOW)

    assert isinstance(case, ServiceRequest)
    assert case.id == "req-1"
    assert case.kind == CaseKind.SERVICE_REQUEST
    assert case.account_number == "123456789"
    assert case.service_id == "SR-1001"
    assert case.type == "Maintenance"
    assert case.status == RequestStatus.PENDING
    assert case.remarks == "called customer"
    assert case.submitted_at.tzinfo is not None


def test_request_unknown_status_defaults_to_pending():
    case = normalize_case(CaseKind.SERVICE_REQUEST, "r", {"status": "escalated"}, now=NOW)
    assert case.status == RequestStatus.PENDING


def test_request_status_is_matched_case_insensitively():
    case = normalize_case(CaseKind.SERVICE_REQUEST, "r", {"status": " In-Progress "}, now=NOW)
    assert case.status == RequestStatus.IN_PROGRESS


def test_missing_fields_are_filled_with_defaults():
    case = normalize_case(CaseKind.SERVICE_REQUEST, "r", {}, now=NOW)

    assert case.account_number == ""
    assert case.email == ""
    assert case.attachment_uri == ""
    assert case.remarks is None
    assert case.submitted_at == NOW


def test_leak_missing_address_gets_placeholder():
    record = raw_leak()
    del record.data["address"]

    case = normalize_case(CaseKind.LEAK_REPORT, record.id, record.data, now=NOW)

    assert isinstance(case, LeakReport)
    assert case.address == ADDRESS_NOT_AVAILABLE
    assert case.address_missing


def test_leak_description_comes_from_leak_description_field():
    record = raw_leak()
    case = normalize_case(CaseKind.LEAK_REPORT, record.id, record.data, now=NOW)
    assert case.description == "Pipe burst near the meter"


@pytest.mark.parametrize(
    "resolved, rejected, expected",
    [
        (False, False, LeakStatus.PENDING),
        (True, False, LeakStatus.RESOLVED),
        (False, True, LeakStatus.REJECTED),
    ],
)
def test_leak_flags_map_to_status(resolved, rejected, expected):
    record = raw_leak(resolved=resolved, rejected=rejected)
    case = normalize_case(CaseKind.LEAK_REPORT, record.id, record.data, now=NOW)

    assert case.status == expected
    assert case.resolved == (expected == LeakStatus.RESOLVED)
    assert case.rejected == (expected == LeakStatus.REJECTED)


def test_leak_both_flags_true_is_corrected_to_rejected(caplog):
    record = raw_leak(resolved=True, rejected=True)

    with caplog.at_level(logging.WARNING, logger="uc_core_lib.models.case"):
        case = normalize_case(CaseKind.LEAK_REPORT, record.id, record.data, now=NOW)

    assert case.status == LeakStatus.REJECTED
    assert case.rejected and not case.resolved
    assert "Anomaly" in caplog.text


def test_unparseable_timestamp_falls_back_to_now():
    case = normalize_case(CaseKind.LEAK_REPORT, "l", {"timestamp": "last tuesday"}, now=NOW)
    assert case.submitted_at == NOW


def test_firestore_style_timestamp_is_accepted():
    case = normalize_case(
        CaseKind.SERVICE_REQUEST, "r", {"timestamp": {"seconds": 1760000000, "nanoseconds": 0}}, now=NOW
    )
    assert case.submitted_at == datetime.fromtimestamp(1760000000, tz=timezone.utc)


@pytest.mark.parametrize("payload", [None, [], "garbage", 42])
def test_non_mapping_payload_never_raises(payload):
    case = normalize_case(CaseKind.LEAK_REPORT, "l", payload, now=NOW)
    assert case.id == "l"
    assert case.status == LeakStatus.PENDING


def test_with_status_keeps_remarks_unless_given():
    record = raw_request(remarks="first note")
    case = normalize_case(CaseKind.SERVICE_REQUEST, record.id, record.data, now=NOW)

    unchanged_remarks = case.with_status(RequestStatus.IN_PROGRESS)
    new_remarks = case.with_status(RequestStatus.COMPLETED, "fixed")

    assert unchanged_remarks.remarks == "first note"
    assert new_remarks.status == RequestStatus.COMPLETED
    assert new_remarks.remarks == "fixed"
    assert case.status == RequestStatus.PENDING


def test_status_helpers():
    assert status_values(CaseKind.SERVICE_REQUEST) == ("pending", "in-progress", "completed", "rejected")
    assert status_values(CaseKind.LEAK_REPORT) == ("pending", "resolved", "rejected")
    assert parse_status(CaseKind.LEAK_REPORT, "resolved") == LeakStatus.RESOLVED
    assert parse_status(CaseKind.LEAK_REPORT, "completed") is None
    assert parse_status(CaseKind.SERVICE_REQUEST, None) is None
    assert LeakStatus.RESOLVED.is_terminal
    assert not RequestStatus.IN_PROGRESS.is_terminal


def test_request_type_bucket():
    inquiry = normalize_case(CaseKind.SERVICE_REQUEST, "a", {"type": "Service Inquiry"}, now=NOW)
    odd = normalize_case(CaseKind.SERVICE_REQUEST, "b", {"type": "Meter Transfer"}, now=NOW)

    assert inquiry.type_bucket == "Service Inquiry"
    assert odd.type_bucket == "Other"


def test_case_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        CaseBase(id="x", submitted_at=NOW)
