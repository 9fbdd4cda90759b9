import pytest

from app.branchflow.services.transfer_workflow import (
    ScanStatus,
    TransferStatus,
    compute_transfer_status,
    count_side,
)

P = ScanStatus.PENDING.value
R = ScanStatus.RECEIVED.value
N = ScanStatus.NOT_RECEIVED.value


def _expected(total, courier, store):
    c_pending, c_received, c_rejected = courier
    s_pending, s_received, s_rejected = store
    status = TransferStatus.PENDING
    if total == 0:
        return status
    if c_pending == 0:
        if c_received == total:
            status = TransferStatus.IN_TRANSIT_COMPLETE
        elif c_received > 0:
            status = TransferStatus.IN_TRANSIT_PARTIAL
        elif c_rejected == total:
            status = TransferStatus.FAILED
    if s_pending == 0:
        if s_received == total:
            status = TransferStatus.COMPLETED
        elif s_received > 0:
            status = TransferStatus.INCOMPLETE
        elif s_rejected == total:
            status = TransferStatus.FAILED
    return status


def _partitions(total):
    for pending in range(total + 1):
        for received in range(total - pending + 1):
            yield pending, received, total - pending - received


def _pairs(courier, store):
    courier_statuses = [P] * courier[0] + [R] * courier[1] + [N] * courier[2]
    store_statuses = [P] * store[0] + [R] * store[1] + [N] * store[2]
    return list(zip(courier_statuses, store_statuses))


@pytest.mark.parametrize("total", [1, 2, 3, 4])
def test_every_partition_matches_block_rules(total):
    for courier in _partitions(total):
        for store in _partitions(total):
            pairs = _pairs(courier, store)
            assert compute_transfer_status(pairs) == _expected(total, courier, store)


def test_empty_item_list_is_pending():
    assert compute_transfer_status([]) is TransferStatus.PENDING


def test_aggregation_is_idempotent():
    pairs = [(R, R), (R, N), (N, P)]
    first = compute_transfer_status(pairs)
    second = compute_transfer_status(pairs)
    assert first == second == TransferStatus.IN_TRANSIT_PARTIAL


def test_store_outcome_overrides_courier_outcome():
    pairs = [(N, R), (N, R)]
    assert compute_transfer_status(pairs) is TransferStatus.COMPLETED


def test_all_rejected_by_courier_is_failed():
    assert compute_transfer_status([(N, P), (N, P)]) is TransferStatus.FAILED


def test_partial_store_acceptance_is_incomplete():
    pairs = [(R, R), (R, R), (R, N)]
    assert compute_transfer_status(pairs) is TransferStatus.INCOMPLETE


def test_unknown_values_count_as_pending():
    counts = count_side(["received", "garbage", None, "NOT_RECEIVED"])
    assert counts.received == 1
    assert counts.rejected == 1
    assert counts.pending == 2
    assert counts.total == 4


def test_scan_status_parse_is_case_insensitive():
    assert ScanStatus.parse(" Received ") is ScanStatus.RECEIVED
    assert ScanStatus.parse("not_received") is ScanStatus.NOT_RECEIVED
    assert ScanStatus.parse("lost") is None
