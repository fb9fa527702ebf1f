import pytest

from oplog import OperationLog, OperationRecord


def rec(n):
    r = OperationRecord("ADDRESS_TRANSLATION", 1, n)
    r.add("TLB_HIT", f"hit {n}", frame=0)
    return r


def filled(count):
    log = OperationLog()
    for i in range(count):
        log.append(rec(i))
    return log


def test_empty_log():
    log = OperationLog()
    assert len(log) == 0
    assert log.cursor == -1
    assert log.current() is None
    assert not log.back()
    assert not log.forward()


def test_append_moves_cursor_to_end():
    log = filled(3)
    assert log.cursor == 2
    assert log.at_end
    assert log.current().vaddr == 2


def test_back_and_forward():
    log = filled(3)
    assert log.back()
    assert log.back()
    assert log.current().vaddr == 0
    assert not log.back()
    assert log.forward()
    assert log.current().vaddr == 1
    assert log.visible() == log.records[:2]


def test_append_after_rewind_truncates_tail():
    log = filled(4)
    log.back()
    log.back()
    log.append(rec(99))
    assert [r.vaddr for r in log.records] == [0, 1, 99]
    assert log.at_end


def test_seek_bounds():
    log = filled(2)
    log.seek(0)
    assert log.current().vaddr == 0
    log.seek(-1)
    assert log.current() is None
    with pytest.raises(IndexError):
        log.seek(2)


def test_record_steps_keep_order_and_data():
    r = OperationRecord("PAGE_FAULT_HANDLING", 2, 4096)
    r.add("PAGE_EVICTION", "evict", frame=1)
    r.add("SWAP_OUT", "out", slot=0)
    assert r.step_names == ["PAGE_EVICTION", "SWAP_OUT"]
    assert r.steps[1].data == {"slot": 0}
    assert r.timestamp > 0


def test_clear():
    log = filled(2)
    log.clear()
    assert len(log) == 0
    assert log.cursor == -1
