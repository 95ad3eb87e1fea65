import threading

from isc_sim.utils.command_log import CommandLog, CommandRecord


def _rec(i: int) -> CommandRecord:
    return CommandRecord(raw_input=f"$FCG,{i}", recognized=True, response_sent="x")


def test_read_since_cursor():
    log = CommandLog()
    for i in range(3):
        log.append(_rec(i))
    first, cursor = log.read_since(0)
    assert [r.raw_input for r in first] == ["$FCG,0", "$FCG,1", "$FCG,2"]
    assert cursor == 3

    none, cursor = log.read_since(cursor)
    assert none == [] and cursor == 3

    log.append(_rec(3))
    more, cursor = log.read_since(cursor)
    assert [r.raw_input for r in more] == ["$FCG,3"]
    assert cursor == 4
    assert len(log) == 4
    assert [r.raw_input for r in log.tail(2)] == ["$FCG,2", "$FCG,3"]
    assert log.tail(0) == []


def test_subscribers_see_every_record():
    log = CommandLog()
    seen = []
    log.subscribe(seen.append)
    for i in range(5):
        log.append(_rec(i))
    assert seen == log.read_all()


def test_concurrent_appends_keep_everything():
    log = CommandLog()

    def writer(base):
        for i in range(500):
            log.append(_rec(base + i))

    def reader():
        cursor = 0
        for _ in range(200):
            _, cursor = log.read_since(cursor)

    threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
    threads.append(threading.Thread(target=reader))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    records = log.read_all()
    assert len(records) == 2000
    # Per-writer order is preserved.
    values = [int(r.raw_input.split(",")[1]) for r in records]
    for n in range(4):
        mine = [v for v in values if v // 1000 == n]
        assert mine == list(range(n * 1000, n * 1000 + 500))


def test_record_str_marks_unrecognized():
    rec = CommandRecord(raw_input="$XYZ", recognized=False, response_sent="$XYZ,ERR07")
    assert "unrecognized" in str(rec)


def test_failing_subscriber_does_not_stop_append(caplog):
    log = CommandLog()
    seen = []

    def broken(_record):
        raise OSError("disk full")

    log.subscribe(broken)
    log.subscribe(seen.append)
    assert log.append(_rec(0)) == 0
    assert log.append(_rec(1)) == 1
    assert len(log) == 2
    assert [r.raw_input for r in seen] == ["$FCG,0", "$FCG,1"]
    assert "subscriber" in caplog.text
