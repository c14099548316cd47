import threading

from src.ai_layer.channel import AdvisoryChannel, Purpose
from src.simulation_layer.exceptions import AdvisoryUnavailable


def _echo(value):
    return value


def _blocked(gate: threading.Event, value):
    gate.wait(timeout=5)
    return value


def _unavailable():
    raise AdvisoryUnavailable("provider down")


def _broken():
    raise RuntimeError("bug")


def test_finished_request_is_collected_once(channel):
    token = channel.request(Purpose.GOAL, _echo, "goal!", day=1)
    channel.wait_idle()

    results = channel.collect(day=2)

    assert [(r.token, r.value, r.ok) for r in results] == [(token, "goal!", True)]
    assert channel.collect(day=3) == []
    assert not channel.pending(Purpose.GOAL)


def test_unfinished_request_stays_pending(channel):
    gate = threading.Event()
    channel.request(Purpose.EVENT, _blocked, gate, "late", day=1)

    assert channel.collect(day=2) == []
    assert channel.pending(Purpose.EVENT)

    gate.set()
    channel.wait_idle()
    assert [r.value for r in channel.collect(day=3)] == ["late"]


def test_new_request_supersedes_old_one(channel):
    gate = threading.Event()
    first = channel.request(Purpose.ACTION, _blocked, gate, "old", day=1)
    second = channel.request(Purpose.ACTION, _blocked, gate, "new", day=1)
    gate.set()
    channel.wait_idle()

    results = channel.collect(day=2)

    assert second.seq > first.seq
    assert [(r.token, r.value) for r in results] == [(second, "new")]


def test_purposes_are_independent_and_ordered_by_issue(channel):
    goal = channel.request(Purpose.GOAL, _echo, 1, day=1)
    event = channel.request(Purpose.EVENT, _echo, 2, day=1)
    channel.wait_idle()

    assert [r.token for r in channel.collect(day=2)] == [goal, event]


def test_reset_drops_in_flight_work(channel):
    gate = threading.Event()
    channel.request(Purpose.GOAL, _blocked, gate, "stale", day=1)
    epoch = channel.epoch

    channel.reset()
    gate.set()

    assert channel.epoch == epoch + 1
    assert channel.collect(day=2) == []
    assert not channel.pending(Purpose.GOAL)
    assert channel.request(Purpose.GOAL, _echo, "fresh", day=2).epoch == epoch + 1


def test_request_times_out_after_timeout_ticks(channel):
    gate = threading.Event()
    channel.request(Purpose.EVENT, _blocked, gate, "never", day=1)
    try:
        assert channel.collect(day=3) == []
        results = channel.collect(day=1 + channel.timeout_ticks)
        assert len(results) == 1
        assert not results[0].ok
        assert results[0].error == "timed out"
        assert results[0].purpose == Purpose.EVENT
    finally:
        gate.set()


def test_failures_come_back_as_errors(channel, caplog):
    channel.request(Purpose.GOAL, _unavailable, day=1)
    channel.request(Purpose.EVENT, _broken, day=1)
    channel.wait_idle()

    with caplog.at_level("WARNING"):
        results = {r.purpose: r for r in channel.collect(day=2)}

    assert results[Purpose.GOAL].error == "provider down"
    assert results[Purpose.EVENT].error == "bug"
    assert "unavailable" in caplog.text
    assert "failed unexpectedly" in caplog.text


def test_outstanding_token_tracks_latest(channel):
    gate = threading.Event()
    assert channel.outstanding_token(Purpose.GOAL) is None
    token = channel.request(Purpose.GOAL, _blocked, gate, "x", day=1)
    assert channel.outstanding_token(Purpose.GOAL) == token
    gate.set()
