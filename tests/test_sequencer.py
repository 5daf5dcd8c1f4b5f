import asyncio

from core.errors import TransportError
from core.sequencer import RequestSequencer


async def _value(result, gate=None):
    if gate is not None:
        await gate.wait()
    return result


async def _fail(error):
    raise error


def test_advance_is_monotonic():
    seq = RequestSequencer()
    assert seq.current == 0
    assert [seq.advance() for _ in range(3)] == [1, 2, 3]
    assert seq.is_current(3)
    assert not seq.is_current(2)


async def test_track_returns_value_for_current_generation():
    seq = RequestSequencer()
    g = seq.advance()
    tagged = await seq.track(g, _value("ok"))
    assert tagged.ok
    assert tagged.value == "ok"
    assert tagged.generation == g


async def test_older_request_finishing_last_is_stale():
    seq = RequestSequencer()
    gate = asyncio.Event()
    old = seq.advance()
    old_task = asyncio.ensure_future(seq.track(old, _value("old", gate)))
    new = seq.advance()

    newer = await seq.track(new, _value("new"))
    gate.set()
    older = await old_task

    assert newer.ok and newer.value == "new"
    assert older.stale
    assert not older.ok


async def test_errors_are_captured_not_raised():
    seq = RequestSequencer()
    g = seq.advance()
    tagged = await seq.track(g, _fail(TransportError("semantic_search", "boom", 502)))
    assert not tagged.stale
    assert tagged.error.status_code == 502


async def test_error_from_superseded_generation_is_stale():
    seq = RequestSequencer()
    g = seq.advance()
    gate = asyncio.Event()

    async def _late_failure():
        await gate.wait()
        raise TransportError("fetch_sections", "gone", 404)

    task = asyncio.ensure_future(seq.track(g, _late_failure()))
    seq.advance()
    gate.set()
    tagged = await task
    assert tagged.stale
    assert tagged.error is not None


async def test_ok_is_false_for_current_failure():
    seq = RequestSequencer()
    g = seq.advance()
    tagged = await seq.track(g, _fail(TransportError("fetch_sections", "gone", 404)))
    assert not tagged.ok
    assert not tagged.stale
