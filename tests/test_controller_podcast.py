import asyncio

from core.controller import PODCAST_KEY
from core.errors import CacheError, TransportError, ValidationError
from core.models import SearchResult, SelectionStatus

from conftest import DOC_A, DOC_B, LONG_TEXT, settle


async def test_podcast_requires_selected_text(controller, backend):
    await controller.select_document(DOC_A)

    outcome = await controller.generate_podcast()

    assert isinstance(outcome.error, ValidationError)
    assert backend.count("generate_podcast") == 0
    assert controller.snapshot().podcast is None


async def test_podcast_is_generated_from_selection_and_results(controller, backend, cache):
    await controller.select_document(DOC_A)
    await controller.select_text(LONG_TEXT)

    outcome = await controller.generate_podcast()

    state = controller.snapshot()
    assert outcome.ok
    assert outcome.value.audio_id == "audio-1"
    assert state.status == SelectionStatus.PODCAST_READY
    assert state.podcast.is_ready
    assert cache.get(PODCAST_KEY).path.read_bytes() == b"ID3-audio-1"

    _, (text, snippets, contradictions, viewpoints) = next(
        call for call in backend.calls if call[0] == "generate_podcast"
    )
    assert text == LONG_TEXT
    assert [s.document_id for s in snippets] == ["doc-b"]
    assert [c.keyword for c in contradictions] == ["growth"]
    assert viewpoints == []


async def test_repeated_request_joins_the_running_job(controller, backend):
    await controller.select_text(LONG_TEXT)
    release = backend.hold("generate_podcast")

    first = asyncio.ensure_future(controller.generate_podcast())
    await settle()
    second = asyncio.ensure_future(controller.generate_podcast())
    await settle()
    release.set()
    a, b = await asyncio.gather(first, second)

    assert backend.count("generate_podcast") == 1
    assert a.ok and b.ok
    assert a.value.audio_id == b.value.audio_id


async def test_superseded_podcast_is_never_attached(controller, backend, cache):
    await controller.select_text(LONG_TEXT)
    release = backend.hold("generate_podcast")
    task = asyncio.ensure_future(controller.generate_podcast())
    await settle()

    await controller.select_text("another passage that replaces the first")
    release.set()
    outcome = await task

    state = controller.snapshot()
    assert outcome.stale
    assert state.podcast is None
    assert state.status == SelectionStatus.RESULTS_READY
    assert PODCAST_KEY not in cache
    # The audio handle is still consumed on the server
    assert backend.count("fetch_podcast_audio") == 1


async def test_podcast_uses_results_as_they_were_when_requested(controller, backend):
    await controller.select_text(LONG_TEXT)
    release = backend.hold("fetch_podcast_audio")
    task = asyncio.ensure_future(controller.generate_podcast())
    await settle()

    controller.apply_search_result(controller.generation, SearchResult())
    assert controller.snapshot().status == SelectionStatus.PODCAST_IN_FLIGHT
    release.set()
    outcome = await task

    state = controller.snapshot()
    assert outcome.ok
    assert len(outcome.value.snapshot.snippets) == 1
    assert state.search.is_empty
    assert state.status == SelectionStatus.PODCAST_READY


async def test_podcast_before_results_uses_empty_snapshot(controller, backend):
    release = backend.hold("semantic_search")
    search = asyncio.ensure_future(controller.select_text(LONG_TEXT))
    await settle()

    outcome = await controller.generate_podcast()
    assert outcome.ok
    assert outcome.value.snapshot.is_empty

    release.set()
    assert (await search).ok
    state = controller.snapshot()
    assert state.status == SelectionStatus.PODCAST_READY
    assert len(state.search.snippets) == 1


async def test_podcast_failure_keeps_selection(controller, backend, cache):
    backend.failures["generate_podcast"] = TransportError("generate_podcast", "request timed out")
    await controller.select_text(LONG_TEXT)

    outcome = await controller.generate_podcast()

    state = controller.snapshot()
    assert not outcome.ok
    assert state.status == SelectionStatus.PODCAST_FAILED
    assert "timed out" in state.podcast.error
    assert state.selection.text == LONG_TEXT
    assert PODCAST_KEY not in cache


async def test_regenerating_replaces_previous_audio(controller, cache):
    await controller.select_text(LONG_TEXT)
    first = (await controller.generate_podcast()).value.audio
    second = (await controller.generate_podcast()).value.audio

    assert second.path.read_bytes() == b"ID3-audio-2"
    assert not first.path.exists()
    assert cache.created == 2
    assert cache.released == 1


async def test_new_document_releases_podcast_audio(controller, cache):
    await controller.select_document(DOC_A)
    await controller.select_text(LONG_TEXT)
    await controller.generate_podcast()
    audio = cache.get(PODCAST_KEY)

    await controller.select_document(DOC_B)

    state = controller.snapshot()
    assert not audio.path.exists()
    assert state.podcast is None
    assert PODCAST_KEY not in cache


async def test_unwritable_cache_marks_podcast_failed(controller, cache, monkeypatch):
    await controller.select_text(LONG_TEXT)

    def disk_full(key, data, suffix=""):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(cache, "materialize", disk_full)
    outcome = await controller.generate_podcast()

    state = controller.snapshot()
    assert isinstance(outcome.error, CacheError)
    assert state.status == SelectionStatus.PODCAST_FAILED
    assert "No space left" in state.podcast.error
    assert PODCAST_KEY not in cache
