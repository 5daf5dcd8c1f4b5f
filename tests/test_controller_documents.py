import asyncio

from core.controller import DOCUMENT_KEY
from core.errors import CacheError, TransportError
from core.models import SelectionStatus, Snippet

from conftest import DOC_A, DOC_B, settle


async def test_select_document_loads_pdf_and_sections(controller, cache):
    outcome = await controller.select_document(DOC_A)

    state = controller.snapshot()
    assert outcome.ok
    assert state.status == SelectionStatus.DOCUMENT_READY
    assert state.selection.document == DOC_A
    assert [s.title for s in state.sections] == ["Intro", "Method"]
    assert state.document_url == cache.get(DOCUMENT_KEY).url
    assert cache.get(DOCUMENT_KEY).path.read_bytes() == b"%PDF-alpha"


async def test_selecting_same_document_twice_fetches_once(controller, backend):
    await controller.select_document(DOC_A)
    generation = controller.generation
    outcome = await controller.select_document(DOC_A)

    assert outcome.ok
    assert controller.generation == generation
    assert backend.count("fetch_document_binary") == 1
    assert backend.count("fetch_sections") == 1


async def test_double_click_while_loading_is_still_one_fetch(controller, backend):
    first = asyncio.ensure_future(controller.select_document(DOC_A))
    second = asyncio.ensure_future(controller.select_document(DOC_A))
    await asyncio.gather(first, second)

    assert backend.count("fetch_document_binary") == 1
    assert backend.count("fetch_sections") == 1


async def test_superseded_document_response_never_applies(controller, backend, cache):
    release_a = backend.hold("fetch_document_binary")
    task_a = asyncio.ensure_future(controller.select_document(DOC_A))
    await settle()

    await controller.select_document(DOC_B)
    release_a.set()
    outcome_a = await task_a

    state = controller.snapshot()
    assert outcome_a.stale
    assert state.selection.document == DOC_B
    assert [s.id for s in state.sections] == ["s3"]
    assert cache.get(DOCUMENT_KEY).path.read_bytes() == b"%PDF-beta"
    # The stale PDF was never materialized
    assert cache.created == 1


async def test_sections_apply_while_binary_is_pending(controller, backend):
    release = backend.hold("fetch_document_binary")
    task = asyncio.ensure_future(controller.select_document(DOC_A))
    await settle()

    state = controller.snapshot()
    assert state.status == SelectionStatus.DOCUMENT_LOADING
    assert len(state.sections) == 2
    assert state.document_url == ""

    release.set()
    await task
    assert controller.snapshot().status == SelectionStatus.DOCUMENT_READY


async def test_binary_failure_does_not_block_sections(controller, backend, cache):
    backend.failures["fetch_document_binary"] = TransportError("fetch_document_binary", "boom", 500)

    outcome = await controller.select_document(DOC_A)

    state = controller.snapshot()
    assert not outcome.ok
    assert outcome.error.operation == "fetch_document_binary"
    assert state.status == SelectionStatus.DOCUMENT_FAILED
    assert "fetch_document_binary" in state.last_error
    assert len(state.sections) == 2
    assert DOCUMENT_KEY not in cache


async def test_switching_documents_releases_previous_blob(controller, cache):
    await controller.select_document(DOC_A)
    first = cache.get(DOCUMENT_KEY)
    await controller.select_document(DOC_B)
    second = cache.get(DOCUMENT_KEY)

    assert not first.path.exists()
    assert second.path.exists()

    controller.clear_document_selection()
    assert not second.path.exists()
    assert cache.created == cache.released == 2


async def test_clear_selection_drops_in_flight_document(controller, backend, cache):
    release = backend.hold("fetch_document_binary")
    task = asyncio.ensure_future(controller.select_document(DOC_A))
    await settle()

    controller.clear_document_selection()
    release.set()
    outcome = await task

    state = controller.snapshot()
    assert outcome.stale
    assert state.status == SelectionStatus.NO_SELECTION
    assert state.selection is None
    assert state.sections == []
    assert len(cache) == 0


async def test_open_snippet_switches_document_and_focuses_page(controller, backend):
    await controller.refresh_documents()
    await controller.select_document(DOC_A)

    await controller.open_snippet(Snippet("doc-b", "Summary", 4, "beta summary", 0.7))

    state = controller.snapshot()
    assert state.selection.document == DOC_B
    assert state.focus_page == 4


async def test_open_snippet_in_active_document_only_moves_focus(controller, backend):
    await controller.refresh_documents()
    await controller.select_document(DOC_A)

    await controller.open_snippet(Snippet("doc-a", "Method", 3, "alpha method", 0.9))

    assert controller.snapshot().focus_page == 3
    assert backend.count("fetch_document_binary") == 1


async def test_listeners_receive_isolated_snapshots(controller):
    seen = []
    unsubscribe = controller.subscribe(seen.append)

    await controller.select_document(DOC_A)
    assert seen[-1].status == SelectionStatus.DOCUMENT_READY

    seen[-1].sections.clear()
    assert len(controller.snapshot().sections) == 2

    unsubscribe()
    count = len(seen)
    controller.clear_document_selection()
    assert len(seen) == count


async def test_failing_listener_does_not_break_transitions(controller):
    def broken(_state):
        raise RuntimeError("render failed")

    controller.subscribe(broken)
    outcome = await controller.select_document(DOC_A)
    assert outcome.ok


async def test_reselecting_failed_document_retries(controller, backend, cache):
    backend.failures["fetch_document_binary"] = TransportError("fetch_document_binary", "boom", 500)
    await controller.select_document(DOC_A)
    failed_generation = controller.generation
    del backend.failures["fetch_document_binary"]

    outcome = await controller.select_document(DOC_A)

    state = controller.snapshot()
    assert outcome.ok
    assert controller.generation == failed_generation + 1
    assert state.status == SelectionStatus.DOCUMENT_READY
    assert state.last_error == ""
    assert backend.count("fetch_document_binary") == 2
    assert cache.get(DOCUMENT_KEY).path.read_bytes() == b"%PDF-alpha"


async def test_unwritable_cache_marks_document_failed(controller, cache, monkeypatch):
    def disk_full(key, data, suffix=""):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(cache, "materialize", disk_full)

    outcome = await controller.select_document(DOC_A)

    state = controller.snapshot()
    assert isinstance(outcome.error, CacheError)
    assert state.status == SelectionStatus.DOCUMENT_FAILED
    assert "No space left" in state.last_error
    assert len(state.sections) == 2

    monkeypatch.undo()
    assert (await controller.select_document(DOC_A)).ok
