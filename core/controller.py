"""
DocInsight - Workflow Controller
Owns the single application state object and every transition on it:
  - Upload batch staging and cluster upload
  - Document library listing (optionally per cluster)
  - Document selection (PDF binary + section list)
  - Text selection → semantic search
  - Podcast generation from the selection and its search results

All mutations happen on one asyncio loop. Results of superseded requests are
recognized through generation tokens and dropped without touching state.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from config import MIN_SELECTION_LENGTH
from api.service_client import DocumentBackend
from core.errors import CacheError, Outcome, TransportError, UploadError, ValidationError
from core.models import (
    ActiveDocument, Cluster, Document, PodcastJob, SearchResult, Section,
    Selection, SelectionStatus, Snippet, StagedFile, UploadStatus,
)
from core.resource_cache import ResourceCache
from core.sequencer import RequestSequencer

logger = logging.getLogger(__name__)

DOCUMENT_KEY = "document"
PODCAST_KEY = "podcast"


@dataclass
class WorkflowState:
    """Everything the presentation layer renders. Only the controller mutates it."""
    upload_status: UploadStatus = UploadStatus.IDLE
    status: SelectionStatus = SelectionStatus.NO_SELECTION
    generation: int = 0
    staged: List[StagedFile] = field(default_factory=list)
    last_cluster: Optional[Cluster] = None
    documents: List[Document] = field(default_factory=list)
    cluster_filter: Optional[str] = None
    library_loading: bool = False
    selection: Optional[Selection] = None
    document_url: str = ""
    sections: List[Section] = field(default_factory=list)
    search: Optional[SearchResult] = None
    podcast: Optional[PodcastJob] = None
    focus_page: Optional[int] = None
    last_error: str = ""

    @property
    def selection_active(self) -> bool:
        return self.selection is not None


StateListener = Callable[[WorkflowState], None]


def _same_document(a: Optional[ActiveDocument], b: Optional[ActiveDocument]) -> bool:
    if isinstance(a, Document) and isinstance(b, Document):
        return a.id == b.id
    return a is not None and a == b


class WorkflowController:
    """State machine coordinating the backend, resource cache and selection."""

    def __init__(self, backend: DocumentBackend, cache: ResourceCache,
                 min_selection_length: int = MIN_SELECTION_LENGTH) -> None:
        self.backend = backend
        self.cache = cache
        self.min_selection_length = min_selection_length
        self._state = WorkflowState()
        self._selection = RequestSequencer("selection")
        self._library = RequestSequencer("library")
        self._listeners: List[StateListener] = []
        self._podcast_task: Optional["asyncio.Future[Outcome]"] = None

    # ---- State Publication ----

    @property
    def generation(self) -> int:
        return self._selection.current

    def snapshot(self) -> WorkflowState:
        """Return a deep copy of the current state, safe to hand to other threads."""
        return copy.deepcopy(self._state)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener raised; continuing with remaining listeners")

    def _record_error(self, error: Exception) -> None:
        self._state.last_error = str(error)
        logger.error(f"{error}")

    # ---- Upload Batch ----

    def stage_files(self, paths: Iterable[Union[str, Path]]) -> Outcome:
        """Add local PDFs to the upload batch. The first one is previewed if nothing is selected."""
        candidates = [Path(p) for p in paths]
        for path in candidates:
            if path.suffix.lower() != ".pdf":
                return Outcome.failure(ValidationError(f"{path.name} is not a PDF file.", field="files"))

        added: List[StagedFile] = []
        for path in candidates:
            staged = StagedFile(path)
            if staged not in self._state.staged and staged not in added:
                added.append(staged)
        if not added:
            return Outcome.success([])

        self._state.staged.extend(added)
        logger.info(f"Staged {len(added)} file(s); batch size {len(self._state.staged)}.")

        if self._state.selection is None:
            self._select_staged(added[0])
        self._notify()
        return Outcome.success(list(added))

    def remove_staged_file(self, staged: StagedFile) -> Outcome:
        """Drop a file from the batch, clearing the selection if it was being previewed."""
        if staged not in self._state.staged:
            return Outcome.success(None)

        self._state.staged.remove(staged)
        logger.info(f"Removed {staged.name} from the upload batch.")

        selection = self._state.selection
        if selection is not None and _same_document(selection.document, staged):
            return self.clear_document_selection()
        self._notify()
        return Outcome.success(None)

    async def upload(self, files: Optional[Sequence[StagedFile]] = None) -> Outcome:
        """Upload `files` (default: the staged batch) as one cluster."""
        batch = list(files) if files is not None else list(self._state.staged)
        if not batch:
            return Outcome.failure(ValidationError("Add at least one PDF before uploading.", field="files"))
        if self._state.upload_status == UploadStatus.UPLOADING:
            return Outcome.failure(ValidationError("An upload is already in progress."))

        self._state.upload_status = UploadStatus.UPLOADING
        self._state.last_error = ""
        self._notify()
        logger.info(f"Uploading cluster of {len(batch)} file(s)...")

        try:
            cluster = await self.backend.upload_cluster(batch)
        except TransportError as e:
            error = e if isinstance(e, UploadError) else UploadError(e.message, e.status_code)
            self._state.upload_status = UploadStatus.UPLOAD_FAILED
            self._record_error(error)
            self._notify()
            return Outcome.failure(error)

        # Files staged while the request was in flight stay in the batch
        self._state.staged = [s for s in self._state.staged if s not in batch]
        self._state.last_cluster = cluster
        self.clear_document_selection()
        await self.refresh_documents()

        self._state.upload_status = UploadStatus.DOCUMENTS_READY
        self._notify()
        return Outcome.success(cluster)

    # ---- Library ----

    async def refresh_documents(self) -> Outcome:
        """Replace the document list with the full library."""
        return await self._load_library(None)

    async def show_cluster(self, cluster_id: Optional[str]) -> Outcome:
        """Restrict the document list to one cluster, or the full library for None."""
        if cluster_id is not None and not str(cluster_id).strip():
            return Outcome.failure(ValidationError("Cluster id must not be empty.", field="cluster_id"))
        return await self._load_library(cluster_id)

    async def _load_library(self, cluster_id: Optional[str]) -> Outcome:
        generation = self._library.advance()
        self._state.library_loading = True
        self._notify()

        if cluster_id is None:
            request = self.backend.list_documents()
        else:
            request = self.backend.list_cluster_documents(cluster_id)
        tagged = await self._library.track(generation, request)
        if tagged.stale:
            return Outcome.discarded()

        self._state.library_loading = False
        if not tagged.ok:
            self._record_error(tagged.error)
            self._notify()
            return Outcome.failure(tagged.error)

        self._state.documents = list(tagged.value)
        self._state.cluster_filter = cluster_id
        self._notify()
        return Outcome.success(list(tagged.value))

    # ---- Document Selection ----

    def _start_selection(self, document: Optional[ActiveDocument]) -> int:
        """Open a new generation and drop everything scoped to the previous one."""
        generation = self._selection.advance()
        self.cache.release(DOCUMENT_KEY)
        self.cache.release(PODCAST_KEY)

        state = self._state
        state.generation = generation
        state.selection = Selection(generation, document) if document is not None else None
        state.document_url = ""
        state.sections = []
        state.search = None
        state.podcast = None
        state.focus_page = None
        state.last_error = ""
        return generation

    def _select_staged(self, staged: StagedFile) -> None:
        # The local file is rendered in place; it is not a cached blob
        self._start_selection(staged)
        self._state.document_url = staged.url
        self._state.status = SelectionStatus.DOCUMENT_READY
        logger.info(f"Previewing local file {staged.name}")

    async def select_document(self, document: ActiveDocument) -> Outcome:
        """Make `document` active, loading its PDF and sections concurrently."""
        current = self._state.selection
        # Picking a document whose load failed retries it under a new generation
        if (current is not None and _same_document(current.document, document)
                and self._state.status != SelectionStatus.DOCUMENT_FAILED):
            logger.debug(f"{document.name} already selected; ignoring.")
            return Outcome.success(document)

        if isinstance(document, StagedFile):
            self._select_staged(document)
            self._notify()
            return Outcome.success(document)

        generation = self._start_selection(document)
        self._state.status = SelectionStatus.DOCUMENT_LOADING
        self._notify()
        logger.info(f"Loading document {document.id} ({document.filename}), generation {generation}")

        binary_outcome, _ = await asyncio.gather(
            self._load_binary(generation, document),
            self._load_sections(generation, document),
        )
        return binary_outcome

    async def _load_binary(self, generation: int, document: Document) -> Outcome:
        tagged = await self._selection.track(
            generation, self.backend.fetch_document_binary(document.id)
        )
        if tagged.stale:
            return Outcome.discarded()
        if not tagged.ok:
            self._state.status = SelectionStatus.DOCUMENT_FAILED
            self._record_error(tagged.error)
            self._notify()
            return Outcome.failure(tagged.error)

        try:
            resource = self.cache.materialize(DOCUMENT_KEY, tagged.value, ".pdf")
        except OSError as e:
            error = CacheError(f"could not store document {document.id}: {e}")
            self._state.status = SelectionStatus.DOCUMENT_FAILED
            self._record_error(error)
            self._notify()
            return Outcome.failure(error)

        self._state.document_url = resource.url
        self._state.status = SelectionStatus.DOCUMENT_READY
        self._notify()
        return Outcome.success(resource)

    async def _load_sections(self, generation: int, document: Document) -> Outcome:
        tagged = await self._selection.track(generation, self.backend.fetch_sections(document.id))
        if tagged.stale:
            return Outcome.discarded()
        if not tagged.ok:
            self._record_error(tagged.error)
            self._notify()
            return Outcome.failure(tagged.error)

        self._state.sections = list(tagged.value)
        self._notify()
        logger.info(f"Loaded {len(tagged.value)} sections for document {document.id}")
        return Outcome.success(list(tagged.value))

    def clear_document_selection(self) -> Outcome:
        """Drop the active document and everything derived from it."""
        self._start_selection(None)
        self._state.status = SelectionStatus.NO_SELECTION
        self._notify()
        return Outcome.success(None)

    async def open_snippet(self, snippet: Snippet) -> Outcome:
        """Jump to the document and page a snippet came from."""
        document = next(
            (d for d in self._state.documents if d.id == snippet.document_id),
            Document(id=snippet.document_id),
        )
        outcome = await self.select_document(document)
        if outcome.stale:
            return outcome

        selection = self._state.selection
        if selection is not None and _same_document(selection.document, document):
            self._state.focus_page = snippet.page_number
            self._notify()
        return outcome

    # ---- Text Selection & Search ----

    async def select_text(self, text: str) -> Outcome:
        """Start a semantic search for a passage selected in the viewer."""
        cleaned = (text or "").strip()
        if len(cleaned) < self.min_selection_length:
            return Outcome.failure(ValidationError(
                f"Select at least {self.min_selection_length} characters of text.", field="text",
            ))

        generation = self._selection.advance()
        self.cache.release(PODCAST_KEY)

        state = self._state
        if state.selection is None:
            state.selection = Selection(generation)
        state.selection.generation = generation
        state.selection.text = cleaned
        state.generation = generation
        state.search = None
        state.podcast = None
        state.last_error = ""
        state.status = SelectionStatus.SEARCH_IN_FLIGHT
        self._notify()
        logger.info(f"Searching for selection ({len(cleaned)} chars), generation {generation}")

        tagged = await self._selection.track(generation, self.backend.semantic_search(cleaned))
        if tagged.stale:
            return Outcome.discarded()
        if not tagged.ok:
            state.status = SelectionStatus.SEARCH_FAILED
            self._record_error(tagged.error)
            self._notify()
            return Outcome.failure(tagged.error)
        return self.apply_search_result(generation, tagged.value)

    def apply_search_result(self, generation: int, result: SearchResult) -> Outcome:
        """Install `result` if it belongs to the current generation."""
        if not self._selection.is_current(generation):
            logger.debug(f"Search result for generation {generation} is stale; dropped.")
            return Outcome.discarded()

        self._state.search = result
        # A podcast started before the results arrived keeps its own status
        if self._state.podcast is None:
            self._state.status = SelectionStatus.RESULTS_READY
        self._notify()
        logger.info(
            f"Search results: {len(result.snippets)} snippets, "
            f"{len(result.contradictions)} contradictions, "
            f"{len(result.alternate_viewpoints)} alternate viewpoints"
        )
        return Outcome.success(result)

    # ---- Podcast ----

    async def generate_podcast(self) -> Outcome:
        """Generate podcast audio for the current selection and its search results."""
        state = self._state
        if state.selection is None or not state.selection.text:
            return Outcome.failure(ValidationError("Select a passage before generating a podcast."))

        generation = self._selection.current
        running = self._podcast_task
        if (running is not None and not running.done()
                and state.podcast is not None and state.podcast.generation == generation):
            logger.info("Podcast already in progress for this selection; joining it.")
            return await asyncio.shield(running)

        snapshot = copy.deepcopy(state.search) if state.search is not None else SearchResult()
        job = PodcastJob(generation=generation, text=state.selection.text, snapshot=snapshot)
        self.cache.release(PODCAST_KEY)
        state.podcast = job
        state.status = SelectionStatus.PODCAST_IN_FLIGHT
        state.last_error = ""
        self._notify()
        logger.info(f"Generating podcast for generation {generation}")

        task = asyncio.ensure_future(self._run_podcast(job))
        self._podcast_task = task
        return await asyncio.shield(task)

    async def _synthesize(self, job: PodcastJob):
        snapshot = job.snapshot
        audio_id = await self.backend.generate_podcast(
            job.text, snapshot.snippets, snapshot.contradictions, snapshot.alternate_viewpoints,
        )
        # Always fetch, even if superseded meanwhile, so the server handle is consumed
        audio = await self.backend.fetch_podcast_audio(audio_id)
        return audio_id, audio

    async def _run_podcast(self, job: PodcastJob) -> Outcome:
        tagged = await self._selection.track(job.generation, self._synthesize(job))
        if tagged.stale:
            logger.info(f"Podcast for superseded generation {job.generation} dropped without attaching.")
            return Outcome.discarded()
        if not tagged.ok:
            job.error = str(tagged.error)
            self._state.status = SelectionStatus.PODCAST_FAILED
            self._record_error(tagged.error)
            self._notify()
            return Outcome.failure(tagged.error)

        audio_id, audio = tagged.value
        job.audio_id = audio_id
        try:
            job.audio = self.cache.materialize(PODCAST_KEY, audio, ".mp3")
        except OSError as e:
            error = CacheError(f"could not store podcast audio {audio_id}: {e}")
            job.error = str(error)
            self._state.status = SelectionStatus.PODCAST_FAILED
            self._record_error(error)
            self._notify()
            return Outcome.failure(error)
        self._state.status = SelectionStatus.PODCAST_READY
        self._notify()
        logger.info(f"Podcast {audio_id} ready ({len(audio)} bytes).")
        return Outcome.success(copy.deepcopy(job))

    # ---- Shutdown ----

    async def aclose(self) -> None:
        """Release every cached blob and close the backend connection."""
        self.cache.release_all()
        await self.backend.aclose()
