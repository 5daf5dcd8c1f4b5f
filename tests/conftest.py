import asyncio
from typing import Dict, List, Sequence, Tuple

import pytest

from api.service_client import DocumentBackend
from core.controller import WorkflowController
from core.errors import TransportError
from core.models import (
    Cluster, Document, Insight, SearchResult, Section, Snippet, StagedFile,
)
from core.resource_cache import ResourceCache

LONG_TEXT = "a sufficiently long selected passage"

DOC_A = Document(id="doc-a", filename="alpha.pdf", cluster_id="c0", total_sections=2)
DOC_B = Document(id="doc-b", filename="beta.pdf", cluster_id="c0", total_sections=1)


class FakeBackend(DocumentBackend):
    """
    In-memory backend that records every call.

    `hold(name)` makes the next call to `name` wait until the returned event is
    set, which lets tests interleave responses from different generations.
    `failures[name]` makes every call to `name` raise that error.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.documents: List[Document] = [DOC_A, DOC_B]
        self.cluster_documents: Dict[str, List[Document]] = {"c0": [DOC_A, DOC_B]}
        self.pdfs: Dict[str, bytes] = {"doc-a": b"%PDF-alpha", "doc-b": b"%PDF-beta"}
        self.sections: Dict[str, List[Section]] = {
            "doc-a": [Section("s1", "Intro", "alpha intro", 1), Section("s2", "Method", "alpha method", 3)],
            "doc-b": [Section("s3", "Summary", "beta summary", 1)],
        }
        self.search_results: Dict[str, SearchResult] = {}
        self.cluster = Cluster(id="c1", processed_files_count=2)
        self.failures: Dict[str, TransportError] = {}
        self.closed = False
        self._holds: Dict[str, List[asyncio.Event]] = {}
        self._audio_seq = 0

    def hold(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds.setdefault(name, []).append(event)
        return event

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def _call(self, name: str, *args) -> None:
        self.calls.append((name, args))
        holds = self._holds.get(name)
        if holds:
            await holds.pop(0).wait()
        error = self.failures.get(name)
        if error is not None:
            raise error

    async def list_documents(self) -> List[Document]:
        await self._call("list_documents")
        return list(self.documents)

    async def list_cluster_documents(self, cluster_id: str) -> List[Document]:
        await self._call("list_cluster_documents", cluster_id)
        return list(self.cluster_documents.get(cluster_id, []))

    async def fetch_document_binary(self, document_id: str) -> bytes:
        await self._call("fetch_document_binary", document_id)
        return self.pdfs[document_id]

    async def fetch_sections(self, document_id: str) -> List[Section]:
        await self._call("fetch_sections", document_id)
        return list(self.sections.get(document_id, []))

    async def semantic_search(self, text: str) -> SearchResult:
        await self._call("semantic_search", text)
        return self.search_results.get(text, SearchResult(
            snippets=[Snippet("doc-b", "Summary", 1, "beta summary", 0.82)],
            contradictions=[Insight("growth", "beta reports the opposite trend")],
            alternate_viewpoints=[],
        ))

    async def generate_podcast(self, text: str, snippets: Sequence[Snippet],
                               contradictions: Sequence[Insight],
                               alternate_viewpoints: Sequence[Insight]) -> str:
        await self._call("generate_podcast", text, list(snippets),
                         list(contradictions), list(alternate_viewpoints))
        self._audio_seq += 1
        return f"audio-{self._audio_seq}"

    async def fetch_podcast_audio(self, audio_id: str) -> bytes:
        await self._call("fetch_podcast_audio", audio_id)
        return f"ID3-{audio_id}".encode()

    async def upload_cluster(self, files: Sequence[StagedFile]) -> Cluster:
        await self._call("upload_cluster", list(files))
        return self.cluster

    async def aclose(self) -> None:
        self.closed = True


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block on a hold."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def cache(tmp_path) -> ResourceCache:
    return ResourceCache(tmp_path / "blobs")


@pytest.fixture
def controller(backend, cache) -> WorkflowController:
    return WorkflowController(backend, cache)


@pytest.fixture
def pdf_files(tmp_path):
    paths = []
    for name in ("first.pdf", "second.pdf"):
        path = tmp_path / name
        path.write_bytes(b"%PDF-1.7 " + name.encode())
        paths.append(path)
    return paths
