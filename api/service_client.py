"""
DocInsight - Document/Insight Service Client
Provides a unified async interface to the remote backend that stores PDF
clusters and produces snippets, insights and podcast audio.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from config import settings, ApiConfig
from core.errors import TransportError, UploadError
from core.models import Cluster, Document, Insight, SearchResult, Section, Snippet, StagedFile

logger = logging.getLogger(__name__)


class DocumentBackend(ABC):
    """Abstract base class for the document and insight services."""

    @abstractmethod
    async def list_documents(self) -> List[Document]:
        """Return every stored document."""
        ...

    @abstractmethod
    async def list_cluster_documents(self, cluster_id: str) -> List[Document]:
        """Return the documents uploaded together in one cluster."""
        ...

    @abstractmethod
    async def fetch_document_binary(self, document_id: str) -> bytes:
        """Return the raw PDF bytes of a stored document."""
        ...

    @abstractmethod
    async def fetch_sections(self, document_id: str) -> List[Section]:
        """Return the full section list of a stored document."""
        ...

    @abstractmethod
    async def semantic_search(self, text: str) -> SearchResult:
        """Find snippets, contradictions and alternate viewpoints for `text`."""
        ...

    @abstractmethod
    async def generate_podcast(self, text: str, snippets: Sequence[Snippet],
                               contradictions: Sequence[Insight],
                               alternate_viewpoints: Sequence[Insight]) -> str:
        """Synthesize a podcast and return its audio id."""
        ...

    @abstractmethod
    async def fetch_podcast_audio(self, audio_id: str) -> bytes:
        """Return the raw audio bytes of a generated podcast."""
        ...

    @abstractmethod
    async def upload_cluster(self, files: Sequence[StagedFile]) -> Cluster:
        """Upload several PDFs as one cluster."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None


class HttpDocumentBackend(DocumentBackend):
    """Client for the backend's REST API over httpx."""

    def __init__(self, config: Optional[ApiConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config or settings.api
        self.timeout = httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout)
        self.podcast_timeout = httpx.Timeout(
            self.config.podcast_timeout, connect=self.config.connect_timeout
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            timeout=self.timeout,
            transport=transport,
        )
        logger.info(f"Backend client initialized: {self.config.base_url}")

    async def _request(self, operation: str, method: str, path: str,
                       **kwargs: Any) -> httpx.Response:
        """Send one request, mapping every httpx failure to TransportError."""
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            logger.error(f"{operation}: request timed out.")
            raise TransportError(operation, "request timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"{operation}: backend error {status} - {e.response.text[:200]}")
            raise TransportError(operation, f"backend returned status {status}", status) from e
        except httpx.HTTPError as e:
            logger.error(f"{operation}: network error: {e}")
            raise TransportError(operation, str(e) or type(e).__name__) from e

    async def _json(self, operation: str, method: str, path: str,
                    **kwargs: Any) -> Dict[str, Any]:
        response = await self._request(operation, method, path, **kwargs)
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{operation}: response is not valid JSON")
            raise TransportError(operation, "invalid JSON in response") from e
        if not isinstance(data, dict):
            raise TransportError(operation, "unexpected response shape")
        return data

    async def list_documents(self) -> List[Document]:
        data = await self._json("list_documents", "GET", "/documents")
        documents = [Document.from_dict(d) for d in data.get("documents") or []]
        logger.info(f"Listed {len(documents)} documents.")
        return documents

    async def list_cluster_documents(self, cluster_id: str) -> List[Document]:
        data = await self._json("list_cluster_documents", "GET", f"/documents/{cluster_id}")
        return [Document.from_dict(d) for d in data.get("documents") or []]

    async def fetch_document_binary(self, document_id: str) -> bytes:
        response = await self._request("fetch_document_binary", "GET", f"/documents/{document_id}/pdf")
        return response.content

    async def fetch_sections(self, document_id: str) -> List[Section]:
        data = await self._json("fetch_sections", "GET", f"/documents/sections/{document_id}")
        return [Section.from_dict(s) for s in data.get("sections") or []]

    async def semantic_search(self, text: str) -> SearchResult:
        data = await self._json(
            "semantic_search", "POST", "/documents/semantic-search",
            json={"selected_text": text},
        )
        return SearchResult.from_dict(data)

    async def generate_podcast(self, text: str, snippets: Sequence[Snippet],
                               contradictions: Sequence[Insight],
                               alternate_viewpoints: Sequence[Insight]) -> str:
        payload = {
            "selected_text": text,
            "snippets": [s.to_dict() for s in snippets],
            "contradictions": [c.to_dict() for c in contradictions],
            "alternate_viewpoints": [v.to_dict() for v in alternate_viewpoints],
        }
        data = await self._json(
            "generate_podcast", "POST", "/audio/generate-podcast",
            json=payload, timeout=self.podcast_timeout,
        )
        audio_id = data.get("audio_id")
        if not audio_id:
            raise TransportError("generate_podcast", "response did not include an audio_id")
        return str(audio_id)

    async def fetch_podcast_audio(self, audio_id: str) -> bytes:
        response = await self._request("fetch_podcast_audio", "GET", f"/audio/podcast/{audio_id}")
        return response.content

    async def upload_cluster(self, files: Sequence[StagedFile]) -> Cluster:
        try:
            parts = [
                ("files", (f.name, f.path.read_bytes(), "application/pdf"))
                for f in files
            ]
        except OSError as e:
            logger.error(f"Could not read staged file: {e}")
            raise UploadError(f"could not read {e.filename}") from e

        try:
            data = await self._json(
                "upload_cluster", "POST", "/documents/upload_cluster", files=parts,
            )
        except TransportError as e:
            raise UploadError(e.message, e.status_code) from e

        cluster = Cluster.from_dict(data)
        logger.info(f"Uploaded cluster {cluster.id}: {cluster.processed_files_count} files processed.")
        return cluster

    async def aclose(self) -> None:
        await self._client.aclose()


def create_backend(config: Optional[ApiConfig] = None) -> DocumentBackend:
    """Factory function to create the backend client."""
    return HttpDocumentBackend(config or settings.api)
