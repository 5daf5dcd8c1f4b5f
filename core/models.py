"""
DocInsight - Data Models
Dataclass definitions for staged uploads, documents, sections, search results,
podcast jobs, and the active selection.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class UploadStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    UPLOAD_FAILED = "upload_failed"
    DOCUMENTS_READY = "documents_ready"


class SelectionStatus(str, Enum):
    NO_SELECTION = "no_selection"
    DOCUMENT_LOADING = "document_loading"
    DOCUMENT_READY = "document_ready"
    DOCUMENT_FAILED = "document_failed"
    SEARCH_IN_FLIGHT = "search_in_flight"
    RESULTS_READY = "results_ready"
    SEARCH_FAILED = "search_failed"
    PODCAST_IN_FLIGHT = "podcast_in_flight"
    PODCAST_READY = "podcast_ready"
    PODCAST_FAILED = "podcast_failed"


@dataclass(frozen=True)
class StagedFile:
    """A local PDF picked for upload but not yet committed."""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def url(self) -> str:
        return "local:///" + str(self.path.resolve()).replace("\\", "/").lstrip("/")


@dataclass
class Cluster:
    """Server-side grouping of documents uploaded together."""
    id: str = ""
    processed_files_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cluster":
        return cls(
            id=str(data.get("cluster_id", "")),
            processed_files_count=int(data.get("processed_files_count", 0)),
        )


@dataclass(frozen=True)
class Document:
    """A PDF stored by the document service."""
    id: str = ""
    filename: str = ""
    cluster_id: str = ""
    total_sections: int = 0

    @property
    def name(self) -> str:
        return self.filename

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(
            id=str(data.get("id", "")),
            filename=data.get("filename", ""),
            cluster_id=str(data.get("cluster_id", "")),
            total_sections=int(data.get("total_sections", 0)),
        )


@dataclass
class Section:
    """A structural unit (heading + body) of a document."""
    id: str = ""
    title: str = ""
    content: str = ""
    page_number: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            content=data.get("content", ""),
            page_number=int(data.get("page_number", 0)),
        )


@dataclass
class Snippet:
    """A passage from another document judged relevant to the selection."""
    document_id: str = ""
    section_title: str = ""
    page_number: int = 0
    text: str = ""
    similarity: float = 0.0

    @property
    def relevance_percent(self) -> int:
        return round(self.similarity * 100)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snippet":
        return cls(
            document_id=str(data.get("document_id", "")),
            section_title=data.get("section_title", ""),
            page_number=int(data.get("page_number", 0)),
            text=data.get("text", ""),
            similarity=float(data.get("similarity", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "section_title": self.section_title,
            "page_number": self.page_number,
            "text": self.text,
            "similarity": self.similarity,
        }


@dataclass
class Insight:
    """A contradiction or alternate viewpoint, keyed by the term it concerns."""
    keyword: str = ""
    text: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Insight":
        return cls(keyword=data.get("keyword", ""), text=data.get("text", ""))

    def to_dict(self) -> Dict[str, str]:
        return {"keyword": self.keyword, "text": self.text}


@dataclass
class SearchResult:
    """Snippets and insights returned by one semantic search."""
    snippets: List[Snippet] = field(default_factory=list)
    contradictions: List[Insight] = field(default_factory=list)
    alternate_viewpoints: List[Insight] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.snippets or self.contradictions or self.alternate_viewpoints)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResult":
        return cls(
            snippets=[Snippet.from_dict(s) for s in data.get("snippets") or []],
            contradictions=[Insight.from_dict(c) for c in data.get("contradictions") or []],
            alternate_viewpoints=[
                Insight.from_dict(v) for v in data.get("alternate_viewpoints") or []
            ],
        )


@dataclass
class BlobResource:
    """A binary payload written to the local cache and served to the viewer/player."""
    key: str
    path: Path
    size: int = 0

    @property
    def url(self) -> str:
        return "local:///" + str(self.path).replace("\\", "/").lstrip("/")


@dataclass
class PodcastJob:
    """One audio-generation request, bound to the generation it was issued for."""
    generation: int
    text: str
    snapshot: SearchResult = field(default_factory=SearchResult)
    audio_id: Optional[str] = None
    audio: Optional[BlobResource] = None
    error: str = ""

    @property
    def is_ready(self) -> bool:
        return self.audio is not None


# The active document is either an unsubmitted local file or a stored document
ActiveDocument = Union[StagedFile, Document]


@dataclass
class Selection:
    """The user's current focus: one document and optionally a text span."""
    generation: int
    document: Optional[ActiveDocument] = None
    text: str = ""
