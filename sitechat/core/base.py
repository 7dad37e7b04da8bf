"""
Base Classes and Interfaces for SiteChat

Defines the data model, the crawl state machine, abstract interfaces for
the storage, model and collaborator seams, and the error taxonomy shared
by every component.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class CrawlStatus(Enum):
    """Crawl lifecycle states of a website"""
    PENDING = "pending"
    CRAWLING = "crawling"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: "CrawlStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    CrawlStatus.PENDING: {CrawlStatus.CRAWLING},
    CrawlStatus.CRAWLING: {CrawlStatus.COMPLETED, CrawlStatus.FAILED},
    CrawlStatus.COMPLETED: {CrawlStatus.PENDING},
    CrawlStatus.FAILED: {CrawlStatus.PENDING},
}


@dataclass
class Website:
    """A registered website; crawl_status is owned by the orchestrator"""
    id: str
    url: str
    name: str
    is_active: bool = True
    crawl_status: CrawlStatus = CrawlStatus.PENDING
    last_crawled_at: Optional[datetime] = None
    crawl_depth: int = 1
    total_pages: int = 0


@dataclass
class PageMetadata:
    description: str = ""
    keywords: List[str] = field(default_factory=list)
    author: str = ""


@dataclass
class ExtractedPage:
    """Fields extracted from one rendered page"""
    title: str
    text: str
    images: List[str]
    links: List[str]
    metadata: PageMetadata
    word_count: int


@dataclass
class Document:
    """Persisted extracted text unit for a website"""
    website_id: str
    source_url: str
    title: str
    text: str
    images: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    metadata: PageMetadata = field(default_factory=PageMetadata)
    word_count: int = 0
    generation: str = ""
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'website_id': self.website_id,
            'source_url': self.source_url,
            'title': self.title,
            'text': self.text,
            'images': list(self.images),
            'links': list(self.links),
            'metadata': {
                'description': self.metadata.description,
                'keywords': list(self.metadata.keywords),
                'author': self.metadata.author,
            },
            'word_count': self.word_count,
            'generation': self.generation,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        meta = data.get('metadata') or {}
        return cls(
            id=data['id'],
            website_id=data['website_id'],
            source_url=data['source_url'],
            title=data.get('title', ''),
            text=data.get('text', ''),
            images=data.get('images', []),
            links=data.get('links', []),
            metadata=PageMetadata(
                description=meta.get('description', ''),
                keywords=meta.get('keywords', []),
                author=meta.get('author', ''),
            ),
            word_count=data.get('word_count', 0),
            generation=data.get('generation', ''),
            created_at=datetime.fromisoformat(data['created_at']),
        )


@dataclass
class DialogueRecord:
    """One question/answer exchange; never mutated after creation"""
    user_id: str
    website_id: str
    question: str
    answer: str
    response_time_ms: int = 0
    relevance_score: float = 0.0
    model_id: str = ""
    degraded: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.response_time_ms < 0:
            raise ValueError("response_time_ms must be >= 0")
        if not 0.0 <= self.relevance_score <= 1.0:
            raise ValueError("relevance_score must be within [0, 1]")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'website_id': self.website_id,
            'question': self.question,
            'answer': self.answer,
            'response_time_ms': self.response_time_ms,
            'relevance_score': self.relevance_score,
            'model_id': self.model_id,
            'degraded': self.degraded,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DialogueRecord":
        return cls(
            id=data['id'],
            user_id=data['user_id'],
            website_id=data['website_id'],
            question=data['question'],
            answer=data['answer'],
            response_time_ms=data.get('response_time_ms', 0),
            relevance_score=data.get('relevance_score', 0.0),
            model_id=data.get('model_id', ''),
            degraded=data.get('degraded', False),
            created_at=datetime.fromisoformat(data['created_at']),
        )


@dataclass
class RenderResult:
    """Raw markup of a rendered page plus the warnings seen while rendering"""
    url: str
    html: str
    warnings: List[str] = field(default_factory=list)
    elapsed: float = 0.0


@dataclass
class CrawlOutcome:
    """Result of one crawl run"""
    website_id: str
    status: CrawlStatus
    document_count: int = 0
    pages_crawled: int = 0
    warnings: List[str] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is CrawlStatus.COMPLETED


@dataclass
class CrawlStatusReport:
    status: CrawlStatus
    last_crawled_at: Optional[datetime]
    document_count: int


@dataclass
class AssembledContext:
    context: str
    has_content: bool
    document_count: int = 0


@dataclass
class Answer:
    """Answer produced for a question; degraded marks fallback answers"""
    text: str
    response_time_ms: int
    relevance_score: float
    model_id: str
    degraded: bool = False


@dataclass
class Page:
    """One page of a paginated listing"""
    items: List[Any]
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


class BaseComponent(ABC):
    """Base class for components holding resources"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the component"""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources"""
        pass

    def is_initialized(self) -> bool:
        """Check if component is initialized"""
        return self._initialized


class ContentStoreInterface(BaseComponent):
    """Durable store of Documents keyed by website"""

    @abstractmethod
    async def save(self, document: Document) -> str:
        """Persist a document into its generation"""
        pass

    @abstractmethod
    async def find_by_website(self, website_id: str, limit: int) -> List[Document]:
        """Active documents of a website, most recent first"""
        pass

    @abstractmethod
    async def delete_all_for_website(self, website_id: str) -> int:
        """Delete every document of a website"""
        pass

    @abstractmethod
    async def count_for_website(self, website_id: str) -> int:
        """Number of active documents of a website"""
        pass

    @abstractmethod
    async def begin_generation(self, website_id: str) -> str:
        """Open a staging generation for a new crawl"""
        pass

    @abstractmethod
    async def activate_generation(self, website_id: str, generation: str) -> None:
        """Atomically make a staging generation the active one"""
        pass

    @abstractmethod
    async def discard_generation(self, website_id: str, generation: str) -> None:
        """Drop a staging generation"""
        pass


class DialogueStoreInterface(BaseComponent):
    """Append-only store of question/answer exchanges"""

    @abstractmethod
    async def append(self, record: DialogueRecord) -> str:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str, website_id: Optional[str] = None,
                           page: int = 1, page_size: int = 20) -> Page:
        pass

    @abstractmethod
    async def remove(self, record_id: str, user_id: str) -> None:
        pass

    @abstractmethod
    async def count_by_user(self, user_id: str) -> int:
        pass


class ModelClientInterface(BaseComponent):
    """Generative model client, opaque over transport"""

    model_id: str = ""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt; raise ModelInvocationError on failure"""
        pass


class WebsiteRegistryInterface(ABC):
    """Website registry collaborator"""

    @abstractmethod
    async def get(self, website_id: str) -> Optional[Website]:
        pass

    @abstractmethod
    async def set_crawl_status(self, website_id: str, status: CrawlStatus,
                               last_crawled_at: Optional[datetime] = None,
                               total_pages: Optional[int] = None) -> None:
        pass

    @abstractmethod
    async def is_active(self, website_id: str) -> bool:
        pass


class UserDirectoryInterface(ABC):
    """User directory collaborator"""

    @abstractmethod
    async def exists(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def increment_query_count(self, user_id: str, amount: int = 1) -> None:
        pass


class SiteChatError(Exception):
    """Base exception for SiteChat errors"""
    pass


class ConfigurationError(SiteChatError):
    """Configuration-related errors"""
    pass


class NotFoundError(SiteChatError):
    """Unknown website, user or dialogue record"""
    pass


class ConflictError(SiteChatError):
    """Operation conflicts with the current crawl state"""
    pass


class InvalidTransitionError(ConflictError):
    """Crawl status transition not allowed by the state machine"""

    def __init__(self, current: CrawlStatus, target: CrawlStatus):
        super().__init__(f"Cannot move crawl status from {current.value} to {target.value}")
        self.current = current
        self.target = target


class AuthorizationError(SiteChatError):
    """Record does not belong to the requesting user"""
    pass


class NavigationError(SiteChatError):
    """Render or navigation failure for a URL"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to navigate to {url}: {reason}")
        self.url = url
        self.reason = reason


class CrawlCancelledError(SiteChatError):
    """Crawl was stopped through its cancel token"""
    pass


class BrowserLaunchError(SiteChatError):
    """The headless browser could not be started"""
    pass


class ExtractionError(SiteChatError):
    """Content extraction failure"""
    pass


class ModelInvocationError(SiteChatError):
    """Generative model call failed"""
    pass


class ResourceReleaseError(SiteChatError):
    """Failure to release a browser session"""
    pass


class StorageError(SiteChatError):
    """Storage-related errors"""
    pass
