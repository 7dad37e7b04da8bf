"""
Core components for SiteChat

This package contains the core components including:
- Data model, interfaces and errors
- Configuration management
- Logging system
- Browser session and pool
- Crawl frontier
"""

from sitechat.core.base import (
    CrawlStatus,
    Website,
    Document,
    PageMetadata,
    ExtractedPage,
    DialogueRecord,
    RenderResult,
    CrawlOutcome,
    CrawlStatusReport,
    AssembledContext,
    Answer,
    Page,
    BaseComponent,
    ContentStoreInterface,
    DialogueStoreInterface,
    ModelClientInterface,
    WebsiteRegistryInterface,
    UserDirectoryInterface,
    SiteChatError,
    ConfigurationError,
    NotFoundError,
    ConflictError,
    InvalidTransitionError,
    AuthorizationError,
    NavigationError,
    CrawlCancelledError,
    BrowserLaunchError,
    ExtractionError,
    ModelInvocationError,
    ResourceReleaseError,
    StorageError
)

from sitechat.core.config import (
    ConfigManager,
    CrawlConfig,
    StorageConfig,
    ContextConfig,
    ModelConfig,
    LoggingConfig
)

from sitechat.core.logging import (
    LoggingManager,
    get_logger,
    setup_logging
)

from sitechat.core.browser import (
    BrowserSession,
    BrowserPool,
    CancelToken
)

from sitechat.core.frontier import CrawlFrontier

__all__ = [
    # Data model
    'CrawlStatus',
    'Website',
    'Document',
    'PageMetadata',
    'ExtractedPage',
    'DialogueRecord',
    'RenderResult',
    'CrawlOutcome',
    'CrawlStatusReport',
    'AssembledContext',
    'Answer',
    'Page',

    # Interfaces
    'BaseComponent',
    'ContentStoreInterface',
    'DialogueStoreInterface',
    'ModelClientInterface',
    'WebsiteRegistryInterface',
    'UserDirectoryInterface',

    # Errors
    'SiteChatError',
    'ConfigurationError',
    'NotFoundError',
    'ConflictError',
    'InvalidTransitionError',
    'AuthorizationError',
    'NavigationError',
    'CrawlCancelledError',
    'BrowserLaunchError',
    'ExtractionError',
    'ModelInvocationError',
    'ResourceReleaseError',
    'StorageError',

    # Configuration
    'ConfigManager',
    'CrawlConfig',
    'StorageConfig',
    'ContextConfig',
    'ModelConfig',
    'LoggingConfig',

    # Logging
    'LoggingManager',
    'get_logger',
    'setup_logging',

    # Crawling
    'BrowserSession',
    'BrowserPool',
    'CancelToken',
    'CrawlFrontier'
]
