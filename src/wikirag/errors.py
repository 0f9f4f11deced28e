"""Exception types shared across wikirag."""


class WikiRagError(Exception):
    """Base class for all wikirag errors."""


class ProviderUnavailable(WikiRagError):
    """The embedding or generation endpoint could not be reached."""


class ParseError(ProviderUnavailable):
    """A provider answered with a body we could not use."""


class GenerationError(WikiRagError):
    """The generation provider reported a failure in its response."""


class StorageError(WikiRagError):
    """Opening, writing or reading the vector store failed."""


class CrawlFetchError(WikiRagError):
    """A single wiki page could not be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class ConfigError(WikiRagError, ValueError):
    """Configuration or user input failed validation."""
