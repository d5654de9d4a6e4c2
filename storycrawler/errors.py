"""Exception hierarchy shared by the crawler components."""


class CrawlerError(Exception):
    """Base class for crawler failures."""


class ConfigError(CrawlerError):
    """Raised when the configuration file is missing or malformed."""


class ExtractionError(CrawlerError):
    """Raised when a fetched document cannot be read or parsed."""


class ArchiveError(CrawlerError):
    """Raised when a Story cannot be written to the archive."""


class ChannelClosed(CrawlerError):
    """Raised when sending on a completion channel that no longer accepts values."""
