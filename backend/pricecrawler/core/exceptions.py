"""Custom exception classes for the application."""


class PriceCrawlerException(Exception):
    """Base exception for all PriceCrawler errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class ScraperError(PriceCrawlerException):
    """Raised when a scraper encounters an error."""

    def __init__(self, platform: str, message: str):
        self.platform = platform
        super().__init__(f"Scraper error for {platform}: {message}")


class ExtractionError(ScraperError):
    """Raised when a single result block cannot be turned into a product."""

    def __init__(self, platform: str, reason: str):
        self.reason = reason
        super().__init__(platform, reason)
