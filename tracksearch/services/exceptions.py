"""Domain-specific exceptions."""


class SearchServiceError(Exception):
    pass


class ProviderError(SearchServiceError):
    """Raised by adapters when an external collaborator cannot be reached."""
