"""Abstract base class for query filter extractors.

Each extractor looks at a normalized query and returns either a match or
None. Extractors do not know about each other; the compiler decides the
order they run in and how conflicts are resolved.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod

from services.query.schema import ExtractorMatch


class FilterExtractor(ABC):
    """Interface implemented by every filter extractor.

    Implementations must be pure: the same query always yields the same
    match, and no state is kept between calls.
    """

    @abstractmethod
    def extract(self, query: str) -> ExtractorMatch | None:
        """Extract a filter value from a normalized query.

        Args:
            query: Lower-cased, trimmed query text

        Returns:
            ExtractorMatch with the value and its span, or None if nothing matched
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get extractor name for logging/metrics.

        Returns:
            Extractor identifier (e.g., 'contract', 'client')
        """
        pass
