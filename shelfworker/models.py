"""Data models for books."""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

UNKNOWN_AUTHOR = "Unknown"


@dataclass
class Book:
    """Catalog or library entry, keyed by its Project Gutenberg id."""
    gutenberg_id: int
    title: Optional[str] = None
    author: str = UNKNOWN_AUTHOR
    genres: List[str] = field(default_factory=list)
    decade: Optional[int] = None
    epub_url: Optional[str] = None
    text_url: Optional[str] = None
    
    @property
    def title_str(self) -> str:
        """Title for display and search; empty when the record has none."""
        return self.title or ""
    
    @property
    def decade_label(self) -> Optional[str]:
        """Format decade as e.g. '1900s'."""
        return f"{self.decade}s" if self.decade else None
    
    @property
    def genres_str(self) -> str:
        """Format genres as comma-separated string."""
        return ", ".join(self.genres) if self.genres else "None"
    
    def to_dict(self) -> Dict[str, Any]:
        """Public JSON shape shared by the gateway and the client."""
        return asdict(self)


@dataclass
class FilterState:
    """Catalog filters; empty values impose no restriction."""
    search: str = ""
    genre: str = ""
    decade: Optional[int] = None
    
    def is_empty(self) -> bool:
        return not self.search and not self.genre and self.decade is None
