"""HTTP client for the Gutendex book index."""
import requests
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


class GutendexError(Exception):
    """Raised when Gutendex cannot be reached or answers with an error."""


class GutendexClient:
    """Client for the Gutendex API (Project Gutenberg metadata)."""
    
    BASE_URL = "https://gutendex.com/books"
    
    def __init__(self, base_url: str = BASE_URL, timeout: int = 10):
        """
        Initialize Gutendex client.
        
        Args:
            base_url: Books endpoint
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.timeout = timeout
        
        # Create session for connection pooling
        self.session = requests.Session()
    
    def fetch_books(self, page: int = 1, language: str = "en", sort: str = "popular") -> Dict[str, Any]:
        """
        Fetch one page of books.
        
        Args:
            page: 1-based page number
            language: Language filter
            sort: Gutendex sort order
            
        Returns:
            API response JSON (``results`` holds the books)
            
        Raises:
            GutendexError: on network failure or a non-200 status
        """
        params = {
            "page": page,
            "languages": language,
            "sort": sort
        }
        
        logger.info(f"Fetching Gutendex page {page}")
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise GutendexError(f"Gutendex request failed: {e}") from e
        
        if response.status_code != 200:
            raise GutendexError(f"Gutendex returned {response.status_code}")
        
        return response.json()
    
    def close(self):
        """Close the session."""
        self.session.close()
    
    def __enter__(self):
        """Context manager entry."""
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
