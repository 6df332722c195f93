"""
External action sink.
Opens URLs and search results in the system default browser. Fire-and-forget:
callers never observe a result.
"""
import webbrowser
from typing import Dict, Optional
from urllib.parse import urlencode

from dia.core.logger import get_logger


# Spoken site names the assistant knows how to open
KNOWN_SITES: Dict[str, str] = {
    "youtube": "https://www.youtube.com",
    "google": "https://www.google.com",
    "gmail": "https://mail.google.com",
    "maps": "https://maps.google.com",
    "google maps": "https://maps.google.com",
    "facebook": "https://www.facebook.com",
    "twitter": "https://twitter.com",
    "instagram": "https://www.instagram.com",
    "wikipedia": "https://www.wikipedia.org",
    "github": "https://github.com",
    "netflix": "https://www.netflix.com",
    "spotify": "https://open.spotify.com",
    "amazon": "https://www.amazon.com",
    "reddit": "https://www.reddit.com",
    "linkedin": "https://www.linkedin.com",
}


def resolve_open_target(target: str) -> Optional[str]:
    """Map a spoken target to a URL, or None if unknown"""
    key = (target or "").strip().lower()
    if not key:
        return None
    if key in KNOWN_SITES:
        return KNOWN_SITES[key]
    # "youtube for me" -> "youtube"
    first = key.split()[0]
    return KNOWN_SITES.get(first)


def search_url(query: str) -> str:
    return f"https://www.google.com/search?{urlencode({'q': query})}"


def video_search_url(query: str) -> str:
    return f"https://www.youtube.com/results?{urlencode({'search_query': query})}"


class ActionSink:
    """Interface for external side effects triggered by commands"""
    
    def open_url(self, url: str) -> None:
        raise NotImplementedError
    
    def open_search(self, query: str) -> None:
        raise NotImplementedError


class WebBrowserActionSink(ActionSink):
    """Action sink backed by the system default browser"""
    
    def __init__(self):
        self.logger = get_logger()
    
    def open_url(self, url: str) -> None:
        """Open a URL in a new browser tab"""
        self.logger.info(f"[TOOLS] Opening {url}")
        try:
            webbrowser.open(url, new=2)
        except webbrowser.Error as e:
            self.logger.error(f"[TOOLS] Could not open {url}: {e}")
    
    def open_search(self, query: str) -> None:
        """Open web search results for a query"""
        self.open_url(search_url(query))
