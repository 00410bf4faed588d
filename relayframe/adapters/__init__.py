from .base import BackendAdapter, SearchProvider, categorize_exception
from .bing_search import BingSearchProvider
from .google_search import GoogleSearchProvider
from .openrouter_chat import OpenRouterChatAdapter, SSELineBuffer

__all__ = [
    "BackendAdapter",
    "SearchProvider",
    "categorize_exception",
    "OpenRouterChatAdapter",
    "SSELineBuffer",
    "GoogleSearchProvider",
    "BingSearchProvider",
]
