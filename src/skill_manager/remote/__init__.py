"""Remote repository access: cached GitHub API client."""

from skill_manager.remote.cache import CacheEntry, ResponseCache
from skill_manager.remote.client import GitHubClient

__all__ = ["CacheEntry", "ResponseCache", "GitHubClient"]
