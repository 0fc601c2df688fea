"""Infrastructure: backing stores and the cache-aside service."""
