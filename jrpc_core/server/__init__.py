"""Server components: response helpers, resource limits, host filtering and method registries."""

__all__ = ["helpers", "resource_limiting", "host_filtering", "methods"]