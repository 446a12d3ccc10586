from regtrack.api.middleware.timeout import TimeoutMiddleware

__all__ = ["TimeoutMiddleware"]
