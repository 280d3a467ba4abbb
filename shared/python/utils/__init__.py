from .graceful_shutdown import GracefulShutdown

__all__ = [
    'GracefulShutdown',
]
