"""HTTP liveness probe."""

from .server import HealthServer

__all__ = ['HealthServer']
