"""
HTTP transport used by providers and tools
"""

from .client import (
    HttpAuthentication,
    HttpRequestConfig,
    HttpResponse,
    TransportClient,
)

__all__ = [
    'HttpAuthentication',
    'HttpRequestConfig',
    'HttpResponse',
    'TransportClient',
]
