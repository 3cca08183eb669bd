"""
API route modules
"""

from .providers import router as providers_router
from .tools import router as tools_router
from .workflows import router as workflows_router

__all__ = ['providers_router', 'tools_router', 'workflows_router']
