"""
FastAPI Backend for the Incubator Grant Ledger

Provides REST API endpoints over the grant ledger service.
"""

from .main import app

__all__ = ["app"]
