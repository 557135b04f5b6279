"""
Structured logging setup for the pedometer service
"""

from pedometer.logging.setup import setup_logging

__all__ = ["setup_logging"]
