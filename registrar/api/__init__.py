"""
API module exposing the engine over REST.
"""

from .rest_api import RegistrarRestAPI

__all__ = [
    "RegistrarRestAPI",
]
