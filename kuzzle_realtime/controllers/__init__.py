"""Thin payload builders over the request API, one per server controller."""

from .auth import AuthController
from .base import Controller
from .collection import CollectionController
from .document import DocumentController
from .index import IndexController

__all__ = [
    "AuthController",
    "CollectionController",
    "Controller",
    "DocumentController",
    "IndexController",
]
