"""Traversal and rendering machinery."""

from .renderer import JSON_NULL, JsonRenderer, Renderer, ValueContext, ValueInterceptor, json_default
from .traversal import TraversalEngine, rebuild_collection

__all__ = [
    "TraversalEngine",
    "rebuild_collection",
    "JsonRenderer",
    "Renderer",
    "ValueContext",
    "ValueInterceptor",
    "JSON_NULL",
    "json_default",
]
