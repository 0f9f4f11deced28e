"""Parsers for crawled wiki pages."""

from .html import WikiPageParser

__all__ = ["WikiPageParser"]
