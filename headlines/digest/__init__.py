"""Digest generation: window, translation, tags, assembly, and rendering."""

from headlines.digest.assembler import DigestAssembler
from headlines.digest.renderer import object_metadata, render_document
from headlines.digest.tags import extract_tags
from headlines.digest.translator import Translator
from headlines.digest.window import compute_window

__all__ = [
    "DigestAssembler",
    "Translator",
    "compute_window",
    "extract_tags",
    "object_metadata",
    "render_document",
]
