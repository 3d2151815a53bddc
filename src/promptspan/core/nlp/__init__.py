"""Shallow NLP over POS-tagged tokens: chunking and symbolic annotation."""

from .annotator import SymbolicAnnotator, annotate_tokens, chunk_to_raw_span
from .chunk_merger import merge_cascading, should_merge
from .chunk_parser import Chunk, ChunkType, IOBTag, analyze_chunks, extract_chunks
from .ptb_tags import Token

__all__ = [
    "Token",
    "Chunk",
    "ChunkType",
    "IOBTag",
    "extract_chunks",
    "analyze_chunks",
    "merge_cascading",
    "should_merge",
    "chunk_to_raw_span",
    "annotate_tokens",
    "SymbolicAnnotator",
]
