"""
promptspan - span validation and correction for video-prompt annotations

This package provides:
- Core: span model, taxonomy, and the correction pipeline
- Service: async labeling over any annotator (LLM client or symbolic parser)
- CLI: validate annotator output, chunk long prompts, inspect the taxonomy
"""

__version__ = "0.1.0"
