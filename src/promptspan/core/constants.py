"""
Shared constants for the span validation pipeline.

Defaults here are the fallbacks used when no settings are loaded; the
tunable values are mirrored in :mod:`promptspan.config`.
"""

# --- SPAN DEFAULTS ---
DEFAULT_CONFIDENCE = 0.7  # applied when an annotator omits or garbles confidence
DEFAULT_ROLE = "subject"  # lenient-mode fallback for unknown roles
SPAN_ID_PREFIX = "span_"
SPAN_ID_LENGTH = 16  # hex chars of the sha256 digest kept in span ids
TEXT_PREVIEW_CHARS = 50  # truncation for span text in log records

# --- POLICY DEFAULTS ---
DEFAULT_NON_TECHNICAL_WORD_LIMIT = 15
DEFAULT_ALLOW_OVERLAP = False
TECHNICAL_PARENT = "technical"  # word-limit exempt branch of the taxonomy

# --- OPTION DEFAULTS ---
DEFAULT_MAX_SPANS = 60
DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_TEMPLATE_VERSION = "v2"

# --- PERFORMANCE ---
MAX_SPANS_ABSOLUTE_LIMIT = 80
TOKENS_PER_SPAN = 50
BASE_TOKEN_OVERHEAD = 400
MAX_TOKENS_CEILING = 8000

# --- CHUNKING ---
DEFAULT_MAX_WORDS_PER_CHUNK = 400
DEFAULT_CHUNK_OVERLAP_WORDS = 0
MAX_CONCURRENT_CHUNKS = 3

# --- MERGING ---
DEFAULT_MAX_MERGED_WORDS = 8
MAX_MERGE_GAP_CHARS = 3

# --- LOCATOR ---
DEFAULT_FUZZY_THRESHOLD = 0.35  # max normalised edit distance for fuzzy hits
FUZZY_ANCHOR_CHARS = 6  # prefix used to seed fuzzy candidate windows

# --- BOUNDARY REFINEMENT ---
# Punctuation that annotators tend to leave on span edges
EDGE_PUNCTUATION = ",;:.!?\"'`*()[]{}"

# Single-word articles/prepositions trimmed from span edges
EDGE_STOPWORDS = frozenset({
    "a", "an", "the", "of", "in", "on", "at", "with", "to", "by",
    "for", "from", "and", "or", "into", "onto",
})

# Quote characters stripped when relocating quoted span text
QUOTE_CHARS = "\"'`“”‘’"
