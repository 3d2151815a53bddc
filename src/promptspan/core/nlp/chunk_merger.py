"""Cascading merge of noun phrases with their attribute phrases.

"A man with a red hat" is one entity; "a man in a car" is two. A PP whose
preposition marks an attribute is folded into the preceding NP, producing
a complex NP that remembers its parts. Spatial and temporal PPs stay
separate.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .chunk_parser import Chunk, ChunkType
from .ptb_tags import is_noun_tag

logger = logging.getLogger(__name__)

ATTRIBUTE_PREPOSITIONS = frozenset({"with", "wearing", "carrying", "holding", "having"})

SPATIAL_PREPOSITIONS = frozenset({
    "in", "at", "on", "near", "by", "beside", "under", "over",
    "through", "across", "behind", "in front of", "next to",
})

TEMPORAL_PREPOSITIONS = frozenset({"during", "before", "after", "while", "when"})

# Object head noun -> head nouns it plausibly belongs to
LEXICAL_AFFINITY: Dict[str, frozenset] = {
    "hat": frozenset({"man", "woman", "person", "character", "cowboy", "soldier"}),
    "jacket": frozenset({"man", "woman", "person", "character", "soldier"}),
    "glasses": frozenset({"man", "woman", "person", "character"}),
    "scarf": frozenset({"man", "woman", "person", "character"}),
    "weapon": frozenset({"soldier", "warrior", "character", "person"}),
    "rifle": frozenset({"soldier", "hunter", "character"}),
    "sword": frozenset({"warrior", "knight", "character"}),
    "telescope": frozenset({"man", "woman", "person", "astronomer"}),
    "camera": frozenset({"photographer", "person", "character"}),
    "microphone": frozenset({"singer", "person", "character"}),
    "eyes": frozenset({"man", "woman", "person", "character", "animal"}),
    "hand": frozenset({"man", "woman", "person", "character"}),
    "face": frozenset({"man", "woman", "person", "character"}),
}


def is_attribute_preposition(prep: str) -> bool:
    return prep.lower() in ATTRIBUTE_PREPOSITIONS


def is_spatial_preposition(prep: str) -> bool:
    return prep.lower() in SPATIAL_PREPOSITIONS


def is_temporal_preposition(prep: str) -> bool:
    return prep.lower() in TEMPORAL_PREPOSITIONS


def _preposition_word(pp: Chunk) -> Optional[str]:
    prep = pp.preposition()
    return prep.normal if prep is not None else None


def should_merge(np: Chunk, pp: Chunk) -> bool:
    """
    Whether *pp* attaches to *np* as an attribute.

    Attribute prepositions always attach, spatial and temporal ones never
    do. Anything else attaches only when the head noun of the PP object
    has lexical affinity with the NP head noun.
    """
    if np.type is not ChunkType.NP or pp.type is not ChunkType.PP:
        return False

    prep = _preposition_word(pp)
    if prep is None:
        return False
    if prep in ATTRIBUTE_PREPOSITIONS:
        return True
    if prep in SPATIAL_PREPOSITIONS or prep in TEMPORAL_PREPOSITIONS:
        return False

    head = np.head_noun()
    object_head = next((t for t in pp.object_tokens() if is_noun_tag(t.tag)), None)
    if head is None or object_head is None:
        return False
    return head.normal in LEXICAL_AFFINITY.get(object_head.normal, frozenset())


def merge_attribute_pps(chunks: Sequence[Chunk]) -> List[Chunk]:
    """Fold ``NP + PP(attribute preposition)`` pairs into complex NPs."""
    result: List[Chunk] = []
    i = 0
    while i < len(chunks):
        chunk = chunks[i]
        if i + 1 < len(chunks) and should_merge(chunk, chunks[i + 1]):
            pp = chunks[i + 1]
            result.append(
                Chunk(
                    ChunkType.NP,
                    list(chunk.tokens) + list(pp.tokens),
                    chunk.start_index,
                    pp.end_index,
                    components=(chunk, pp),
                )
            )
            i += 2
            continue
        result.append(chunk)
        i += 1
    return result


def merge_cascading(chunks: Optional[Sequence[Chunk]]) -> List[Chunk]:
    """Run every merge stage over parser output."""
    if not chunks:
        return []
    merged = merge_attribute_pps(chunks)
    if len(merged) != len(chunks):
        logger.debug(
            "Merged attribute phrases",
            extra={"before": len(chunks), "after": len(merged)},
        )
    return merged


def split_complex(chunk: Chunk) -> List[Chunk]:
    if chunk.is_complex:
        return list(chunk.components)
    return [chunk]


def all_noun_phrases(chunks: Sequence[Chunk]) -> List[Chunk]:
    """Every NP, looking inside complex chunks for their NP parts."""
    nps: List[Chunk] = []
    for chunk in chunks:
        if chunk.type is not ChunkType.NP:
            continue
        nps.extend(c for c in split_complex(chunk) if c.type is ChunkType.NP)
    return nps


def analyze_merges(original: Sequence[Chunk], merged: Sequence[Chunk]) -> Dict[str, Any]:
    complex_chunks = [c for c in merged if c.is_complex]
    return {
        "original_count": len(original),
        "merged_count": len(merged),
        "merge_operations": len(original) - len(merged),
        "complex_chunks": len(complex_chunks),
        "merge_details": [
            {
                "text": c.text,
                "components": [{"type": part.type.value, "text": part.text} for part in c.components],
            }
            for c in complex_chunks
        ],
    }


__all__ = [
    "ATTRIBUTE_PREPOSITIONS",
    "SPATIAL_PREPOSITIONS",
    "TEMPORAL_PREPOSITIONS",
    "LEXICAL_AFFINITY",
    "is_attribute_preposition",
    "is_spatial_preposition",
    "is_temporal_preposition",
    "should_merge",
    "merge_attribute_pps",
    "merge_cascading",
    "split_complex",
    "all_noun_phrases",
    "analyze_merges",
]
