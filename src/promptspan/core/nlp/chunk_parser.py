"""IOB shallow parser over Penn Treebank tagged tokens.

Patterns, tried in this order at every position:

    NP: <DT>? <JJ>{0,3} <NN>+      (at most 3 tokens from the start)
    VP: <VB*>+ <RB>?
    PP: <IN> <DT>? <JJ>* <NN>*

Tokens matching none of them are tagged ``O``. Tagging is a single
left-to-right pass; chunks are then read off the IOB tags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .ptb_tags import (
    Token,
    is_adjective_tag,
    is_adverb_tag,
    is_determiner_tag,
    is_noun_tag,
    is_preposition_tag,
    is_verb_form,
    is_verb_tag,
)

logger = logging.getLogger(__name__)

MAX_NP_LENGTH = 3
MAX_NP_ADJECTIVES = 3

# Tokens that end a noun run even when the tagger calls them nouns
_NP_BREAK_WORDS = frozenset({",", ";", "."})


class ChunkType(str, Enum):
    NP = "NP"
    VP = "VP"
    PP = "PP"


class IOBTag(str, Enum):
    B_NP = "B-NP"
    I_NP = "I-NP"
    B_VP = "B-VP"
    I_VP = "I-VP"
    B_PP = "B-PP"
    I_PP = "I-PP"
    O = "O"

    @property
    def chunk_type(self) -> Optional[ChunkType]:
        if self is IOBTag.O:
            return None
        return ChunkType(self.value[2:])

    @property
    def is_begin(self) -> bool:
        return self.value.startswith("B-")


@dataclass
class Chunk:
    """
    A contiguous run of tokens with one phrase type.

    ``start_index``/``end_index`` are token positions (end exclusive);
    ``char_start``/``char_end`` are source-text offsets. Complex chunks
    built by the merger keep their parts in ``components``.
    """

    type: ChunkType
    tokens: List[Token]
    start_index: int
    end_index: int
    components: Tuple["Chunk", ...] = field(default=())

    def __post_init__(self):
        if not self.tokens:
            raise ValueError("Chunk needs at least one token")

    @property
    def text(self) -> str:
        return " ".join(t.word for t in self.tokens)

    @property
    def char_start(self) -> int:
        return self.tokens[0].start

    @property
    def char_end(self) -> int:
        return self.tokens[-1].end

    @property
    def is_complex(self) -> bool:
        return bool(self.components)

    def head_noun(self) -> Optional[Token]:
        """Rightmost noun of an NP."""
        if self.type is not ChunkType.NP:
            return None
        for token in reversed(self.tokens):
            if is_noun_tag(token.tag):
                return token
        return None

    def modifiers(self) -> List[Token]:
        """Adjectives and determiners of an NP."""
        if self.type is not ChunkType.NP:
            return []
        return [
            t for t in self.tokens
            if is_adjective_tag(t.tag) or is_determiner_tag(t.tag)
        ]

    def main_verb(self) -> Optional[Token]:
        if self.type is not ChunkType.VP:
            return None
        for token in self.tokens:
            if is_verb_tag(token.tag):
                return token
        return self.tokens[0]

    def preposition(self) -> Optional[Token]:
        if self.type is not ChunkType.PP:
            return None
        first = self.tokens[0]
        return first if is_preposition_tag(first.tag) else None

    def object_tokens(self) -> List[Token]:
        """Everything after the preposition of a PP."""
        if self.type is not ChunkType.PP:
            return []
        return list(self.tokens[1:])


# =============================================================================
# IOB TAGGING
# =============================================================================


def _is_np_start(tokens: Sequence[Token], i: int) -> bool:
    tag = tokens[i].tag
    return is_determiner_tag(tag) or is_adjective_tag(tag) or is_noun_tag(tag)


def _ends_noun_run(token: Token) -> bool:
    return (
        is_verb_form(token)
        or token.word in _NP_BREAK_WORDS
        or not is_noun_tag(token.tag)
    )


def _tag_np(tokens: Sequence[Token], tags: List[IOBTag], start: int) -> int:
    i = start
    n = len(tokens)

    if i < n and is_determiner_tag(tokens[i].tag):
        tags[i] = IOBTag.B_NP
        i += 1

    adjectives = 0
    while i < n and is_adjective_tag(tokens[i].tag) and adjectives < MAX_NP_ADJECTIVES:
        tags[i] = IOBTag.B_NP if i == start else IOBTag.I_NP
        i += 1
        adjectives += 1

    found_noun = False
    while i < n and is_noun_tag(tokens[i].tag):
        if i - start >= MAX_NP_LENGTH:
            break
        tags[i] = IOBTag.B_NP if i == start else IOBTag.I_NP
        found_noun = True
        i += 1
        if i < n and _ends_noun_run(tokens[i]):
            break

    if not found_noun:
        for j in range(start, i):
            tags[j] = IOBTag.O
        return start + 1
    return i


def _tag_vp(tokens: Sequence[Token], tags: List[IOBTag], start: int) -> int:
    # The start token qualified as a verb form, possibly by word list alone
    tags[start] = IOBTag.B_VP
    i = start + 1
    n = len(tokens)
    while i < n and is_verb_tag(tokens[i].tag):
        tags[i] = IOBTag.I_VP
        i += 1
    if i < n and is_adverb_tag(tokens[i].tag):
        tags[i] = IOBTag.I_VP
        i += 1
    return i


def _tag_pp(tokens: Sequence[Token], tags: List[IOBTag], start: int) -> int:
    tags[start] = IOBTag.B_PP
    i = start + 1
    n = len(tokens)
    if i < n and _is_np_start(tokens, i):
        if is_determiner_tag(tokens[i].tag):
            tags[i] = IOBTag.I_PP
            i += 1
        while i < n and is_adjective_tag(tokens[i].tag):
            tags[i] = IOBTag.I_PP
            i += 1
        while i < n and is_noun_tag(tokens[i].tag):
            tags[i] = IOBTag.I_PP
            i += 1
    return i


def assign_iob_tags(tokens: Sequence[Token]) -> List[IOBTag]:
    """IOB tag per token, in token order."""
    tags = [IOBTag.O] * len(tokens)
    i = 0
    while i < len(tokens):
        if _is_np_start(tokens, i):
            i = _tag_np(tokens, tags, i)
        elif is_verb_form(tokens[i]):
            i = _tag_vp(tokens, tags, i)
        elif is_preposition_tag(tokens[i].tag):
            i = _tag_pp(tokens, tags, i)
        else:
            i += 1
    return tags


def group_into_chunks(tokens: Sequence[Token], tags: Sequence[IOBTag]) -> List[Chunk]:
    """Read chunks off IOB tags.

    ``B-`` opens a chunk; ``I-`` extends an open chunk of the same type and
    otherwise opens a new one; ``O`` closes whatever is open.
    """
    chunks: List[Chunk] = []
    current: List[Token] = []
    current_type: Optional[ChunkType] = None
    current_start = 0

    def close(end: int) -> None:
        if current_type is not None and current:
            chunks.append(Chunk(current_type, list(current), current_start, end))

    for index, (token, tag) in enumerate(zip(tokens, tags)):
        chunk_type = tag.chunk_type
        if chunk_type is None:
            close(index)
            current, current_type = [], None
        elif tag.is_begin or chunk_type is not current_type:
            close(index)
            current, current_type, current_start = [token], chunk_type, index
        else:
            current.append(token)

    close(len(tokens))
    return chunks


def extract_chunks(tokens: Optional[Sequence[Token]]) -> List[Chunk]:
    """Tag *tokens* and group them into NP/VP/PP chunks."""
    if not tokens:
        return []
    chunks = group_into_chunks(tokens, assign_iob_tags(tokens))
    logger.debug("Extracted chunks", extra={"token_count": len(tokens), "chunk_count": len(chunks)})
    return chunks


def analyze_chunks(tokens: Optional[Sequence[Token]]) -> Dict[str, Any]:
    """Chunks split by type, with counts."""
    chunks = extract_chunks(tokens)
    nps = [c for c in chunks if c.type is ChunkType.NP]
    vps = [c for c in chunks if c.type is ChunkType.VP]
    pps = [c for c in chunks if c.type is ChunkType.PP]
    return {
        "chunks": chunks,
        "noun_phrases": nps,
        "verb_phrases": vps,
        "prepositional_phrases": pps,
        "stats": {
            "total_chunks": len(chunks),
            "np_count": len(nps),
            "vp_count": len(vps),
            "pp_count": len(pps),
        },
    }


__all__ = [
    "ChunkType",
    "IOBTag",
    "Chunk",
    "MAX_NP_LENGTH",
    "assign_iob_tags",
    "group_into_chunks",
    "extract_chunks",
    "analyze_chunks",
]
