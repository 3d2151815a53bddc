"""Penn Treebank tag predicates.

Tokens arrive already tagged; these helpers only classify tags and words.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

NOUN_TAGS = frozenset({"NN", "NNS", "NNP", "NNPS"})
VERB_TAGS = frozenset({"VB", "VBD", "VBG", "VBN", "VBP", "VBZ"})
ADJECTIVE_TAGS = frozenset({"JJ", "JJR", "JJS"})
ADVERB_TAGS = frozenset({"RB", "RBR", "RBS"})
DETERMINER_TAGS = frozenset({"DT", "PDT"})
PUNCTUATION_TAGS = frozenset({".", ",", ":", "(", ")", "``", "''"})

# Words taggers commonly mislabel as nouns in prompt text
COMMON_VERBS = frozenset({
    "carrying", "filled", "rolls", "emphasize", "remains", "capturing",
    "picks", "streams", "creating", "highlighting", "uses", "accentuate",
    "immersing", "casting", "shot", "filmed", "recorded", "create",
    "analyze", "sort", "write", "make", "get", "go", "do",
})

AUXILIARY_VERBS = frozenset({
    "is", "am", "are", "was", "were", "be", "being", "been", "has", "have",
    "had", "do", "does", "did", "will", "shall", "can", "may", "must",
})


@dataclass(frozen=True)
class Token:
    """A tagged word with its character range in the source text."""

    word: str
    tag: str
    start: int
    end: int

    @property
    def normal(self) -> str:
        return self.word.lower()


def is_noun_tag(tag: str) -> bool:
    return tag in NOUN_TAGS


def is_verb_tag(tag: str) -> bool:
    return tag in VERB_TAGS


def is_adjective_tag(tag: str) -> bool:
    return tag in ADJECTIVE_TAGS


def is_adverb_tag(tag: str) -> bool:
    return tag in ADVERB_TAGS


def is_preposition_tag(tag: str) -> bool:
    return tag == "IN"


def is_determiner_tag(tag: str) -> bool:
    return tag in DETERMINER_TAGS


def is_verb_form(token: Optional[Token]) -> bool:
    """Verb by tag, or a known verb the tagger tends to miss."""
    if token is None:
        return False
    return token.normal in COMMON_VERBS or is_verb_tag(token.tag)


def is_auxiliary_verb(word: Optional[str]) -> bool:
    if not word:
        return False
    return word.lower() in AUXILIARY_VERBS


__all__ = [
    "Token",
    "NOUN_TAGS",
    "VERB_TAGS",
    "ADJECTIVE_TAGS",
    "ADVERB_TAGS",
    "DETERMINER_TAGS",
    "PUNCTUATION_TAGS",
    "COMMON_VERBS",
    "AUXILIARY_VERBS",
    "is_noun_tag",
    "is_verb_tag",
    "is_adjective_tag",
    "is_adverb_tag",
    "is_preposition_tag",
    "is_determiner_tag",
    "is_verb_form",
    "is_auxiliary_verb",
]
