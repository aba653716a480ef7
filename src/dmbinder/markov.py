"""Character-level Markov chain used by the ``markov`` generator type."""

from __future__ import annotations

import random
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

import structlog

from .errors import EmptyTransition

logger = structlog.get_logger()


class MarkovChain:
    """First-order character transition model trained on a word corpus.

    Every training value is split on whitespace. The chain records how many
    words each value had, the length and first character of every word and
    the count of every adjacent character pair. Sampling picks from those
    observations, so generated text follows the corpus' empirical
    distribution of word counts and word lengths.
    """

    def __init__(self, values: Iterable[str] = (), rng: Optional[random.Random] = None) -> None:
        self._random = rng if rng is not None else random.Random()
        self.links: Dict[str, Dict[str, int]] = defaultdict(dict)
        self.initial_characters: List[str] = []
        self.word_lengths: List[int] = []
        self.word_counts: List[int] = []
        self.build_chain(values)

    @classmethod
    def from_values(cls, values: Iterable[str], rng: Optional[random.Random] = None) -> MarkovChain:
        return cls(values, rng=rng)

    def build_chain(self, values: Iterable[str]) -> None:
        for value in values:
            words = str(value).split()
            if not words:
                continue
            self.word_counts.append(len(words))
            for word in words:
                self._add_word(word)
        logger.debug(
            "markov_chain_built",
            words=len(self.word_lengths),
            characters=len(self.links),
        )

    def _add_word(self, word: str) -> None:
        if not word:
            return
        self.initial_characters.append(word[0])
        self.word_lengths.append(len(word))
        for current, following in zip(word, word[1:]):
            transitions = self.links[current]
            transitions[following] = transitions.get(following, 0) + 1

    @property
    def is_empty(self) -> bool:
        return not self.initial_characters

    def select_word_count(self) -> int:
        # Uniform pick over the per-value word counts seen in training.
        if not self.word_counts:
            return 1
        return self._random.choice(self.word_counts)

    def select_word_length(self) -> int:
        if not self.word_lengths:
            return 1
        return self._random.choice(self.word_lengths)

    def select_initial_character(self) -> str:
        if not self.initial_characters:
            raise EmptyTransition("")
        return self._random.choice(self.initial_characters)

    def select_link(self, current: str) -> str:
        transitions = self.links.get(current)
        if not transitions:
            raise EmptyTransition(current)
        total = sum(transitions.values())
        pick = self._random.random() * total
        threshold = 0
        for character, count in transitions.items():
            threshold += count
            if pick < threshold:
                return character
        return character  # pragma: no cover - float rounding at the upper edge
