from __future__ import annotations


class DMBinderError(RuntimeError):
    pass


class GeneratorError(DMBinderError):
    pass


class EmptyValueSet(GeneratorError):
    """A basic or markov generator has no candidate values."""


class EmptyTransition(GeneratorError):
    """Markov sampling reached a character with no recorded continuation."""

    def __init__(self, character: str) -> None:
        super().__init__(f"No transitions recorded after character {character!r}.")
        self.character = character


class GeneratorNotFound(GeneratorError):
    pass


class UnmatchedSwitchBranch(GeneratorError):
    def __init__(self, condition: str, answer: str) -> None:
        super().__init__(f"Switch on '{condition}' has no branch for '{answer}' and no default.")
        self.condition = condition
        self.answer = answer


class CyclicGeneratorReference(GeneratorError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Generator '{key}' references itself while being resolved.")
        self.key = key


class CanvasStateError(DMBinderError):
    pass
