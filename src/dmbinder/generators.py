"""Content generators built from a tree of generator source configs.

A config tree is resolved into runnable generators through a dispatch table
keyed by ``GeneratorType``. Child generators are only resolved when their
parent actually runs them, so branches that are never taken are never
loaded.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Hashable, List, Mapping, Optional, Protocol, Tuple, Union

import structlog

from .config import (
    GeneratorSourceConfig,
    GeneratorType,
    SwitchValue,
    load_generator_config,
)
from .errors import (
    CyclicGeneratorReference,
    EmptyTransition,
    EmptyValueSet,
    GeneratorNotFound,
    UnmatchedSwitchBranch,
)
from .markov import MarkovChain

logger = structlog.get_logger()

InputPrompter = Callable[[str], Optional[str]]
GeneratorArgs = Mapping[str, str]

DEFAULT_BRANCH = "default"
_PLACEHOLDER = re.compile(r"\{([A-Za-z0-9_\-]+)\}")


class ContentGenerator(Protocol):
    def generate(self, args: GeneratorArgs) -> str:
        ...


@dataclass(frozen=True)
class ResolutionContext:
    rng: random.Random
    input_prompter: Optional[InputPrompter] = None
    base_dir: Optional[Path] = None
    scopes: Tuple[Mapping[str, GeneratorSourceConfig], ...] = ()
    active: FrozenSet[Hashable] = field(default_factory=frozenset)

    def enter(self, key: Hashable, label: str, config: GeneratorSourceConfig) -> ResolutionContext:
        if key in self.active:
            raise CyclicGeneratorReference(label)
        return ResolutionContext(
            rng=self.rng,
            input_prompter=self.input_prompter,
            base_dir=config.base_dir or self.base_dir,
            scopes=(config.sources,) + self.scopes,
            active=self.active | {key},
        )

    def lookup(self, name: str) -> Optional[GeneratorSourceConfig]:
        for scope in self.scopes:
            found = scope.get(name)
            if found is not None:
                return found
        return None


class BasicGenerator:
    def __init__(self, values: Tuple[str, ...], sources: Mapping[str, GeneratorSourceConfig], context: ResolutionContext) -> None:
        if not values:
            raise EmptyValueSet("Basic generator has no values to pick from.")
        self._values = values
        self._sources = sources
        self._context = context

    def generate(self, args: GeneratorArgs) -> str:
        value = self._context.rng.choice(self._values)
        return fill_placeholders(value, args, self._sources, self._context)


class ImportGenerator:
    def __init__(self, target: ContentGenerator) -> None:
        self._target = target

    def generate(self, args: GeneratorArgs) -> str:
        return self._target.generate(args)


class MarkovContentGenerator:
    """Synthesizes words from a character-level Markov chain.

    A word whose last character has no recorded continuation before it
    reaches its sampled length is started over with a new length and initial
    character. After ``max_attempts`` failed starts the last
    ``EmptyTransition`` is raised.
    """

    def __init__(self, chain: MarkovChain, max_attempts: int = 10) -> None:
        if chain.is_empty:
            raise EmptyValueSet("Markov generator has no training values.")
        self._chain = chain
        self._max_attempts = max(1, max_attempts)

    def generate(self, args: Optional[GeneratorArgs] = None) -> str:
        word_count = self._chain.select_word_count()
        return " ".join(self._generate_word() for _ in range(word_count))

    def _generate_word(self) -> str:
        attempt = 1
        while True:
            word_length = self._chain.select_word_length()
            word = self._chain.select_initial_character()
            try:
                while len(word) < word_length:
                    word += self._chain.select_link(word[-1])
            except EmptyTransition:
                if attempt >= self._max_attempts:
                    raise
                logger.debug("markov_word_restarted", attempt=attempt, partial=word, length=word_length)
                attempt += 1
                continue
            return word


class MultilineGenerator:
    def __init__(self, sources: Mapping[str, GeneratorSourceConfig], context: ResolutionContext) -> None:
        if not sources:
            raise EmptyValueSet("Multiline generator has no sources.")
        self._sources = sources
        self._context = context
        self._children: Optional[List[ContentGenerator]] = None

    def generate(self, args: GeneratorArgs) -> str:
        if self._children is None:
            self._children = [
                resolve_generator(child, self._context, name=name) for name, child in self._sources.items()
            ]
        return "\n".join(child.generate(args) for child in self._children)


class SwitchGenerator:
    def __init__(self, config: GeneratorSourceConfig, context: ResolutionContext) -> None:
        self._condition = config.condition or ""
        self._switch_values = config.switch_values
        self._sources = config.sources
        self._context = context
        self._branches: Dict[str, ContentGenerator] = {}

    def answer(self, args: GeneratorArgs) -> str:
        if self._condition in args:
            return str(args[self._condition])
        prompter = self._context.input_prompter
        if prompter is not None:
            reply = prompter(self._condition)
            if reply and reply.strip():
                return reply.strip()
        return self._condition

    def generate(self, args: GeneratorArgs) -> str:
        answer = self.answer(args)
        for branch in (answer, DEFAULT_BRANCH):
            if branch in self._switch_values:
                logger.debug("switch_branch_selected", condition=self._condition, branch=branch)
                return self._pick(branch, self._switch_values[branch], args)
            if branch in self._sources:
                logger.debug("switch_branch_selected", condition=self._condition, branch=branch)
                child = self._branches.get(branch)
                if child is None:
                    child = resolve_generator(self._sources[branch], self._context, name=branch)
                    self._branches[branch] = child
                return child.generate(args)
        raise UnmatchedSwitchBranch(self._condition, answer)

    def _pick(self, branch: str, entry: SwitchValue, args: GeneratorArgs) -> str:
        if isinstance(entry, str):
            value = entry
        elif entry:
            value = self._context.rng.choice(entry)
        else:
            raise EmptyValueSet(f"Switch branch '{branch}' has no values.")
        return fill_placeholders(value, args, self._sources, self._context)


def fill_placeholders(
    value: str,
    args: GeneratorArgs,
    sources: Mapping[str, GeneratorSourceConfig],
    context: ResolutionContext,
) -> str:
    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in args:
            return str(args[name])
        child = sources.get(name)
        if child is None:
            return match.group(0)
        return resolve_generator(child, context, name=name).generate(args)

    return _PLACEHOLDER.sub(replace, value)


def _load_import(config: GeneratorSourceConfig, context: ResolutionContext, name: str) -> ContentGenerator:
    if config.source_file:
        source_path = Path(config.source_file).expanduser()
        if not source_path.is_absolute():
            source_path = (context.base_dir or Path.cwd()) / source_path
        source_path = source_path.resolve()
        if not source_path.is_file():
            raise GeneratorNotFound(f"Imported generator file not found: {source_path}")
        try:
            imported = load_generator_config(source_path)
        except (OSError, ValueError) as exc:
            raise GeneratorNotFound(f"Imported generator file could not be read: {source_path}: {exc}") from exc
        logger.debug("generator_imported", generator=name, path=str(source_path))
        return resolve_generator(imported, context)
    if not config.values:
        raise GeneratorNotFound(f"Import generator '{name}' names neither a sourceFile nor a generator.")
    target_name = config.values[0]
    target = context.lookup(target_name)
    if target is None:
        raise GeneratorNotFound(f"Import generator '{name}' references undefined generator '{target_name}'.")
    return resolve_generator(target, context, name=target_name)


def _build_basic(config: GeneratorSourceConfig, context: ResolutionContext, name: str) -> ContentGenerator:
    return BasicGenerator(config.values, config.sources, context)


def _build_import(config: GeneratorSourceConfig, context: ResolutionContext, name: str) -> ContentGenerator:
    return ImportGenerator(_load_import(config, context, name))


def _build_markov(config: GeneratorSourceConfig, context: ResolutionContext, name: str) -> ContentGenerator:
    return MarkovContentGenerator(MarkovChain.from_values(config.values, rng=context.rng))


def _build_multiline(config: GeneratorSourceConfig, context: ResolutionContext, name: str) -> ContentGenerator:
    return MultilineGenerator(config.sources, context)


def _build_switch(config: GeneratorSourceConfig, context: ResolutionContext, name: str) -> ContentGenerator:
    return SwitchGenerator(config, context)


_FACTORIES: Dict[GeneratorType, Callable[[GeneratorSourceConfig, ResolutionContext, str], ContentGenerator]] = {
    GeneratorType.BASIC: _build_basic,
    GeneratorType.IMPORT: _build_import,
    GeneratorType.MARKOV: _build_markov,
    GeneratorType.MULTILINE: _build_multiline,
    GeneratorType.SWITCH: _build_switch,
}


def resolve_generator(
    config: GeneratorSourceConfig,
    context: ResolutionContext,
    name: Optional[str] = None,
) -> ContentGenerator:
    """Turn one config node into a runnable generator.

    ``name`` is the node's key in its parent's ``sources``; document roots
    are resolved with ``name=None`` and are tracked by file so that imports
    looping back to an enclosing document are detected.
    """
    if name is None and config.origin is not None:
        key: Hashable = ("file", str(config.origin))
        label = str(config.origin)
    else:
        key = ("node", id(config))
        label = name or "<root>"
    inner = context.enter(key, label, config)
    logger.debug("generator_resolved", generator=label, generator_type=config.generator_type.value)
    return _FACTORIES[config.generator_type](config, inner, label)


class GeneratorSource:
    """A loaded generator document, ready to produce content."""

    def __init__(
        self,
        config: GeneratorSourceConfig,
        rng: Optional[random.Random] = None,
        name: Optional[str] = None,
        is_document_root: bool = True,
        scopes: Tuple[Mapping[str, GeneratorSourceConfig], ...] = (),
    ) -> None:
        self.config = config
        self.name = name
        self._is_document_root = is_document_root
        # enclosing source maps, innermost first, for named imports
        self._scopes = scopes
        self._random = rng if rng is not None else random.Random()

    @classmethod
    def load_generator_source(
        cls,
        path: Union[str, Path],
        rng: Optional[random.Random] = None,
    ) -> GeneratorSource:
        source_path = Path(path)
        if not source_path.is_file():
            raise GeneratorNotFound(f"Generator file not found: {source_path}")
        return cls(load_generator_config(source_path), rng=rng, name=source_path.stem)

    @property
    def generator_names(self) -> Tuple[str, ...]:
        return tuple(self.config.sources)

    def select(self, name: str) -> GeneratorSource:
        child = self.config.sources.get(name)
        if child is None:
            raise GeneratorNotFound(f"No generator named '{name}' in {self.name or 'this source'}.")
        return GeneratorSource(
            child,
            rng=self._random,
            name=name,
            is_document_root=False,
            scopes=(self.config.sources,) + self._scopes,
        )

    def generator(self, input_prompter: Optional[InputPrompter] = None) -> ContentGenerator:
        context = ResolutionContext(
            rng=self._random,
            input_prompter=input_prompter,
            base_dir=self.config.base_dir,
            scopes=self._scopes,
        )
        return resolve_generator(self.config, context, name=None if self._is_document_root else self.name)

    def generate_content(
        self,
        args: Optional[GeneratorArgs] = None,
        input_prompter: Optional[InputPrompter] = None,
    ) -> str:
        content = self.generator(input_prompter).generate(dict(args or {}))
        logger.info("content_generated", generator=self.name, characters=len(content))
        return content

    def generate(self, args: GeneratorArgs) -> str:
        return self.generate_content(args)


def load_generator_source(path: Union[str, Path], rng: Optional[random.Random] = None) -> GeneratorSource:
    return GeneratorSource.load_generator_source(path, rng=rng)


def discover_generators(directory: Path, extensions: Tuple[str, ...]) -> Dict[str, Path]:
    """Map generator names (file stems) to files found under ``directory``."""
    found: Dict[str, Path] = {}
    if not directory.is_dir():
        return found
    for path in sorted(directory.rglob("*")):
        if path.is_file() and path.suffix.lower() in extensions:
            found.setdefault(path.stem, path)
    return found
