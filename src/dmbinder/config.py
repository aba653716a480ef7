from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib  # type: ignore[no-redef]


class GeneratorType(str, Enum):
    BASIC = "basic"
    IMPORT = "import"
    MARKOV = "markov"
    MULTILINE = "multiline"
    SWITCH = "switch"


GENERATOR_KEYS = frozenset({"generatorType", "sourceFile", "values", "condition", "switchValues", "sources"})

SwitchValue = Union[str, Tuple[str, ...]]


@dataclass(frozen=True)
class GeneratorSourceConfig:
    generator_type: GeneratorType = GeneratorType.BASIC
    source_file: Optional[str] = None
    values: Tuple[str, ...] = ()
    condition: Optional[str] = None
    switch_values: Mapping[str, SwitchValue] = field(default_factory=dict)
    sources: Mapping[str, "GeneratorSourceConfig"] = field(default_factory=dict)
    origin: Optional[Path] = None

    @property
    def base_dir(self) -> Optional[Path]:
        return self.origin.parent if self.origin is not None else None


@dataclass(frozen=True)
class CanvasColors:
    background_fill: str
    foreground_fill: str
    foreground_stroke: str
    text_stroke: str


@dataclass(frozen=True)
class DungeonCanvasConfig:
    width: int
    height: int
    colors: CanvasColors
    cell_size: int = 24
    scale: float = 1.0
    map_padding: int = 1


@dataclass(frozen=True)
class CanvasSettings:
    cell_size: int
    scale: float
    map_padding: int
    style: str
    styles: Mapping[str, CanvasColors]

    def canvas_config(
        self,
        width: int,
        height: int,
        style: Optional[str] = None,
        cell_size: Optional[int] = None,
    ) -> DungeonCanvasConfig:
        style_name = style or self.style
        colors = self.styles.get(style_name)
        if colors is None:
            raise ValueError(f"Unknown map style '{style_name}'. Known styles: {', '.join(sorted(self.styles))}.")
        return DungeonCanvasConfig(
            width=width,
            height=height,
            colors=colors,
            cell_size=_check_cell_size("cell_size", cell_size) if cell_size is not None else self.cell_size,
            scale=self.scale,
            map_padding=self.map_padding,
        )


@dataclass(frozen=True)
class GeneratorSettings:
    directory: Path
    extensions: Tuple[str, ...]


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str


@dataclass(frozen=True)
class Config:
    generators: GeneratorSettings
    canvas: CanvasSettings
    logging: LoggingSettings


DEFAULT_STYLES: Dict[str, CanvasColors] = {
    "standard": CanvasColors(
        background_fill="#FFFFFF",
        foreground_fill="#FFFFFF",
        foreground_stroke="#000000",
        text_stroke="#000000",
    ),
    "classic": CanvasColors(
        background_fill="#3A5FCD",
        foreground_fill="#FFFFFF",
        foreground_stroke="#3A5FCD",
        text_stroke="#3A5FCD",
    ),
    "dark": CanvasColors(
        background_fill="#1E1E1E",
        foreground_fill="#3C3C3C",
        foreground_stroke="#D4D4D4",
        text_stroke="#D4D4D4",
    ),
}

# Smallest cell whose door glyphs still have a non-negative width.
MIN_CELL_SIZE = 3

DEFAULT_EXTENSIONS = (".toml", ".json", ".yaml", ".yml", ".md")

_FRONT_MATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)^(?:---|\.\.\.)[ \t]*$", re.DOTALL | re.MULTILINE)


def _parse_values(name: str, raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, (list, tuple)):
        return tuple(str(value) for value in raw)
    raise ValueError(f"'values' of generator '{name}' must be a string or a list of strings.")


def _parse_switch_values(name: str, raw: Any) -> Dict[str, SwitchValue]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"'switchValues' of generator '{name}' must be a table.")
    parsed: Dict[str, SwitchValue] = {}
    for branch, entry in raw.items():
        if isinstance(entry, (list, tuple)):
            parsed[str(branch)] = tuple(str(value) for value in entry)
        elif isinstance(entry, (str, int, float)):
            parsed[str(branch)] = str(entry)
        else:
            raise ValueError(f"Switch branch '{branch}' of generator '{name}' must be a string or a list of strings.")
    return parsed


def parse_generator_source(raw: Any, name: str = "<root>", origin: Optional[Path] = None) -> GeneratorSourceConfig:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Generator '{name}' must map to a table.")
    type_raw = raw.get("generatorType") or GeneratorType.BASIC.value
    try:
        generator_type = GeneratorType(str(type_raw).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown generatorType '{type_raw}' for generator '{name}'.") from None
    source_file = raw.get("sourceFile")
    if source_file is not None and not isinstance(source_file, str):
        raise ValueError(f"'sourceFile' of generator '{name}' must be a string.")
    condition = raw.get("condition")
    sources_raw = raw.get("sources") or {}
    if not isinstance(sources_raw, Mapping):
        raise ValueError(f"'sources' of generator '{name}' must be a table.")
    sources = {
        str(child): parse_generator_source(entry, name=str(child), origin=origin)
        for child, entry in sources_raw.items()
    }
    return GeneratorSourceConfig(
        generator_type=generator_type,
        source_file=source_file.strip() if source_file else None,
        values=_parse_values(name, raw.get("values")),
        condition=str(condition) if condition is not None else None,
        switch_values=_parse_switch_values(name, raw.get("switchValues")),
        sources=sources,
        origin=origin,
    )


def parse_generator_document(raw: Any, origin: Optional[Path] = None) -> GeneratorSourceConfig:
    """Parse a document root, which is either one config or a named collection.

    A collection (a table whose keys are generator names) becomes a
    ``multiline`` root over its entries.
    """
    if not isinstance(raw, Mapping) or not raw:
        raise ValueError(f"Generator document is empty or not a table: {origin}")
    if GENERATOR_KEYS.intersection(raw.keys()):
        return parse_generator_source(raw, origin=origin)
    return parse_generator_source(
        {"generatorType": GeneratorType.MULTILINE.value, "sources": raw},
        origin=origin,
    )


def read_front_matter(text: str) -> Optional[str]:
    match = _FRONT_MATTER.match(text)
    if match is None:
        return None
    return match.group(1)


def load_document(path: Union[str, Path]) -> Mapping[str, Any]:
    document_path = Path(path)
    if not document_path.exists():
        raise FileNotFoundError(f"Document not found: {document_path}")
    suffix = document_path.suffix.lower()
    if suffix == ".toml":
        with document_path.open("rb") as handle:
            return tomllib.load(handle)
    text = document_path.read_text(encoding="utf-8")
    if suffix == ".json":
        data = json.loads(text)
    else:
        front_matter = read_front_matter(text)
        if front_matter is None and suffix not in {".yaml", ".yml"}:
            raise ValueError(f"No front-matter block found in {document_path}")
        try:
            data = yaml.safe_load(front_matter if front_matter is not None else text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Malformed YAML in {document_path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ValueError(f"Document root must be a table: {document_path}")
    return data


def load_generator_config(path: Union[str, Path]) -> GeneratorSourceConfig:
    document_path = Path(path).resolve()
    return parse_generator_document(load_document(document_path), origin=document_path)


def _check_cell_size(label: str, cell_size: int) -> int:
    if cell_size < MIN_CELL_SIZE:
        raise ValueError(f"{label} must be at least {MIN_CELL_SIZE}, got {cell_size}.")
    return cell_size


def _parse_colors(name: str, raw: Any) -> CanvasColors:
    if not isinstance(raw, Mapping):
        raise ValueError(f"[canvas.styles.{name}] must be a table.")
    missing = [key for key in ("background_fill", "foreground_fill", "foreground_stroke", "text_stroke") if key not in raw]
    if missing:
        raise ValueError(f"[canvas.styles.{name}] is missing {', '.join(missing)}.")
    return CanvasColors(
        background_fill=str(raw["background_fill"]),
        foreground_fill=str(raw["foreground_fill"]),
        foreground_stroke=str(raw["foreground_stroke"]),
        text_stroke=str(raw["text_stroke"]),
    )


def _parse_canvas(raw: Mapping[str, Any]) -> CanvasSettings:
    styles: Dict[str, CanvasColors] = dict(DEFAULT_STYLES)
    styles_raw = raw.get("styles", {})
    if not isinstance(styles_raw, Mapping):
        raise ValueError("[canvas.styles] must be a table if provided.")
    for name, colors_raw in styles_raw.items():
        styles[str(name)] = _parse_colors(str(name), colors_raw)
    cell_size = _check_cell_size("canvas.cell_size", int(raw.get("cell_size", 24)))
    scale = float(raw.get("scale", 1.0))
    if scale <= 0:
        raise ValueError("canvas.scale must be positive.")
    style = str(raw.get("style", "standard"))
    if style not in styles:
        raise ValueError(f"canvas.style '{style}' is not a defined style.")
    return CanvasSettings(
        cell_size=cell_size,
        scale=scale,
        map_padding=max(0, int(raw.get("map_padding", 1))),
        style=style,
        styles=styles,
    )


def load_config(path: Union[str, Path, None] = None) -> Config:
    raw: Mapping[str, Any] = {}
    base_dir = Path.cwd()
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
        base_dir = config_path.resolve().parent

    generators_raw = raw.get("generators", {})
    if not isinstance(generators_raw, Mapping):
        raise ValueError("[generators] must be a table if provided.")
    directory = Path(str(generators_raw.get("directory", "generators")))
    if not directory.is_absolute():
        directory = (base_dir / directory).resolve()
    extensions_raw = generators_raw.get("extensions", list(DEFAULT_EXTENSIONS))
    if isinstance(extensions_raw, str):
        extensions_raw = [extensions_raw]
    extensions = tuple(
        ext if ext.startswith(".") else f".{ext}"
        for ext in (str(value).strip().lower() for value in extensions_raw)
        if ext
    )
    generators = GeneratorSettings(directory=directory, extensions=extensions)

    canvas_raw = raw.get("canvas", {})
    if not isinstance(canvas_raw, Mapping):
        raise ValueError("[canvas] must be a table if provided.")
    canvas = _parse_canvas(canvas_raw)

    logging_raw = raw.get("logging", {})
    if not isinstance(logging_raw, Mapping):
        raise ValueError("[logging] must be a table if provided.")
    log_format = str(logging_raw.get("format", "console")).lower()
    if log_format not in {"console", "json"}:
        raise ValueError("logging.format must be 'console' or 'json'.")
    logging_settings = LoggingSettings(
        level=str(logging_raw.get("level", "WARNING")).upper(),
        format=log_format,
    )

    return Config(generators=generators, canvas=canvas, logging=logging_settings)
