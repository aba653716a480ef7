from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from .canvas import render_map
from .config import Config, load_config
from .dungeon import load_layout
from .errors import DMBinderError
from .generators import GeneratorSource, discover_generators
from .logs import configure_logging

logger = structlog.get_logger()


def _parse_args_pairs(pairs: List[str]) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Generator argument '{pair}' must look like KEY=VALUE.")
        key, value = pair.split("=", 1)
        parsed[key.strip()] = value.strip()
    return parsed


def _prompt(condition: str) -> Optional[str]:
    try:
        return input(f"{condition}: ").strip() or None
    except EOFError:
        return None


def _resolve_generator_path(config: Config, target: str) -> Path:
    path = Path(target)
    if path.exists():
        return path
    known = discover_generators(config.generators.directory, config.generators.extensions)
    if target in known:
        return known[target]
    return path


def _cmd_generate(config: Config, args: argparse.Namespace) -> int:
    rng = random.Random(args.seed)
    source = GeneratorSource.load_generator_source(_resolve_generator_path(config, args.source), rng=rng)
    if args.generator:
        source = source.select(args.generator)
    generator_args = _parse_args_pairs(args.arg)
    prompter = _prompt if args.prompt else None
    for _ in range(max(args.count, 1)):
        print(source.generate_content(generator_args, input_prompter=prompter))
    return 0


def _cmd_map(config: Config, args: argparse.Namespace) -> int:
    layout = load_layout(args.layout)
    canvas_config = config.canvas.canvas_config(
        layout.width,
        layout.height,
        style=args.style,
        cell_size=args.cell_size,
    )
    output = render_map(layout, canvas_config, html=args.html)
    if args.output:
        args.output.write_text(output + "\n", encoding="utf-8")
    else:
        print(output)
    return 0


def _cmd_list(config: Config, args: argparse.Namespace) -> int:
    known = discover_generators(config.generators.directory, config.generators.extensions)
    if not known:
        print(f"No generator configs found in {config.generators.directory}", file=sys.stderr)
        return 0
    for name, path in sorted(known.items()):
        print(f"{name}\t{path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate campaign content and render dungeon maps.")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to a dmbinder.toml settings file.")
    parser.add_argument("--log-level", default=None,
                        help="Override the logging level from the config.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Run a generator config and print the result.")
    generate.add_argument("source", help="Generator config file, or the name of one in the generators directory.")
    generate.add_argument("--generator", default=None,
                          help="Run only this named generator from the file's sources.")
    generate.add_argument("--arg", action="append", default=[], metavar="KEY=VALUE",
                          help="Answer for a switch condition or placeholder; may be repeated.")
    generate.add_argument("--prompt", action="store_true",
                          help="Ask on stdin for switch conditions that have no --arg answer.")
    generate.add_argument("--seed", type=int, default=None, help="Seed for reproducible output.")
    generate.add_argument("--count", type=int, default=1, help="Number of results to print.")
    generate.set_defaults(handler=_cmd_generate)

    map_parser = subparsers.add_parser("map", help="Render a dungeon layout as SVG.")
    map_parser.add_argument("layout", type=Path, help="Layout file (.toml, .json, .yaml, .md or .txt).")
    map_parser.add_argument("--style", default=None, help="Named palette from the config.")
    map_parser.add_argument("--cell-size", type=int, default=None, help="Override the cell size in pixels.")
    map_parser.add_argument("--html", action="store_true", help="Wrap the SVG in an HTML document.")
    map_parser.add_argument("--output", "-o", type=Path, default=None, help="Write to a file instead of stdout.")
    map_parser.set_defaults(handler=_cmd_map)

    list_parser = subparsers.add_parser("list", help="List generator configs in the generators directory.")
    list_parser.set_defaults(handler=_cmd_list)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    configure_logging(args.log_level or config.logging.level, config.logging.format)
    try:
        return args.handler(config, args)
    except (DMBinderError, FileNotFoundError, ValueError) as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
