"""CLI entrypoints for nativec commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .backends import available_backends
from .compiler import Compiler
from .config import CompilerConfig, load_config
from .errors import CompileError, NativecError
from .logging import configure_logging, get_logger


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nativec",
        description="Extract native binding markers from JavaScript sources and rewrite their call sites.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write a debug log to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile source files.")
    _add_verbose_option(compile_parser, suppress_default=True)
    compile_parser.add_argument(
        "--src",
        type=Path,
        default=None,
        help="Directory (or single file) where files should be compiled.",
    )
    compile_parser.add_argument(
        "--dest",
        type=Path,
        default=None,
        help="Directory where files will be generated.",
    )
    compile_parser.add_argument(
        "--platform",
        default=None,
        help="Codegen backend to hand source units to (default: manifest).",
    )
    compile_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .nativec.yml file (defaults to one next to --src).",
    )
    compile_parser.add_argument(
        "--force",
        action="store_true",
        default=None,
        help="Recompile every file, ignoring the incremental cache.",
    )
    compile_parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Keep debug-oriented output settings for backends.",
    )

    subparsers.add_parser("platforms", help="List available codegen backends.")
    return parser


def _compile_config(args: argparse.Namespace) -> CompilerConfig:
    search_dir = args.src if args.src is not None else Path.cwd()
    config = load_config(args.config, search_dir=search_dir)
    return config.merged(
        {
            "src": args.src,
            "dest": args.dest,
            "platform": args.platform,
            "force": args.force,
            "debug": args.debug,
        }
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for nativec commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file
    )
    logger = get_logger("cli")

    if args.command == "platforms":
        for name in available_backends():
            print(name)
        return 0

    try:
        config = _compile_config(args)
        result = Compiler(config).run()
    except CompileError as exc:
        logger.debug("Compile failed", exc_info=True)
        logger.error("%s", exc)
        return 1
    except NativecError as exc:
        logger.error("%s", exc)
        return 1

    if result.changed:
        logger.info("Generated %s", result.changed)
    else:
        logger.info("Nothing changed since the last compile")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
