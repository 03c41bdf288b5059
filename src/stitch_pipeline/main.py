from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace

from stitch_pipeline.errors import PatternGenerationError
from stitch_pipeline.io import save_pattern_preview, write_pattern_json
from stitch_pipeline.models import GenerationSettings, MatchingMethod
from stitch_pipeline.palette import PaletteValidationError, load_palette
from stitch_pipeline.pipeline import PatternGenerationPipeline


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stitch-pattern",
        description="Turn a photo into a counted cross-stitch chart of thread colors.",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log pipeline phases to stderr."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser(
        "generate",
        help="Generate a stitch pattern from an image.",
    )
    generate.add_argument(
        "--image", required=True, help="Path or URL to the input image."
    )
    generate.add_argument(
        "--preset",
        choices=["default", "portrait", "small"],
        default="default",
        help="Starting settings; explicit flags override them.",
    )
    generate.add_argument(
        "--width", type=int, default=None, help="Target width in stitches."
    )
    generate.add_argument(
        "--height", type=int, default=None, help="Target height in stitches."
    )
    generate.add_argument(
        "--max-colors",
        type=int,
        default=None,
        help="Maximum number of thread colors in the pattern.",
    )
    generate.add_argument(
        "--method",
        choices=[method.value for method in MatchingMethod],
        default=None,
        help="Color distance used for thread matching.",
    )
    generate.add_argument(
        "--no-aspect-lock",
        action="store_true",
        help="Use the exact width and height instead of keeping the image aspect ratio.",
    )
    generate.add_argument(
        "--palette",
        default=None,
        help="Path to a custom thread palette (.csv/.json). Defaults to the DMC table.",
    )
    generate.add_argument(
        "--out",
        default=None,
        help="Optional JSON output path. If omitted, prints JSON to stdout.",
    )
    generate.add_argument(
        "--preview-out",
        default=None,
        help="Optional path to save a rendered preview of the pattern.",
    )
    generate.add_argument(
        "--cell-size",
        type=int,
        default=8,
        help="Preview pixels per stitch.",
    )

    threads = subparsers.add_parser(
        "threads",
        help="Search the thread palette by code or name.",
    )
    threads.add_argument("--query", default="", help="Substring to look for.")
    threads.add_argument(
        "--palette",
        default=None,
        help="Path to a custom thread palette (.csv/.json). Defaults to the DMC table.",
    )

    return parser


def _settings_from_args(args: argparse.Namespace) -> GenerationSettings:
    settings = GenerationSettings.preset(args.preset)
    overrides: dict[str, object] = {}
    if args.width is not None:
        overrides["target_width"] = args.width
    if args.height is not None:
        overrides["target_height"] = args.height
    if args.max_colors is not None:
        overrides["max_colors"] = args.max_colors
    if args.method is not None:
        overrides["method"] = MatchingMethod(args.method)
    if args.no_aspect_lock:
        overrides["maintain_aspect_ratio"] = False
    return replace(settings, **overrides)


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "generate":
        try:
            palette, _ = load_palette(args.palette)
        except (PaletteValidationError, OSError) as exc:
            parser.exit(status=1, message=f"error: failed to load palette: {exc}\n")
        pipeline = PatternGenerationPipeline(palette=palette)
        try:
            pattern = pipeline.run(args.image, settings=_settings_from_args(args))
        except PatternGenerationError as exc:
            parser.exit(status=1, message=f"error: {exc}\n")
        except OSError as exc:
            parser.exit(status=1, message=f"error: failed to read image: {exc}\n")

        if args.preview_out:
            save_pattern_preview(pattern, args.preview_out, cell_size=args.cell_size)

        if args.out:
            write_pattern_json(pattern, args.out)
        else:
            print(json.dumps(pattern.to_dict(), indent=2, ensure_ascii=False))
        return

    if args.command == "threads":
        try:
            palette, _ = load_palette(args.palette)
        except (PaletteValidationError, OSError) as exc:
            parser.exit(status=1, message=f"error: failed to load palette: {exc}\n")
        for thread in palette.search(args.query):
            print(f"{thread.code}\t{thread.hex}\t{thread.name}")
        return

    parser.error("unknown command")


if __name__ == "__main__":
    main()
