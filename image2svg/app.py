"""image2svg - command line entry point."""

import argparse
import logging
import sys
from pathlib import Path

from image2svg.config_manager import ConfigManager
from image2svg.image_processing import VectorizationPipeline
from image2svg.models import CONFIG_FILE, ProcessingRequest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image2svg",
        description="Convert a raster image into an SVG document.",
    )
    parser.add_argument("input", type=Path, help="Image file (PNG, JPG, ...)")
    parser.add_argument(
        "-o", "--output", type=Path, help="SVG output path (default: INPUT.svg)"
    )
    parser.add_argument(
        "--config", type=Path, default=CONFIG_FILE, help="Settings JSON file"
    )
    parser.add_argument("--smooth-radius", type=int, dest="smooth_radius")
    parser.add_argument(
        "--smooth-method", choices=["box", "median"], dest="smooth_method"
    )
    parser.add_argument(
        "--simplify",
        type=int,
        dest="simplify_strength",
        help="Posterize levels or k-means cluster count (0 disables)",
    )
    parser.add_argument(
        "--simplify-method", choices=["posterize", "kmeans"], dest="simplify_method"
    )
    parser.add_argument("--colors", type=int, dest="color_count")
    parser.add_argument("--scale", type=float)
    parser.add_argument(
        "--viewbox",
        action="store_true",
        default=None,
        dest="use_viewbox",
        help="Emit a viewBox instead of fixed width/height",
    )
    parser.add_argument(
        "--palette", action="store_true", help="Print the detected fill colours"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


_SETTING_ARGS = (
    "smooth_radius",
    "smooth_method",
    "simplify_strength",
    "simplify_method",
    "color_count",
    "scale",
    "use_viewbox",
)


def main(argv=None) -> int:
    """Vectorize one image file and write the SVG next to it."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = ConfigManager(args.config).load()
    overrides = {
        name: getattr(args, name)
        for name in _SETTING_ARGS
        if getattr(args, name) is not None
    }
    if overrides:
        settings = settings.with_changes(**overrides)

    try:
        payload = args.input.read_bytes()
    except OSError as e:
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    request = ProcessingRequest.create(str(args.input), settings, image_payload=payload)
    result = VectorizationPipeline().process(request)
    if not result.succeeded:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    output = args.output or args.input.with_suffix(".svg")
    output.write_text(result.svg, encoding="utf-8")
    print(f"Wrote {output} ({result.width}x{result.height})")

    if args.palette:
        for color in sorted(result.palette):
            print(color)

    return 0


if __name__ == "__main__":
    sys.exit(main())
