"""CLI entry point for tileforge."""

import argparse
import logging
from pathlib import Path

from rich.logging import RichHandler

from . import LayerFormatError, generate
from .images import ImageCache, decode
from .renderer import RESOLUTION_PRESETS, tile_preview


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Render a layered noise project to a seamless texture"
    )
    parser.add_argument(
        "project", nargs="?", default=None,
        help="Project JSON file (default: a single simplex layer)"
    )
    parser.add_argument(
        "--output", "-o", default="texture.png",
        help="Output file path (default: texture.png)"
    )
    parser.add_argument(
        "--resolution", "-r", type=int, default=512,
        help="Output size in pixels, usually one of "
             + "/".join(str(r) for r in RESOLUTION_PRESETS)
             + " (default: 512)"
    )
    parser.add_argument(
        "--tiled", type=int, default=None, metavar="N",
        help="Save an N x N repeat of the texture to check its seams"
    )
    parser.add_argument(
        "--image", action="append", default=[], metavar="KEY=PATH",
        help="Bitmap for image layers whose 'image' param is KEY"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log every layer"
    )

    args = parser.parse_args(argv)
    if args.tiled is not None and args.tiled < 1:
        parser.error(f"--tiled must be at least 1, got {args.tiled}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler()],
    )

    images = ImageCache()
    for item in args.image:
        key, sep, path = item.partition("=")
        if not sep:
            parser.error(f"--image expects KEY=PATH, got {item!r}")
        try:
            images.put(key, decode(path))
        except ValueError as exc:
            parser.error(f"--image {key}: {exc}")

    try:
        image = generate(args.project, resolution=args.resolution,
                         images=images)
    except LayerFormatError as exc:
        parser.error(f"{args.project}: {exc}")
    except OSError as exc:
        parser.error(f"cannot read project: {exc}")
    if args.tiled:
        image = tile_preview(image, repeat=args.tiled)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output))
    print(f"Saved texture ({image.size[0]}x{image.size[1]}) to {output}")


if __name__ == "__main__":
    main()
