import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import Optional, Sequence

from grapher import NO_GEOMETRY, GraphSlot, Segment, Viewport
from parser import compile_expression
from rpn_checker import check_expression
from utils.param_utils import normalize_expression, parse_param_assignment
from utils.print_utils import (format_graph_summary
                               , format_tokens
                               , print_check_results
                               , segments_to_dict)

logger = logging.getLogger("graphcalc")

# One color per graph slot, cycled
PALETTE = (
    "cyan", "magenta", "yellow", "red", "green", "blue", "#ff8000", "#8000ff",
    "#00c8c8", "#c800c8", "#c8c800", "#009600", "#000096", "#960000", "#646464",
)


# ======================================================
# RENDERING
# ======================================================

def render_plot(graphs: Sequence[tuple[str, list[Segment]]], viewport: Viewport, path: str) -> None:
    """Draw computed segments into an image file with matplotlib.

    Coordinates are screen pixels, so the image looks like the interactive
    view: the y axis points down and the world axes cross at the viewport
    center.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    dpi = 100
    fig = plt.figure(figsize=(viewport.width / dpi, viewport.height / dpi), dpi=dpi)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_facecolor("black")
    ax.set_xlim(0, viewport.width)
    ax.set_ylim(viewport.height, 0)
    ax.axhline(viewport.center_y, color="white", linewidth=0.8)
    ax.axvline(viewport.center_x, color="white", linewidth=0.8)
    ax.set_xticks([])
    ax.set_yticks([])

    for label, segments in graphs:
        for i, seg in enumerate(segments):
            ax.plot(seg.points[:, 0], seg.points[:, 1], color=seg.color, linewidth=1.2,
                    label=label if i == 0 else None)
    if any(segments for _, segments in graphs):
        ax.legend(loc="upper left", fontsize=8)

    fig.savefig(path, dpi=dpi, facecolor="black")
    plt.close(fig)


# ======================================================
# CLI
# ======================================================

def positive_float(text: str) -> float:
    """argparse type for settings that must be positive and finite."""
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if not (math.isfinite(value) and value > 0):
        raise argparse.ArgumentTypeError(f"must be a positive number, got {text!r}")
    return value


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphcalc",
        description="Sample explicit (y = f(x)) and implicit (F(x, y) = 0) curves into screen-space polylines.",
    )
    parser.add_argument("expressions", nargs="+", help="Expressions, e.g. 'sin(x)' or 'x^2 + y^2 = 1'.")
    parser.add_argument("-p", "--param", action="append", default=[], metavar="NAME=VALUE",
                        help="Parameter assignment; may be repeated. Malformed values are ignored.")
    parser.add_argument("--params-file", help="File with one NAME=VALUE assignment per line.")
    parser.add_argument("--width", type=int, default=800, help="Drawing area width in pixels.")
    parser.add_argument("--height", type=int, default=600, help="Drawing area height in pixels.")
    parser.add_argument("--scale", type=float, default=50.0, help="Pixels per world unit (clamped to [1, 4000]).")
    parser.add_argument("--center", type=float, nargs=2, metavar=("CX", "CY"),
                        help="Pixel position of the world origin. Defaults to the middle of the area.")
    parser.add_argument("--step", type=positive_float, help="Sample spacing for explicit curves (default: adaptive).")
    parser.add_argument("--decimate", action="store_true", help="Thin explicit curves per pixel column.")
    parser.add_argument("--stitch", action="store_true", help="Chain implicit-curve cell segments.")
    parser.add_argument("--rpn", action="store_true", help="Print the postfix form of every expression.")
    parser.add_argument("--json", dest="json_path", help="Write segments as JSON ('-' for stdout).")
    parser.add_argument("--plot", dest="plot_path", help="Render segments to an image (requires matplotlib).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def load_env(args: argparse.Namespace) -> dict[str, float]:
    env: dict[str, float] = {}
    if args.params_file:
        for line in Path(args.params_file).read_text(encoding="utf-8").splitlines():
            parse_param_assignment(line, env)
    for line in args.param:
        parse_param_assignment(line, env)
    return env


def main(argv: Optional[list[str]] = None) -> int:
    """Run the graphcalc CLI."""
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.center:
            viewport = Viewport(args.center[0], args.center[1], args.scale, args.width, args.height)
        else:
            viewport = Viewport.centered(args.width, args.height, args.scale)
        env = load_env(args)
        logger.debug("Parameters: %s", env)
    except (ValueError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    options = {"decimate": args.decimate, "stitch": args.stitch}
    if args.step is not None:
        options["step"] = args.step

    # keep stdout clean when it carries the JSON payload
    out = sys.stderr if args.json_path == "-" else sys.stdout
    graphs: list[tuple[str, list[Segment]]] = []
    failures = 0
    for index, raw in enumerate(args.expressions):
        text = normalize_expression(raw)
        if not print_check_results(raw, check_expression(text), file=out):
            failures += 1
            continue
        if args.rpn:
            print(f"    rpn: {format_tokens(compile_expression(text))}", file=out)
        slot = GraphSlot(color=PALETTE[index % len(PALETTE)], **options)
        if not slot.commit(text, viewport, env):
            if slot.error != NO_GEOMETRY:
                failures += 1
            print(f"    {raw}: {slot.error}", file=out)
            continue
        print(f"    {format_graph_summary(raw, slot.segments)}", file=out)
        graphs.append((raw, slot.segments))

    if args.json_path:
        payload = {
            "viewport": {
                "center": [viewport.center_x, viewport.center_y],
                "scale": viewport.scale,
                "width": viewport.width,
                "height": viewport.height,
            },
            "graphs": [{"expression": label, "segments": segments_to_dict(segments)} for label, segments in graphs],
        }
        text = json.dumps(payload)
        if args.json_path == "-":
            sys.stdout.write(text + "\n")
        else:
            Path(args.json_path).write_text(text, encoding="utf-8")

    if args.plot_path:
        render_plot(graphs, viewport, args.plot_path)
        print(f"OK: plot written to {args.plot_path}", file=out)

    return 1 if failures == len(args.expressions) else 0


if __name__ == "__main__":
    raise SystemExit(main())
