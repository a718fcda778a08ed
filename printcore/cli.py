"""
Operator command line for the print pipeline.

Long-running jobs (8x masters, large final renders) run here rather
than inside a webhook.
"""

import argparse
import json
import sys

from loguru import logger

from printcore.dpi import analyze_print_quality, get_best_size, get_quality_label
from printcore.errors import PrintPipelineError, create_error_recovery_suggestions


def cmd_analyze(args):
    print(f"{'Size':<10} {'DPI':>5}  Quality")
    for result in analyze_print_quality(args.width, args.height):
        flag = " (upscale)" if result.needs_upscaling else ""
        print(f"{result.size_id:<10} {result.effective_dpi:>5}  "
              f"{get_quality_label(result.quality)}{flag}")
    return 0


def cmd_best_size(args):
    best = get_best_size(args.width, args.height)
    if best is None:
        print("No size reaches good quality without upscaling")
        return 0
    print(json.dumps(best.to_dict(), indent=2))
    return 0


def cmd_ensure_master(args):
    from printcore import get_pipeline

    asset_id = get_pipeline().print_masters.ensure_print_master(
        args.design_id, args.image_url, args.size, args.product,
        upscale_factor=args.factor, target_dpi=args.target_dpi,
    )
    print(asset_id)
    return 0


def cmd_render_final(args):
    from printcore import get_pipeline

    result = get_pipeline().final_renderer.render_final_print(
        args.design_id, args.size, args.product, dpi=args.dpi, bleed_mm=args.bleed_mm,
    )
    print(json.dumps({
        'asset_id': result.asset_id,
        'url': result.url,
        'width_px': result.width_px,
        'height_px': result.height_px,
    }, indent=2))
    return 0


def cmd_init_db(args):
    from printcore.config import get_config
    from printcore.db import create_db_engine, init_db

    init_db(create_db_engine(get_config().DATABASE_URL))
    print("Database ready")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="printcore",
        description="Print production pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  printcore analyze 2048 2048
  printcore best-size 4096 6144
  printcore ensure-master <design-id> https://.../art.png 70x100 POSTER
  printcore render-final <design-id> 50x70 CANVAS --dpi 300 --bleed-mm 3
  printcore init-db
        """
    )
    sub = parser.add_subparsers(dest='command', required=True)

    analyze = sub.add_parser('analyze', help='Print quality for every size')
    analyze.add_argument('width', type=int)
    analyze.add_argument('height', type=int)
    analyze.set_defaults(func=cmd_analyze)

    best = sub.add_parser('best-size', help='Largest size with good quality')
    best.add_argument('width', type=int)
    best.add_argument('height', type=int)
    best.set_defaults(func=cmd_best_size)

    master = sub.add_parser('ensure-master', help='Create the upscaled PRINT master')
    master.add_argument('design_id')
    master.add_argument('image_url')
    master.add_argument('size')
    master.add_argument('product')
    master.add_argument('--factor', type=int, choices=(2, 4, 8),
                        help='Override the per-size upscale factor')
    master.add_argument('--target-dpi', type=int)
    master.set_defaults(func=cmd_ensure_master)

    final = sub.add_parser('render-final', help='Render the PRINT_FINAL file')
    final.add_argument('design_id')
    final.add_argument('size')
    final.add_argument('product')
    final.add_argument('--dpi', type=int)
    final.add_argument('--bleed-mm', type=float, default=0)
    final.set_defaults(func=cmd_render_final)

    init = sub.add_parser('init-db', help='Create database tables')
    init.set_defaults(func=cmd_init_db)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except PrintPipelineError as e:
        logger.error(f"{args.command} failed: {e.message}")
        error = e.to_dict()
        if not error['suggestions']:
            error['suggestions'] = create_error_recovery_suggestions(e)
        print(json.dumps(error, indent=2), file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
