import argparse
import os
import sys

from .config import FlyerConfig, MAX_PDF_BYTES, TEMPLATE_PATH
from .errors import QrFlyersError
from .packing import FlyerPacker
from .pipeline import GROUPING_MODES, generate_run
from .render import QrBatchRenderer
from .report import write_report
from .spreadsheet import URL_COLUMN, render_from_spreadsheet
from .verify import verify_run

REPORT_FILENAME = "verification-report.txt"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='qrflyers', description='Generate QR codes, pack them into flyer PDFs and verify runs.')
    parser.add_argument('--config', help='JSON file overriding the default settings.')
    commands = parser.add_subparsers(dest='command', required=True)

    gen = commands.add_parser('generate', help='Create identifiers, a manifest and QR codes.')
    gen.add_argument('count', help='Number of QR codes to generate.')
    gen.add_argument('base_url', help='URL each identifier is appended to.')
    gen.add_argument('--params', default='', help='Suffix appended after each identifier.')
    gen.add_argument('--flyers', action='store_true', help='Also pack the QR codes into flyer PDFs.')
    gen.add_argument('--template', help=f'Single-page flyer template (default: {TEMPLATE_PATH}).')
    gen.add_argument('--grouping', choices=GROUPING_MODES, default='packed',
                     help='packed: size-bounded PDFs, single: one flyer per PDF (default: packed).')
    gen.add_argument('--max-pages', type=int, help='Maximum pages per packed PDF.')
    gen.add_argument('--max-bytes', type=int,
                     help=f'Size limit of each packed PDF in bytes (default: {MAX_PDF_BYTES}).')
    gen.add_argument('--output-root', help='Folder receiving the run folder.')
    gen.add_argument('--workers', type=int, help='Threads used to render QR codes.')

    pack = commands.add_parser('pack', help='Pack existing QR images into flyer PDFs.')
    pack.add_argument('template', help='Single-page flyer template PDF.')
    pack.add_argument('qr_dir', help='Folder holding qr_<n>.png images.')
    pack.add_argument('output_dir', help='Folder receiving the PDFs.')
    pack.add_argument('--max-pages', type=int, help='Maximum pages per PDF.')
    pack.add_argument('--max-bytes', type=int, help='Size limit of each PDF in bytes.')

    render = commands.add_parser('render', help='Render the QR codes of an existing manifest.')
    render.add_argument('manifest', help='Manifest JSON with baseUrl, urlParams and hash.')
    render.add_argument('output_dir', help='Folder receiving qr_<n>.png images.')
    render.add_argument('--workers', type=int, help='Threads used to render QR codes.')

    sheet = commands.add_parser('sheet', help='Render QR codes for the URLs of a spreadsheet.')
    sheet.add_argument('spreadsheet', help='.xlsx or .csv file.')
    sheet.add_argument('output_dir', help='Folder receiving qr_<n>.png images.')
    sheet.add_argument('--column', default=URL_COLUMN, help=f'URL column header (default: {URL_COLUMN}).')

    ver = commands.add_parser('verify', help='Check flyer PDFs against a run manifest.')
    ver.add_argument('pdf_dir', help='Folder holding flyer_<k>.pdf files.')
    ver.add_argument('manifest', help='The run manifest JSON.')
    ver.add_argument('--qr-dir', help='Folder holding the QR images to count as well.')
    ver.add_argument('--report', help=f'Report path (default: <pdf_dir>/{REPORT_FILENAME}).')
    return parser


def _load_config(args) -> FlyerConfig:
    config = FlyerConfig.from_json(args.config) if args.config else FlyerConfig()
    return config.with_overrides(
        max_pdf_bytes=getattr(args, 'max_bytes', None),
        output_root=getattr(args, 'output_root', None),
        render_workers=getattr(args, 'workers', None),
    )


def run_generate(args, config: FlyerConfig) -> int:
    summary = generate_run(args.count, args.base_url, args.params, with_flyers=args.flyers,
                           template_path=args.template, grouping=args.grouping,
                           max_pages_per_pdf=args.max_pages, config=config)
    return 0 if summary.qr_count > 0 else 1


def run_pack(args, config: FlyerConfig) -> int:
    if args.max_pages is not None:
        config = config.with_overrides(max_pages_per_pdf=args.max_pages)
    packer = FlyerPacker(config)
    paths = packer.pack(args.template, args.qr_dir, args.output_dir)
    return 0 if paths and not packer.skipped else 1


def run_render(args, config: FlyerConfig) -> int:
    renderer = QrBatchRenderer(config)
    count = renderer.render_file(args.manifest, args.output_dir)
    return 0 if count > 0 and not renderer.failures else 1


def run_sheet(args, config: FlyerConfig) -> int:
    count = render_from_spreadsheet(args.spreadsheet, args.output_dir, config, column=args.column)
    return 0 if count > 0 else 1


def run_verify(args, config: FlyerConfig) -> int:
    results = verify_run(args.pdf_dir, args.manifest, qr_dir=args.qr_dir)
    report_path = args.report or os.path.join(args.pdf_dir, REPORT_FILENAME)
    print(write_report(results, report_path))
    return 0 if results.success else 1


COMMANDS = {
    'generate': run_generate,
    'pack': run_pack,
    'render': run_render,
    'sheet': run_sheet,
    'verify': run_verify,
}


def main(argv=None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # Usage errors share the failure exit code.
        return 0 if e.code == 0 else 1

    try:
        config = _load_config(args)
        return COMMANDS[args.command](args, config)
    except (QrFlyersError, OSError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
