import os
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .config import FlyerConfig
from .identifiers import generate_identifiers
from .manifest import write_manifest
from .packing import FlyerPacker
from .render import QrBatchRenderer

GROUPING_MODES = ("packed", "single")


@dataclass
class RunSummary:
    run_dir: str
    manifest_path: str
    qr_dir: str
    pdf_dir: Optional[str] = None
    qr_count: int = 0
    pdf_paths: List[str] = field(default_factory=list)
    elapsed: float = 0.0


def create_run_folder(output_root: str, timestamp: Optional[int] = None) -> str:
    timestamp = timestamp if timestamp is not None else int(time.time() * 1000)
    run_dir = os.path.join(output_root, f"qr-codes-{timestamp}")
    os.makedirs(run_dir, exist_ok=True)
    return run_dir


def generate_run(count, base_url: str, url_params: str = "", with_flyers: bool = False,
                 template_path: Optional[str] = None, grouping: str = "packed",
                 max_pages_per_pdf: Optional[int] = None,
                 config: Optional[FlyerConfig] = None) -> RunSummary:
    """
    Runs a full generation: identifiers, manifest, QR images and optional flyers.

    Args:
        count: Number of QR codes to create (coerced, defaults to 1).
        base_url (str): URL each identifier is appended to.
        url_params (str): Suffix appended after each identifier.
        with_flyers (bool): Also pack the QR codes onto the flyer template.
        template_path (str, optional): Overrides the configured template.
        grouping (str): "packed" for size-bounded PDFs, "single" for one
            flyer per PDF.
        max_pages_per_pdf (int, optional): Page cap for packed PDFs.
        config (FlyerConfig, optional): Settings; defaults are used if omitted.

    Returns:
        RunSummary: Where everything was written and how much was produced.
    """
    if grouping not in GROUPING_MODES:
        raise ValueError(f"grouping must be one of {', '.join(GROUPING_MODES)}, got '{grouping}'")

    config = config or FlyerConfig()
    if grouping == "single":
        config = config.with_overrides(max_pages_per_pdf=1)
    elif max_pages_per_pdf is not None:
        config = config.with_overrides(max_pages_per_pdf=max_pages_per_pdf)

    print("Generating QR codes and JSON file...")
    start = time.perf_counter()

    run_dir = create_run_folder(config.output_root)
    run_name = os.path.basename(run_dir)
    manifest_path = os.path.join(run_dir, f"{run_name}.json")
    manifest = write_manifest(manifest_path, generate_identifiers(count), base_url, url_params)

    qr_dir = os.path.join(run_dir, config.qrs_folder)
    summary = RunSummary(run_dir=run_dir, manifest_path=manifest_path, qr_dir=qr_dir)
    summary.qr_count = QrBatchRenderer(config).render(manifest, qr_dir)

    if with_flyers and summary.qr_count > 0:
        summary.pdf_dir = os.path.join(run_dir, config.flyers_folder, config.flyers_pdf_folder)
        packer = FlyerPacker(config)
        summary.pdf_paths = packer.pack(template_path or config.template_path,
                                        qr_dir, summary.pdf_dir)

    summary.elapsed = time.perf_counter() - start

    print("\n-----------------------------------------")
    print(f"📁 Output directory: {run_dir}")
    print(f"🖼️  QR codes generated: {summary.qr_count}/{len(manifest.hash)}")
    if summary.pdf_dir:
        print(f"📄 PDF files written: {len(summary.pdf_paths)}")
    print(f"Time taken: {summary.elapsed:.2f} seconds")
    print("-----------------------------------------")
    return summary
