import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

import qrcode

from .config import FlyerConfig
from .errors import ManifestError
from .manifest import Manifest, read_manifest

QR_FILENAME = "qr_{position}.png"

# encoder(data, output_path) writes one QR image for `data`.
Encoder = Callable[[str, str], None]


def qr_filename(position: int) -> str:
    return QR_FILENAME.format(position=position)


def make_qrcode_encoder(config: FlyerConfig) -> Encoder:
    """Returns an encoder backed by qrcode that writes transparent PNGs."""

    def encode(data: str, output_path: str) -> None:
        qr = qrcode.QRCode(
            version=1,
            error_correction=config.error_correction_constant,
            box_size=config.qr_box_size,
            border=config.qr_border,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="transparent")
        img.save(output_path)

    return encode


class QrBatchRenderer:
    """
    Renders one QR image per target, named by 1-based position.

    A failing item is printed, recorded in `failures` as
    (position, data, error) and skipped; the rest of the batch still runs.
    """

    def __init__(self, config: Optional[FlyerConfig] = None, encoder: Optional[Encoder] = None):
        self.config = config or FlyerConfig()
        self.encoder = encoder or make_qrcode_encoder(self.config)
        self.failures: List[Tuple[int, str, str]] = []

    def render(self, manifest: Manifest, output_dir: str) -> int:
        """
        Renders the QR code of every identifier in the manifest.

        Args:
            manifest (Manifest): Source of the base URL, params and identifiers.
            output_dir (str): Folder receiving qr_<i>.png files.

        Returns:
            int: Number of QR images written. 0 if the manifest is unusable.
        """
        problems = manifest.rendering_problems()
        if problems:
            for problem in problems:
                print(f"❌ {problem}")
            return 0

        return self.render_targets(manifest.target_urls(), output_dir)

    def render_file(self, manifest_path: str, output_dir: str) -> int:
        try:
            manifest = read_manifest(manifest_path)
        except ManifestError as e:
            print(f"❌ {e}")
            return 0
        return self.render(manifest, output_dir)

    def render_targets(self, targets: Sequence[str], output_dir: str) -> int:
        """Renders every target string to <output_dir>/qr_<position>.png."""
        self.failures = []
        os.makedirs(output_dir, exist_ok=True)

        # Positions are fixed before any work is dispatched.
        jobs = [(position, data, os.path.join(output_dir, qr_filename(position)))
                for position, data in enumerate(targets, 1)]

        if self.config.render_workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=self.config.render_workers) as pool:
                outcomes = list(pool.map(self._render_one, jobs))
        else:
            outcomes = [self._render_one(job) for job in jobs]

        written = 0
        for (position, data, _), error in zip(jobs, outcomes):
            if error is None:
                written += 1
            else:
                self.failures.append((position, data, error))

        print(f"\nGenerated a total of {written} QR codes.")
        if self.failures:
            print(f"⚠️  {len(self.failures)} QR code(s) could not be generated.")
        return written

    def _render_one(self, job: Tuple[int, str, str]) -> Optional[str]:
        position, data, output_path = job
        try:
            self.encoder(data, output_path)
        except Exception as e:
            print(f"❌ Error: Could not generate QR code #{position} for {data}. {e}")
            return str(e)
        print(f"Generated QR code for {data} at {output_path}")
        return None


def render_qr_codes(manifest: Manifest, output_dir: str, config: Optional[FlyerConfig] = None) -> int:
    return QrBatchRenderer(config).render(manifest, output_dir)
