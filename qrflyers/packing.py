"""
Packs QR flyers into as few size-bounded PDF files as possible.

Every QR image gets its own copy of the single template page with the QR
drawn on top. Pages accumulate in a bin that is serialized every
`probe_interval` pages to measure its size; a bin that reaches
`max_pdf_bytes` is written out as flyer_<n>.pdf and the next bin starts.

The bound is approximate in one direction only: between probes a bin may
grow past the limit by up to `probe_interval - 1` pages, but before it is
written the longest prefix that fits is searched for and the remaining pages
move to the next bin. A written file is therefore under the limit unless it
holds a single page that is already too large on its own.
"""
import json
import os
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from pypdf import PageObject, PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import FlyerConfig
from .errors import PackingError

QR_IMAGE_PATTERN = re.compile(r'^qr_(\d+)\.png$', re.IGNORECASE)
FLYER_FILENAME = "flyer_{ordinal}.pdf"
LAYOUT_FILENAME = "bins.json"


@dataclass
class BinRecord:
    ordinal: int
    path: str
    positions: List[int] = field(default_factory=list)
    size: int = 0

    @property
    def page_count(self) -> int:
        return len(self.positions)


def list_qr_images(qr_dir: str) -> List[Tuple[int, str]]:
    """Returns (position, path) for every qr_<n>.png, sorted by position."""
    if not os.path.isdir(qr_dir):
        raise PackingError(f"The QR code folder '{qr_dir}' does not exist.")

    images, ignored = [], []
    for name in os.listdir(qr_dir):
        match = QR_IMAGE_PATTERN.match(name)
        if match:
            images.append((int(match.group(1)), os.path.join(qr_dir, name)))
        elif name.lower().endswith('.png'):
            ignored.append(name)

    for name in sorted(ignored):
        print(f"⚠️  Ignoring '{name}': not named qr_<number>.png")

    images.sort()
    return images


def load_template(template_path: str) -> bytes:
    """Reads the template once and checks it is a one-page PDF."""
    try:
        with open(template_path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise PackingError(f"Could not read template '{template_path}': {e}") from e

    try:
        page_count = len(PdfReader(BytesIO(data)).pages)
    except Exception as e:
        raise PackingError(f"Template '{template_path}' is not a readable PDF: {e}") from e

    if page_count != 1:
        raise PackingError(
            f"Template '{template_path}' must have exactly 1 page, found {page_count}.")
    return data


def build_qr_overlay(qr_image_path: str, page_size: Tuple[float, float],
                     config: FlyerConfig) -> BytesIO:
    """Draws the QR image on an otherwise empty page the size of the template."""
    image = ImageReader(qr_image_path)
    img_width, img_height = image.getSize()

    packet = BytesIO()
    c = canvas.Canvas(packet, pagesize=page_size)
    c.drawImage(image, config.qr_x, config.qr_y,
                width=img_width * config.qr_scale,
                height=img_height * config.qr_scale,
                mask='auto')
    c.save()
    packet.seek(0)
    return packet


def compose_flyer_page(template: bytes, qr_image_path: str, config: FlyerConfig) -> PageObject:
    # A fresh reader per page, so the merge never touches another page.
    page = PdfReader(BytesIO(template)).pages[0]
    page_size = (float(page.mediabox.width), float(page.mediabox.height))

    overlay = PdfReader(build_qr_overlay(qr_image_path, page_size, config)).pages[0]
    page.merge_page(overlay)
    return page


class FlyerBin:
    """Composited pages waiting to be written as one PDF file."""

    def __init__(self, ordinal: int, pages: Optional[List[Tuple[int, PageObject]]] = None):
        self.ordinal = ordinal
        self.pages: List[Tuple[int, PageObject]] = list(pages or [])
        self.probed_pages = 0
        self.probed_size: Optional[int] = None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def positions(self) -> List[int]:
        return [position for position, _ in self.pages]

    def append(self, position: int, page: PageObject) -> None:
        self.pages.append((position, page))

    def serialize(self, count: Optional[int] = None) -> bytes:
        """Serializes the first `count` pages (all pages by default)."""
        writer = PdfWriter()
        for _, page in self.pages[:count]:
            writer.add_page(page)
        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    def probe(self) -> bytes:
        data = self.serialize()
        self.probed_pages = self.page_count
        self.probed_size = len(data)
        return data

    def fitting_prefix(self, max_bytes: int) -> Tuple[int, bytes]:
        """
        Finds the longest page prefix that serializes under `max_bytes`.

        Size grows with page count, so a binary search over prefix lengths
        is enough. Falls back to the first page alone when nothing fits.
        """
        best = None
        lo, hi = 1, self.page_count - 1
        while lo <= hi:
            mid = (lo + hi) // 2
            data = self.serialize(mid)
            if len(data) < max_bytes:
                best = (mid, data)
                lo = mid + 1
            else:
                hi = mid - 1

        if best is None:
            best = (1, self.serialize(1))
        return best

    def split(self, keep: int) -> "FlyerBin":
        """Keeps the first `keep` pages and moves the rest to the next bin."""
        rest = FlyerBin(self.ordinal + 1, self.pages[keep:])
        self.pages = self.pages[:keep]
        return rest


class FlyerPacker:
    """
    Packs qr_<n>.png images onto copies of a template into flyer_<k>.pdf files.

    After `pack` returns, `bins` holds a BinRecord per written file and
    `skipped` holds (position, image path, error) for every QR image that
    could not be composited.
    """

    def __init__(self, config: Optional[FlyerConfig] = None):
        self.config = config or FlyerConfig()
        self.bins: List[BinRecord] = []
        self.skipped: List[Tuple[int, str, str]] = []

    def pack(self, template_path: str, qr_dir: str, output_dir: str) -> List[str]:
        """
        Composites every QR image onto the template and writes the PDF bins.

        Args:
            template_path (str): Single-page PDF used for every flyer.
            qr_dir (str): Folder holding qr_<n>.png images.
            output_dir (str): Folder receiving flyer_<k>.pdf and bins.json.

        Returns:
            List[str]: Paths of the written PDFs, in bin order.

        Raises:
            PackingError: If the template is unusable or there is no QR image.
            OSError: If a PDF or the layout file cannot be written.
        """
        self.bins = []
        self.skipped = []

        template = load_template(template_path)
        qr_images = list_qr_images(qr_dir)
        if not qr_images:
            raise PackingError(f"No QR code images found in '{qr_dir}'.")

        os.makedirs(output_dir, exist_ok=True)
        print("Inserting QR codes into PDF files...")

        total = len(qr_images)
        current: Optional[FlyerBin] = None
        for n, (position, qr_path) in enumerate(qr_images, 1):
            is_last = n == total
            if n == 1 or n % self.config.progress_interval == 0:
                print(f"Processing QR code {n}/{total}...")

            if current is None:
                current = FlyerBin(len(self.bins) + 1)

            try:
                page = compose_flyer_page(template, qr_path, self.config)
            except Exception as e:
                print(f"❌ Error adding {os.path.basename(qr_path)} (#{position}) to flyer: {e}")
                self.skipped.append((position, qr_path, str(e)))
            else:
                current.append(position, page)

            if current.page_count == 0 or not self._probe_due(current, is_last):
                continue

            data = current.probe()
            if len(data) < self.config.max_pdf_bytes and not is_last and not self._is_full(current):
                continue

            current = self._flush(current, data, output_dir, drain=is_last)

        write_layout(output_dir, self.bins)

        print(f"\n✅ {len(self.bins)} PDF file(s) written to {output_dir}")
        if self.skipped:
            print(f"⚠️  {len(self.skipped)} QR code(s) were skipped.")
        return [record.path for record in self.bins]

    def _is_full(self, current: FlyerBin) -> bool:
        cap = self.config.max_pages_per_pdf
        return cap is not None and current.page_count >= cap

    def _probe_due(self, current: FlyerBin, is_last: bool) -> bool:
        if is_last:
            return True
        if current.page_count == current.probed_pages:
            return False
        return self._is_full(current) or current.page_count % self.config.probe_interval == 0

    def _flush(self, current: FlyerBin, data: bytes, output_dir: str,
               drain: bool) -> Optional[FlyerBin]:
        """
        Writes `current` and returns the bin that stays open, if any.

        An oversized multi-page bin is cut to its longest fitting prefix and
        the leftover pages become the next bin. With `drain` the leftover is
        written too, repeating until no page is left.
        """
        max_bytes = self.config.max_pdf_bytes
        while True:
            rest = None
            if len(data) >= max_bytes and current.page_count > 1:
                keep, data = current.fitting_prefix(max_bytes)
                rest = current.split(keep)

            self._write_bin(current, data, output_dir)

            if rest is None or rest.page_count == 0:
                return None
            if not drain:
                return rest
            current = rest
            data = current.probe()

    def _write_bin(self, current: FlyerBin, data: bytes, output_dir: str) -> None:
        path = os.path.join(output_dir, FLYER_FILENAME.format(ordinal=current.ordinal))
        with open(path, 'wb') as f:
            f.write(data)

        record = BinRecord(current.ordinal, path, current.positions, len(data))
        self.bins.append(record)

        note = ""
        if len(data) >= self.config.max_pdf_bytes:
            note = " - single page over the size limit"
        print(f"✅ Saved {path}: {record.page_count} page(s), {len(data) / 1024:.0f} KB{note}")


def write_layout(output_dir: str, records: List[BinRecord]) -> str:
    """Saves which QR positions went into which PDF file."""
    layout_path = os.path.join(output_dir, LAYOUT_FILENAME)
    layout = {
        'bins': [
            {
                'file': os.path.basename(record.path),
                'positions': record.positions,
                'size': record.size,
            }
            for record in records
        ]
    }
    with open(layout_path, 'w', encoding='utf-8') as f:
        json.dump(layout, f, indent=2)
    return layout_path


def read_layout(layout_path: str) -> Dict[str, List[int]]:
    """Maps each PDF file name in a layout file to its QR positions."""
    with open(layout_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    bins = data.get('bins') if isinstance(data, dict) else None
    if not isinstance(bins, list):
        raise ValueError(f"Invalid layout file '{layout_path}': missing 'bins' list")

    layout = {}
    for entry in bins:
        layout[str(entry['file'])] = [int(p) for p in entry['positions']]
    return layout


def pack_flyers(template_path: str, qr_dir: str, output_dir: str,
                config: Optional[FlyerConfig] = None) -> List[str]:
    return FlyerPacker(config).pack(template_path, qr_dir, output_dir)
