import json
import os

import pytest
from PIL import Image
from pypdf import PdfWriter
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from qrflyers.config import FlyerConfig


def noise_image(size):
    """Random pixels, so the image does not compress and sizes stay predictable."""
    width, height = size
    return Image.frombytes('RGB', (width, height), os.urandom(width * height * 3))


def make_template(path, pages=1, noise_px=0):
    c = canvas.Canvas(str(path), pagesize=A4)
    width, height = A4
    for number in range(pages):
        c.setFont("Helvetica", 24)
        c.drawCentredString(width / 2, height - 80, f"Flyer template page {number + 1}")
        if noise_px:
            c.drawImage(ImageReader(noise_image((noise_px, noise_px))), 40, 40,
                        width=120, height=120)
        c.showPage()
    c.save()
    return str(path)


def make_qr_images(folder, count, size_px=60, start=1):
    os.makedirs(folder, exist_ok=True)
    paths = []
    for position in range(start, start + count):
        path = os.path.join(str(folder), f"qr_{position}.png")
        noise_image((size_px, size_px)).save(path)
        paths.append(path)
    return paths


def make_pdf(path, pages):
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    with open(path, 'wb') as f:
        writer.write(f)
    return str(path)


def write_json(path, data):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f)
    return str(path)


@pytest.fixture
def template_pdf(tmp_path):
    return make_template(tmp_path / "template.pdf")


@pytest.fixture
def qr_dir(tmp_path):
    return str(tmp_path / "qrs")


@pytest.fixture
def pdf_dir(tmp_path):
    folder = tmp_path / "pdf"
    folder.mkdir()
    return str(folder)


@pytest.fixture
def small_config(tmp_path):
    return FlyerConfig(output_root=str(tmp_path / "outputs"), qr_box_size=2, qr_border=1,
                       qr_x=20, qr_y=20, qr_scale=1.0, probe_interval=1)


@pytest.fixture
def manifest_data():
    return {
        'baseUrl': 'https://example.com/x',
        'urlParams': '?t=1',
        'hash': ['id-a', 'id-b', 'id-c', 'id-d', 'id-e'],
    }
