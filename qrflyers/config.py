import json
from dataclasses import dataclass, fields, replace
from typing import Optional

import qrcode

# --- Configuration ---

# Where generation runs create their "qr-codes-<timestamp>" folders.
OUTPUT_ROOT = "outputs"

# Default flyer template (single page PDF).
TEMPLATE_PATH = "templates/flyer_template.pdf"

# Folder names inside a run directory.
QRS_FOLDER = "qrs"
FLYERS_FOLDER = "flyers"
FLYERS_PDF_FOLDER = "pdf"

# Position of the QR code on the template page, in PDF points
# from the bottom-left corner, and scale applied to the PNG pixel size.
QR_X = 374
QR_Y = 329
QR_SCALE = 0.7

# Packed PDFs are kept under this many bytes (approximate, see packing.py).
MAX_PDF_BYTES = 20 * 1024 * 1024

# Serialize the open bin every N pages to measure its size.
PROBE_INTERVAL = 50

# Print packing progress every N QR images.
PROGRESS_INTERVAL = 100

# QR symbol settings passed to qrcode.QRCode.
QR_ERROR_CORRECTION = "M"
QR_BOX_SIZE = 10
QR_BORDER = 4

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

# JSON value types accepted for each annotated field type.
_JSON_TYPES = {str: (str,), int: (int,), float: (int, float)}


@dataclass(frozen=True)
class FlyerConfig:
    output_root: str = OUTPUT_ROOT
    template_path: str = TEMPLATE_PATH
    qrs_folder: str = QRS_FOLDER
    flyers_folder: str = FLYERS_FOLDER
    flyers_pdf_folder: str = FLYERS_PDF_FOLDER
    qr_x: float = QR_X
    qr_y: float = QR_Y
    qr_scale: float = QR_SCALE
    max_pdf_bytes: int = MAX_PDF_BYTES
    max_pages_per_pdf: Optional[int] = None
    probe_interval: int = PROBE_INTERVAL
    progress_interval: int = PROGRESS_INTERVAL
    qr_error_correction: str = QR_ERROR_CORRECTION
    qr_box_size: int = QR_BOX_SIZE
    qr_border: int = QR_BORDER
    render_workers: int = 1

    def __post_init__(self):
        if self.max_pdf_bytes <= 0:
            raise ValueError("max_pdf_bytes must be positive")
        if self.probe_interval < 1:
            raise ValueError("probe_interval must be at least 1")
        if self.progress_interval < 1:
            raise ValueError("progress_interval must be at least 1")
        if self.max_pages_per_pdf is not None and self.max_pages_per_pdf < 1:
            raise ValueError("max_pages_per_pdf must be at least 1")
        if self.render_workers < 1:
            raise ValueError("render_workers must be at least 1")
        if self.qr_error_correction.upper() not in ERROR_CORRECTION_LEVELS:
            raise ValueError(
                f"qr_error_correction must be one of {sorted(ERROR_CORRECTION_LEVELS)}")

    @property
    def error_correction_constant(self) -> int:
        return ERROR_CORRECTION_LEVELS[self.qr_error_correction.upper()]

    def with_overrides(self, **overrides) -> "FlyerConfig":
        """Returns a copy with every override that is not None applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_json(cls, path: str) -> "FlyerConfig":
        """
        Loads a config from a JSON object whose keys are field names.

        Args:
            path (str): Path to the JSON file.

        Raises:
            ValueError: If the file holds keys that are not config fields or
                values of the wrong type.
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file '{path}' must contain a JSON object")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(
                f"Unknown config keys in '{path}': {', '.join(unknown)}")

        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if value is None and f.default is None:
                continue
            # Optional[int] is the only annotation missing from the table.
            expected = _JSON_TYPES.get(f.type, (int,))
            if isinstance(value, bool) or not isinstance(value, expected):
                raise ValueError(
                    f"Config key '{f.name}' in '{path}' has an invalid value: {value!r}")
        return cls(**data)
