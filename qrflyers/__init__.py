"""Batch QR code generation, flyer PDF packing and run verification."""

from .errors import (ManifestError, PackingError, QrFlyersError,
                     SpreadsheetError, VerificationError)
from .config import FlyerConfig
from .identifiers import generate_identifiers
from .manifest import Manifest, read_manifest, write_manifest
from .render import QrBatchRenderer, render_qr_codes
from .packing import FlyerPacker, pack_flyers
from .verify import verify_run
from .report import format_report

__version__ = "0.3.0"
