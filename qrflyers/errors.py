class QrFlyersError(Exception):
    """Base class for every failure raised by qrflyers."""


class ManifestError(QrFlyersError, ValueError):
    """The manifest file is unreadable or malformed."""


class PackingError(QrFlyersError):
    """The packer cannot start: bad template or no QR images."""


class VerificationError(QrFlyersError):
    """Verification cannot run against the given directory."""


class SpreadsheetError(QrFlyersError):
    """The spreadsheet is missing or has no usable URL column."""
