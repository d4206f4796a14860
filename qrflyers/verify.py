import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from pypdf import PdfReader

from .errors import ManifestError, VerificationError
from .manifest import Manifest, read_manifest
from .packing import LAYOUT_FILENAME, QR_IMAGE_PATTERN, read_layout

FLYER_INDEX_PATTERN = re.compile(r'flyer_(\d+)\.pdf$', re.IGNORECASE)


@dataclass
class ExpectedQr:
    page: int
    expected_url: str
    expected_hash: str
    status: str = "expected"


@dataclass
class PdfFinding:
    filename: str
    pages: int = 0
    success: bool = True
    errors: List[str] = field(default_factory=list)
    qr_codes: List[ExpectedQr] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class CountGap:
    expected: int
    found: int

    @property
    def difference(self) -> int:
        return self.expected - self.found


@dataclass
class MissingQrCode:
    hash: str
    status: str = "Not found in any PDF"


@dataclass
class ExtraFiles:
    kind: str
    count: int
    status: str
    files: List[str] = field(default_factory=list)


@dataclass
class VerificationSummary:
    success: bool = True
    missing_pdfs: List[CountGap] = field(default_factory=list)
    missing_qr_codes: List[MissingQrCode] = field(default_factory=list)
    missing_qr_files: List[CountGap] = field(default_factory=list)
    extra_files: List[ExtraFiles] = field(default_factory=list)


@dataclass
class VerificationResult:
    total_pdfs: int = 0
    total_pages: int = 0
    total_qr_codes_expected: int = 0
    total_qr_files: Optional[int] = None
    association: str = "filename"
    pdf_results: List[PdfFinding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    summary: VerificationSummary = field(default_factory=VerificationSummary)

    @property
    def success(self) -> bool:
        return self.summary.success


def extract_pdf_index(filename: str) -> Optional[int]:
    """flyer_1.pdf -> 0, flyer_2.pdf -> 1; None for any other name or flyer_0."""
    match = FLYER_INDEX_PATTERN.search(os.path.basename(filename))
    if match and int(match.group(1)) >= 1:
        return int(match.group(1)) - 1
    return None


def _sort_key(filename: str) -> Tuple[int, int, str]:
    index = extract_pdf_index(filename)
    if index is None:
        return (1, 0, filename)
    return (0, index, filename)


def list_pdf_files(pdf_dir: str) -> List[str]:
    if not os.path.isdir(pdf_dir):
        raise VerificationError(f"The PDF folder '{pdf_dir}' does not exist.")
    pdf_files = [f for f in os.listdir(pdf_dir) if f.lower().endswith('.pdf')]
    return sorted(pdf_files, key=_sort_key)


def load_expected_manifest(manifest_path: str) -> Manifest:
    """Loads a manifest for verification; an empty identifier list is an error."""
    manifest = read_manifest(manifest_path)
    if not manifest.hash:
        raise ManifestError(
            "Invalid manifest format: the 'hash' array must contain at least 1 element")
    return manifest


def _expected_qr(manifest: Manifest, page: int, index: int) -> ExpectedQr:
    expected_hash = manifest.hash[index]
    return ExpectedQr(page=page, expected_url=manifest.target_url(expected_hash),
                      expected_hash=expected_hash)


def _associate_by_layout(finding: PdfFinding, positions: Optional[List[int]],
                         manifest: Manifest) -> None:
    if positions is None:
        finding.errors.append(f"{finding.filename} is not listed in the bin layout")
        return

    if len(positions) != finding.pages:
        finding.errors.append(
            f"Layout lists {len(positions)} QR codes but the PDF has {finding.pages} pages")

    for page, position in enumerate(positions[:finding.pages], 1):
        index = position - 1
        if 0 <= index < len(manifest.hash):
            finding.qr_codes.append(_expected_qr(manifest, page, index))
            print(f"✅ Page {page}: Expected QR code with hash {manifest.hash[index]}")
        else:
            finding.errors.append(f"Page {page}: No expected QR code available")


def _associate_by_filename(finding: PdfFinding, base_index: Optional[int],
                           manifest: Manifest) -> None:
    if base_index is None:
        finding.errors.append(f"Could not determine expected QR code for {finding.filename}")
        return

    if finding.pages == 1:
        if 0 <= base_index < len(manifest.hash):
            finding.qr_codes.append(_expected_qr(manifest, 1, base_index))
            print(f"✅ Page 1: Expected QR code with hash {manifest.hash[base_index]}")
        else:
            finding.errors.append(f"Could not determine expected QR code for {finding.filename}")
        return

    for page in range(1, finding.pages + 1):
        index = base_index + page - 1
        if 0 <= index < len(manifest.hash):
            finding.qr_codes.append(_expected_qr(manifest, page, index))
            print(f"✅ Page {page}: Expected QR code with hash {manifest.hash[index]}")
        else:
            finding.errors.append(f"Page {page}: No expected QR code available")


def _filename_base_indexes(findings: List[PdfFinding]) -> Tuple[Dict[str, Optional[int]], bool]:
    """
    Works out the manifest index of each PDF's first page from its file name.

    When every PDF has one page, flyer_<k> is identifier k-1 even if some
    files are missing. Otherwise bins may differ in size, so a bin starts
    after all the pages of the lower-numbered bins that were found.
    """
    readable = [f for f in findings if f.error is None]
    single_page = all(f.pages == 1 for f in readable)

    bases: Dict[str, Optional[int]] = {}
    offset = 0
    for finding in readable:
        index = extract_pdf_index(finding.filename)
        if index is None:
            bases[finding.filename] = None
            continue
        bases[finding.filename] = index if single_page else offset
        offset += finding.pages
    return bases, single_page


def _is_expected_ordinal(filename: str, expected_pdfs: int) -> bool:
    index = extract_pdf_index(filename)
    return index is not None and index < expected_pdfs


def _count_qr_files(qr_dir: str) -> List[str]:
    if not os.path.isdir(qr_dir):
        raise VerificationError(f"The QR code folder '{qr_dir}' does not exist.")
    names = [f for f in os.listdir(qr_dir) if QR_IMAGE_PATTERN.match(f)]
    return sorted(names, key=lambda f: int(QR_IMAGE_PATTERN.match(f).group(1)))


def verify_run(pdf_dir: str, manifest_path: str, qr_dir: Optional[str] = None,
               layout_path: Optional[str] = None) -> VerificationResult:
    """
    Checks the flyer PDFs (and optionally QR images) of a run against its manifest.

    Args:
        pdf_dir (str): Folder holding the flyer_<k>.pdf files.
        manifest_path (str): The run's manifest JSON.
        qr_dir (str, optional): Folder holding qr_<n>.png files to count.
        layout_path (str, optional): Bin layout file. Defaults to
            <pdf_dir>/bins.json when that file exists.

    Returns:
        VerificationResult: Counts, per-PDF findings and discrepancies.

    Raises:
        ManifestError: If the manifest has no usable 'hash' array.
        VerificationError: If the PDF folder is missing or has no PDFs.
    """
    print("🔍 Starting PDF QR Code Verification...")

    manifest = load_expected_manifest(manifest_path)
    expected_hashes = manifest.hash
    print(f"📋 Expected {len(expected_hashes)} QR codes from manifest")
    print(f"🌐 Base URL: {manifest.base_url}")

    pdf_files = list_pdf_files(pdf_dir)
    if not pdf_files:
        raise VerificationError(f"No PDF files found in {pdf_dir}")
    print(f"📁 Found {len(pdf_files)} PDF files to verify")

    if layout_path is None:
        default_layout = os.path.join(pdf_dir, LAYOUT_FILENAME)
        layout_path = default_layout if os.path.isfile(default_layout) else None

    layout = None
    if layout_path is not None:
        try:
            layout = read_layout(layout_path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise VerificationError(f"Could not read bin layout '{layout_path}': {e}") from e

    result = VerificationResult(
        total_pdfs=len(pdf_files),
        total_qr_codes_expected=len(expected_hashes),
        association="layout" if layout is not None else "filename",
    )

    for pdf_file in pdf_files:
        finding = PdfFinding(filename=pdf_file)
        try:
            reader = PdfReader(os.path.join(pdf_dir, pdf_file))
            finding.pages = len(reader.pages)
            print(f"📄 {pdf_file}: {finding.pages} pages")
        except Exception as e:
            print(f"❌ Error processing {pdf_file}: {e}")
            finding.success = False
            finding.error = str(e)
            result.errors.append(f"{pdf_file}: {e}")
        result.total_pages += finding.pages
        result.pdf_results.append(finding)

    readable = [f for f in result.pdf_results if f.error is None]
    if layout is not None:
        for finding in readable:
            _associate_by_layout(finding, layout.get(finding.filename), manifest)
        expected_pdfs = len(layout)
    else:
        bases, single_page = _filename_base_indexes(result.pdf_results)
        for finding in readable:
            _associate_by_filename(finding, bases[finding.filename], manifest)
        if single_page:
            expected_pdfs = len(expected_hashes)
        else:
            # Packed bins: flyer_1 .. flyer_<highest> should all be there.
            ordinals = [extract_pdf_index(f) for f in pdf_files]
            expected_pdfs = max([i + 1 for i in ordinals if i is not None], default=0)

    found_hashes: Set[str] = set()
    for finding in result.pdf_results:
        if finding.errors:
            finding.success = False
        found_hashes.update(qr.expected_hash for qr in finding.qr_codes)

    # Only PDFs that stand for a bin count towards the expected total.
    if layout is not None:
        bin_files = [f for f in pdf_files if f in layout]
    else:
        bin_files = [f for f in pdf_files if _is_expected_ordinal(f, expected_pdfs)]
    unexpected = [f for f in pdf_files if f not in bin_files]

    summary = result.summary
    if len(bin_files) < expected_pdfs:
        summary.missing_pdfs.append(CountGap(expected=expected_pdfs, found=len(bin_files)))
        print(f"❌ PDF count mismatch: expected {expected_pdfs}, found {len(bin_files)}")
    else:
        print(f"✅ PDF count matches: {len(bin_files)}")

    for expected_hash in expected_hashes:
        if expected_hash not in found_hashes:
            summary.missing_qr_codes.append(MissingQrCode(hash=expected_hash))

    if unexpected:
        status = ("PDFs not listed in the bin layout" if layout is not None
                  else "More PDFs found than expected")
        summary.extra_files.append(ExtraFiles(
            kind="PDF", count=len(unexpected), status=status, files=unexpected))

    if qr_dir is not None:
        qr_files = _count_qr_files(qr_dir)
        result.total_qr_files = len(qr_files)
        print(f"🖼️  Found {len(qr_files)} QR code files")
        if len(qr_files) < len(expected_hashes):
            summary.missing_qr_files.append(
                CountGap(expected=len(expected_hashes), found=len(qr_files)))
            print(f"❌ QR code count mismatch: expected {len(expected_hashes)}, found {len(qr_files)}")
        elif len(qr_files) > len(expected_hashes):
            summary.extra_files.append(ExtraFiles(
                kind="QR", count=len(qr_files) - len(expected_hashes),
                status="More QR code files found than expected",
                files=qr_files[len(expected_hashes):]))

    summary.success = (
        not summary.missing_pdfs
        and not summary.missing_qr_codes
        and not summary.missing_qr_files
        and not summary.extra_files
        and not result.errors
        and all(f.success for f in result.pdf_results)
    )
    return result
