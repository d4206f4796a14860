from qrflyers.report import format_report, write_report
from qrflyers.verify import (CountGap, ExpectedQr, ExtraFiles, MissingQrCode, PdfFinding,
                             VerificationResult, VerificationSummary)


def passing_result():
    finding = PdfFinding(filename="flyer_1.pdf", pages=2, qr_codes=[
        ExpectedQr(page=1, expected_url="https://example.com/x/a", expected_hash="a"),
        ExpectedQr(page=2, expected_url="https://example.com/x/b", expected_hash="b"),
    ])
    return VerificationResult(total_pdfs=1, total_pages=2, total_qr_codes_expected=2,
                              pdf_results=[finding])


def test_passing_report_has_only_fixed_sections():
    report = format_report(passing_result())

    assert "📊 PDF QR CODE VERIFICATION REPORT" in report
    assert "Total PDFs processed: 1" in report
    assert "Total pages: 2" in report
    assert "QR codes expected: 2" in report
    assert "✅ SUCCESS" in report
    assert "📁 flyer_1.pdf:" in report
    assert "     Page 2: b" in report
    for section in ("MISSING PDF FILES", "MISSING QR CODES", "EXTRA FILES",
                    "PROCESSING ERRORS", "QR code files found"):
        assert section not in report


def test_failing_report_lists_every_discrepancy():
    result = passing_result()
    result.pdf_results.append(PdfFinding(filename="flyer_2.pdf", success=False,
                                         errors=["Page 1: No expected QR code available"]))
    result.pdf_results.append(PdfFinding(filename="flyer_3.pdf", success=False, error="EOF"))
    result.errors.append("flyer_3.pdf: EOF")
    result.total_qr_files = 1
    result.summary = VerificationSummary(
        success=False,
        missing_pdfs=[CountGap(expected=5, found=3)],
        missing_qr_codes=[MissingQrCode(hash="c")],
        missing_qr_files=[CountGap(expected=2, found=1)],
        extra_files=[ExtraFiles(kind="PDF", count=1, status="More PDFs found than expected",
                                files=["flyer_9.pdf"])],
    )

    report = format_report(result)

    assert "❌ FAILED" in report
    assert "❌ MISSING PDF FILES:" in report
    assert "Missing: 2 files" in report
    assert "Hash: c" in report
    assert "❌ MISSING QR CODE FILES:" in report
    assert "QR code files found: 1" in report
    assert "PDF files: 1 extra" in report
    assert "Files: flyer_9.pdf" in report
    assert "     - Page 1: No expected QR code available" in report
    assert "   Error: EOF" in report
    assert "❌ PROCESSING ERRORS:" in report
    assert report.index("MISSING PDF FILES") < report.index("PROCESSING ERRORS")


def test_write_report(tmp_path):
    path = tmp_path / "reports" / "report.txt"
    text = write_report(passing_result(), str(path))
    assert path.read_text(encoding='utf-8') == text
