import os

from .verify import VerificationResult

RULE = "=" * 80
SECTION_RULE = "-" * 40


def format_report(results: VerificationResult) -> str:
    """Renders a verification result as the plain-text report."""
    summary = results.summary
    lines = ["", RULE, "📊 PDF QR CODE VERIFICATION REPORT", RULE, ""]

    lines.append("📈 SUMMARY:")
    lines.append(f"   Total PDFs processed: {results.total_pdfs}")
    lines.append(f"   Total pages: {results.total_pages}")
    lines.append(f"   QR codes expected: {results.total_qr_codes_expected}")
    if results.total_qr_files is not None:
        lines.append(f"   QR code files found: {results.total_qr_files}")
    lines.append(f"   Association: by {results.association}")
    lines.append(f"   Verification status: {'✅ SUCCESS' if summary.success else '❌ FAILED'}")
    lines.append("")

    lines.append("📄 PDF FILES:")
    lines.append(SECTION_RULE)
    for pdf in results.pdf_results:
        lines.append("")
        lines.append(f"📁 {pdf.filename}:")
        lines.append(f"   Pages: {pdf.pages}")
        lines.append(f"   Status: {'✅ Success' if pdf.success else '❌ Failed'}")
        if pdf.qr_codes:
            lines.append("   Expected QR Codes:")
            for qr in pdf.qr_codes:
                lines.append(f"     Page {qr.page}: {qr.expected_hash}")
        if pdf.errors:
            lines.append("   Errors:")
            for error in pdf.errors:
                lines.append(f"     - {error}")
        if pdf.error:
            lines.append(f"   Error: {pdf.error}")

    if summary.missing_pdfs:
        lines += ["", "❌ MISSING PDF FILES:", SECTION_RULE]
        for gap in summary.missing_pdfs:
            lines.append(f"   Expected: {gap.expected}, Found: {gap.found}")
            lines.append(f"   Missing: {gap.difference} files")
            lines.append("")

    if summary.missing_qr_codes:
        lines += ["", "❌ MISSING QR CODES:", SECTION_RULE]
        for missing in summary.missing_qr_codes:
            lines.append(f"   Hash: {missing.hash}")
            lines.append(f"   Status: {missing.status}")
            lines.append("")

    if summary.missing_qr_files:
        lines += ["", "❌ MISSING QR CODE FILES:", SECTION_RULE]
        for gap in summary.missing_qr_files:
            lines.append(f"   Expected: {gap.expected}, Found: {gap.found}")
            lines.append(f"   Missing: {gap.difference} files")
            lines.append("")

    if summary.extra_files:
        lines += ["", "⚠️  EXTRA FILES:", SECTION_RULE]
        for extra in summary.extra_files:
            lines.append(f"   {extra.status}")
            lines.append(f"   {extra.kind} files: {extra.count} extra")
            if extra.files:
                lines.append(f"   Files: {', '.join(extra.files)}")
            lines.append("")

    if results.errors:
        lines += ["", "❌ PROCESSING ERRORS:", SECTION_RULE]
        for error in results.errors:
            lines.append(f"   {error}")

    lines += ["", RULE, ""]
    return "\n".join(lines)


def write_report(results: VerificationResult, report_path: str) -> str:
    report = format_report(results)
    parent = os.path.dirname(report_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(report_path, 'w', encoding='utf-8') as f:
        f.write(report)
    print(f"📝 Report saved to {report_path}")
    return report
