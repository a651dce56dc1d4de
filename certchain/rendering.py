from io import BytesIO

import qrcode
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas


# ---------------- QR ----------------
def render_qr(url: str) -> BytesIO:
    img = qrcode.make(url)
    buf = BytesIO()
    img.save(buf)
    buf.seek(0)
    return buf


# ---------------- PDF ----------------
def render_certificate_pdf(certificate, issuer_name: str) -> BytesIO:
    """Printable certificate for a ledger record (a ``LedgerCertificate``)."""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)

    pdf.setFont("Helvetica-Bold", 22)
    pdf.drawCentredString(300, 800, "Certificate of Achievement")

    pdf.setFont("Helvetica", 14)
    pdf.drawString(80, 750, f"Recipient: {certificate.recipient_name}")
    pdf.drawString(80, 720, f"Event: {certificate.event_name}")
    pdf.drawString(80, 690, f"Issue Date: {certificate.issue_date}")
    pdf.drawString(80, 660, f"Issuer: {issuer_name} ({certificate.issuer})")
    pdf.drawString(80, 630, f"Status: {'VALID' if certificate.is_valid else 'REVOKED'}")

    pdf.setFont("Helvetica", 8)
    pdf.drawString(80, 590, f"Certificate Hash: {certificate.identifier}")

    pdf.showPage()
    pdf.save()

    buffer.seek(0)
    return buffer
