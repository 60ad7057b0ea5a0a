"""
Proposal PDF Generator
======================
Renders one quote aggregate into a branded, multi-page proposal PDF in memory.

Layout (letter, 612x792):
  - Header: dark logo (or text wordmark), PROPOSAL title, quote # / date boxes
  - Prepared for: customer, contact, email
  - Line items table with wrapped descriptions and header repeat on new pages
  - Subtotal / total, accept + SLA links (clickable)
  - Navy footer band with light logo and page number
"""

import io
import logging
from datetime import datetime

from reportlab.lib.pagesizes import letter
from reportlab.lib.colors import Color, HexColor
from reportlab.lib.utils import simpleSplit, ImageReader
from reportlab.pdfgen import canvas

from src.core.models import RenderInput

log = logging.getLogger("continuate.pdf")

# ═══════════════════════════════════════════════════════════════════════════════
# COLORS
# ═══════════════════════════════════════════════════════════════════════════════
FILL    = Color(0.90, 0.92, 0.97)      # header cell fill
TBL_BD  = HexColor("#2f3e63")          # table grid borders
NAVY    = HexColor("#14213d")          # footer band + wordmark
ACCENT  = HexColor("#2f6fed")          # links
BLACK   = HexColor("#000000")
WHITE   = HexColor("#FFFFFF")
GRAY    = HexColor("#555555")
ALT_ROW = Color(0.96, 0.96, 0.98)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "AUD": "A$", "CAD": "C$"}


def _money(value: float, currency: str = "USD") -> str:
    sym = CURRENCY_SYMBOLS.get((currency or "USD").upper())
    if sym:
        return f"{sym}{value:,.2f}"
    return f"{value:,.2f} {currency}"


def _qty(value) -> str:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return str(value)
    return str(int(f)) if f.is_integer() else f"{f:g}"


def _image(data):
    """ImageReader for logo bytes, or None if the bytes are not an image."""
    if not data:
        return None
    try:
        img = ImageReader(io.BytesIO(data))
        img.getSize()
        return img
    except Exception as e:
        log.warning("Logo image unreadable, skipping: %s", e)
        return None


def build_proposal_pdf(data: RenderInput) -> bytes:
    """Render the proposal and return the PDF bytes."""
    quote = data.quote
    items = list(data.items)
    brand = data.brand_name or "Continuate"
    currency = quote.currency or "USD"

    log.info("Rendering proposal %s (%d items)", quote.public_id, len(items))

    W, H = letter
    ML = 36
    MR = W - 36
    UW = MR - ML
    FOOTER_H = 42

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle(f"{brand} Proposal {quote.public_id}")
    c.setAuthor(brand)
    c.setSubject(quote.name or "Proposal")

    # layout coordinates are measured from the top; reportlab's origin is bottom-left
    def Y(top_y):
        return H - top_y

    def text(x, yt, txt, font="Helvetica", size=9, color=BLACK, align="left"):
        c.setFont(font, size)
        c.setFillColor(color)
        s = str(txt) if txt else ""
        if align == "right":
            c.drawRightString(x, Y(yt), s)
        elif align == "center":
            c.drawCentredString(x, Y(yt), s)
        else:
            c.drawString(x, Y(yt), s)

    def box(x, yt, w, h, fill=False):
        rl_y = Y(yt) - h
        if fill:
            c.setFillColor(FILL)
            c.rect(x, rl_y, w, h, fill=1, stroke=0)
        c.setStrokeColor(TBL_BD)
        c.setLineWidth(0.5)
        c.rect(x, rl_y, w, h, fill=0, stroke=1)

    light_logo = _image(data.logo_light)

    def footer(page_num):
        c.setFillColor(NAVY)
        c.rect(0, 0, W, FOOTER_H, fill=1, stroke=0)
        x = ML
        if light_logo is not None:
            iw, ih = light_logo.getSize()
            scale = min(90 / iw, 22 / ih)
            c.drawImage(light_logo, x, (FOOTER_H - ih * scale) / 2, width=iw * scale,
                        height=ih * scale, mask="auto")
        else:
            c.setFont("Helvetica-Bold", 11)
            c.setFillColor(WHITE)
            c.drawString(x, 16, brand)
        c.setFont("Helvetica", 8)
        c.setFillColor(WHITE)
        c.drawRightString(MR, 16, f"{quote.public_id}  |  Page {page_num}")

    # ══════════════════════════════════════════════════════════════════════════
    # PAGE 1 HEADER
    # ══════════════════════════════════════════════════════════════════════════

    dark_logo = _image(data.logo_dark)
    if dark_logo is not None:
        iw, ih = dark_logo.getSize()
        scale = min(160 / iw, 40 / ih)
        dw, dh = iw * scale, ih * scale
        c.drawImage(dark_logo, ML, Y(40) - dh, width=dw, height=dh, mask="auto")
    else:
        text(ML, 66, brand, "Helvetica-Bold", 20, NAVY)

    text(MR, 62, "PROPOSAL", "Helvetica-Bold", 22, BLACK, "right")

    c.setStrokeColor(TBL_BD)
    c.setLineWidth(1.5)
    c.line(ML, Y(92), MR, Y(92))

    # ── Quote # / date boxes (right column) ───────────────────────────────────
    issued = (quote.created_at or "")[:10] or datetime.now().strftime("%Y-%m-%d")
    meta = [("QUOTE #", quote.public_id), ("DATE", issued)]
    if quote.valid_until:
        meta.append(("VALID UNTIL", str(quote.valid_until)[:10]))
    my = 102
    for label, val in meta:
        box(MR - 216, my, 80, 20, fill=True)
        text(MR - 212, my + 14, label, "Helvetica-Bold", 9)
        box(MR - 136, my, 136, 20)
        text(MR - 6, my + 14, val, "Helvetica-Bold", 10, BLACK, "right")
        my += 21

    # ── Prepared for (left column) ────────────────────────────────────────────
    text(ML, 114, "Prepared for:", "Helvetica-Bold", 10)
    py = 130
    for line in (quote.customer, quote.contact_name, quote.contact_email):
        if line:
            text(ML, py, line, "Helvetica", 10)
            py += 13

    # ── Title ─────────────────────────────────────────────────────────────────
    ty = max(py, my) + 18
    for tline in simpleSplit(quote.name or "Proposal", "Helvetica-Bold", 14, UW):
        text(ML, ty, tline, "Helvetica-Bold", 14, NAVY)
        ty += 17

    # ══════════════════════════════════════════════════════════════════════════
    # LINE ITEMS TABLE
    # ══════════════════════════════════════════════════════════════════════════

    COLS = [
        ("#",           ML,       28),
        ("DESCRIPTION", ML + 28,  290),
        ("QTY",         ML + 318, 50),
        ("UNIT",        ML + 368, 40),
        ("UNIT PRICE",  ML + 408, 76),
        ("TOTAL",       ML + 484, UW - 484),
    ]
    hdr_h = 20

    def draw_table_header(top):
        for name, cx, cw in COLS:
            rl_y = Y(top) - hdr_h
            c.setFillColor(FILL)
            c.rect(cx, rl_y, cw, hdr_h, fill=1, stroke=0)
            c.setStrokeColor(TBL_BD)
            c.setLineWidth(0.5)
            c.rect(cx, rl_y, cw, hdr_h, fill=0, stroke=1)
            c.setFillColor(BLACK)
            c.setFont("Helvetica-Bold", 9)
            c.drawString(cx + 4, rl_y + 7, name)
        return top + hdr_h

    cur_y = draw_table_header(ty + 6)
    page_num = 1
    subtotal = 0.0

    if not items:
        box(ML, cur_y, UW, 22)
        text(ML + 6, cur_y + 15, "No line items.", "Helvetica-Oblique", 9, GRAY)
        cur_y += 22

    for idx, item in enumerate(items):
        line_total = item.total
        subtotal += line_total

        desc_lines = simpleSplit(item.description or "", "Helvetica", 8.5, COLS[1][2] - 8) or [""]
        row_h = max(20, len(desc_lines) * 10 + 8)

        # page break, leaving room for the footer band
        if Y(cur_y) - row_h < FOOTER_H + 20:
            footer(page_num)
            c.showPage()
            page_num += 1
            cur_y = draw_table_header(40)

        rl_row_y = Y(cur_y) - row_h
        if idx % 2 == 1:
            c.setFillColor(ALT_ROW)
            c.rect(ML, rl_row_y, UW, row_h, fill=1, stroke=0)
        c.setStrokeColor(TBL_BD)
        c.setLineWidth(0.3)
        for _, cx, cw in COLS:
            c.rect(cx, rl_row_y, cw, row_h, fill=0, stroke=1)

        c.setFillColor(BLACK)
        baseline = rl_row_y + row_h - 12
        c.setFont("Helvetica", 9)
        c.drawString(COLS[0][1] + 6, baseline, str(idx + 1))
        c.setFont("Helvetica", 8.5)
        dy = baseline
        for dline in desc_lines:
            c.drawString(COLS[1][1] + 4, dy, dline)
            dy -= 10
        c.setFont("Helvetica", 9)
        c.drawRightString(COLS[2][1] + COLS[2][2] - 6, baseline, _qty(item.quantity))
        c.drawString(COLS[3][1] + 4, baseline, str(item.unit or "")[:6])
        c.drawRightString(COLS[4][1] + COLS[4][2] - 6, baseline,
                          _money(float(item.unit_price or 0), currency))
        c.drawRightString(COLS[5][1] + COLS[5][2] - 6, baseline,
                          _money(line_total, currency))
        cur_y += row_h

    # ══════════════════════════════════════════════════════════════════════════
    # TOTALS, LINKS, NOTES
    # ══════════════════════════════════════════════════════════════════════════

    notes_lines = simpleSplit(quote.notes or "", "Helvetica", 9, UW)
    needed = 60 + (30 if data.accept_url else 0) + (16 if data.sla_url else 0) + 12 * len(notes_lines)
    if Y(cur_y) - needed < FOOTER_H + 20:
        footer(page_num)
        c.showPage()
        page_num += 1
        cur_y = 40

    ty = cur_y + 10
    box(COLS[4][1], ty, COLS[4][2], 20, fill=True)
    text(COLS[4][1] + 4, ty + 14, "SUBTOTAL", "Helvetica-Bold", 9)
    box(COLS[5][1], ty, COLS[5][2], 20)
    text(MR - 6, ty + 14, _money(subtotal, currency), "Helvetica", 9, BLACK, "right")
    ty += 20
    box(COLS[4][1], ty, COLS[4][2], 22, fill=True)
    text(COLS[4][1] + 4, ty + 15, "TOTAL", "Helvetica-Bold", 10)
    box(COLS[5][1], ty, COLS[5][2], 22)
    text(MR - 6, ty + 15, _money(subtotal, currency), "Helvetica-Bold", 10, BLACK, "right")
    ty += 40

    if data.accept_url:
        text(ML, ty, "Review and accept online:", "Helvetica-Bold", 10)
        ty += 14
        text(ML, ty, data.accept_url, "Helvetica", 9, ACCENT)
        c.linkURL(data.accept_url,
                  (ML, Y(ty) - 3, ML + c.stringWidth(data.accept_url, "Helvetica", 9), Y(ty) + 9),
                  relative=0, thickness=0)
        ty += 16
    if data.sla_url:
        label = "Service level agreement: "
        text(ML, ty, label, "Helvetica-Bold", 9)
        lx = ML + c.stringWidth(label, "Helvetica-Bold", 9)
        text(lx, ty, data.sla_url, "Helvetica", 9, ACCENT)
        c.linkURL(data.sla_url,
                  (lx, Y(ty) - 3, lx + c.stringWidth(data.sla_url, "Helvetica", 9), Y(ty) + 9),
                  relative=0, thickness=0)
        ty += 16
    if notes_lines:
        ty += 6
        for nline in notes_lines:
            text(ML, ty, nline, "Helvetica", 9, GRAY)
            ty += 12

    footer(page_num)
    c.showPage()
    c.save()
    return buf.getvalue()
