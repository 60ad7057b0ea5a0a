"""
Tests for src/forms/proposal_pdf.py: PDF bytes, text content, logos, paging.
"""
import io

import pytest
from pypdf import PdfReader

from src.forms.proposal_pdf import build_proposal_pdf, _money, _qty
from src.core.models import Quote, LineItem, RenderInput


def _quote(**kw):
    base = dict(id=1, public_id="Q-100", name="Managed IT Services",
                customer="Acme Dental Group", contact_name="Dana Reyes",
                contact_email="dana@acmedental.example", created_at="2026-10-01T09:00:00+00:00")
    base.update(kw)
    return Quote(**base)


def _items(n=3):
    return tuple(
        LineItem(id=i, quote_id=1, description=f"Service line {i}", quantity=i,
                 unit_price=100.0, sort_order=i)
        for i in range(1, n + 1)
    )


def _text(pdf_bytes):
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return reader, "\n".join(page.extract_text() or "" for page in reader.pages)


def _png():
    """Tiny real image, built with reportlab's own PIL dependency."""
    from PIL import Image
    buf = io.BytesIO()
    Image.new("RGB", (40, 10), (20, 33, 61)).save(buf, format="PNG")
    return buf.getvalue()


class TestBuildProposalPdf:

    def test_returns_pdf_bytes(self):
        pdf = build_proposal_pdf(RenderInput(quote=_quote(), items=_items()))
        assert pdf.startswith(b"%PDF")

    def test_contains_quote_fields(self):
        data = RenderInput(quote=_quote(), items=_items(),
                           accept_url="https://app.example.com/quote/Q-100/accept",
                           sla_url="https://app.example.com/sla/Q-100")
        _, text = _text(build_proposal_pdf(data))
        assert "Q-100" in text
        assert "Acme Dental Group" in text
        assert "Managed IT Services" in text
        assert "Service line 2" in text
        assert "$600.00" in text   # 1+2+3 units at $100
        assert "https://app.example.com/quote/Q-100/accept" in text

    def test_no_items(self):
        _, text = _text(build_proposal_pdf(RenderInput(quote=_quote(), items=())))
        assert "No line items." in text
        assert "$0.00" in text

    def test_brand_wordmark_without_logo(self):
        _, text = _text(build_proposal_pdf(RenderInput(quote=_quote(), items=(), brand_name="Acme IT")))
        assert "Acme IT" in text

    def test_metadata_title(self):
        reader, _ = _text(build_proposal_pdf(RenderInput(quote=_quote(), items=())))
        assert reader.metadata.title == "Continuate Proposal Q-100"

    def test_logos_drawn(self):
        png = _png()
        pdf = build_proposal_pdf(RenderInput(quote=_quote(), items=_items(),
                                             logo_dark=png, logo_light=png))
        assert pdf.startswith(b"%PDF")
        assert b"/Image" in pdf

    def test_garbage_logo_is_ignored(self):
        pdf = build_proposal_pdf(RenderInput(quote=_quote(), items=_items(),
                                             logo_dark=b"<html>404</html>", logo_light=b"nope"))
        assert pdf.startswith(b"%PDF")

    def test_many_items_paginate(self):
        reader, text = _text(build_proposal_pdf(RenderInput(quote=_quote(), items=_items(60))))
        assert len(reader.pages) >= 2
        assert "Service line 60" in text
        assert "Page 2" in text

    def test_long_description_wraps(self):
        item = LineItem(id=1, quote_id=1, description="Very long description " * 30,
                        quantity=1, unit_price=10)
        pdf = build_proposal_pdf(RenderInput(quote=_quote(), items=(item,)))
        assert pdf.startswith(b"%PDF")

    def test_notes_and_valid_until(self):
        q = _quote(notes="Pricing assumes a 12 month term.", valid_until="2026-12-31")
        _, text = _text(build_proposal_pdf(RenderInput(quote=q, items=())))
        assert "12 month term" in text
        assert "2026-12-31" in text


class TestFormatting:

    @pytest.mark.parametrize("value,currency,expected", [
        (1234.5, "USD", "$1,234.50"),
        (10, "EUR", "€10.00"),
        (10, "SEK", "10.00 SEK"),
        (0, None, "$0.00"),
    ])
    def test_money(self, value, currency, expected):
        assert _money(value, currency) == expected

    def test_qty(self):
        assert _qty(3.0) == "3"
        assert _qty(2.5) == "2.5"
        assert _qty("n/a") == "n/a"
