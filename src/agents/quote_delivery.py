"""
quote_delivery.py — Send a priced proposal to the customer

Pipeline position (one quote per call, synchronous, no retries):
  Authorize → Load quote + items → Derive links, fetch logos → Render PDF
            → [delivery configured?] → Email (unless dry-run) → Mark Sent

Failure policy:
  - Every step is a hard sequence point; the first failure ends the call.
  - Logo fetches are cosmetic and never fail the call.
  - No email goes out without its PDF: render failure aborts before sending.
  - Unconfigured delivery returns ok + warning, sends nothing, changes nothing.
  - Status becomes Sent only after a successful, non-dry-run send.

Known gap: if the send succeeds and the status update fails, the caller gets a
500 while the customer already has the email. The quote keeps its old status
and a retry would email it again. This is logged at error level, not repaired.
"""

import logging
from typing import Optional, Tuple

from src.core.auth import require_admin
from src.core.errors import InvalidRequest, NotFound, DependencyFailure
from src.core.models import Found, Missing, Quote, RenderInput
from src.agents.email_sender import build_quote_email, make_sender
from src.agents.logo_fetch import LogoFetcher
from src.forms.proposal_pdf import build_proposal_pdf

log = logging.getLogger("continuate.delivery")

UNCONFIGURED_WARNING = "Mail delivery not configured."


def derive_links(quote: Quote, origin: str) -> Tuple[str, str]:
    """(accept_url, sla_url) for a quote under the given origin."""
    accept_url = f"{origin}/quote/{quote.public_id}/accept" if origin else ""
    if quote.sla_url:
        sla_url = quote.sla_url
    elif origin:
        sla_url = f"{origin}/sla/{quote.public_id}"
    else:
        sla_url = ""
    return accept_url, sla_url


class QuoteDeliveryService:
    """Runs the send-quote pipeline against injected collaborators."""

    def __init__(self, settings, store, identity_resolver,
                 renderer=build_proposal_pdf, sender=None, logo_fetcher=None):
        self.settings = settings
        self.store = store
        self.identity_resolver = identity_resolver
        self.renderer = renderer
        self._sender = sender
        self.logo_fetcher = logo_fetcher or LogoFetcher(timeout=settings.http_timeout)

    @property
    def sender(self):
        if self._sender is None:
            self._sender = make_sender(self.settings)
        return self._sender

    def deliver_quote(self, quote_id: Optional[str], dry_run: bool = False,
                      authorization: Optional[str] = None,
                      request_host: Optional[str] = None) -> dict:
        dry_run = bool(dry_run)

        # ── 1. Authorize ──────────────────────────────────────────────────────
        identity = require_admin(authorization, self.identity_resolver, self.store,
                                 admin_role=self.settings.admin_role)

        # ── 2. Load aggregate ─────────────────────────────────────────────────
        if isinstance(quote_id, str):
            quote_id = quote_id.strip()
        if not quote_id:
            raise InvalidRequest("quoteId is required")
        quote_id = str(quote_id)

        loaded = self.store.load_aggregate(quote_id)
        if isinstance(loaded, Missing):
            raise NotFound("Quote not found")
        if not isinstance(loaded, Found):
            raise DependencyFailure("Failed to load quote.")
        aggregate = loaded.value
        quote = aggregate.quote

        log.info("Delivering quote %s (%d items, dry_run=%s) for %s",
                 quote.public_id, len(aggregate.items), dry_run, identity.id,
                 extra={"quote_id": quote.public_id, "dry_run": dry_run})

        # ── 3. Derive links + logos ───────────────────────────────────────────
        origin = self.settings.origin_for(request_host)
        accept_url, sla_url = derive_links(quote, origin)
        logo_dark, logo_light = self.logo_fetcher.fetch_pair(origin)

        # ── 4. Render ─────────────────────────────────────────────────────────
        render_input = RenderInput(
            quote=quote,
            items=aggregate.items,
            accept_url=accept_url,
            sla_url=sla_url,
            logo_dark=logo_dark,
            logo_light=logo_light,
            brand_name=self.settings.brand_name,
        )
        try:
            pdf = self.renderer(render_input)
        except Exception:
            log.exception("PDF render failed for quote %s", quote.public_id)
            raise DependencyFailure("Failed to generate quote PDF.")
        if not pdf:
            raise DependencyFailure("Failed to generate quote PDF.")

        # ── 5. Delivery configured? ───────────────────────────────────────────
        if not self.settings.delivery_configured:
            log.warning("Quote %s rendered but not sent: %s",
                        quote.public_id, UNCONFIGURED_WARNING)
            return {"ok": True, "dryRun": dry_run, "warning": UNCONFIGURED_WARNING}

        if dry_run:
            log.info("Dry run for quote %s: %d byte PDF, nothing sent",
                     quote.public_id, len(pdf))
            return {"ok": True, "dryRun": True}

        # ── 6. Send ───────────────────────────────────────────────────────────
        message = build_quote_email(
            quote, accept_url, pdf,
            from_email=self.settings.mail_from_email,
            from_name=self.settings.mail_from_name,
            brand=self.settings.brand_name,
        )
        try:
            result = self.sender.send(message)
        except Exception:
            log.exception("Email dispatch failed for quote %s", quote.public_id)
            raise DependencyFailure("Failed to send quote email.")

        # ── 7. Mark Sent ──────────────────────────────────────────────────────
        try:
            sent_at = self.store.mark_sent(quote.id)
        except Exception:
            log.error("Quote %s was emailed to %s but its status was not updated",
                      quote.public_id, result.recipient, exc_info=True,
                      extra={"quote_id": quote.public_id})
            raise DependencyFailure("Quote was emailed but its status could not be updated.")

        log.info("Quote %s sent to %s via %s at %s", quote.public_id,
                 result.recipient, result.provider, sent_at,
                 extra={"quote_id": quote.public_id, "dry_run": False})
        return {"ok": True, "dryRun": False}
