"""Delivery pipeline and outbound integrations.

Modules:
    quote_delivery  — Authorize → load → render → email → mark Sent
    email_sender    — Proposal email over Mailjet or SMTP
    logo_fetch      — Best-effort brand logo download
"""
