"""PDF generation.

Key exports:
    build_proposal_pdf()  — Render a quote aggregate into proposal PDF bytes
"""
