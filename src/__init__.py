"""
Continuate Quotes — proposal delivery service

Packages:
    api/        Flask routes (send-quote, health)
    forms/      Proposal PDF rendering
    agents/     Delivery pipeline and outbound integrations (email, logos)
    core/       Settings, auth gate, SQLite store, models and errors
"""
