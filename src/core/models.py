"""
src/core/models.py — Quote aggregate and request-scoped values

Rows come out of SQLite as sqlite3.Row; from_row() turns them into frozen
dataclasses so nothing downstream of the loader can mutate the aggregate.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

STATUS_DRAFT = "Draft"
STATUS_SENT = "Sent"


@dataclass(frozen=True)
class Quote:
    id: int
    public_id: str
    name: str
    customer: str
    contact_email: str
    contact_name: Optional[str] = None
    status: str = STATUS_DRAFT
    sla_url: Optional[str] = None
    sent_at: Optional[str] = None
    created_at: Optional[str] = None
    valid_until: Optional[str] = None
    currency: str = "USD"
    notes: Optional[str] = None

    @property
    def greeting_name(self) -> str:
        """contact_name, falling back to the customer name."""
        return self.contact_name or self.customer

    @classmethod
    def from_row(cls, row) -> "Quote":
        d = dict(row)
        return cls(
            id=d["id"],
            public_id=d["public_id"],
            name=d.get("name") or "",
            customer=d.get("customer") or "",
            contact_email=d.get("contact_email") or "",
            contact_name=d.get("contact_name"),
            status=d.get("status") or STATUS_DRAFT,
            sla_url=d.get("sla_url"),
            sent_at=d.get("sent_at"),
            created_at=d.get("created_at"),
            valid_until=d.get("valid_until"),
            currency=d.get("currency") or "USD",
            notes=d.get("notes"),
        )


@dataclass(frozen=True)
class LineItem:
    id: int
    quote_id: int
    description: str
    quantity: float = 1
    unit_price: float = 0.0
    unit: str = "ea"
    sort_order: int = 0

    @property
    def total(self) -> float:
        return round(float(self.quantity or 0) * float(self.unit_price or 0), 2)

    @classmethod
    def from_row(cls, row) -> "LineItem":
        d = dict(row)
        return cls(
            id=d["id"],
            quote_id=d["quote_id"],
            description=d.get("description") or "",
            quantity=d.get("quantity") if d.get("quantity") is not None else 1,
            unit_price=d.get("unit_price") or 0.0,
            unit=d.get("unit") or "ea",
            sort_order=d.get("sort_order") or 0,
        )


@dataclass(frozen=True)
class Identity:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class QuoteAggregate:
    quote: Quote
    items: Tuple[LineItem, ...] = ()

    @property
    def subtotal(self) -> float:
        return round(sum(it.total for it in self.items), 2)


@dataclass(frozen=True)
class RenderInput:
    quote: Quote
    items: Tuple[LineItem, ...]
    accept_url: str = ""
    sla_url: str = ""
    logo_dark: Optional[bytes] = field(default=None, repr=False)
    logo_light: Optional[bytes] = field(default=None, repr=False)
    brand_name: str = "Continuate"


@dataclass(frozen=True)
class DeliveryResult:
    provider: str
    recipient: str
    message_id: Optional[str] = None


# ── Store lookup results ──────────────────────────────────────────────────────
# Expected absence is a value, not an exception.

@dataclass(frozen=True)
class Found:
    value: object


@dataclass(frozen=True)
class Missing:
    reason: str = ""


@dataclass(frozen=True)
class StoreFailure:
    error: Exception
