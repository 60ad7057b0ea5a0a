"""
Shared pytest fixtures for the quote delivery test suite.

Every test gets its own SQLite file under tmp_path, seeded with quote Q-100,
an admin profile and a non-admin profile. Identity, email and logo
collaborators are in-memory fakes that record their calls.
"""
import os
import sys

import pytest

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from src.core.config import Settings
from src.core.db import QuoteStore
from src.core.models import Identity, DeliveryResult
from src.agents.email_sender import MailDeliveryError
from src.agents.quote_delivery import QuoteDeliveryService

ADMIN_TOKEN = "admin-token"
SALES_TOKEN = "sales-token"
ADMIN_USER = "user-admin-1"
SALES_USER = "user-sales-1"


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FakeResolver:
    """Token → Identity from a fixed table."""
    def __init__(self, tokens):
        self.tokens = dict(tokens)
        self.calls = []

    def resolve(self, token):
        self.calls.append(token)
        return self.tokens.get(token)


class FakeSender:
    provider = "fake"

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, msg):
        if self.fail:
            raise MailDeliveryError("provider down")
        self.sent.append(msg)
        return DeliveryResult(provider=self.provider, recipient=msg.to_email,
                              message_id=f"msg-{len(self.sent)}")


class FakeLogos:
    def __init__(self, dark=None, light=None):
        self.dark = dark
        self.light = light
        self.origins = []

    def fetch_pair(self, origin):
        self.origins.append(origin)
        return self.dark, self.light


class RecordingStore(QuoteStore):
    """QuoteStore that remembers which data-access methods were called."""
    def __init__(self, db_path):
        super().__init__(db_path)
        self.calls = []
        self.fail_mark_sent = False

    def find_quote(self, public_id):
        self.calls.append("find_quote")
        return super().find_quote(public_id)

    def list_items(self, quote_pk):
        self.calls.append("list_items")
        return super().list_items(quote_pk)

    def get_profile_role(self, auth_user_id):
        self.calls.append("get_profile_role")
        return super().get_profile_role(auth_user_id)

    def mark_sent(self, quote_pk, sent_at=None):
        self.calls.append("mark_sent")
        if self.fail_mark_sent:
            import sqlite3
            raise sqlite3.OperationalError("database is locked")
        return super().mark_sent(quote_pk, sent_at)

    def quote_row(self, public_id):
        with self.get_db() as conn:
            return dict(conn.execute("SELECT * FROM quotes WHERE public_id=?",
                                     (public_id,)).fetchone())


# ── Settings / store ──────────────────────────────────────────────────────────

@pytest.fixture
def settings(tmp_path):
    return Settings(
        db_path=str(tmp_path / "quotes.db"),
        data_dir=str(tmp_path),
        supabase_url="https://auth.example.test",
        supabase_key="service-key",
        app_base_url="https://quotes.example.com/",
        mail_provider="mailjet",
        mailjet_api_key="mj-key",
        mailjet_api_secret="mj-secret",
        mail_from_email="proposals@continuate.example",
        mail_from_name="Continuate IT Services",
        brand_name="Continuate",
        http_timeout=2.0,
    )


@pytest.fixture
def unconfigured_settings(settings):
    from dataclasses import replace
    return replace(settings, mailjet_api_key="", mailjet_api_secret="")


@pytest.fixture
def store(settings):
    s = RecordingStore(settings.db_path)
    s.init_db()
    return s


@pytest.fixture
def seeded_store(store):
    """Q-100 with three items, Q-200 with none, an admin and a sales profile."""
    pk = store.upsert_quote({
        "public_id": "Q-100",
        "name": "Managed IT Services",
        "customer": "Acme Dental Group",
        "contact_name": "Dana Reyes",
        "contact_email": "dana@acmedental.example",
        "status": "Draft",
        "valid_until": "2026-12-31",
        "notes": "Pricing assumes a 12 month term.",
    })
    store.add_item(pk, "Managed workstation support", quantity=25, unit_price=45.0, unit="seat", sort_order=1)
    store.add_item(pk, "Server monitoring and patching", quantity=2, unit_price=120.0, sort_order=2)
    store.add_item(pk, "Onboarding and documentation", quantity=1, unit_price=950.0, sort_order=3)
    store.upsert_quote({
        "public_id": "Q-200",
        "name": "Firewall Refresh",
        "customer": "Harbor Logistics",
        "contact_email": "it@harbor.example",
        "sla_url": "https://docs.example.com/sla/harbor",
    })
    store.upsert_profile(ADMIN_USER, "admin", "Ada Admin")
    store.upsert_profile(SALES_USER, "sales", "Sam Sales")
    store.calls.clear()
    return store


# ── Collaborators ─────────────────────────────────────────────────────────────

@pytest.fixture
def resolver():
    return FakeResolver({
        ADMIN_TOKEN: Identity(id=ADMIN_USER, email="ada@continuate.example"),
        SALES_TOKEN: Identity(id=SALES_USER, email="sam@continuate.example"),
        "orphan-token": Identity(id="user-without-profile"),
    })


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def logos():
    return FakeLogos()


@pytest.fixture
def render_calls():
    return []


@pytest.fixture
def renderer(render_calls):
    def _render(render_input):
        render_calls.append(render_input)
        return b"%PDF-1.4 fake proposal " + render_input.quote.public_id.encode()
    return _render


@pytest.fixture
def service(settings, seeded_store, resolver, sender, logos, renderer):
    return QuoteDeliveryService(settings, seeded_store, resolver,
                                renderer=renderer, sender=sender, logo_fetcher=logos)


# ── Flask test client ─────────────────────────────────────────────────────────

def bearer(token=ADMIN_TOKEN):
    return {"Authorization": f"Bearer {token}"}


class AuthenticatedClient:
    """Wraps Flask test client to add a bearer token to every request."""
    def __init__(self, client, headers):
        self._client = client
        self._headers = headers

    def get(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.get(*args, **kwargs)

    def post(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.post(*args, **kwargs)

    def put(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.put(*args, **kwargs)

    def delete(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.delete(*args, **kwargs)


@pytest.fixture
def app(service):
    from app import create_app
    flask_app = create_app(service=service)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    """Admin-authenticated Flask test client."""
    with app.test_client() as c:
        yield AuthenticatedClient(c, bearer(ADMIN_TOKEN))


@pytest.fixture
def anon_client(app):
    """Test client with no Authorization header."""
    with app.test_client() as c:
        yield c
