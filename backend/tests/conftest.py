"""
Pytest fixtures for wholesale backend tests.

Provides the app on in-memory SQLite, per-test table wipe, seeded users
with auth headers, a small catalog and a fake insights gateway.
"""

import pytest

from wholesale import create_app
from wholesale.extensions import db
from wholesale.models import Dispensary, ProductBatch, ProductTemplate, User
from wholesale.models.auth import ROLE_ADMINISTRATOR, ROLE_SALES_REPRESENTATIVE
from wholesale.services.auth_service import hash_password
from wholesale.services.llm_gateway import InsightsGateway

PASSWORD = "Password123!"


class FakeInsightsGateway(InsightsGateway):
    """Records calls and returns whatever the test put in *_result."""

    def __init__(self):
        self.sales_calls = []
        self.business_calls = []
        self.sales_result = None
        self.business_result = None

    def answer_sales_question(self, question, sales_data):
        self.sales_calls.append((question, list(sales_data)))
        return self.sales_result

    def analyze_business(self, snapshot, focus=None):
        self.business_calls.append((snapshot, focus))
        return self.business_result


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'OPENAI_API_KEY': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash for every seeded user (hashing is slow on purpose)."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def fake_gateway(app):
    gateway = FakeInsightsGateway()
    previous = app.extensions.get("insights_gateway")
    app.extensions["insights_gateway"] = gateway
    yield gateway
    app.extensions["insights_gateway"] = previous


def _make_user(session, username, role, password_hash, **extra):
    user = User(username=username, role=role, password_hash=password_hash, **extra)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return _make_user(db_session, "admin", ROLE_ADMINISTRATOR, password_hash, email="admin@wholesale.local")


@pytest.fixture(scope='function')
def rep_user(db_session, password_hash):
    return _make_user(db_session, "salesrep1", ROLE_SALES_REPRESENTATIVE, password_hash)


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def rep_headers(client, rep_user):
    return auth_headers(get_auth_token(client, rep_user.username))


@pytest.fixture(scope='function')
def dispensary(db_session):
    disp = Dispensary(
        id="disp001",
        name="Green Leaf Wellness",
        license_number="D12345",
        contact_person="Sarah Miller",
        contact_email="sarah@glwellness.com",
    )
    db_session.add(disp)
    db_session.commit()
    return disp


@pytest.fixture(scope='function')
def catalog(db_session):
    """
    Two templates:
    - prod001 flower: batch001 (stock 10, $8.00), batch002 (stock 3, $7.50)
    - prod002 edibles: batch003 (stock 100, $1.50), batch004 inactive
    """
    db_session.add_all([
        ProductTemplate(
            id="prod001", name="Green Crack Flower", strain_type="Sativa",
            product_category="Flower", unit_of_measure="Grams", supplier="CannaGrow Farms",
        ),
        ProductTemplate(
            id="prod002", name="CBD Gummies (10mg)", strain_type="CBD",
            product_category="Edibles", unit_of_measure="Each", supplier="SweetRelief Edibles",
        ),
    ])
    db_session.flush()
    db_session.add_all([
        ProductBatch(
            id="batch001", template_id="prod001", metrc_package_id="PKG00012345A",
            thc_percentage=20.0, cbd_percentage=0.5, wholesale_price_cents=800,
            current_stock_quantity=10,
        ),
        ProductBatch(
            id="batch002", template_id="prod001", metrc_package_id="PKG00012345B",
            thc_percentage=24.0, cbd_percentage=1.5, wholesale_price_cents=750,
            current_stock_quantity=3,
        ),
        ProductBatch(
            id="batch003", template_id="prod002", metrc_package_id="PKG00012345C",
            thc_percentage=0.2, cbd_percentage=10.0, wholesale_price_cents=150,
            current_stock_quantity=100,
        ),
        ProductBatch(
            id="batch004", template_id="prod002", metrc_package_id="PKG00012345D",
            thc_percentage=0.3, cbd_percentage=12.0, wholesale_price_cents=175,
            current_stock_quantity=40, is_active=False,
        ),
    ])
    db_session.commit()
    return {"templates": ["prod001", "prod002"], "batches": ["batch001", "batch002", "batch003", "batch004"]}
