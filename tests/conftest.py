"""Root conftest — app on an in-memory mongo, stub payment gateway, API helpers."""

import io
import itertools

import mongomock
import pytest

from app import create_app
from backend.errors import GatewayUnavailable
from backend.mongo import ensure_indexes, mongo
from backend.services.payment_gateway import RazorpayClient

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_secret"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class StubGateway(RazorpayClient):
    """Real signature logic, canned order/payment responses, no network."""

    def __init__(self):
        super().__init__("https://gateway.invalid/v1", KEY_ID, KEY_SECRET, max_retries=1, backoff=0)
        self.orders = []
        self.fail_fetch = False
        self._ids = itertools.count(1)

    def create_order(self, amount_minor, currency, receipt, notes):
        order = {
            "id": f"order_{next(self._ids):06d}",
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
            "status": "created",
        }
        self.orders.append(order)
        return order

    def fetch_payment(self, payment_id):
        if self.fail_fetch:
            raise GatewayUnavailable("Payment gateway not responding")
        return {
            "id": payment_id,
            "amount": 6000000,
            "currency": "INR",
            "status": "captured",
            "method": "upi",
            "created_at": 1700000000,
            "description": "Grain purchase",
        }


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "MONGO_URI": "",
        "JWT_SECRET_KEY": "test-jwt-secret",
        "BCRYPT_LOG_ROUNDS": 4,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "RAZORPAY_KEY_ID": KEY_ID,
        "RAZORPAY_KEY_SECRET": KEY_SECRET,
    })
    mongo.db = mongomock.MongoClient().grain_marketplace_test
    ensure_indexes(mongo.db)
    app.extensions["payment_gateway"] = StubGateway()
    yield app
    mongo.db = None


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return mongo.db


@pytest.fixture
def gateway(app):
    return app.extensions["payment_gateway"]


class Api:
    """Thin wrappers over the HTTP surface used to set up scenarios."""

    def __init__(self, client):
        self.client = client
        self._n = itertools.count(1)

    @staticmethod
    def h(token):
        return {"Authorization": f"Bearer {token}"}

    def register(self, role="farmer", **overrides):
        n = next(self._n)
        payload = {
            "name": f"{role.title()} {n}",
            "email": f"{role}{n}@example.com",
            "password": "secret123",
            "phone": "+91 98765 43210",
            "role": role,
        }
        if role == "farmer":
            payload["address"] = "Village Road, Nashik"
        else:
            payload.update(officeName="Agro Traders", officeAddress="Market Yard, Pune", gstNumber="27ABCDE1234F1Z5")
        payload.update(overrides)

        res = self.client.post("/auth/register", json=payload)
        assert res.status_code == 201, res.get_json()
        body = res.get_json()
        return body["token"], body["user"]

    def listing(self, token, quantity=100, price=2000, **overrides):
        form = {
            "grainType": "Wheat",
            "quantity": str(quantity),
            "pricePerQuintal": str(price),
            "quality": "Premium",
            "description": "Sun dried sharbati wheat, cleaned and graded",
            "location": "Nashik, Maharashtra",
            "harvestDate": "2024-03-15",
            "moistureContent": "11.5",
            "organicCertified": "true",
        }
        form.update(overrides)
        form["sampleImages"] = (io.BytesIO(PNG_BYTES), "sample.png", "image/png")

        res = self.client.post("/grains", data=form, headers=self.h(token), content_type="multipart/form-data")
        assert res.status_code == 201, res.get_json()
        return res.get_json()["grain"]

    def deal(self, token, grain_id, quantity=30, price=2000):
        res = self.client.post(
            "/deals",
            json={"grainId": grain_id, "quantity": quantity, "agreedPrice": price},
            headers=self.h(token),
        )
        assert res.status_code == 201, res.get_json()
        return res.get_json()["deal"]

    def set_status(self, token, deal_id, status, **extra):
        return self.client.put(f"/deals/{deal_id}/status", json=dict(extra, status=status), headers=self.h(token))

    def grain(self, grain_id):
        return self.client.get(f"/grains/{grain_id}").get_json()


@pytest.fixture
def api(client):
    return Api(client)


@pytest.fixture
def farmer(api):
    return api.register("farmer")


@pytest.fixture
def buyer(api):
    return api.register("buyer")
