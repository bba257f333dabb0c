"""
Shared fixtures: invoice documents, an in-memory settings collection and an
API client wired to it.
"""

import copy
import io
import base64

import pytest
from PIL import Image

from proforma.assets.pdf.document import InvoiceDocument
from proforma.data.sample_invoice import SAMPLE_INVOICE


class FakeCollection:
    """Just enough of a motor collection for SettingsStore"""

    def __init__(self):
        self.docs = {}

    async def find_one(self, query, projection=None):
        doc = self.docs.get(query["account_id"])
        return copy.deepcopy(doc) if doc else None

    async def update_one(self, query, update, upsert=False):
        key = query["account_id"]
        if key not in self.docs and not upsert:
            return
        doc = self.docs.setdefault(key, {})
        doc.update(copy.deepcopy(update["$set"]))


def png_data_uri(color=(200, 30, 30), size=(8, 8)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()


def make_items(count: int, rate: str = "1180.00") -> list:
    return [
        {
            "sl_no": i,
            "description": f"TEST ITEM {i}",
            "brand": "TEST",
            "quantity": 1,
            "rate": rate,
            "tax_percent": 18,
        }
        for i in range(1, count + 1)
    ]


def document_with(**overrides) -> InvoiceDocument:
    data = copy.deepcopy(SAMPLE_INVOICE)
    data.update(overrides)
    return InvoiceDocument.model_validate(data)


@pytest.fixture
def make_document():
    return document_with


@pytest.fixture
def png_uri():
    return png_data_uri


@pytest.fixture
def sample_doc():
    return document_with()


@pytest.fixture
def full_doc():
    """Sample invoice with every optional customer field filled in"""
    customer = dict(SAMPLE_INVOICE["customer"])
    customer.update({
        "phone": "9876543210",
        "email": "purchase@adityainfotech.example",
        "shipping_address": "Plot 12, SIPCOT Industrial Park, Chennai - 602105",
    })
    return document_with(customer=customer)


@pytest.fixture
def empty_doc():
    """No line items, zero totals"""
    return document_with(
        items=[],
        totals={"subtotal": "0", "grand_total": "0"},
        total_quantity=0,
        amount_in_words=None,
    )


@pytest.fixture
def long_doc():
    """Enough rows to run past one A4 page"""
    items = make_items(45)
    return document_with(
        items=items,
        totals={
            "subtotal": "45000.00",
            "tax_rate": 18,
            "tax_amount": "8100.00",
            "grand_total": "53100.00",
        },
        total_quantity=45,
        amount_in_words=None,
    )


@pytest.fixture
def settings_collection():
    return FakeCollection()


@pytest.fixture
def api_client(settings_collection):
    from fastapi.testclient import TestClient

    from proforma.assets.pdf.pdfEngine import PdfExportPipeline
    from proforma.server import app, get_export_pipeline, get_settings_store
    from proforma.settings_store import SettingsStore

    pipeline = PdfExportPipeline(scale=1.0, preload_timeout=5)
    app.dependency_overrides[get_settings_store] = lambda: SettingsStore(settings_collection)
    app.dependency_overrides[get_export_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()
