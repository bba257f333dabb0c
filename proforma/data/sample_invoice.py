"""Sample invoice shown in the template editor preview when no document is supplied."""

from proforma.assets.pdf.document import InvoiceDocument

SAMPLE_INVOICE = {
    "invoice_no": "769",
    "date": "1-Oct-25",
    "e_way_bill_no": "",
    "supplier_invoice_no": "TX1253324312",
    "supplier_invoice_date": "27-Sep-25",
    "other_references": "",
    "company": {
        "name": "NEW GLOBAL COMPUTERS (2025-26)",
        "address": [
            "#30 to 34, K.E. Plaza, Opp : Zilla Parishad,",
            "Kurnool - 518001,",
        ],
        "phone": [
            "Sales : 9581444014",
            "Accounts : 9581444001",
            "Service : 9581444017",
        ],
        "gstin": "37AAHFN7970M1ZH",
        "state": "Andhra Pradesh",
        "state_code": "37",
        "email": "globalcomputers.new@gmail.com",
        "website": "www.globalshopee.com",
    },
    "customer": {
        "name": "ADITYA INFOTECH LIMITED",
        "address": "V.No : 62, Village Durainallur, Taluk Ponneri, District Tiruvallur, Chennai - 601206",
        "gstin": "33AABCA1601R1ZW",
        "state": "Tamil Nadu",
        "state_code": "33",
    },
    "items": [
        {
            "sl_no": 1,
            "description": "CP PLUS ILLUMAX DOME CAMERA CP-URC-DC24PL3C-L",
            "brand": "CP PLUS",
            "serial_numbers": ["4WWB", "4QXF", "ETPP", "77GV", "QFGY", "XYXR", "8JQ9", "YRSE", "DVRY", "UCU4"],
            "quantity": 60,
            "unit": "NOS",
            "rate": "1060.00",
            "tax_percent": 18,
            "discount_percent": 11,
        },
        {
            "sl_no": 2,
            "description": "CP PLUS ILLUMAX BULLET CAMERA CP-URC-TC24P3C-L",
            "brand": "CP PLUS",
            "serial_numbers": ["1NVXYYUYSI3BZJ2N", "2CD2", "26TP4UQKI9Y3LCS3", "ZHJC", "FGK3"],
            "quantity": 160,
            "unit": "NOS",
            "rate": "1120.00",
            "tax_percent": 18,
            "discount_percent": 11,
        },
        {
            "sl_no": 3,
            "description": "CP PLUS DOME COLOUR 2.4MP CP-GPC-DA24PL2C-SE-V2",
            "brand": "CP PLUS",
            "quantity": 60,
            "unit": "NOS",
            "rate": "1340.00",
            "tax_percent": 18,
            "discount_percent": 13,
        },
        {
            "sl_no": 4,
            "description": "CP PLUS BULLET COLOUR 2.4MP CP-GPC-TA24PL2C-SE-V2",
            "brand": "CP PLUS",
            "quantity": 60,
            "unit": "NOS",
            "rate": "1400.00",
            "tax_percent": 18,
            "discount_percent": 13,
        },
    ],
    "totals": {
        "subtotal": "359120.00",
        "discount": "12586.15",
        "discount_percent": 18,
        "tax_rate": 18,
        "tax_amount": "62376.09",
        "round_off": "0.06",
        "grand_total": "408910.00",
    },
    "total_quantity": 340,
    "amount_in_words": "INR Four Lakh Eight Thousand Nine Hundred Ten Only",
}


def sample_document() -> InvoiceDocument:
    return InvoiceDocument.model_validate(SAMPLE_INVOICE)
