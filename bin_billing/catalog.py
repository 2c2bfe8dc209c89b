"""
Invoice template catalogue.

Each template lists the customer fields its layout prints and the footer
used on the invoice and in outgoing messages.
"""
from __future__ import annotations
from pydantic import BaseModel

from .models import CustomerType


class InvoiceTemplate(BaseModel):
    id: str
    name: str
    customer_type: CustomerType
    fields: list[str]
    footer: str


INVOICE_TEMPLATES: dict[str, InvoiceTemplate] = {
    "corporate": InvoiceTemplate(
        id="corporate",
        name="Corporate Template",
        customer_type=CustomerType.CORPORATE,
        fields=["company_name", "registration_number", "tax_id", "purchase_order"],
        footer="Thank you for your business partnership",
    ),
    "individual": InvoiceTemplate(
        id="individual",
        name="Individual Template",
        customer_type=CustomerType.INDIVIDUAL,
        fields=["full_name", "ic_number", "phone", "email"],
        footer="We appreciate your trust in our services",
    ),
    "government": InvoiceTemplate(
        id="government",
        name="Government Template",
        customer_type=CustomerType.GOVERNMENT,
        fields=["department", "officer_name", "reference_number", "budget_code"],
        footer="Serving the community with excellence",
    ),
}


def get_template(template_id: str) -> InvoiceTemplate | None:
    return INVOICE_TEMPLATES.get(template_id)


def template_for_customer(customer_type: CustomerType) -> InvoiceTemplate:
    """Pick the default template for a customer type."""
    for template in INVOICE_TEMPLATES.values():
        if template.customer_type == customer_type:
            return template
    return INVOICE_TEMPLATES["corporate"]
