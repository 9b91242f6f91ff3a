# pod_sync/routes/setup_metafields.py
# One-off: declare the order metafields we write so they show up typed in
# the Shopify admin. Safe to call again; existing definitions report EXISTS.
from flask import Blueprint, current_app

from ..config import POD_NAMESPACE
from ..services.linkage import SUPPLIER_ORDER_ID_KEY, SHIPPING_COST_KEY, SHIPPING_CURRENCY_KEY
from ..utils.logger import info, warn

bp = Blueprint("setup_metafields", __name__)

# key -> (admin name, type, description)
ORDER_METAFIELDS = {
    SUPPLIER_ORDER_ID_KEY: ("POD: Printoteca Order ID", "single_line_text_field", "Linked Printoteca order"),
    SHIPPING_COST_KEY:     ("POD: Shipping Cost", "number_decimal", "Printoteca shipping charge"),
    SHIPPING_CURRENCY_KEY: ("POD: Shipping Currency", "single_line_text_field", "Currency of the shipping charge"),
}

DEFINITION_CREATE = """
mutation metafieldDefinitionCreate($definition: MetafieldDefinitionInput!) {
  metafieldDefinitionCreate(definition: $definition) {
    createdDefinition { id namespace key }
    userErrors { field message code }
  }
}
"""

_DUPLICATE_HINTS = ("already been taken", "already exists")


def definition_input(key: str) -> dict:
    name, type_, description = ORDER_METAFIELDS[key]
    return {
        "name": name,
        "namespace": POD_NAMESPACE,
        "key": key,
        "type": type_,
        "description": description,
        "ownerType": "ORDER",
    }


def classify_response(resp) -> str:
    """Collapse a metafieldDefinitionCreate response into OK <id> / EXISTS / ERR <detail>."""
    resp = resp or {}
    if resp.get("errors"):
        return f"ERR {resp['errors']}"
    block = (resp.get("data") or {}).get("metafieldDefinitionCreate") or {}
    created = block.get("createdDefinition")
    if created:
        return f"OK {created.get('id')}"
    messages = [e.get("message", "") for e in (block.get("userErrors") or [])]
    if not messages:
        return f"ERR unexpected response {resp}"
    joined = "; ".join(messages)
    if any(h in joined.lower() for h in _DUPLICATE_HINTS):
        return "EXISTS"
    return f"ERR {joined}"


def create_defs(storefront) -> str:
    out = []
    for key in ORDER_METAFIELDS:
        label = f"{POD_NAMESPACE}.{key}"
        try:
            outcome = classify_response(storefront.graphql(DEFINITION_CREATE, {"definition": definition_input(key)}))
        except Exception as e:
            outcome = f"EXC {e}"
        (info if outcome.startswith(("OK", "EXISTS")) else warn)(f"[setup] {label}: {outcome}")
        out.append(f"{label}: {outcome}")
    return " ; ".join(out)


@bp.get("/create")
def create():
    svc = current_app.extensions["pod_sync"]
    return create_defs(svc.storefront), 200
