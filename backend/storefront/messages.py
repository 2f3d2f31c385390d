# Overview: Customer-facing message templates for cart validation issues.

CART_VALIDATION_MESSAGES = {
    "product_unavailable": "{product_name} is no longer available",
    "product_sold_out": "{product_name} is sold out",
    "insufficient_stock": "Only {available_quantity} units of {product_name} remaining",
    "low_stock": "Only {available_quantity} units of {product_name} remaining",
    "voltage_mismatch": (
        "Your cart mixes {voltages} components. "
        "Components from different voltage systems cannot be connected."
    ),
    "incompatible": "{product_id} cannot be combined with {other_product_id}",
    "missing_component": "This product requires {other_product_id}",
    "suggested_product": "Consider adding {other_product_id}",
}


def render(key: str, **values) -> str:
    return CART_VALIDATION_MESSAGES[key].format(**values)
