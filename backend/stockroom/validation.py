"""
Payload validation for inventory mutations.

Every validator either returns a frozen, normalized input object or raises
ValidationError carrying one message per problem found. Validation never
touches the database: it runs before tenant data is read.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .errors import ValidationError


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Forms send "none" for "no warehouse selected"
NO_WAREHOUSE = "none"

MAX_IMPORT_ROWS = 1000


@dataclass(frozen=True)
class LineInput:
    product_id: int
    warehouse_id: int
    quantity: int
    unit_price_cents: int


@dataclass(frozen=True)
class SaleInput:
    customer_id: int
    notes: Optional[str]
    items: tuple[LineInput, ...]


@dataclass(frozen=True)
class PurchaseOrderInput:
    supplier_id: Optional[int]
    notes: Optional[str]
    items: tuple[LineInput, ...]


@dataclass(frozen=True)
class PurchaseItemUpdateInput:
    quantity: int
    unit_price_cents: int
    warehouse_id: Optional[int]


@dataclass(frozen=True)
class MovementInput:
    product_id: int
    from_warehouse_id: Optional[int]
    to_warehouse_id: Optional[int]
    quantity: int
    notes: Optional[str]


@dataclass(frozen=True)
class ProductInput:
    name: str
    barcode: str
    category_id: int
    cost_price_cents: int
    selling_price_cents: int


@dataclass(frozen=True)
class WarehouseInput:
    name: str
    location: Optional[str]
    is_shared: bool


@dataclass(frozen=True)
class StockImportRow:
    product_id: Optional[int]
    barcode: Optional[str]
    warehouse_id: int
    quantity: int


@dataclass(frozen=True)
class PartyInput:
    name: str
    phone: Optional[str]
    location: Optional[str]


class _Errors:
    def __init__(self):
        self.messages: list[str] = []

    def add(self, message: str) -> None:
        self.messages.append(message)

    def raise_if_any(self) -> None:
        if self.messages:
            raise ValidationError(details=self.messages)


def _require_mapping(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _coerce_int(value: Any, field: str, errors: _Errors) -> Optional[int]:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped and "e" not in stripped.lower() and "." not in stripped:
            try:
                return int(stripped)
            except ValueError:
                pass
    errors.add(f"{field} must be an integer")
    return None


def _required_int(payload: dict, field: str, errors: _Errors, *, label: str | None = None) -> Optional[int]:
    raw = payload.get(field)
    if raw is None or raw == "":
        errors.add(f"{label or field} is required")
        return None
    return _coerce_int(raw, field, errors)


def _positive_int(payload: dict, field: str, errors: _Errors) -> Optional[int]:
    value = _required_int(payload, field, errors)
    if value is not None and value <= 0:
        errors.add(f"{field} must be positive")
        return None
    return value


def _price(payload: dict, field: str, errors: _Errors) -> Optional[int]:
    value = _positive_int(payload, field, errors)
    if value is not None and value > MAX_PRICE_CENTS:
        errors.add(f"{field} cannot exceed {MAX_PRICE_CENTS}")
        return None
    return value


def _text(payload: dict, field: str, errors: _Errors, *, min_len: int = 0, max_len: int | None = None,
          required: bool = False, label: str | None = None) -> Optional[str]:
    raw = payload.get(field)
    if raw is None:
        if required:
            errors.add(f"{label or field} is required")
        return None
    value = str(raw).strip()
    if required and not value:
        errors.add(f"{label or field} is required")
        return None
    if value and len(value) < min_len:
        errors.add(f"{label or field} must be at least {min_len} characters")
    if max_len is not None and len(value) > max_len:
        errors.add(f"{label or field} exceeds max length {max_len}")
    return value or None


def normalize_warehouse_ref(value: Any) -> Any:
    """Map the "no warehouse" sentinel (and blanks) to a true absence."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", NO_WAREHOUSE):
        return None
    return value


def _lines(payload: dict, errors: _Errors) -> tuple[LineInput, ...]:
    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("At least one item is required")
        return ()

    lines = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            errors.add(f"Item {index} is invalid")
            continue
        item_errors = _Errors()
        product_id = _required_int(raw, "product_id", item_errors, label="Product")
        warehouse_id = _required_int(raw, "warehouse_id", item_errors, label="Warehouse")
        quantity = _positive_int(raw, "quantity", item_errors)
        unit_price = _price(raw, "unit_price_cents", item_errors)
        if item_errors.messages:
            errors.messages.extend(f"Item {index}: {m}" for m in item_errors.messages)
            continue
        lines.append(LineInput(product_id, warehouse_id, quantity, unit_price))
    return tuple(lines)


def validate_sale(payload: Any) -> SaleInput:
    payload = _require_mapping(payload)
    errors = _Errors()
    customer_id = _required_int(payload, "customer_id", errors, label="Customer")
    notes = _text(payload, "notes", errors)
    items = _lines(payload, errors)
    errors.raise_if_any()
    return SaleInput(customer_id=customer_id, notes=notes, items=items)


def validate_purchase_order(payload: Any) -> PurchaseOrderInput:
    payload = _require_mapping(payload)
    errors = _Errors()
    supplier_id = None
    if payload.get("supplier_id") not in (None, ""):
        supplier_id = _coerce_int(payload["supplier_id"], "supplier_id", errors)
    notes = _text(payload, "notes", errors)
    items = _lines(payload, errors)
    errors.raise_if_any()
    return PurchaseOrderInput(supplier_id=supplier_id, notes=notes, items=items)


def validate_purchase_item_update(payload: Any) -> PurchaseItemUpdateInput:
    payload = _require_mapping(payload)
    errors = _Errors()
    quantity = _positive_int(payload, "quantity", errors)
    unit_price = _price(payload, "unit_price_cents", errors)
    warehouse_id = None
    if payload.get("warehouse_id") not in (None, ""):
        warehouse_id = _coerce_int(payload["warehouse_id"], "warehouse_id", errors)
    errors.raise_if_any()
    return PurchaseItemUpdateInput(quantity=quantity, unit_price_cents=unit_price, warehouse_id=warehouse_id)


def validate_stock_movement(payload: Any) -> MovementInput:
    payload = _require_mapping(payload)
    errors = _Errors()
    product_id = _required_int(payload, "product_id", errors, label="Product")
    quantity = _positive_int(payload, "quantity", errors)
    notes = _text(payload, "notes", errors)

    from_raw = normalize_warehouse_ref(payload.get("from_warehouse_id"))
    to_raw = normalize_warehouse_ref(payload.get("to_warehouse_id"))
    from_id = _coerce_int(from_raw, "from_warehouse_id", errors) if from_raw is not None else None
    to_id = _coerce_int(to_raw, "to_warehouse_id", errors) if to_raw is not None else None

    if from_raw is None and to_raw is None:
        errors.add("Either source or destination warehouse must be specified")
    elif from_id is not None and from_id == to_id:
        errors.add("Source and destination warehouses must be different")

    errors.raise_if_any()
    return MovementInput(
        product_id=product_id,
        from_warehouse_id=from_id,
        to_warehouse_id=to_id,
        quantity=quantity,
        notes=notes,
    )


def validate_stock_level(quantity: Any) -> int:
    errors = _Errors()
    value = _coerce_int(quantity, "quantity", errors) if quantity is not None else None
    if quantity is None:
        errors.add("quantity is required")
    elif value is not None and value < 0:
        errors.add("Quantity cannot be negative.")
    errors.raise_if_any()
    return value


def validate_stock_level_payload(payload: Any) -> int:
    """{"quantity": int >= 0} -> quantity."""
    payload = _require_mapping(payload)
    return validate_stock_level(payload.get("quantity"))


def validate_stock_import(payload: Any) -> list[dict]:
    """
    Container check for a bulk stock import.

    Accepts a list of rows or {"rows": [...]}. Rows themselves are validated one
    by one (validate_stock_import_row) so a bad row never rejects the others.
    """
    if isinstance(payload, dict):
        payload = payload.get("rows")
    if not isinstance(payload, list) or not payload:
        raise ValidationError("Invalid JSON payload", details=["At least one stock row is required"])
    if len(payload) > MAX_IMPORT_ROWS:
        raise ValidationError("Invalid JSON payload", details=[f"Cannot import more than {MAX_IMPORT_ROWS} rows at once"])
    return payload


def validate_stock_import_row(raw: Any) -> StockImportRow:
    if not isinstance(raw, dict):
        raise ValidationError(details=["Row is invalid"])
    errors = _Errors()
    product_raw = raw.get("product_id")
    product_id = None
    if product_raw not in (None, ""):
        product_id = _coerce_int(product_raw, "product_id", errors)
    barcode = _text(raw, "barcode", errors, max_len=64)
    if product_raw in (None, "") and barcode is None:
        errors.add("product_id or barcode is required")
    warehouse_id = _required_int(raw, "warehouse_id", errors, label="Warehouse")
    quantity = raw.get("quantity")
    if quantity is None:
        errors.add("quantity is required")
    else:
        quantity = _coerce_int(quantity, "quantity", errors)
        if quantity is not None and quantity < 0:
            errors.add("Quantity cannot be negative.")
    errors.raise_if_any()
    return StockImportRow(product_id=product_id, barcode=barcode, warehouse_id=warehouse_id, quantity=quantity)


def validate_product(payload: Any) -> ProductInput:
    payload = _require_mapping(payload)
    errors = _Errors()
    name = _text(payload, "name", errors, min_len=3, max_len=255, required=True, label="Product name")
    barcode = _text(payload, "barcode", errors, min_len=5, max_len=64, required=True, label="Barcode")
    category_id = _required_int(payload, "category_id", errors, label="Category")
    cost = _price(payload, "cost_price_cents", errors)
    selling = _price(payload, "selling_price_cents", errors)
    if cost is not None and selling is not None and selling < cost:
        errors.add("Selling price cannot be less than cost price")
    errors.raise_if_any()
    return ProductInput(name, barcode, category_id, cost, selling)


def validate_category(payload: Any) -> str:
    payload = _require_mapping(payload)
    errors = _Errors()
    name = _text(payload, "name", errors, max_len=100, required=True, label="Category name")
    errors.raise_if_any()
    return name


def validate_warehouse(payload: Any) -> WarehouseInput:
    payload = _require_mapping(payload)
    errors = _Errors()
    name = _text(payload, "name", errors, max_len=100, required=True, label="Warehouse name")
    location = _text(payload, "location", errors, max_len=255)
    is_shared = bool(payload.get("is_shared", False))
    errors.raise_if_any()
    return WarehouseInput(name=name, location=location, is_shared=is_shared)


def validate_party(payload: Any) -> PartyInput:
    """Customers and suppliers share one shape."""
    payload = _require_mapping(payload)
    errors = _Errors()
    name = _text(payload, "name", errors, min_len=3, max_len=200, required=True, label="Name")
    phone = _text(payload, "phone", errors, max_len=64)
    location = _text(payload, "location", errors, max_len=255)
    errors.raise_if_any()
    return PartyInput(name=name, phone=phone, location=location)
