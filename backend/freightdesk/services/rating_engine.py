"""
Rating engine - computes shipping charges from the rate tables.

Key business rules:
1. A route is rated from the single rate row matching origin + destination,
   scoped by the consignor's shipping plan (falling back to the default table)
2. Weight up to minimum_weight is charged the flat minimum_price
3. Every kg above minimum_weight adds additional_price_per_kg, no rounding
4. Discount is a percentage in [0, 100] taken off the computed price
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from freightdesk.models import Client, ShippingRate
from freightdesk.models.shipping_rate import normalize_location
from freightdesk.services.errors import ConsignorNotFoundError, InvalidDiscountError, RateNotFoundError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
GRAMS_PER_KG = Decimal("1000")

RateLookup = Callable[[str, str], Optional[ShippingRate]]


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def round_price(value) -> Decimal:
    amount = _to_decimal(value) or Decimal("0")
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_price(value) -> str:
    """Render a price as a fixed 2 decimal place string."""
    return str(round_price(value))


def split_weight(weight_kg) -> Tuple[int, int]:
    """
    Split a fractional kilogram weight into (whole kg, grams).

    3.757 -> (3, 757). A gram part that rounds to 1000 carries into the kg.
    """
    weight = _to_decimal(weight_kg)
    if weight is None or weight < 0:
        raise ValueError(f"Invalid weight: {weight_kg}")
    whole = weight.to_integral_value(rounding=ROUND_FLOOR)
    gram = ((weight - whole) * GRAMS_PER_KG).to_integral_value(rounding=ROUND_HALF_UP)
    if gram >= GRAMS_PER_KG:
        whole += 1
        gram -= GRAMS_PER_KG
    return int(whole), int(gram)


def combine_weight(kg, gram) -> Decimal:
    """Total weight in kg from stored whole kilograms and grams."""
    return (_to_decimal(kg) or Decimal("0")) + (_to_decimal(gram) or Decimal("0")) / GRAMS_PER_KG


def price_for_weight(rate: ShippingRate, weight_kg) -> Decimal:
    """
    Price a weight against one rate row.

    weight <= minimum_weight -> minimum_price
    otherwise                -> minimum_price + (weight - minimum_weight) * additional_price_per_kg
    """
    weight = _to_decimal(weight_kg)
    if weight is None or weight < 0:
        raise ValueError(f"Invalid weight: {weight_kg}")

    minimum_weight = _to_decimal(rate.minimum_weight) or Decimal("0")
    minimum_price = _to_decimal(rate.minimum_price) or Decimal("0")
    if weight <= minimum_weight:
        return minimum_price

    per_kg = _to_decimal(rate.additional_price_per_kg) or Decimal("0")
    return minimum_price + (weight - minimum_weight) * per_kg


def apply_discount(price: Decimal, discount_percent=0) -> Decimal:
    discount = _to_decimal(discount_percent if discount_percent is not None else 0)
    if discount is None or discount < 0 or discount > 100:
        raise InvalidDiscountError(f"Discount must be between 0 and 100, got {discount_percent}")
    return price * (Decimal("1") - discount / Decimal("100"))


def calculate_price(
    origin: str,
    destination: str,
    weight_kg,
    rate_lookup: RateLookup,
    discount_percent=0,
) -> Decimal:
    """
    Compute the final price of a shipment.

    Raises:
        RateNotFoundError: no rate row covers the route
        InvalidDiscountError: discount outside [0, 100]
    """
    origin_key = normalize_location(origin)
    destination_key = normalize_location(destination)
    rate = rate_lookup(origin_key, destination_key)
    if rate is None:
        logger.info("No shipping rate for %s -> %s", origin_key, destination_key)
        raise RateNotFoundError(origin_key, destination_key)
    return apply_discount(price_for_weight(rate, weight_kg), discount_percent)


def find_shipping_rate(
    db: Session,
    origin: str,
    destination: str,
    shipping_plan_id: Optional[int] = None,
) -> Optional[ShippingRate]:
    """
    Find the rate row for a route.

    A plan-specific row wins; the default (plan-less) row covers plans that
    do not price the route themselves.
    """
    query = db.query(ShippingRate).filter(
        ShippingRate.origin == normalize_location(origin),
        ShippingRate.destination == normalize_location(destination),
    )
    if shipping_plan_id is not None:
        rate = query.filter(ShippingRate.shipping_plan_id == shipping_plan_id).first()
        if rate:
            return rate
    return query.filter(ShippingRate.shipping_plan_id.is_(None)).first()


def db_rate_lookup(db: Session, shipping_plan_id: Optional[int] = None) -> RateLookup:
    """Bind a database session and plan into a rate lookup for calculate_price."""
    def lookup(origin: str, destination: str) -> Optional[ShippingRate]:
        return find_shipping_rate(db, origin, destination, shipping_plan_id)
    return lookup


def get_consignor(db: Session, consignor_id: int) -> Client:
    consignor = db.query(Client).filter(Client.id == consignor_id).first()
    if not consignor:
        raise ConsignorNotFoundError(consignor_id)
    return consignor


def calculate_price_for_client(
    db: Session,
    origin: str,
    destination: str,
    weight_kg,
    consignor_id: Optional[int] = None,
    discount_percent=0,
) -> Decimal:
    """Rate a shipment with the consignor's shipping plan, or the default table without one."""
    plan_id = None
    if consignor_id is not None:
        plan_id = get_consignor(db, consignor_id).shipping_plan_id
    return calculate_price(
        origin,
        destination,
        weight_kg,
        db_rate_lookup(db, plan_id),
        discount_percent,
    )
