"""
Pricing Service
Prices a cart: bundle groups, subtotal, shipping, coupon discount and total

Every function here is pure: it works on CartItem / Coupon models already
loaded from the database, so the cart page quote and the amount charged at
checkout come from the same code.

Rules:
- Lines with a bundle are grouped per bundle; the rest are standalone
- Bundle group total (items total = sum of member line totals,
  bundle quantity = quantity of the group's first line):
    fixed                -> items total
    percentage_discount  -> items total * (1 - value / 100), floored at 0
    fixed_discount       -> max(0, items total - value * bundle quantity)
- Shipping is the flat fee unless subtotal >= threshold or the coupon
  is free_shipping
- Restricted coupons only discount matching standalone lines
- Total = max(0, subtotal + shipping - discount), rounded half-up to a
  whole currency unit
"""
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from storefront.domain.cart import Bundle, BundlePriceType, CartItem
from storefront.domain.coupon import Coupon, DiscountType
from storefront.domain.pricing import BundleGroupQuote, PriceQuote, ShippingSettings


ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENT = Decimal('0.01')


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_total(value: Decimal) -> Decimal:
    """Round half-up to a whole currency unit"""
    return value.quantize(Decimal('1'), rounding=ROUND_HALF_UP)


def group_items(items: List[CartItem]) -> Tuple[List[CartItem], "OrderedDict[str, List[CartItem]]"]:
    """
    Split cart lines into standalone lines and bundle groups

    Returns:
        (standalone lines, {bundle_id: member lines} in cart order)
    """
    standalone: List[CartItem] = []
    groups: "OrderedDict[str, List[CartItem]]" = OrderedDict()

    for item in items:
        if item.bundle is None:
            standalone.append(item)
        else:
            groups.setdefault(item.bundle.id, []).append(item)

    return standalone, groups


def bundle_group_total(bundle: Bundle, lines: List[CartItem]) -> Decimal:
    """Price of one bundle group"""
    items_total = sum((line.line_total for line in lines), ZERO)
    bundle_qty = lines[0].quantity if lines else 1

    if bundle.price_type == BundlePriceType.PERCENTAGE_DISCOUNT:
        total = items_total * (1 - bundle.price_value / HUNDRED)
    elif bundle.price_type == BundlePriceType.FIXED_DISCOUNT:
        total = items_total - bundle.price_value * bundle_qty
    else:
        total = items_total

    return _money(max(ZERO, total))


def compute_subtotal(items: List[CartItem]) -> Tuple[Decimal, List[BundleGroupQuote]]:
    standalone, groups = group_items(items)

    subtotal = sum((item.line_total for item in standalone), ZERO)
    bundle_quotes = []

    for bundle_id, lines in groups.items():
        bundle = lines[0].bundle
        group_total = bundle_group_total(bundle, lines)
        subtotal += group_total
        bundle_quotes.append(BundleGroupQuote(
            bundle_id=bundle_id,
            bundle_name=bundle.name,
            items_total=sum((line.line_total for line in lines), ZERO),
            bundle_quantity=lines[0].quantity,
            group_total=group_total,
        ))

    return _money(subtotal), bundle_quotes


def compute_shipping(subtotal: Decimal, shipping: ShippingSettings, coupon: Optional[Coupon] = None) -> Decimal:
    if coupon is not None and coupon.discount_type == DiscountType.FREE_SHIPPING:
        return ZERO
    if subtotal >= shipping.free_shipping_threshold:
        return ZERO
    return shipping.shipping_cost


def compute_eligible_amount(items: List[CartItem], subtotal: Decimal, coupon: Optional[Coupon]) -> Decimal:
    """
    Amount the coupon discount applies to

    Restricted coupons count only matching standalone lines; bundled
    lines are already discounted by their bundle.
    """
    if coupon is None or not coupon.is_restricted:
        return subtotal

    standalone, _ = group_items(items)
    eligible = sum(
        (item.line_total for item in standalone
         if coupon.matches_product(item.product.id, item.product.category_id)),
        ZERO,
    )
    return _money(eligible)


def compute_discount(coupon: Optional[Coupon], eligible: Decimal) -> Decimal:
    if coupon is None or eligible <= 0:
        return ZERO

    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = eligible * coupon.discount_value / HUNDRED
        if coupon.max_discount_amount:
            discount = min(discount, coupon.max_discount_amount)
        return _money(discount)

    if coupon.discount_type == DiscountType.FIXED:
        return _money(min(coupon.discount_value, eligible))

    # free_shipping waives shipping instead
    return ZERO


def free_shipping_progress(subtotal: Decimal, threshold: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Returns:
        (amount still needed for free shipping, progress percent 0-100)
    """
    amount_to_free = max(threshold - subtotal, ZERO)
    if threshold <= 0:
        return amount_to_free, HUNDRED
    progress = min(subtotal / threshold * HUNDRED, HUNDRED)
    return _money(amount_to_free), _money(progress)


def quote(items: List[CartItem], shipping: ShippingSettings, coupon: Optional[Coupon] = None) -> PriceQuote:
    """
    Price a cart

    Args:
        items: cart lines with product / variant / bundle data
        shipping: shipping fee and free shipping threshold in force
        coupon: coupon already checked for eligibility, or None

    Returns:
        PriceQuote
    """
    subtotal, bundle_quotes = compute_subtotal(items)
    shipping_amount = compute_shipping(subtotal, shipping, coupon)
    eligible = compute_eligible_amount(items, subtotal, coupon)
    discount = compute_discount(coupon, eligible)
    total = round_total(max(ZERO, subtotal + shipping_amount - discount))
    amount_to_free, progress = free_shipping_progress(subtotal, shipping.free_shipping_threshold)

    return PriceQuote(
        subtotal=subtotal,
        shipping=shipping_amount,
        eligible_amount=eligible,
        discount=discount,
        total=total,
        coupon_code=coupon.code if coupon else None,
        free_shipping_applied=shipping_amount == 0,
        amount_to_free_shipping=amount_to_free,
        free_shipping_progress=progress,
        item_count=sum(item.quantity for item in items),
        bundles=bundle_quotes,
    )
