"""
Unit tests for CartItem, Product and UserReward helpers
"""
from datetime import timedelta
from decimal import Decimal

from storefront.domain.product import Product
from storefront.domain.reward import RewardStatus, UserReward


class TestCartItem:

    def test_line_total(self, make_item):
        assert make_item(price=120, quantity=3).line_total == Decimal('360')

    def test_to_dict_reports_stock(self, make_item):
        data = make_item(price=100, quantity=5, stock=4).to_dict()

        assert data["in_stock"] is False
        assert data["unit_price"] == 100.0
        assert data["line_total"] == 500.0

    def test_variant_stock_used_when_present(self, make_item):
        item = make_item(variant_price=200, stock=7)
        assert item.available_stock == 7
        assert item.to_dict()["variant_name"] == "M"


class TestProduct:

    def test_sale_price(self):
        product = Product(id="p1", name="Mug", base_price=Decimal('500'), discount_price=Decimal('400'),
                          stock_quantity=0)

        assert product.effective_price == Decimal('400')
        assert product.is_on_sale is True
        assert product.is_out_of_stock is True

    def test_zero_discount_is_not_a_sale(self):
        product = Product(id="p1", name="Mug", base_price=Decimal('500'), discount_price=Decimal('0'),
                          stock_quantity=3)

        assert product.effective_price == Decimal('500')
        assert product.is_on_sale is False
        assert product.to_dict()["effective_price"] == 500.0


class TestUserReward:

    def _reward(self, now, **overrides):
        data = {"id": "r1", "user_id": "user-1", "code": "LUCKY10", "expires_at": now + timedelta(days=7)}
        data.update(overrides)
        return UserReward(**data)

    def test_active_until_expiry(self, now):
        assert self._reward(now).status(now) == RewardStatus.ACTIVE

    def test_expired(self, now):
        reward = self._reward(now, expires_at=now - timedelta(seconds=1))
        assert reward.status(now) == RewardStatus.EXPIRED

    def test_used_wins_over_expired(self, now):
        reward = self._reward(now, expires_at=now - timedelta(days=1), is_used=True)
        assert reward.to_dict(now)["status"] == "used"

    def test_naive_expiry_treated_as_utc(self, now):
        reward = self._reward(now, expires_at=(now + timedelta(hours=1)).replace(tzinfo=None))
        assert reward.status(now) == RewardStatus.ACTIVE
