"""
Unit tests for OrderRepository

These tests validate repository logic without requiring a database connection.
"""
import uuid
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

from storefront.core.errors import CouponError
from storefront.domain.order import Order, OrderItem, OrderStatus
from storefront.repositories.order_repository import (
    InventoryReservationError,
    OrderRepository,
    inventory_payload,
)


ORDER_ID = uuid.UUID('0b7c8d9e-0000-4000-8000-000000000001')


def _order_row(**overrides):
    row = {
        'id': ORDER_ID,
        'user_id': uuid.UUID('0b7c8d9e-0000-4000-8000-0000000000aa'),
        'order_number': 'ORD-1749988800000',
        'total_amount': Decimal('549.00'),
        'subtotal': Decimal('499.00'),
        'shipping_amount': Decimal('50.00'),
        'discount_amount': Decimal('0'),
        'coupon_code': None,
        'currency': 'INR',
        'shipping_address': {'address_line_1': '12 MG Road', 'city': 'Bengaluru', 'pincode': '560001'},
        'status': 'pending',
        'payment_status': 'pending',
        'razorpay_order_id': None,
        'razorpay_payment_id': None,
        'tracking_number': None,
        'created_at': datetime(2025, 6, 15, tzinfo=timezone.utc),
        'updated_at': None,
    }
    row.update(overrides)
    return row


def _item_row(**overrides):
    row = {
        'id': uuid.uuid4(),
        'order_id': ORDER_ID,
        'product_id': uuid.UUID('0b7c8d9e-0000-4000-8000-0000000000bb'),
        'variant_id': None,
        'quantity': 1,
        'price': Decimal('499.00'),
        'product_name': 'Classic Mug',
        'variant_name': None,
    }
    row.update(overrides)
    return row


def _lines():
    return [
        OrderItem(product_id='prod-1', quantity=2, price=Decimal('100')),
        OrderItem(product_id='prod-2', variant_id='var-9', quantity=1, price=Decimal('250')),
    ]


class TestInventoryPayload:

    def test_payload_lists_product_variant_and_quantity(self):
        assert inventory_payload(_lines()) == [
            {'product_id': 'prod-1', 'variant_id': None, 'quantity': 2},
            {'product_id': 'prod-2', 'variant_id': 'var-9', 'quantity': 1},
        ]


class TestOrderRepositoryReads:

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_attaches_items(self, mock_get_conn, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchone.return_value = _order_row()
        mock_cursor.fetchall.return_value = [_item_row(), _item_row(order_id=uuid.uuid4())]

        # Act
        order = OrderRepository().find_by_id(str(ORDER_ID))

        # Assert
        assert isinstance(order, Order)
        assert order.id == str(ORDER_ID)
        assert order.status == OrderStatus.PENDING
        assert len(order.items) == 1
        assert order.items[0].product_name == 'Classic Mug'
        assert mock_cursor.execute.call_count == 2
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_scoped_to_owner(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert OrderRepository().find_by_id('order-1', user_id='user-1') is None

        sql, params = mock_cursor.execute.call_args[0]
        assert "o.user_id = %s" in sql
        assert params == ['order-1', 'user-1']

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_all_returns_orders_and_total(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchone.return_value = {'total': 7}
        mock_cursor.fetchall.side_effect = [
            [_order_row(customer_email='asha@example.com')],
            [_item_row()],
        ]

        orders, total = OrderRepository().find_all(status='pending', search='asha', limit=5)

        assert total == 7
        assert orders[0].customer_email == 'asha@example.com'
        count_sql, count_params = mock_cursor.execute.call_args_list[0][0]
        assert "o.status = %s" in count_sql
        assert count_params == ['pending', '%asha%', '%asha%']

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_by_user_without_orders_skips_item_query(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchall.return_value = []

        assert OrderRepository().find_by_user('user-1') == []
        mock_cursor.execute.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_count_pending_since(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchone.return_value = {'total': 3}
        since = datetime(2025, 6, 15, 11, 45, tzinfo=timezone.utc)

        assert OrderRepository().count_pending_since('user-1', since) == 3
        assert mock_cursor.execute.call_args[0][1] == ('user-1', 'pending', since)


class TestOrderRepositoryWrites:

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_create_pending_reserves_then_inserts(self, mock_get_conn, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchone.side_effect = [
            _order_row(coupon_code='SAVE10'),
            {'id': uuid.UUID('0b7c8d9e-0000-4000-8000-0000000000c1')},
            {'id': uuid.UUID('0b7c8d9e-0000-4000-8000-0000000000c2')},
        ]
        coupons = MagicMock()
        coupons.increment_usage.return_value = True
        order_data = {
            'user_id': 'user-1', 'order_number': 'ORD-1749988800000', 'total_amount': Decimal('549'),
            'coupon_code': 'SAVE10', 'shipping_address': {'pincode': '560001'},
        }

        # Act
        order = OrderRepository().create_pending(order_data, _lines(), coupon_repository=coupons)

        # Assert
        reserve_sql, reserve_params = mock_cursor.execute.call_args_list[0][0]
        assert "reserve_inventory" in reserve_sql
        assert reserve_params[0].adapted == inventory_payload(_lines())

        insert_params = mock_cursor.execute.call_args_list[1][0][1]
        assert insert_params[-2:] == ('pending', 'pending')

        assert [item.id for item in order.items] == [
            '0b7c8d9e-0000-4000-8000-0000000000c1',
            '0b7c8d9e-0000-4000-8000-0000000000c2',
        ]
        assert order.items[0].order_id == str(ORDER_ID)
        coupons.increment_usage.assert_called_once_with(mock_cursor, 'SAVE10')
        mock_conn.commit.assert_called_once()
        mock_conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_create_pending_rolls_back_when_coupon_used_up(self, mock_get_conn, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.fetchone.side_effect = [
            _order_row(coupon_code='ONCE'),
            {'id': uuid.UUID('0b7c8d9e-0000-4000-8000-0000000000c1')},
            {'id': uuid.UUID('0b7c8d9e-0000-4000-8000-0000000000c2')},
        ]
        coupons = MagicMock()
        coupons.increment_usage.return_value = False
        order_data = {
            'user_id': 'user-1', 'order_number': 'ORD-1749988800000', 'total_amount': Decimal('449'),
            'coupon_code': 'ONCE', 'shipping_address': {'pincode': '560001'},
        }

        # Act / Assert
        with pytest.raises(CouponError) as exc_info:
            OrderRepository().create_pending(order_data, _lines(), coupon_repository=coupons)

        assert exc_info.value.code == "coupon.usage_limit_reached"
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_create_pending_out_of_stock(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.execute.side_effect = Exception("Insufficient stock for product prod-1")

        with pytest.raises(InventoryReservationError, match="Insufficient stock"):
            OrderRepository().create_pending({'user_id': 'user-1', 'order_number': 'ORD-1',
                                              'total_amount': Decimal('100')}, _lines())

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_release_inventory_propagates_errors(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.execute.side_effect = Exception("db down")

        with pytest.raises(Exception, match="db down"):
            OrderRepository().release_inventory(_lines())

        mock_conn.rollback.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_mark_cancelled_only_from_pending(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.rowcount = 0

        assert OrderRepository().mark_cancelled('order-1') is False
        assert mock_cursor.execute.call_args[0][1] == ('cancelled', 'failed', 'order-1', 'pending')

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_mark_paid_scoped_to_owner(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.rowcount = 1

        assert OrderRepository().mark_paid('order-1', 'user-1', 'pay_1') is True
        assert mock_cursor.execute.call_args[0][1] == ('order_created', 'success', 'pay_1', 'order-1', 'user-1')

    def test_update_transactions_requires_a_key(self):
        with pytest.raises(ValueError):
            OrderRepository().update_transactions('failed')

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_update_transactions_by_gateway_order(self, mock_get_conn, mock_db):
        _, mock_cursor = mock_db(mock_get_conn)
        mock_cursor.rowcount = 1

        updated = OrderRepository().update_transactions(
            'success', razorpay_order_id='order_RZP123', razorpay_payment_id='pay_1', razorpay_signature='sig'
        )

        sql, params = mock_cursor.execute.call_args[0]
        assert updated == 1
        assert "WHERE razorpay_order_id = %s" in sql
        assert params == ['success', 'pay_1', 'sig', 'order_RZP123']
