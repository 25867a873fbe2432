# Overview: Pytest coverage for the pure stock-status rules.

import pytest

from bizledger.services.status_service import (
    ALERT_LOW_STOCK,
    ALERT_OUT_OF_STOCK,
    STATUS_DISCONTINUED,
    STATUS_IN_STOCK,
    STATUS_LOW_STOCK,
    STATUS_ON_ORDER,
    STATUS_OUT_OF_STOCK,
    STOCK_LEVELS,
    alert_kind_for_transition,
    derive_status,
    derive_stock_level,
)


class TestDeriveStockLevel:

    @pytest.mark.parametrize("quantity,minimum,expected", [
        (0, 5, STATUS_OUT_OF_STOCK),
        (1, 5, STATUS_LOW_STOCK),
        (5, 5, STATUS_LOW_STOCK),
        (6, 5, STATUS_IN_STOCK),
        (0, 0, STATUS_OUT_OF_STOCK),
        (1, 0, STATUS_IN_STOCK),
    ])
    def test_thresholds(self, quantity, minimum, expected):
        assert derive_stock_level(quantity, minimum) == expected

    def test_negative_quantity_is_out_of_stock(self):
        assert derive_stock_level(-1, 5) == STATUS_OUT_OF_STOCK


class TestDeriveStatus:

    @pytest.mark.parametrize("sticky", [STATUS_ON_ORDER, STATUS_DISCONTINUED])
    @pytest.mark.parametrize("quantity", [0, 3, 100])
    def test_sticky_statuses_survive_any_quantity(self, sticky, quantity):
        assert derive_status(sticky, quantity, 5) == sticky

    def test_derived_statuses_follow_quantity(self):
        assert derive_status(STATUS_IN_STOCK, 4, 5) == STATUS_LOW_STOCK
        assert derive_status(STATUS_LOW_STOCK, 0, 5) == STATUS_OUT_OF_STOCK
        assert derive_status(STATUS_OUT_OF_STOCK, 20, 5) == STATUS_IN_STOCK
        assert derive_status(None, 20, 5) == STATUS_IN_STOCK

    def test_status_is_a_fixed_point(self):
        """Re-deriving a derived status from the same inputs changes nothing."""
        for quantity in range(0, 15):
            for minimum in range(0, 8):
                status = derive_status(None, quantity, minimum)
                assert status in STOCK_LEVELS
                assert derive_status(status, quantity, minimum) == status


class TestAlertKindForTransition:

    def test_into_low_stock(self):
        assert alert_kind_for_transition(STATUS_IN_STOCK, STATUS_LOW_STOCK) == ALERT_LOW_STOCK

    def test_into_out_of_stock(self):
        assert alert_kind_for_transition(STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK) == ALERT_OUT_OF_STOCK

    def test_skipping_low_stock_yields_single_out_of_stock(self):
        assert alert_kind_for_transition(STATUS_IN_STOCK, STATUS_OUT_OF_STOCK) == ALERT_OUT_OF_STOCK

    @pytest.mark.parametrize("old,new", [
        (STATUS_LOW_STOCK, STATUS_LOW_STOCK),
        (STATUS_OUT_OF_STOCK, STATUS_OUT_OF_STOCK),
        (STATUS_OUT_OF_STOCK, STATUS_LOW_STOCK),
        (STATUS_LOW_STOCK, STATUS_IN_STOCK),
        (STATUS_ON_ORDER, STATUS_ON_ORDER),
    ])
    def test_no_alert(self, old, new):
        assert alert_kind_for_transition(old, new) is None
