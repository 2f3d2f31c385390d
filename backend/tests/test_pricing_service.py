import unittest
from dataclasses import replace

from storefront.services.pricing_service import (
    PricingError,
    get_deposit_amount,
    get_display_price,
)

from fakes import product, variant


class DisplayPriceTests(unittest.TestCase):
    def setUp(self):
        self.product = product(
            "synth",
            base_price_cents=100000,
            wholesale_price_cents=75000,
            presale_deposit_price_cents=25000,
            sell_status="pre-sale",
        )
        self.variant = variant(
            "synth-black",
            "synth",
            price_modifier_cents=2000,
            wholesale_price_modifier_cents=1500,
            presale_deposit_modifier_cents=5000,
        )

    def _with_status(self, status, **overrides):
        return replace(self.product, sell_status=status, **overrides)

    def test_pre_sale_has_no_display_price(self):
        self.assertIsNone(get_display_price(self.product))
        self.assertIsNone(get_display_price(self.product, has_paid_deposit=True))

    def test_pre_order_without_deposit_is_base(self):
        price = get_display_price(self._with_status("pre-order"))
        self.assertEqual(price.price_cents, 100000)
        self.assertEqual(price.type, "base")

    def test_pre_order_with_deposit_is_wholesale(self):
        price = get_display_price(self._with_status("pre-order"), has_paid_deposit=True)
        self.assertEqual(price.to_dict(), {"price_cents": 75000, "type": "wholesale"})

    def test_pre_order_wholesale_includes_variant_modifier(self):
        price = get_display_price(self._with_status("pre-order"), self.variant, True)
        self.assertEqual(price.price_cents, 76500)

    def test_pre_order_without_wholesale_falls_back_to_base(self):
        p = self._with_status("pre-order", wholesale_price_cents=None)
        price = get_display_price(p, self.variant, True)
        self.assertEqual((price.price_cents, price.type), (102000, "base"))

    def test_other_statuses_show_base_price(self):
        for status in ("for-sale", "sold-out", "internal"):
            price = get_display_price(self._with_status(status), self.variant, True)
            self.assertEqual((price.price_cents, price.type), (102000, "base"), status)

    def test_variant_must_belong_to_product(self):
        with self.assertRaises(PricingError):
            get_display_price(self._with_status("for-sale"), variant("other", "not-synth"))


class DepositAmountTests(unittest.TestCase):
    def test_deposit_with_variant_modifier(self):
        p = product("synth", sell_status="pre-sale", presale_deposit_price_cents=25000)
        v = variant("synth-black", "synth", presale_deposit_modifier_cents=5000)
        self.assertEqual(get_deposit_amount(p, v), 30000)
        self.assertEqual(get_deposit_amount(p), 25000)

    def test_no_deposit_outside_pre_sale(self):
        p = product("synth", sell_status="pre-order", presale_deposit_price_cents=25000)
        self.assertIsNone(get_deposit_amount(p))

    def test_no_deposit_without_deposit_price(self):
        p = product("synth", sell_status="pre-sale")
        self.assertIsNone(get_deposit_amount(p))


if __name__ == "__main__":
    unittest.main()
