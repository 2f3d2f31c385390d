# Overview: Pytest coverage for cart compatibility rules.

from storefront.domain import CartLineItem
from storefront.services.compatibility_service import check_compatibility, check_voltage_partition

from fakes import edge


def line(product_id, quantity=1, voltage=None):
    return CartLineItem(product_id=product_id, quantity=quantity, voltage=voltage)


# =============================================================================
# VOLTAGE PARTITION
# =============================================================================

class TestVoltagePartition:

    def test_single_voltage_class_passes(self):
        result = check_compatibility([line("a", voltage="5v"), line("b", voltage="5v")], [])
        assert result.valid
        assert result.errors == []

    def test_untagged_items_ignored(self):
        assert check_voltage_partition([line("a", voltage="24v"), line("b"), line("c")]) is None

    def test_mixed_classes_yield_one_error(self):
        items = [line("a", voltage="5v"), line("b", voltage="24v"), line("c", voltage="5v")]
        result = check_compatibility(items, [])

        mismatches = [e for e in result.errors if e.type == "voltage_mismatch"]
        assert len(mismatches) == 1
        assert "5v and 24v" in mismatches[0].message

    def test_unknown_tags_compared_as_strings(self):
        issue = check_voltage_partition([line("a", voltage="12v"), line("b", voltage="5v")])
        assert issue is not None
        assert "12v" in issue.message

    def test_three_classes_still_one_error(self):
        items = [line("a", voltage="5v"), line("b", voltage="24v"), line("c", voltage="12v")]
        result = check_compatibility(items, [])
        assert [e.type for e in result.errors] == ["voltage_mismatch"]

    def test_voltage_match_edges_add_nothing_extra(self):
        items = [line("a", voltage="5v"), line("b", voltage="24v")]
        result = check_compatibility(items, [edge("a", "b", "voltage_match")])
        assert len(result.errors) == 1


# =============================================================================
# DEPENDENCIES
# =============================================================================

class TestDependencies:

    def test_missing_requirement_is_warning(self):
        result = check_compatibility(
            [line("controller")],
            [edge("controller", "power-supply", "requires", "Needs a power supply")],
        )
        assert result.valid
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.type == "missing_component"
        assert warning.message == "Needs a power supply"
        assert warning.suggested_product_id == "power-supply"

    def test_requirement_satisfied_removes_warning(self):
        edges = [edge("controller", "power-supply", "requires")]
        before = check_compatibility([line("controller")], edges)
        after = check_compatibility([line("controller"), line("power-supply")], edges)

        assert len(before.warnings) == 1
        assert after.warnings == []

    def test_default_message_names_dependency(self):
        result = check_compatibility([line("a")], [edge("a", "b", "requires")])
        assert "b" in result.warnings[0].message

    def test_requires_before_suggests(self):
        edges = [edge("a", "cable", "suggests"), edge("a", "psu", "requires")]
        result = check_compatibility([line("a")], edges)
        assert [w.type for w in result.warnings] == ["missing_component", "suggested_product"]

    def test_suggestion_warning(self):
        result = check_compatibility([line("a")], [edge("a", "case", "suggests")])
        assert result.warnings[0].type == "suggested_product"
        assert result.warnings[0].suggested_product_id == "case"

    def test_duplicate_edges_and_quantities_deduplicated(self):
        edges = [edge("a", "b", "requires"), edge("a", "b", "requires")]
        result = check_compatibility([line("a", quantity=5), line("a", quantity=2)], edges)
        assert len(result.warnings) == 1

    def test_edges_for_products_outside_cart_ignored(self):
        result = check_compatibility([line("a")], [edge("z", "b", "requires")])
        assert result.warnings == []

    def test_incompatible_pair_blocks(self):
        result = check_compatibility([line("a"), line("b")], [edge("a", "b", "incompatible")])
        assert not result.valid
        assert [e.type for e in result.errors] == ["incompatible"]

    def test_incompatible_reported_once_per_pair(self):
        edges = [edge("a", "b", "incompatible"), edge("b", "a", "incompatible")]
        result = check_compatibility([line("a"), line("b")], edges)
        assert len(result.errors) == 1

    def test_incompatible_needs_both_endpoints(self):
        result = check_compatibility([line("a")], [edge("a", "b", "incompatible")])
        assert result.valid

    def test_voltage_checked_before_dependencies(self):
        items = [line("a", voltage="5v"), line("b", voltage="24v")]
        result = check_compatibility(items, [edge("a", "b", "incompatible")])
        assert [e.type for e in result.errors] == ["voltage_mismatch", "incompatible"]

    def test_empty_cart(self):
        result = check_compatibility([], [edge("a", "b", "requires")])
        assert result.to_dict() == {"valid": True, "errors": [], "warnings": []}
