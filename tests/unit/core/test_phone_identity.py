# ============================================================================
# Tests for PhoneNumberNormalizer
# ============================================================================
"""Unit tests for phone identity resolution.

The same physical number typed in different formats must resolve to the same
canonical key and intersecting variant sets.
"""

import pytest

from app.core.shared import PhoneNumberNormalizer


@pytest.fixture
def resolver() -> PhoneNumberNormalizer:
    return PhoneNumberNormalizer()


class TestNormalize:
    """Tests for canonical key normalization."""

    @pytest.mark.parametrize(
        "raw",
        [
            "11987654321",
            "5511987654321",
            "5511987654321@c.us",
            "(11) 98765-4321",
            "+55 11 98765-4321",
            "011987654321",
            "987654321",
        ],
    )
    def test_formats_collapse_to_one_key(self, resolver: PhoneNumberNormalizer, raw: str) -> None:
        """Should map every supported format to the same key."""
        assert resolver.normalize(raw) == "5511987654321"

    def test_eight_digit_local_number_gets_mobile_prefix(self, resolver: PhoneNumberNormalizer) -> None:
        """Should insert the mobile digit and the default area code."""
        assert resolver.normalize("87654321") == "5511987654321"

    def test_numeric_cell_value(self, resolver: PhoneNumberNormalizer) -> None:
        """Should accept numbers read from the spreadsheet as ints."""
        assert resolver.normalize(11987654321) == "5511987654321"

    @pytest.mark.parametrize("raw", ["", None, "abc", "@c.us"])
    def test_unresolvable_input(self, resolver: PhoneNumberNormalizer, raw) -> None:
        """Should return an empty key when there are no digits."""
        assert resolver.normalize(raw) == ""


class TestVariants:
    """Tests for variant generation and matching."""

    def test_variants_include_key_and_short_forms(self, resolver: PhoneNumberNormalizer) -> None:
        variants = resolver.variants("5511987654321")
        assert {"5511987654321", "11987654321", "987654321", "1187654321", "87654321"} <= variants

    def test_old_eight_digit_registration_matches_sender(self, resolver: PhoneNumberNormalizer) -> None:
        """A row typed before the mobile 9 was added still matches the sender."""
        assert resolver.matches("5511987654321@c.us", "1187654321")

    def test_different_numbers_do_not_match(self, resolver: PhoneNumberNormalizer) -> None:
        assert not resolver.matches("5511987654321", "5511912345678")

    def test_empty_never_matches(self, resolver: PhoneNumberNormalizer) -> None:
        assert resolver.variants(None) == set()
        assert not resolver.matches("", "5511987654321")

    def test_short_fragments_are_dropped(self, resolver: PhoneNumberNormalizer) -> None:
        """Variants shorter than eight digits would match unrelated numbers."""
        assert all(len(v) >= 8 for v in resolver.variants("11987654321"))


class TestFormatting:
    def test_format_for_whatsapp(self, resolver: PhoneNumberNormalizer) -> None:
        assert resolver.format_for_whatsapp("(11) 98765-4321") == "5511987654321"

    def test_format_for_display(self, resolver: PhoneNumberNormalizer) -> None:
        assert resolver.format_for_display("11987654321") == "+55 (11) 98765-4321"

    def test_custom_locale(self) -> None:
        """Country and area settings come from configuration."""
        resolver = PhoneNumberNormalizer(country_code="54", default_area_code="264")
        assert resolver.normalize("5492641234567").startswith("54")
