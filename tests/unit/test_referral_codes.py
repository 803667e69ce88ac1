"""
Unit tests for referral code generation.
"""

from app.config.business_constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
)
from app.services.user.registration import generate_referral_code


class TestGenerateReferralCode:
    """Test random referral codes."""

    def test_default_length_and_alphabet(self):
        """Codes use the configured length and upper-case alphanumerics."""
        code = generate_referral_code()
        assert len(code) == REFERRAL_CODE_LENGTH
        assert set(code) <= set(REFERRAL_CODE_ALPHABET)

    def test_custom_length(self):
        """Length can be overridden."""
        assert len(generate_referral_code(12)) == 12

    def test_codes_vary(self):
        """Consecutive codes are not constant."""
        codes = {generate_referral_code() for _ in range(50)}
        assert len(codes) > 1
