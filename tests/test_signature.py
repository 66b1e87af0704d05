"""Razorpay checkout signature."""

from skillhub.payments.signature import compute_razorpay_signature, verify_razorpay_signature

SECRET = "test_secret"
EXPECTED = "6c343620f1910da483982cf25b9dc33d709afdd25930f08964ef60b65aefa831"


class TestSignature:
    """HMAC-SHA256 over "<order_id>|<payment_id>"."""

    def test_known_vector(self):
        assert compute_razorpay_signature(SECRET, "order_123", "pay_456") == EXPECTED

    def test_valid_signature_accepted(self):
        assert verify_razorpay_signature(SECRET, "order_123", "pay_456", EXPECTED) is True

    def test_other_order_rejected(self):
        """A signature is bound to its order id."""
        assert verify_razorpay_signature(SECRET, "order_124", "pay_456", EXPECTED) is False

    def test_other_payment_rejected(self):
        """A signature is bound to its payment id."""
        assert verify_razorpay_signature(SECRET, "order_123", "pay_457", EXPECTED) is False

    def test_other_secret_rejected(self):
        assert verify_razorpay_signature("another_secret", "order_123", "pay_456", EXPECTED) is False

    def test_comparison_is_case_sensitive(self):
        assert verify_razorpay_signature(SECRET, "order_123", "pay_456", EXPECTED.upper()) is False

    def test_empty_signature_rejected(self):
        assert verify_razorpay_signature(SECRET, "order_123", "pay_456", "") is False
