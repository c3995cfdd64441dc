import hashlib
import hmac

from wabot_flow.utils.signature_utils import compute_hub_signature, verify_hub_signature

BODY = b'{"object":"whatsapp_business_account","entry":[]}'


def test_signature_matches_hmac_sha256_of_body():
    expected = hmac.new(b"secret", BODY, hashlib.sha256).hexdigest()

    assert compute_hub_signature(BODY, "secret") == f"sha256={expected}"


def test_valid_signature_is_accepted():
    assert verify_hub_signature(BODY, "secret", compute_hub_signature(BODY, "secret"))


def test_tampered_body_is_rejected():
    signature = compute_hub_signature(BODY, "secret")

    assert not verify_hub_signature(BODY + b" ", "secret", signature)


def test_missing_or_malformed_values_are_rejected():
    signature = compute_hub_signature(BODY, "secret")

    assert not verify_hub_signature(BODY, "", signature)
    assert not verify_hub_signature(BODY, "secret", None)
    assert not verify_hub_signature(BODY, "secret", signature.replace("sha256=", "sha1="))


def test_non_ascii_signature_is_rejected():
    assert not verify_hub_signature(BODY, "secret", "sha256=\xe9\xe9")
