# tests/core/vault/test_keys.py
"""Tests for private key parsing and derivation."""

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

ECDSA_KEY = "11" * 32
ED25519_KEY = "33" * 32


def _der_hex(key: ec.EllipticCurvePrivateKey | ed25519.Ed25519PrivateKey) -> str:
    return key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).hex()


class TestParsePrivateKey:
    """Raw hex and DER PKCS#8 are both accepted."""

    def test_raw_ecdsa(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, raw_private_key_hex

        key = parse_private_key(ECDSA_KEY, KeyAlgorithm.ECDSA)

        assert isinstance(key, ec.EllipticCurvePrivateKey)
        assert raw_private_key_hex(key) == ECDSA_KEY

    def test_0x_prefix_and_whitespace(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, raw_private_key_hex

        key = parse_private_key(f"  0x{ECDSA_KEY.upper()}\n", KeyAlgorithm.ECDSA)

        assert raw_private_key_hex(key) == ECDSA_KEY

    def test_raw_ed25519(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, raw_private_key_hex

        key = parse_private_key(ED25519_KEY, KeyAlgorithm.ED25519)

        assert isinstance(key, ed25519.Ed25519PrivateKey)
        assert raw_private_key_hex(key) == ED25519_KEY

    def test_der_ecdsa(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, public_key_hex

        original = ec.generate_private_key(ec.SECP256K1())
        parsed = parse_private_key(_der_hex(original), KeyAlgorithm.ECDSA)

        assert public_key_hex(parsed) == public_key_hex(original)

    def test_der_ed25519(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, public_key_hex

        original = ed25519.Ed25519PrivateKey.generate()
        parsed = parse_private_key(_der_hex(original), KeyAlgorithm.ED25519)

        assert public_key_hex(parsed) == public_key_hex(original)

    def test_der_algorithm_mismatch(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.contracts.errors import InvalidKeyError
        from keyward.core.vault.keys import parse_private_key

        der = _der_hex(ed25519.Ed25519PrivateKey.generate())

        with pytest.raises(InvalidKeyError, match="does not match"):
            parse_private_key(der, KeyAlgorithm.ECDSA)

    def test_der_wrong_curve(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.contracts.errors import InvalidKeyError
        from keyward.core.vault.keys import parse_private_key

        der = _der_hex(ec.generate_private_key(ec.SECP256R1()))

        with pytest.raises(InvalidKeyError, match="curve"):
            parse_private_key(der, KeyAlgorithm.ECDSA)

    @pytest.mark.parametrize("secret", ["not-hex", "abc", "abcd", ""])
    def test_garbage_rejected(self, secret: str) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.contracts.errors import InvalidKeyError
        from keyward.core.vault.keys import parse_private_key

        with pytest.raises(InvalidKeyError):
            parse_private_key(secret, KeyAlgorithm.ECDSA)

    def test_zero_scalar_rejected(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.contracts.errors import InvalidKeyError
        from keyward.core.vault.keys import parse_private_key

        with pytest.raises(InvalidKeyError):
            parse_private_key("00" * 32, KeyAlgorithm.ECDSA)


class TestPublicKeys:
    def test_ecdsa_public_key_is_compressed(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, public_key_hex

        public = public_key_hex(parse_private_key(ECDSA_KEY, KeyAlgorithm.ECDSA))

        assert len(public) == 66
        assert public[:2] in ("02", "03")

    def test_ed25519_public_key_is_raw(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, public_key_hex

        public = public_key_hex(parse_private_key(ED25519_KEY, KeyAlgorithm.ED25519))

        assert len(public) == 64

    @pytest.mark.parametrize("algorithm", ["ecdsa", "ed25519"])
    def test_generated_keys_parse(self, algorithm: str) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import generate_private_key, parse_private_key, raw_private_key_hex

        secret = generate_private_key(KeyAlgorithm(algorithm))

        assert raw_private_key_hex(parse_private_key(secret, KeyAlgorithm(algorithm))) == secret


class TestSignMessage:
    def test_ecdsa_signature_verifies(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, sign_message

        key = parse_private_key(ECDSA_KEY, KeyAlgorithm.ECDSA)
        signature = sign_message(key, b"payload")

        key.public_key().verify(signature, b"payload", ec.ECDSA(hashes.SHA256()))

    def test_ed25519_signature_verifies(self) -> None:
        from keyward.contracts.enums import KeyAlgorithm
        from keyward.core.vault.keys import parse_private_key, sign_message

        key = parse_private_key(ED25519_KEY, KeyAlgorithm.ED25519)
        signature = sign_message(key, b"payload")

        key.public_key().verify(signature, b"payload")
