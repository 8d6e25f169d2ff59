"""Key material handling for the vault.

Private keys are exchanged as hex strings: either the raw 32-byte scalar
(optionally 0x-prefixed) or a DER-encoded PKCS#8 document. Public keys are
returned in their raw ledger form: compressed SEC1 point for ECDSA
secp256k1, raw 32 bytes for Ed25519.

Nothing in this module persists anything; the vault decides where the
material lives.
"""

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from keyward.contracts.enums import KeyAlgorithm
from keyward.contracts.errors import InvalidKeyError

PrivateKey = ec.EllipticCurvePrivateKey | ed25519.Ed25519PrivateKey

_RAW_KEY_BYTES = 32


def _decode_hex(secret: str) -> bytes:
    text = secret.strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise InvalidKeyError("Private key must be hex encoded") from None


def parse_private_key(secret: str, algorithm: KeyAlgorithm) -> PrivateKey:
    """Parse a hex private key for the given algorithm.

    Raises:
        InvalidKeyError: If the material is malformed or does not match algorithm
    """
    raw = _decode_hex(secret)

    if len(raw) != _RAW_KEY_BYTES:
        try:
            key = serialization.load_der_private_key(raw, password=None)
        except (ValueError, TypeError) as e:
            raise InvalidKeyError(f"Unrecognized private key encoding: {e}") from e
        if algorithm == KeyAlgorithm.ECDSA and isinstance(key, ec.EllipticCurvePrivateKey):
            if not isinstance(key.curve, ec.SECP256K1):
                raise InvalidKeyError(f"Unsupported ECDSA curve: {key.curve.name}")
            return key
        if algorithm == KeyAlgorithm.ED25519 and isinstance(key, ed25519.Ed25519PrivateKey):
            return key
        raise InvalidKeyError(f"DER key does not match algorithm {algorithm.value}")

    if algorithm == KeyAlgorithm.ECDSA:
        try:
            return ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256K1())
        except ValueError as e:
            raise InvalidKeyError(f"Invalid secp256k1 private key: {e}") from e
    return ed25519.Ed25519PrivateKey.from_private_bytes(raw)


def raw_private_key_hex(key: PrivateKey) -> str:
    """Canonical raw hex form of a private key (no prefix, lowercase)."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key.private_numbers().private_value.to_bytes(_RAW_KEY_BYTES, "big").hex()
    return key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    ).hex()


def public_key_hex(key: PrivateKey) -> str:
    """Derive the raw hex public key."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.CompressedPoint,
        ).hex()
    return key.public_key().public_bytes(
        serialization.Encoding.Raw,
        serialization.PublicFormat.Raw,
    ).hex()


def generate_private_key(algorithm: KeyAlgorithm) -> str:
    """Generate fresh key material, returned as raw hex."""
    key: PrivateKey
    if algorithm == KeyAlgorithm.ECDSA:
        key = ec.generate_private_key(ec.SECP256K1())
    else:
        key = ed25519.Ed25519PrivateKey.generate()
    return raw_private_key_hex(key)


def sign_message(key: PrivateKey, message: bytes) -> bytes:
    """Sign message bytes (ECDSA over SHA-256, DER signature; or Ed25519)."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key.sign(message, ec.ECDSA(hashes.SHA256()))
    return key.sign(message)
