"""AES-CCM helpers for encrypted sensor frames.

Encrypted frames carry ``ciphertext || ext_counter(3) || tag(4)`` after the
fixed header. The 12 byte nonce is built from the device address as it
appears on the wire (byte-reversed), the product id, the frame counter and
the extended counter, and a single ``0x11`` byte is authenticated as
associated data.
"""

from __future__ import annotations

import struct

from Crypto.Cipher import AES

from hygroscan.core.errors import DecryptionFailed, TruncatedFrame

ASSOCIATED_DATA = b"\x11"
EXT_COUNTER_LENGTH = 3
TAG_LENGTH = 4
KEY_LENGTH = 16


def build_nonce(mac_wire: bytes, product_id: int, frame_counter: int, ext_counter: bytes) -> bytes:
    """Build the 12 byte CCM nonce.

    ``mac_wire`` is the 6 byte address in wire order (least significant byte
    first), exactly as it is carried inside the frame.
    """
    return mac_wire + struct.pack("<HB", product_id, frame_counter) + ext_counter


def _cipher(key: bytes, nonce: bytes):
    if len(key) != KEY_LENGTH:
        raise DecryptionFailed(
            f"Invalid bind key that should be 128 bits long, was {len(key)} bytes"
        )
    cipher = AES.new(key, AES.MODE_CCM, nonce=nonce, mac_len=TAG_LENGTH)
    cipher.update(ASSOCIATED_DATA)
    return cipher


def encrypt_payload(
    plaintext: bytes,
    key: bytes,
    *,
    mac_wire: bytes,
    product_id: int,
    frame_counter: int,
    ext_counter: bytes = b"\x00\x00\x00",
) -> bytes:
    """Encrypt a plaintext tail and return ``ciphertext || ext_counter || tag``."""
    nonce = build_nonce(mac_wire, product_id, frame_counter, ext_counter)
    encrypted, tag = _cipher(key, nonce).encrypt_and_digest(plaintext)
    return encrypted + ext_counter + tag


def decrypt_payload(
    blob: bytes,
    key: bytes,
    *,
    mac_wire: bytes,
    product_id: int,
    frame_counter: int,
) -> bytes:
    """Authenticate and decrypt an encrypted tail.

    Raises DecryptionFailed on tag mismatch; no plaintext is returned in that
    case.
    """
    if len(blob) < EXT_COUNTER_LENGTH + TAG_LENGTH:
        raise TruncatedFrame(
            f"Encrypted payload needs at least {EXT_COUNTER_LENGTH + TAG_LENGTH} bytes, found {len(blob)}"
        )
    ciphertext = blob[: -(EXT_COUNTER_LENGTH + TAG_LENGTH)]
    ext_counter = blob[-(EXT_COUNTER_LENGTH + TAG_LENGTH) : -TAG_LENGTH]
    tag = blob[-TAG_LENGTH:]

    nonce = build_nonce(mac_wire, product_id, frame_counter, ext_counter)
    try:
        return _cipher(key, nonce).decrypt_and_verify(ciphertext, tag)
    except ValueError as exc:
        raise DecryptionFailed(f"Encrypted payload failed authentication: {exc}") from exc
