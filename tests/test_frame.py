from __future__ import annotations

import pytest
from Crypto.Cipher import AES

from hygroscan.core.errors import DecryptionFailed, MalformedFrame, MissingBindKey, TruncatedFrame
from hygroscan.core.frame import build_frame, decode_frame
from hygroscan.core.model import EventEnvelope, EventType, FrameControl

BIND_KEY = bytes.fromhex("b853075158487ca39a5b5ea9ee5d8ec0")

# version 5, has_mac_address, has_event, product 0x045b, counter 1,
# MAC AA:BB:CC:DD:EE:FF, temperature+humidity event 5.2C / 44.0%
PLAIN_FRAME = bytes.fromhex("5050" "5b04" "01" "ffeeddccbbaa" "0d10" "04" "3400b801")


def test_decode_plain_frame_with_mac_and_event() -> None:
    frame = decode_frame(PLAIN_FRAME)

    assert frame.frame_control.has_mac_address
    assert frame.frame_control.has_event
    assert not frame.frame_control.is_encrypted
    assert frame.frame_control.version == 5
    assert frame.product_id == 0x045B
    assert frame.frame_counter == 1
    assert frame.device_address == "AA:BB:CC:DD:EE:FF"
    assert frame.capabilities is None
    assert frame.event == EventEnvelope(
        event_type=EventType.TEMPERATURE_AND_HUMIDITY,
        length=4,
        payload=bytes.fromhex("3400b801"),
    )


def test_frame_without_event_is_not_an_error() -> None:
    frame = decode_frame(bytes.fromhex("0020" "5b04" "07"))
    assert frame.event is None
    assert frame.frame_counter == 7
    assert frame.device_address is None


def test_capability_byte_is_consumed() -> None:
    # has_mac_address, has_capabilities, has_event
    raw = bytes.fromhex("7000" "9800" "02" "665544332211" "08" "0a10" "01" "5d")
    frame = decode_frame(raw)
    assert frame.capabilities == 0x08
    assert frame.device_address == "11:22:33:44:55:66"
    assert frame.event is not None
    assert frame.event.event_type == EventType.BATTERY
    assert frame.event.payload == b"\x5d"


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        bytes.fromhex("5050"),
        bytes.fromhex("50505b04"),
        # MAC cut short
        bytes.fromhex("5050" "5b04" "01" "ffeedd"),
        # capability byte missing
        bytes.fromhex("2000" "5b04" "01"),
        # event header cut short
        bytes.fromhex("4000" "5b04" "01" "0d"),
    ],
)
def test_truncated_frames_rejected(raw: bytes) -> None:
    with pytest.raises(TruncatedFrame):
        decode_frame(raw)


def test_event_length_beyond_frame_rejected() -> None:
    raw = bytes.fromhex("4000" "5b04" "01" "0d10" "04" "3400b8")
    with pytest.raises(TruncatedFrame):
        decode_frame(raw)


def test_trailing_bytes_rejected_without_custom_data_flag() -> None:
    with pytest.raises(MalformedFrame):
        decode_frame(PLAIN_FRAME + b"\x00")


def test_trailing_bytes_kept_as_custom_data() -> None:
    # has_event and has_custom_data
    raw = bytes.fromhex("c000" "5b04" "01" "0610" "02" "b801" "cafe")
    frame = decode_frame(raw)
    assert frame.event is not None
    assert frame.event.payload == bytes.fromhex("b801")
    assert frame.custom_data == bytes.fromhex("cafe")


def test_decoding_is_idempotent() -> None:
    assert decode_frame(PLAIN_FRAME) == decode_frame(PLAIN_FRAME)


def test_build_frame_round_trip() -> None:
    control = FrameControl(has_mac_address=True, has_capabilities=True, has_event=True, version=3)
    event = EventEnvelope(event_type=EventType.ILLUMINANCE, length=3, payload=bytes.fromhex("e80300"))

    raw = build_frame(
        control,
        0x0098,
        200,
        device_address="C4:7C:8D:6A:12:34",
        capabilities=0x0D,
        event=event,
    )
    frame = decode_frame(raw)

    assert frame.frame_control == control
    assert frame.product_id == 0x0098
    assert frame.frame_counter == 200
    assert frame.device_address == "C4:7C:8D:6A:12:34"
    assert frame.capabilities == 0x0D
    assert frame.event == event


def _encrypted_frame(*, with_mac: bool = True) -> bytes:
    control = FrameControl(is_encrypted=True, has_mac_address=with_mac, has_event=True, version=5)
    return build_frame(
        control,
        0x045B,
        0x42,
        device_address="A4:C1:38:00:11:22",
        event=EventEnvelope(event_type=EventType.TEMPERATURE, length=2, payload=bytes.fromhex("ebff")),
        bind_key=BIND_KEY,
        ext_counter=bytes.fromhex("010203"),
    )


def test_encrypted_frame_decrypts_with_bind_key() -> None:
    frame = decode_frame(_encrypted_frame(), BIND_KEY)
    assert frame.frame_control.is_encrypted
    assert frame.device_address == "A4:C1:38:00:11:22"
    assert frame.event == EventEnvelope(event_type=EventType.TEMPERATURE, length=2, payload=bytes.fromhex("ebff"))


def test_encrypted_frame_matches_reference_ccm() -> None:
    # Encrypt with AES directly, laying the nonce out from the frame bytes:
    # MAC as sent, product id, frame counter, then the ext counter.
    header = bytes.fromhex("5850" "5b05" "2a" "22110038c1a4")
    ext_counter = bytes.fromhex("0a0b0c")
    nonce = header[5:11] + header[2:4] + header[4:5] + ext_counter
    assert nonce == bytes.fromhex("22110038c1a4" "5b05" "2a" "0a0b0c")
    cipher = AES.new(BIND_KEY, AES.MODE_CCM, nonce=nonce, mac_len=4)
    cipher.update(b"\x11")
    ciphertext, tag = cipher.encrypt_and_digest(bytes.fromhex("0a10" "01" "4d"))
    raw = header + ciphertext + ext_counter + tag

    frame = decode_frame(raw, BIND_KEY)

    assert frame.product_id == 0x055B
    assert frame.frame_counter == 0x2A
    assert frame.device_address == "A4:C1:38:00:11:22"
    assert frame.event == EventEnvelope(event_type=EventType.BATTERY, length=1, payload=b"\x4d")


def test_encrypted_frame_without_mac_uses_advertisement_address() -> None:
    raw = _encrypted_frame(with_mac=False)

    frame = decode_frame(raw, BIND_KEY, address="a4:c1:38:00:11:22")
    assert frame.device_address is None
    assert frame.event is not None
    assert frame.event.payload == bytes.fromhex("ebff")

    with pytest.raises(DecryptionFailed):
        decode_frame(raw, BIND_KEY)


def test_encrypted_frame_requires_bind_key() -> None:
    with pytest.raises(MissingBindKey):
        decode_frame(_encrypted_frame())


def test_encrypted_frame_with_wrong_key_fails() -> None:
    with pytest.raises(DecryptionFailed):
        decode_frame(_encrypted_frame(), bytes(16))


def test_any_bit_flip_in_encrypted_tail_fails() -> None:
    raw = _encrypted_frame()
    for index in range(11, len(raw)):
        for bit in range(8):
            tampered = bytearray(raw)
            tampered[index] ^= 1 << bit
            with pytest.raises(DecryptionFailed):
                decode_frame(bytes(tampered), BIND_KEY)


def test_encrypted_tail_too_short_is_truncated() -> None:
    raw = bytes.fromhex("5850" "5b04" "01" "ffeeddccbbaa" "010203")
    with pytest.raises(TruncatedFrame):
        decode_frame(raw, BIND_KEY)
