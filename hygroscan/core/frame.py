"""Service data frame decoding and encoding.

Layout, all multi-byte integers little-endian::

    frame_control(2) product_id(2) frame_counter(1)
    [mac(6)]            if has_mac_address, byte-reversed
    [capabilities(1)]   if has_capabilities
    [tail]              encrypted when is_encrypted
        [event_type(2) event_length(1) payload(event_length)]  if has_event
        [custom data]   only if has_custom_data or has_subtitle
"""

from __future__ import annotations

import struct

from hygroscan.core.crypto import decrypt_payload, encrypt_payload
from hygroscan.core.errors import DecryptionFailed, MalformedFrame, MissingBindKey, TruncatedFrame
from hygroscan.core.model import DecodedFrame, EventEnvelope, FrameControl

SERVICE_DATA_UUID = "fe95"

_HEADER = struct.Struct("<HHB")
_EVENT_HEADER = struct.Struct("<HB")
_MAC_LENGTH = 6


def mac_from_wire(data: bytes) -> str:
    return ":".join(f"{b:02X}" for b in reversed(data))


def mac_to_wire(address: str) -> bytes:
    cleaned = address.replace(":", "").replace("-", "")
    try:
        raw = bytes.fromhex(cleaned)
    except ValueError as exc:
        raise DecryptionFailed(f"Invalid device address '{address}'") from exc
    if len(raw) != _MAC_LENGTH:
        raise DecryptionFailed(f"Invalid device address '{address}'")
    return bytes(reversed(raw))


def decode_frame(raw: bytes, bind_key: bytes | None = None, *, address: str | None = None) -> DecodedFrame:
    """Decode one service data frame.

    ``address`` is the advertisement's transport address. It is only used to
    build the decryption nonce for encrypted frames that do not carry their
    own MAC.
    """
    raw = bytes(raw)
    if len(raw) < _HEADER.size:
        raise TruncatedFrame(f"Frame needs at least {_HEADER.size} bytes, found {len(raw)}")

    control_value, product_id, frame_counter = _HEADER.unpack_from(raw)
    control = FrameControl.from_int(control_value)
    offset = _HEADER.size

    mac_wire: bytes | None = None
    device_address: str | None = None
    if control.has_mac_address:
        if len(raw) < offset + _MAC_LENGTH:
            raise TruncatedFrame("Frame ends inside the device address")
        mac_wire = raw[offset : offset + _MAC_LENGTH]
        device_address = mac_from_wire(mac_wire)
        offset += _MAC_LENGTH

    capabilities: int | None = None
    if control.has_capabilities:
        if len(raw) < offset + 1:
            raise TruncatedFrame("Frame ends before the capability byte")
        capabilities = raw[offset]
        offset += 1

    tail = raw[offset:]
    if control.is_encrypted:
        if bind_key is None:
            raise MissingBindKey("Sensor data is encrypted, a bind key is required")
        if mac_wire is None:
            if address is None:
                raise DecryptionFailed("Encrypted frame without a device address")
            mac_wire = mac_to_wire(address)
        tail = decrypt_payload(
            tail,
            bind_key,
            mac_wire=mac_wire,
            product_id=product_id,
            frame_counter=frame_counter,
        )

    event: EventEnvelope | None = None
    position = 0
    if control.has_event:
        if len(tail) < _EVENT_HEADER.size:
            raise TruncatedFrame("Frame ends inside the event header")
        event_type, event_length = _EVENT_HEADER.unpack_from(tail)
        position = _EVENT_HEADER.size
        if len(tail) - position < event_length:
            raise TruncatedFrame(
                f"Event declares {event_length} bytes but only {len(tail) - position} remain"
            )
        event = EventEnvelope(
            event_type=event_type,
            length=event_length,
            payload=tail[position : position + event_length],
        )
        position += event_length

    leftover = tail[position:]
    custom_data: bytes | None = None
    if leftover:
        if not (control.has_custom_data or control.has_subtitle):
            raise MalformedFrame(f"{len(leftover)} unexpected trailing bytes")
        custom_data = leftover

    return DecodedFrame(
        frame_control=control,
        product_id=product_id,
        frame_counter=frame_counter,
        device_address=device_address,
        capabilities=capabilities,
        event=event,
        custom_data=custom_data,
    )


def build_frame(
    control: FrameControl,
    product_id: int,
    frame_counter: int,
    *,
    device_address: str | None = None,
    capabilities: int | None = None,
    event: EventEnvelope | None = None,
    custom_data: bytes = b"",
    bind_key: bytes | None = None,
    ext_counter: bytes = b"\x00\x00\x00",
) -> bytes:
    """Build frame bytes from fields; the inverse of decode_frame.

    For encrypted frames without an embedded MAC, ``device_address`` is only
    used for the nonce and is not written to the frame.
    """
    header = _HEADER.pack(control.to_int(), product_id, frame_counter)

    mac_wire = mac_to_wire(device_address) if device_address else None
    if control.has_mac_address:
        if mac_wire is None:
            raise ValueError("has_mac_address is set but no device_address was given")
        header += mac_wire
    if control.has_capabilities:
        if capabilities is None:
            raise ValueError("has_capabilities is set but no capabilities byte was given")
        header += bytes([capabilities])

    tail = b""
    if control.has_event:
        if event is None:
            raise ValueError("has_event is set but no event was given")
        tail += _EVENT_HEADER.pack(event.event_type, event.length) + event.payload
    tail += custom_data

    if control.is_encrypted:
        if bind_key is None or mac_wire is None:
            raise ValueError("Encrypted frames need a bind_key and a device_address")
        tail = encrypt_payload(
            tail,
            bind_key,
            mac_wire=mac_wire,
            product_id=product_id,
            frame_counter=frame_counter,
            ext_counter=ext_counter,
        )
    return header + tail
