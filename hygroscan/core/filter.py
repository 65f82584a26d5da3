"""Advertisement-to-configuration matching logic."""

from __future__ import annotations

import re

from hygroscan.core.model import AdvertisementRecord

_BASE_UUID_RE = re.compile(r"^0000([0-9a-f]{4})-0000-1000-8000-00805f9b34fb$")


def normalize_address(address: str | None) -> str | None:
    if address is None:
        return None
    return address.lower().replace(":", "").replace("-", "")


def normalize_uuid(uuid: str) -> str:
    lowered = uuid.strip().lower()
    match = _BASE_UUID_RE.match(lowered)
    if match:
        return match.group(1)
    return lowered


def matches_address(record: AdvertisementRecord, configured: str | None) -> bool:
    if configured is None:
        return True
    wanted = normalize_address(configured)
    return normalize_address(record.address) == wanted or normalize_address(record.identifier) == wanted


def extract_service_data(record: AdvertisementRecord, expected_uuid: str) -> bytes | None:
    wanted = normalize_uuid(expected_uuid)
    for uuid, data in record.service_data.items():
        if normalize_uuid(uuid) == wanted:
            return bytes(data)
    return None
