"""
UUID utilities with UUIDv7 support.

Event ids are opaque strings to the rest of the system; they are generated
here as time-ordered UUIDv7 values so new rows cluster at the end of the
primary key index.
"""
import uuid
import time
import secrets
from typing import Union


def uuid7() -> uuid.UUID:
    """
    Generate a UUIDv7 (time-ordered UUID)

    UUIDv7 format:
    - 48-bit timestamp (milliseconds since Unix epoch)
    - 4-bit version (0111)
    - 12-bit random data
    - 2-bit variant (10)
    - 62-bit random data
    """
    timestamp_ms = int(time.time() * 1000)
    uuid_bytes = bytearray(timestamp_ms.to_bytes(6, byteorder='big') + secrets.token_bytes(10))

    # Set version (4 bits) to 0111 (7)
    uuid_bytes[6] = (uuid_bytes[6] & 0x0f) | 0x70

    # Set variant (2 bits) to 10
    uuid_bytes[8] = (uuid_bytes[8] & 0x3f) | 0x80

    return uuid.UUID(bytes=bytes(uuid_bytes))


def uuid7_str() -> str:
    """Generate UUIDv7 as string"""
    return str(uuid7())


def is_uuid7(uuid_obj: Union[str, uuid.UUID]) -> bool:
    """Check if UUID is version 7"""
    if isinstance(uuid_obj, str):
        try:
            uuid_obj = uuid.UUID(uuid_obj)
        except ValueError:
            return False

    return uuid_obj.version == 7
