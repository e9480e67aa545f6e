import base64
import uuid


def new_id() -> str:
    """26 character lowercase base32 identifier, usable as a unique scheme or role name"""
    return base64.b32encode(uuid.uuid4().bytes).decode("ascii").rstrip("=").lower()
