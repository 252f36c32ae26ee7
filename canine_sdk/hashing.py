"""
Hash helpers for tree addressing.
"""

import hashlib


def hash_and_hex(value: str) -> str:
    """Return the hex encoded sha256 of a string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def hex_full_path(path: str, file_name: str) -> str:
    return hash_and_hex(f"{path}{hash_and_hex(file_name)}")


def merkle_path(raw_path: str) -> str:
    """
    Derive the tree address of a slash separated path.

    Each segment is folded into the running hash, so the address of
    ``a/b`` can be derived from the address of ``a`` and the name ``b``.

    Args:
        raw_path: Path such as ``s/Home/docs``

    Returns:
        str: Hex encoded tree address
    """
    merkle = ""
    for segment in raw_path.split("/"):
        merkle = hex_full_path(merkle, segment)
    return merkle


def owner_key(address: str, owner: str) -> str:
    """Access-check key the chain indexes a leaf's owner under."""
    return hash_and_hex(f"o{address}{hash_and_hex(owner)}")


def permission_key(role: str, tracking_number: str, user: str) -> str:
    """Key of one user's entry in a viewer ("v") or editor ("e") map."""
    return hash_and_hex(f"{role}{tracking_number}{user}")
