"""Deterministic names for the discovered volumes."""

import os

from local_volume.common import PV_NAME_PREFIX

FNV32_OFFSET_BASIS = 0x811C9DC5
FNV32_PRIME = 0x01000193


def fnv1a_32(*chunks: bytes) -> int:
    """FNV-1a 32 bit hash of the concatenation of the chunks."""
    h = FNV32_OFFSET_BASIS
    for chunk in chunks:
        for byte in chunk:
            h ^= byte
            h = (h * FNV32_PRIME) & 0xFFFFFFFF
    return h


def generate_pv_name(file: str, node: str, storage_class: str) -> str:
    """Return the volume name for a discovery entry.

    Names are hashed as filesystem bytes, so entries that are not valid UTF-8
    get a name too. Two different triples may collide; collisions are not
    detected.

    Args:
        file (str): entry base name.
        node (str): node name.
        storage_class (str): storage class name.

    Returns:
        str: the volume name, i.e. "local-pv-1a2b3c4d".

    """
    h = fnv1a_32(os.fsencode(file), os.fsencode(node), os.fsencode(storage_class))
    return f"{PV_NAME_PREFIX}-{h:x}"
