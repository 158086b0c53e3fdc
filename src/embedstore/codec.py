# Copyright 2025 Embedstore Contributors.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#    1. Redistributions of source code must retain the above copyright notice,
#       this list of conditions and the following disclaimer.
#
#    2. Redistributions in binary form must reproduce the above copyright
#       notice, this list of conditions and the following disclaimer in the
#       documentation and/or other materials provided with the distribution.

"""Binary layout of vectors passed to the search engine as query parameters.

Vectors travel as contiguous little-endian IEEE 754 doubles, 8 bytes per
element, in element order. The Redis index is declared ``TYPE FLOAT64``, so
any other width or byte order corrupts the ranking without an error.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

# Little-endian float64, independent of host byte order
WIRE_DTYPE = np.dtype("<f8")


def encode(vector: Sequence[float]) -> bytes:
    """Encode ``vector`` as little-endian float64 bytes.

    Example:
        >>> encode([1.0]).hex()
        '000000000000f03f'
    """
    return np.asarray(vector, dtype=WIRE_DTYPE).reshape(-1).tobytes()


def decode(data: bytes) -> List[float]:
    """Decode bytes produced by :func:`encode`.

    Raises:
        ValueError: If the byte count is not a multiple of 8
    """
    if len(data) % WIRE_DTYPE.itemsize != 0:
        raise ValueError(
            f"Vector payload of {len(data)} bytes is not a multiple of "
            f"{WIRE_DTYPE.itemsize}"
        )
    return np.frombuffer(data, dtype=WIRE_DTYPE).tolist()
