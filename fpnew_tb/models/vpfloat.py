import math

import numpy as np
import ml_dtypes

from fpnew_tb.errors import InvalidFormat
from fpnew_tb.models.formats import (
    FormatDescriptor, FP64, FP32, FP16, FP8, FP16ALT, FP8ALT, check_width,
)

# --- engine: descriptor -> numpy / ml_dtypes storage ---
_DTYPES = {
    FP64:    np.dtype(np.float64),
    FP32:    np.dtype(np.float32),
    FP16:    np.dtype(np.float16),
    FP16ALT: np.dtype(ml_dtypes.bfloat16),
    FP8:     np.dtype(ml_dtypes.float8_e5m2),
    FP8ALT:  np.dtype(ml_dtypes.float8_e4m3),
}

_UINTS = {
    64: np.dtype(np.uint64),
    32: np.dtype(np.uint32),
    16: np.dtype(np.uint16),
    8:  np.dtype(np.uint8),
}


def float_dtype(desc: FormatDescriptor) -> np.dtype:
    check_width(desc)
    try:
        return _DTYPES[FormatDescriptor(*desc)]
    except KeyError:
        raise InvalidFormat(f"No numeric engine for format {tuple(desc)}") from None


def bits_to_float(bits: int, desc: FormatDescriptor) -> float:
    """Decode a raw pattern of `desc` to a Python float (exact)."""
    dtype = float_dtype(desc)
    raw = np.array(bits, dtype=_UINTS[desc.width])
    with np.errstate(invalid="ignore"):
        return float(raw.view(dtype).astype(np.float64))


def _f32_round_to_odd(x: float) -> np.ndarray:
    """float64 -> float32 with round-to-odd, so a later RNE cast rounds once."""
    with np.errstate(over="ignore"):
        t = np.array(x, dtype=np.float64).astype(np.float32)
    if not np.isfinite(x) or float(t) == x:
        return t
    if abs(float(t)) > abs(x):
        t = np.nextafter(t, np.float32(0.0))
    t = np.array(t, dtype=np.float32)
    odd = t.view(np.uint32) | np.uint32(1)
    return np.array(odd, dtype=np.uint32).view(np.float32)


def float_to_bits(x: float, desc: FormatDescriptor) -> int:
    """Round `x` to nearest in `desc` and return the raw pattern."""
    dtype = float_dtype(desc)
    if desc.width < 32 and dtype != np.float16:
        # ml_dtypes narrows through float32; keep the sticky bit alive
        src = _f32_round_to_odd(x)
    else:
        src = np.array(x, dtype=np.float64)
    with np.errstate(over="ignore", invalid="ignore"):
        v = src.astype(dtype)
    return int(v.view(_UINTS[desc.width]))


class FloatValue:
    """A raw bit pattern tagged with its (exp_bits, frac_bits) format."""

    __slots__ = ("desc", "bits")

    def __init__(self, desc: FormatDescriptor, bits: int = 0):
        self.desc = FormatDescriptor(*desc)
        float_dtype(self.desc)
        self.bits = bits & self.mask

    @classmethod
    def from_float(cls, x: float, desc: FormatDescriptor) -> "FloatValue":
        return cls(desc, float_to_bits(x, desc))

    @property
    def width(self) -> int:
        return self.desc.width

    @property
    def mask(self) -> int:
        return (1 << self.desc.width) - 1

    def to_float(self) -> float:
        return bits_to_float(self.bits, self.desc)

    def set_bits(self, bits: int) -> int:
        self.bits = bits & self.mask
        return self.bits

    def set_random(self, rng) -> int:
        """Install a uniform draw over the signed range of the format width."""
        w = self.desc.width
        lo, hi = -(1 << (w - 1)), (1 << (w - 1)) - 1
        # two's complement of the draw, masked to the format width
        drawn = rng.integers(lo, hi, endpoint=True, dtype=np.int64)
        return self.set_bits(int(drawn))

    def cast(self, dst: FormatDescriptor) -> "FloatValue":
        if FormatDescriptor(*dst) == self.desc and self.is_nan():
            # same-format NaN keeps its payload and signalling bit
            return FloatValue(self.desc, self.bits)
        return FloatValue.from_float(self.to_float(), dst)

    def is_nan(self) -> bool:
        return math.isnan(self.to_float())

    def normalized(self) -> "FloatValue":
        # round trip through the double value; canonical encoding on bit read
        return self.cast(self.desc)

    def __eq__(self, other):
        if not isinstance(other, FloatValue):
            return NotImplemented
        return self.desc == other.desc and self.bits == other.bits

    def __repr__(self):
        digits = self.desc.width // 4
        return f"FloatValue({tuple(self.desc)}, 0x{self.bits:0{digits}x})"


def random_init(desc: FormatDescriptor, rng):
    value = FloatValue(desc)
    raw = value.set_random(rng)
    return value, raw


def cast(value: FloatValue, dst: FormatDescriptor) -> FloatValue:
    return value.cast(dst)
