import math
import warnings

import numpy as np
import pytest

from fpnew_tb.errors import InvalidFormat
from fpnew_tb.models.formats import FormatDescriptor, FP64, FP32, FP16, FP8, FP16ALT, FP8ALT
from fpnew_tb.models.vpfloat import FloatValue, random_init, cast, bits_to_float


class ScriptedSource:
    """Stand-in bit source returning preset signed draws."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def integers(self, low, high, endpoint=False, dtype=None):
        self.calls.append((low, high, endpoint))
        return self.values.pop(0)


def test_one_in_every_format():
    expected = {
        FP64: 0x3FF0000000000000,
        FP32: 0x3F800000,
        FP16: 0x3C00,
        FP16ALT: 0x3F80,
        FP8: 0x3C,
        FP8ALT: 0x38,
    }
    for desc, bits in expected.items():
        v = FloatValue.from_float(1.0, desc)
        assert v.bits == bits
        assert v.to_float() == 1.0


def test_decode_specials():
    assert bits_to_float(0x0001, FP16) == 2.0 ** -24
    assert bits_to_float(0x7C00, FP16) == math.inf
    assert bits_to_float(0xFC, FP8) == -math.inf
    assert bits_to_float(0x78, FP8ALT) == math.inf
    assert math.isnan(bits_to_float(0x7FC00000, FP32))


def test_rounding_cast():
    # 1 + 2^-23 is below half an FP16 ulp
    v = FloatValue(FP32, 0x3F800001)
    assert cast(v, FP16).bits == 0x3C00
    # overflow goes to infinity, not saturation
    assert FloatValue.from_float(1e6, FP8).bits == 0x7C
    assert FloatValue.from_float(-1e6, FP8ALT).bits == 0xF8
    assert FloatValue.from_float(65504.0, FP16).bits == 0x7BFF
    assert FloatValue.from_float(1e300, FP16ALT).bits == 0x7F80


@pytest.mark.parametrize("x,desc,bits", [
    # a half-ulp tie plus a sticky bit below float32 precision rounds up
    (1 + 2.0 ** -8 + 2.0 ** -30, FP16ALT, 0x3F81),
    (1 + 2.0 ** -3 + 2.0 ** -40, FP8, 0x3D),
    (1 + 2.0 ** -4 + 2.0 ** -40, FP8ALT, 0x39),
    (-(1 + 2.0 ** -3 + 2.0 ** -40), FP8, 0xBD),
    (1 + 2.0 ** -11 + 2.0 ** -40, FP16, 0x3C01),
    # exact ties still go to even
    (1 + 2.0 ** -8, FP16ALT, 0x3F80),
    (1 + 2.0 ** -3, FP8, 0x3C),
    (1 + 3 * 2.0 ** -3, FP8, 0x3E),
    # just below the tie stays down
    (1 + 2.0 ** -3 - 2.0 ** -40, FP8, 0x3C),
])
def test_narrow_cast_rounds_once(x, desc, bits):
    assert FloatValue.from_float(x, desc).bits == bits


def test_narrow_cast_tiny_values():
    # below the smallest e4m3 subnormal (2^-9) but above half of it
    assert FloatValue.from_float(2.0 ** -10 + 2.0 ** -60, FP8ALT).bits == 0x01
    assert FloatValue.from_float(2.0 ** -10, FP8ALT).bits == 0x00
    assert FloatValue.from_float(-(2.0 ** -200), FP16ALT).bits == 0x8000


@pytest.mark.parametrize("desc,bits", [
    (FP32, 0x7F800001),
    (FP16, 0x7C01),
    (FP16ALT, 0x7F81),
    (FP8, 0x7D),
    (FP8ALT, 0x79),
    (FP32, 0xFFC12345),
    (FP8, 0xFE),
])
def test_nan_patterns_survive_normalization(desc, bits):
    v = FloatValue(desc, bits)
    assert v.is_nan()
    assert v.normalized().bits == bits
    assert v.cast(desc).bits == bits


def test_signalling_nan_decodes_quietly():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert math.isnan(bits_to_float(0x7F800001, FP32))
        assert math.isnan(bits_to_float(0x7C01, FP16))
        assert FloatValue(FP32, 0x7F800001).normalized().bits == 0x7F800001


def test_widening_cast_is_exact():
    rng = np.random.default_rng(7)
    for desc in (FP16, FP16ALT, FP8, FP8ALT, FP32):
        for _ in range(200):
            v, _ = random_init(desc, rng)
            x = v.to_float()
            wide = v.cast(FP64).to_float()
            assert (math.isnan(x) and math.isnan(wide)) or wide == x


def test_random_init_signed_range():
    src = ScriptedSource([-1, -128, 127, 0x1234])
    v, raw = random_init(FP8, src)
    assert raw == 0xFF and v.bits == 0xFF
    assert src.calls[0] == (-128, 127, True)

    v.set_random(src)
    assert v.bits == 0x80
    v.set_random(src)
    assert v.bits == 0x7F

    v, raw = random_init(FP16, src)
    assert raw == 0x1234
    assert src.calls[-1] == (-(1 << 15), (1 << 15) - 1, True)


def test_random_init_full_width():
    src = ScriptedSource([-(1 << 63), -(1 << 31)])
    v, raw = random_init(FP64, src)
    assert raw == 1 << 63
    assert src.calls[0] == (-(1 << 63), (1 << 63) - 1, True)
    v, raw = random_init(FP32, src)
    assert raw == 0x80000000


def test_random_init_covers_patterns():
    rng = np.random.default_rng(1)
    seen = {random_init(FP8, rng)[1] for _ in range(4000)}
    assert min(seen) == 0 and max(seen) == 0xFF
    assert len(seen) == 256


def test_cast_to_own_format_is_identity_for_numbers():
    rng = np.random.default_rng(3)
    for desc in (FP32, FP16, FP16ALT, FP8, FP8ALT):
        for _ in range(300):
            v, _ = random_init(desc, rng)
            if math.isnan(v.to_float()):
                continue
            assert v.cast(desc) == v


def test_normalized_is_idempotent():
    rng = np.random.default_rng(5)
    for desc in (FP16, FP8, FP8ALT):
        for _ in range(300):
            v, _ = random_init(desc, rng)
            n = v.normalized()
            assert n.normalized() == n


def test_unsupported_format():
    with pytest.raises(InvalidFormat):
        FloatValue(FormatDescriptor(3, 4))
    with pytest.raises(InvalidFormat):
        FloatValue(FormatDescriptor(4, 4))
