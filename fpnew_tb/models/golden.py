"""
Golden model for the mixed-precision FPU operations.

Every operand is widened to FP64 (exact) and the operation formula is run as a
chain of two-input steps, each rounded to nearest-even at FP64. SDOTP, VSUM and
EXVSUM therefore accumulate two roundings instead of one; that mirrors how the
reference stimuli have always been produced and is kept as is.
"""
import math

import numpy as np
from mpmath import mp, mpf

from fpnew_tb.errors import InvalidOperation
from fpnew_tb.models.formats import FormatDescriptor, FP64
from fpnew_tb.models.ops import Operation
from fpnew_tb.models.vpfloat import FloatValue

F64_PREC = 53


def add(x: float, y: float) -> float:
    return float(np.float64(x) + np.float64(y))


def fma(x: float, y: float, z: float) -> float:
    """x*y + z with a single rounding to FP64."""
    if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
        # inf/nan propagation follows plain IEEE arithmetic
        with np.errstate(invalid="ignore", over="ignore"):
            return float(np.float64(x) * np.float64(y) + np.float64(z))

    prod = mp.fmul(mpf(x), mpf(y), exact=True)
    r = mp.fadd(prod, mpf(z), prec=F64_PREC, rounding="n")
    if r == 0:
        # exact cancellation or zero terms: the product is exact here, so the
        # unfused expression yields the IEEE-signed zero
        return float(np.float64(x) * np.float64(y) + np.float64(z))
    return float(r)


def evaluate(op: Operation, a: FloatValue, b: FloatValue, c: FloatValue,
             d: FloatValue, e: FloatValue, dst: FormatDescriptor) -> FloatValue:
    """Expected result of one lane, rounded to `dst`."""
    a64, b64, c64, d64, e64 = (v.cast(FP64).to_float() for v in (a, b, c, d, e))

    with np.errstate(invalid="ignore", over="ignore"):
        if op is Operation.SDOTP:
            e64 = fma(a64, b64, e64)        # e   = a*b + e
            res = fma(c64, d64, e64)        # res = c*d + e
        elif op in (Operation.VSUM, Operation.EXVSUM):
            e64 = add(e64, a64)             # e   = e + a
            res = add(e64, c64)             # res = e + c
        elif op is Operation.FMADD:
            res = fma(a64, c64, e64)        # res = a*c + e
        else:
            raise InvalidOperation(f"Operation not supported: {op!r}")

        return FloatValue.from_float(res, dst)
