from fpnew_tb.models.vpfloat import FloatValue

FILLER = "F"


def filler(n_digits: int) -> str:
    """Don't-care digits for unpopulated lane bits (never sign extension)."""
    return FILLER * max(n_digits, 0)


def to_hex(value: FloatValue, lane_width: int) -> str:
    """
    Lowercase hex of the canonical bit pattern, left-filled with 'F' up to
    `lane_width` bits. A format wider than the lane keeps all of its digits.
    """
    v = value.normalized()
    width = v.width
    return filler((lane_width - width) // 4) + f"{v.bits:0{width // 4}x}"
