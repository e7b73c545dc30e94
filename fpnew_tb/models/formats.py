from typing import NamedTuple

from fpnew_tb.errors import InvalidFormat


class FormatDescriptor(NamedTuple):
    exp_bits: int
    frac_bits: int

    @property
    def width(self) -> int:
        """Total bits including the sign."""
        return self.exp_bits + self.frac_bits + 1


# --- canonical formats ---
FP64    = FormatDescriptor(11, 52)
FP32    = FormatDescriptor(8, 23)
FP16    = FormatDescriptor(5, 10)
FP8     = FormatDescriptor(5, 2)
FP16ALT = FormatDescriptor(8, 7)
FP8ALT  = FormatDescriptor(4, 3)

SUPPORTED_WIDTHS = (64, 32, 16, 8)

# name -> (descriptor, record tag); tags carry their trailing separator
_REGISTRY = {
    "FP64": (FP64,    "FP64 "),
    "FP32": (FP32,    "FP32 "),
    "FP16": (FP16,    "FP16 "),
    "AL16": (FP16ALT, "AL16 "),
    "FP8":  (FP8,     "FP08 "),
    "AL8":  (FP8ALT,  "AL08 "),
}

_NAMES = {desc: name for name, (desc, _) in _REGISTRY.items()}
_TAGS = {desc: tag for desc, tag in _REGISTRY.values()}


def names():
    return tuple(_REGISTRY)


def name_to_descriptor(name: str) -> FormatDescriptor:
    try:
        return _REGISTRY[name][0]
    except KeyError:
        raise InvalidFormat(f"Invalid FP format: {name!r}") from None


def descriptor_to_name(desc: FormatDescriptor) -> str:
    # exact field match only
    try:
        return _NAMES[FormatDescriptor(*desc)]
    except (KeyError, TypeError):
        raise InvalidFormat(f"Invalid FP format: {desc!r}") from None


def descriptor_to_tag(desc: FormatDescriptor) -> str:
    try:
        return _TAGS[FormatDescriptor(*desc)]
    except (KeyError, TypeError):
        raise InvalidFormat(f"Invalid FP format: {desc!r}") from None


def check_width(desc: FormatDescriptor) -> FormatDescriptor:
    if desc.width not in SUPPORTED_WIDTHS:
        raise InvalidFormat(
            f"Unsupported width {desc.width} for format {tuple(desc)}, "
            f"expected one of {SUPPORTED_WIDTHS}")
    return desc


def tag_to_descriptor(tag: str) -> FormatDescriptor:
    """Inverse of descriptor_to_tag; the trailing separator is optional."""
    for desc, known in _TAGS.items():
        if known.rstrip() == tag.strip():
            return desc
    raise InvalidFormat(f"Invalid FP format tag: {tag!r}")
