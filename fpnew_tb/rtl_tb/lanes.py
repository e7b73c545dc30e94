"""
Lane packing for the mixed-precision FPU stimuli.

A record covers one datapath word. The destination width D sets how many lanes
fit; each lane draws fresh a, b, c, d, e operands, gets its golden result, and
every role is appended to its own hex field in increasing lane order. The
operand fields are then laid out per (operation, D) as the testbench expects.
"""
import enum
from dataclasses import dataclass, field

from fpnew_tb.errors import InvalidFormat, InvalidOperation
from fpnew_tb.models import golden
from fpnew_tb.models.formats import (
    check_width, descriptor_to_tag, tag_to_descriptor,
)
from fpnew_tb.models.ops import (
    Operation, OperandFormats, OPERATION_SPECS, role_formats,
)
from fpnew_tb.models.vpfloat import FloatValue, random_init
from fpnew_tb.rtl_tb.hexfmt import filler, to_hex


@dataclass(frozen=True)
class DatapathConfig:
    width: int = 32                         # datapath bits per record
    stimuli_path: str = "../stimuli.txt"


DEFAULT_CONFIG = DatapathConfig()


class Layout(enum.Enum):
    SDOTP = "sdotp"
    VSUM_FULL = "vsum_full"          # D == W
    VSUM_SPLIT = "vsum_split"        # W > D > 8, double-pumped accumulators
    VSUM_NARROW = "vsum_narrow"      # D == 8, reducer spans half the datapath
    EXVSUM = "exvsum"
    FMADD = "fmadd"


def layout_for(op: Operation, dst_width: int, cfg: DatapathConfig = DEFAULT_CONFIG) -> Layout:
    if op is Operation.SDOTP:
        return Layout.SDOTP
    if op is Operation.VSUM:
        if dst_width == cfg.width:
            return Layout.VSUM_FULL
        if dst_width == 8:
            return Layout.VSUM_NARROW
        return Layout.VSUM_SPLIT
    if op is Operation.EXVSUM:
        return Layout.EXVSUM
    if op is Operation.FMADD:
        return Layout.FMADD
    raise InvalidOperation(f"Operation not supported: {op!r}")


def lane_count(op: Operation, dst_width: int, cfg: DatapathConfig = DEFAULT_CONFIG) -> int:
    if layout_for(op, dst_width, cfg) is Layout.VSUM_NARROW:
        return cfg.width // 16
    return cfg.width // dst_width


def src_width(op: Operation, dst_width: int) -> int:
    if op is Operation.FMADD or (op is Operation.EXVSUM and dst_width == 8):
        return dst_width
    return dst_width // 2


@dataclass
class LaneFields:
    """Per-role hex accumulators of one record."""
    e: str = ""
    d: str = ""
    c: str = ""
    b: str = ""
    a: str = ""
    db: str = ""
    ca: str = ""
    ca2: str = ""
    result: str = ""


# --- layouts: LaneFields -> (operands, result) ---
def _pack_sdotp(f: LaneFields, cfg: DatapathConfig):
    return f.e + f.db + f.ca, f.result


def _pack_vsum_full(f: LaneFields, cfg: DatapathConfig):
    return f.e + f.c + f.a, f.result


def _pack_vsum_split(f: LaneFields, cfg: DatapathConfig):
    return f.e + f.ca2 + f.ca, f.result


def _pack_vsum_narrow(f: LaneFields, cfg: DatapathConfig):
    # upper lanes unpopulated; the second accumulator slot is don't-care
    return f.e + filler(cfg.width // 4) + f.ca, filler(cfg.width // 8) + f.result


def _pack_exvsum(f: LaneFields, cfg: DatapathConfig):
    return f.e + filler(cfg.width // 4) + f.ca, f.result


def _pack_fmadd(f: LaneFields, cfg: DatapathConfig):
    return f.e + f.c + f.a, f.result


_PACKERS = {
    Layout.SDOTP: _pack_sdotp,
    Layout.VSUM_FULL: _pack_vsum_full,
    Layout.VSUM_SPLIT: _pack_vsum_split,
    Layout.VSUM_NARROW: _pack_vsum_narrow,
    Layout.EXVSUM: _pack_exvsum,
    Layout.FMADD: _pack_fmadd,
}


@dataclass
class StimulusRecord:
    op: Operation
    op_mod: bool
    fmts: OperandFormats
    operands: str
    result: str
    lanes: LaneFields = field(default=None, repr=False, compare=False)

    def to_line(self) -> str:
        tags = "".join(descriptor_to_tag(d) for d in (self.fmts.src, self.fmts.src2, self.fmts.dst))
        return f"{self.op.spec.tag} {int(self.op_mod)} {tags}{self.operands} {self.result}"

    @classmethod
    def from_line(cls, line: str) -> "StimulusRecord":
        fields = line.split()
        if len(fields) != 7:
            raise ValueError(f"Malformed stimulus record: {line!r}")
        tag, mod, src, src2, dst, operands, result = fields
        by_tag = {spec.tag: op for op, spec in OPERATION_SPECS.items()}
        if tag not in by_tag:
            raise InvalidOperation(f"Unknown operation tag: {tag!r}")
        fmts = OperandFormats(tag_to_descriptor(src), tag_to_descriptor(src2), tag_to_descriptor(dst))
        return cls(by_tag[tag], mod == "1", fmts, operands, result)

    def result_lanes(self, cfg: DatapathConfig = DEFAULT_CONFIG):
        """Expected result of each populated lane, in field order."""
        dst = self.fmts.dst
        digits = dst.width // 4
        n = lane_count(self.op, dst.width, cfg)
        body = self.result[len(self.result) - n * digits:]
        return [FloatValue(dst, int(body[i * digits:(i + 1) * digits], 16)) for i in range(n)]


def check_formats(fmts: OperandFormats, cfg: DatapathConfig):
    for desc in (fmts.src, fmts.src2, fmts.dst):
        check_width(desc)
        if desc.width > cfg.width:
            raise InvalidFormat(
                f"Format {tuple(desc)} is wider than the {cfg.width}-bit datapath")


def assemble(index: int, op: Operation, fmts: OperandFormats, rng,
             cfg: DatapathConfig = DEFAULT_CONFIG, op_mod: bool = False) -> StimulusRecord:
    """Build stimulus record number `index` with fresh random lanes."""
    check_formats(fmts, cfg)
    roles = role_formats(op, fmts)
    dst_width = fmts.dst.width
    layout = layout_for(op, dst_width, cfg)
    sw = src_width(op, dst_width)
    # narrow VSUM keeps each 8-bit e in a 16-bit slot
    e_width = 2 * dst_width if layout is Layout.VSUM_NARROW else dst_width
    second_slot = layout is Layout.VSUM_SPLIT and index % 2 == 1

    f = LaneFields()
    for lane in range(lane_count(op, dst_width, cfg)):
        a, _ = random_init(roles.a, rng)
        b, _ = random_init(roles.b, rng)
        c, _ = random_init(roles.c, rng)
        d, _ = random_init(roles.d, rng)
        e, _ = random_init(roles.e, rng)

        res = golden.evaluate(op, a, b, c, d, e, fmts.dst)

        f.e += to_hex(e, e_width)
        f.d += to_hex(d, sw)
        f.c += to_hex(c, sw)
        f.b += to_hex(b, sw)
        f.a += to_hex(a, sw)

        f.db += to_hex(d, sw) + to_hex(b, sw)
        if second_slot:
            f.ca2 += to_hex(c, sw) + to_hex(a, sw)
        else:
            f.ca += to_hex(c, sw) + to_hex(a, sw)

        f.result += to_hex(res, dst_width)

    operands, result = _PACKERS[layout](f, cfg)
    return StimulusRecord(op, op_mod, fmts, operands, result, lanes=f)
