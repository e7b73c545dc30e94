"""
Generate a stimuli file for the mixed-precision FPU testbench.

Operands are raw bit patterns drawn from a uniform binary distribution; the
expected result comes from the FP64 golden model rounded to the destination.

    python -m fpnew_tb.rtl_tb.gen_stimuli [nr_of_stimuli] [operation] [src_fmt] [src2_fmt] [dst_fmt]

Valid operations: SDOTP, VSUM, EXVSUM, FMADD
Valid formats:    FP32, FP16, AL16, FP8, AL8
"""
import argparse
import sys

import numpy as np

from fpnew_tb.errors import FpnewTbError, IOFailure
from fpnew_tb.models.formats import name_to_descriptor
from fpnew_tb.models.ops import Operation, OperandFormats
from fpnew_tb.rtl_tb.lanes import DEFAULT_CONFIG, DatapathConfig, assemble, check_formats

HEADER = "//operation op_mod src_fmt src2_fmt dst_fmt operands exp_result"


def resolve_formats(op: Operation, src=None, src2=None, dst=None) -> OperandFormats:
    """Operation defaults unless all three format names are given."""
    if src is None or src2 is None or dst is None:
        return op.spec.defaults
    return OperandFormats(name_to_descriptor(src), name_to_descriptor(src2), name_to_descriptor(dst))


def iter_records(n: int, op: Operation, fmts: OperandFormats, rng,
                 cfg: DatapathConfig = DEFAULT_CONFIG, op_mod: bool = False):
    for k in range(n):
        yield assemble(k, op, fmts, rng, cfg, op_mod)


def generate(path, n: int = 10, op: Operation = Operation.SDOTP, fmts: OperandFormats = None,
             rng=None, cfg: DatapathConfig = DEFAULT_CONFIG, op_mod: bool = False) -> int:
    """Write the header and `n` records to `path`; returns the record count."""
    if fmts is None:
        fmts = op.spec.defaults
    if rng is None:
        rng = np.random.default_rng()

    check_formats(fmts, cfg)
    records = iter_records(n, op, fmts, rng, cfg, op_mod)
    count = 0
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(HEADER + "\n")
            for rec in records:
                f.write(rec.to_line() + "\n")
                count += 1
    except OSError as e:
        raise IOFailure(f"Cannot write stimuli file {str(path)!r}: {e.strerror or e}") from e
    return count


def main(argv=None):
    ap = argparse.ArgumentParser(description="Generate a stimuli file for the mixed-precision FPU testbench.")
    ap.add_argument("nr_of_stimuli", nargs="?", type=int, default=10)
    ap.add_argument("operation", nargs="?", default=Operation.SDOTP.value,
                    choices=[op.value for op in Operation])
    ap.add_argument("src_fmt", nargs="?")
    ap.add_argument("src2_fmt", nargs="?")
    ap.add_argument("dst_fmt", nargs="?")
    args = ap.parse_args(argv)

    cfg = DEFAULT_CONFIG
    try:
        op = Operation.parse(args.operation)
        # formats resolve before the output file is touched
        fmts = resolve_formats(op, args.src_fmt, args.src2_fmt, args.dst_fmt)
        generate(cfg.stimuli_path, args.nr_of_stimuli, op, fmts, np.random.default_rng(), cfg)
    except FpnewTbError as e:
        sys.exit(f"error: {e}")

    print(f"Finished {cfg.width}-bit stimuli file generation.")


if __name__ == "__main__":
    main()
