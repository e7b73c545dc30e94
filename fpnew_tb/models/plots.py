import argparse, math, numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from fpnew_tb.rtl_tb.lanes import StimulusRecord

CLASSES = ("zero", "subnormal", "normal", "inf", "nan")


def classify(x: float, desc) -> str:
    if math.isnan(x):
        return "nan"
    if math.isinf(x):
        return "inf"
    if x == 0.0:
        return "zero"
    bias = (1 << (desc.exp_bits - 1)) - 1
    return "subnormal" if abs(x) < 2.0 ** (1 - bias) else "normal"


def load_results(path):
    """Expected-result lanes of every record in a stimuli file."""
    values, classes = [], []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip() or line.startswith("//"):
                continue
            rec = StimulusRecord.from_line(line)
            for lane in rec.result_lanes():
                x = lane.to_float()
                values.append(x)
                classes.append(classify(x, lane.desc))
    return np.array(values, dtype=np.float64), classes


def plot_report(path, outdir):
    values, classes = load_results(path)
    if values.size == 0:
        print("No stimuli found")
        return False

    # Result class counts
    counts = [classes.count(c) for c in CLASSES]
    plt.figure()
    plt.bar(CLASSES, counts)
    plt.title("Expected Result Classes")
    plt.ylabel("Count")
    plt.savefig(f"{outdir}/result_classes.png", bbox_inches='tight')
    plt.close()

    # Magnitude histogram of finite nonzero results
    finite = values[np.isfinite(values) & (values != 0.0)]
    plt.figure()
    plt.hist(np.log2(np.abs(finite)) if finite.size else [0], bins=100)
    plt.title("Expected Result Magnitude")
    plt.xlabel("log2 |result|")
    plt.ylabel("Count")
    plt.savefig(f"{outdir}/result_log2_hist.png", bbox_inches='tight')
    plt.close()
    return True


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument('--in', dest='inp', required=True)
    ap.add_argument('--out', dest='outdir', required=True)
    args = ap.parse_args(argv)
    plot_report(args.inp, args.outdir)


if __name__ == "__main__":
    main()
