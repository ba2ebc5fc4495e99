"""
Plot a model sweep to PNG, the way a <riskgraph> chart would draw it.

Runs against the in-process app with the demo pages loaded, so no server
is needed.

Example (from repo root):
    python scripts/plot_model_sweep.py --page Risks --model Driving \
        --param miles_per_year --min 0 --max 50000 --step 5000 \
        --yaxis "{yearly}" --set deaths_per_mile=7.3e-9 --set vehicle=Car

No unicode (Windows charmap).
"""

import argparse
import os
import sys

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..'))

from app import create_app
from riski.errors import CycleError, EvaluationError, ValidationError


def parse_assignments(items):
    """['a=1', 'b=x'] -> {'a': 1.0, 'b': 'x'}; numeric values become floats."""
    values = {}
    for item in items or []:
        key, sep, value = item.partition('=')
        if not sep or not key.strip():
            raise SystemExit('--set expects key=value, got %r' % item)
        try:
            values[key.strip()] = float(value)
        except ValueError:
            values[key.strip()] = value
    return values


def main():
    ap = argparse.ArgumentParser(description="Sweep a RISKI model and plot it.")
    ap.add_argument("--page", default="Risks", help="Page context (title)")
    ap.add_argument("--model", required=True, help="Model reference")
    ap.add_argument("--param", required=True, help="Parameter to sweep")
    ap.add_argument("--min", type=float, required=True)
    ap.add_argument("--max", type=float, required=True)
    ap.add_argument("--step", type=float, required=True)
    ap.add_argument("--yaxis", required=True, help="Y-axis parameter, e.g. {risk}")
    ap.add_argument("--set", action="append", metavar="KEY=VALUE",
                    help="Page-state value (repeatable)")
    ap.add_argument("--logy", action="store_true", help="Logarithmic y axis")
    ap.add_argument("--out", default="scripts/model_sweep.png")
    args = ap.parse_args()

    app = create_app()
    graph = app.extensions["riski"]["registry"].get("graph")
    try:
        config = graph.validate({
            "model": args.model,
            "title": args.page,
            "sweptParam": args.param,
            "min": args.min,
            "max": args.max,
            "step": args.step,
            "pagestate": parse_assignments(args.set),
            "yAxis": args.yaxis,
        })
        result = graph.compute(config)
    except (ValidationError, CycleError, EvaluationError) as e:
        print('Sweep failed: %s' % e)
        return 1

    x = np.asarray(result["labels"], dtype=float)
    fig, ax = plt.subplots(figsize=(8, 5))
    for ds in result["datasets"]:
        y = np.asarray(ds["data"], dtype=float)
        ax.plot(x, y, '-', linewidth=2, color=ds.get("color"), label=ds["label"])
        i_max = int(np.argmax(y))
        ax.scatter([x[i_max]], [y[i_max]], s=30, color='black', zorder=5)
        print('%s: min %.4g, max %.4g at %s=%g' % (
            ds["label"], float(np.min(y)), float(y[i_max]), args.param, x[i_max]))

    ax.set_xlabel(args.param)
    ax.set_ylabel(args.yaxis)
    ax.set_title('%s: %s over %s' % (args.model, args.yaxis, args.param))
    if args.logy:
        ax.set_yscale('log')
    ax.legend(loc='best', fontsize=8)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(args.out, dpi=150, bbox_inches='tight')
    plt.close()
    print('Saved: %s' % args.out)
    return 0


if __name__ == '__main__':
    sys.exit(main())
