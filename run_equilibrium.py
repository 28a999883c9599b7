# --- Console report for the two-firm equilibrium ---
import argparse
import sys
import warnings

import sympy

import walras_config as cfg
from equilibrium_pipeline import bind_endowment, run_pipeline
from walras_errors import (AmbiguousPositivity, EquilibriumError,
                           EquilibriumWarning, MarketNotClearing)


def format_report(report):
    """Render the fixed-format report (prices, allocation, market clearing, welfare) as a string."""
    sol = report.solution
    welfare = report.welfare
    k_label = f"k = {report.k_value}" if report.k_value is not None else "k symbolic"
    lines = []
    lines.append("=" * 72)
    lines.append(f"WALRASIAN EQUILIBRIUM: 2 firms, 2 goods, 1 input, 2 consumers ({k_label})")
    lines.append("=" * 72)

    lines.append("\n[PRICES]  (numeraire pz = {})".format(report.model.numeraire))
    lines.append(f"  px      = {sol.px}")
    lines.append(f"  py      = {sol.py}")
    lines.append(f"  z_alpha = {sol.z_alpha}")
    lines.append(f"  z_beta  = {sol.z_beta}")
    lines.append(f"  branch {sol.branch_index} of {len(report.branches)}"
                 + ("  (FALLBACK)" if sol.fallback else ""))
    for w in sol.warnings:
        if isinstance(w, AmbiguousPositivity):
            lines.append(f"  WARNING: {w}")

    lines.append("\n[ALLOCATION]")
    lines.append(f"  Income A = {welfare.incomes['A']}")
    lines.append(f"  Income B = {welfare.incomes['B']}")
    for name in ("xA", "yA", "xB", "yB"):
        lines.append(f"  {name:<8} = {welfare.allocations[name]}")

    lines.append("\n[MARKET CLEARING]")
    if welfare.market_clears:
        lines.append("  Excess demand for Y = 0  (Walras' Law holds)")
    else:
        lines.append(f"  Excess demand for Y = {welfare.excess_demand_y}")
        for w in welfare.warnings:
            if isinstance(w, MarketNotClearing):
                lines.append(f"  WARNING: {w}")

    lines.append("\n[WELFARE]")
    lines.append(f"  U_A       = {welfare.utility_a}")
    lines.append(f"  U_B       = {welfare.utility_b}")
    lines.append(f"  U_A / U_B = {welfare.welfare_ratio}")
    if report.k_value is not None and welfare.welfare_ratio.is_number:
        lines.append(f"            ~ {sympy.N(welfare.welfare_ratio, 6)}")
    return "\n".join(lines)


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Solve and verify the two-firm Walrasian equilibrium.")
    parser.add_argument("--k", type=float, default=None, help="Bind the endowment k to this positive value")
    parser.add_argument("--timeout", type=float, default=cfg.SOLVER_TIMEOUT,
                        help="Seconds allowed for the symbolic solve")
    parser.add_argument("--no-sanity-check", action="store_true",
                        help="Skip the numeric check of a fallback branch")
    parser.add_argument("--grid", type=float, nargs=3, metavar=("START", "STOP", "NUM"), default=None,
                        help="Tabulate the equilibrium over a grid of k values")
    parser.add_argument("--csv", default=None, help="Write the k-grid table to this CSV file")
    parser.add_argument("--plot", default=None, help="Save a plot of the k-grid table to this file")
    parser.add_argument("--quiet", action="store_true", help="Do not print stage progress")
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    verbose = not args.quiet

    try:
        with warnings.catch_warnings():
            # warnings are shown inside the report instead
            warnings.simplefilter("ignore", EquilibriumWarning)
            report = run_pipeline(timeout=args.timeout, sanity_check=not args.no_sanity_check,
                                  verbose=verbose)
            bound = report if args.k is None else bind_endowment(report, args.k)
        print(format_report(bound))
        if args.grid is not None or args.csv or args.plot:
            write_comparative_statics(report, args)
    except EquilibriumError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def write_comparative_statics(report, args):
    from comparative_statics import endowment_table, k_grid, plot_endowment_table

    start, stop, num = args.grid if args.grid is not None else cfg.K_GRID
    table = endowment_table(report, k_grid(start, stop, int(num)))
    print("\n[COMPARATIVE STATICS]")
    print(table.to_string(float_format=lambda v: f"{v:.4f}"))
    if args.csv:
        table.to_csv(args.csv)
        print(f"Table written to {args.csv}")
    if args.plot:
        fig = plot_endowment_table(table)
        fig.savefig(args.plot)
        print(f"Plot saved to {args.plot}")


if __name__ == "__main__":
    sys.exit(main())
