"""
SOSDash Command Line Interface (CLI)
====================================

This file provides the interactive terminal program you run like:

    python -m sosdash.cli                         (live API, default URL)
    python -m sosdash.cli --url "https://.../api/sos"
    python -m sosdash.cli --snapshot "export.json"

It demonstrates:
- Argument parsing (argparse)
- A REPL loop (Read-Eval-Print Loop) for commands
- Mapping user commands to dashboard methods (filters, rollups, export)

The CLI never writes back to the API. It fetches (or loads) once and works
on an in-memory record collection; `refresh` fetches again from scratch.
"""

from __future__ import annotations
import argparse, logging, shlex
from .aggregate import overall_average_hours
from .config import settings
from . import timeline
from .engine import Dashboard
from .fetcher import FetchProgress, FetchState
from .filters import filter_options
from .loader import load_snapshot
from .models import SOURCE_LABELS

HELP_TEXT = """
SOSDash commands (grouped)
--------------------------

1) View / Inspect
   help
   stats                            (headline numbers for the current view)
   progress                         (fetch state of the last refresh)
   show [n]                         (first n records in view)
   values <field> [prefix]          (example: values district Col)

2) Rollups
   districts [n]                    (district summary table)
   types                            (emergency-type counts per district)
   matrix                           (district x emergency type points)
   sources [status|priority|type|share]  (per-source comparison or breakdown)
   response [n]                     (average response time by district)
   timeline <mode> [all|7d|24h]     (daily, hourly, cumulative, rescues,
                                     status, priority, sources, districts)

3) Filtering
   filter <field> "<value>"         (example: filter district "Colombo")
     fields: district, status, priority, emergency_type, search,
             has_children, has_elderly, has_medical_emergency (any|yes|no)
   clear
   undo
   redo

4) Data
   refresh                          (re-fetch every page from the API)

5) Export / Report (current view)
   export csv "<out.csv>"
   export json "<out.json>"
   report "<out.docx>"

6) Exit
   quit
"""

_LOGGED = ("filter", "clear", "undo", "redo", "refresh")


def _print_progress(p: FetchProgress) -> None:
    if p.state is FetchState.FETCHING and p.current_page:
        print(f"  page {p.current_page}/{p.total_pages}: {p.records_fetched:,}/{p.total_expected:,} records")
    elif p.state is FetchState.COMPLETE:
        print(f"Fetched {p.records_fetched:,} records in {p.current_page} pages.")
    elif p.state is FetchState.ERROR:
        print(f"Fetch failed: {p.error}. Keeping {p.records_fetched:,} records from earlier pages.")


def main():
    """Entry point for the SOSDash CLI.

    1) Fetch from the API (or load a snapshot)
    2) Build the dashboard view
    3) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(description="SOS case analytics dashboard (terminal)")
    src = ap.add_mutually_exclusive_group()
    src.add_argument("--url", default=None, help=f"SOS API endpoint (default {settings.api_url})")
    src.add_argument("--snapshot", default=None, help="Saved export (.json/.csv/.xlsx) instead of the live API")
    ap.add_argument("--page-size", type=int, default=settings.page_size, help="Records per API page")
    args = ap.parse_args()

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.snapshot:
        print("Loading snapshot...")
        dash = Dashboard.from_records(load_snapshot(args.snapshot), source_label=args.snapshot)
    else:
        dash = Dashboard.from_api(args.url, page_size=args.page_size)
        print(f"Fetching from {dash.source_label} ...")
        _print_progress(_refresh(dash))

    print(f"Loaded {dash.view.records_total:,} records. Type 'help' for commands.")
    while True:
        try:
            line = input("sos> ")
            # Keep a lightweight log of state-changing commands for the report.
            stripped = line.strip()
            if stripped and stripped.split()[0].lower() in _LOGGED:
                dash.command_log.append(stripped)
        except EOFError:
            break
        if not line.strip():
            continue
        if line.strip().lower() in ("quit", "exit"):
            break
        try:
            handle(dash, line)
        except Exception as e:
            print(f"Error: {e}")


def _refresh(dash: Dashboard) -> FetchProgress:
    if dash.loop is None:
        raise RuntimeError("refresh needs the live API (started with --snapshot)")
    prev = dash.loop.on_progress

    def _show(p: FetchProgress) -> None:
        prev(p)
        if p.state is FetchState.FETCHING:
            _print_progress(p)

    dash.loop.on_progress = _show
    try:
        return dash.refresh()
    finally:
        dash.loop.on_progress = prev


def handle(dash: Dashboard, line: str) -> None:
    """Handle one CLI command line.

    This parses the command and calls the appropriate dashboard method.
    """
    parts = shlex.split(line)
    cmd = parts[0].lower()
    view = dash.view

    if cmd == "help":
        print(HELP_TEXT)
        return

    if cmd == "stats":
        t = view.totals
        print(f"Records in view: {len(view.filtered):,} of {view.records_total:,} | Districts: {len(view.summaries)}")
        print(f"Cases={t.total:,} People={t.total_people:,} Critical={t.critical:,} Pending={t.pending:,} "
              f"Verified={t.verified:,} Rescued={t.rescued:,} Missing={t.missing:,} CannotContact={t.cannot_contact:,}")
        active = dash.filters.active()
        if active:
            print("Filters: " + ", ".join(f"{k}={v}" for k, v in active.items()))
        return

    if cmd == "progress":
        p = dash.last_progress
        if p is None:
            print("No fetch has run (snapshot mode).")
        else:
            print(f"State={p.state.value} page={p.current_page}/{p.total_pages} "
                  f"records={p.records_fetched:,}/{p.total_expected:,}" + (f" error={p.error}" if p.error else ""))
        return

    if cmd == "refresh":
        _print_progress(_refresh(dash))
        return

    if cmd == "undo":
        print("Undone." if dash.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if dash.redo() else "Nothing to redo.")
        return

    if cmd == "clear":
        dash.clear_filters()
        print(f"Filters cleared. Size={len(dash.view.filtered):,}")
        return

    if cmd == "filter":
        if len(parts) < 3:
            raise ValueError('usage: filter <field> "<value>"')
        name, value = parts[1].lower(), parts[2]
        dash.set_filter(name, value)
        print(f"Filtered {name}={value}. Size={len(dash.view.filtered):,}")
        return

    if cmd == "values":
        field = parts[1].lower() if len(parts) >= 2 else ""
        prefix = parts[2] if len(parts) >= 3 else ""
        opts = filter_options(dash.records)
        if field not in opts:
            raise ValueError("values field must be: " + " | ".join(opts))
        vals = opts[field]
        if prefix:
            p = prefix.lower()
            vals = [v for v in vals if v.lower().startswith(p)]
        for v in vals[:50]:
            print(v)
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd == "districts":
        n = int(parts[1]) if len(parts) >= 2 else 20
        print(f"{'District':<20} {'Cases':>7} {'People':>7} {'Pend':>6} {'Verif':>6} {'Resc':>6} {'Crit':>6} {'Miss':>6}")
        for s in list(view.summaries[:n]) + [view.totals]:
            print(f"{s.district[:20]:<20} {s.total:>7} {s.total_people:>7} {s.pending:>6} {s.verified:>6} "
                  f"{s.rescued:>6} {s.critical:>6} {s.missing:>6}")
        return

    if cmd == "types":
        print(f"{'District':<20} {'Trap':>6} {'Food':>6} {'Med':>6} {'Resc':>6} {'Miss':>6} {'Other':>6}")
        for s in list(view.summaries) + [view.totals]:
            print(f"{s.district[:20]:<20} {s.trapped:>6} {s.food_water:>6} {s.medical:>6} "
                  f"{s.rescue_assistance:>6} {s.missing_person:>6} {s.other:>6}")
        return

    if cmd == "matrix":
        for p in dash.district_type_matrix():
            print(f"{p.district} | {p.emergency_type} | requests={p.request_count} people={p.people_sum}")
        return

    if cmd == "sources":
        if len(parts) >= 2 and parts[1].lower() == "share":
            for source, count, pct in dash.source_distribution():
                print(f"{SOURCE_LABELS.get(source, source)}: {count} ({pct}%)")
            return
        if len(parts) >= 2:
            for b in dash.source_breakdown(parts[1].lower()):
                counts = ", ".join(f"{k}={v}" for k, v in sorted(b.counts.items()))
                print(f"{SOURCE_LABELS.get(b.source, b.source)} ({b.total}): {counts}")
            return
        for s in dash.source_comparison():
            print(f"{SOURCE_LABELS.get(s.source, s.source)}: requests={s.total} people={s.people} "
                  f"avg_people={s.avg_people} critical={s.critical} rescued={s.rescued} "
                  f"rescue_rate={s.rescue_rate}% pending={s.pending}")
        return

    if cmd == "response":
        n = int(parts[1]) if len(parts) >= 2 else settings.response_time_limit
        rows = dash.response_times(limit=n)
        for r in rows:
            print(f"{r.district}: {r.avg_hours}h ({r.count} resolved)")
        print(f"Average across districts: {overall_average_hours(rows)}h")
        return

    if cmd == "timeline":
        mode = parts[1].lower() if len(parts) >= 2 else "daily"
        window = parts[2].lower() if len(parts) >= 3 else "all"
        buckets = dash.series(mode, window)
        for b in buckets:
            if mode == "cumulative":
                print(f"{b.key}: +{b.count} (total {b.cumulative})")
            elif mode == "rescues":
                print(f"{b.key}: rescued={b.rescued} completed={b.completed}")
            elif isinstance(b, timeline.BreakdownBucket):
                print(f"{b.key}: " + ", ".join(f"{k}={v}" for k, v in sorted(b.counts.items())))
            else:
                print(f"{b.key}: {b.count}")
        if mode in ("daily", "hourly") and buckets:
            print(f"Peak: {timeline.peak(buckets)}")
        return

    if cmd == "show":
        n = int(parts[1]) if len(parts) >= 2 else 10
        for r in view.filtered[:n]:
            print(f"[{r.reference_number or r.id}] {r.district or '-'} | {r.status or '-'} | {r.priority or '-'} | "
                  f"{r.emergency_type or '-'} | people={r.number_of_people} | {r.created_at or '-'}")
        return

    if cmd == "report":
        from .report import generate_docx_report
        if len(parts) < 2:
            raise ValueError('usage: report "<out.docx>"')
        generate_docx_report(dash, parts[1])
        print(f"Report written to {parts[1]}")
        return

    if cmd == "export":
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt, out_path = parts[1].lower(), parts[2]
        if not view.summaries:
            print("Nothing to export: current view is empty.")
            return
        if fmt == "csv":
            dash.export_csv(out_path)
            print(f"Exported CSV to {out_path}")
            return
        if fmt == "json":
            dash.export_json(out_path)
            print(f"Exported JSON to {out_path}")
            return
        print("Unknown export format. Use: csv or json")
        return

    print("Unknown command. Type 'help'.")


if __name__ == "__main__":
    main()
