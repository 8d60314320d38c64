"""
stormstats Command Line Interface (CLI)
=======================================

This file provides the interactive terminal program you run like:

    stormstats --data data/Storm_Data_Sums.json
    stormstats --data https://example.org/vis-final/data/Storm_Data_Sums.json

It demonstrates:
- Argument parsing (argparse) on top of environment-based Settings
- A REPL loop (Read-Eval-Print Loop) for commands
- Mapping user commands to dashboard setters, then printing the re-run pipeline

The dataset is loaded exactly once. Every command works on the in-memory
records and the engine's current filters.
"""

from __future__ import annotations
import argparse, logging, shlex, sys
from typing import List, Optional, Sequence

from .config import STORM_EVENT_CATEGORIES, Settings
from .engine import StormDashboard
from .errors import DatasetLoadError, StormStatsError
from .formatting import RadarData, axis_format, choose_hint, format_value
from .loader import load_storm_json
from .models import Metric, Series

logger = logging.getLogger(__name__)

HELP_TEXT = """
stormstats commands (grouped)
-----------------------------

1) View / Inspect
   help
   stats
   values state|event [prefix]      (example: values state tex)
   summary                          headline numbers for the current filters

2) Filters
   region "<State>" | region all    (example: region "Texas")
   event "<Event>" | event all      (example: event "Winter Storm")
   years <y1> <y2> | years all      (example: years 1990 2010)
   metric <METRIC>                  (example: metric DEATHS_TOTAL_COUNT)
   top <n>                          number of leading states (default 3)
   reset

3) Charts (as text)
   radar [states|storms]            top states by metric / by storm type
   series [storms|states] [rows]    yearly values, newest first
   heatmap [rows]                   one value per state, highest first

4) Export / Report (current selection)
   export csv "<out.csv>"
   export json "<out.json>"
   report "<out.docx>"

5) History
   undo
   redo

6) Benchmarking
   bench [rounds]

7) Exit
   quit
"""

METRICS_HELP = "Metrics: " + ", ".join(m.value for m in Metric)


def setup_logging(level: str = "INFO") -> None:
    """Console logging for the CLI. Library modules only create loggers."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
    ))
    root.addHandler(handler)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stormstats", description="U.S. severe weather statistics explorer")
    ap.add_argument("--data", default=settings.data_source,
                    help="Path or http(s) URL of the storm summary JSON (env STORMSTATS_DATA)")
    ap.add_argument("--log-level", default=settings.log_level,
                    help="DEBUG, INFO, WARNING... (env STORMSTATS_LOG_LEVEL)")
    ap.add_argument("--top", type=int, default=settings.top_n,
                    help="Number of leading states (env STORMSTATS_TOP_N)")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the stormstats CLI.

    1) Load dataset
    2) Build the dashboard engine (indices are built on the way)
    3) Start an interactive REPL
    """
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)
    setup_logging(args.log_level)

    try:
        records = load_storm_json(args.data, timeout=settings.http_timeout)
    except DatasetLoadError as e:
        logger.error("%s", e)
        return 1

    engine = StormDashboard(records=records, dataset_path=args.data)
    if args.top != engine.state.top_n:
        engine.set_top_n(args.top)
    print(f"Loaded {len(records)} records. Type 'help' for commands.")

    while True:
        try:
            line = input("storms> ")
        except EOFError:
            break
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("quit", "exit"):
            break
        cmd0 = stripped.split()[0].lower()
        if cmd0 in ("region", "event", "years", "metric", "top", "reset", "undo", "redo"):
            engine.command_log.append(stripped)
        try:
            handle(engine, stripped)
        except (StormStatsError, ValueError, IndexError, OSError, ImportError) as e:
            print(f"Error: {e}")
    return 0


def handle(engine: StormDashboard, line: str) -> None:
    """Handle one CLI command line."""
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP_TEXT)
        print(METRICS_HELP)
        return

    if cmd == "stats":
        s = engine.state
        years = f"{s.year_range[0]}-{s.year_range[1]}" if s.year_range else "all"
        print(f"Records: {len(engine.records)} | in selection: {len(engine.filtered())}")
        print(f"States: {len(engine.idx.by_state)} | Events: {len(engine.idx.by_event)} | Years: {len(engine.idx.years_sorted)}")
        print(f"Filters: years={years} region={s.region} event={s.event} metric={s.metric.value} top={s.top_n}")
        return

    if cmd == "values":
        field = parts[1].lower()
        prefix = parts[2].lower() if len(parts) >= 3 else ""
        if field == "state":
            vals = engine.idx.states()
        elif field == "event":
            vals = list(STORM_EVENT_CATEGORIES)
        else:
            raise ValueError("values field must be: state | event")
        vals = [v for v in vals if v.lower().startswith(prefix)]
        for v in vals[:60]:
            print(v)
        if len(vals) > 60:
            print(f"... ({len(vals)} total, showing 60)")
        return

    if cmd in ("region", "event") and len(parts) < 2:
        raise ValueError(f"Usage: {cmd} \"<name>\" | {cmd} all")

    if cmd == "region":
        s = engine.set_region(" ".join(parts[1:]))
        print(f"Region={s.region}.")
        return

    if cmd == "event":
        s = engine.set_event(" ".join(parts[1:]))
        print(f"Event={s.event}.")
        return

    if cmd == "years":
        if len(parts) == 2 and parts[1].lower() == "all":
            engine.set_years()
            print("Year filter cleared.")
            return
        s = engine.set_years(int(parts[1]), int(parts[2]))
        print(f"Years {s.year_range[0]}-{s.year_range[1]}.")
        return

    if cmd == "metric":
        s = engine.set_metric(parts[1])
        print(f"Metric={s.metric.value} ({s.metric.label}).")
        return

    if cmd == "top":
        s = engine.set_top_n(int(parts[1]))
        print(f"Showing top {s.top_n} states.")
        return

    if cmd == "reset":
        engine.reset()
        print("Filters reset.")
        return

    if cmd == "undo":
        print("Undone." if engine.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if engine.redo() else "Nothing to redo.")
        return

    if cmd == "summary":
        v = engine.view()
        print(f"Deaths: {format_value(v.summary.deaths, choose_hint(v.summary.deaths))}")
        print(f"Storms: {format_value(v.summary.event_count, choose_hint(v.summary.event_count))}")
        print(f"Property damage: {format_value(v.summary.property_damage, choose_hint(v.summary.property_damage))}")
        return

    if cmd == "radar":
        kind = parts[1].lower() if len(parts) >= 2 else "states"
        v = engine.view()
        if kind == "states":
            _print_radar(v.radar_states)
        elif kind == "storms":
            _print_radar(v.radar_storms)
        else:
            raise ValueError("radar kind must be: states | storms")
        if v.selection_missing:
            print(f"Note: {engine.state.region} has no data for the current filters.")
        return

    if cmd == "series":
        kind = parts[1].lower() if len(parts) >= 2 else "storms"
        n = int(parts[2]) if len(parts) >= 3 else 5
        v = engine.view()
        if kind == "storms":
            _print_series(v.storm_series, engine.state.metric, n)
        elif kind == "states":
            _print_series(v.state_series, engine.state.metric, n)
        else:
            raise ValueError("series kind must be: storms | states")
        return

    if cmd == "heatmap":
        n = int(parts[1]) if len(parts) >= 2 else 10
        cells = sorted(engine.view().heatmap, key=lambda c: c.value, reverse=True)
        for c in cells[:n]:
            print(f"{c.axis:<24} {c.formatted():>10}")
        return

    if cmd == "export":
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt, out_path = parts[1].lower(), parts[2]
        if fmt == "csv":
            n = engine.export_csv(out_path)
        elif fmt == "json":
            n = engine.export_json(out_path)
        else:
            print("Unknown export format. Use: csv or json")
            return
        print(f"Exported {n} records to {out_path}")
        return

    if cmd == "report":
        from .report import ReportConfig, generate_docx_report
        path = parts[1]
        cfg = ReportConfig(command_log=list(engine.command_log), dataset_name=engine.dataset_path or "")
        generate_docx_report(engine.view(), path, config=cfg)
        print(f"Report written to {path}")
        return

    if cmd == "bench":
        rounds = int(parts[1]) if len(parts) >= 2 else 30
        res = engine.bench(rounds=rounds)
        print(f"naive={res['naive_ms']:.3f}ms | indexed={res['indexed_ms']:.3f}ms")
        return

    print("Unknown command. Type 'help'.")


def _print_radar(radar: RadarData) -> None:
    if not radar:
        print("(no data)")
        return
    for entry in radar:
        group = entry[0].group if entry else "?"
        cells = " | ".join(f"{v.axis}={v.formatted()}" for v in entry)
        print(f"{group}: {cells}")


def _print_series(series: List[Series], metric: Metric, rows: int) -> None:
    if not series:
        print("(no data)")
        return
    peak = max((r.metric(metric) for s in series for r in s.values), default=0)
    fmt = axis_format(peak)
    for s in series:
        recent = ", ".join(f"{r.year}={fmt(r.metric(metric))}" for r in s.values[:rows])
        print(f"{s.key} ({len(s.values)} years): {recent}")


if __name__ == "__main__":
    sys.exit(main())
