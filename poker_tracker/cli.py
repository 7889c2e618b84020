from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from typing import Optional, Sequence

from loguru import logger
from PyQt6.QtCore import QCoreApplication

from poker_tracker import paths
from poker_tracker.app import PokerTrackerApp
from poker_tracker.config.settings import LOG_FILE, LOG_LEVEL
from poker_tracker.core.analytics import remaining_text
from poker_tracker.core.errors import PokerTrackerError
from poker_tracker.core.export import DateFormat, ExportOptions
from poker_tracker.core.logger import setup_logger
from poker_tracker.core.models import Plan
from poker_tracker.core.utils import format_duration_short, format_hms, format_remaining
from poker_tracker.storage.kv_store import JSONFileStore, SQLiteStore


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _build_app(args) -> PokerTrackerApp:
    if args.json_store:
        store = JSONFileStore(args.json_store)
    else:
        store = SQLiteStore(args.db) if args.db else None
    app = PokerTrackerApp(store=store)
    app.startup()
    return app


# ---------- Команди сесії ----------

def _cmd_start(app: PokerTrackerApp, args) -> int:
    result = app.engine.start_session()
    if not result.ok:
        print(f"Not started: {result.status.value}")
        return 1
    print(f"Started ({app.engine.current_period_type})")
    return 0


def _cmd_toggle(app: PokerTrackerApp, args) -> int:
    result = app.engine.toggle_period(args.period)
    print(f"{result.status.value}: now {app.engine.current_period_type or 'idle'}")
    return 0 if result.ok else 1


def _cmd_stop(app: PokerTrackerApp, args) -> int:
    result = app.engine.stop_session()
    if not result.ok:
        print(f"Not stopped: {result.status.value} {result.message}".rstrip())
        return 1

    done = app.engine.complete_session(hands_played=args.hands, notes=args.notes)
    if not done.ok:
        print(f"Session not saved: {done.status.value} {done.message}".rstrip())
        return 2
    print(f"Stopped: {format_duration_short(result.session.duration_sec)}")
    return 0


def _cmd_status(app: PokerTrackerApp, args) -> int:
    if app.engine.is_running:
        print(f"Running: {app.engine.current_period_type}, {format_hms(app.engine.elapsed_time)}")
    else:
        print("Idle")

    goals = app.settings.get("goals") or {}
    stats = app.aggregation.today_stats(date.today(), goals)
    day = stats["day"]
    print(f"Today: {day.session_count} session(s), play {format_hms(day.play_sec)}, hands {day.hands_played}")
    if day.plan_remaining_sec is not None:
        print(f"Plan remaining: {remaining_text(day)}")
    return 0


def _cmd_add(app: PokerTrackerApp, args) -> int:
    session = app.editor.add_quick(args.day, args.duration, hands=args.hands, notes=args.notes)
    print(f"Added {session.id}: {format_hms(session.duration_sec)}")
    return 0


# ---------- Перегляд, плани ----------

def _cmd_list(app: PokerTrackerApp, args) -> int:
    opts = app.settings.get("list_view_options") or {}
    mode = args.range or opts.get("date_range_mode", "month")
    descending = opts.get("sort_order", "desc") == "desc"
    start = args.start or (date.fromisoformat(opts["custom_start_date"]) if opts.get("custom_start_date") else None)
    end = args.end or (date.fromisoformat(opts["custom_end_date"]) if opts.get("custom_end_date") else None)

    days = app.aggregation.summarize_mode(mode, date.today(), start, end, descending=descending)
    fmt = DateFormat(
        show_day_of_week=bool(opts.get("show_day_of_week")),
        show_month=bool(opts.get("show_month", True)),
        show_year=bool(opts.get("show_year")),
    )
    for d in days:
        if d.is_off_day and not d.has_sessions:
            print(f"{fmt.render(d.day):<20} off")
            continue
        print(
            f"{fmt.render(d.day):<20} {d.session_count:>2}  {format_hms(d.total_sec)}  "
            f"play {format_hms(d.play_sec)}  hands {d.hands_played:>5}  "
            f"h/h {d.hands_per_hour:>4}  {remaining_text(d)}"
        )

    if opts.get("show_totals_row") and days:
        t = app.aggregation.totals(days)
        print(
            f"Total: {t.playing_days} day(s), {t.session_count} session(s), "
            f"play {format_remaining(t.play_sec)}, hands {t.hands_played}, avg h/h {t.avg_hands_per_hour}"
        )
    return 0


def _cmd_plan(app: PokerTrackerApp, args) -> int:
    if args.off is not None:
        app.plans.set_off_day(args.day, args.off)
    if args.hours is not None or args.hands is not None:
        app.plans.set_plan(args.day, Plan(hours=args.hours or 0, hands=args.hands or 0))
    plan = app.plans.get_plan(args.day)
    print(
        f"{args.day.isoformat()}: plan {plan.to_dict() if plan else '-'}, "
        f"off={app.plans.is_off_day(args.day)}"
    )
    return 0


# ---------- Експорт / імпорт ----------

def _cmd_export(app: PokerTrackerApp, args) -> int:
    options = ExportOptions(mode=args.mode, remaining_format=args.remaining, show_totals=not args.no_totals)
    path = app.exporter.export_file(args.out, args.start, args.end, options)
    print(f"OK: exported to {path}")
    return 0


def _cmd_import(app: PokerTrackerApp, args) -> int:
    report = app.reconciler.import_file(args.file)
    print(
        f"OK: imported {report.imported}, duplicates {report.duplicates}, "
        f"invalid {report.invalid}, skipped rows {report.skipped_rows}"
    )
    return 0


def _cmd_settings(app: PokerTrackerApp, args) -> int:
    if args.action == "export":
        target = args.file or str(paths.data_file("settings.json"))
        app.settings.export_to_file(target)
        print(f"OK: settings exported to {target}")
    elif args.action == "import":
        app.settings.import_from_file(args.file)
        print(f"OK: settings imported from {args.file}")
    else:
        print(json.dumps(app.settings.export_document(), ensure_ascii=False, indent=2))
    return 0


def _cmd_reset(app: PokerTrackerApp, args) -> int:
    if not args.yes:
        print("Refusing to reset without --yes")
        return 1
    app.reset_all_data()
    print("OK: all data reset")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="poker-tracker", description="Poker session tracker")
    p.add_argument("--db", default=None, help="path to sqlite db file")
    p.add_argument("--json-store", default=None, help="use a single JSON file instead of sqlite")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("start", help="start a session").set_defaults(func=_cmd_start)

    p_toggle = sub.add_parser("toggle", help="switch the current period")
    p_toggle.add_argument("period", choices=["play", "select", "break"])
    p_toggle.set_defaults(func=_cmd_toggle)

    p_stop = sub.add_parser("stop", help="stop the running session")
    p_stop.add_argument("--hands", type=int, default=0)
    p_stop.add_argument("--notes", default="")
    p_stop.set_defaults(func=_cmd_stop)

    sub.add_parser("status", help="current session and today's numbers").set_defaults(func=_cmd_status)

    p_add = sub.add_parser("add", help="add a finished session manually")
    p_add.add_argument("day", type=_parse_day)
    p_add.add_argument("duration", help="H:MM")
    p_add.add_argument("--hands", type=int, default=0)
    p_add.add_argument("--notes", default="")
    p_add.set_defaults(func=_cmd_add)

    p_list = sub.add_parser("list", help="per-day summary")
    p_list.add_argument("--range", choices=["week", "month", "custom", "all"], default=None)
    p_list.add_argument("--start", type=_parse_day, default=None)
    p_list.add_argument("--end", type=_parse_day, default=None)
    p_list.set_defaults(func=_cmd_list)

    p_plan = sub.add_parser("plan", help="set the plan or off-day flag for a day")
    p_plan.add_argument("day", type=_parse_day)
    p_plan.add_argument("--hours", type=float, default=None)
    p_plan.add_argument("--hands", type=int, default=None)
    off = p_plan.add_mutually_exclusive_group()
    off.add_argument("--off", dest="off", action="store_true", default=None)
    off.add_argument("--on", dest="off", action="store_false")
    p_plan.set_defaults(func=_cmd_plan, off=None)

    p_exp = sub.add_parser("export", help="export days to .xlsx")
    p_exp.add_argument("out")
    p_exp.add_argument("--start", type=_parse_day, required=True)
    p_exp.add_argument("--end", type=_parse_day, required=True)
    p_exp.add_argument("--mode", choices=["days", "sessions"], default="days")
    p_exp.add_argument("--remaining", choices=["h", "hm", "hms"], default="hm")
    p_exp.add_argument("--no-totals", action="store_true")
    p_exp.set_defaults(func=_cmd_export)

    p_imp = sub.add_parser("import", help="import sessions from .xlsx")
    p_imp.add_argument("file")
    p_imp.set_defaults(func=_cmd_import)

    p_set = sub.add_parser("settings", help="show / export / import settings")
    p_set.add_argument("action", choices=["show", "export", "import"])
    p_set.add_argument("file", nargs="?", default=None)
    p_set.set_defaults(func=_cmd_settings)

    p_reset = sub.add_parser("reset", help="delete all sessions, plans and settings")
    p_reset.add_argument("--yes", action="store_true")
    p_reset.set_defaults(func=_cmd_reset)

    args = p.parse_args(argv)
    if args.cmd == "settings" and args.action == "import" and not args.file:
        p.error("settings import needs a file")

    paths.ensure_logs_dir()
    setup_logger(LOG_LEVEL, LOG_FILE)
    # QTimer рушія потребує екземпляра застосунку
    qt_app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])  # noqa: F841

    app = _build_app(args)
    try:
        return args.func(app, args)
    except PokerTrackerError as e:
        logger.error(f"[cli] {e}")
        print(f"Error: {e}")
        return 2
    finally:
        app.shutdown()


if __name__ == "__main__":
    sys.exit(main())
