from __future__ import annotations

import argparse
import logging
import os
import time

from .config import load_config
from .health import check_health
from .runner import build_runner
from .state.sqlite_store import SqliteStateStore


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cec", description="Calendar Event Checker (polling notifier)")
    p.add_argument("--config", required=True, help="Path to JSON config file")
    p.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG/INFO/WARNING/ERROR). Defaults to env CEC_LOG_LEVEL, DEBUG when config debug=true, else INFO",
    )
    p.add_argument(
        "--status-interval",
        type=int,
        default=None,
        help="Daemon heartbeat interval seconds. Defaults to env CEC_STATUS_INTERVAL_SECONDS or 10. Set 0 to disable.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and report what would be notified without notifying or persisting state",
    )

    mode = p.add_mutually_exclusive_group(required=False)
    mode.add_argument("--once", action="store_true", help="Run one poll cycle and exit")
    mode.add_argument("--daemon", action="store_true", help="Run forever with poll interval")
    mode.add_argument("--health", action="store_true", help="Report per-calendar health and exit 1 if any is not working")
    return p


def _resolve_log_level(value: str | None, *, debug: bool = False) -> int:
    v = (value or "").strip().upper()
    if not v:
        return logging.DEBUG if debug else logging.INFO
    level = logging.getLevelNamesMapping().get(v)
    if isinstance(level, int):
        return level
    return logging.INFO


def _calendars_summary(runner) -> str:  # noqa: ANN001
    parts = [f"{c.calendar_id}(horizon_days={c.horizon_days})" for c in getattr(runner, "calendars", ())]
    return "; ".join(parts) if parts else "<none>"


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    config = load_config(args.config)

    env_log_level = os.environ.get("CEC_LOG_LEVEL")
    log_level = _resolve_log_level(args.log_level or env_log_level, debug=config.debug)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("cec")

    if args.health:
        # 健康检查只读状态库，不需要日历凭据。
        store = SqliteStateStore(config.sqlite_path)
        store.ensure_schema()
        all_working = True
        for calendar in config.calendars:
            status = check_health(store, calendar)
            all_working = all_working and status.working
            logger.info(
                "health: calendar_id=%s working=%s reason=%s last_notification_at=%s last_fetch_error_at=%s",
                status.calendar_id,
                status.working,
                status.reason,
                status.last_notification_at.isoformat() if status.last_notification_at else "-",
                status.last_fetch_error_at.isoformat() if status.last_fetch_error_at else "-",
            )
        return 0 if all_working else 1

    runner = build_runner(config)

    status_interval = args.status_interval
    if status_interval is None:
        try:
            status_interval = int(os.environ.get("CEC_STATUS_INTERVAL_SECONDS") or 10)
        except ValueError:
            status_interval = 10
    status_interval = max(0, int(status_interval))

    mode = "daemon" if args.daemon and not args.once else "once"
    logger.info("cec start: mode=%s config=%s dry_run=%s", mode, args.config, args.dry_run)
    logger.info(
        "config: poll_interval_seconds=%d sqlite_path=%s debug=%s",
        config.poll_interval_seconds,
        config.sqlite_path,
        config.debug,
    )
    logger.info("calendars: %s", _calendars_summary(runner))
    logger.info("sink: %s", runner.sink.channel())
    if mode == "daemon":
        logger.info(
            "daemon: poll_interval_seconds=%d status_interval_seconds=%d",
            max(1, config.poll_interval_seconds),
            status_interval,
        )

    if args.once or not args.daemon:
        report = runner.run_once(dry_run=args.dry_run)
        logger.info(
            "once done: duration_ms=%d calendars=%d events_fetched=%d notified=%d skipped_seen=%d skipped_malformed=%d notify_failures=%d fetch_errors=%d",
            report.duration_ms,
            len(report.calendars),
            report.events_fetched,
            report.events_notified,
            report.events_skipped_seen,
            report.events_skipped_malformed,
            report.notify_failures,
            report.fetch_errors,
        )
        return 0

    cycle_id = 0
    next_heartbeat_at = time.monotonic() + status_interval if status_interval > 0 else float("inf")

    while True:
        cycle_id += 1
        try:
            report = runner.run_once(dry_run=args.dry_run)
        except Exception:  # noqa: BLE001
            logger.exception("cycle crashed: id=%d", cycle_id)
            time.sleep(5)
            continue

        logger.info(
            "cycle summary: id=%d duration_ms=%d events_fetched=%d notified=%d skipped_seen=%d notify_failures=%d fetch_errors=%d",
            cycle_id,
            report.duration_ms,
            report.events_fetched,
            report.events_notified,
            report.events_skipped_seen,
            report.notify_failures,
            report.fetch_errors,
        )

        sleep_end = time.monotonic() + max(1, config.poll_interval_seconds)
        while True:
            now = time.monotonic()
            if now >= sleep_end:
                break

            if status_interval > 0 and now >= next_heartbeat_at:
                logger.info(
                    "daemon alive: cycles=%d next_poll_in=%ds last_duration_ms=%d last_notified=%d last_fetch_errors=%d",
                    cycle_id,
                    max(0, int(sleep_end - now)),
                    report.duration_ms,
                    report.events_notified,
                    report.fetch_errors,
                )
                next_heartbeat_at = now + status_interval

            remaining_s = sleep_end - now
            if status_interval > 0:
                time.sleep(min(remaining_s, max(0.2, next_heartbeat_at - now)))
            else:
                time.sleep(min(remaining_s, 1.0))


if __name__ == "__main__":
    raise SystemExit(main())
