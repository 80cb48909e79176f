"""
Background worker that evaluates alert subscriptions on three cadences.

This worker runs continuously and:
- Runs the realtime cycle every 5 minutes and the hourly cycle every hour
- Runs the daily cycle at the next local 09:00, then every 24 hours
- Lets the three loops run independently of each other
- Supports graceful shutdown on SIGINT/SIGTERM; a running cycle finishes first

Usage:
    newsalert-scheduler run
    newsalert-scheduler run-once --cadence hourly
    newsalert-scheduler test-alert --subscription-id 12 --user-id 3
"""

import argparse
import asyncio
import enum
import logging
import os
import signal
import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import NoReturn

from newsalert.core.config.loader import get_section
from newsalert.core.exceptions import AuthorizationError, NotFoundError
from newsalert.core.models.alerts import Cadence
from newsalert.core.services.evaluator import AlertEvaluator
from newsalert.core.storage.postgres import close_db, get_db

logger = logging.getLogger(__name__)

DAILY_PERIOD_SECONDS = 24 * 60 * 60

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SchedulerState(enum.Enum):
    """Lifecycle of the cadence scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class SchedulerConfig:
    """Configuration for the scheduler."""

    realtime_interval_seconds: float = 300
    hourly_interval_seconds: float = 3600
    daily_hour: int = 9
    log_level: str = "INFO"


def load_scheduler_config() -> SchedulerConfig:
    """
    Load scheduler configuration from environment variables and config files.

    Environment variables take precedence over config files.
    """
    scheduler_config = get_section("scheduler")

    return SchedulerConfig(
        realtime_interval_seconds=float(
            os.environ.get(
                "SCHEDULER_REALTIME_INTERVAL_SECONDS",
                scheduler_config.get("realtime_interval_seconds", 300),
            )
        ),
        hourly_interval_seconds=float(
            os.environ.get(
                "SCHEDULER_HOURLY_INTERVAL_SECONDS",
                scheduler_config.get("hourly_interval_seconds", 3600),
            )
        ),
        daily_hour=int(
            os.environ.get(
                "SCHEDULER_DAILY_HOUR",
                scheduler_config.get("daily_hour", 9),
            )
        ),
        log_level=os.environ.get(
            "SCHEDULER_LOG_LEVEL",
            scheduler_config.get("log_level", "INFO"),
        ),
    )


def compute_next_daily_run(now_local: datetime, hour: int) -> datetime:
    """
    Calculate the first daily run time.

    If the anchor hour hasn't passed today, returns today at that hour.
    Otherwise returns tomorrow at that hour.

    Args:
        now_local: Current local wall-clock time.
        hour: Anchor hour (0-23).

    Returns:
        Next run datetime in the same timezone as now_local.
    """
    target_today = now_local.replace(hour=hour, minute=0, second=0, microsecond=0)

    if now_local < target_today:
        return target_today
    return target_today + timedelta(days=1)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class CadenceScheduler:
    """
    Owns one independent loop per cadence.

    Each loop waits on its own timer and calls the evaluator for its
    cadence. Stopping is observed only while a loop is waiting, so a
    cycle that has already started always runs to completion.

    Usage:
        scheduler = CadenceScheduler(evaluator)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        evaluator: AlertEvaluator,
        config: SchedulerConfig | None = None,
        local_clock: Callable[[], datetime] = _local_now,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            evaluator: Runs one evaluation cycle per tick.
            config: Intervals and daily anchor hour.
            local_clock: Returns the current local wall-clock time.
            logger: Logger to use instead of the module logger.
        """
        self.evaluator = evaluator
        self.config = config or SchedulerConfig()
        self.local_clock = local_clock
        self.logger = logger or logging.getLogger(__name__)

        self._state = SchedulerState.STOPPED
        self._stop_event: asyncio.Event | None = None
        self._tasks: list[asyncio.Task] = []

    @property
    def state(self) -> SchedulerState:
        """Current lifecycle state."""
        return self._state

    def start(self) -> None:
        """
        Start the three cadence loops.

        Must be called from a running event loop. No-op unless stopped.
        """
        if self._state is not SchedulerState.STOPPED:
            self.logger.debug(f"Scheduler start ignored in state {self._state.value}")
            return

        self.logger.info("Starting cadence scheduler...")
        self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(
                self._interval_loop(Cadence.REALTIME, self.config.realtime_interval_seconds),
                name="alerts-realtime",
            ),
            asyncio.create_task(
                self._interval_loop(Cadence.HOURLY, self.config.hourly_interval_seconds),
                name="alerts-hourly",
            ),
            asyncio.create_task(self._daily_loop(), name="alerts-daily"),
        ]
        self._state = SchedulerState.RUNNING

    async def stop(self) -> None:
        """
        Stop all loops and wait until every one has exited.

        No-op if the scheduler was never started.
        """
        if self._state is SchedulerState.STOPPED:
            return

        if self._state is SchedulerState.RUNNING:
            self.logger.info("Stopping cadence scheduler...")
            self._state = SchedulerState.STOPPING
            self._stop_event.set()

        tasks = list(self._tasks)
        await asyncio.gather(*tasks, return_exceptions=True)

        if self._state is SchedulerState.STOPPING:
            self._tasks = []
            self._state = SchedulerState.STOPPED
            self.logger.info("Cadence scheduler stopped")

    async def _wait(self, seconds: float) -> bool:
        """
        Wait for the timer or the stop signal, whichever comes first.

        Returns:
            True if stop was requested.
        """
        if seconds <= 0:
            return self._stop_event.is_set()

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except TimeoutError:
            return False

    async def _interval_loop(self, cadence: Cadence, period: float) -> None:
        """
        Fixed-interval loop.

        Fires every period from start. A cycle that overruns one or more
        periods is followed by one immediate run; missed ticks are not queued.
        """
        loop = asyncio.get_running_loop()
        next_run = loop.time() + period

        while True:
            if await self._wait(next_run - loop.time()):
                break

            await self._run_cycle(cadence)

            next_run += period
            now = loop.time()
            if next_run < now:
                self.logger.warning(
                    f"{cadence.value} cycle overran its interval, running again immediately"
                )
                next_run = now

        self.logger.info(f"{cadence.value} loop stopped")

    async def _daily_loop(self) -> None:
        """
        Daily loop anchored to a local wall-clock hour.

        After the first run the timer is rearmed for a flat 24 hours, so
        the local run time shifts by an hour across DST transitions.
        """
        loop = asyncio.get_running_loop()
        now_local = self.local_clock()
        first_run = compute_next_daily_run(now_local, self.config.daily_hour)
        delay = (first_run - now_local).total_seconds()

        self.logger.info(
            f"Next daily run at {first_run.strftime('%Y-%m-%d %H:%M %Z')} "
            f"(sleeping {delay:.0f}s)"
        )
        next_run = loop.time() + delay

        while True:
            if await self._wait(next_run - loop.time()):
                break

            fired_at = loop.time()
            await self._run_cycle(Cadence.DAILY)
            next_run = fired_at + DAILY_PERIOD_SECONDS

        self.logger.info("daily loop stopped")

    async def _run_cycle(self, cadence: Cadence) -> None:
        """Run one evaluation cycle and log its outcome. Never raises."""
        self.logger.debug(f"Processing {cadence.value} alerts...")
        try:
            stats = await self.evaluator.run_cycle(cadence)
        except Exception as e:
            self.logger.error(f"Error processing {cadence.value} alerts: {e}", exc_info=True)
            return

        self.logger.info(
            f"{cadence.value} cycle complete: loaded={stats.subscriptions_loaded}, "
            f"eligible={stats.eligible}, notified={stats.notified}, "
            f"empty={stats.empty}, errors={len(stats.errors)}"
        )
        for error in stats.errors:
            self.logger.warning(f"{cadence.value} cycle error: {error}")


def setup_logging(log_level: str) -> None:
    """
    Configure logging for the worker.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def handle_signal(signum: int, shutdown_event: asyncio.Event) -> None:
    """
    Handle SIGINT/SIGTERM for graceful shutdown.

    Runs inside the event loop (registered with loop.add_signal_handler),
    so waiters on shutdown_event wake up immediately.

    Args:
        signum: Signal number.
        shutdown_event: Event the run command is waiting on.
    """
    signal_name = signal.Signals(signum).name
    logger.info(f"Received signal {signal_name}, shutting down gracefully...")
    shutdown_event.set()


async def cmd_run(config: SchedulerConfig, evaluator: AlertEvaluator | None = None) -> int:
    """Run the three cadence loops until a shutdown signal arrives."""
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()
    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, handle_signal, sig, shutdown_event)

    evaluator = evaluator or AlertEvaluator(logger=logging.getLogger("newsalert.evaluator"))
    scheduler = CadenceScheduler(evaluator, config, logger=logger)
    scheduler.start()

    try:
        await shutdown_event.wait()
    finally:
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        await scheduler.stop()

    return 0


async def cmd_run_once(cadence: Cadence) -> int:
    """Run a single evaluation cycle for one cadence."""
    evaluator = AlertEvaluator()
    stats = await evaluator.run_cycle(cadence)

    print(f"Cadence: {cadence.value}")
    print(f"Subscriptions loaded: {stats.subscriptions_loaded}")
    print(f"Eligible: {stats.eligible}")
    print(f"Notified: {stats.notified}")
    print(f"Nothing new: {stats.empty}")
    for error in stats.errors:
        print(f"Error: {error}")

    return 1 if stats.errors else 0


async def cmd_test_alert(subscription_id: int, user_id: int) -> int:
    """Send a test alert for one subscription."""
    evaluator = AlertEvaluator()
    try:
        result = await evaluator.trigger_test_alert(subscription_id, user_id)
    except (NotFoundError, AuthorizationError) as e:
        print(f"Rejected: {e}")
        return 1

    print(result.message)
    print(f"\nArticles found: {result.articles_found}, delivered: {result.delivered}")
    return 0 if result.delivered else 1


async def main_async(args: argparse.Namespace) -> int:
    """
    Async entrypoint for the scheduler.

    Initializes the database connection and dispatches the command.
    """
    config = load_scheduler_config()
    setup_logging(config.log_level)

    # Initialize database connection (fatal if fails)
    try:
        await get_db()
        logger.info("Database connection established")
    except Exception as e:
        logger.critical(f"Cannot connect to database: {e}", exc_info=True)
        return 1

    try:
        if args.command == "run":
            logger.info(f"Alert scheduler starting with {config}")
            return await cmd_run(config)
        if args.command == "run-once":
            return await cmd_run_once(Cadence(args.cadence))
        return await cmd_test_alert(args.subscription_id, args.user_id)
    finally:
        try:
            await close_db()
            logger.info("Database connection closed")
        except Exception as e:
            logger.error(f"Error closing database connection: {e}")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="Evaluate news alert subscriptions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  newsalert-scheduler run                         Run realtime, hourly and daily loops
  newsalert-scheduler run-once --cadence daily    Evaluate daily subscriptions now
  newsalert-scheduler test-alert --subscription-id 12 --user-id 3
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the cadence loops until stopped")

    run_once = subparsers.add_parser("run-once", help="Run one evaluation cycle")
    run_once.add_argument(
        "--cadence",
        choices=[c.value for c in Cadence],
        required=True,
        help="Cadence to evaluate",
    )

    test_alert = subparsers.add_parser("test-alert", help="Send a test alert")
    test_alert.add_argument("--subscription-id", type=int, required=True)
    test_alert.add_argument("--user-id", type=int, required=True)

    return parser


def main() -> NoReturn:
    """
    Main entrypoint for the scheduler.

    This is the synchronous wrapper that starts the async event loop.
    """
    args = build_parser().parse_args()

    try:
        exit_code = asyncio.run(main_async(args))
    except SystemExit:
        raise
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
