import time
import logging
import signal
import os
import json
import argparse

from core.app_context import AppContext
from core.config_loader import load_config
from database.database import init_db
from database.uow import decision_uow

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global flag for graceful shutdown
running = True


def signal_handler(sig, frame):
    global running
    logger.info("Shutdown signal received")
    running = False


def load_spend_data(spend_file_path: str) -> dict | None:
    """Load {threshold_id: spent_amount} from a JSON file written by billing."""
    logger.info(f"Loading spend data from {spend_file_path}")
    try:
        with open(spend_file_path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning(f"Spend file not found: {spend_file_path}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in spend file: {e}")
        return None
    if not isinstance(data, dict):
        logger.error("Spend file must contain a JSON object keyed by threshold id")
        return None
    return {str(k): v for k, v in data.items()}


def run_experiment_pass(context: AppContext):
    """Resolve every active experiment that has reached significance."""
    step_start = time.time()
    logger.info("=== EXPERIMENTS: Auto-analysis ===")
    with decision_uow() as repo:
        report = context.resolver(repo).auto_analyze()
    step_elapsed = time.time() - step_start
    logger.info(
        f"Experiments completed: {report.analyzed} analyzed, {report.winners_found} winners, "
        f"{report.notifications_sent} notifications in {step_elapsed:.2f}s"
    )
    if report.failed:
        logger.warning(f"Experiments that failed analysis: {', '.join(report.failed)}")


def run_budget_pass(context: AppContext, spend_file: str | None):
    """Check active budget thresholds against reported spend."""
    logger.info("=== BUDGET: Threshold check ===")
    if not spend_file:
        logger.info("=== BUDGET: Skipped (no spend file configured) ===")
        return

    if not os.path.isabs(spend_file):
        spend_file = os.path.join(os.getcwd(), spend_file)
    spend = load_spend_data(spend_file)
    if spend is None:
        logger.info("=== BUDGET: Skipped (no spend data) ===")
        return

    step_start = time.time()
    with decision_uow() as repo:
        report = context.budget_monitor(repo).run(spend)
    step_elapsed = time.time() - step_start
    logger.info(
        f"Budget completed: {report.checked} thresholds checked, "
        f"{report.alerts_sent} alerts sent in {step_elapsed:.2f}s"
    )


def run_cycle(context: AppContext, mode: str = 'all', spend_file: str | None = None):
    cycle_start = time.time()

    if mode in ('all', 'experiments'):
        run_experiment_pass(context)

    if not running:
        return

    if mode in ('all', 'budget'):
        run_budget_pass(context, spend_file)

    cycle_elapsed = time.time() - cycle_start
    logger.info(f"=== Cycle Completed in {cycle_elapsed:.2f}s ===")


def main():
    parser = argparse.ArgumentParser(description="Decision Core scheduled passes")
    parser.add_argument('--mode', type=str, choices=['all', 'experiments', 'budget'], default='all',
                        help='Pass to run: all (default), experiments, or budget')
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to config.yaml')
    parser.add_argument('--spend-file', type=str, default=os.environ.get('BUDGET_SPEND_FILE'),
                        help='JSON file mapping budget threshold id to spend in minor units')
    parser.add_argument('--once', action='store_true', help='Run a single cycle and exit')
    args = parser.parse_args()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    mode = args.mode
    logger.info(f"Decision core starting in {mode.upper()} mode...")

    config = load_config(args.config)

    # Initialize DB (with retry logic)
    init_db()

    context = AppContext.build(config)
    interval = config.schedule.interval_seconds

    cycle_count = 0
    while running:
        cycle_count += 1
        cycle_start = time.time()
        logger.info(f"=== Starting Cycle #{cycle_count} ({mode.upper()}) ===")
        try:
            run_cycle(context, mode=mode, spend_file=args.spend_file)
        except Exception as e:
            logger.error(f"Error in main loop: {e}", exc_info=True)

        if args.once:
            break

        cycle_elapsed = time.time() - cycle_start
        if running:
            logger.info(f"=== Cycle #{cycle_count} completed in {cycle_elapsed:.2f}s. Sleeping for {interval} seconds... ===")
            # Sleep in chunks to allow responsive shutdown
            for _ in range(max(1, interval // 5)):
                if not running:
                    break
                time.sleep(5)


if __name__ == "__main__":
    main()
