"""
Logging configuration for Whale Tracker Bot.

- system.log: everything at the configured level
- errors.log: ERROR and above only
- swaps.log: fetched batches and matched swaps ("swaps" logger)
- notifications.log: delivered alerts ("notifications" logger)

Files rotate at 50 MB with 5 backups; logs older than 7 days are removed
at startup.
"""
import logging
import logging.handlers
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional, Union

LOG_DIR = Path("logs")

SYSTEM_LOG = "system.log"
ERRORS_LOG = "errors.log"
SWAPS_LOG = "swaps.log"
NOTIFICATIONS_LOG = "notifications.log"

MAX_BYTES = 50 * 1024 * 1024  # 50 MB per file
BACKUP_COUNT = 5

LOG_RETENTION_DAYS = 7

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[Union[str, Path]] = None) -> Dict[str, logging.Logger]:
    """
    Configure console and rotating file logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (defaults to ./logs)

    Returns:
        dict: The root logger and the dedicated swaps/notifications loggers
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    directory = Path(log_dir) if log_dir else LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(directory / SYSTEM_LOG, level, formatter))
    root_logger.addHandler(_rotating_handler(directory / ERRORS_LOG, logging.ERROR, formatter))

    # Dedicated loggers also propagate to root (console + system.log)
    swaps_logger = logging.getLogger('swaps')
    swaps_logger.handlers.clear()
    swaps_logger.addHandler(_rotating_handler(directory / SWAPS_LOG, logging.INFO, formatter))
    swaps_logger.propagate = True

    notifications_logger = logging.getLogger('notifications')
    notifications_logger.handlers.clear()
    notifications_logger.addHandler(_rotating_handler(directory / NOTIFICATIONS_LOG, logging.INFO, formatter))
    notifications_logger.propagate = True

    cleanup_old_logs(directory)

    root_logger.info("=" * 80)
    root_logger.info("Whale Tracker Bot logging system initialized")
    root_logger.info(f"Log directory: {directory.absolute()}")
    root_logger.info(f"Log level: {log_level}")
    root_logger.info(f"Rotation: {MAX_BYTES // (1024*1024)} MB per file, {BACKUP_COUNT} backups")
    root_logger.info(f"Retention: {LOG_RETENTION_DAYS} days")
    root_logger.info("=" * 80)

    return {
        'system': root_logger,
        'swaps': swaps_logger,
        'notifications': notifications_logger,
    }


def cleanup_old_logs(log_dir: Optional[Union[str, Path]] = None, retention_days: int = LOG_RETENTION_DAYS) -> int:
    """
    Delete log files (and rotated backups) older than retention_days.

    Returns:
        Number of files deleted
    """
    directory = Path(log_dir) if log_dir else LOG_DIR
    if not directory.exists():
        return 0

    cutoff_time = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0
    total_size_freed = 0

    for pattern in ("*.log", "*.log.*"):
        for log_path in directory.glob(pattern):
            try:
                stat = log_path.stat()
                if datetime.fromtimestamp(stat.st_mtime) < cutoff_time:
                    log_path.unlink()
                    deleted_count += 1
                    total_size_freed += stat.st_size
            except OSError as e:
                logging.error(f"Error cleaning up {log_path}: {e}")

    if deleted_count > 0:
        size_mb = total_size_freed / (1024 * 1024)
        logging.info(f"Cleaned up {deleted_count} old log files ({size_mb:.2f} MB freed)")

    return deleted_count


def log_swap_match(user_id: int, signature: str, symbol: str, usd_value: float, is_buy: bool):
    """Log a swap that matched a user's filters to the swaps log."""
    logger = logging.getLogger('swaps')
    side = "BUY" if is_buy else "SELL"
    logger.info(f"match user={user_id} {side} {symbol} ${usd_value:,.0f} tx={signature}")


def log_notification(user_id: int, signature: str, delivered: bool):
    """Log a notification delivery attempt to the notifications log."""
    logger = logging.getLogger('notifications')
    status = "sent" if delivered else "failed"
    logger.info(f"{status} user={user_id} tx={signature}")
