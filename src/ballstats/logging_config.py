"""Per-run logging for ballstats commands.

Every command writes its own DEBUG log under ``{data_dir}/logs/``; only
warnings reach the terminal unless ``--verbose`` is given, so the printed
ids and tables stay clean for scripting.  Old run logs are pruned so the
directory does not grow by one file per command forever.
"""

import logging
from datetime import datetime
from pathlib import Path

LOG_PREFIX = "ballstats-"

# Run logs kept after pruning, the new one included
KEEP_LOGS = 50


def _prune_logs(log_dir: Path, keep: int) -> None:
    # Names embed the start time, so name order is age order
    logs = sorted(log_dir.glob(f"{LOG_PREFIX}*.log"))
    for path in logs[: max(len(logs) - keep, 0)]:
        path.unlink(missing_ok=True)


def setup_logging(
    data_dir: str | Path = "data",
    console_level: int = logging.WARNING,
    keep: int = KEEP_LOGS,
) -> Path:
    """Point the root logger at stderr and a fresh run log.

    Handlers left by an earlier call are removed and closed first.

    Returns:
        Path to this run's log file.
    """
    log_dir = Path(data_dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{LOG_PREFIX}{datetime.now():%Y%m%d-%H%M%S-%f}.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root.addHandler(console)

    run_log = logging.FileHandler(log_file, encoding="utf-8")
    run_log.setLevel(logging.DEBUG)
    run_log.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    )
    root.addHandler(run_log)

    _prune_logs(log_dir, keep)
    return log_file
