# listing_sync/scheduler.py
"""Optional inbox poller.

When SNAPSHOT_INBOX_DIR is set, snapshot files dropped into
``<inbox>/<variant>/`` are reconciled on an interval and then moved to a
``processed`` or ``failed`` subdirectory.
"""
import os
import shutil
from pathlib import Path
from dotenv import load_dotenv
from apscheduler.schedulers.background import BackgroundScheduler
from .db import SessionLocal
from .errors import SnapshotError
from .services import ingest_snapshot
from .utils import logger
from .variants import VARIANTS

load_dotenv()
INBOX_DIR = os.getenv("SNAPSHOT_INBOX_DIR")
POLL_MINUTES = int(os.getenv("SNAPSHOT_POLL_MINUTES", "5"))

scheduler = BackgroundScheduler()


def _move(path: Path, folder: str) -> None:
    target = path.parent / folder
    target.mkdir(exist_ok=True)
    shutil.move(str(path), str(target / path.name))


def poll_inbox(inbox_dir, registries) -> int:
    """Reconcile every waiting snapshot once. Returns the number processed."""
    processed = 0
    root = Path(inbox_dir)
    for name, variant in VARIANTS.items():
        folder = root / name
        if not folder.is_dir():
            continue
        for path in sorted(folder.glob("*.xlsx")):
            db = SessionLocal()
            try:
                ingest_snapshot(db, variant, path.read_bytes(), path.name, registries[name])
            except SnapshotError as e:
                logger.warning("%s: rejected %s: %s", name, path.name, e)
                _move(path, "failed")
                continue
            finally:
                db.close()
            _move(path, "processed")
            processed += 1
    return processed


def start(registries, inbox_dir=INBOX_DIR, minutes=POLL_MINUTES) -> bool:
    if not inbox_dir:
        return False
    scheduler.add_job(
        poll_inbox, "interval", minutes=minutes,
        args=[inbox_dir, registries], id="poll_inbox", replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started, polling %s every %d min", inbox_dir, minutes)
    return True


def stop() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
