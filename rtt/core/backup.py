import json
import os
from datetime import datetime
from pathlib import Path
from rtt.common.logger import log

# Exponential-ish time-tier targets in seconds.  For each tier we keep the backup whose
# timestamp is closest to (now - tier).
TIERS = [
    5 * 60,       # ~5 minutes ago
    10 * 60,      # ~10 minutes ago
    20 * 60,      # ~20 minutes ago
    60 * 60,      # ~1 hour ago
    6 * 3600,     # ~6 hours ago
    24 * 3600,    # ~1 day ago
    2 * 86400,    # ~2 days ago
    4 * 86400,    # ~4 days ago
]

_PREFIX = "programs_"

# Writes a copy of a training program list document into backup_dir. The document is written as-is, so any backup
# can be loaded straight back in as a training program list.
def create_backup(document, backup_dir, reason):
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    target_path = backup_dir / f"{_PREFIX}{timestamp}.json"
    with open(target_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    log.debug(f"Saved backup for reason '{reason}' to {target_path}")
    return target_path

# Extracts and returns the datetime from a given backup's filename, such as programs_20260212_140311_123456.json ->
# 2/12/2026, 2:03PM, 11.123456 seconds
def _parse_backup_time(filename):
    base = os.path.splitext(filename)[0]
    if not base.startswith(_PREFIX):
        return None
    try:
        return datetime.strptime(base[len(_PREFIX):], "%Y%m%d_%H%M%S_%f")
    except ValueError:
        return None

# Use time-tier retention to remove all backups that don't best fit any tier. The newest backup is always kept.
# We then calculate which backup is closest to each tier in TIERS, and delete everything else.
def prune_backups(backup_dir, now=None):
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return 0

    entries = []
    for path in backup_dir.iterdir():
        if not path.name.endswith(".json"):
            continue
        ts = _parse_backup_time(path.name)
        if ts is not None:
            entries.append((path.name, ts))

    # This means there isn't anything to prune yet.
    if len(entries) <= 1:
        return 0

    # Sort by newest first
    entries.sort(key=lambda e: e[1], reverse=True)
    now = now or datetime.now()

    keep = {entries[0][0]}
    for tier_secs in TIERS:
        target = now.timestamp() - tier_secs
        best = min(entries, key=lambda e: abs(e[1].timestamp() - target))
        keep.add(best[0])

    pruned_count = 0
    for filename, _ in entries:
        if filename not in keep:
            try:
                os.remove(backup_dir / filename)
                pruned_count += 1
            except OSError:
                log.warning(f"Couldn't remove old backup '{filename}'", exc_info=True)
    if pruned_count > 0:
        log.info(f"Pruned {pruned_count} files from '{backup_dir}'")
    return pruned_count
