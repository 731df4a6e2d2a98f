# pump_bundler/utils/audit_logger.py

import json
from datetime import datetime, timezone
from typing import Optional

from pump_bundler.core.constants import LAMPORTS_PER_SOL
from .logger import get_logger

audit_log = get_logger("AuditLogger")  # Dedicated logger instance


class AuditLogger:
    """
    Writes one JSON line per terminal bundle outcome for later analysis.
    """

    def __init__(self, log_to_file: bool = False, filepath: str = "bundle_audit.log"):
        self.log_to_file = log_to_file
        self.filepath = filepath
        audit_log.debug("AuditLogger initialized.")

    def build_entry(
            self,
            event_type: str,
            outcome,
            mint: Optional[str] = None,
            spent_lamports: Optional[int] = None,
            fee_bid_lamports: Optional[int] = None,
            extra_data: Optional[dict] = None,
    ) -> dict:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.upper(),
            "token_mint": mint or "N/A",
            "status": outcome.status.value if outcome else None,
            "bundle_id": outcome.bundle_id if outcome else None,
            "slot": outcome.slot if outcome else None,
            "transaction_ids": list(outcome.transaction_ids) if outcome else [],
            "attempts": outcome.attempts if outcome else None,
            "reason": outcome.reason if outcome else None,
        }
        if spent_lamports is not None:
            log_entry["sol_committed"] = spent_lamports / LAMPORTS_PER_SOL
        if fee_bid_lamports is not None:
            log_entry["fee_bid_sol"] = fee_bid_lamports / LAMPORTS_PER_SOL
        if extra_data:
            log_entry.update(extra_data)
        return log_entry

    def log_bundle_event(self, event_type: str, outcome, **kwargs) -> dict:
        """Logs a bundle-related event and returns the entry written."""
        log_entry = self.build_entry(event_type, outcome, **kwargs)
        log_message = json.dumps(log_entry)
        audit_log.info(log_message)

        if self.log_to_file:
            try:
                with open(self.filepath, "a", encoding="utf-8") as f:
                    f.write(log_message + "\n")
            except OSError as e:
                audit_log.error(f"Failed to write audit log to file {self.filepath}: {e}")
        return log_entry
