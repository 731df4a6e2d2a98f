import json

from pump_bundler.bundle.types import SubmissionOutcome
from pump_bundler.utils.audit_logger import AuditLogger


def test_entry_fields():
    outcome = SubmissionOutcome.landed(slot=9, transaction_ids=["a", "b"], attempts=2, bundle_id="b-1")
    entry = AuditLogger().build_entry(
        "bundle_landed", outcome, mint="Mint111", spent_lamports=500_000_000, fee_bid_lamports=1_000_000
    )
    assert entry["event_type"] == "BUNDLE_LANDED"
    assert entry["status"] == "landed"
    assert entry["transaction_ids"] == ["a", "b"]
    assert entry["sol_committed"] == 0.5
    assert entry["fee_bid_sol"] == 0.001
    assert entry["attempts"] == 2


def test_writes_json_lines(tmp_path):
    path = tmp_path / "audit.log"
    logger = AuditLogger(log_to_file=True, filepath=str(path))
    logger.log_bundle_event("BUNDLE_REJECTED", SubmissionOutcome.rejected("tip too low", attempts=1),
                            extra_data={"kind": "buy"})
    logger.log_bundle_event("BUNDLE_RETRIES_EXHAUSTED", SubmissionOutcome.retries_exhausted("expired", attempts=3))

    lines = [json.loads(line) for line in path.read_text().splitlines()]
    assert [line["event_type"] for line in lines] == ["BUNDLE_REJECTED", "BUNDLE_RETRIES_EXHAUSTED"]
    assert lines[0]["reason"] == "tip too low"
    assert lines[0]["kind"] == "buy"
    assert lines[1]["attempts"] == 3
