from skills.application_sync.metrics import RunCounters


def test_record_error_keeps_details():
    counters = RunCounters()
    counters.record_error("email_processing", "boom", "m1")

    assert counters.errors == 1
    assert counters.error_details[0]["type"] == "email_processing"
    assert counters.error_details[0]["message"] == "boom"
    assert counters.error_details[0]["message_id"] == "m1"
    assert counters.error_details[0]["timestamp"]


def test_summary_rates():
    counters = RunCounters(fetched=10, relevant=5, processed=4, synced=3, created=2, updated=1, duplicates=1)
    counters.started_at = 100.0
    counters.finished_at = 102.0

    summary = counters.summary()

    assert summary["success_rate_pct"] == 75.0
    assert summary["duration_s"] == 2.0
    assert summary["avg_ms_per_email"] == 500
    assert summary["emails_relevant"] == 5
    assert counters.stats() == {"fetched": 10, "processed": 4, "synced": 3, "duplicates": 1, "errors": 0}


def test_empty_run_has_zero_rates():
    summary = RunCounters().finalize().summary()
    assert summary["success_rate_pct"] == 0.0
    assert summary["avg_ms_per_email"] == 0
