"""Application sync orchestrator."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from app.utils.llm_client import build_completion
from skills.application_sync.config import REQUIRED_FOR_GMAIL, REQUIRED_FOR_SYNC, Settings, require_env_vars
from skills.application_sync.extractor import CompletionFn, extract
from skills.application_sync.identity import IdentityResolver
from skills.application_sync.metrics import RunCounters
from skills.application_sync.reconcile import reconcile
from skills.application_sync.relevance import classify_relevance
from skills.application_sync.retry import RetryPolicy, with_retry
from skills.application_sync.sources.base import MessageSource
from skills.application_sync.sources.gmail_readonly import GmailSource, load_credentials
from skills.application_sync.sources.sample_source import SampleSource
from skills.application_sync.stores.airtable import AirtableStore
from skills.application_sync.stores.base import RecordStore
from skills.application_sync.stores.memory import MemoryStore
from skills.application_sync.types import F_STATUS, RawMessage, SyncOutcome

DEFAULT_RETRY = RetryPolicy()


def _preview(text: str, limit: int = 60) -> str:
    flat = " ".join(str(text).split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


def fetch_messages(
    source: MessageSource,
    since: datetime,
    concurrency: int = 8,
    counters: Optional[RunCounters] = None,
) -> list[RawMessage]:
    """List candidate ids once, then fetch details in bounded windows.

    Sources retry their own upstream calls. A failed detail fetch is logged
    and counted; the rest of the batch continues. Messages come back oldest
    first.
    """
    counters = counters if counters is not None else RunCounters()
    ids = source.list_candidate_message_ids(since)
    print(f"[SYNC FETCH] candidates={len(ids)} since={since.isoformat()}", flush=True)

    workers = max(1, concurrency)
    messages: list[RawMessage] = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        for start in range(0, len(ids), workers):
            window = ids[start : start + workers]
            future_to_id = {executor.submit(source.get_message_details, mid): mid for mid in window}
            for future in as_completed(future_to_id):
                message_id = future_to_id[future]
                try:
                    message = future.result()
                except Exception as exc:  # noqa: BLE001
                    counters.record_error("fetch_details", str(exc), message_id)
                    print(f"[SYNC ERROR] stage=fetch message_id={message_id} error={exc}", flush=True)
                    continue
                if message is not None:
                    messages.append(message)

    counters.fetched += len(messages)
    messages.sort(key=lambda m: m.date)
    return messages


def _apply(outcome: SyncOutcome, store: RecordStore, retry: RetryPolicy) -> SyncOutcome:
    if outcome.action == "created":
        created = with_retry(lambda: store.create(outcome.fields), retry, "store.create")
        outcome.record_id = created.id
    elif outcome.action == "updated":
        with_retry(lambda: store.update(outcome.record_id, outcome.fields), retry, "store.update")
    return outcome


def sync_message(
    message: RawMessage,
    *,
    resolver: IdentityResolver,
    store: RecordStore,
    complete: CompletionFn,
    settings: Settings,
    counters: RunCounters,
    retry: RetryPolicy = DEFAULT_RETRY,
    now: Optional[datetime] = None,
) -> SyncOutcome:
    """Pre-check, extract, resolve, reconcile and write one message."""
    thread_record = resolver.lookup_thread(message)
    if thread_record is not None and message.id in thread_record.message_ids:
        counters.duplicates += 1
        print(f"[SYNC SKIP] message_id={message.id} reason=duplicate_message record_id={thread_record.id}", flush=True)
        return SyncOutcome(action="skipped", reason="duplicate_message", record_id=thread_record.id)

    candidate = with_retry(
        lambda: extract(message, complete, max_body_chars=settings.llm_max_body_chars),
        retry,
        "llm.extract",
    )
    if candidate is None:
        counters.extraction_failures += 1
        print(f"[SYNC WARN] message_id={message.id} reason=no_extraction subject={_preview(message.subject)!r}", flush=True)
        return SyncOutcome(action="skipped", reason="no_extraction")

    resolution = resolver.resolve(message, candidate, thread_record=thread_record, thread_checked=True)
    outcome = reconcile(
        message,
        candidate,
        resolution,
        now=now,
        ghosting_threshold_days=settings.ghosting_threshold_days,
        withdrawn_as_rejected=settings.store_withdrawn_as_rejected,
    )
    if outcome.action == "skipped":
        if outcome.reason == "duplicate_message":
            counters.duplicates += 1
        print(f"[SYNC SKIP] message_id={message.id} reason={outcome.reason} record_id={outcome.record_id}", flush=True)
        return outcome

    _apply(outcome, store, retry)
    counters.synced += 1
    if outcome.action == "created":
        counters.created += 1
        print(
            f"[SYNC CREATE] message_id={message.id} thread_id={message.thread_id} record_id={outcome.record_id} "
            f"company={candidate.company} role={candidate.role} status={outcome.fields.get(F_STATUS, '')}",
            flush=True,
        )
    else:
        counters.updated += 1
        print(
            f"[SYNC UPDATE] message_id={message.id} record_id={outcome.record_id} matched_by={resolution.matched_by} "
            f"reason={outcome.reason} status_changed={outcome.status_changed}",
            flush=True,
        )
    return outcome


def run_sync(
    hours: int,
    source: MessageSource,
    store: RecordStore,
    complete: CompletionFn,
    settings: Settings,
    counters: Optional[RunCounters] = None,
    *,
    retry: RetryPolicy = DEFAULT_RETRY,
    now: Optional[datetime] = None,
) -> RunCounters:
    """Sync the last ``hours`` of mail into the store.

    Each message's failure is recorded and isolated. Failures before the
    loop (listing, configuration) propagate to the caller.
    """
    if hours <= 0:
        raise ValueError("hours must be a positive integer")
    counters = counters if counters is not None else RunCounters()
    current_time = now or datetime.now(timezone.utc)
    since = current_time - timedelta(hours=hours)
    print(f"[SYNC START] hours={hours} since={since.isoformat()} policy={settings.identity_match_policy}", flush=True)

    messages = fetch_messages(source, since, settings.detail_concurrency, counters)
    relevant: list[RawMessage] = []
    for message in messages:
        decision = classify_relevance(message)
        if decision.keep:
            relevant.append(message)
        else:
            print(f"[SYNC FILTER] message_id={message.id} reason={decision.reason} domain={decision.from_domain}", flush=True)
    counters.relevant += len(relevant)

    resolver = IdentityResolver(store, match_policy=settings.identity_match_policy, retry=retry)
    for message in relevant:
        counters.processed += 1
        try:
            sync_message(
                message,
                resolver=resolver,
                store=store,
                complete=complete,
                settings=settings,
                counters=counters,
                retry=retry,
                now=now,
            )
        except Exception as exc:  # noqa: BLE001
            counters.record_error("email_processing", str(exc), message.id)
            print(f"[SYNC ERROR] message_id={message.id} error={exc}", flush=True)

    counters.finalize()
    stats = " ".join(f"{key}={value}" for key, value in counters.stats().items())
    print(f"[SYNC DONE] {stats} duration_s={counters.duration_seconds:.2f}", flush=True)
    return counters


def build_runtime(
    settings: Settings,
    *,
    source: str = "gmail",
    dry_run: bool = False,
    credentials_path: Optional[Path] = None,
    allow_interactive_auth: bool = False,
) -> tuple[MessageSource, RecordStore, CompletionFn]:
    """Wire the configured source, store and completion oracle.

    Raises ``MissingConfigurationError`` before any network call when a
    required variable is absent.
    """
    required = ["OPENAI_API_KEY"] if dry_run else list(REQUIRED_FOR_SYNC)
    token_path = Path(settings.gmail_token_path)
    if source == "gmail" and not token_path.exists() and not allow_interactive_auth:
        required.extend(REQUIRED_FOR_GMAIL)
    require_env_vars(required)

    complete = build_completion(
        api_key=settings.openai_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
    )

    store: RecordStore
    if dry_run:
        store = MemoryStore()
    else:
        store = AirtableStore(
            api_key=settings.airtable_api_key,
            base_id=settings.airtable_base_id,
            table_name=settings.airtable_table_name,
        )

    message_source: MessageSource
    if source == "sample":
        message_source = SampleSource()
    elif source == "gmail":
        creds = load_credentials(
            token_path=token_path,
            client_id=settings.gmail_client_id,
            client_secret=settings.gmail_client_secret,
            refresh_token=settings.gmail_refresh_token,
            credentials_path=credentials_path,
            allow_interactive_auth=allow_interactive_auth,
        )
        message_source = GmailSource.from_credentials(creds, max_messages=settings.max_messages)
    else:
        raise ValueError(f"Unsupported source: {source}")
    return message_source, store, complete
