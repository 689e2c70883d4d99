from pantry.crawler.frontier import EnqueueResult, EnqueueStatus
from pantry.crawler.stats import StatsCollector
from pantry.crawler.types import FetchErrorKind, FetchResult, PageKind, UpsertAction, UpsertResult


def test_counters_and_summary_payload():
    stats = StatsCollector()

    stats.record_enqueue_many(
        [
            EnqueueResult(EnqueueStatus.ENQUEUED, url="https://example.com/"),
            EnqueueResult(EnqueueStatus.SKIPPED_SEEN, url="https://example.com/"),
            EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, url="https://example.com/x"),
        ]
    )
    stats.record_visit()
    stats.record_fetch(FetchResult(requested_url="https://example.com/", status_code=200, body=b"abc", elapsed_ms=12))
    stats.record_fetch(
        FetchResult(
            requested_url="https://example.com/gone",
            status_code=404,
            error_kind=FetchErrorKind.HTTP_STATUS,
            elapsed_ms=8,
        )
    )
    stats.record_page(PageKind.LISTING)
    stats.record_links(5)
    stats.record_upsert(UpsertResult(UpsertAction.CREATED, record_id="a"))
    stats.record_upsert(UpsertResult(UpsertAction.FAILED))
    stats.record_admission_snapshot({"example.com": {"in_flight": 0, "peak_in_flight": 2, "admitted": 2}})
    stats.finish(timed_out=False)

    payload = stats.to_json()

    assert payload["frontier_enqueued"] == 1
    assert payload["frontier_skipped_seen"] == 1
    assert payload["frontier"]["extra_status_counts"] == {"skipped_closed": 1}
    assert payload["visited"] == 1
    assert payload["fetched_error"] == 2
    assert payload["fetch"]["status_code_counts"] == {"200": 1, "404": 1}
    assert payload["fetch"]["error_kind_counts"] == {"http_status": 1}
    assert payload["fetch"]["elapsed_ms_avg"] == 10.0
    assert payload["fetch"]["bytes_total"] == 3
    assert payload["listing_pages"] == 1
    assert payload["links_discovered"] == 5
    assert payload["recipes_created"] == 1
    assert payload["store_failed"] == 1
    assert payload["timed_out"] is False
    assert payload["admission"]["example.com"]["peak_in_flight"] == 2
    assert payload["finished_at"] is not None
    assert stats.core().recipes_created == 1
