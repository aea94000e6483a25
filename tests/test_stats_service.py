from tinyshrink.models.compression import ExternalArtifact
from tinyshrink.models.history import HistoryEntry
from tinyshrink.models.job import ImageJob, JobState
from tinyshrink.services.stats_service import compute_stats, format_size, summarize


def job(status, original, compressed=None) -> ImageJob:
    return ImageJob(
        id=f"{status.value}-{original}",
        original_name="a.png",
        original_size=original,
        status=status,
        compressed_size=compressed,
        artifact=ExternalArtifact(url="/compressed/a.png") if compressed is not None else None
    )


def entry(original, compressed) -> HistoryEntry:
    return HistoryEntry(id="h", original_name="h.png", original_size=original,
                        compressed_size=compressed, compressed_at="2024-01-01T00:00:00",
                        savings_percent=0.0)


def test_empty_input_has_no_data():
    stats = compute_stats()

    assert not stats.has_data
    assert stats.count == 0
    assert stats.savings_percent == 0.0


def test_only_successful_jobs_count():
    jobs = [
        job(JobState.SUCCESS, 1000, 400),
        job(JobState.ERROR, 5000),
        job(JobState.COMPRESSING, 7000),
        job(JobState.SUCCESS, 1000, 600),
    ]

    stats = compute_stats(jobs=jobs)

    assert stats.count == 2
    assert stats.total_original_size == 2000
    assert stats.total_compressed_size == 1000
    assert stats.saved_bytes == 1000
    assert stats.savings_percent == 50.0


def test_failed_jobs_only_is_no_data():
    assert not compute_stats(jobs=[job(JobState.ERROR, 100)]).has_data


def test_zero_original_sizes():
    stats = compute_stats(entries=[entry(0, 0)])

    assert stats.has_data
    assert stats.savings_percent == 0.0


def test_summary_separates_batch_and_history():
    summary = summarize([job(JobState.SUCCESS, 100, 50)], [entry(1000, 100), entry(1000, 300)])

    assert summary.current.count == 1
    assert summary.current.savings_percent == 50.0
    assert summary.all_time.count == 2
    assert summary.all_time.saved_bytes == 1600
    assert summary.all_time.savings_percent == 80.0


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2.0 KB"
    assert format_size(5 * 1024 * 1024) == "5.0 MB"
