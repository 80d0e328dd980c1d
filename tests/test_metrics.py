from clinic.analytics.metrics import (
    accumulate,
    average_of_fields,
    band_distribution,
    categorical_rates,
    describe,
    mean_or_zero,
    percentage,
)
from clinic.models.therapy_session import SessionStatus


def test_percentage_of_zero_total_is_zero():
    assert percentage(3, 0) == 0.0
    assert percentage(1, 4) == 25.0


def test_accumulate_counts_outcomes():
    rows = [
        {"status": "COMPLETED"},
        {"status": SessionStatus.COMPLETED},
        {"status": "CANCELLED"},
        {"status": "NO_SHOW"},
    ]
    acc = accumulate(rows)

    assert acc.total == 4
    assert acc.completed == 2
    assert acc.completion_rate == 50.0
    assert acc.cancellation_rate == 25.0
    assert acc.no_show_rate == 25.0
    assert acc.reschedule_rate == 0.0


def test_accumulate_empty_is_all_zero():
    data = accumulate([]).as_dict()
    assert data["total_sessions"] == 0
    assert data["completion_rate"] == 0.0


def test_accumulator_merge():
    a = accumulate([{"status": "COMPLETED"}])
    a.merge(accumulate([{"status": "RESCHEDULE_REQUESTED"}, {"status": "SCHEDULED"}]))
    assert (a.total, a.completed, a.rescheduled) == (3, 1, 1)


def test_categorical_rates_reports_every_category():
    rows = [{"status": "COMPLETED"}, {"status": "COMPLETED"}, {"status": "CANCELLED"}]
    result = categorical_rates(rows, "status", list(SessionStatus))

    assert result.total == 3
    assert result.counts["COMPLETED"] == 2
    assert result.counts["NO_SHOW"] == 0
    assert round(result.rates["CANCELLED"], 2) == 33.33


def test_categorical_rates_missing_values():
    rows = [{"risk": "low"}, {"risk": None}]

    counted = categorical_rates(rows, "risk")
    assert counted.counts == {"low": 1, "UNKNOWN": 1}

    skipped = categorical_rates(rows, "risk", skip_missing=True)
    assert skipped.total == 1
    assert skipped.rates == {"low": 100.0}


def test_average_of_fields_ignores_missing_values():
    rows = [{"a": 10, "b": None}, {"a": 20, "b": True}, {"a": None, "b": None}]
    assert average_of_fields(rows, ["a", "b"]) == {"a": 15.0, "b": None}


def test_mean_or_zero():
    assert mean_or_zero([]) == 0.0
    assert mean_or_zero([1, 2, 3]) == 2.0


def test_band_distribution_edges():
    dist = band_distribution([0, 20, 21, 55, 100])
    assert dist == {"0-20": 2, "21-40": 1, "41-60": 1, "61-80": 0, "81-100": 1}


def test_describe():
    stats = describe([9, 2, 4, 4, 4, 5, 5, 7])
    assert stats == {
        "count": 8,
        "mean": 5.0,
        "median": 4.5,
        "min": 2,
        "max": 9,
        "std_dev": 2.0,
    }


def test_describe_empty():
    assert all(v == 0 for v in describe([]).values())
