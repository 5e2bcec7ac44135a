from __future__ import annotations

import pytest

from api import queries
from pipeline.aggregate import ALL_AGES, ALL_YEARS, AVERAGE, FilterConfig
from pipeline.resolve import GeographyUnavailable

pytestmark = pytest.mark.usefixtures("sample_data")


def test_filter_options():
    opts = queries.get_filter_options("speed_fines")
    assert opts["metrics"] == ["non_wearing_seatbelts", "speed_fines", "unlicensed_driving"]
    assert opts["years"] == [AVERAGE, ALL_YEARS, 2023, 2024]
    assert opts["age_groups"] == [ALL_AGES, "17-25", "26-39", "Unknown"]
    assert opts["jurisdictions"] == ["NSW", "VIC"]


def test_offence_ratios():
    rows = {r["metric"]: r for r in queries.get_offence_ratios()}
    speed = rows["speed_fines"]
    assert (speed["fines"], speed["arrests"], speed["charges"]) == (500, 5, 6)
    assert speed["arrests_per_fine"] == pytest.approx(0.01)
    assert speed["charges_per_fine"] == pytest.approx(0.012)
    assert rows["non_wearing_seatbelts"]["charges_per_fine"] == 0


def test_metric_comparison():
    rows = queries.get_metric_comparison("speed_fines")
    assert [r["metric"] for r in rows] == ["unlicensed_driving", "non_wearing_seatbelts"]
    assert all(r["reference_fines"] == 500 for r in rows)


def test_metric_comparison_missing_reference():
    rows = queries.get_metric_comparison("no_such_metric")
    assert len(rows) == 3
    assert all(r["reference_fines"] == 0 for r in rows)


def test_yearly_outcomes():
    rows = queries.get_yearly_outcomes("speed_fines")
    assert [r["year"] for r in rows] == [2023, 2024]
    y2023 = rows[0]
    assert (y2023["fines"], y2023["severe"], y2023["total"]) == (300, 9, 309)
    assert y2023["fines_per_1000"] + y2023["severe_per_1000"] == pytest.approx(1000)
    assert y2023["fines_thousands"] == pytest.approx(0.3)


def test_yearly_outcomes_zero_total_year():
    rows = queries.get_yearly_outcomes("unlicensed_driving")
    y2023 = next(r for r in rows if r["year"] == 2023)
    assert y2023["fines_per_1000"] == 0
    assert y2023["severe_per_1000"] == 0


def test_monthly_outcomes():
    rows = queries.get_monthly_outcomes("speed_fines")
    assert [r["month"] for r in rows] == ["2023-01", "2024-01", "2024-02"]
    assert (rows[0]["fines"], rows[0]["severe"]) == (300, 9)


def test_monthly_outcomes_skip_undated():
    rows = queries.get_monthly_outcomes("unlicensed_driving")
    assert [r["month"] for r in rows] == ["2024-03"]


def test_jurisdiction_breakdown_all_years():
    rows = queries.get_jurisdiction_breakdown("speed_fines", ALL_YEARS)
    assert [r["jurisdiction"] for r in rows] == ["NSW", "VIC"]
    assert rows[0]["value"] == 260
    assert rows[0]["fines_share"] == pytest.approx(250 / 260)


def test_jurisdiction_breakdown_average():
    rows = {r["jurisdiction"]: r for r in queries.get_jurisdiction_breakdown("speed_fines", AVERAGE)}
    assert rows["NSW"]["fines"] == 125
    assert rows["NSW"]["value"] == pytest.approx(130)
    assert rows["VIC"]["value"] == pytest.approx(125.5)


def test_jurisdiction_breakdown_single_year():
    rows = queries.get_jurisdiction_breakdown("speed_fines", 2024)
    assert [(r["jurisdiction"], r["value"]) for r in rows] == [("NSW", 152), ("VIC", 50)]


def test_age_severity_all_ages(geography):
    rows = queries.get_age_severity("speed_fines", ALL_AGES, geography=geography)
    assert [r["jurisdiction"] for r in rows] == ["NSW", "VIC", None, None]
    nsw = rows[0]
    assert nsw["national_total"] == 511
    assert nsw["severe"] == 10
    assert nsw["severe_share"] == pytest.approx(10 / 511)
    assert nsw["has_data"] and nsw["matched"]
    qld = rows[2]
    assert not qld["matched"]
    assert qld["label"] == "Queensland"
    assert (qld["fines"], qld["severe_share"]) == (0, 0)


def test_age_severity_matched_but_empty(geography):
    rows = queries.get_age_severity("speed_fines", "17-25", geography=geography)
    vic = rows[1]
    assert vic["matched"]
    assert not vic["has_data"]
    assert rows[0]["national_total"] == 260


def test_age_severity_falls_back_to_all_ages_total(geography):
    rows = queries.get_age_severity("speed_fines", "40-64", geography=geography)
    assert all(not r["has_data"] for r in rows)
    assert rows[0]["national_total"] == 511


def test_age_severity_loads_boundary_file():
    rows = queries.get_age_severity("speed_fines")
    assert len(rows) == 4


def test_age_severity_missing_geography(monkeypatch, tmp_path):
    monkeypatch.setattr(queries, "GEOGRAPHY_PATH", tmp_path / "nope.geojson")
    with pytest.raises(GeographyUnavailable):
        queries.get_age_severity("speed_fines")


def test_detection_flows():
    flows = queries.get_detection_flows("speed_fines")
    assert flows["nodes"] == ["Camera-based", "Police-issued", "Fines", "Arrests", "Charges"]
    links = [(l["source"], l["target"], l["value"]) for l in flows["links"]]
    assert links == [(0, 2, 350), (0, 4, 3), (1, 2, 150), (1, 3, 5), (1, 4, 3)]
    assert flows["links"][0]["share_of_source"] == pytest.approx(350 / 353)


def test_detection_flows_without_matches():
    flows = queries.get_detection_flows("no_such_metric")
    assert flows["links"] == []


def test_processed_parquet_preferred(monkeypatch, tmp_path, sample_csv):
    from pipeline.transform import transform

    transform(sample_csv, tmp_path / "processed", tmp_path / "aggregated")
    monkeypatch.setattr(queries, "_PROCESSED", tmp_path / "processed" / "enforcement.parquet")
    monkeypatch.setattr(queries, "_RAW", tmp_path / "missing.csv")
    queries._load_cached.cache_clear()
    assert len(queries.records()) == 8


def test_no_data_files_yields_empty_views(monkeypatch, tmp_path, geography):
    monkeypatch.setattr(queries, "_PROCESSED", tmp_path / "none.parquet")
    monkeypatch.setattr(queries, "_RAW", tmp_path / "none.csv")
    assert queries.records() == ()
    opts = queries.get_filter_options()
    assert opts["metrics"] == []
    assert opts["years"] == [AVERAGE, ALL_YEARS]
    assert queries.get_jurisdiction_breakdown() == []
    assert queries.get_detection_flows()["links"] == []
    rows = queries.get_age_severity(geography=geography)
    assert not any(r["matched"] for r in rows)


def test_average_counts_round_half_up(monkeypatch, tmp_path):
    path = tmp_path / "halves.csv"
    path.write_text(
        "YEAR,JURISDICTION,METRIC,FINES,ARRESTS,CHARGES\n"
        "2023,NSW,speed_fines,2,0,1\n"
        "2024,NSW,speed_fines,3,1,2\n"
    )
    monkeypatch.setattr(queries, "_RAW", path)
    queries._load_cached.cache_clear()
    (nsw,) = queries.get_jurisdiction_breakdown("speed_fines", AVERAGE)
    assert (nsw["fines"], nsw["arrests"], nsw["charges"]) == (3, 1, 2)
    assert nsw["value"] == pytest.approx(4.5)


def test_selection_config_drives_breakdown():
    selection = FilterConfig(metric="speed_fines").model_copy(update={"year": 2024})
    assert queries.jurisdiction_breakdown(selection) == queries.get_jurisdiction_breakdown(
        "speed_fines", 2024
    )


def test_selection_without_age_group_covers_all_ages(geography):
    rows = queries.age_severity(FilterConfig(metric="speed_fines"), geography=geography)
    assert rows[0]["national_total"] == 511
    assert rows[0]["severe"] == 10
