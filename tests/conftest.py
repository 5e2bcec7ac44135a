from __future__ import annotations

import json

import pytest

from api import queries

SAMPLE_CSV = """\
YEAR,JURISDICTION,METRIC,AGE_GROUP,DETECTION_METHOD,FINES,ARRESTS,CHARGES,START_DATE
2023,NSW,speed_fines,17-25,Police issued,100,5,3,1/01/2023
2023,VIC,speed_fines,26-39,Fixed camera,200,0,1,1/01/2023
2024,NSW,speed_fines,17-25,Mobile camera,150,,2,1/01/2024
2024,VIC,speed_fines,,Police issued,50,abc,0,2/01/2024
2024,QLD,unlicensed_driving,17-25,Police issued,30,10,20,3/01/2024
2023,QLD,unlicensed_driving,26-39,Police issued,0,0,0,
,NSW,speed_fines,17-25,Police issued,999,9,9,1/01/2024
2024,NSW,non_wearing_seatbelts,40-64,Police issued,40,1,-3,6/01/2024
2023,WA,non_wearing_seatbelts,17-25,Other,0,0,0,5/15/2023
"""

SAMPLE_GEOGRAPHY = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "properties": {"STATE_NAME": "New South Wales"}, "geometry": None},
        {"type": "Feature", "properties": {"STE_CODE": "VIC", "STATE_NAME": "Victoria"}, "geometry": None},
        {"type": "Feature", "properties": {"STATE_NAME": "Queensland"}, "geometry": None},
        {"type": "Feature", "properties": {"name": "Unknown Territory"}, "geometry": None},
    ],
}


@pytest.fixture
def sample_csv(tmp_path):
    path = tmp_path / "police_enforcement_2024_fines.csv"
    path.write_text(SAMPLE_CSV)
    return path


@pytest.fixture
def geography():
    return json.loads(json.dumps(SAMPLE_GEOGRAPHY))


@pytest.fixture
def geography_file(tmp_path, geography):
    path = tmp_path / "australia_states.geojson"
    path.write_text(json.dumps(geography))
    return path


@pytest.fixture
def sample_data(monkeypatch, tmp_path, sample_csv, geography_file):
    """Point the query layer at the sample CSV and boundary file."""
    monkeypatch.setattr(queries, "_PROCESSED", tmp_path / "missing.parquet")
    monkeypatch.setattr(queries, "_RAW", sample_csv)
    monkeypatch.setattr(queries, "GEOGRAPHY_PATH", geography_file)
    queries._load_cached.cache_clear()
    yield
    queries._load_cached.cache_clear()
