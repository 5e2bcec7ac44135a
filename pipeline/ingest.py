"""Fetch the police enforcement CSV and Australian state boundaries."""

from __future__ import annotations

import os
from pathlib import Path

import httpx

RAW_DIR = Path(__file__).resolve().parent.parent / "data" / "raw"

ENFORCEMENT_CSV = "police_enforcement_2024_fines.csv"
GEOGRAPHY_FILE = "australia_states.geojson"

# Remote locations are configured per deployment; without them the files
# are expected to be dropped into data/raw/ by hand.
SOURCES = {
    ENFORCEMENT_CSV: "ENFORCEMENT_CSV_URL",
    GEOGRAPHY_FILE: "GEOGRAPHY_URL",
}


def _download(url: str, out_path: Path, *, force: bool = False) -> Path | None:
    """Stream-download a file. Returns None on 403/404."""
    if out_path.exists() and not force:
        print(f"  cached: {out_path.name}")
        return out_path

    out_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with httpx.stream("GET", url, follow_redirects=True, timeout=300) as r:
            r.raise_for_status()
            with open(out_path, "wb") as f:
                for chunk in r.iter_bytes(chunk_size=1 << 20):
                    f.write(chunk)
        size_mb = out_path.stat().st_size / (1 << 20)
        print(f"  downloaded: {out_path.name} ({size_mb:.1f} MB)")
        return out_path
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code in (403, 404):
            print(f"  skipped ({exc.response.status_code}): {out_path.name}")
            return None
        raise


def ingest(force: bool = False, raw_dir: Path = RAW_DIR) -> list[Path]:
    """Make every source file available locally. Returns the paths present."""
    paths: list[Path] = []

    for name, env_var in SOURCES.items():
        out = raw_dir / name
        url = os.environ.get(env_var)
        if url:
            p = _download(url, out, force=force)
        elif out.exists():
            print(f"  local: {out.name}")
            p = out
        else:
            print(f"  missing: {out.name} (set {env_var} or place the file in {raw_dir})")
            p = None
        if p:
            paths.append(p)

    return paths


if __name__ == "__main__":
    import sys

    ingest(force="--force" in sys.argv)
