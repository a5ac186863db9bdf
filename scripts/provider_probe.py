import os
from datetime import date, timedelta

import requests

KEY = os.environ.get("API_FOOTBALL_KEY") or os.environ.get("RAPIDAPI_KEY")
BASE = os.environ.get("API_FOOTBALL_BASE_URL", "https://v3.football.api-sports.io")
MIRROR = os.environ.get("MIRROR_BASE_URL", "https://api-football-v1.p.rapidapi-mirror.com/v3")
LEAGUE = os.environ.get("PROBE_LEAGUE", "39")

today = date.today()
window = {"league": LEAGUE, "from": today.isoformat(), "to": (today + timedelta(days=7)).isoformat()}

probes = [
    ("keyed_status", BASE, "status", {}, True),
    ("keyed_fixtures", BASE, "fixtures", window, True),
    ("mirror_fixtures", MIRROR, "fixtures", window, False),
]

results = []
for label, base, path, params, keyed in probes:
    if keyed and not KEY:
        results.append((label, None, "skipped: API_FOOTBALL_KEY not set"))
        continue
    headers = {"Accept": "application/json"}
    if keyed:
        headers["x-apisports-key"] = KEY
    try:
        r = requests.get(f"{base}/{path}", headers=headers, params=params, timeout=20)
        status = r.status_code
        try:
            payload = r.json()
        except ValueError:
            payload = None
        if status == 200 and isinstance(payload, dict):
            resp = payload.get("response")
            size = len(resp) if isinstance(resp, list) else (1 if resp else 0)
            note = f"ok results={size} errors={payload.get('errors') or None}"
        else:
            note = payload if payload else r.text[:200]
    except requests.RequestException as exc:
        status = None
        note = str(exc)
    results.append((label, status, note))

for label, status, note in results:
    print(f"{label}: {status} -> {note}")
