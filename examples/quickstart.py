"""orbwarden quickstart: parse a TLE, sample its ground track, plan an avoidance maneuver."""

from datetime import timedelta

from orbwarden import ObjectCatalog, SimulationClock, encode, normalize_conjunction, parse_tle, sample

# ISS (ZARYA) TLE
tle_text = """
ISS (ZARYA)
1 25544U 98067A   24045.54896019  .00016717  00000-0  30093-3 0  9997
2 25544  51.6412 207.4925 0004948 290.5508 178.9792 15.49583488439592
""".strip()

iss = parse_tle(tle_text)[0]

print(f"Satellite: {iss.name}")
print(f"NORAD ID:  {iss.catalog_id}")
print(f"Epoch:     {iss.epoch}")
print(f"Incl:      {iss.inclination_deg:.4f}°")
print(f"Ecc:       {iss.eccentricity:.7f}")
print(f"Period:    {iss.period_minutes:.1f} min")

# One orbit of ground track, split where it crosses the antimeridian
track = sample(iss, iss.epoch)
for run in track.segments():
    first, last = run[0].position, run[-1].position
    print(f"  {len(run):3d} points  ({first.latitude_deg:6.1f}, {first.longitude_deg:7.1f})"
          f" -> ({last.latitude_deg:6.1f}, {last.longitude_deg:7.1f})")

# A conjunction record as it might arrive from a feed
clock = SimulationClock()
catalog = ObjectCatalog(clock=clock)
catalog.ingest(iss)
event = normalize_conjunction({
    "SAT_1_ID": "25544",
    "SAT_2_ID": "48274",
    "TCA": (clock.current_instant() + timedelta(minutes=8)).isoformat(),
    "MISS_DISTANCE": "400",
    "RELATIVE_SPEED": "7.8",
})

for risk in catalog.assess([event])["25544"]:
    print(f"{risk.risk_level.value}: {risk.target_id} at {risk.miss_distance_km:.3f} km, Pc~{risk.probability:.2e}")

record = catalog.apply_maneuver("25544", event.miss_distance_km)
print(record.description)
print(encode(catalog.get("25544").elements))
