import math

EARTH_RADIUS_KM = 6371.0
# Great-circle kilometres per degree of latitude.
KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a marginally above 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def latitude_window(lat: float, radius_km: float) -> tuple[float, float]:
    """Latitude band that contains every point within radius_km of lat."""
    delta = radius_km / KM_PER_DEGREE
    return max(-90.0, lat - delta), min(90.0, lat + delta)
