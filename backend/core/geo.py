import math

EARTH_RADIUS_MILES = 3959.0


def great_circle_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance between two WGS84 points, spherical law of cosines, in miles."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta = math.radians(lng2) - math.radians(lng1)

    cos_angle = math.cos(phi1) * math.cos(phi2) * math.cos(delta) + math.sin(phi1) * math.sin(phi2)
    # Float error can push identical points just past 1.0, outside acos' domain.
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return EARTH_RADIUS_MILES * math.acos(cos_angle)
