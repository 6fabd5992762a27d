import pytest

from marketplace.services.geo import distance_km, latitude_window


class TestDistance:
    def test_zero_for_same_point(self):
        assert distance_km(-32.9442, -60.6505, -32.9442, -60.6505) == 0

    def test_symmetric(self):
        a = (-32.9442, -60.6505)
        b = (-34.6037, -58.3816)
        assert distance_km(*a, *b) == pytest.approx(distance_km(*b, *a))

    def test_rosario_to_buenos_aires(self):
        assert distance_km(-32.9442, -60.6505, -34.6037, -58.3816) == pytest.approx(279, abs=3)

    def test_antipodal_points_do_not_fail(self):
        assert distance_km(0, 0, 0, 180) == pytest.approx(20015, rel=1e-3)

    def test_latitude_window_contains_radius(self):
        low, high = latitude_window(-32.9442, 10)
        assert distance_km(low, -60.6505, -32.9442, -60.6505) == pytest.approx(10, rel=1e-6)
        assert high > -32.9442 > low

    def test_latitude_window_clamps_at_pole(self):
        assert latitude_window(89.99, 50)[1] == 90.0
