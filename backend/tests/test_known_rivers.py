"""Tests for the known-rivers fixture source."""

from models.gold_sites import SiteKind, TierMode
from services.gold_search.known_rivers import KnownRiversSource


class TestKnownRiversFixture:
    """The bundled JSON fixture."""

    def test_carcassonne(self):
        result = KnownRiversSource().lookup("Carcassonne")

        by_name = {site.name: site for site in result.main_spots}
        assert set(by_name) == {"L'Aude", "L'Orbiel", "Le Fresquel"}
        assert by_name["L'Aude"].coordinates == (43.2130, 2.3491)
        assert by_name["L'Aude"].rating == 4
        assert by_name["L'Orbiel"].coordinates == (43.3119, 2.2275)
        assert by_name["L'Orbiel"].rating == 5
        assert by_name["Le Fresquel"].coordinates == (43.2275, 2.2647)
        assert result.has_more_results is False

    def test_tuchan(self):
        result = KnownRiversSource().lookup("  TUCHAN ")

        assert [s.name for s in result.main_spots] == ["Le Verdouble"]
        torgan = result.secondary_spots[0]
        assert torgan.name == "Le Torgan"
        assert torgan.kind == SiteKind.STREAM
        assert torgan.rating == 2
        assert torgan.sources == ["Source non spécifiée"]

    def test_unknown_place(self):
        assert KnownRiversSource().lookup("Paris") is None

    def test_places(self):
        assert KnownRiversSource().places() == ["carcassonne", "tuchan"]


class TestInjectedData:
    def test_dict_source(self):
        source = KnownRiversSource(data={"Tuchan": {"mainSpots": [{"name": "Le Verdouble"}]}})
        assert source.lookup("tuchan").names() == ["Le Verdouble"]

    def test_unknown_mode_not_served(self):
        source = KnownRiversSource(data={"tuchan": {"mainSpots": [{"name": "Le Verdouble"}]}})
        assert source.lookup("tuchan", TierMode.UNKNOWN) is None
