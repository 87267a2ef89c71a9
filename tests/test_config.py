from racefetch.config import Settings


class TestSettings:
    def test_defaults(self):
        conf = Settings()
        assert conf.PER_STRATEGY_TIMEOUT == 12.0
        assert conf.OVERALL_TIMEOUT == 15.0
        assert conf.DIRECT_TIMEOUT == 8.0
        assert conf.ALLORIGINS_URL == "https://api.allorigins.win/raw"
        assert conf.JINA_READER_URL == "https://r.jina.ai"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PER_STRATEGY_TIMEOUT", "3.5")
        monkeypatch.setenv("SITEMAP_PROXY_URL", "https://proxy.test/api/fetch-sitemap")
        conf = Settings()
        assert conf.PER_STRATEGY_TIMEOUT == 3.5
        assert conf.SITEMAP_PROXY_URL == "https://proxy.test/api/fetch-sitemap"

    def test_overall_below_per_is_accepted(self):
        """The race clamps it; settings only warn."""
        conf = Settings(PER_STRATEGY_TIMEOUT=20, OVERALL_TIMEOUT=5)
        assert conf.OVERALL_TIMEOUT == 5
