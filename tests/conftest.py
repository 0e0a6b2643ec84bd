import pytest

from submission_crawler.run_config import CrawlerRunConfig

from fakes import FakeSessionFactory, FakeSite


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def sessions(site):
    return FakeSessionFactory(site)


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "projects"


@pytest.fixture
def make_config(output_dir):
    def _make(**overrides):
        values = dict(
            start_url="https://gallery.example.com/submissions",
            output_dir=str(output_dir),
            timeout_seconds=1,
            max_workers=2,
        )
        values.update(overrides)
        return CrawlerRunConfig(**values)
    return _make
