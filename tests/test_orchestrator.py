"""
Tests for the crawl orchestrator.

Covers:
  1. End-to-end scenarios (titled + untitled entry, listing abort)
  2. Per-item failure isolation (timeout, missing content, write failure)
  3. Parametric pagination visits exactly N listing pages
  4. Link-following pagination halts on missing "next" and on revisits
  5. Resource release (pages, session) and bounded concurrency
  6. Optional per-item retries
"""

import re

from submission_crawler.extractors import NO_CONTENT_TEXT
from submission_crawler.orchestrator import SubmissionCrawler

from fakes import (
    BODY, CONTENT, FakeElement,
    bare_detail_document, detail_document, gallery_item, listing_document,
)

BASE = "https://gallery.example.com/submissions"
PAGE_2 = BASE + "?page=2"
PAGE_3 = BASE + "?page=3"


def _detail(n):
    return f"https://gallery.example.com/software/item-{n}"


def _crawl(config, sessions):
    crawler = SubmissionCrawler(config, session_factory=sessions)
    return crawler, crawler.run()


def _placeholder():
    """Gallery item with no link: satisfies the marker wait, yields no entry."""
    return gallery_item(None, "placeholder")


def _files(output_dir):
    return sorted(p.name for p in output_dir.glob("*.txt"))


class _UnreadableElement(FakeElement):
    async def text_content(self):
        raise ValueError("renderer returned garbage")


class TestEndToEnd:

    def test_titled_and_untitled_entries(self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail("a"), "Foo/Bar"),
            gallery_item(_detail("b"), ""),
        ]))
        site.add(_detail("a"), detail_document("Hello", title="Different heading"))
        site.add(_detail("b"), detail_document(""))

        _, result = _crawl(make_config(), sessions)

        assert not result.aborted
        files = _files(output_dir)
        assert len(files) == 2
        assert "FooBar.txt" in files
        assert (output_dir / "FooBar.txt").read_text(encoding="utf-8") == "Hello"
        fallback = [f for f in files if f != "FooBar.txt"][0]
        assert re.match(r"^project-\d+\.txt$", fallback)
        assert (output_dir / fallback).read_text(encoding="utf-8") == NO_CONTENT_TEXT
        assert result.stats["items_saved"] == 2
        assert result.stats["stop_reason"] == "Pagination exhausted"

    def test_title_taken_from_detail_page_when_listing_has_none(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([gallery_item(_detail("a"))]))
        site.add(_detail("a"), detail_document("Body", title="  Detail: Title  "))

        _crawl(make_config(), sessions)

        assert _files(output_dir) == ["Detail Title.txt"]

    def test_listing_timeout_aborts_and_keeps_prior_files(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([gallery_item(_detail(1), "First")], next_url=PAGE_2))
        site.add(_detail(1), detail_document("one"))
        site.add(PAGE_2, {})  # gallery never renders

        _, result = _crawl(make_config(), sessions)

        assert result.aborted
        assert _files(output_dir) == ["First.txt"]
        assert (output_dir / "First.txt").read_text(encoding="utf-8") == "one"
        assert result.errors[-1]["kind"] == "timeout"
        assert result.errors[-1]["page"] == 2
        assert result.errors[-1]["url"] == PAGE_2
        assert sessions.close_count == 1

    def test_first_listing_unreachable(self, site, sessions, make_config, output_dir):
        _, result = _crawl(make_config(), sessions)
        assert result.aborted
        assert result.errors[0]["kind"] == "navigation"
        assert _files(output_dir) == []
        assert sessions.close_count == 1

    def test_utf8_content(self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([gallery_item(_detail(1), "Café")]))
        site.add(_detail(1), detail_document("naïve ✓ 日本"))
        _crawl(make_config(), sessions)
        assert (output_dir / "Café.txt").read_bytes() == "naïve ✓ 日本".encode("utf-8")


class TestIsolation:

    def test_missing_content_does_not_stop_later_items(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "One"),
            gallery_item(_detail(2), "Two"),
            gallery_item(_detail(3), "Three"),
        ]))
        site.add(_detail(1), detail_document("1"))
        site.add(_detail(2), bare_detail_document())
        site.add(_detail(3), detail_document("3"))

        _, result = _crawl(make_config(max_workers=1), sessions)

        assert not result.aborted
        assert _files(output_dir) == ["One.txt", "Three.txt"]
        assert len(result.errors) == 1
        assert result.errors[0]["kind"] == "missing_content"
        assert result.errors[0]["index"] == 1
        assert result.errors[0]["url"] == _detail(2)
        assert result.stats["items_failed"] == 1
        assert result.stats["items_retried"] == 0

    def test_detail_timeout_and_navigation_error_skipped(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "Timeout"),
            gallery_item(_detail(2), "Unreachable"),
            gallery_item(_detail(3), "Fine"),
        ]))
        site.add(_detail(1), {})
        site.add(_detail(3), detail_document("ok"))

        _, result = _crawl(make_config(), sessions)

        assert _files(output_dir) == ["Fine.txt"]
        assert sorted(e["kind"] for e in result.errors) == ["navigation", "timeout"]

    def test_write_failure_skips_item(self, site, sessions, make_config, output_dir):
        output_dir.mkdir(parents=True)
        (output_dir / "Blocked.txt").mkdir()
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "Blocked"),
            gallery_item(_detail(2), "Open"),
        ]))
        site.add(_detail(1), detail_document("x"))
        site.add(_detail(2), detail_document("y"))

        _, result = _crawl(make_config(), sessions)

        assert not result.aborted
        assert (output_dir / "Open.txt").read_text(encoding="utf-8") == "y"
        assert [e["kind"] for e in result.errors] == ["write"]

    def test_unencodable_body_does_not_stop_later_items(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "Broken"),
            gallery_item(_detail(2), "Good"),
        ]))
        site.add(_detail(1), detail_document("bad \ud800 text"))
        site.add(_detail(2), detail_document("Hello"))

        _, result = _crawl(make_config(max_workers=1), sessions)

        assert not result.aborted
        assert _files(output_dir) == ["Good.txt"]
        assert (output_dir / "Good.txt").read_text(encoding="utf-8") == "Hello"
        assert [e["kind"] for e in result.errors] == ["write"]
        assert result.errors[0]["url"] == _detail(1)

    def test_unexpected_item_error_is_isolated(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "Garbled"),
            gallery_item(_detail(2), "Good"),
        ]))
        site.add(_detail(1), {BODY: [FakeElement()], CONTENT: [_UnreadableElement()]})
        site.add(_detail(2), detail_document("Hello"))

        _, result = _crawl(make_config(max_workers=1), sessions)

        assert not result.aborted
        assert _files(output_dir) == ["Good.txt"]
        assert result.errors[0]["kind"] == "ValueError"
        assert result.errors[0]["index"] == 0
        assert result.stats["items_failed"] == 1
        assert site.open_pages == 0

    def test_failing_progress_callback_does_not_abort(
            self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "One"),
            gallery_item(_detail(2), "Two"),
        ]))
        site.add(_detail(1), detail_document("1"))
        site.add(_detail(2), detail_document("2"))

        def explode(*args):
            raise RuntimeError("callback broke")

        crawler = SubmissionCrawler(make_config(max_workers=1), session_factory=sessions)
        crawler.set_progress_callback(explode)
        result = crawler.run()

        assert not result.aborted
        assert _files(output_dir) == ["One.txt", "Two.txt"]
        assert result.errors == []

    def test_duplicate_names_last_write_wins(self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([
            gallery_item(_detail(1), "Same"),
            gallery_item(_detail(2), "Same"),
        ]))
        site.add(_detail(1), detail_document("first"))
        site.add(_detail(2), detail_document("second"))

        _, result = _crawl(make_config(max_workers=1), sessions)

        assert _files(output_dir) == ["Same.txt"]
        assert (output_dir / "Same.txt").read_text(encoding="utf-8") == "second"
        assert result.stats["items_saved"] == 2


class TestParametricPagination:

    def test_visits_exactly_n_pages_despite_item_failures(
            self, site, sessions, make_config, output_dir):
        for k in (1, 2, 3):
            site.add(f"{BASE}?page={k}", listing_document([
                gallery_item(_detail(f"{k}-ok"), f"Page {k} ok"),
                gallery_item(_detail(f"{k}-bad"), f"Page {k} bad"),
            ], next_url=PAGE_2))
            site.add(_detail(f"{k}-ok"), detail_document(f"content {k}"))

        config = make_config(pagination="parametric", total_pages=3)
        _, result = _crawl(config, sessions)

        listing_visits = [u for u in site.visits if u.startswith(BASE)]
        assert listing_visits == [f"{BASE}?page={k}" for k in (1, 2, 3)]
        assert _files(output_dir) == ["Page 1 ok.txt", "Page 2 ok.txt", "Page 3 ok.txt"]
        assert result.stats["listing_pages"] == 3
        assert result.stats["items_failed"] == 3
        assert not result.aborted

    def test_max_pages_caps_parametric(self, site, sessions, make_config):
        for k in (1, 2, 3):
            site.add(f"{BASE}?page={k}", listing_document([_placeholder()]))
        config = make_config(pagination="parametric", total_pages=3, max_pages=2)
        _, result = _crawl(config, sessions)
        assert result.stats["listing_pages"] == 2
        assert result.stats["stop_reason"].startswith("MAX_PAGES")


class TestLinkFollowingPagination:

    def test_halts_when_no_next_control(self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([gallery_item(_detail(1), "P1")], next_url=PAGE_2))
        site.add(PAGE_2, listing_document([gallery_item(_detail(2), "P2")], next_url=PAGE_3))
        site.add(PAGE_3, listing_document([gallery_item(_detail(3), "P3")]))
        for n in (1, 2, 3):
            site.add(_detail(n), detail_document(str(n)))

        _, result = _crawl(make_config(), sessions)

        assert [u for u in site.visits if u.startswith(BASE)] == [BASE, PAGE_2, PAGE_3]
        assert _files(output_dir) == ["P1.txt", "P2.txt", "P3.txt"]
        assert result.stats["stop_reason"] == "Pagination exhausted"

    def test_never_loops_on_repeated_url(self, site, sessions, make_config):
        site.add(BASE, listing_document([_placeholder()], next_url=PAGE_2))
        site.add(PAGE_2, listing_document([_placeholder()], next_url=BASE))

        _, result = _crawl(make_config(), sessions)

        assert [u for u in site.visits if u.startswith(BASE)] == [BASE, PAGE_2]
        assert not result.aborted
        assert "already visited" in result.stats["stop_reason"]

    def test_max_pages_caps_link_following(self, site, sessions, make_config):
        site.add(BASE, listing_document([_placeholder()], next_url=PAGE_2))
        site.add(PAGE_2, listing_document([_placeholder()], next_url=PAGE_3))
        site.add(PAGE_3, listing_document([_placeholder()]))
        _, result = _crawl(make_config(max_pages=1), sessions)
        assert [u for u in site.visits if u.startswith(BASE)] == [BASE]


class TestResources:

    def _populate(self, site, count):
        site.add(BASE, listing_document([
            gallery_item(_detail(n), f"Item {n}") for n in range(count)
        ]))
        for n in range(count):
            site.add(_detail(n), detail_document(f"body {n}"))

    def test_all_pages_closed_and_session_closed_once(self, site, sessions, make_config):
        self._populate(site, 5)
        site.add(_detail(2), {})
        _crawl(make_config(), sessions)
        assert sessions.close_count == 1
        assert sessions.contexts[0].closed
        assert all(p.closed for p in sessions.contexts[0].pages)
        assert site.open_pages == 0

    def test_worker_pool_is_bounded(self, site, sessions, make_config, output_dir):
        self._populate(site, 8)
        _, result = _crawl(make_config(max_workers=3), sessions)
        assert result.stats["items_saved"] == 8
        # listing page + at most 3 detail pages
        assert site.peak_open_pages <= 4

    def test_progress_callback(self, site, sessions, make_config):
        self._populate(site, 3)
        calls = []
        crawler = SubmissionCrawler(make_config(), session_factory=sessions)
        crawler.set_progress_callback(lambda count, path, entry: calls.append((count, entry.title)))
        crawler.run()
        assert sorted(c[0] for c in calls) == [1, 2, 3]
        assert sorted(c[1] for c in calls) == ["Item 0", "Item 1", "Item 2"]

    def test_stop_before_start_of_next_page(self, site, sessions, make_config):
        site.add(BASE, listing_document([gallery_item(_detail(1), "Only")], next_url=PAGE_2))
        site.add(_detail(1), detail_document("x"))
        site.add(PAGE_2, listing_document([]))
        crawler = SubmissionCrawler(make_config(), session_factory=sessions)
        crawler.set_progress_callback(lambda *args: crawler.stop())
        result = crawler.run()
        assert result.stats["stop_reason"] == "User requested stop"
        assert PAGE_2 not in site.visits


class TestRetries:

    def test_transient_navigation_error_retried(self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([gallery_item(_detail(1), "Flaky")]))
        site.add(_detail(1), detail_document("eventually"))
        site.fail_navigation(_detail(1), times=1)

        config = make_config(max_retries=2, retry_base_delay=0)
        _, result = _crawl(config, sessions)

        assert _files(output_dir) == ["Flaky.txt"]
        assert result.stats["items_retried"] == 1
        assert result.errors == []

    def test_no_retry_by_default(self, site, sessions, make_config, output_dir):
        site.add(BASE, listing_document([gallery_item(_detail(1), "Flaky")]))
        site.add(_detail(1), detail_document("eventually"))
        site.fail_navigation(_detail(1), times=1)

        _, result = _crawl(make_config(), sessions)

        assert _files(output_dir) == []
        assert result.stats["items_retried"] == 0
        assert result.errors[0]["kind"] == "navigation"

    def test_missing_content_not_retried(self, site, sessions, make_config):
        site.add(BASE, listing_document([gallery_item(_detail(1), "Gone")]))
        site.add(_detail(1), bare_detail_document())

        config = make_config(max_retries=3, retry_base_delay=0)
        _, result = _crawl(config, sessions)

        assert [e["kind"] for e in result.errors] == ["missing_content"]
        assert result.stats["items_retried"] == 0
        assert site.visits.count(_detail(1)) == 1


class TestOutputDirectory:

    def test_unusable_output_dir_aborts_before_browser_launch(
            self, site, sessions, make_config, tmp_path):
        blocker = tmp_path / "occupied"
        blocker.write_text("a file, not a directory")
        site.add(BASE, listing_document([_placeholder()]))

        _, result = _crawl(make_config(output_dir=str(blocker / "projects")), sessions)

        assert result.aborted
        assert result.stats["stop_reason"].startswith("Output directory unavailable")
        assert result.errors[0]["kind"] == "write"
        assert result.errors[0]["page"] is None
        assert sessions.contexts == []
        assert site.visits == []
